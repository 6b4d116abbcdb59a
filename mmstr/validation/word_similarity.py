"""
Word Similarity
===============

Catches interpretations that merely copy the original wording.

Both texts are lower-cased, stripped of everything but ASCII letters, digits
and underscores, and split on whitespace. Similarity is the share of the
interpretation's *distinct* words that also occur in the original. Anything
strictly above ``AUTO_REJECT_SIMILARITY_THRESHOLD`` is rejected without
consulting the LLM.
"""

import re

from pydantic import BaseModel

AUTO_REJECT_SIMILARITY_THRESHOLD = 0.7

_NON_WORD = re.compile(r"[^\w]", re.ASCII)


class SimilarityResult(BaseModel):
    """Outcome of `calculate_word_similarity`."""

    similarity: float
    """Matching share in [0, 1]."""
    should_auto_reject: bool
    matching_words: int
    total_words: int
    """Number of distinct words in the interpretation."""


def _normalize_word(word: str) -> str:
    return _NON_WORD.sub("", word.lower())


def _extract_words(text: str) -> list[str]:
    if not text:
        return []
    return [word for word in (_normalize_word(token) for token in text.split()) if word]


def calculate_word_similarity(original_text: str, interpretation_text: str) -> SimilarityResult:
    """
    Compute lexical overlap between an original message and an interpretation.

    Parameters
    ----------
    original_text : str
        The message being interpreted.
    interpretation_text : str
        The interpreter's restatement.

    Returns
    -------
    SimilarityResult
        ``similarity = matching / |distinct interpretation words|``; all zeros
        when either text has no words.
    """
    original_words = _extract_words(original_text)
    interpretation_words = _extract_words(interpretation_text)

    if not original_words or not interpretation_words:
        return SimilarityResult(similarity=0.0, should_auto_reject=False, matching_words=0, total_words=0)

    original_set = set(original_words)
    interpretation_set = set(interpretation_words)

    matching_words = sum(1 for word in interpretation_set if word in original_set)
    similarity = matching_words / len(interpretation_set)

    return SimilarityResult(
        similarity=similarity,
        should_auto_reject=similarity > AUTO_REJECT_SIMILARITY_THRESHOLD,
        matching_words=matching_words,
        total_words=len(interpretation_set),
    )


def is_too_similar(original_text: str, interpretation_text: str) -> bool:
    return calculate_word_similarity(original_text, interpretation_text).should_auto_reject


def format_similarity_percentage(similarity: float) -> str:
    """Format a ratio as a whole percentage, e.g. ``0.734 -> "73%"``."""
    return f"{round(similarity * 100)}%"


def get_similarity_description(similarity: float) -> str:
    percentage = round(similarity * 100)
    if similarity <= 0.3:
        return f"Low similarity ({percentage}% matching words)"
    if similarity <= 0.5:
        return f"Moderate similarity ({percentage}% matching words)"
    if similarity <= AUTO_REJECT_SIMILARITY_THRESHOLD:
        return f"High similarity ({percentage}% matching words)"
    return f"Too similar ({percentage}% matching words - auto-reject)"
