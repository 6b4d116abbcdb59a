"""
The `validation` package provides the pure text rules the interpretation
protocol is built on. Nothing in here touches the database or the LLM.

Contents
--------
- character_validation
    Length and word-count bounds for messages and interpretations:
        * `validate_message`: first failing check wins: empty → min chars → min words → max chars
        * `count_words`, `meets_minimum`, `within_maximum`
        * display helpers (`get_remaining_chars`, `get_char_count_display`, `truncate_to_max`)

- word_similarity
    Lexical-overlap guard against verbatim "interpretations":
        * `calculate_word_similarity`: share of the interpretation's distinct
          normalized words that also occur in the original
        * `is_too_similar`, `get_similarity_description`, `format_similarity_percentage`
"""

from mmstr.validation.character_validation import (
    MESSAGE_MAX_CHARS,
    MESSAGE_MIN_CHARS,
    MESSAGE_MIN_WORDS,
    ValidationError,
    ValidationResult,
    count_words,
    validate_message,
)
from mmstr.validation.word_similarity import (
    AUTO_REJECT_SIMILARITY_THRESHOLD,
    SimilarityResult,
    calculate_word_similarity,
)

__all__ = [
    "MESSAGE_MAX_CHARS",
    "MESSAGE_MIN_CHARS",
    "MESSAGE_MIN_WORDS",
    "ValidationError",
    "ValidationResult",
    "count_words",
    "validate_message",
    "AUTO_REJECT_SIMILARITY_THRESHOLD",
    "SimilarityResult",
    "calculate_word_similarity",
]
