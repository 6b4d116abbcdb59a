"""
Character & Word Validation
===========================

Bounds enforced on every message and interpretation:

- at least ``MESSAGE_MIN_CHARS`` characters
- at least ``MESSAGE_MIN_WORDS`` whitespace-separated words
- at most ``MESSAGE_MAX_CHARS`` characters

Validation never raises. Callers receive a ``ValidationResult`` and must check
``is_valid`` before proceeding.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel

MESSAGE_MIN_CHARS = 10
MESSAGE_MAX_CHARS = 280
MESSAGE_MIN_WORDS = 3


class ValidationError(str, Enum):
    """Which bound a text failed. Checked in declaration order."""

    EMPTY = "empty"
    TOO_SHORT = "too_short"
    TOO_FEW_WORDS = "too_few_words"
    TOO_LONG = "too_long"


class ValidationResult(BaseModel):
    """Outcome of `validate_message`."""

    is_valid: bool
    char_count: int
    word_count: int
    error: Optional[ValidationError] = None
    error_message: Optional[str] = None


def count_words(text: str) -> int:
    """
    Count whitespace-separated words.

    Parameters
    ----------
    text : str
        Text to count.

    Returns
    -------
    int
        Number of non-empty tokens; 0 for empty or blank text.
    """
    if not text:
        return 0
    return len(text.split())


def meets_minimum(text: str) -> bool:
    """True when the text has enough characters and enough words."""
    if not text:
        return False
    return len(text) >= MESSAGE_MIN_CHARS and count_words(text) >= MESSAGE_MIN_WORDS


def within_maximum(text: str) -> bool:
    return len(text) <= MESSAGE_MAX_CHARS


def validate_message(text: str) -> ValidationResult:
    """
    Validate a message or interpretation against all bounds.

    The first failing check wins, in this order: empty, minimum characters,
    minimum words, maximum characters.

    Parameters
    ----------
    text : str
        The raw text as typed by the user.

    Returns
    -------
    ValidationResult
        ``is_valid=True`` with counts, or ``is_valid=False`` with the failing
        ``error`` kind and a user-facing ``error_message``.
    """
    char_count = len(text)
    word_count = count_words(text)

    if char_count == 0:
        return ValidationResult(
            is_valid=False,
            char_count=char_count,
            word_count=word_count,
            error=ValidationError.EMPTY,
            error_message="Message cannot be empty",
        )

    if char_count < MESSAGE_MIN_CHARS:
        return ValidationResult(
            is_valid=False,
            char_count=char_count,
            word_count=word_count,
            error=ValidationError.TOO_SHORT,
            error_message=f"Message must be at least {MESSAGE_MIN_CHARS} characters (currently {char_count})",
        )

    if word_count < MESSAGE_MIN_WORDS:
        return ValidationResult(
            is_valid=False,
            char_count=char_count,
            word_count=word_count,
            error=ValidationError.TOO_FEW_WORDS,
            error_message=f"Message must have at least {MESSAGE_MIN_WORDS} words (currently {word_count})",
        )

    if char_count > MESSAGE_MAX_CHARS:
        return ValidationResult(
            is_valid=False,
            char_count=char_count,
            word_count=word_count,
            error=ValidationError.TOO_LONG,
            error_message=f"Message must not exceed {MESSAGE_MAX_CHARS} characters (currently {char_count})",
        )

    return ValidationResult(is_valid=True, char_count=char_count, word_count=word_count)


def requires_interpretation(text: str) -> bool:
    """Every message requires an interpretation before anyone may reply to it."""
    return True


def get_remaining_chars(text: str) -> int:
    """Characters left before the maximum; negative when over the limit."""
    return MESSAGE_MAX_CHARS - len(text)


def get_char_count_display(text: str) -> str:
    return f"{len(text)}/{MESSAGE_MAX_CHARS}"


def truncate_to_max(text: str) -> str:
    if len(text) <= MESSAGE_MAX_CHARS:
        return text
    return text[:MESSAGE_MAX_CHARS]
