"""
Tests for message/interpretation length validation and the display helpers.
"""

import pytest

from mmstr.validation.character_validation import (
    MESSAGE_MAX_CHARS,
    ValidationError,
    count_words,
    get_char_count_display,
    get_remaining_chars,
    meets_minimum,
    requires_interpretation,
    truncate_to_max,
    validate_message,
    within_maximum,
)


class TestCountWords:
    def test_counts_whitespace_separated_tokens(self):
        assert count_words("one two  three\tfour\nfive") == 5

    def test_blank_text_has_no_words(self):
        assert count_words("") == 0
        assert count_words("   \n\t ") == 0


class TestValidateMessage:
    def test_valid_message(self):
        result = validate_message("This is a perfectly fine message")
        assert result.is_valid
        assert result.error is None
        assert result.char_count == 32
        assert result.word_count == 6

    def test_empty(self):
        result = validate_message("")
        assert not result.is_valid
        assert result.error == ValidationError.EMPTY
        assert result.error_message == "Message cannot be empty"

    def test_too_short(self):
        result = validate_message("Too short")
        assert result.error == ValidationError.TOO_SHORT
        assert result.char_count == 9

    def test_too_few_words(self):
        result = validate_message("Supercalifragilistic word")
        assert result.error == ValidationError.TOO_FEW_WORDS
        assert result.word_count == 2

    def test_too_long(self):
        result = validate_message("word " * 60)
        assert result.error == ValidationError.TOO_LONG
        assert result.char_count == 300

    def test_boundaries_are_inclusive(self):
        assert validate_message("ab cd efgh").is_valid  # exactly 10 chars, 3 words
        text = ("abc " * 70)[:MESSAGE_MAX_CHARS]
        assert len(text) == MESSAGE_MAX_CHARS
        assert validate_message(text).is_valid
        assert not validate_message(text + "x").is_valid

    def test_short_check_wins_over_word_check(self):
        # 4 chars and 1 word: too short is reported first
        assert validate_message("word").error == ValidationError.TOO_SHORT


class TestHelpers:
    def test_meets_minimum_and_within_maximum(self):
        assert meets_minimum("three small words")
        assert not meets_minimum("tiny")
        assert not meets_minimum("")
        assert within_maximum("x" * MESSAGE_MAX_CHARS)
        assert not within_maximum("x" * (MESSAGE_MAX_CHARS + 1))

    @pytest.mark.parametrize(
        "text, remaining",
        [("", 280), ("hello", 275), ("x" * 290, -10)],
    )
    def test_remaining_chars(self, text, remaining):
        assert get_remaining_chars(text) == remaining

    def test_char_count_display(self):
        assert get_char_count_display("hello") == "5/280"

    def test_truncate_to_max(self):
        assert truncate_to_max("short text") == "short text"
        assert len(truncate_to_max("y" * 500)) == MESSAGE_MAX_CHARS

    def test_every_message_requires_interpretation(self):
        assert requires_interpretation("anything at all")
        assert requires_interpretation("")
