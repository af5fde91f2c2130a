import pytest

from bizscan.normalizer import (
    canonical_or_empty,
    digits_only,
    is_canonical,
    normalize_registration_number,
)


@pytest.mark.parametrize("raw", ["1234567890", "123-45-67890", "123 45 67890", " 123.45.67890 "])
def test_ten_digits_are_hyphenated(raw):
    assert normalize_registration_number(raw) == "123-45-67890"


def test_wrong_digit_count_is_returned_unchanged():
    assert normalize_registration_number("12345") == "12345"
    assert normalize_registration_number("123-45-678901") == "123-45-678901"


def test_none_and_empty():
    assert normalize_registration_number(None) == ""
    assert normalize_registration_number("") == ""


def test_normalize_is_idempotent():
    once = normalize_registration_number("1234567890")
    assert normalize_registration_number(once) == once


def test_digits_only():
    assert digits_only("123-45-67890") == "1234567890"
    assert digits_only(None) == ""


def test_canonical_or_empty():
    assert canonical_or_empty("1234567890") == "123-45-67890"
    assert canonical_or_empty("12-34") == ""
    assert is_canonical("123-45-67890")
    assert not is_canonical("1234567890")
