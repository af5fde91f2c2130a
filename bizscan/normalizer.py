import re

_NON_DIGIT = re.compile(r"\D")
_CANONICAL = re.compile(r"^\d{3}-\d{2}-\d{5}$")


def digits_only(raw: str) -> str:
    """Return only the digits of `raw` (the form the platforms are queried with)."""
    return _NON_DIGIT.sub("", raw or "")


def normalize_registration_number(raw: str) -> str:
    """
    Canonicalize a business registration number into "XXX-XX-XXXXX".

    Args:
        raw (str): Registration number as read from the certificate, in any format.

    Returns:
        str: The hyphenated form when `raw` holds exactly 10 digits, otherwise
             `raw` unchanged (callers must treat that as unusable).
    """
    if raw is None:
        return ""
    digits = digits_only(raw)
    if len(digits) != 10:
        return raw
    return f"{digits[:3]}-{digits[3:5]}-{digits[5:]}"


def is_canonical(value: str) -> bool:
    return bool(value) and bool(_CANONICAL.match(value))


def canonical_or_empty(raw: str) -> str:
    """Normalize `raw`, clearing anything that does not come out canonical."""
    normalized = normalize_registration_number(raw or "")
    return normalized if is_canonical(normalized) else ""
