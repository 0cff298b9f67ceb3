"""Canonicalize user and event identifiers.

Older records sometimes store an attendee card id (``"<eventId>_<userId>"``)
where a plain user id was expected, and event ids arrive as either numbers
or strings. Every id read back from the store goes through here before it
is compared.
"""
import re

# Short all-digit suffix: the legacy user id format
_USER_SUFFIX = re.compile(r"[0-9]{1,9}")


def extract_user_id(value) -> str:
    """
    Return the user id embedded in a possibly composite id.

    ``"1763916921410_7"`` -> ``"7"``; ``"7"`` -> ``"7"``; ``"abc_def"`` is
    returned unchanged because its suffix is not a short number.
    """
    if value is None:
        return ""
    text = str(value)
    if "_" not in text:
        return text
    suffix = text.rsplit("_", 1)[1]
    if _USER_SUFFIX.fullmatch(suffix):
        return suffix
    return text


def normalize_id(value) -> str:
    """Coerce a numeric or string id to its canonical string form."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def same_user(left, right) -> bool:
    """Compare two user ids after normalization."""
    return extract_user_id(normalize_id(left)) == extract_user_id(normalize_id(right))
