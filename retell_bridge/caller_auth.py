"""
Caller authorization against the configured allowlist.

Phone numbers arrive from Retell in whatever shape the carrier produced, and the
allowlist is typed by hand, so both sides are normalized to an E.164-like form
before comparison.
"""

import re
from typing import Iterable, Optional

_NON_DIAL_CHARS = re.compile(r"[^\d+]")


def normalize_phone(phone: str) -> str:
    """
    Normalize a phone number for comparison.

    Removes everything except digits and ``+``. Bare 10 digit numbers are
    assumed to be US numbers and get ``+1``; 11 digit numbers starting with
    ``1`` get ``+``. Anything else is returned as is.

    Args:
        phone: Raw phone number string

    Returns:
        The normalized phone number
    """
    normalized = _NON_DIAL_CHARS.sub("", phone or "")

    if not normalized.startswith("+"):
        if len(normalized) == 10:
            normalized = "+1" + normalized
        elif len(normalized) == 11 and normalized.startswith("1"):
            normalized = "+" + normalized

    return normalized


def is_allowed_caller(phone: Optional[str], allow_from: Iterable[str]) -> bool:
    """
    Check if a phone number is in the allowlist.

    An empty allowlist admits every caller.

    Args:
        phone: Number to check (None is treated as an empty number)
        allow_from: Allowed numbers in any common format

    Returns:
        True if the caller may use the bridge
    """
    allow_from = list(allow_from)
    if not allow_from:
        return True

    normalized = normalize_phone(phone or "")
    if not normalized:
        return False
    return any(normalize_phone(allowed) == normalized for allowed in allow_from)
