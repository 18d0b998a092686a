from __future__ import annotations

import base64
import binascii
import re

__all__ = [
    "ValidationFailed",
    "is_valid_base64",
    "require",
]

_WHITESPACE_RE = re.compile(r"[\t\n\f\r ]+")
_ALPHABET_RE = re.compile(r"^[A-Za-z0-9+/]*$")


class ValidationFailed(ValueError):
    """Client input was missing or malformed.

    The `code` attribute is the stable machine code placed in the error body.
    """

    code: str = "validation_error"


def require(message: str, *values: object) -> None:
    """Raise ValidationFailed(message) unless every value is a non-empty string."""
    for v in values:
        if not isinstance(v, str) or not v:
            raise ValidationFailed(message)


def is_valid_base64(token: str) -> bool:
    """Check `token` the way a browser's atob() would accept it.

    Rules (forgiving-base64):
    - ASCII whitespace anywhere is ignored.
    - A length that is a multiple of 4 may end in one or two "=".
    - Padding may be omitted entirely; a remainder of 1 (mod 4) is invalid.
    - Only the standard alphabet A-Z a-z 0-9 + / is allowed.
    """
    data = _WHITESPACE_RE.sub("", token)
    if len(data) % 4 == 0:
        if data.endswith("=="):
            data = data[:-2]
        elif data.endswith("="):
            data = data[:-1]
    if len(data) % 4 == 1:
        return False
    if not _ALPHABET_RE.match(data):
        return False

    padded = data + "=" * (-len(data) % 4)
    try:
        base64.b64decode(padded, validate=True)
    except (binascii.Error, ValueError):
        return False
    return True
