"""Contact e-mail normalization.

Web clients hand contact addresses over in three shapes: plain
(``name@domain.com``), percent-encoded once (``name%40domain.com``) or twice
(``name%2540domain.com``). Everything downstream expects the plain shape.
"""

from __future__ import annotations

import logging
import re
from urllib.parse import unquote

logger = logging.getLogger(__name__)

_SINGLE_ENCODED_AT = "%40"
_DOUBLE_ENCODED_AT = "%2540"
_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_email(raw: str | None) -> str:
    if not raw:
        return ""
    email = str(raw).strip()
    if "@" in email:
        return email
    try:
        if _SINGLE_ENCODED_AT in email:
            decoded = unquote(email, errors="strict")
            if _SINGLE_ENCODED_AT in decoded:
                decoded = unquote(decoded, errors="strict")
            return decoded
        if _DOUBLE_ENCODED_AT in email:
            return unquote(unquote(email, errors="strict"), errors="strict")
    except UnicodeDecodeError:
        logger.warning("Could not decode e-mail %r, keeping it as received", email)
        return email
    logger.warning("Unrecognised e-mail format %r, keeping it as received", email)
    return email


def is_valid_email(value: str | None) -> bool:
    return bool(value) and bool(_EMAIL_PATTERN.match(value))
