from __future__ import annotations

import random
import string
import time
from dataclasses import dataclass
from uuid import uuid4

_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits
_SUFFIX_LENGTH = 4


@dataclass(frozen=True)
class Identifiers:
    booking_id: str
    booking_code: str
    order_id: str
    ticket_number: str


def _random_suffix(rng: random.Random | None = None) -> str:
    chooser = rng or random
    return "".join(chooser.choice(_SUFFIX_ALPHABET) for _ in range(_SUFFIX_LENGTH))


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def generate_ids(
    booking_code: str | None = None,
    order_id: str | None = None,
    *,
    now_ms: int | None = None,
    rng: random.Random | None = None,
) -> Identifiers:
    """Return booking identifiers, keeping caller-supplied code and order id verbatim."""
    timestamp = str(now_ms if now_ms is not None else int(time.time() * 1000))
    suffix = _random_suffix(rng)
    return Identifiers(
        booking_id=str(uuid4()),
        booking_code=_clean(booking_code) or f"BOOK-{timestamp[-6:]}-{suffix}",
        order_id=_clean(order_id) or f"ORDER-{timestamp}-{suffix}",
        ticket_number=f"TICKET-{timestamp[-8:]}-{suffix}",
    )


def new_ticket_number(now_ms: int | None = None) -> str:
    return generate_ids(now_ms=now_ms).ticket_number
