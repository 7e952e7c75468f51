from __future__ import annotations

import random
import re
from uuid import UUID

from railbook.identifiers import generate_ids, new_ticket_number


def test_generated_identifiers_share_suffix_and_timestamp() -> None:
    ids = generate_ids(now_ms=1700000123456, rng=random.Random(7))

    assert re.fullmatch(r"BOOK-123456-[A-Z0-9]{4}", ids.booking_code)
    assert re.fullmatch(r"ORDER-1700000123456-[A-Z0-9]{4}", ids.order_id)
    assert re.fullmatch(r"TICKET-00123456-[A-Z0-9]{4}", ids.ticket_number)
    suffix = ids.booking_code[-4:]
    assert ids.order_id.endswith(suffix)
    assert ids.ticket_number.endswith(suffix)


def test_booking_id_is_fresh_uuid4() -> None:
    first = generate_ids(now_ms=1700000123456)
    second = generate_ids(now_ms=1700000123456)

    assert UUID(first.booking_id).version == 4
    assert first.booking_id != second.booking_id


def test_supplied_codes_are_used_verbatim_after_strip() -> None:
    ids = generate_ids("  BOOK-CLIENT-1 ", "ORDER-CLIENT-9")

    assert ids.booking_code == "BOOK-CLIENT-1"
    assert ids.order_id == "ORDER-CLIENT-9"
    assert ids.ticket_number.startswith("TICKET-")


def test_blank_codes_count_as_absent() -> None:
    ids = generate_ids("   ", "")

    assert ids.booking_code.startswith("BOOK-")
    assert ids.order_id.startswith("ORDER-")


def test_new_ticket_number_shape() -> None:
    assert re.fullmatch(r"TICKET-\d{8}-[A-Z0-9]{4}", new_ticket_number())
