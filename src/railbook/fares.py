from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from railbook.models.booking import FareBreakdown

logger = logging.getLogger(__name__)

DEFAULT_UNIT_FARE = Decimal("265000")
DEFAULT_ADMIN_FEE = Decimal("5000")
DEFAULT_INSURANCE_FEE = Decimal("10000")
DEFAULT_PAYMENT_FEE = Decimal("0")

# Keys accepted from the web client, in lookup order.
_INPUT_KEYS: dict[str, tuple[str, ...]] = {
    "base_fare": ("base_fare", "baseFare"),
    "seat_premium": ("seat_premium", "seatPremium"),
    "transit_discount": ("transit_discount", "transitDiscount"),
    "transit_additional": ("transit_additional", "transitAdditional", "transit_additional_charge"),
    "promo_discount": ("promo_discount", "promoDiscount", "discount"),
    "admin_fee": ("admin_fee", "adminFee"),
    "insurance_fee": ("insurance_fee", "insuranceFee"),
    "payment_fee": ("payment_fee", "paymentFee"),
}


def _to_amount(value: Any) -> Decimal | None:
    """Parse a numeric input; None when absent or unusable."""
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


def _lookup(inputs: Mapping[str, Any], term: str) -> Decimal | None:
    for key in _INPUT_KEYS[term]:
        if key in inputs:
            amount = _to_amount(inputs[key])
            if amount is not None:
                return amount
    return None


def _non_negative(amount: Decimal | None) -> Decimal:
    if amount is None or amount < 0:
        return Decimal("0")
    return amount


def compose_fare(
    inputs: Mapping[str, Any] | None = None,
    passenger_count: int = 1,
    unit_price: Any = None,
) -> FareBreakdown:
    inputs = inputs or {}
    count = max(int(passenger_count or 1), 1)

    base = _lookup(inputs, "base_fare")
    if base is None:
        unit = _to_amount(unit_price)
        base = (unit if unit is not None and unit > 0 else DEFAULT_UNIT_FARE) * count

    admin_fee = _lookup(inputs, "admin_fee")
    insurance_fee = _lookup(inputs, "insurance_fee")
    payment_fee = _lookup(inputs, "payment_fee")

    breakdown = FareBreakdown(
        base_fare=_non_negative(base),
        seat_premium=_non_negative(_lookup(inputs, "seat_premium")),
        transit_discount=_non_negative(_lookup(inputs, "transit_discount")),
        transit_additional=_non_negative(_lookup(inputs, "transit_additional")),
        promo_discount=_non_negative(_lookup(inputs, "promo_discount")),
        admin_fee=_non_negative(DEFAULT_ADMIN_FEE if admin_fee is None else admin_fee),
        insurance_fee=_non_negative(DEFAULT_INSURANCE_FEE if insurance_fee is None else insurance_fee),
        payment_fee=_non_negative(DEFAULT_PAYMENT_FEE if payment_fee is None else payment_fee),
    )
    raw_total = breakdown.linear_total()
    if raw_total < 0:
        logger.warning("Fare terms sum to %s, clamping total to 0 for review", raw_total)
        return breakdown.model_copy(update={"total": Decimal("0"), "needs_review": True})
    return breakdown.model_copy(update={"total": raw_total})
