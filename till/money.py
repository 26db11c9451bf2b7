"""Currency rounding/formatting and calendar-day helpers."""

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from till.exceptions import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
CURRENCY_SYMBOL = "฿"


def to_money(value: Decimal | int | float | str) -> Decimal:
    """Quantize a value to whole cents, rounding half up."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def parse_amount(value: Decimal | int | float | str) -> Decimal:
    """Cashier-entered amount to cents; anything unusable is a ``ValidationError``."""
    try:
        amount = to_money(value)
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"'{value}' is not a valid amount") from exc
    if not amount.is_finite():
        raise ValidationError(f"'{value}' is not a valid amount")
    return amount


def format_currency(amount: Decimal | int | float) -> str:
    """Format an amount as ``1,234.50``."""
    return f"{to_money(amount):,.2f}"


def format_baht(amount: Decimal | int | float) -> str:
    return f"{CURRENCY_SYMBOL}{format_currency(amount)}"


def _parse_decimal(raw: str) -> Decimal:
    try:
        value = Decimal(raw.strip())
    except (InvalidOperation, ValueError):
        return ZERO
    if not value.is_finite() or value < 0:
        return ZERO
    return value


def parse_discount(discount: str, subtotal: Decimal) -> Decimal:
    """
    Resolve a cashier-entered discount to an amount.

    ``"10%"`` is a percentage of ``subtotal``; anything else is an absolute
    amount. Empty or unparseable input is a zero discount.
    """
    text = (discount or "").strip()
    if not text:
        return ZERO
    if text.endswith("%"):
        pct = _parse_decimal(text[:-1])
        return to_money(subtotal * pct / Decimal(100))
    return to_money(_parse_decimal(text))


def local_now() -> datetime:
    return datetime.now().astimezone()


def day_key(moment: datetime) -> str:
    """Calendar-day key ``YYYYMMDD`` used for order/shift ids and storage keys."""
    return moment.strftime("%Y%m%d")
