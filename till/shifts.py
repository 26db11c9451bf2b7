"""Shift lifecycle: opening, drawer movements, cash reconciliation and closing."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Literal
from uuid import uuid4

from till.config import MAX_SHIFTS_PER_DAY
from till.exceptions import NoOpenShift, ShiftAlreadyOpen, ShiftLimitReached, ValidationError
from till.ledger import append_log
from till.models import CashDrawerActivity, DailyData, Order, Shift, ShiftSummary
from till.money import ZERO, day_key, format_baht, parse_amount


def new_activity_id() -> str:
    return f"act-{uuid4().hex[:12]}"


def shifts_for_day(history: Iterable[Shift], today: str) -> list[Shift]:
    return [shift for shift in history if shift.id.startswith(f"{today}-")]


def next_shift_id(history: Iterable[Shift], today: str, max_per_day: int = MAX_SHIFTS_PER_DAY) -> str:
    used = len(shifts_for_day(history, today))
    if used >= max_per_day:
        raise ShiftLimitReached(max_per_day)
    return f"{today}-S{used + 1}"


def _require_open_shift(data: DailyData) -> Shift:
    shift = data.open_shift
    if shift is None:
        raise NoOpenShift()
    return shift


def _with_activity(data: DailyData, shift: Shift, activity: CashDrawerActivity) -> DailyData:
    return replace(data, current_shift=replace(shift, activities=shift.activities + (activity,)))


def _non_negative(amount: Decimal | int | float | str, label: str) -> Decimal:
    value = parse_amount(amount)
    if value < 0:
        raise ValidationError(f"{label} cannot be negative")
    return value


def start_shift(
    data: DailyData,
    history: Iterable[Shift],
    opening_float: Decimal | int | float | str,
    now: datetime,
    max_per_day: int = MAX_SHIFTS_PER_DAY,
) -> DailyData:
    if data.open_shift is not None:
        raise ShiftAlreadyOpen(data.open_shift.id)
    opening = _non_negative(opening_float, "Opening float")
    shift_id = next_shift_id(history, day_key(now), max_per_day)

    shift = Shift(
        id=shift_id,
        status="OPEN",
        start_time=now,
        opening_float_amount=opening,
        activities=(
            CashDrawerActivity(
                id=new_activity_id(),
                timestamp=now,
                type="SHIFT_START",
                amount=opening,
                payment_method="cash",
                description="Opening float",
            ),
        ),
    )
    data = replace(data, current_shift=shift)
    return append_log(data, f"Opened shift #{shift.id} with float {format_baht(opening)}", now)


def record_paid_in_out(
    data: DailyData,
    kind: Literal["PAID_IN", "PAID_OUT"],
    amount: Decimal | int | float | str,
    description: str,
    now: datetime,
) -> DailyData:
    if kind not in ("PAID_IN", "PAID_OUT"):
        raise ValidationError(f"Unknown cash movement {kind!r}")
    shift = _require_open_shift(data)
    value = parse_amount(amount)
    if value <= 0:
        raise ValidationError("Amount must be greater than zero")

    activity = CashDrawerActivity(
        id=new_activity_id(),
        timestamp=now,
        type=kind,
        amount=value,
        payment_method="cash",
        description=description,
    )
    label = "Paid in" if kind == "PAID_IN" else "Paid out"
    data = _with_activity(data, shift, activity)
    return append_log(data, f"{label} {format_baht(value)}: {description}", now)


def record_manual_drawer_open(data: DailyData, description: str, now: datetime) -> DailyData:
    shift = _require_open_shift(data)
    activity = CashDrawerActivity(
        id=new_activity_id(),
        timestamp=now,
        type="MANUAL_OPEN",
        amount=ZERO,
        payment_method="none",
        description=description,
    )
    data = _with_activity(data, shift, activity)
    return append_log(data, f"Drawer opened manually: {description}", now)


def compute_shift_summary(shift: Shift, orders: Iterable[Order]) -> ShiftSummary:
    """Fold a shift's drawer activities into its running totals."""
    total_sales = total_cash = total_qr = paid_in = paid_out = ZERO

    refunded_ids = set()
    for activity in shift.activities:
        if activity.type == "SALE":
            total_sales += activity.amount
            if activity.payment_method == "cash":
                total_cash += activity.amount
            elif activity.payment_method == "qr":
                total_qr += activity.amount
        elif activity.type == "REFUND":
            refunded_ids.add(activity.order_id)
            # Only cash refunds leave the drawer.
            if activity.payment_method == "cash":
                paid_out += activity.amount
        elif activity.type == "PAID_IN":
            paid_in += activity.amount
        elif activity.type == "PAID_OUT":
            paid_out += activity.amount

    cancelled = [o for o in orders if o.status == "cancelled" and o.id in refunded_ids]

    return ShiftSummary(
        total_sales=total_sales,
        total_cash_sales=total_cash,
        total_qr_sales=total_qr,
        total_paid_in=paid_in,
        total_paid_out=paid_out,
        total_cancellations_value=sum((o.total for o in cancelled), ZERO),
        total_cancellations_count=len(cancelled),
        expected_cash_in_drawer=shift.opening_float_amount + total_cash + paid_in - paid_out,
    )


def end_shift(
    data: DailyData,
    counted: Decimal | int | float | str,
    next_shift_float: Decimal | int | float | str,
    now: datetime,
) -> tuple[DailyData, Shift]:
    """Close the open shift. Returns the new snapshot and the closed shift."""
    shift = _require_open_shift(data)
    counted_cash = _non_negative(counted, "Counted cash")
    next_float = _non_negative(next_shift_float, "Next shift float")

    summary = compute_shift_summary(shift, data.completed_orders)
    over_short = counted_cash - summary.expected_cash_in_drawer

    closing = CashDrawerActivity(
        id=new_activity_id(),
        timestamp=now,
        type="SHIFT_END",
        amount=counted_cash,
        payment_method="cash",
        description="Closing count of cash in drawer",
    )
    closed = replace(
        shift,
        status="CLOSED",
        end_time=now,
        activities=shift.activities + (closing,),
        closing_cash_counted=counted_cash,
        cash_over_short=over_short,
        cash_for_next_shift=next_float,
        cash_to_deposit=counted_cash - next_float,
        summary=summary,
    )
    data = replace(data, current_shift=None)
    data = append_log(data, f"Closed shift #{closed.id}. Over/short: {format_baht(over_short)}", now)
    return data, closed
