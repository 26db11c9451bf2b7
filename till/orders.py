"""Cart arithmetic, order placement, bill cancellation and the kitchen queue."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Sequence

from till.config import TAX_RATE
from till.exceptions import EmptyCart, InsufficientCash, NoOpenShift, OrderNotFound, ValidationError
from till.ledger import append_log
from till.models import (
    PAYMENT_METHODS,
    CartLine,
    CartTotals,
    CashDrawerActivity,
    DailyData,
    KitchenOrder,
    KitchenStatus,
    MenuItem,
    Order,
    PaymentMethod,
)
from till.money import ZERO, day_key, format_baht, parse_amount, parse_discount, to_money
from till.shifts import new_activity_id


def compute_totals(
    lines: Iterable[CartLine],
    discount: str = "",
    vat_enabled: bool = False,
    vat_rate: Decimal = TAX_RATE,
) -> CartTotals:
    subtotal = to_money(sum((line.line_total for line in lines), ZERO))
    discount_value = parse_discount(discount, subtotal)
    discounted = subtotal - discount_value
    tax = to_money(discounted * vat_rate) if vat_enabled else ZERO
    total = max(ZERO, to_money(discounted + tax))
    return CartTotals(
        subtotal=subtotal,
        discount_value=discount_value,
        tax=tax,
        total=total,
        vat_rate=vat_rate if vat_enabled else Decimal("0"),
    )


@dataclass
class Cart:
    """The in-progress order at the till."""

    lines: list[CartLine] = field(default_factory=list)
    discount: str = ""
    vat_enabled: bool = False

    def add(self, item: MenuItem) -> None:
        for idx, line in enumerate(self.lines):
            if line.item.id == item.id:
                self.lines[idx] = replace(line, quantity=line.quantity + 1)
                return
        self.lines.append(CartLine(item=item, quantity=1))

    def update_quantity(self, item_id: int, delta: int) -> None:
        for idx, line in enumerate(self.lines):
            if line.item.id != item_id:
                continue
            if line.quantity + delta <= 0:
                del self.lines[idx]
            else:
                self.lines[idx] = replace(line, quantity=line.quantity + delta)
            return

    def remove(self, item_id: int) -> None:
        self.lines = [line for line in self.lines if line.item.id != item_id]

    def clear(self, vat_default: bool = False) -> None:
        self.lines = []
        self.discount = ""
        self.vat_enabled = vat_default

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def totals(self, vat_rate: Decimal = TAX_RATE) -> CartTotals:
        return compute_totals(self.lines, self.discount, self.vat_enabled, vat_rate)


def _sequence_number(order_id: str) -> int:
    try:
        return int(order_id.split("-", 1)[1])
    except (IndexError, ValueError):
        return 0


def next_daily_id(orders: Iterable[Order], today: str) -> str:
    """Next ``YYYYMMDD-NNNN`` id: one past the highest sequence used today."""
    prefix = f"{today}-"
    used = [_sequence_number(order.id) for order in orders if order.id.startswith(prefix)]
    return f"{today}-{max(used, default=0) + 1:04d}"


def _sorted_orders(orders: Iterable[Order]) -> tuple[Order, ...]:
    return tuple(sorted(orders, key=lambda o: o.id, reverse=True))


def change_due(order: Order, cash_received: Decimal | None) -> Decimal:
    if cash_received is None or order.payment_method != "cash":
        return ZERO
    return to_money(cash_received) - order.total


def place_order(
    data: DailyData,
    lines: Sequence[CartLine],
    payment_method: PaymentMethod,
    now: datetime,
    *,
    discount: str = "",
    vat_enabled: bool = False,
    vat_rate: Decimal = TAX_RATE,
    cash_received: Decimal | None = None,
) -> tuple[DailyData, Order]:
    if not lines:
        raise EmptyCart()
    shift = data.open_shift
    if shift is None:
        raise NoOpenShift()
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"Unknown payment method {payment_method!r}")

    totals = compute_totals(lines, discount, vat_enabled, vat_rate)
    if payment_method == "cash" and cash_received is not None and parse_amount(cash_received) < totals.total:
        raise InsufficientCash(
            f"Cash received {format_baht(cash_received)} is less than the total {format_baht(totals.total)}"
        )

    order = Order(
        id=next_daily_id(data.completed_orders, day_key(now)),
        items=tuple(lines),
        subtotal=totals.subtotal,
        tax=totals.tax,
        discount_value=totals.discount_value,
        total=totals.total,
        timestamp=now,
        payment_method=payment_method,
        vat_rate=totals.vat_rate,
        status="completed",
        sync_status="pending",
    )
    sale = CashDrawerActivity(
        id=new_activity_id(),
        timestamp=now,
        type="SALE",
        amount=order.total,
        payment_method=order.payment_method,
        description=f"Bill #{order.id}",
        order_id=order.id,
    )
    kitchen = tuple(sorted(data.kitchen_orders + (KitchenOrder(order=order),), key=lambda k: k.id))
    data = replace(
        data,
        completed_orders=_sorted_orders((order,) + data.completed_orders),
        kitchen_orders=kitchen,
        current_shift=replace(shift, activities=shift.activities + (sale,)),
    )
    return append_log(data, f"Saved bill #{order.id} (sync pending)", now), order


def cancel_bill(
    data: DailyData,
    order_id: str,
    now: datetime,
    *,
    is_admin: bool,
) -> tuple[DailyData, Order | None]:
    """
    Cancel a bill by appending a reversal order.

    The original order keeps its amounts; it is flagged ``cancelled`` and
    queued for re-sync. Returns ``(data, None)`` unchanged when the caller is
    not an admin, the bill is already cancelled, or the bill is itself a
    reversal.
    """
    original = data.find_order(order_id)
    if original is None:
        raise OrderNotFound(order_id)
    if not is_admin or original.status == "cancelled" or original.is_reversal:
        return data, None

    reversal = Order(
        id=next_daily_id(data.completed_orders, day_key(now)),
        items=original.items,
        subtotal=-original.subtotal,
        tax=-original.tax,
        discount_value=original.discount_value,
        total=-original.total,
        timestamp=now,
        payment_method=original.payment_method,
        vat_rate=original.vat_rate,
        status="completed",
        sync_status="pending",
        reversal_of=original.id,
    )
    cancelled = replace(original, status="cancelled", cancelled_at=now, sync_status="pending")
    orders = tuple(cancelled if o.id == original.id else o for o in data.completed_orders)
    data = replace(data, completed_orders=_sorted_orders((reversal,) + orders))

    shift = data.open_shift
    if shift is not None:
        refund = CashDrawerActivity(
            id=new_activity_id(),
            timestamp=now,
            type="REFUND",
            amount=original.total,
            payment_method=original.payment_method,
            description=f"Bill cancellation #{original.id}",
            order_id=original.id,
        )
        data = replace(data, current_shift=replace(shift, activities=shift.activities + (refund,)))
        data = append_log(data, f"Recorded refund for bill #{original.id} in the current shift", now)

    data = append_log(
        data,
        f"Cancelled bill #{original.id} with reversal #{reversal.id} totalling {format_baht(reversal.total)}",
        now,
    )
    return data, reversal


def update_order_status(data: DailyData, order_id: str, status: KitchenStatus, now: datetime) -> DailyData:
    if status not in ("cooking", "ready"):
        raise ValidationError(f"Unknown kitchen status {status!r}")

    changed = False
    log_line = None
    updated: list[KitchenOrder] = []
    for entry in data.kitchen_orders:
        if entry.id != order_id or entry.status == status:
            updated.append(entry)
            continue
        changed = True
        entry = replace(entry, status=status)
        # Stamp only the first transition into ready.
        if status == "ready" and entry.ready_at is None:
            seconds = int((now - entry.order.timestamp).total_seconds())
            entry = replace(entry, ready_at=now, preparation_time_seconds=seconds)
            log_line = f"Order #{order_id} ready after {seconds} seconds"
        updated.append(entry)

    if not changed:
        return data
    data = replace(data, kitchen_orders=tuple(updated))
    if log_line:
        data = append_log(data, log_line, now)
    return data


def complete_order(data: DailyData, order_id: str) -> DailyData:
    """Drop an order from the kitchen queue once it is picked up."""
    remaining = tuple(entry for entry in data.kitchen_orders if entry.id != order_id)
    if len(remaining) == len(data.kitchen_orders):
        return data
    return replace(data, kitchen_orders=remaining)
