"""Read-only summaries derived from the ledger.

All figures follow one signed-ledger model: a sale order counts at face
value whether or not it was later cancelled, and its reversal order counts
negatively. Net figures therefore equal gross minus cancellations.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Iterable

from till.models import CartLine, DailyData, Order
from till.money import ZERO


@dataclass(frozen=True)
class DailySummary:
    gross_sales: Decimal
    net_sales: Decimal
    cancellations_total: Decimal
    cancellations_count: int
    bill_count: int


@dataclass(frozen=True)
class SalesLine:
    key: str
    quantity: int
    total: Decimal


def order_sign(order: Order) -> int:
    return -1 if order.is_reversal else 1


def daily_summary(data: DailyData) -> DailySummary:
    sales = [o for o in data.completed_orders if not o.is_reversal]
    cancelled = [o for o in sales if o.status == "cancelled"]
    return DailySummary(
        gross_sales=sum((o.total for o in sales), ZERO),
        net_sales=sum((o.total for o in data.completed_orders), ZERO),
        cancellations_total=sum((o.total for o in cancelled), ZERO),
        cancellations_count=len(cancelled),
        bill_count=len(sales),
    )


def _fold_lines(orders: Iterable[Order], key: Callable[[Order, CartLine], str]) -> list[SalesLine]:
    quantities: dict[str, int] = defaultdict(int)
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for order in orders:
        sign = order_sign(order)
        for line in order.items:
            k = key(order, line)
            quantities[k] += sign * line.quantity
            totals[k] += sign * line.line_total
    rows = [SalesLine(key=k, quantity=quantities[k], total=totals[k]) for k in quantities]
    return sorted(rows, key=lambda row: (-row.total, row.key))


def sales_by_product(orders: Iterable[Order]) -> list[SalesLine]:
    """Net quantity and line value per product name, best sellers first."""
    return _fold_lines(orders, lambda order, line: line.item.name)


def sales_by_category(orders: Iterable[Order]) -> list[SalesLine]:
    return _fold_lines(orders, lambda order, line: line.item.category or "Uncategorized")


def sales_by_payment_method(orders: Iterable[Order]) -> dict[str, Decimal]:
    """Net bill totals (after discount and tax) per payment method."""
    totals: dict[str, Decimal] = {"cash": ZERO, "qr": ZERO}
    for order in orders:
        totals[order.payment_method] = totals.get(order.payment_method, ZERO) + order.total
    return totals


def cancelled_orders(data: DailyData) -> list[tuple[Order, Order | None]]:
    """Cancelled bills paired with their reversal order, newest first."""
    reversals = {o.reversal_of: o for o in data.completed_orders if o.is_reversal}
    return [
        (order, reversals.get(order.id))
        for order in data.completed_orders
        if order.status == "cancelled"
    ]
