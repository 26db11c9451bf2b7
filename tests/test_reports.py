"""
Tests for daily summaries and sales breakdowns.
"""
from decimal import Decimal

import pytest

from till.models import CartLine
from till.orders import cancel_bill, place_order
from till.reports import (
    cancelled_orders,
    daily_summary,
    sales_by_category,
    sales_by_payment_method,
    sales_by_product,
)


@pytest.fixture
def day(open_day, pad_thai, iced_tea, clock):
    """Three bills; the first (2 x Pad Thai, cash) is cancelled."""
    data, first = place_order(open_day, [CartLine(item=pad_thai, quantity=2)], "cash", clock())
    data, _ = place_order(data, [CartLine(item=iced_tea, quantity=1)], "qr", clock())
    data, _ = place_order(
        data, [CartLine(item=pad_thai, quantity=1), CartLine(item=iced_tea, quantity=2)], "cash", clock()
    )
    data, _ = cancel_bill(data, first.id, clock(), is_admin=True)
    return data


class TestDailySummary:
    def test_net_is_gross_minus_cancellations(self, day):
        summary = daily_summary(day)

        assert summary.gross_sales == Decimal("630.00")
        assert summary.cancellations_total == Decimal("300.00")
        assert summary.cancellations_count == 1
        assert summary.net_sales == Decimal("330.00")
        assert summary.bill_count == 3


class TestBreakdowns:
    def test_by_product_nets_out_reversals(self, day):
        rows = {row.key: row for row in sales_by_product(day.completed_orders)}

        assert rows["Pad Thai"].quantity == 1
        assert rows["Pad Thai"].total == Decimal("150.00")
        assert rows["Thai Iced Tea"].quantity == 3
        assert rows["Thai Iced Tea"].total == Decimal("180.00")

    def test_by_category(self, day):
        rows = sales_by_category(day.completed_orders)

        assert [(row.key, row.total) for row in rows] == [
            ("Drinks", Decimal("180.00")),
            ("Noodles", Decimal("150.00")),
        ]

    def test_by_payment_method(self, day):
        totals = sales_by_payment_method(day.completed_orders)

        assert totals == {"cash": Decimal("270.00"), "qr": Decimal("60.00")}

    def test_cancelled_orders_paired_with_reversal(self, day):
        pairs = cancelled_orders(day)

        assert len(pairs) == 1
        original, reversal = pairs[0]
        assert original.id == "20240501-0001"
        assert reversal.reversal_of == original.id
        assert reversal.total == -original.total
