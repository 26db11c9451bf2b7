"""
Tests for cart arithmetic, order placement, cancellation and the kitchen queue.
"""
from dataclasses import replace
from decimal import Decimal

import pytest

from till.exceptions import EmptyCart, InsufficientCash, NoOpenShift, OrderNotFound, ValidationError
from till.models import CartLine, DailyData
from till.orders import (
    Cart,
    cancel_bill,
    change_due,
    complete_order,
    compute_totals,
    next_daily_id,
    place_order,
    update_order_status,
)


class TestComputeTotals:
    def test_discount_then_vat(self, pad_thai):
        totals = compute_totals([CartLine(item=pad_thai, quantity=2)], "10%", True, Decimal("0.07"))

        assert totals.subtotal == Decimal("300.00")
        assert totals.discount_value == Decimal("30.00")
        assert totals.tax == Decimal("18.90")
        assert totals.total == Decimal("288.90")
        assert totals.vat_rate == Decimal("0.07")

    def test_vat_disabled_records_zero_rate(self, pad_thai):
        totals = compute_totals([CartLine(item=pad_thai, quantity=1)])

        assert totals.tax == Decimal("0")
        assert totals.vat_rate == Decimal("0")

    def test_total_never_negative(self, pad_thai):
        totals = compute_totals([CartLine(item=pad_thai, quantity=1)], "500")

        assert totals.total == Decimal("0")


class TestCart:
    def test_adding_same_item_bumps_quantity(self, pad_thai, iced_tea):
        cart = Cart()
        cart.add(pad_thai)
        cart.add(iced_tea)
        cart.add(pad_thai)

        assert [(line.item.id, line.quantity) for line in cart.lines] == [(1, 2), (2, 1)]
        assert cart.item_count == 3

    def test_quantity_to_zero_removes_line(self, pad_thai):
        cart = Cart()
        cart.add(pad_thai)
        cart.update_quantity(pad_thai.id, -1)

        assert cart.lines == []

    def test_clear_resets_discount_and_vat(self, pad_thai):
        cart = Cart(discount="10%", vat_enabled=False)
        cart.add(pad_thai)
        cart.clear(vat_default=True)

        assert cart.lines == []
        assert cart.discount == ""
        assert cart.vat_enabled is True


class TestPlaceOrder:
    def test_records_order_sale_and_kitchen_entry(self, open_day, one_pad_thai, clock):
        data, order = place_order(open_day, one_pad_thai, "cash", clock())

        assert order.id == "20240501-0001"
        assert order.total == Decimal("150.00")
        assert order.sync_status == "pending"
        assert data.completed_orders == (order,)
        assert data.kitchen_orders[0].order == order
        assert data.kitchen_orders[0].status == "cooking"

        sale = data.current_shift.activities[-1]
        assert sale.type == "SALE"
        assert sale.amount == Decimal("150.00")
        assert sale.payment_method == "cash"
        assert sale.order_id == order.id

    def test_ids_increase_and_newest_first(self, open_day, one_pad_thai, clock):
        data, first = place_order(open_day, one_pad_thai, "cash", clock())
        data, second = place_order(data, one_pad_thai, "qr", clock())

        assert second.id == "20240501-0002"
        assert [o.id for o in data.completed_orders] == [second.id, first.id]
        assert [k.id for k in data.kitchen_orders] == [first.id, second.id]

    def test_next_id_skips_past_gaps(self, open_day, one_pad_thai, clock):
        _, order = place_order(open_day, one_pad_thai, "cash", clock())
        orders = [replace(order, id="20240501-0001"), replace(order, id="20240501-0005")]

        assert next_daily_id(orders, "20240501") == "20240501-0006"
        assert next_daily_id(orders, "20240502") == "20240502-0001"

    def test_empty_cart_rejected(self, open_day, clock):
        with pytest.raises(EmptyCart):
            place_order(open_day, [], "cash", clock())

    def test_requires_open_shift(self, one_pad_thai, clock):
        with pytest.raises(NoOpenShift):
            place_order(DailyData(date="20240501"), one_pad_thai, "cash", clock())

    def test_unknown_payment_method_rejected(self, open_day, one_pad_thai, clock):
        with pytest.raises(ValidationError):
            place_order(open_day, one_pad_thai, "card", clock())

    def test_cash_received_below_total_rejected(self, open_day, one_pad_thai, clock):
        with pytest.raises(InsufficientCash):
            place_order(open_day, one_pad_thai, "cash", clock(), cash_received=Decimal("100"))

    def test_change_due(self, open_day, one_pad_thai, clock):
        _, order = place_order(open_day, one_pad_thai, "cash", clock(), cash_received=Decimal("200"))

        assert change_due(order, Decimal("200")) == Decimal("50.00")
        assert change_due(order, None) == Decimal("0")


class TestCancelBill:
    @pytest.fixture
    def sold(self, open_day, pad_thai, clock):
        lines = [CartLine(item=pad_thai, quantity=2)]
        return place_order(open_day, lines, "cash", clock())

    def test_appends_negated_reversal(self, sold, clock):
        data, order = sold
        clock.advance(minutes=5)
        data, reversal = cancel_bill(data, order.id, clock(), is_admin=True)

        assert reversal.id == "20240501-0002"
        assert reversal.reversal_of == order.id
        assert reversal.total == Decimal("-300.00")
        assert reversal.subtotal == Decimal("-300.00")
        assert reversal.items == order.items

        original = data.find_order(order.id)
        assert original.status == "cancelled"
        assert original.cancelled_at == clock()
        assert original.sync_status == "pending"
        assert original.total == Decimal("300.00")

    def test_refund_activity_in_open_shift(self, sold, clock):
        data, order = sold
        data, _ = cancel_bill(data, order.id, clock(), is_admin=True)

        refund = data.current_shift.activities[-1]
        assert refund.type == "REFUND"
        assert refund.amount == Decimal("300.00")
        assert refund.order_id == order.id

    def test_second_cancel_is_a_no_op(self, sold, clock):
        data, order = sold
        data, _ = cancel_bill(data, order.id, clock(), is_admin=True)
        again, reversal = cancel_bill(data, order.id, clock(), is_admin=True)

        assert reversal is None
        assert again is data

    def test_reversal_cannot_be_cancelled(self, sold, clock):
        data, order = sold
        data, reversal = cancel_bill(data, order.id, clock(), is_admin=True)
        again, result = cancel_bill(data, reversal.id, clock(), is_admin=True)

        assert result is None
        assert again is data

    def test_requires_admin(self, sold, clock):
        data, order = sold
        again, reversal = cancel_bill(data, order.id, clock(), is_admin=False)

        assert reversal is None
        assert again is data

    def test_unknown_order(self, sold, clock):
        data, _ = sold
        with pytest.raises(OrderNotFound):
            cancel_bill(data, "20240501-0099", clock(), is_admin=True)


class TestKitchenQueue:
    def test_ready_stamped_once(self, open_day, one_pad_thai, clock):
        data, order = place_order(open_day, one_pad_thai, "qr", clock())

        clock.advance(minutes=7)
        first_ready = clock()
        data = update_order_status(data, order.id, "ready", first_ready)
        entry = data.kitchen_orders[0]
        assert entry.ready_at == first_ready
        assert entry.preparation_time_seconds == 420

        clock.advance(minutes=3)
        data = update_order_status(data, order.id, "cooking", clock())
        data = update_order_status(data, order.id, "ready", clock())
        entry = data.kitchen_orders[0]
        assert entry.status == "ready"
        assert entry.ready_at == first_ready
        assert entry.preparation_time_seconds == 420

    def test_unknown_status_rejected(self, open_day, one_pad_thai, clock):
        data, order = place_order(open_day, one_pad_thai, "qr", clock())
        with pytest.raises(ValidationError):
            update_order_status(data, order.id, "served", clock())

    def test_complete_removes_entry(self, open_day, one_pad_thai, clock):
        data, order = place_order(open_day, one_pad_thai, "qr", clock())
        data = complete_order(data, order.id)

        assert data.kitchen_orders == ()
        assert data.find_order(order.id) is not None
        assert complete_order(data, order.id) is data


class TestCashReceived:
    @pytest.mark.parametrize("raw", ["abc", "1" * 30])
    def test_unusable_cash_received(self, open_day, one_pad_thai, clock, raw):
        with pytest.raises(ValidationError):
            place_order(open_day, one_pad_thai, "cash", clock(), cash_received=raw)
