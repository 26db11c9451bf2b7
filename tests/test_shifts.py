"""
Tests for the shift lifecycle and cash drawer reconciliation.
"""
from dataclasses import replace
from decimal import Decimal

import pytest

from till.exceptions import NoOpenShift, ShiftAlreadyOpen, ShiftLimitReached, ValidationError
from till.models import CartLine, DailyData
from till.orders import cancel_bill, place_order
from till.shifts import (
    compute_shift_summary,
    end_shift,
    next_shift_id,
    record_manual_drawer_open,
    record_paid_in_out,
    start_shift,
)


def _summary(data):
    return compute_shift_summary(data.current_shift, data.completed_orders)


class TestStartShift:
    def test_opening_float_recorded(self, open_day, clock):
        shift = open_day.current_shift

        assert shift.id == "20240501-S1"
        assert shift.number == 1
        assert shift.status == "OPEN"
        assert shift.start_time == clock()
        assert shift.opening_float_amount == Decimal("1000.00")
        assert [a.type for a in shift.activities] == ["SHIFT_START"]
        assert _summary(open_day).expected_cash_in_drawer == Decimal("1000.00")

    def test_second_open_shift_rejected(self, open_day, clock):
        with pytest.raises(ShiftAlreadyOpen):
            start_shift(open_day, (), Decimal("500"), clock())

    def test_numbering_follows_history(self, open_day, clock):
        first = replace(open_day.current_shift, status="CLOSED")
        data = start_shift(DailyData(date="20240501"), (first,), Decimal("500"), clock())

        assert data.current_shift.id == "20240501-S2"

    def test_daily_limit(self, open_day, clock):
        base = replace(open_day.current_shift, status="CLOSED")
        history = [replace(base, id=f"20240501-S{n}") for n in (3, 2, 1)]

        with pytest.raises(ShiftLimitReached):
            next_shift_id(history, "20240501", max_per_day=3)
        assert next_shift_id(history, "20240502", max_per_day=3) == "20240502-S1"

    def test_negative_float_rejected(self, clock):
        with pytest.raises(ValidationError):
            start_shift(DailyData(date="20240501"), (), Decimal("-1"), clock())


class TestDrawerMovements:
    def test_paid_in_and_out_move_expected_cash(self, open_day, clock):
        data = record_paid_in_out(open_day, "PAID_IN", Decimal("100"), "Change float top-up", clock())
        data = record_paid_in_out(data, "PAID_OUT", Decimal("40"), "Ice", clock())

        summary = _summary(data)
        assert summary.total_paid_in == Decimal("100.00")
        assert summary.total_paid_out == Decimal("40.00")
        assert summary.expected_cash_in_drawer == Decimal("1060.00")

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5")])
    def test_amount_must_be_positive(self, open_day, clock, amount):
        with pytest.raises(ValidationError):
            record_paid_in_out(open_day, "PAID_OUT", amount, "Ice", clock())

    def test_requires_open_shift(self, clock):
        with pytest.raises(NoOpenShift):
            record_paid_in_out(DailyData(date="20240501"), "PAID_IN", Decimal("10"), "x", clock())

    def test_manual_open_has_no_cash_effect(self, open_day, clock):
        data = record_manual_drawer_open(open_day, "Give change", clock())

        activity = data.current_shift.activities[-1]
        assert activity.type == "MANUAL_OPEN"
        assert activity.amount == Decimal("0")
        assert activity.payment_method == "none"
        assert _summary(data).expected_cash_in_drawer == Decimal("1000.00")

    def test_qr_sales_stay_out_of_the_drawer(self, open_day, one_pad_thai, clock):
        data, _ = place_order(open_day, one_pad_thai, "qr", clock())

        summary = _summary(data)
        assert summary.total_sales == Decimal("150.00")
        assert summary.total_qr_sales == Decimal("150.00")
        assert summary.total_cash_sales == Decimal("0")
        assert summary.expected_cash_in_drawer == Decimal("1000.00")


class TestCancellationsInShift:
    def test_cash_cancellation_pays_out(self, open_day, one_pad_thai, clock):
        data, order = place_order(open_day, one_pad_thai, "cash", clock())
        data, _ = cancel_bill(data, order.id, clock(), is_admin=True)

        summary = _summary(data)
        assert summary.total_cancellations_count == 1
        assert summary.total_cancellations_value == Decimal("150.00")
        assert summary.total_paid_out == Decimal("150.00")
        assert summary.expected_cash_in_drawer == Decimal("1000.00")

    def test_qr_cancellation_leaves_drawer_alone(self, open_day, one_pad_thai, clock):
        data, order = place_order(open_day, one_pad_thai, "qr", clock())
        data, _ = cancel_bill(data, order.id, clock(), is_admin=True)

        summary = _summary(data)
        assert summary.total_cancellations_count == 1
        assert summary.total_paid_out == Decimal("0")
        assert summary.expected_cash_in_drawer == Decimal("1000.00")


class TestEndShift:
    def test_full_shift_reconciliation(self, open_day, one_pad_thai, clock):
        data, _ = place_order(open_day, one_pad_thai, "cash", clock())
        assert _summary(data).expected_cash_in_drawer == Decimal("1150.00")

        data = record_paid_in_out(data, "PAID_OUT", Decimal("200"), "Supplies", clock())
        assert _summary(data).expected_cash_in_drawer == Decimal("950.00")

        clock.advance(hours=8)
        data, closed = end_shift(data, Decimal("900"), Decimal("500"), clock())

        assert data.current_shift is None
        assert closed.status == "CLOSED"
        assert closed.end_time == clock()
        assert closed.closing_cash_counted == Decimal("900.00")
        assert closed.cash_over_short == Decimal("-50.00")
        assert closed.cash_for_next_shift == Decimal("500.00")
        assert closed.cash_to_deposit == Decimal("400.00")
        assert closed.expected_cash_in_drawer == Decimal("950.00")
        assert closed.activities[-1].type == "SHIFT_END"
        assert closed.activities[-1].amount == Decimal("900.00")

    def test_closed_shift_is_terminal(self, open_day, clock):
        data, _ = end_shift(open_day, Decimal("1000"), Decimal("0"), clock())

        with pytest.raises(NoOpenShift):
            end_shift(data, Decimal("1000"), Decimal("0"), clock())
        with pytest.raises(NoOpenShift):
            record_paid_in_out(data, "PAID_IN", Decimal("10"), "late", clock())

    def test_negative_count_rejected(self, open_day, clock):
        with pytest.raises(ValidationError):
            end_shift(open_day, Decimal("-1"), Decimal("0"), clock())


class TestUnusableAmounts:
    @pytest.mark.parametrize("raw", ["abc", "1" * 30, "NaN"])
    def test_opening_float(self, clock, raw):
        with pytest.raises(ValidationError):
            start_shift(DailyData(date="20240501"), (), raw, clock())

    def test_paid_in(self, open_day, clock):
        with pytest.raises(ValidationError):
            record_paid_in_out(open_day, "PAID_IN", "NaN", "Float", clock())

    def test_counted_cash(self, open_day, clock):
        with pytest.raises(ValidationError):
            end_shift(open_day, "1" * 30, Decimal("0"), clock())
