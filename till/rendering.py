"""Rich text rendering helpers for the till panes."""

from __future__ import annotations

from typing import Sequence

from rich.text import Text

from till.models import CartLine, CartTotals, KitchenOrder, Order, Shift, ShiftSummary
from till.money import format_baht
from till.reports import DailySummary


def badge_style(tag: str) -> str:
    """Return a consistent badge style for payment and sync tags."""
    if tag in {"QR", "SYNCED"}:
        return "bold #ffffff on #2f6db5"
    if tag in {"FAILED", "VOID"}:
        return "bold #ffffff on #b23a48"
    if tag == "PENDING":
        return "bold #1f1a0b on #e0b341"
    return "bold #0b1f0f on #5fbf72"


def _badge(text: Text, tag: str) -> None:
    text.append(f" {tag} ", style=badge_style(tag))


def format_cart_line(line: CartLine) -> Text:
    text = Text()
    text.append(f"{line.quantity} x {line.item.name}")
    text.append(f"  {format_baht(line.line_total)}", style="bold")
    return text


def format_totals(totals: CartTotals, discount: str, vat_enabled: bool) -> Text:
    text = Text()
    text.append(f"Subtotal  {format_baht(totals.subtotal)}\n")
    if totals.discount_value:
        text.append(f"Discount ({discount})  -{format_baht(totals.discount_value)}\n")
    if vat_enabled:
        text.append(f"VAT  {format_baht(totals.tax)}\n")
    text.append(f"Total  {format_baht(totals.total)}", style="bold")
    return text


def format_order_row(order: Order) -> Text:
    text = Text()
    text.append(f"#{order.id} ")
    _badge(text, order.payment_method.upper())
    if order.status == "cancelled":
        text.append(" ")
        _badge(text, "VOID")
    text.append(f" {format_baht(order.total)} ")
    _badge(text, order.sync_status.upper())
    if order.reversal_of:
        text.append(f" reverses #{order.reversal_of}", style="dim")
    return text


def format_kitchen_queue(entries: Sequence[KitchenOrder]) -> Text:
    if not entries:
        return Text("(kitchen queue empty)", style="dim")
    text = Text()
    for idx, entry in enumerate(entries):
        if idx > 0:
            text.append("\n")
        items = ", ".join(f"{line.quantity}x {line.item.name}" for line in entry.order.items)
        style = "bold green" if entry.status == "ready" else ""
        text.append(f"#{entry.id[-4:]} {entry.status.upper()} ", style=style)
        text.append(items)
    return text


def format_shift_panel(shift: Shift | None, summary: ShiftSummary | None, shifts_used: int, max_shifts: int) -> Text:
    text = Text()
    if shift is None or summary is None:
        if shifts_used >= max_shifts:
            text.append("All shifts for today are used.", style="bold")
        else:
            text.append(f"No open shift. Press O to open shift {shifts_used + 1}.", style="bold")
        return text

    text.append(f"Shift {shift.id}", style="bold")
    text.append(f"  since {shift.start_time:%H:%M}\n")
    text.append(f"Opening float   {format_baht(shift.opening_float_amount)}\n")
    text.append(f"Cash sales      {format_baht(summary.total_cash_sales)}\n")
    text.append(f"QR sales        {format_baht(summary.total_qr_sales)}\n")
    text.append(f"Paid in         {format_baht(summary.total_paid_in)}\n")
    text.append(f"Paid out        {format_baht(summary.total_paid_out)}\n")
    if summary.total_cancellations_count:
        text.append(
            f"Cancelled       {summary.total_cancellations_count} / {format_baht(summary.total_cancellations_value)}\n"
        )
    text.append(f"Expected cash   {format_baht(summary.expected_cash_in_drawer)}", style="bold")
    return text


def format_daily_summary(summary: DailySummary) -> Text:
    text = Text()
    text.append(f"Bills {summary.bill_count}  ")
    text.append(f"Gross {format_baht(summary.gross_sales)}  ")
    text.append(f"Void {summary.cancellations_count}/{format_baht(summary.cancellations_total)}  ")
    text.append(f"Net {format_baht(summary.net_sales)}", style="bold")
    return text
