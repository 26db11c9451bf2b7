"""Main Textual app class."""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation

from rich.text import Text
from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.events import Key
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.widgets import Header, Static

from till.config import SYNC_DRAIN_SECONDS, SYNC_INTERVAL_SECONDS
from till.confirm_modal import ConfirmModal
from till.drawer import check_drawer_dependencies
from till.models import DailyData, MenuItem
from till.notifications import Notification
from till.prompt_modal import PromptModal
from till.register import Register
from till.rendering import (
    format_cart_line,
    format_daily_summary,
    format_kitchen_queue,
    format_order_row,
    format_shift_panel,
    format_totals,
)

logger = logging.getLogger(__name__)

_TEXTUAL_SEVERITY = {
    "success": "information",
    "info": "information",
    "warning": "warning",
    "error": "error",
}

HELP_TEXT = (
    "/ search (* favorite)  j/k select  +/- qty  d remove  x discount  v VAT  c cash  p QR\n"
    "o open shift  i paid in  u paid out  m drawer  e end shift\n"
    "r ready  f picked up  b cancel bill  a admin  y sync  ctrl+r reload menu"
)


class PosApp(App):
    """A Textual till: menu search, cart, shift drawer and kitchen queue."""

    TITLE = "Till"
    SUB_TITLE = "Point of Sale"

    CSS = """
    Screen {
        layout: vertical;
    }

    #main-layout {
        height: 1fr;
    }

    #menu-pane {
        width: 2fr;
        border: round $secondary;
        padding: 1;
    }

    #cart-pane {
        width: 2fr;
        border: round $primary;
        padding: 1;
    }

    #shift-pane {
        width: 3fr;
        border: round $primary;
        padding: 1;
    }

    #search-bar {
        border: heavy $secondary;
        padding: 0 1;
        margin-bottom: 1;
        height: 4;
    }

    #results, #cart-list {
        height: 1fr;
        border: tall $surface;
        padding: 0 1;
    }

    #cart-totals {
        margin-top: 1;
        height: auto;
    }

    #kitchen, #recent-bills {
        height: 1fr;
        border: tall $surface;
        padding: 0 1;
    }

    #status-bar {
        height: auto;
        padding: 0 1;
        background: $panel;
    }

    .pane-title {
        text-style: bold;
        margin-bottom: 1;
    }
    """

    input_state = reactive("normal")
    search_query = reactive("")
    selected_index = reactive(0)
    category_index = reactive(0)
    cart_selected_index = reactive(None)

    BINDINGS = [
        ("tab", "cycle_results(1)", "Next result"),
        ("up", "cycle_results(-1)", "Previous result"),
        ("down", "cycle_results(1)", "Next result"),
        ("left", "cycle_category(-1)", "Previous category"),
        ("right", "cycle_category(1)", "Next category"),
        ("enter", "register_selected", "Add to cart"),
        ("backspace", "backspace_query", "Delete query char"),
        Binding("ctrl+r", "reload_menu", "Reload menu", priority=True),
        ("ctrl+c", "cancel_active_mode", "Exit search"),
        ("ctrl+q", "quit", "Quit"),
    ]

    def __init__(self, register: Register | None = None) -> None:
        super().__init__()
        self.register = register or Register()
        self.register.notifier.sink = self._show_notification
        self.system_status = ""

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="main-layout"):
            with Vertical(id="menu-pane"):
                yield Static(id="search-bar")
                yield Static(id="results")
            with Vertical(id="cart-pane"):
                yield Static("Cart", classes="pane-title")
                yield Static("(cart is empty)", id="cart-list")
                yield Static(id="cart-totals")
            with Vertical(id="shift-pane"):
                yield Static(id="shift-panel")
                yield Static("Kitchen", classes="pane-title")
                yield Static(id="kitchen")
                yield Static("Recent bills", classes="pane-title")
                yield Static(id="recent-bills")
        yield Static(id="status-bar")

    def on_mount(self) -> None:
        self.register.load()
        self.register.store.subscribe(self._on_ledger_change)
        _, msg = check_drawer_dependencies()
        self.system_status = msg
        logger.info("on_mount drawer_status=%r", msg)
        self.run_worker(self._load_menu(), group="menu", exit_on_error=False)
        self.register.request_sync()
        self.set_interval(SYNC_DRAIN_SECONDS, self._drain_sync_queue)
        self.set_interval(SYNC_INTERVAL_SECONDS, self.register.request_sync)
        self._refresh_all()

    def _show_notification(self, notification: Notification) -> None:
        self.notify(
            notification.message,
            title=notification.severity.title(),
            severity=_TEXTUAL_SEVERITY[notification.severity],
            timeout=5,
        )

    def _on_ledger_change(self, data: DailyData) -> None:
        self._refresh_all()

    async def _load_menu(self, force: bool = False) -> None:
        await self.register.fetch_menu(force)
        self._refresh_search()

    def _drain_sync_queue(self) -> None:
        if self.register.reconciler.is_running or not self.register.store.sync_requested:
            return
        self.run_worker(self.register.drain_sync_requests(), group="sync", exit_on_error=False)

    async def _confirm(self, title: str, message: str) -> bool:
        return bool(await self.push_screen_wait(ConfirmModal(title, message)))

    async def _ask(self, title: str, message: str, kind: str = "amount", allow_empty: bool = False) -> str | None:
        return await self.push_screen_wait(PromptModal(title, message, kind=kind, allow_empty=allow_empty))

    async def _ask_amount(self, title: str, message: str) -> Decimal | None:
        raw = await self._ask(title, message)
        if raw is None:
            return None
        try:
            return Decimal(raw)
        except InvalidOperation:
            self.register.notifier.notify(f"'{raw}' is not a valid amount", "warning")
            return None

    # Keyboard.

    def on_key(self, event: Key) -> None:
        if isinstance(self.screen, ModalScreen):
            return
        if not event.is_printable or not event.character or len(event.character) != 1:
            return

        if self.input_state == "search":
            if event.character == "*":
                self._toggle_selected_favorite()
                event.stop()
                return
            self.search_query += event.character
            self.selected_index = 0
            self._refresh_search()
            event.stop()
            return

        handler = self._normal_keys().get(event.character.lower())
        if handler is None:
            return
        handler()
        event.stop()

    def _normal_keys(self) -> dict:
        return {
            "/": self._enter_search,
            "j": lambda: self._move_cart_selection(1),
            "k": lambda: self._move_cart_selection(-1),
            "+": lambda: self._change_selected_quantity(1),
            "-": lambda: self._change_selected_quantity(-1),
            "d": self._remove_selected_line,
            "x": self.prompt_discount,
            "v": self._toggle_vat,
            "c": self.pay_cash,
            "p": self._pay_qr,
            "o": self.open_shift,
            "i": lambda: self.paid_in_out("PAID_IN"),
            "u": lambda: self.paid_in_out("PAID_OUT"),
            "m": self.manual_drawer_open,
            "e": self.close_shift,
            "r": self._mark_next_ready,
            "f": self._complete_next_ready,
            "b": self.cancel_bill,
            "a": self.toggle_admin,
            "y": self.register.request_sync,
        }

    def _enter_search(self) -> None:
        self.input_state = "search"
        self.search_query = ""
        self.selected_index = 0
        self._refresh_search()

    def action_cancel_active_mode(self) -> None:
        if isinstance(self.screen, ModalScreen) or self.input_state == "normal":
            return
        self.input_state = "normal"
        self.search_query = ""
        self.selected_index = 0
        self._refresh_search()

    def action_cycle_results(self, delta: int) -> None:
        if isinstance(self.screen, ModalScreen) or self.input_state != "search":
            return
        results = self._filtered_results()
        if not results:
            self.selected_index = 0
        else:
            self.selected_index = (self.selected_index + delta) % len(results)
        self._refresh_results(results)

    def action_cycle_category(self, delta: int) -> None:
        if isinstance(self.screen, ModalScreen) or self.input_state != "search" or self.search_query:
            return
        categories = self.register.catalog.nav_categories
        self.category_index = (self.category_index + delta) % len(categories)
        self.selected_index = 0
        self._refresh_search()

    def action_register_selected(self) -> None:
        if isinstance(self.screen, ModalScreen) or self.input_state != "search":
            return
        item = self._selected_result()
        if item is None:
            return
        self.register.add_to_cart(item)
        self.cart_selected_index = next(
            idx for idx, line in enumerate(self.register.cart.lines) if line.item.id == item.id
        )
        self._refresh_cart()

    def action_backspace_query(self) -> None:
        if isinstance(self.screen, ModalScreen) or self.input_state != "search" or not self.search_query:
            return
        self.search_query = self.search_query[:-1]
        self.selected_index = 0
        self._refresh_search()

    @work(exclusive=True, group="menu")
    async def action_reload_menu(self) -> None:
        await self._load_menu(force=True)

    # Cart.

    def _move_cart_selection(self, delta: int) -> None:
        lines = self.register.cart.lines
        if not lines:
            return
        if self.cart_selected_index is None:
            self.cart_selected_index = 0 if delta > 0 else len(lines) - 1
        else:
            self.cart_selected_index = (self.cart_selected_index + delta) % len(lines)
        self._refresh_cart()

    def _selected_line_item_id(self) -> int | None:
        lines = self.register.cart.lines
        idx = self.cart_selected_index
        if idx is None or not (0 <= idx < len(lines)):
            return None
        return lines[idx].item.id

    def _change_selected_quantity(self, delta: int) -> None:
        item_id = self._selected_line_item_id()
        if item_id is None:
            return
        self.register.cart.update_quantity(item_id, delta)
        self._refresh_cart()

    def _remove_selected_line(self) -> None:
        item_id = self._selected_line_item_id()
        if item_id is None:
            return
        self.register.cart.remove(item_id)
        self._refresh_cart()

    def _toggle_selected_favorite(self) -> None:
        item = self._selected_result()
        if item is None:
            return
        is_favorite = self.register.catalog.toggle_favorite(item.id)
        self.system_status = "Added to favorites" if is_favorite else "Removed from favorites"
        self._refresh_search()

    def _toggle_vat(self) -> None:
        self.register.toggle_vat()
        self._refresh_cart()

    @work(exclusive=True, group="dialog")
    async def prompt_discount(self) -> None:
        raw = await self._ask("Discount", "Amount (e.g. 20) or percentage (e.g. 10%). Empty clears.", "text", True)
        if raw is None:
            return
        self.register.set_discount(raw)
        self._refresh_cart()

    @work(exclusive=True, group="dialog")
    async def pay_cash(self) -> None:
        if not self.register.cart.lines:
            self.register.notifier.notify("Cart is empty", "warning")
            return
        total = self.register.cart.totals(self.register.vat_rate).total
        raw = await self._ask("Cash payment", f"Total {total}. Cash received (empty = exact):", allow_empty=True)
        if raw is None:
            return
        try:
            received = Decimal(raw) if raw else None
        except InvalidOperation:
            self.register.notifier.notify(f"'{raw}' is not a valid amount", "warning")
            return
        if self.register.place_order("cash", received):
            self.cart_selected_index = None
            self._refresh_cart()

    def _pay_qr(self) -> None:
        if self.register.place_order("qr"):
            self.cart_selected_index = None
            self._refresh_cart()

    # Shift and drawer.

    @work(exclusive=True, group="dialog")
    async def open_shift(self) -> None:
        if not self.register.can_start_shift():
            self.register.notifier.notify("A shift is already open or today's shifts are used up", "warning")
            return
        amount = await self._ask_amount("Open shift", "Opening float in the drawer:")
        if amount is not None:
            self.register.start_shift(amount)

    @work(exclusive=True, group="dialog")
    async def paid_in_out(self, kind: str) -> None:
        label = "Paid in" if kind == "PAID_IN" else "Paid out"
        amount = await self._ask_amount(label, "Amount:")
        if amount is None:
            return
        description = await self._ask(label, "Reason:", "text")
        if description is None:
            return
        self.register.record_paid_in_out(kind, amount, description)

    @work(exclusive=True, group="dialog")
    async def manual_drawer_open(self) -> None:
        if self.register.snapshot.open_shift is None:
            self.register.record_manual_drawer_open("")
            return
        description = await self._ask("Open drawer", "Reason for opening the drawer:", "text")
        if description is not None:
            self.register.record_manual_drawer_open(description)

    @work(exclusive=True, group="dialog")
    async def close_shift(self) -> None:
        if self.register.snapshot.open_shift is None:
            self.register.notifier.notify("No shift is open", "warning")
            return
        counted = await self._ask_amount("Close shift", "Cash counted in the drawer:")
        if counted is None:
            return
        next_float = await self._ask_amount("Close shift", "Cash left for the next shift:")
        if next_float is None:
            return
        await self.register.confirm_and_end_shift(counted, next_float, self._confirm)

    # Kitchen.

    def _mark_next_ready(self) -> None:
        for entry in self.register.snapshot.kitchen_orders:
            if entry.status == "cooking":
                self.register.update_order_status(entry.id, "ready")
                return

    def _complete_next_ready(self) -> None:
        for entry in self.register.snapshot.kitchen_orders:
            if entry.status == "ready":
                self.register.complete_order(entry.id)
                return

    # Admin.

    @work(exclusive=True, group="dialog")
    async def cancel_bill(self) -> None:
        if not self.register.is_admin:
            self.register.notifier.notify("Admin login required to cancel a bill", "warning")
            return
        raw = await self._ask("Cancel bill", "Bill number (e.g. 12 or 20240101-0012):", "text")
        if raw is None:
            return
        await self.register.confirm_and_cancel_bill(self.register.resolve_order_id(raw), self._confirm)

    @work(exclusive=True, group="dialog")
    async def toggle_admin(self) -> None:
        if self.register.is_admin:
            self.register.logout()
            self._refresh_search()
            return
        password = await self._ask("Admin login", "Password:", "secret")
        if password is not None and self.register.login(password):
            self.system_status = "Admin mode"
            self._refresh_search()

    # Rendering.

    def _filtered_results(self) -> list[MenuItem]:
        catalog = self.register.catalog
        categories = catalog.nav_categories
        category = categories[self.category_index % len(categories)]
        return catalog.filtered(category, self.search_query)

    def _selected_result(self) -> MenuItem | None:
        results = self._filtered_results()
        if not results:
            return None
        return results[self.selected_index % len(results)]

    def _refresh_all(self) -> None:
        self._refresh_cart()
        self._refresh_search()
        self._refresh_ledger()

    def _visible_rows(self, widget: Static) -> int:
        height = widget.size.height
        if height <= 0:
            return 8
        return max(1, height)

    def _window_bounds(self, total: int, rows: int, selected: int | None) -> tuple[int, int]:
        if total <= 0:
            return (0, 0)

        rows = max(1, rows)
        if total <= rows:
            return (0, total)

        if selected is None:
            start = 0
        else:
            half = rows // 2
            start = selected - half
            start = max(0, start)
            start = min(start, total - rows)

        return (start, start + rows)

    def _refresh_cart(self) -> None:
        try:
            cart_widget = self.query_one("#cart-list", Static)
            totals_widget = self.query_one("#cart-totals", Static)
        except NoMatches:
            return
        cart = self.register.cart
        totals_widget.update(format_totals(cart.totals(self.register.vat_rate), cart.discount, cart.vat_enabled))
        if not cart.lines:
            self.cart_selected_index = None
            cart_widget.update("(cart is empty)")
            return

        if self.cart_selected_index is not None and self.cart_selected_index >= len(cart.lines):
            self.cart_selected_index = len(cart.lines) - 1

        start, end = self._window_bounds(len(cart.lines), self._visible_rows(cart_widget), self.cart_selected_index)
        lines = Text()
        if start > 0:
            lines.append("⋮\n", style="dim")
        for idx in range(start, end):
            if idx > start:
                lines.append("\n")
            pointer = "➤ " if idx == self.cart_selected_index else "  "
            lines.append(pointer)
            lines.append_text(format_cart_line(cart.lines[idx]))
        if end < len(cart.lines):
            lines.append("\n⋮", style="dim")
        cart_widget.update(lines)

    def _refresh_search(self) -> None:
        self._refresh_search_bar()
        if self.input_state == "normal":
            self._refresh_results([])
            return
        self._refresh_results(self._filtered_results())

    def _refresh_search_bar(self) -> None:
        try:
            bar = self.query_one("#search-bar", Static)
        except NoMatches:
            return
        if self.input_state == "normal":
            status = self.system_status or "Ready"
            admin = "  [admin]" if self.register.is_admin else ""
            menu_error = self.register.catalog.error
            bar.update(f"Press / to search the menu.{admin}\n{menu_error or status}")
            return

        categories = self.register.catalog.nav_categories
        category = categories[self.category_index % len(categories)]
        text = Text()
        text.append(f" {category} ", style="bold #ffffff on #2f6db5")
        text.append(f"  search: {self.search_query}")
        bar.update(text)

    def _refresh_results(self, results: list[MenuItem]) -> None:
        try:
            results_widget = self.query_one("#results", Static)
        except NoMatches:
            return
        if self.input_state == "normal":
            results_widget.update(HELP_TEXT)
            return

        if not results:
            results_widget.update("No results")
            return

        if self.selected_index >= len(results):
            self.selected_index = 0

        start, end = self._window_bounds(len(results), self._visible_rows(results_widget), self.selected_index)
        favorites = self.register.catalog.favorite_ids
        lines = Text()
        if start > 0:
            lines.append("⋮\n", style="dim")
        for idx in range(start, end):
            if idx > start:
                lines.append("\n")
            pointer = "➤ " if idx == self.selected_index else "  "
            star = "★ " if results[idx].id in favorites else ""
            lines.append(f"{pointer}{star}{results[idx].name}  {results[idx].price}")
        if end < len(results):
            lines.append("\n⋮", style="dim")
        results_widget.update(lines)

    def _refresh_ledger(self) -> None:
        if not self.register.store.is_loaded:
            return
        try:
            shift_widget = self.query_one("#shift-panel", Static)
            kitchen_widget = self.query_one("#kitchen", Static)
            bills_widget = self.query_one("#recent-bills", Static)
            status_widget = self.query_one("#status-bar", Static)
        except NoMatches:
            return

        data = self.register.snapshot
        shift_widget.update(
            format_shift_panel(
                data.open_shift,
                self.register.shift_summary(),
                len(self.register.todays_shifts()),
                self.register.max_shifts_per_day,
            )
        )
        kitchen_widget.update(format_kitchen_queue(data.kitchen_orders))

        bills = Text()
        for idx, order in enumerate(data.completed_orders[: self._visible_rows(bills_widget)]):
            if idx > 0:
                bills.append("\n")
            bills.append_text(format_order_row(order))
        bills_widget.update(bills if data.completed_orders else Text("(no bills yet)", style="dim"))

        pending = sum(1 for order in data.completed_orders if order.sync_status != "synced")
        status = format_daily_summary(self.register.daily_summary())
        status.append(f"   unsynced {pending}", style="bold red" if pending else "dim")
        status_widget.update(status)
