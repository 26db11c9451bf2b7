"""The till's command surface: every UI action goes through ``Register``."""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Awaitable, Callable, Literal

from till.config import ADMIN_PASSWORD, MAX_SHIFTS_PER_DAY, TAX_RATE
from till.drawer import DrawerError, kick_drawer
from till.exceptions import NoOpenShift, PasswordMismatch, ValidationError
from till.ledger import LedgerStore
from till.menu import MenuCatalog
from till.models import DailyData, MenuItem, Order, PaymentMethod, Shift, ShiftSummary, ShopSettings
from till.money import format_baht, local_now, parse_amount
from till.notifications import Notifier
from till.orders import Cart, cancel_bill, change_due, complete_order, place_order, update_order_status
from till.persistence import LocalStorage
from till.remote import RemoteClient
from till.reports import DailySummary, daily_summary
from till.shifts import (
    compute_shift_summary,
    end_shift,
    record_manual_drawer_open,
    record_paid_in_out,
    shifts_for_day,
    start_shift,
)
from till.sync import SyncReconciler, SyncReport

logger = logging.getLogger(__name__)

Confirm = Callable[[str, str], Awaitable[bool]]


class Register:
    """
    Wires the ledger store, menu catalog, cart, sync reconciler and drawer.

    Ledger mutations are synchronous: each one produces and persists a new
    snapshot before returning and only *requests* a sync; the scheduler in
    the UI drains that request. Validation rejections become ``warning``
    notifications and leave state untouched.
    """

    def __init__(
        self,
        storage: LocalStorage | None = None,
        client: RemoteClient | None = None,
        notifier: Notifier | None = None,
        clock: Callable[[], datetime] = local_now,
        drawer: Callable[[], None] = kick_drawer,
        vat_rate: Decimal = TAX_RATE,
        max_shifts_per_day: int = MAX_SHIFTS_PER_DAY,
    ) -> None:
        self.storage = storage or LocalStorage()
        self.client = client or RemoteClient()
        self.notifier = notifier or Notifier()
        self.store = LedgerStore(self.storage, clock)
        self.catalog = MenuCatalog(self.storage, self.client, self.notifier, self.store.log_action, clock)
        self.reconciler = SyncReconciler(self.store, self.client)
        self.cart = Cart()
        self.settings = ShopSettings()
        self.is_admin = False
        self.offline_images: dict[str, str | None] = {"logo": None, "promo": None}
        self.vat_rate = vat_rate
        self.max_shifts_per_day = max_shifts_per_day
        self._drawer = drawer
        self._admin_password = ADMIN_PASSWORD

    def load(self) -> DailyData:
        data = self.store.initialize_for_today()
        self.settings = self.storage.load_settings()
        self._admin_password = self.storage.load_admin_password() or ADMIN_PASSWORD
        self.catalog.load_favorites()
        for kind in self.offline_images:
            self.offline_images[kind] = self.storage.load_offline_image(kind)
        self.cart.clear(self.settings.is_vat_default_enabled)
        return data

    @property
    def snapshot(self) -> DailyData:
        return self.store.snapshot

    def _now(self) -> datetime:
        return self.store.clock()

    def _reject(self, exc: ValidationError) -> None:
        self.notifier.notify(str(exc), "warning")

    def _apply_returning(self, command: Callable[[DailyData], tuple[DailyData, Any]]) -> Any:
        result: list[Any] = []

        def reducer(data: DailyData) -> DailyData:
            data, value = command(data)
            result.append(value)
            return data

        self.store.apply(reducer)
        return result[0]

    def _open_drawer(self) -> None:
        try:
            self._drawer()
        except DrawerError as exc:
            self.notifier.notify(str(exc), "warning")

    # Admin and settings.

    def login(self, password: str) -> bool:
        if password != self._admin_password:
            self._reject(PasswordMismatch("Incorrect admin password"))
            return False
        self.is_admin = True
        self.store.log_action("Admin logged in")
        return True

    def logout(self) -> None:
        if self.is_admin:
            self.is_admin = False
            self.store.log_action("Admin logged out")

    def change_password(self, old: str, new: str, confirm: str) -> bool:
        try:
            if old != self._admin_password:
                raise PasswordMismatch("Current password is incorrect")
            if not new:
                raise ValidationError("New password cannot be empty")
            if new != confirm:
                raise PasswordMismatch("New passwords do not match")
        except ValidationError as exc:
            self._reject(exc)
            return False
        self._admin_password = new
        self.storage.save_admin_password(new)
        self.store.log_action("Admin password changed")
        self.notifier.notify("Password changed", "success")
        return True

    def save_settings(self, settings: ShopSettings) -> None:
        self.settings = settings
        self.storage.save_settings(settings)
        self.notifier.notify("Shop settings saved", "success")

    def set_offline_image(self, kind: Literal["logo", "promo"], data_url: str | None) -> None:
        self.storage.save_offline_image(kind, data_url)
        self.offline_images[kind] = data_url

    # Shifts.

    def todays_shifts(self) -> list[Shift]:
        return shifts_for_day(self.store.shift_history, self.store.today())

    def can_start_shift(self) -> bool:
        return self.snapshot.open_shift is None and len(self.todays_shifts()) < self.max_shifts_per_day

    def shift_summary(self) -> ShiftSummary | None:
        shift = self.snapshot.open_shift
        if shift is None:
            return None
        return compute_shift_summary(shift, self.snapshot.completed_orders)

    def start_shift(self, opening_float: Decimal | int | str) -> Shift | None:
        now = self._now()
        history = self.store.shift_history
        try:
            data = self.store.apply(
                lambda d: start_shift(d, history, opening_float, now, self.max_shifts_per_day)
            )
        except ValidationError as exc:
            self._reject(exc)
            return None
        return data.current_shift

    def record_paid_in_out(
        self,
        kind: Literal["PAID_IN", "PAID_OUT"],
        amount: Decimal | int | str,
        description: str,
    ) -> bool:
        now = self._now()
        try:
            self.store.apply(lambda d: record_paid_in_out(d, kind, amount, description, now))
        except ValidationError as exc:
            self._reject(exc)
            return False
        self._open_drawer()
        return True

    def record_manual_drawer_open(self, description: str) -> bool:
        now = self._now()
        try:
            self.store.apply(lambda d: record_manual_drawer_open(d, description, now))
        except NoOpenShift:
            self.notifier.notify("Cannot open the drawer: start a shift first", "warning")
            return False
        self._open_drawer()
        return True

    def end_shift(self, counted: Decimal | int | str, next_shift_float: Decimal | int | str) -> Shift | None:
        """Close the open shift. Callers obtain user confirmation first."""
        now = self._now()
        try:
            data, closed = end_shift(self.snapshot, counted, next_shift_float, now)
        except ValidationError as exc:
            self._reject(exc)
            return None
        # The closed shift reaches history before the day snapshot drops it.
        self.store.archive_shift(closed)
        self.store.apply(lambda current: data)
        self.notifier.notify(
            f"Shift {closed.id} closed. Over/short {format_baht(closed.cash_over_short)}",
            "success",
        )
        return closed

    async def confirm_and_end_shift(
        self,
        counted: Decimal | int | str,
        next_shift_float: Decimal | int | str,
        confirm: Confirm,
    ) -> Shift | None:
        summary = self.shift_summary()
        if summary is None:
            self._reject(NoOpenShift())
            return None
        try:
            over_short = parse_amount(counted) - summary.expected_cash_in_drawer
        except ValidationError as exc:
            self._reject(exc)
            return None
        message = (
            f"Expected {format_baht(summary.expected_cash_in_drawer)}, counted {format_baht(counted)} "
            f"(over/short {format_baht(over_short)}). Closing a shift cannot be undone."
        )
        if not await confirm("Close shift?", message):
            return None
        return self.end_shift(counted, next_shift_float)

    # Orders.

    def place_order(self, payment_method: PaymentMethod, cash_received: Decimal | None = None) -> Order | None:
        now = self._now()
        lines = list(self.cart.lines)
        try:
            order = self._apply_returning(
                lambda d: place_order(
                    d,
                    lines,
                    payment_method,
                    now,
                    discount=self.cart.discount,
                    vat_enabled=self.cart.vat_enabled,
                    vat_rate=self.vat_rate,
                    cash_received=cash_received,
                )
            )
        except ValidationError as exc:
            self._reject(exc)
            return None

        self.cart.clear(self.settings.is_vat_default_enabled)
        self.store.request_sync()
        if order.payment_method == "cash":
            self._open_drawer()
            change = change_due(order, cash_received)
            self.notifier.notify(f"Bill #{order.id} saved. Change {format_baht(change)}", "success")
        else:
            self.notifier.notify(f"Bill #{order.id} saved", "success")
        return order

    def resolve_order_id(self, text: str) -> str:
        """Accept a full id or a bare sequence number for today's bills."""
        text = text.strip()
        if text.isdigit():
            return f"{self.store.today()}-{int(text):04d}"
        return text

    def cancel_bill(self, order_id: str) -> Order | None:
        if not self.is_admin:
            self.notifier.notify("Admin login required to cancel a bill", "warning")
            return None
        now = self._now()
        try:
            reversal = self._apply_returning(lambda d: cancel_bill(d, order_id, now, is_admin=True))
        except ValidationError as exc:
            self._reject(exc)
            return None
        if reversal is None:
            self.notifier.notify(f"Bill #{order_id} cannot be cancelled", "info")
            return None
        self.store.request_sync()
        self.notifier.notify(f"Bill #{order_id} cancelled (reversal #{reversal.id})", "success")
        return reversal

    async def confirm_and_cancel_bill(self, order_id: str, confirm: Confirm) -> Order | None:
        order = self.snapshot.find_order(order_id)
        if order is None:
            self.notifier.notify(f"Bill #{order_id} not found", "warning")
            return None
        message = f"Cancel bill #{order.id} for {format_baht(order.total)}? A reversal bill will be recorded."
        if not await confirm("Cancel bill?", message):
            return None
        return self.cancel_bill(order_id)

    def update_order_status(self, order_id: str, status: Literal["cooking", "ready"]) -> None:
        now = self._now()
        self.store.apply(lambda d: update_order_status(d, order_id, status, now))

    def complete_order(self, order_id: str) -> None:
        self.store.apply(lambda d: complete_order(d, order_id))

    def daily_summary(self) -> DailySummary:
        return daily_summary(self.snapshot)

    # Sync.

    def request_sync(self) -> None:
        self.store.request_sync()

    async def sync_orders(self) -> SyncReport:
        return await self.reconciler.reconcile()

    async def drain_sync_requests(self) -> SyncReport | None:
        """Run one sync pass if one was requested; a busy reconciler keeps the request queued."""
        if self.reconciler.is_running or not self.store.take_sync_request():
            return None
        return await self.sync_orders()

    # Menu.

    async def fetch_menu(self, force: bool = False) -> bool:
        ok = await self.catalog.fetch(force)
        if self.catalog.error:
            self.notifier.notify(self.catalog.error, "error" if not ok else "warning")
        return ok

    def _require_admin(self) -> bool:
        if not self.is_admin:
            self.notifier.notify("Admin login required", "warning")
        return self.is_admin

    async def save_menu_item(self, item: MenuItem) -> MenuItem | None:
        if not self._require_admin():
            return None
        try:
            return await self.catalog.save_item(item)
        except ValidationError as exc:
            self._reject(exc)
            return None

    async def delete_menu_item(self, item_id: int) -> bool:
        if not self._require_admin():
            return False
        return await self.catalog.delete_item(item_id)

    async def add_category(self, name: str) -> bool:
        if not self._require_admin():
            return False
        try:
            return await self.catalog.add_category(name)
        except ValidationError as exc:
            self._reject(exc)
            return False

    async def delete_category(self, name: str) -> bool:
        if not self._require_admin():
            return False
        try:
            return await self.catalog.delete_category(name)
        except ValidationError as exc:
            self._reject(exc)
            return False

    def add_to_cart(self, item: MenuItem) -> None:
        self.cart.add(item)

    def set_discount(self, discount: str) -> None:
        self.cart.discount = discount.strip()

    def toggle_vat(self) -> bool:
        self.cart.vat_enabled = not self.cart.vat_enabled
        return self.cart.vat_enabled
