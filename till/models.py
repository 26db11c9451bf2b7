"""Domain models for the till ledger."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

PaymentMethod = Literal["cash", "qr"]
DrawerMethod = Literal["cash", "qr", "none"]
OrderStatus = Literal["completed", "cancelled"]
SyncStatus = Literal["pending", "synced", "failed"]
KitchenStatus = Literal["cooking", "ready"]
ShiftStatus = Literal["OPEN", "CLOSED"]
ActivityType = Literal[
    "SHIFT_START",
    "SALE",
    "REFUND",
    "PAID_IN",
    "PAID_OUT",
    "SHIFT_END",
    "MANUAL_OPEN",
]

PAYMENT_METHODS: tuple[str, ...] = ("cash", "qr")


@dataclass(frozen=True)
class MenuItem:
    """A sellable menu item."""

    id: int
    name: str
    price: Decimal
    image: str = ""
    category: str = ""


@dataclass(frozen=True)
class CartLine:
    """A menu item snapshot plus quantity."""

    item: MenuItem
    quantity: int

    @property
    def line_total(self) -> Decimal:
        return self.item.price * self.quantity


@dataclass(frozen=True)
class Order:
    """Financial record of a bill. Only ``status``/``sync_status`` ever change."""

    id: str
    items: tuple[CartLine, ...]
    subtotal: Decimal
    tax: Decimal
    discount_value: Decimal
    total: Decimal
    timestamp: datetime
    payment_method: PaymentMethod
    vat_rate: Decimal
    status: OrderStatus = "completed"
    sync_status: SyncStatus = "pending"
    cancelled_at: datetime | None = None
    reversal_of: str | None = None

    @property
    def is_reversal(self) -> bool:
        return self.reversal_of is not None


@dataclass(frozen=True)
class KitchenOrder:
    """Kitchen-queue projection of an order."""

    order: Order
    status: KitchenStatus = "cooking"
    ready_at: datetime | None = None
    preparation_time_seconds: int | None = None

    @property
    def id(self) -> str:
        return self.order.id


@dataclass(frozen=True)
class CashDrawerActivity:
    """One append-only cash drawer movement within a shift."""

    id: str
    timestamp: datetime
    type: ActivityType
    amount: Decimal
    payment_method: DrawerMethod
    description: str
    order_id: str | None = None


@dataclass(frozen=True)
class ShiftSummary:
    total_sales: Decimal
    total_cash_sales: Decimal
    total_qr_sales: Decimal
    total_paid_in: Decimal
    total_paid_out: Decimal
    total_cancellations_value: Decimal
    total_cancellations_count: int
    expected_cash_in_drawer: Decimal


@dataclass(frozen=True)
class Shift:
    """A cash drawer work session. ``OPEN`` until closed, never reopened."""

    id: str
    status: ShiftStatus
    start_time: datetime
    opening_float_amount: Decimal
    activities: tuple[CashDrawerActivity, ...] = ()
    end_time: datetime | None = None
    closing_cash_counted: Decimal | None = None
    cash_over_short: Decimal | None = None
    cash_for_next_shift: Decimal | None = None
    cash_to_deposit: Decimal | None = None
    summary: ShiftSummary | None = None

    @property
    def is_open(self) -> bool:
        return self.status == "OPEN"

    @property
    def number(self) -> int:
        return int(self.id.rsplit("-S", 1)[1])

    @property
    def expected_cash_in_drawer(self) -> Decimal | None:
        return self.summary.expected_cash_in_drawer if self.summary else None


@dataclass(frozen=True)
class LogEntry:
    timestamp: datetime
    action: str


@dataclass(frozen=True)
class DailyData:
    """Aggregate root for one calendar day."""

    date: str
    completed_orders: tuple[Order, ...] = ()
    kitchen_orders: tuple[KitchenOrder, ...] = ()
    activity_log: tuple[LogEntry, ...] = ()
    current_shift: Shift | None = None

    def find_order(self, order_id: str) -> Order | None:
        for order in self.completed_orders:
            if order.id == order_id:
                return order
        return None

    @property
    def open_shift(self) -> Shift | None:
        if self.current_shift is not None and self.current_shift.is_open:
            return self.current_shift
        return None


@dataclass(frozen=True)
class MenuCache:
    timestamp: datetime
    menu_items: tuple[MenuItem, ...]
    categories: tuple[str, ...]


@dataclass(frozen=True)
class ShopSettings:
    """Shop-level settings edited from the settings screen."""

    shop_name: str = "My Shop"
    address: str = ""
    phone: str = ""
    tax_id: str = ""
    is_vat_default_enabled: bool = False
    logo_url: str = ""
    promo_url: str = ""
    header_text: str = ""
    footer_text: str = ""
    logo_size_percent: int = 80
    promo_size_percent: int = 100
    receipt_top_margin: int = 5
    receipt_bottom_margin: int = 5
    receipt_line_spacing: float = 1.2
    interaction_mode: Literal["desktop", "touch"] = "desktop"
    is_keyboard_nav_enabled: bool = False

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> ShopSettings:
        """Merge stored values over the defaults, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in raw.items() if key in known})


@dataclass
class CartTotals:
    subtotal: Decimal
    discount_value: Decimal
    tax: Decimal
    total: Decimal
    vat_rate: Decimal = field(default=Decimal("0"))
