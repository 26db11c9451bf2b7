"""JSON codecs for ledger snapshots, shift history and the menu cache.

The same camelCase shape is written to local storage and posted to the
remote backend. Dates are ISO strings on the wire and ``datetime`` values in
memory; amounts are JSON numbers and ``Decimal`` in memory.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from decimal import Decimal
from typing import Any

from till.models import (
    CartLine,
    CashDrawerActivity,
    DailyData,
    KitchenOrder,
    LogEntry,
    MenuCache,
    MenuItem,
    Order,
    Shift,
    ShiftSummary,
    ShopSettings,
)
from till.money import to_money


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _date(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _num(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


def _money(value: Any) -> Decimal | None:
    return to_money(value) if value is not None else None


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _snake(name: str) -> str:
    return "".join(f"_{ch.lower()}" if ch.isupper() else ch for ch in name)


def menu_item_to_dict(item: MenuItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "name": item.name,
        "price": float(item.price),
        "image": item.image,
        "category": item.category,
    }


def menu_item_from_dict(raw: dict[str, Any]) -> MenuItem:
    try:
        price = to_money(raw.get("price") or 0)
    except ArithmeticError:
        price = to_money(0)
    return MenuItem(
        id=int(raw["id"]),
        name=str(raw.get("name", "")),
        price=price,
        image=str(raw.get("image") or ""),
        category=str(raw.get("category") or ""),
    )


def _line_to_dict(line: CartLine) -> dict[str, Any]:
    return {**menu_item_to_dict(line.item), "quantity": line.quantity}


def _line_from_dict(raw: dict[str, Any]) -> CartLine:
    return CartLine(item=menu_item_from_dict(raw), quantity=int(raw["quantity"]))


def order_to_dict(order: Order) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": order.id,
        "items": [_line_to_dict(line) for line in order.items],
        "subtotal": float(order.subtotal),
        "tax": float(order.tax),
        "discountValue": float(order.discount_value),
        "total": float(order.total),
        "timestamp": _iso(order.timestamp),
        "paymentMethod": order.payment_method,
        "vatRate": float(order.vat_rate),
        "status": order.status,
        "syncStatus": order.sync_status,
    }
    if order.cancelled_at is not None:
        data["cancelledAt"] = _iso(order.cancelled_at)
    if order.reversal_of is not None:
        data["reversalOf"] = order.reversal_of
    return data


def order_from_dict(raw: dict[str, Any]) -> Order:
    return Order(
        id=str(raw["id"]),
        items=tuple(_line_from_dict(line) for line in raw.get("items", [])),
        subtotal=to_money(raw["subtotal"]),
        tax=to_money(raw["tax"]),
        discount_value=to_money(raw.get("discountValue", 0)),
        total=to_money(raw["total"]),
        timestamp=_date(raw["timestamp"]),
        payment_method=raw["paymentMethod"],
        vat_rate=Decimal(str(raw.get("vatRate", 0))),
        status=raw.get("status", "completed"),
        # Snapshots written before sync tracking existed were already on the backend.
        sync_status=raw.get("syncStatus") or "synced",
        cancelled_at=_date(raw.get("cancelledAt")),
        reversal_of=raw.get("reversalOf"),
    )


def _kitchen_to_dict(entry: KitchenOrder) -> dict[str, Any]:
    data = order_to_dict(entry.order)
    data["orderStatus"] = entry.order.status
    data["status"] = entry.status
    if entry.ready_at is not None:
        data["readyAt"] = _iso(entry.ready_at)
        data["preparationTimeInSeconds"] = entry.preparation_time_seconds
    return data


def _kitchen_from_dict(raw: dict[str, Any]) -> KitchenOrder:
    order = order_from_dict({**raw, "status": raw.get("orderStatus", "completed")})
    return KitchenOrder(
        order=order,
        status=raw.get("status", "cooking"),
        ready_at=_date(raw.get("readyAt")),
        preparation_time_seconds=raw.get("preparationTimeInSeconds"),
    )


def _activity_to_dict(activity: CashDrawerActivity) -> dict[str, Any]:
    data = {
        "id": activity.id,
        "timestamp": _iso(activity.timestamp),
        "type": activity.type,
        "amount": float(activity.amount),
        "paymentMethod": activity.payment_method,
        "description": activity.description,
    }
    if activity.order_id is not None:
        data["orderId"] = activity.order_id
    return data


def _activity_from_dict(raw: dict[str, Any]) -> CashDrawerActivity:
    return CashDrawerActivity(
        id=str(raw["id"]),
        timestamp=_date(raw["timestamp"]),
        type=raw["type"],
        amount=to_money(raw["amount"]),
        payment_method=raw.get("paymentMethod", "none"),
        description=raw.get("description", ""),
        order_id=raw.get("orderId"),
    )


def _summary_to_dict(summary: ShiftSummary) -> dict[str, Any]:
    return {
        _camel(key): (value if isinstance(value, int) else float(value))
        for key, value in asdict(summary).items()
    }


def _summary_from_dict(raw: dict[str, Any]) -> ShiftSummary:
    return ShiftSummary(
        total_sales=to_money(raw["totalSales"]),
        total_cash_sales=to_money(raw["totalCashSales"]),
        total_qr_sales=to_money(raw["totalQrSales"]),
        total_paid_in=to_money(raw["totalPaidIn"]),
        total_paid_out=to_money(raw["totalPaidOut"]),
        total_cancellations_value=to_money(raw.get("totalCancellationsValue", 0)),
        total_cancellations_count=int(raw.get("totalCancellationsCount", 0)),
        expected_cash_in_drawer=to_money(raw["expectedCashInDrawer"]),
    )


def shift_to_dict(shift: Shift) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": shift.id,
        "status": shift.status,
        "startTime": _iso(shift.start_time),
        "openingFloatAmount": float(shift.opening_float_amount),
        "activities": [_activity_to_dict(a) for a in shift.activities],
    }
    if shift.end_time is not None:
        data.update(
            endTime=_iso(shift.end_time),
            closingCashCounted=_num(shift.closing_cash_counted),
            cashOverShort=_num(shift.cash_over_short),
            cashForNextShift=_num(shift.cash_for_next_shift),
            cashToDeposit=_num(shift.cash_to_deposit),
        )
    if shift.summary is not None:
        data.update(_summary_to_dict(shift.summary))
    return data


def shift_from_dict(raw: dict[str, Any]) -> Shift:
    summary = _summary_from_dict(raw) if "expectedCashInDrawer" in raw else None
    return Shift(
        id=str(raw["id"]),
        status=raw["status"],
        start_time=_date(raw["startTime"]),
        opening_float_amount=to_money(raw["openingFloatAmount"]),
        activities=tuple(_activity_from_dict(a) for a in raw.get("activities", [])),
        end_time=_date(raw.get("endTime")),
        closing_cash_counted=_money(raw.get("closingCashCounted")),
        cash_over_short=_money(raw.get("cashOverShort")),
        cash_for_next_shift=_money(raw.get("cashForNextShift")),
        cash_to_deposit=_money(raw.get("cashToDeposit")),
        summary=summary,
    )


def daily_data_to_dict(data: DailyData) -> dict[str, Any]:
    return {
        "date": data.date,
        "completedOrders": [order_to_dict(o) for o in data.completed_orders],
        "kitchenOrders": [_kitchen_to_dict(k) for k in data.kitchen_orders],
        "activityLog": [{"timestamp": _iso(e.timestamp), "action": e.action} for e in data.activity_log],
        "currentShift": shift_to_dict(data.current_shift) if data.current_shift else None,
    }


def daily_data_from_dict(raw: dict[str, Any], date: str) -> DailyData:
    current = raw.get("currentShift")
    return DailyData(
        date=date,
        completed_orders=tuple(order_from_dict(o) for o in raw.get("completedOrders", [])),
        kitchen_orders=tuple(_kitchen_from_dict(k) for k in raw.get("kitchenOrders", [])),
        activity_log=tuple(
            LogEntry(timestamp=_date(e["timestamp"]), action=e["action"]) for e in raw.get("activityLog", [])
        ),
        current_shift=shift_from_dict(current) if current else None,
    )


def menu_cache_to_dict(cache: MenuCache) -> dict[str, Any]:
    return {
        "timestamp": _iso(cache.timestamp),
        "menuItems": [menu_item_to_dict(i) for i in cache.menu_items],
        "categories": list(cache.categories),
    }


def menu_cache_from_dict(raw: dict[str, Any]) -> MenuCache:
    return MenuCache(
        timestamp=_date(raw["timestamp"]),
        menu_items=tuple(menu_item_from_dict(i) for i in raw.get("menuItems", [])),
        categories=tuple(raw.get("categories", [])),
    )


def settings_to_dict(settings: ShopSettings) -> dict[str, Any]:
    return {_camel(key): value for key, value in asdict(settings).items()}


def settings_from_dict(raw: dict[str, Any]) -> ShopSettings:
    return ShopSettings.from_dict({_snake(key): value for key, value in raw.items()})
