"""Reconcile locally pending orders with the remote order store."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime

from till.exceptions import RemoteError
from till.ledger import LedgerStore, append_log
from till.models import DailyData, Order, SyncStatus
from till.remote import RemoteClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncOutcome:
    order: Order
    status: SyncStatus


@dataclass(frozen=True)
class SyncReport:
    attempted: int = 0
    synced: int = 0
    failed: int = 0
    skipped: bool = False


def orders_to_sync(data: DailyData) -> list[Order]:
    return [order for order in data.completed_orders if order.sync_status in ("pending", "failed")]


def mark_pending_failed(data: DailyData) -> DailyData:
    if not any(order.sync_status == "pending" for order in data.completed_orders):
        return data
    orders = tuple(
        replace(order, sync_status="failed") if order.sync_status == "pending" else order
        for order in data.completed_orders
    )
    return replace(data, completed_orders=orders)


def apply_sync_outcomes(data: DailyData, outcomes: list[SyncOutcome], now: datetime) -> DailyData:
    """
    Merge settled upload results into the latest snapshot.

    A result only applies to an order that is unchanged since it was sent;
    an order that was cancelled mid-flight keeps its ``pending`` status and
    goes out again on the next pass.
    """
    by_id = {outcome.order.id: outcome for outcome in outcomes}
    synced = 0
    changed = False
    orders = []
    for order in data.completed_orders:
        outcome = by_id.get(order.id)
        if outcome is None or outcome.order != order or order.sync_status == outcome.status:
            orders.append(order)
            continue
        changed = True
        if outcome.status == "synced":
            synced += 1
        orders.append(replace(order, sync_status=outcome.status))

    if not changed:
        return data
    data = replace(data, completed_orders=tuple(orders))
    if synced:
        data = append_log(data, f"Synced {synced} bill(s)", now)
    return data


class SyncReconciler:
    """Pushes every ``pending``/``failed`` order and records per-order results."""

    def __init__(self, store: LedgerStore, client: RemoteClient) -> None:
        self.store = store
        self.client = client
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def _push(self, order: Order) -> SyncOutcome:
        try:
            await asyncio.to_thread(self.client.save_order, order)
        except RemoteError as exc:
            logger.warning("Failed to sync order #%s: %s", order.id, exc)
            return SyncOutcome(order=order, status="failed")
        return SyncOutcome(order=order, status="synced")

    async def reconcile(self) -> SyncReport:
        if not self.store.is_loaded or self._running:
            return SyncReport(skipped=True)

        if not self.client.is_configured:
            logger.error("Remote endpoint is not set; marking pending orders as failed")
            self.store.apply(mark_pending_failed)
            return SyncReport(skipped=True)

        candidates = orders_to_sync(self.store.snapshot)
        if not candidates:
            return SyncReport()

        self._running = True
        try:
            self.store.log_action(f"Syncing {len(candidates)} pending bill(s)...")
            outcomes = await asyncio.gather(*(self._push(order) for order in candidates))
        finally:
            self._running = False

        now = self.store.clock()
        self.store.apply(lambda data: apply_sync_outcomes(data, list(outcomes), now))
        synced = sum(1 for outcome in outcomes if outcome.status == "synced")
        report = SyncReport(attempted=len(outcomes), synced=synced, failed=len(outcomes) - synced)
        logger.info("Sync pass finished: %s", report)
        return report
