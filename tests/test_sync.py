"""
Tests for reconciling pending orders with the remote order store.
"""
import asyncio
from dataclasses import replace
from decimal import Decimal

import pytest

from till.exceptions import RemoteError
from till.ledger import LedgerStore
from till.orders import cancel_bill, place_order
from till.shifts import start_shift
from till.sync import SyncOutcome, SyncReconciler, apply_sync_outcomes, orders_to_sync


@pytest.fixture
def store(storage, clock, one_pad_thai):
    """Loaded ledger with two pending bills."""
    store = LedgerStore(storage, clock)
    store.initialize_for_today()
    store.apply(lambda d: start_shift(d, (), Decimal("1000"), clock()))
    store.apply(lambda d: place_order(d, one_pad_thai, "cash", clock())[0])
    store.apply(lambda d: place_order(d, one_pad_thai, "qr", clock())[0])
    return store


def _statuses(store):
    return {order.id: order.sync_status for order in store.snapshot.completed_orders}


class TestSyncReconciler:
    def test_pushes_pending_orders(self, store, client):
        report = asyncio.run(SyncReconciler(store, client).reconcile())

        assert report.attempted == 2
        assert report.synced == 2
        assert client.save_order.call_count == 2
        assert set(_statuses(store).values()) == {"synced"}
        assert store.snapshot.activity_log[0].action == "Synced 2 bill(s)"

    def test_synced_orders_are_not_resent(self, store, client):
        reconciler = SyncReconciler(store, client)
        asyncio.run(reconciler.reconcile())
        report = asyncio.run(reconciler.reconcile())

        assert report.attempted == 0
        assert client.save_order.call_count == 2

    def test_failures_are_marked_and_retried(self, store, client):
        def save(order):
            if order.id.endswith("0002"):
                raise RemoteError("HTTP error! status: 500")
            return {"status": "success"}

        client.save_order.side_effect = save
        report = asyncio.run(SyncReconciler(store, client).reconcile())

        assert report.failed == 1
        assert _statuses(store) == {"20240501-0001": "synced", "20240501-0002": "failed"}

        client.save_order.side_effect = None
        asyncio.run(SyncReconciler(store, client).reconcile())

        assert _statuses(store)["20240501-0002"] == "synced"

    def test_unconfigured_endpoint_marks_pending_failed(self, store, client):
        client.is_configured = False

        report = asyncio.run(SyncReconciler(store, client).reconcile())

        assert report.skipped is True
        client.save_order.assert_not_called()
        assert set(_statuses(store).values()) == {"failed"}

    def test_skipped_before_ledger_loads(self, storage, clock, client):
        report = asyncio.run(SyncReconciler(LedgerStore(storage, clock), client).reconcile())

        assert report.skipped is True
        client.save_order.assert_not_called()

    def test_cancelled_bill_is_resent(self, store, client, clock):
        reconciler = SyncReconciler(store, client)
        asyncio.run(reconciler.reconcile())
        store.apply(lambda d: cancel_bill(d, "20240501-0001", clock(), is_admin=True)[0])

        assert {o.id for o in orders_to_sync(store.snapshot)} == {"20240501-0001", "20240501-0003"}

        asyncio.run(reconciler.reconcile())
        sent = [call.args[0] for call in client.save_order.call_args_list[2:]]
        assert {o.id for o in sent} == {"20240501-0001", "20240501-0003"}
        assert next(o for o in sent if o.id == "20240501-0001").status == "cancelled"


class TestApplySyncOutcomes:
    def test_order_changed_mid_flight_stays_pending(self, store, clock):
        sent = store.snapshot.find_order("20240501-0001")
        data = store.apply(lambda d: cancel_bill(d, sent.id, clock(), is_admin=True)[0])

        merged = apply_sync_outcomes(data, [SyncOutcome(order=sent, status="synced")], clock())

        assert merged is data
        assert merged.find_order(sent.id).sync_status == "pending"
        assert merged.find_order(sent.id).status == "cancelled"

    def test_unchanged_order_takes_result(self, store, clock):
        sent = store.snapshot.find_order("20240501-0002")

        merged = apply_sync_outcomes(store.snapshot, [SyncOutcome(order=sent, status="synced")], clock())

        assert merged.find_order(sent.id) == replace(sent, sync_status="synced")
        assert merged.find_order("20240501-0001").sync_status == "pending"
