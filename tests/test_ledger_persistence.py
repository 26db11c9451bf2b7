"""
Tests for the ledger store and its SQLite persistence.
"""
import json
from decimal import Decimal

from till.config import ACTIVITY_LOG_LIMIT
from till.ledger import LedgerStore, append_log
from till.models import DailyData
from till.orders import cancel_bill, place_order
from till.persistence import daily_key
from till.shifts import end_shift, start_shift


class TestInitializeForToday:
    def test_starts_a_new_day(self, storage, clock):
        store = LedgerStore(storage, clock)
        data = store.initialize_for_today()

        assert data.date == "20240501"
        assert data.completed_orders == ()
        assert data.activity_log[0].action == "New day started"
        assert storage.load_daily("20240501") == data

    def test_purges_stale_days(self, storage, clock):
        storage.save_daily(DailyData(date="20240430"))
        storage.save_daily(DailyData(date="20240429"))

        LedgerStore(storage, clock).initialize_for_today()

        assert storage.keys("daily_data_") == [daily_key("20240501")]

    def test_corrupt_snapshot_starts_empty_day(self, storage, clock):
        storage.set_raw(daily_key("20240501"), json.dumps({"completedOrders": [{"id": "x"}]}))

        data = LedgerStore(storage, clock).initialize_for_today()

        assert data.completed_orders == ()

    def test_unparseable_json_starts_empty_day(self, storage, clock):
        storage.set_raw(daily_key("20240501"), "{not json")

        data = LedgerStore(storage, clock).initialize_for_today()

        assert data.completed_orders == ()


class TestRoundTrip:
    def test_reload_rehydrates_everything(self, storage, clock, one_pad_thai):
        store = LedgerStore(storage, clock)
        store.initialize_for_today()
        store.apply(lambda d: start_shift(d, (), Decimal("1000"), clock()))
        store.apply(lambda d: place_order(d, one_pad_thai, "cash", clock(), discount="10%", vat_enabled=True)[0])
        store.apply(lambda d: cancel_bill(d, "20240501-0001", clock(), is_admin=True)[0])

        reloaded = LedgerStore(storage, clock).initialize_for_today()

        assert reloaded == store.snapshot
        order = reloaded.find_order("20240501-0001")
        assert order.timestamp == clock()
        assert order.timestamp.tzinfo is not None
        assert order.cancelled_at == clock()
        assert reloaded.find_order("20240501-0002").reversal_of == "20240501-0001"

    def test_missing_sync_status_means_synced(self, storage, clock, one_pad_thai, open_day):
        data, _ = place_order(open_day, one_pad_thai, "qr", clock())
        storage.save_daily(data)
        raw = storage.get_json(daily_key("20240501"))
        del raw["completedOrders"][0]["syncStatus"]
        storage.set_json(daily_key("20240501"), raw)

        assert storage.load_daily("20240501").completed_orders[0].sync_status == "synced"


class TestLedgerStore:
    def test_apply_persists_and_notifies(self, storage, clock):
        store = LedgerStore(storage, clock)
        seen = []
        store.subscribe(seen.append)
        store.initialize_for_today()

        store.log_action("Hello")

        assert seen[-1] is store.snapshot
        assert storage.load_daily("20240501").activity_log[0].action == "Hello"

    def test_identity_reducer_skips_write(self, storage, clock):
        store = LedgerStore(storage, clock)
        seen = []
        store.initialize_for_today()
        store.subscribe(seen.append)

        store.apply(lambda d: d)

        assert seen == []

    def test_log_action_before_load_is_ignored(self, storage, clock):
        store = LedgerStore(storage, clock)
        store.log_action("too early")

        assert not store.is_loaded

    def test_sync_request_flag(self, storage, clock):
        store = LedgerStore(storage, clock)
        store.request_sync()

        assert store.take_sync_request() is True
        assert store.take_sync_request() is False

    def test_activity_log_is_capped(self, clock):
        data = DailyData(date="20240501")
        for n in range(ACTIVITY_LOG_LIMIT + 5):
            data = append_log(data, f"entry {n}", clock())

        assert len(data.activity_log) == ACTIVITY_LOG_LIMIT
        assert data.activity_log[0].action == f"entry {ACTIVITY_LOG_LIMIT + 4}"


class TestLocalStorage:
    def test_shift_history_round_trip(self, storage, open_day, clock):
        _, closed = end_shift(open_day, Decimal("990"), Decimal("500"), clock())
        storage.save_shift_history((closed,))

        assert storage.load_shift_history() == (closed,)

    def test_offline_images(self, storage):
        storage.save_offline_image("logo", "data:image/png;base64,AAAA")
        assert storage.load_offline_image("logo") == "data:image/png;base64,AAAA"

        storage.save_offline_image("logo", None)
        assert storage.load_offline_image("logo") is None
