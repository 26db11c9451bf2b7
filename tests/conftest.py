"""
Pytest fixtures for till tests.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from till.models import CartLine, DailyData, MenuItem
from till.notifications import Notifier
from till.persistence import LocalStorage
from till.register import Register
from till.remote import RemoteClient
from till.shifts import start_shift

BANGKOK = timezone(timedelta(hours=7))


class FakeClock:
    """Callable clock that only moves when a test advances it."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 5, 1, 9, 0, tzinfo=BANGKOK))


@pytest.fixture
def storage(tmp_path):
    store = LocalStorage(tmp_path / "till.db")
    store.bootstrap_schema()
    return store


@pytest.fixture
def pad_thai():
    return MenuItem(id=1, name="Pad Thai", price=Decimal("150.00"), category="Noodles")


@pytest.fixture
def iced_tea():
    return MenuItem(id=2, name="Thai Iced Tea", price=Decimal("60.00"), category="Drinks")


@pytest.fixture
def one_pad_thai(pad_thai):
    return [CartLine(item=pad_thai, quantity=1)]


@pytest.fixture
def open_day(clock):
    """Today's ledger with shift S1 open on a 1,000 float."""
    return start_shift(DailyData(date="20240501"), (), Decimal("1000"), clock())


@pytest.fixture
def client(pad_thai, iced_tea):
    """RemoteClient double; every call succeeds unless a test says otherwise."""
    mock = MagicMock(spec=RemoteClient)
    mock.is_configured = True
    mock.save_order.return_value = {"status": "success"}
    mock.get_menu.return_value = ([pad_thai, iced_tea], ["Noodles", "Drinks"])
    mock.push_menu_change.return_value = {"status": "success"}
    return mock


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def drawer():
    return MagicMock()


@pytest.fixture
def register(storage, client, notifier, clock, drawer):
    """A loaded Register wired to test doubles."""
    reg = Register(storage=storage, client=client, notifier=notifier, clock=clock, drawer=drawer)
    reg.load()
    return reg
