from datetime import datetime, timedelta, timezone

import pytest

from teapos.context import Session
from teapos.models import Product
from teapos.store import LocalStore


class StepClock:
    """Deterministic clock that advances one second per reading."""

    def __init__(self, start=datetime(2026, 3, 2, 3, 0, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self):
        value = self.current
        self.current = self.current + timedelta(seconds=1)
        return value


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def store(tmp_path, clock):
    store = LocalStore(db_path=tmp_path / "teapos.db", asset_dir=tmp_path / "assets", clock=clock)
    store.bootstrap_schema()
    return store


@pytest.fixture
def session(store, clock):
    return Session(store=store, clock=clock)


@pytest.fixture
def milk_tea():
    return Product(product_id="p-a", name="Trà sữa", price=20000, category_id="c-1")


@pytest.fixture
def lemon_tea():
    return Product(product_id="p-b", name="Trà chanh", price=15000, category_id="c-1")
