from datetime import datetime, timedelta, timezone
from typing import List

import pytest

from hotrank.models import CatalogItem
from hotrank.services.engine import TrendingEngine
from hotrank.services.store import memory_storage

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeCatalog:
    def __init__(self, items: List[CatalogItem] | None = None) -> None:
        self.items = items or []
        self.calls = 0

    async def get_catalog(self) -> List[CatalogItem]:
        self.calls += 1
        return list(self.items)


CATALOG = [
    CatalogItem(
        id="google-pixel-8",
        brand="Google",
        name="PIXEL-8",
        description="Pixel 8 128GB, grade A",
        grade="A",
        min_qty=5,
    ),
    CatalogItem(
        id="apple-iphone-13",
        brand="Apple",
        name="IPHONE-13",
        description="iPhone 13 128GB",
        grade="B",
        min_qty=10,
    ),
]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def catalog():
    return FakeCatalog(list(CATALOG))


@pytest.fixture
def engine(clock, catalog):
    return TrendingEngine(storage=memory_storage(), catalog=catalog, clock=clock)
