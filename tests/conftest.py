from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from adapters.json_store import JsonSubscriptionStore
from adapters.sqlite_store import SQLiteSubscriptionStore


class StepClock:
    """Deterministic clock that moves one second per reading."""

    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture(params=["json", "sqlite"])
def store_factory(request, tmp_path, clock):
    """Build (not initialize) a store of each backend on the same path."""

    def build():
        if request.param == "json":
            return JsonSubscriptionStore(str(tmp_path / "subscriptions.json"), clock=clock)
        return SQLiteSubscriptionStore(str(tmp_path / "subscriptions.db"), clock=clock)

    return build


@pytest.fixture
def store(store_factory):
    built = store_factory()
    built.initialize()
    return built
