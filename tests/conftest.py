from datetime import datetime

import pytest

from billing import clock
from billing.store import JsonStore

NOW = datetime(2026, 3, 15, 10, 30, 0)


@pytest.fixture
def store(tmp_path) -> JsonStore:
    return JsonStore(tmp_path / "data" / "database.json")


@pytest.fixture
def frozen_now(monkeypatch) -> datetime:
    """Pin the service clock to NOW."""
    monkeypatch.setattr(clock, "now", lambda: NOW)
    return NOW
