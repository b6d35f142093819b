from __future__ import annotations

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from app.api.routes import (
    internal_clubs,
    internal_common,
    internal_members,
    internal_notifications,
    internal_store,
)
from app.core import clock
from app.db.repo.users_repo import UsersRepo
from app.main import app
from tests.api.route_helpers import FIXED_NOW, INTERNAL_TOKEN, Actors, FakeSessionFactory


@pytest.fixture
def actors(monkeypatch) -> Actors:
    registry = Actors()

    async def _get_by_id(session, user_id):
        del session
        return registry.by_id.get(user_id)

    monkeypatch.setattr(UsersRepo, "get_by_id", _get_by_id)
    return registry


@pytest.fixture
def api_client(monkeypatch, actors) -> TestClient:
    monkeypatch.setattr(
        internal_common,
        "get_settings",
        lambda: SimpleNamespace(
            internal_api_token=INTERNAL_TOKEN,
            internal_api_allowlist="127.0.0.1/32",
            internal_api_trusted_proxies="",
        ),
    )
    for module in (internal_clubs, internal_members, internal_store, internal_notifications):
        monkeypatch.setattr(module, "SessionLocal", FakeSessionFactory())
    monkeypatch.setattr(clock, "utc_now", lambda: FIXED_NOW)
    return TestClient(app, client=("127.0.0.1", 50000))
