from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace
from uuid import UUID, uuid4

FIXED_NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)
INTERNAL_TOKEN = "internal-secret"
CLUB_ID = UUID("0b3f8f3e-5a4a-4d2b-9b55-6f1f3c2a7e10")


class FakeSession:
    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False

    async def flush(self) -> None:
        return None


class FakeSessionFactory:
    def __call__(self):
        return FakeSession()

    def begin(self):
        return FakeSession()


class Actors:
    def __init__(self) -> None:
        self.by_id: dict[UUID, SimpleNamespace] = {}

    def add(self, role: str, *, club_id: UUID | None = CLUB_ID, points: int = 0) -> SimpleNamespace:
        actor = SimpleNamespace(
            id=uuid4(),
            role=role,
            club_id=club_id,
            is_active=True,
            name=f"{role.title()} Teste",
            email=f"{role.lower()}@example.com",
            points=points,
        )
        self.by_id[actor.id] = actor
        return actor


def auth_headers(actor: SimpleNamespace | None = None) -> dict[str, str]:
    headers = {"X-Internal-Token": INTERNAL_TOKEN}
    if actor is not None:
        headers["X-Actor-User-Id"] = str(actor.id)
    return headers
