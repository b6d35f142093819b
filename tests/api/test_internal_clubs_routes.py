from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

from app.api.routes import internal_clubs
from app.billing.subscription.errors import ClubNotFoundError, SubscriptionUpdateValidationError
from app.billing.subscription.service import SubscriptionService
from app.billing.subscription.types import ClubStatusResult
from app.services.payments import PaymentGatewayError, PixCharge
from tests.api.route_helpers import CLUB_ID, FIXED_NOW, auth_headers


def _status(*, total_members: int = 12, write_access: bool = True) -> ClubStatusResult:
    return ClubStatusResult(
        club_id=CLUB_ID,
        name="Clube Orion",
        plan_tier="PLAN_P",
        subscription_status="ACTIVE",
        effective_status="ACTIVE" if write_access else "BLOCKED",
        member_limit=30,
        paid_members=total_members - 2,
        total_members=total_members,
        next_billing_date=datetime(2026, 4, 1, tzinfo=timezone.utc),
        grace_period_days=5,
        billing_cutoff=datetime(2026, 4, 6, tzinfo=timezone.utc),
        write_access=write_access,
    )


def _patch_status(monkeypatch, outcome) -> None:
    async def _get_club_status(session, club_id, *, now_utc):
        del session, club_id
        assert now_utc == FIXED_NOW
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    monkeypatch.setattr(SubscriptionService, "get_club_status", _get_club_status)


class _FakeGateway:
    calls: list[dict[str, object]] = []
    error: Exception | None = None

    @classmethod
    def from_settings(cls, settings) -> "_FakeGateway":
        del settings
        return cls()

    async def create_pix_charge(self, **kwargs) -> PixCharge:
        type(self).calls.append(kwargs)
        if type(self).error is not None:
            raise type(self).error
        return PixCharge(
            reference_id=f"REF-{kwargs['user_id']}-1",
            qr_code_image_url="https://pay.example.com/qr.png",
            payload="00020101021226",
            raw={},
        )


def _patch_gateway(monkeypatch, *, error: Exception | None = None) -> type[_FakeGateway]:
    gateway = type("Gateway", (_FakeGateway,), {"calls": [], "error": error})
    monkeypatch.setattr(internal_clubs, "PaymentGatewayClient", gateway)
    monkeypatch.setattr(internal_clubs, "get_settings", lambda: SimpleNamespace())
    return gateway


def test_club_status_for_director(api_client, actors, monkeypatch) -> None:
    director = actors.add("DIRECTOR")
    _patch_status(monkeypatch, _status())

    response = api_client.get(f"/internal/clubs/{CLUB_ID}/status", headers=auth_headers(director))

    assert response.status_code == 200
    body = response.json()
    assert body["effective_status"] == "ACTIVE"
    assert body["write_access"] is True
    assert body["paid_members"] == 10


def test_club_status_hidden_from_pathfinder(api_client, actors, monkeypatch) -> None:
    pathfinder = actors.add("PATHFINDER")
    _patch_status(monkeypatch, _status())

    response = api_client.get(f"/internal/clubs/{CLUB_ID}/status", headers=auth_headers(pathfinder))

    assert response.status_code == 403


def test_club_status_unknown_club_returns_404(api_client, actors, monkeypatch) -> None:
    master = actors.add("MASTER", club_id=None)
    _patch_status(monkeypatch, ClubNotFoundError())

    response = api_client.get(f"/internal/clubs/{uuid4()}/status", headers=auth_headers(master))

    assert response.status_code == 404
    assert response.json() == {"detail": {"code": "E_CLUB_NOT_FOUND"}}


def test_subscription_update_is_master_only(api_client, actors, monkeypatch) -> None:
    owner = actors.add("OWNER")
    _patch_status(monkeypatch, _status())

    response = api_client.put(
        f"/internal/clubs/{CLUB_ID}/subscription",
        json={"plan_tier": "PLAN_M", "subscription_status": "ACTIVE", "member_limit": 100},
        headers=auth_headers(owner),
    )

    assert response.status_code == 403


def test_subscription_update_by_master(api_client, actors, monkeypatch) -> None:
    master = actors.add("MASTER", club_id=None)
    updates: list[object] = []

    async def _update(session, club_id, *, update, now_utc):
        del session, now_utc
        updates.append((club_id, update))

    monkeypatch.setattr(SubscriptionService, "update_subscription", _update)
    _patch_status(monkeypatch, _status())

    response = api_client.put(
        f"/internal/clubs/{CLUB_ID}/subscription",
        json={
            "plan_tier": "PLAN_M",
            "subscription_status": "ACTIVE",
            "member_limit": 100,
            "next_billing_date": "2026-04-01T00:00:00Z",
            "grace_period_days": 5,
        },
        headers=auth_headers(master),
    )

    assert response.status_code == 200
    club_id, update = updates[0]
    assert club_id == CLUB_ID
    assert update.member_limit == 100
    assert update.grace_period_days == 5


def test_subscription_update_validation_error_returns_422(api_client, actors, monkeypatch) -> None:
    master = actors.add("MASTER", club_id=None)

    async def _update(session, club_id, *, update, now_utc):
        raise SubscriptionUpdateValidationError("unknown plan tier")

    monkeypatch.setattr(SubscriptionService, "update_subscription", _update)

    response = api_client.put(
        f"/internal/clubs/{CLUB_ID}/subscription",
        json={"plan_tier": "PLAN_X", "subscription_status": "ACTIVE", "member_limit": 10},
        headers=auth_headers(master),
    )

    assert response.status_code == 422
    assert response.json()["detail"]["code"] == "E_SUBSCRIPTION_INVALID"


def test_pix_charge_priced_by_total_members(api_client, actors, monkeypatch) -> None:
    treasurer = actors.add("TREASURER")
    _patch_status(monkeypatch, _status(total_members=25))
    gateway = _patch_gateway(monkeypatch)

    response = api_client.post(f"/internal/clubs/{CLUB_ID}/billing/pix", headers=auth_headers(treasurer))

    assert response.status_code == 200
    body = response.json()
    assert body["band_code"] == "BRONZE"
    assert Decimal(str(body["amount"])) == Decimal("29.90")
    assert body["qr_code_image_url"] == "https://pay.example.com/qr.png"
    assert gateway.calls[0]["user_id"] == treasurer.id
    assert gateway.calls[0]["user_email"] == treasurer.email
    assert gateway.calls[0]["amount"] == Decimal("29.90")


def test_pix_charge_gateway_failure_returns_502(api_client, actors, monkeypatch) -> None:
    owner = actors.add("OWNER")
    _patch_status(monkeypatch, _status())
    _patch_gateway(monkeypatch, error=PaymentGatewayError("payment gateway request failed"))

    response = api_client.post(f"/internal/clubs/{CLUB_ID}/billing/pix", headers=auth_headers(owner))

    assert response.status_code == 502
    assert response.json() == {"detail": {"code": "E_PAYMENT_GATEWAY"}}


def test_pix_charge_denied_for_counselor(api_client, actors, monkeypatch) -> None:
    counselor = actors.add("COUNSELOR")
    _patch_status(monkeypatch, _status())
    gateway = _patch_gateway(monkeypatch)

    response = api_client.post(f"/internal/clubs/{CLUB_ID}/billing/pix", headers=auth_headers(counselor))

    assert response.status_code == 403
    assert gateway.calls == []
