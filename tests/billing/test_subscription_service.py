from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from uuid import uuid4

import pytest

from app.billing.subscription.errors import (
    ClubAccessDeniedError,
    ClubNotFoundError,
    SubscriptionUpdateValidationError,
)
from app.billing.subscription.service import SubscriptionService
from app.billing.subscription.types import BillingReminderKind, SubscriptionUpdate
from app.db.repo.clubs_repo import ClubsRepo
from app.db.repo.users_repo import UsersRepo

UTC = timezone.utc
NOW = datetime(2026, 3, 15, 12, 0, tzinfo=UTC)


class _FakeSession:
    def __init__(self) -> None:
        self.flushes = 0

    async def flush(self) -> None:
        self.flushes += 1


def _patch_billing_fields(monkeypatch, value) -> list[object]:
    calls: list[object] = []

    async def _get_billing_fields(session, club_id):
        del session
        calls.append(club_id)
        return value

    monkeypatch.setattr(ClubsRepo, "get_billing_fields", _get_billing_fields)
    return calls


@pytest.mark.asyncio
async def test_check_write_access_permits_missing_club_id(monkeypatch) -> None:
    calls = _patch_billing_fields(monkeypatch, None)

    await SubscriptionService.check_write_access(_FakeSession(), None, now_utc=NOW)

    assert calls == []


@pytest.mark.asyncio
async def test_check_write_access_permits_unknown_club(monkeypatch) -> None:
    club_id = uuid4()
    calls = _patch_billing_fields(monkeypatch, None)

    await SubscriptionService.check_write_access(_FakeSession(), club_id, now_utc=NOW)

    assert calls == [club_id]


@pytest.mark.asyncio
async def test_check_write_access_denies_overdue_club_with_name(monkeypatch) -> None:
    _patch_billing_fields(monkeypatch, ("Clube Orion", "OVERDUE", None, 0))

    with pytest.raises(ClubAccessDeniedError) as exc_info:
        await SubscriptionService.check_write_access(_FakeSession(), uuid4(), now_utc=NOW)

    assert exc_info.value.club_name == "Clube Orion"
    assert "Clube Orion" in str(exc_info.value)


@pytest.mark.asyncio
async def test_check_write_access_denies_after_grace(monkeypatch) -> None:
    due = NOW - timedelta(days=5, seconds=1)
    _patch_billing_fields(monkeypatch, ("Clube Orion", "ACTIVE", due, 5))

    with pytest.raises(ClubAccessDeniedError):
        await SubscriptionService.check_write_access(_FakeSession(), uuid4(), now_utc=NOW)


@pytest.mark.asyncio
async def test_check_write_access_permits_within_grace(monkeypatch) -> None:
    due = NOW - timedelta(days=5)
    _patch_billing_fields(monkeypatch, ("Clube Orion", "ACTIVE", due, 5))

    await SubscriptionService.check_write_access(_FakeSession(), uuid4(), now_utc=NOW)


@pytest.mark.asyncio
@pytest.mark.parametrize("grace", [3_000_000, 1_000_000_000, 2_147_483_647])
async def test_check_write_access_permits_huge_grace_period(monkeypatch, grace: int) -> None:
    due = NOW - timedelta(days=30)
    _patch_billing_fields(monkeypatch, ("Clube Orion", "ACTIVE", due, grace))

    await SubscriptionService.check_write_access(_FakeSession(), uuid4(), now_utc=NOW)


@pytest.mark.asyncio
async def test_get_club_status_reports_counts_and_effective_status(monkeypatch) -> None:
    club = SimpleNamespace(
        id=uuid4(),
        name="Clube Orion",
        plan_tier="PLAN_P",
        subscription_status="ACTIVE",
        member_limit=30,
        next_billing_date=NOW - timedelta(days=1),
        grace_period_days=None,
    )

    async def _get_by_id(session, club_id):
        del session
        return club if club_id == club.id else None

    async def _count_paid(session, *, club_id, excluded_roles):
        del session, club_id
        assert tuple(excluded_roles) == ("PARENT", "MASTER")
        return 12

    async def _count_all(session, *, club_id):
        del session, club_id
        return 15

    monkeypatch.setattr(ClubsRepo, "get_by_id", _get_by_id)
    monkeypatch.setattr(UsersRepo, "count_active_by_club_excluding_roles", _count_paid)
    monkeypatch.setattr(UsersRepo, "count_by_club", _count_all)

    result = await SubscriptionService.get_club_status(_FakeSession(), club.id, now_utc=NOW)

    assert result.paid_members == 12
    assert result.total_members == 15
    assert result.grace_period_days == 0
    assert result.effective_status == "OVERDUE"
    assert result.write_access is False
    assert result.billing_cutoff == club.next_billing_date


@pytest.mark.asyncio
async def test_get_club_status_with_huge_grace_stays_active(monkeypatch) -> None:
    club = SimpleNamespace(
        id=uuid4(),
        name="Clube Orion",
        plan_tier="PLAN_P",
        subscription_status="ACTIVE",
        member_limit=30,
        next_billing_date=NOW - timedelta(days=400),
        grace_period_days=2_147_483_647,
    )

    async def _get_by_id(session, club_id):
        del session, club_id
        return club

    async def _count(session, **kwargs):
        del session, kwargs
        return 3

    monkeypatch.setattr(ClubsRepo, "get_by_id", _get_by_id)
    monkeypatch.setattr(UsersRepo, "count_active_by_club_excluding_roles", _count)
    monkeypatch.setattr(UsersRepo, "count_by_club", _count)

    result = await SubscriptionService.get_club_status(_FakeSession(), club.id, now_utc=NOW)

    assert result.effective_status == "ACTIVE"
    assert result.write_access is True
    assert result.billing_cutoff == datetime.max.replace(tzinfo=UTC)

    with pytest.raises(ClubNotFoundError):
        await SubscriptionService.get_club_status(_FakeSession(), uuid4(), now_utc=NOW)


@pytest.mark.asyncio
async def test_update_subscription_writes_billing_fields(monkeypatch) -> None:
    club = SimpleNamespace(
        id=uuid4(),
        plan_tier="TRIAL",
        subscription_status="OVERDUE",
        member_limit=30,
        next_billing_date=None,
        grace_period_days=0,
        updated_at=None,
    )

    async def _get_for_update(session, club_id):
        del session, club_id
        return club

    monkeypatch.setattr(ClubsRepo, "get_by_id_for_update", _get_for_update)
    session = _FakeSession()
    next_billing = NOW + timedelta(days=30)

    await SubscriptionService.update_subscription(
        session,
        club.id,
        update=SubscriptionUpdate(
            plan_tier="PLAN_M",
            subscription_status="ACTIVE",
            member_limit=100,
            next_billing_date=next_billing,
            grace_period_days=5,
        ),
        now_utc=NOW,
    )

    assert club.plan_tier == "PLAN_M"
    assert club.subscription_status == "ACTIVE"
    assert club.member_limit == 100
    assert club.next_billing_date == next_billing
    assert club.grace_period_days == 5
    assert club.updated_at == NOW
    assert session.flushes == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "update",
    [
        SubscriptionUpdate(plan_tier="GOLD", subscription_status="ACTIVE", member_limit=1, next_billing_date=None),
        SubscriptionUpdate(plan_tier="PLAN_P", subscription_status="PAUSED", member_limit=1, next_billing_date=None),
        SubscriptionUpdate(plan_tier="PLAN_P", subscription_status="ACTIVE", member_limit=-1, next_billing_date=None),
        SubscriptionUpdate(
            plan_tier="PLAN_P",
            subscription_status="ACTIVE",
            member_limit=1,
            next_billing_date=None,
            grace_period_days=-1,
        ),
    ],
)
async def test_update_subscription_rejects_invalid_values(update: SubscriptionUpdate) -> None:
    with pytest.raises(SubscriptionUpdateValidationError):
        await SubscriptionService.update_subscription(_FakeSession(), uuid4(), update=update, now_utc=NOW)


@pytest.mark.asyncio
async def test_update_subscription_raises_for_unknown_club(monkeypatch) -> None:
    async def _get_for_update(session, club_id):
        del session, club_id
        return None

    monkeypatch.setattr(ClubsRepo, "get_by_id_for_update", _get_for_update)

    with pytest.raises(ClubNotFoundError):
        await SubscriptionService.update_subscription(
            _FakeSession(),
            uuid4(),
            update=SubscriptionUpdate(
                plan_tier="PLAN_P",
                subscription_status="ACTIVE",
                member_limit=30,
                next_billing_date=None,
            ),
            now_utc=NOW,
        )


@pytest.mark.asyncio
async def test_list_clubs_due_for_reminder_classifies_candidates(monkeypatch) -> None:
    upcoming = SimpleNamespace(
        id=uuid4(),
        name="Clube A",
        subscription_status="ACTIVE",
        next_billing_date=NOW + timedelta(days=2),
        grace_period_days=0,
    )
    blocked = SimpleNamespace(
        id=uuid4(),
        name="Clube B",
        subscription_status="OVERDUE",
        next_billing_date=None,
        grace_period_days=0,
    )
    canceled = SimpleNamespace(
        id=uuid4(),
        name="Clube C",
        subscription_status="CANCELED",
        next_billing_date=None,
        grace_period_days=0,
    )
    captured: dict[str, datetime] = {}

    async def _candidates(session, *, due_before_utc):
        del session
        captured["due_before_utc"] = due_before_utc
        return [upcoming, blocked, canceled]

    monkeypatch.setattr(ClubsRepo, "list_billing_candidates", _candidates)

    reminders = await SubscriptionService.list_clubs_due_for_reminder(
        _FakeSession(),
        now_utc=NOW,
        reminder_window=timedelta(days=3),
    )

    assert captured["due_before_utc"] == NOW + timedelta(days=3)
    assert [(item.club_name, item.kind) for item in reminders] == [
        ("Clube A", BillingReminderKind.UPCOMING),
        ("Clube B", BillingReminderKind.BLOCKED),
    ]
