from __future__ import annotations

from datetime import datetime, timedelta
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.billing.subscription.constants import DEFAULT_BILLING_REMINDER_WINDOW, FREE_SEAT_ROLES
from app.billing.subscription.errors import (
    ClubAccessDeniedError,
    ClubNotFoundError,
    SubscriptionUpdateValidationError,
)
from app.billing.subscription.rules import (
    billing_cutoff,
    classify_billing_reminder,
    effective_status,
    resolve_grace_period_days,
    snapshot_is_overdue,
)
from app.billing.subscription.types import (
    BillingReminder,
    ClubBillingSnapshot,
    ClubStatusResult,
    PlanTier,
    SubscriptionStatus,
    SubscriptionUpdate,
)
from app.db.models.clubs import Club
from app.db.repo.clubs_repo import ClubsRepo
from app.db.repo.users_repo import UsersRepo

logger = structlog.get_logger(__name__)

PLAN_TIERS = frozenset(tier.value for tier in PlanTier)
SUBSCRIPTION_STATUSES = frozenset(status.value for status in SubscriptionStatus)


def _snapshot_from_club(club: Club) -> ClubBillingSnapshot:
    return ClubBillingSnapshot(
        name=club.name,
        subscription_status=club.subscription_status,
        next_billing_date=club.next_billing_date,
        grace_period_days=club.grace_period_days,
    )


class SubscriptionService:
    @staticmethod
    async def check_write_access(
        session: AsyncSession,
        club_id: UUID | None,
        *,
        now_utc: datetime,
    ) -> None:
        if club_id is None:
            return

        billing = await ClubsRepo.get_billing_fields(session, club_id)
        if billing is None:
            logger.info("club_write_access_unknown_club", club_id=str(club_id))
            return

        name, status, next_billing_date, grace_period_days = billing
        snapshot = ClubBillingSnapshot(
            name=name,
            subscription_status=status,
            next_billing_date=next_billing_date,
            grace_period_days=grace_period_days,
        )
        if snapshot_is_overdue(snapshot, now_utc=now_utc):
            logger.warning(
                "club_write_access_denied",
                club_id=str(club_id),
                subscription_status=status,
                next_billing_date=next_billing_date.isoformat() if next_billing_date else None,
            )
            raise ClubAccessDeniedError(name)

    @staticmethod
    async def get_club_status(
        session: AsyncSession,
        club_id: UUID,
        *,
        now_utc: datetime,
    ) -> ClubStatusResult:
        club = await ClubsRepo.get_by_id(session, club_id)
        if club is None:
            raise ClubNotFoundError

        snapshot = _snapshot_from_club(club)
        paid_members = await UsersRepo.count_active_by_club_excluding_roles(
            session,
            club_id=club.id,
            excluded_roles=FREE_SEAT_ROLES,
        )
        total_members = await UsersRepo.count_by_club(session, club_id=club.id)
        return ClubStatusResult(
            club_id=club.id,
            name=club.name,
            plan_tier=club.plan_tier,
            subscription_status=club.subscription_status,
            effective_status=effective_status(snapshot, now_utc=now_utc),
            member_limit=club.member_limit,
            paid_members=paid_members,
            total_members=total_members,
            next_billing_date=club.next_billing_date,
            grace_period_days=resolve_grace_period_days(club.grace_period_days),
            billing_cutoff=billing_cutoff(club.next_billing_date, club.grace_period_days),
            write_access=not snapshot_is_overdue(snapshot, now_utc=now_utc),
        )

    @staticmethod
    def _validate_update(update: SubscriptionUpdate) -> None:
        if update.plan_tier not in PLAN_TIERS:
            raise SubscriptionUpdateValidationError(f"unknown plan tier: {update.plan_tier}")
        if update.subscription_status not in SUBSCRIPTION_STATUSES:
            raise SubscriptionUpdateValidationError(
                f"unknown subscription status: {update.subscription_status}"
            )
        if update.member_limit < 0:
            raise SubscriptionUpdateValidationError("member_limit must be non-negative")
        if update.grace_period_days < 0:
            raise SubscriptionUpdateValidationError("grace_period_days must be non-negative")

    @staticmethod
    async def update_subscription(
        session: AsyncSession,
        club_id: UUID,
        *,
        update: SubscriptionUpdate,
        now_utc: datetime,
    ) -> Club:
        SubscriptionService._validate_update(update)

        club = await ClubsRepo.get_by_id_for_update(session, club_id)
        if club is None:
            raise ClubNotFoundError

        previous_status = club.subscription_status
        club.plan_tier = update.plan_tier
        club.subscription_status = update.subscription_status
        club.member_limit = update.member_limit
        club.next_billing_date = update.next_billing_date
        club.grace_period_days = update.grace_period_days
        club.updated_at = now_utc
        await session.flush()

        logger.info(
            "club_subscription_updated",
            club_id=str(club_id),
            previous_status=previous_status,
            subscription_status=update.subscription_status,
            plan_tier=update.plan_tier,
            member_limit=update.member_limit,
        )
        return club

    @staticmethod
    async def list_clubs_due_for_reminder(
        session: AsyncSession,
        *,
        now_utc: datetime,
        reminder_window: timedelta = DEFAULT_BILLING_REMINDER_WINDOW,
    ) -> list[BillingReminder]:
        candidates = await ClubsRepo.list_billing_candidates(
            session,
            due_before_utc=now_utc + reminder_window,
        )
        reminders: list[BillingReminder] = []
        for club in candidates:
            snapshot = _snapshot_from_club(club)
            kind = classify_billing_reminder(snapshot, now_utc=now_utc, reminder_window=reminder_window)
            if kind is None:
                continue
            reminders.append(
                BillingReminder(
                    club_id=club.id,
                    club_name=club.name,
                    kind=kind,
                    next_billing_date=club.next_billing_date,
                    billing_cutoff=billing_cutoff(club.next_billing_date, club.grace_period_days),
                )
            )
        return reminders
