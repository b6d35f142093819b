from __future__ import annotations

from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.billing.subscription.constants import FREE_SEAT_ROLES
from app.billing.subscription.errors import ClubNotFoundError
from app.billing.subscription.service import SubscriptionService
from app.db.models.users import User
from app.db.repo.clubs_repo import ClubsRepo
from app.db.repo.users_repo import UsersRepo
from app.economy.points.service import PointsLedger
from app.economy.points.types import AWARD_SOURCES, PointsSource
from app.members.errors import (
    MemberEmailTakenError,
    MemberLimitExceededError,
    MemberNotFoundError,
    MemberValidationError,
)
from app.members.types import MemberDraft, MemberRole

logger = structlog.get_logger(__name__)

MEMBER_ROLES = frozenset(role.value for role in MemberRole)
MANUAL_ADJUSTMENT_REASON = "Ajuste Manual de Cadastro"


class MemberService:
    @staticmethod
    def _validate_draft(draft: MemberDraft) -> None:
        if not draft.name or not draft.name.strip():
            raise MemberValidationError("name must not be empty")
        if not draft.email or "@" not in draft.email:
            raise MemberValidationError("email is invalid")
        if draft.role not in MEMBER_ROLES:
            raise MemberValidationError(f"unknown role: {draft.role}")

    @staticmethod
    async def count_paid_members(session: AsyncSession, *, club_id: UUID) -> int:
        return await UsersRepo.count_active_by_club_excluding_roles(
            session,
            club_id=club_id,
            excluded_roles=FREE_SEAT_ROLES,
        )

    @staticmethod
    async def _enforce_seat_limit(
        session: AsyncSession,
        *,
        club_id: UUID,
        role: str,
        now_utc: datetime,
    ) -> None:
        # The club row lock serializes concurrent creations for one club.
        club = await ClubsRepo.get_by_id_for_update(session, club_id)
        if club is None:
            raise ClubNotFoundError

        await SubscriptionService.check_write_access(session, club_id, now_utc=now_utc)

        paid_count = await MemberService.count_paid_members(session, club_id=club_id)
        if role == MemberRole.PARENT.value:
            return
        if paid_count >= club.member_limit:
            logger.warning(
                "member_limit_reached",
                club_id=str(club_id),
                paid_members=paid_count,
                member_limit=club.member_limit,
            )
            raise MemberLimitExceededError(current=paid_count, limit=club.member_limit)

    @staticmethod
    async def create_member(
        session: AsyncSession,
        *,
        draft: MemberDraft,
        now_utc: datetime,
    ) -> User:
        MemberService._validate_draft(draft)

        if draft.club_id is not None:
            await MemberService._enforce_seat_limit(
                session,
                club_id=draft.club_id,
                role=draft.role,
                now_utc=now_utc,
            )

        if await UsersRepo.get_by_email(session, draft.email) is not None:
            raise MemberEmailTakenError

        user = await UsersRepo.create(
            session,
            name=draft.name.strip(),
            email=draft.email,
            role=draft.role,
            club_id=draft.club_id,
            is_active=draft.is_active,
        )
        logger.info(
            "member_created",
            user_id=str(user.id),
            club_id=str(draft.club_id) if draft.club_id else None,
            role=draft.role,
        )
        return user

    @staticmethod
    async def _get_for_update(session: AsyncSession, user_id: UUID) -> User:
        user = await UsersRepo.get_by_id_for_update(session, user_id)
        if user is None:
            raise MemberNotFoundError
        return user

    @staticmethod
    async def adjust_points(
        session: AsyncSession,
        *,
        user_id: UUID,
        new_points: int,
        now_utc: datetime,
        reason: str | None = None,
    ) -> User:
        if new_points < 0:
            raise MemberValidationError("points must be non-negative")

        user = await MemberService._get_for_update(session, user_id)
        await SubscriptionService.check_write_access(session, user.club_id, now_utc=now_utc)

        delta = new_points - user.points
        if delta == 0:
            return user

        await PointsLedger.post(
            session,
            user=user,
            amount=delta,
            reason=reason or MANUAL_ADJUSTMENT_REASON,
            source=PointsSource.MANUAL.value,
            now_utc=now_utc,
        )
        await session.flush()
        logger.info("member_points_adjusted", user_id=str(user.id), delta=delta, points=user.points)
        return user

    @staticmethod
    async def award_points(
        session: AsyncSession,
        *,
        user_id: UUID,
        amount: int,
        reason: str,
        source: str,
        now_utc: datetime,
    ) -> User:
        if amount <= 0:
            raise MemberValidationError("award amount must be positive")
        if source not in AWARD_SOURCES:
            raise MemberValidationError(f"source {source} cannot award points")

        user = await MemberService._get_for_update(session, user_id)
        await SubscriptionService.check_write_access(session, user.club_id, now_utc=now_utc)
        await PointsLedger.post(
            session,
            user=user,
            amount=amount,
            reason=reason,
            source=source,
            now_utc=now_utc,
        )
        await session.flush()
        return user

    @staticmethod
    async def delete_member(
        session: AsyncSession,
        *,
        user_id: UUID,
        now_utc: datetime,
    ) -> None:
        user = await MemberService._get_for_update(session, user_id)
        await SubscriptionService.check_write_access(session, user.club_id, now_utc=now_utc)
        await UsersRepo.delete_by_id(session, user.id)
        logger.info("member_deleted", user_id=str(user_id), club_id=str(user.club_id) if user.club_id else None)
