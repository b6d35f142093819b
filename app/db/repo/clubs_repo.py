from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.clubs import Club


class ClubsRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, club_id: UUID) -> Club | None:
        return await session.get(Club, club_id)

    @staticmethod
    async def get_by_id_for_update(session: AsyncSession, club_id: UUID) -> Club | None:
        stmt = select(Club).where(Club.id == club_id).with_for_update()
        stmt = stmt.execution_options(populate_existing=True)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_billing_fields(
        session: AsyncSession,
        club_id: UUID,
    ) -> tuple[str, str, datetime | None, int | None] | None:
        stmt = select(
            Club.name,
            Club.subscription_status,
            Club.next_billing_date,
            Club.grace_period_days,
        ).where(Club.id == club_id)
        result = await session.execute(stmt)
        row = result.one_or_none()
        if row is None:
            return None
        name, status, next_billing_date, grace_period_days = row
        return str(name), str(status), next_billing_date, grace_period_days

    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        name: str,
        region: str | None = None,
        mission: str | None = None,
        union: str | None = None,
        plan_tier: str = "TRIAL",
        subscription_status: str = "TRIAL",
        member_limit: int = 30,
        next_billing_date: datetime | None = None,
        grace_period_days: int = 0,
    ) -> Club:
        club = Club(
            id=uuid4(),
            name=name,
            region=region,
            mission=mission,
            union=union,
            plan_tier=plan_tier,
            subscription_status=subscription_status,
            member_limit=member_limit,
            next_billing_date=next_billing_date,
            grace_period_days=grace_period_days,
        )
        session.add(club)
        await session.flush()
        return club

    @staticmethod
    async def list_billing_candidates(
        session: AsyncSession,
        *,
        due_before_utc: datetime,
        limit: int = 500,
    ) -> list[Club]:
        stmt = (
            select(Club)
            .where(
                or_(
                    Club.subscription_status.in_(("OVERDUE", "CANCELED")),
                    Club.next_billing_date <= due_before_utc,
                )
            )
            .order_by(Club.next_billing_date.asc().nulls_last(), Club.id.asc())
            .limit(max(1, int(limit)))
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())
