from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.points_history import PointsHistoryEntry


class PointsHistoryRepo:
    @staticmethod
    async def create(session: AsyncSession, *, entry: PointsHistoryEntry) -> PointsHistoryEntry:
        session.add(entry)
        await session.flush()
        return entry

    @staticmethod
    async def sum_amount_by_user(session: AsyncSession, *, user_id: UUID) -> int:
        stmt = select(func.coalesce(func.sum(PointsHistoryEntry.amount), 0)).where(
            PointsHistoryEntry.user_id == user_id
        )
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    @staticmethod
    async def list_by_user(
        session: AsyncSession,
        *,
        user_id: UUID,
        limit: int = 50,
    ) -> list[PointsHistoryEntry]:
        stmt = (
            select(PointsHistoryEntry)
            .where(PointsHistoryEntry.user_id == user_id)
            .order_by(PointsHistoryEntry.created_at.desc(), PointsHistoryEntry.id.desc())
            .limit(max(1, int(limit)))
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())
