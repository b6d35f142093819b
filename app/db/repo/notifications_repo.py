from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.notifications import Notification


class NotificationsRepo:
    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        user_id: UUID,
        title: str,
        message: str,
        severity: str,
        created_at: datetime,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            title=title,
            message=message,
            severity=severity,
            is_read=False,
            created_at=created_at,
        )
        session.add(notification)
        await session.flush()
        return notification

    @staticmethod
    async def list_for_user(
        session: AsyncSession,
        *,
        user_id: UUID,
        limit: int = 20,
    ) -> list[Notification]:
        stmt = (
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(max(1, int(limit)))
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def count_unread(session: AsyncSession, *, user_id: UUID) -> int:
        stmt = select(func.count(Notification.id)).where(
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
        )
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    @staticmethod
    async def mark_as_read(session: AsyncSession, *, notification_id: int, user_id: UUID) -> int:
        stmt = (
            update(Notification)
            .where(Notification.id == notification_id, Notification.user_id == user_id)
            .values(is_read=True)
        )
        result = await session.execute(stmt)
        return result.rowcount or 0

    @staticmethod
    async def mark_all_as_read(session: AsyncSession, *, user_id: UUID) -> int:
        stmt = (
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True)
        )
        result = await session.execute(stmt)
        return result.rowcount or 0
