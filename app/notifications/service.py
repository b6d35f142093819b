from __future__ import annotations

from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import utc_now
from app.db.models.notifications import Notification
from app.db.repo.notifications_repo import NotificationsRepo
from app.db.session import SessionLocal
from app.notifications.errors import NotificationNotFoundError
from app.notifications.types import NotificationInbox, NotificationSeverity

logger = structlog.get_logger(__name__)

INBOX_LIMIT = 20
SEVERITIES = frozenset(severity.value for severity in NotificationSeverity)


class NotificationService:
    @staticmethod
    async def send(
        session: AsyncSession,
        *,
        user_id: UUID,
        title: str,
        message: str,
        severity: str = NotificationSeverity.INFO.value,
    ) -> Notification:
        if severity not in SEVERITIES:
            raise ValueError(f"unknown notification severity: {severity}")
        return await NotificationsRepo.create(
            session,
            user_id=user_id,
            title=title,
            message=message,
            severity=severity,
            created_at=utc_now(),
        )

    @staticmethod
    async def inbox(session: AsyncSession, *, user_id: UUID) -> NotificationInbox:
        notifications = await NotificationsRepo.list_for_user(session, user_id=user_id, limit=INBOX_LIMIT)
        unread_count = await NotificationsRepo.count_unread(session, user_id=user_id)
        return NotificationInbox(notifications=notifications, unread_count=unread_count)

    @staticmethod
    async def mark_as_read(session: AsyncSession, *, user_id: UUID, notification_id: int) -> None:
        updated = await NotificationsRepo.mark_as_read(
            session,
            notification_id=notification_id,
            user_id=user_id,
        )
        if updated == 0:
            raise NotificationNotFoundError

    @staticmethod
    async def mark_all_as_read(session: AsyncSession, *, user_id: UUID) -> int:
        return await NotificationsRepo.mark_all_as_read(session, user_id=user_id)


async def notify(
    user_id: UUID,
    title: str,
    message: str,
    severity: str = NotificationSeverity.INFO.value,
) -> bool:
    """Delivers a notification in its own transaction.

    Must be awaited only after the caller's transaction has committed. Delivery
    failures are logged and reported as ``False``; they never raise.
    """
    try:
        async with SessionLocal.begin() as session:
            await NotificationService.send(
                session,
                user_id=user_id,
                title=title,
                message=message,
                severity=severity,
            )
        return True
    except Exception:
        logger.exception(
            "notification_delivery_failed",
            user_id=str(user_id),
            title=title,
            severity=severity,
        )
        return False
