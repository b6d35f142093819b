from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.points_history import PointsHistoryEntry
from app.db.models.users import User
from app.db.repo.points_history_repo import PointsHistoryRepo
from app.economy.points.errors import InsufficientPointsError, InvalidPointsAmountError
from app.economy.points.types import PointsSource

SOURCES = frozenset(source.value for source in PointsSource)


class PointsLedger:
    """Keeps ``users.points`` equal to the sum of the user's history rows.

    Callers must hold the user row lock (``UsersRepo.get_by_id_for_update``)
    and run inside their own transaction; nothing here commits.
    """

    @staticmethod
    async def post(
        session: AsyncSession,
        *,
        user: User,
        amount: int,
        reason: str,
        source: str,
        now_utc: datetime,
        purchase_id: UUID | None = None,
    ) -> PointsHistoryEntry:
        if amount == 0:
            raise InvalidPointsAmountError("amount must be non-zero")
        if source not in SOURCES:
            raise InvalidPointsAmountError(f"unknown points source: {source}")

        balance_after = user.points + amount
        if balance_after < 0:
            raise InsufficientPointsError(balance=user.points, amount=amount)

        user.points = balance_after
        return await PointsHistoryRepo.create(
            session,
            entry=PointsHistoryEntry(
                user_id=user.id,
                amount=amount,
                reason=reason,
                source=source,
                balance_after=balance_after,
                purchase_id=purchase_id,
                created_at=now_utc,
            ),
        )

    @staticmethod
    async def replay_balance(session: AsyncSession, *, user_id: UUID) -> int:
        return await PointsHistoryRepo.sum_amount_by_user(session, user_id=user_id)
