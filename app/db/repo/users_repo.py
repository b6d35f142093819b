from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID, uuid4

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.users import User


class UsersRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, user_id: UUID) -> User | None:
        return await session.get(User, user_id)

    @staticmethod
    async def get_by_id_for_update(session: AsyncSession, user_id: UUID) -> User | None:
        stmt = select(User).where(User.id == user_id).with_for_update()
        stmt = stmt.execution_options(populate_existing=True)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_email(session: AsyncSession, email: str) -> User | None:
        stmt = select(User).where(func.lower(User.email) == email.strip().lower())
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_by_club_and_roles(
        session: AsyncSession,
        *,
        club_id: UUID,
        roles: Sequence[str],
    ) -> list[User]:
        stmt = (
            select(User)
            .where(
                User.club_id == club_id,
                User.role.in_(tuple(roles)),
                User.is_active.is_(True),
            )
            .order_by(User.created_at.asc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def count_active_by_club_excluding_roles(
        session: AsyncSession,
        *,
        club_id: UUID,
        excluded_roles: Sequence[str],
    ) -> int:
        stmt = select(func.count(User.id)).where(
            User.club_id == club_id,
            User.role.not_in(tuple(excluded_roles)),
            User.is_active.is_(True),
        )
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    @staticmethod
    async def count_by_club(session: AsyncSession, *, club_id: UUID) -> int:
        stmt = select(func.count(User.id)).where(User.club_id == club_id)
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        name: str,
        email: str,
        role: str,
        club_id: UUID | None,
        is_active: bool = True,
    ) -> User:
        user = User(
            id=uuid4(),
            club_id=club_id,
            name=name,
            email=email.strip().lower(),
            role=role,
            is_active=is_active,
            points=0,
        )
        session.add(user)
        await session.flush()
        return user

    @staticmethod
    async def delete_by_id(session: AsyncSession, user_id: UUID) -> int:
        stmt = delete(User).where(User.id == user_id)
        result = await session.execute(stmt)
        return result.rowcount or 0
