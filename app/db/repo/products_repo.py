from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.products import Product


class ProductsRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, product_id: UUID) -> Product | None:
        return await session.get(Product, product_id)

    @staticmethod
    async def get_by_id_for_update(session: AsyncSession, product_id: UUID) -> Product | None:
        stmt = select(Product).where(Product.id == product_id).with_for_update()
        stmt = stmt.execution_options(populate_existing=True)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_by_club(session: AsyncSession, *, club_id: UUID) -> list[Product]:
        stmt = (
            select(Product)
            .where(Product.club_id == club_id)
            .order_by(Product.price.asc(), Product.name.asc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def create(session: AsyncSession, *, product: Product) -> Product:
        session.add(product)
        await session.flush()
        return product

    @staticmethod
    async def delete_by_id(session: AsyncSession, product_id: UUID) -> int:
        stmt = delete(Product).where(Product.id == product_id)
        result = await session.execute(stmt)
        return result.rowcount or 0
