from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.billing.subscription.service import SubscriptionService
from app.db.models.products import Product
from app.db.models.purchases import Purchase
from app.db.repo.products_repo import ProductsRepo
from app.db.repo.purchases_repo import PurchasesRepo
from app.db.repo.users_repo import UsersRepo
from app.economy.points.service import PointsLedger
from app.economy.points.types import PointsSource
from app.economy.store.errors import (
    InsufficientFundsError,
    OutOfStockError,
    ProductValidationError,
    PurchaseNotFoundError,
    StoreNotFoundError,
)
from app.economy.store.types import (
    UNLIMITED_STOCK,
    ProductCategory,
    ProductDraft,
    PurchaseResult,
    PurchaseStatus,
)

logger = structlog.get_logger(__name__)

PRODUCT_CATEGORIES = frozenset(category.value for category in ProductCategory)


def _has_stock(product: Product) -> bool:
    return product.stock == UNLIMITED_STOCK or product.stock > 0


def _initial_purchase_status(product: Product) -> str:
    if product.category == ProductCategory.VIRTUAL.value:
        return PurchaseStatus.APPLIED.value
    return PurchaseStatus.PENDING.value


class StoreService:
    @staticmethod
    async def list_products(session: AsyncSession, *, club_id: UUID) -> list[Product]:
        return await ProductsRepo.list_by_club(session, club_id=club_id)

    @staticmethod
    def _validate_draft(draft: ProductDraft) -> None:
        if not draft.name or not draft.name.strip():
            raise ProductValidationError("name must not be empty")
        if draft.price <= 0:
            raise ProductValidationError("price must be positive")
        if draft.stock < UNLIMITED_STOCK:
            raise ProductValidationError("stock must be -1 (unlimited) or non-negative")
        if draft.category not in PRODUCT_CATEGORIES:
            raise ProductValidationError(f"unknown category: {draft.category}")

    @staticmethod
    async def create_product(
        session: AsyncSession,
        *,
        club_id: UUID,
        draft: ProductDraft,
        now_utc: datetime,
    ) -> Product:
        StoreService._validate_draft(draft)
        await SubscriptionService.check_write_access(session, club_id, now_utc=now_utc)

        return await ProductsRepo.create(
            session,
            product=Product(
                id=uuid4(),
                club_id=club_id,
                name=draft.name.strip(),
                description=draft.description,
                image_url=draft.image_url,
                price=draft.price,
                stock=draft.stock,
                category=draft.category,
                created_at=now_utc,
            ),
        )

    @staticmethod
    async def delete_product(
        session: AsyncSession,
        *,
        product_id: UUID,
        now_utc: datetime,
    ) -> None:
        product = await ProductsRepo.get_by_id_for_update(session, product_id)
        if product is None:
            raise StoreNotFoundError
        await SubscriptionService.check_write_access(session, product.club_id, now_utc=now_utc)
        await ProductsRepo.delete_by_id(session, product_id)

    @staticmethod
    async def buy(
        session: AsyncSession,
        *,
        user_id: UUID,
        product_id: UUID,
        now_utc: datetime,
    ) -> PurchaseResult:
        # Lock order is always user, then product.
        user = await UsersRepo.get_by_id_for_update(session, user_id)
        product = await ProductsRepo.get_by_id_for_update(session, product_id)
        if user is None or product is None:
            raise StoreNotFoundError
        if user.club_id != product.club_id:
            raise StoreNotFoundError

        await SubscriptionService.check_write_access(session, product.club_id, now_utc=now_utc)

        if user.points < product.price:
            raise InsufficientFundsError(balance=user.points, price=product.price)
        if not _has_stock(product):
            raise OutOfStockError

        if product.stock != UNLIMITED_STOCK:
            product.stock -= 1

        status = _initial_purchase_status(product)
        purchase = await PurchasesRepo.create(
            session,
            purchase=Purchase(
                id=uuid4(),
                user_id=user.id,
                product_id=product.id,
                product_name=product.name,
                cost=product.price,
                status=status,
                created_at=now_utc,
                applied_at=now_utc if status == PurchaseStatus.APPLIED.value else None,
            ),
        )
        await PointsLedger.post(
            session,
            user=user,
            amount=-product.price,
            reason=f"Compra: {product.name}",
            source=PointsSource.PURCHASE.value,
            now_utc=now_utc,
            purchase_id=purchase.id,
        )
        await session.flush()

        logger.info(
            "store_purchase_completed",
            user_id=str(user.id),
            product_id=str(product.id),
            purchase_id=str(purchase.id),
            cost=purchase.cost,
            status=purchase.status,
            remaining_stock=product.stock,
            new_balance=user.points,
        )
        return PurchaseResult(purchase=purchase, new_balance=user.points)

    @staticmethod
    async def list_user_purchases(session: AsyncSession, *, user_id: UUID) -> list[Purchase]:
        return await PurchasesRepo.list_by_user(session, user_id=user_id)

    @staticmethod
    async def mark_purchase_applied(
        session: AsyncSession,
        *,
        purchase_id: UUID,
        now_utc: datetime,
    ) -> Purchase:
        purchase = await PurchasesRepo.get_by_id_for_update(session, purchase_id)
        if purchase is None:
            raise PurchaseNotFoundError
        if purchase.status == PurchaseStatus.APPLIED.value:
            return purchase

        purchase.status = PurchaseStatus.APPLIED.value
        purchase.applied_at = now_utc
        await session.flush()
        logger.info("store_purchase_applied", purchase_id=str(purchase.id), user_id=str(purchase.user_id))
        return purchase
