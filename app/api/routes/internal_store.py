from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, Request, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.exc import DBAPIError

from app.api.routes.internal_common import (
    access_denied_as_http,
    assert_internal_access,
    db_error_as_http,
    load_actor,
    require,
)
from app.billing.subscription.errors import ClubAccessDeniedError
from app.core import clock
from app.core.policy import (
    ACTION_STORE_BUY,
    ACTION_STORE_PRODUCT_MANAGE,
    ACTION_STORE_PRODUCTS_READ,
    ACTION_STORE_PURCHASE_FULFILL,
    ACTION_STORE_PURCHASES_READ,
    Resource,
)
from app.db.models.products import Product
from app.db.models.purchases import Purchase
from app.db.repo.products_repo import ProductsRepo
from app.db.repo.purchases_repo import PurchasesRepo
from app.db.repo.users_repo import UsersRepo
from app.db.session import SessionLocal
from app.economy.store.errors import (
    InsufficientFundsError,
    OutOfStockError,
    ProductValidationError,
    PurchaseNotFoundError,
    StoreNotFoundError,
)
from app.economy.store.service import StoreService
from app.economy.store.types import UNLIMITED_STOCK, ProductCategory, ProductDraft
from app.notifications.service import notify
from app.notifications.types import NotificationSeverity

router = APIRouter(tags=["internal", "store"])


class ProductCreateRequest(BaseModel):
    club_id: UUID | None = None
    name: str = Field(min_length=1, max_length=200)
    price: int = Field(gt=0)
    stock: int = Field(default=UNLIMITED_STOCK, ge=UNLIMITED_STOCK)
    category: str = Field(default=ProductCategory.REAL.value, max_length=8)
    description: str | None = None
    image_url: str | None = None


class ProductResponse(BaseModel):
    id: UUID
    club_id: UUID
    name: str
    description: str | None
    image_url: str | None
    price: int
    stock: int
    category: str


class PurchaseResponse(BaseModel):
    id: UUID
    user_id: UUID
    product_id: UUID | None
    product_name: str
    cost: int
    status: str
    created_at: datetime
    applied_at: datetime | None


class BuyResponse(BaseModel):
    purchase: PurchaseResponse
    new_balance: int = Field(ge=0)


def _product_as_response(product: Product) -> ProductResponse:
    return ProductResponse(
        id=product.id,
        club_id=product.club_id,
        name=product.name,
        description=product.description,
        image_url=product.image_url,
        price=product.price,
        stock=product.stock,
        category=product.category,
    )


def _purchase_as_response(purchase: Purchase) -> PurchaseResponse:
    return PurchaseResponse(
        id=purchase.id,
        user_id=purchase.user_id,
        product_id=purchase.product_id,
        product_name=purchase.product_name,
        cost=purchase.cost,
        status=purchase.status,
        created_at=purchase.created_at,
        applied_at=purchase.applied_at,
    )


def _store_not_found() -> HTTPException:
    return HTTPException(status_code=404, detail={"code": "E_STORE_NOT_FOUND"})


@router.get("/internal/store/products", response_model=list[ProductResponse])
async def list_products(
    request: Request,
    club_id: UUID | None = Query(default=None),
) -> list[ProductResponse]:
    assert_internal_access(request)

    async with SessionLocal.begin() as session:
        actor = await load_actor(session, request)
        target_club_id = club_id or actor.club_id
        if target_club_id is None:
            return []
        require(actor, ACTION_STORE_PRODUCTS_READ, Resource(club_id=target_club_id))
        products = await StoreService.list_products(session, club_id=target_club_id)

    return [_product_as_response(product) for product in products]


@router.post(
    "/internal/store/products",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_product(payload: ProductCreateRequest, request: Request) -> ProductResponse:
    assert_internal_access(request)
    now_utc = clock.utc_now()

    try:
        async with SessionLocal.begin() as session:
            actor = await load_actor(session, request)
            club_id = payload.club_id or actor.club_id
            require(actor, ACTION_STORE_PRODUCT_MANAGE, Resource(club_id=club_id))
            if club_id is None:
                raise ProductValidationError("club_id is required")
            product = await StoreService.create_product(
                session,
                club_id=club_id,
                draft=ProductDraft(
                    name=payload.name,
                    price=payload.price,
                    stock=payload.stock,
                    category=payload.category,
                    description=payload.description,
                    image_url=payload.image_url,
                ),
                now_utc=now_utc,
            )
    except ClubAccessDeniedError as exc:
        raise access_denied_as_http(exc) from exc
    except ProductValidationError as exc:
        raise HTTPException(
            status_code=422,
            detail={"code": "E_PRODUCT_INVALID", "message": str(exc)},
        ) from exc
    except DBAPIError as exc:
        raise db_error_as_http(exc) from exc

    return _product_as_response(product)


@router.delete("/internal/store/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(product_id: UUID, request: Request) -> Response:
    assert_internal_access(request)
    now_utc = clock.utc_now()

    try:
        async with SessionLocal.begin() as session:
            actor = await load_actor(session, request)
            product = await ProductsRepo.get_by_id(session, product_id)
            if product is None:
                raise StoreNotFoundError
            require(actor, ACTION_STORE_PRODUCT_MANAGE, Resource(club_id=product.club_id))
            await StoreService.delete_product(session, product_id=product_id, now_utc=now_utc)
    except ClubAccessDeniedError as exc:
        raise access_denied_as_http(exc) from exc
    except StoreNotFoundError as exc:
        raise _store_not_found() from exc
    except DBAPIError as exc:
        raise db_error_as_http(exc) from exc

    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/internal/store/buy/{product_id}", response_model=BuyResponse)
async def buy_product(product_id: UUID, request: Request) -> BuyResponse:
    assert_internal_access(request)
    now_utc = clock.utc_now()

    try:
        async with SessionLocal.begin() as session:
            actor = await load_actor(session, request)
            require(
                actor,
                ACTION_STORE_BUY,
                Resource(club_id=actor.club_id, owner_user_id=actor.id),
            )
            result = await StoreService.buy(
                session,
                user_id=actor.id,
                product_id=product_id,
                now_utc=now_utc,
            )
    except ClubAccessDeniedError as exc:
        raise access_denied_as_http(exc) from exc
    except StoreNotFoundError as exc:
        raise _store_not_found() from exc
    except InsufficientFundsError as exc:
        raise HTTPException(
            status_code=409,
            detail={
                "code": "E_INSUFFICIENT_FUNDS",
                "message": str(exc),
                "balance": exc.balance,
                "price": exc.price,
            },
        ) from exc
    except OutOfStockError as exc:
        raise HTTPException(
            status_code=409,
            detail={"code": "E_OUT_OF_STOCK", "message": str(exc)},
        ) from exc
    except DBAPIError as exc:
        raise db_error_as_http(exc) from exc

    purchase = result.purchase
    await notify(
        actor.id,
        "Compra realizada",
        f"Você resgatou {purchase.product_name} por {purchase.cost} pontos.",
        NotificationSeverity.SUCCESS.value,
    )
    return BuyResponse(purchase=_purchase_as_response(purchase), new_balance=result.new_balance)


@router.get("/internal/store/my-purchases", response_model=list[PurchaseResponse])
async def list_my_purchases(request: Request) -> list[PurchaseResponse]:
    assert_internal_access(request)

    async with SessionLocal.begin() as session:
        actor = await load_actor(session, request)
        require(actor, ACTION_STORE_PURCHASES_READ, Resource(owner_user_id=actor.id))
        purchases = await StoreService.list_user_purchases(session, user_id=actor.id)

    return [_purchase_as_response(purchase) for purchase in purchases]


@router.post("/internal/store/purchases/{purchase_id}/apply", response_model=PurchaseResponse)
async def apply_purchase(purchase_id: UUID, request: Request) -> PurchaseResponse:
    assert_internal_access(request)
    now_utc = clock.utc_now()

    try:
        async with SessionLocal.begin() as session:
            actor = await load_actor(session, request)
            existing = await PurchasesRepo.get_by_id(session, purchase_id)
            if existing is None:
                raise PurchaseNotFoundError
            owner = await UsersRepo.get_by_id(session, existing.user_id)
            require(
                actor,
                ACTION_STORE_PURCHASE_FULFILL,
                Resource(club_id=owner.club_id if owner is not None else None),
            )
            purchase = await StoreService.mark_purchase_applied(
                session,
                purchase_id=purchase_id,
                now_utc=now_utc,
            )
    except PurchaseNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_PURCHASE_NOT_FOUND"}) from exc
    except DBAPIError as exc:
        raise db_error_as_http(exc) from exc

    if purchase.applied_at == now_utc:
        await notify(
            purchase.user_id,
            "Pedido entregue",
            f"Seu item {purchase.product_name} foi entregue.",
            NotificationSeverity.INFO.value,
        )
    return _purchase_as_response(purchase)
