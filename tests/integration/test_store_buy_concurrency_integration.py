from __future__ import annotations

import asyncio
from datetime import datetime

import pytest

from app.db.repo.points_history_repo import PointsHistoryRepo
from app.db.repo.products_repo import ProductsRepo
from app.db.repo.purchases_repo import PurchasesRepo
from app.db.repo.users_repo import UsersRepo
from app.db.session import SessionLocal
from app.economy.points.service import PointsLedger
from app.economy.store.errors import InsufficientFundsError, OutOfStockError
from app.economy.store.service import StoreService
from tests.integration.club_ledger_fixtures import UTC, create_club, create_member, create_product


async def _attempt_buy(barrier: asyncio.Event, *, user_id, product_id, now_utc: datetime) -> str:
    await barrier.wait()
    try:
        async with SessionLocal.begin() as session:
            await StoreService.buy(session, user_id=user_id, product_id=product_id, now_utc=now_utc)
        return "bought"
    except OutOfStockError:
        return "out_of_stock"
    except InsufficientFundsError:
        return "insufficient_funds"


@pytest.mark.asyncio
async def test_parallel_buyers_never_oversell_last_item() -> None:
    now_utc = datetime.now(UTC)
    club_id = await create_club(now_utc=now_utc)
    product_id = await create_product(club_id=club_id, price=10, stock=1)
    buyers = [await create_member(club_id=club_id, points=50) for _ in range(4)]
    barrier = asyncio.Event()

    tasks = [
        asyncio.create_task(_attempt_buy(barrier, user_id=user_id, product_id=product_id, now_utc=now_utc))
        for user_id in buyers
    ]
    barrier.set()
    outcomes = await asyncio.gather(*tasks)

    assert sorted(outcomes) == ["bought", "out_of_stock", "out_of_stock", "out_of_stock"]
    async with SessionLocal.begin() as session:
        product = await ProductsRepo.get_by_id(session, product_id)
        assert product is not None
        assert product.stock == 0
        assert await PurchasesRepo.count_by_product(session, product_id=product_id) == 1


@pytest.mark.asyncio
async def test_parallel_purchases_by_one_member_never_overdraw() -> None:
    now_utc = datetime.now(UTC)
    club_id = await create_club(now_utc=now_utc)
    product_id = await create_product(club_id=club_id, price=30)
    user_id = await create_member(club_id=club_id, points=100)
    barrier = asyncio.Event()

    tasks = [
        asyncio.create_task(_attempt_buy(barrier, user_id=user_id, product_id=product_id, now_utc=now_utc))
        for _ in range(5)
    ]
    barrier.set()
    outcomes = await asyncio.gather(*tasks)

    assert outcomes.count("bought") == 3
    assert outcomes.count("insufficient_funds") == 2
    async with SessionLocal.begin() as session:
        user = await UsersRepo.get_by_id(session, user_id)
        assert user is not None
        assert user.points == 10
        assert await PointsLedger.replay_balance(session, user_id=user_id) == user.points
        assert await PurchasesRepo.sum_cost_by_user(session, user_id=user_id) == 90


@pytest.mark.asyncio
async def test_parallel_purchases_of_different_products_never_overdraw() -> None:
    now_utc = datetime.now(UTC)
    club_id = await create_club(now_utc=now_utc)
    first_product_id = await create_product(club_id=club_id, price=60)
    second_product_id = await create_product(club_id=club_id, price=70)
    user_id = await create_member(club_id=club_id, points=100)
    barrier = asyncio.Event()

    tasks = [
        asyncio.create_task(_attempt_buy(barrier, user_id=user_id, product_id=product_id, now_utc=now_utc))
        for product_id in (first_product_id, second_product_id)
    ]
    barrier.set()
    outcomes = await asyncio.gather(*tasks)

    assert sorted(outcomes) == ["bought", "insufficient_funds"]
    async with SessionLocal.begin() as session:
        user = await UsersRepo.get_by_id(session, user_id)
        assert user is not None
        assert user.points in {40, 30}
        assert await PointsLedger.replay_balance(session, user_id=user_id) == user.points
        assert await PurchasesRepo.sum_cost_by_user(session, user_id=user_id) == 100 - user.points


@pytest.mark.asyncio
async def test_virtual_purchase_is_applied_and_real_purchase_pending() -> None:
    now_utc = datetime.now(UTC)
    club_id = await create_club(now_utc=now_utc)
    virtual_id = await create_product(club_id=club_id, price=5, category="VIRTUAL")
    real_id = await create_product(club_id=club_id, price=5, category="REAL")
    user_id = await create_member(club_id=club_id, points=20)

    async with SessionLocal.begin() as session:
        virtual = await StoreService.buy(session, user_id=user_id, product_id=virtual_id, now_utc=now_utc)
    async with SessionLocal.begin() as session:
        real = await StoreService.buy(session, user_id=user_id, product_id=real_id, now_utc=now_utc)

    assert virtual.purchase.status == "APPLIED"
    assert virtual.purchase.applied_at is not None
    assert real.purchase.status == "PENDING"
    assert real.new_balance == 10


@pytest.mark.asyncio
async def test_deleting_product_keeps_purchase_history() -> None:
    now_utc = datetime.now(UTC)
    club_id = await create_club(now_utc=now_utc)
    product_id = await create_product(club_id=club_id, price=5)
    user_id = await create_member(club_id=club_id, points=20)

    async with SessionLocal.begin() as session:
        result = await StoreService.buy(session, user_id=user_id, product_id=product_id, now_utc=now_utc)
    async with SessionLocal.begin() as session:
        await StoreService.delete_product(session, product_id=product_id, now_utc=now_utc)

    async with SessionLocal.begin() as session:
        purchase = await PurchasesRepo.get_by_id(session, result.purchase.id)
        assert purchase is not None
        assert purchase.product_id is None
        assert purchase.product_name == result.purchase.product_name
        assert await PointsHistoryRepo.sum_amount_by_user(session, user_id=user_id) == 15
