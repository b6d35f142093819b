from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

import structlog
from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from app.api.routes.internal_common import assert_internal_access, load_actor, require
from app.billing.subscription.errors import ClubNotFoundError, SubscriptionUpdateValidationError
from app.billing.subscription.pricing import price_band_for_members
from app.billing.subscription.service import SubscriptionService
from app.billing.subscription.types import ClubStatusResult, SubscriptionUpdate
from app.core import clock
from app.core.config import get_settings
from app.core.policy import (
    ACTION_CLUB_BILLING_PAY,
    ACTION_CLUB_STATUS_READ,
    ACTION_CLUB_SUBSCRIPTION_UPDATE,
    Resource,
)
from app.db.session import SessionLocal
from app.services.payments import PaymentGatewayClient, PaymentGatewayError

router = APIRouter(tags=["internal", "clubs"])
logger = structlog.get_logger(__name__)


class ClubStatusResponse(BaseModel):
    club_id: UUID
    name: str
    plan_tier: str
    subscription_status: str
    effective_status: str
    member_limit: int = Field(ge=0)
    paid_members: int = Field(ge=0)
    total_members: int = Field(ge=0)
    next_billing_date: datetime | None
    grace_period_days: int = Field(ge=0)
    billing_cutoff: datetime | None
    write_access: bool


class SubscriptionUpdateRequest(BaseModel):
    plan_tier: str = Field(min_length=1, max_length=16)
    subscription_status: str = Field(min_length=1, max_length=16)
    member_limit: int = Field(ge=0)
    next_billing_date: datetime | None = None
    grace_period_days: int = Field(default=0, ge=0)


class PixChargeResponse(BaseModel):
    reference_id: str
    band_code: str
    amount: Decimal
    qr_code_image_url: str | None
    payload: str | None


def _as_response(result: ClubStatusResult) -> ClubStatusResponse:
    return ClubStatusResponse(
        club_id=result.club_id,
        name=result.name,
        plan_tier=result.plan_tier,
        subscription_status=result.subscription_status,
        effective_status=result.effective_status,
        member_limit=result.member_limit,
        paid_members=result.paid_members,
        total_members=result.total_members,
        next_billing_date=result.next_billing_date,
        grace_period_days=result.grace_period_days,
        billing_cutoff=result.billing_cutoff,
        write_access=result.write_access,
    )


@router.get("/internal/clubs/{club_id}/status", response_model=ClubStatusResponse)
async def get_club_status(club_id: UUID, request: Request) -> ClubStatusResponse:
    assert_internal_access(request)
    now_utc = clock.utc_now()

    try:
        async with SessionLocal.begin() as session:
            actor = await load_actor(session, request)
            require(actor, ACTION_CLUB_STATUS_READ, Resource(club_id=club_id))
            result = await SubscriptionService.get_club_status(session, club_id, now_utc=now_utc)
    except ClubNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_CLUB_NOT_FOUND"}) from exc

    return _as_response(result)


@router.put("/internal/clubs/{club_id}/subscription", response_model=ClubStatusResponse)
async def update_club_subscription(
    club_id: UUID,
    payload: SubscriptionUpdateRequest,
    request: Request,
) -> ClubStatusResponse:
    assert_internal_access(request)
    now_utc = clock.utc_now()

    try:
        async with SessionLocal.begin() as session:
            actor = await load_actor(session, request)
            require(actor, ACTION_CLUB_SUBSCRIPTION_UPDATE, Resource(club_id=club_id))
            await SubscriptionService.update_subscription(
                session,
                club_id,
                update=SubscriptionUpdate(
                    plan_tier=payload.plan_tier,
                    subscription_status=payload.subscription_status,
                    member_limit=payload.member_limit,
                    next_billing_date=payload.next_billing_date,
                    grace_period_days=payload.grace_period_days,
                ),
                now_utc=now_utc,
            )
            result = await SubscriptionService.get_club_status(session, club_id, now_utc=now_utc)
    except ClubNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_CLUB_NOT_FOUND"}) from exc
    except SubscriptionUpdateValidationError as exc:
        raise HTTPException(
            status_code=422,
            detail={"code": "E_SUBSCRIPTION_INVALID", "message": str(exc)},
        ) from exc

    return _as_response(result)


@router.post("/internal/clubs/{club_id}/billing/pix", response_model=PixChargeResponse)
async def create_club_pix_charge(club_id: UUID, request: Request) -> PixChargeResponse:
    assert_internal_access(request)
    now_utc = clock.utc_now()

    try:
        async with SessionLocal.begin() as session:
            actor = await load_actor(session, request)
            require(actor, ACTION_CLUB_BILLING_PAY, Resource(club_id=club_id))
            status = await SubscriptionService.get_club_status(session, club_id, now_utc=now_utc)
    except ClubNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_CLUB_NOT_FOUND"}) from exc

    band = price_band_for_members(status.total_members)
    client = PaymentGatewayClient.from_settings(get_settings())
    try:
        charge = await client.create_pix_charge(
            user_id=actor.id,
            amount=band.monthly_price,
            description=f"Assinatura {band.title} - {status.name}",
            user_name=actor.name,
            user_email=actor.email,
            now_utc=now_utc,
        )
    except PaymentGatewayError as exc:
        raise HTTPException(status_code=502, detail={"code": "E_PAYMENT_GATEWAY"}) from exc

    logger.info(
        "club_pix_charge_requested",
        club_id=str(club_id),
        actor_id=str(actor.id),
        band_code=band.band_code,
        reference_id=charge.reference_id,
    )
    return PixChargeResponse(
        reference_id=charge.reference_id,
        band_code=band.band_code,
        amount=band.monthly_price,
        qr_code_image_url=charge.qr_code_image_url,
        payload=charge.payload,
    )
