from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, HTTPException, Request, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.exc import DBAPIError, IntegrityError

from app.api.routes.internal_common import (
    access_denied_as_http,
    assert_internal_access,
    db_error_as_http,
    load_actor,
    require,
)
from app.billing.subscription.errors import ClubAccessDeniedError, ClubNotFoundError
from app.core import clock
from app.core.policy import (
    ACTION_MEMBER_CREATE,
    ACTION_MEMBER_DELETE,
    ACTION_MEMBER_POINTS_ADJUST,
    Resource,
)
from app.db.models.users import User
from app.db.repo.users_repo import UsersRepo
from app.db.session import SessionLocal
from app.members.errors import (
    MemberEmailTakenError,
    MemberLimitExceededError,
    MemberNotFoundError,
    MemberValidationError,
)
from app.members.service import MemberService
from app.members.types import MemberDraft, MemberRole

router = APIRouter(tags=["internal", "members"])


class MemberCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: str = Field(min_length=3, max_length=320)
    role: str = Field(default=MemberRole.PATHFINDER.value, max_length=16)
    club_id: UUID | None = None
    is_active: bool = True


class PointsAdjustRequest(BaseModel):
    points: int = Field(ge=0)
    reason: str | None = Field(default=None, max_length=200)


class PointsAwardRequest(BaseModel):
    amount: int = Field(gt=0)
    reason: str = Field(min_length=1, max_length=200)
    source: str = Field(min_length=1, max_length=16)


class MemberResponse(BaseModel):
    id: UUID
    club_id: UUID | None
    name: str
    email: str
    role: str
    is_active: bool
    points: int = Field(ge=0)


def _as_response(user: User) -> MemberResponse:
    return MemberResponse(
        id=user.id,
        club_id=user.club_id,
        name=user.name,
        email=user.email,
        role=user.role,
        is_active=user.is_active,
        points=user.points,
    )


def _member_not_found() -> HTTPException:
    return HTTPException(status_code=404, detail={"code": "E_MEMBER_NOT_FOUND"})


@router.post("/internal/members", response_model=MemberResponse, status_code=status.HTTP_201_CREATED)
async def create_member(payload: MemberCreateRequest, request: Request) -> MemberResponse:
    assert_internal_access(request)
    now_utc = clock.utc_now()

    try:
        async with SessionLocal.begin() as session:
            actor = await load_actor(session, request)
            require(actor, ACTION_MEMBER_CREATE, Resource(club_id=payload.club_id))
            user = await MemberService.create_member(
                session,
                draft=MemberDraft(
                    name=payload.name,
                    email=payload.email,
                    role=payload.role,
                    club_id=payload.club_id,
                    is_active=payload.is_active,
                ),
                now_utc=now_utc,
            )
    except ClubAccessDeniedError as exc:
        raise access_denied_as_http(exc) from exc
    except ClubNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_CLUB_NOT_FOUND"}) from exc
    except MemberLimitExceededError as exc:
        raise HTTPException(
            status_code=409,
            detail={
                "code": "E_MEMBER_LIMIT",
                "message": str(exc),
                "current": exc.current,
                "limit": exc.limit,
            },
        ) from exc
    except MemberEmailTakenError as exc:
        raise HTTPException(status_code=409, detail={"code": "E_EMAIL_TAKEN"}) from exc
    except MemberValidationError as exc:
        raise HTTPException(
            status_code=422,
            detail={"code": "E_MEMBER_INVALID", "message": str(exc)},
        ) from exc
    except IntegrityError as exc:
        # Lost a race on the unique email index.
        raise HTTPException(status_code=409, detail={"code": "E_EMAIL_TAKEN"}) from exc
    except DBAPIError as exc:
        raise db_error_as_http(exc) from exc

    return _as_response(user)


@router.post("/internal/members/{user_id}/points", response_model=MemberResponse)
async def adjust_member_points(
    user_id: UUID,
    payload: PointsAdjustRequest,
    request: Request,
) -> MemberResponse:
    assert_internal_access(request)
    now_utc = clock.utc_now()

    try:
        async with SessionLocal.begin() as session:
            actor = await load_actor(session, request)
            target = await UsersRepo.get_by_id(session, user_id)
            if target is None:
                raise MemberNotFoundError
            require(actor, ACTION_MEMBER_POINTS_ADJUST, Resource(club_id=target.club_id))
            user = await MemberService.adjust_points(
                session,
                user_id=user_id,
                new_points=payload.points,
                reason=payload.reason,
                now_utc=now_utc,
            )
    except ClubAccessDeniedError as exc:
        raise access_denied_as_http(exc) from exc
    except MemberNotFoundError as exc:
        raise _member_not_found() from exc
    except MemberValidationError as exc:
        raise HTTPException(
            status_code=422,
            detail={"code": "E_MEMBER_INVALID", "message": str(exc)},
        ) from exc
    except DBAPIError as exc:
        raise db_error_as_http(exc) from exc

    return _as_response(user)


@router.post("/internal/members/{user_id}/awards", response_model=MemberResponse)
async def award_member_points(
    user_id: UUID,
    payload: PointsAwardRequest,
    request: Request,
) -> MemberResponse:
    assert_internal_access(request)
    now_utc = clock.utc_now()

    try:
        async with SessionLocal.begin() as session:
            actor = await load_actor(session, request)
            target = await UsersRepo.get_by_id(session, user_id)
            if target is None:
                raise MemberNotFoundError
            require(actor, ACTION_MEMBER_POINTS_ADJUST, Resource(club_id=target.club_id))
            user = await MemberService.award_points(
                session,
                user_id=user_id,
                amount=payload.amount,
                reason=payload.reason,
                source=payload.source,
                now_utc=now_utc,
            )
    except ClubAccessDeniedError as exc:
        raise access_denied_as_http(exc) from exc
    except MemberNotFoundError as exc:
        raise _member_not_found() from exc
    except MemberValidationError as exc:
        raise HTTPException(
            status_code=422,
            detail={"code": "E_MEMBER_INVALID", "message": str(exc)},
        ) from exc
    except DBAPIError as exc:
        raise db_error_as_http(exc) from exc

    return _as_response(user)


@router.delete("/internal/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_member(user_id: UUID, request: Request) -> Response:
    assert_internal_access(request)
    now_utc = clock.utc_now()

    try:
        async with SessionLocal.begin() as session:
            actor = await load_actor(session, request)
            target = await UsersRepo.get_by_id(session, user_id)
            if target is None:
                raise MemberNotFoundError
            require(actor, ACTION_MEMBER_DELETE, Resource(club_id=target.club_id))
            await MemberService.delete_member(session, user_id=user_id, now_utc=now_utc)
    except ClubAccessDeniedError as exc:
        raise access_denied_as_http(exc) from exc
    except MemberNotFoundError as exc:
        raise _member_not_found() from exc
    except DBAPIError as exc:
        raise db_error_as_http(exc) from exc

    return Response(status_code=status.HTTP_204_NO_CONTENT)
