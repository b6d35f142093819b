from __future__ import annotations

import structlog
from fastapi import HTTPException, Request
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from app.billing.subscription.errors import ClubAccessDeniedError
from app.core.config import get_settings
from app.core.policy import Resource, can
from app.db.models.users import User
from app.db.repo.users_repo import UsersRepo
from app.services.internal_auth import extract_client_ip, internal_access_failure, parse_actor_id

logger = structlog.get_logger(__name__)

# serialization_failure, deadlock_detected
RETRYABLE_SQLSTATES = frozenset({"40001", "40P01"})


def assert_internal_access(request: Request) -> None:
    settings = get_settings()
    reason = internal_access_failure(request, settings=settings)
    if reason is None:
        return

    logger.warning(
        "internal_api_auth_failed",
        reason=reason,
        path=request.url.path,
        client_ip=extract_client_ip(request, trusted_proxies=settings.internal_api_trusted_proxies),
    )
    raise HTTPException(status_code=403, detail={"code": "E_FORBIDDEN"})


async def load_actor(session: AsyncSession, request: Request) -> User:
    actor_id = parse_actor_id(request)
    if actor_id is None:
        raise HTTPException(status_code=401, detail={"code": "E_UNAUTHENTICATED"})

    actor = await UsersRepo.get_by_id(session, actor_id)
    if actor is None or not actor.is_active:
        logger.warning("internal_api_unknown_actor", actor_id=str(actor_id))
        raise HTTPException(status_code=401, detail={"code": "E_UNAUTHENTICATED"})
    # Later log lines of this request carry the acting member.
    structlog.contextvars.bind_contextvars(
        actor_id=str(actor.id),
        actor_role=actor.role,
        actor_club_id=str(actor.club_id) if actor.club_id is not None else None,
    )
    return actor


def require(actor: User, action: str, resource: Resource | None = None) -> None:
    if can(actor, action, resource):
        return
    logger.warning(
        "internal_api_policy_denied",
        actor_id=str(actor.id),
        role=actor.role,
        action=action,
        club_id=str(resource.club_id) if resource and resource.club_id else None,
    )
    raise HTTPException(status_code=403, detail={"code": "E_FORBIDDEN"})


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = exc.orig
    for candidate in (orig, getattr(orig, "__cause__", None)):
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code:
            return str(code)
    return None


def is_retryable_db_error(exc: DBAPIError) -> bool:
    return _sqlstate(exc) in RETRYABLE_SQLSTATES


def db_error_as_http(exc: DBAPIError) -> HTTPException:
    if is_retryable_db_error(exc):
        logger.warning("internal_api_transaction_conflict", sqlstate=_sqlstate(exc))
        return HTTPException(status_code=503, detail={"code": "E_RETRY"})
    logger.exception("internal_api_database_error")
    return HTTPException(status_code=500, detail={"code": "E_INTERNAL"})


def access_denied_as_http(exc: ClubAccessDeniedError) -> HTTPException:
    return HTTPException(
        status_code=402,
        detail={"code": "E_CLUB_ACCESS_DENIED", "message": str(exc), "club_name": exc.club_name},
    )
