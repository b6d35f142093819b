from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from app.api.routes.internal_common import assert_internal_access, load_actor, require
from app.core.policy import ACTION_NOTIFICATIONS_READ, Resource
from app.db.session import SessionLocal
from app.notifications.errors import NotificationNotFoundError
from app.notifications.service import NotificationService

router = APIRouter(tags=["internal", "notifications"])


class NotificationResponse(BaseModel):
    id: int
    title: str
    message: str
    severity: str
    is_read: bool
    created_at: datetime


class NotificationInboxResponse(BaseModel):
    notifications: list[NotificationResponse]
    unread_count: int = Field(ge=0)


class MarkAllReadResponse(BaseModel):
    updated: int = Field(ge=0)


@router.get("/internal/notifications", response_model=NotificationInboxResponse)
async def get_inbox(request: Request) -> NotificationInboxResponse:
    assert_internal_access(request)

    async with SessionLocal.begin() as session:
        actor = await load_actor(session, request)
        require(actor, ACTION_NOTIFICATIONS_READ, Resource(owner_user_id=actor.id))
        inbox = await NotificationService.inbox(session, user_id=actor.id)

    return NotificationInboxResponse(
        notifications=[
            NotificationResponse(
                id=item.id,
                title=item.title,
                message=item.message,
                severity=item.severity,
                is_read=item.is_read,
                created_at=item.created_at,
            )
            for item in inbox.notifications
        ],
        unread_count=inbox.unread_count,
    )


@router.post("/internal/notifications/read-all", response_model=MarkAllReadResponse)
async def mark_all_read(request: Request) -> MarkAllReadResponse:
    assert_internal_access(request)

    async with SessionLocal.begin() as session:
        actor = await load_actor(session, request)
        require(actor, ACTION_NOTIFICATIONS_READ, Resource(owner_user_id=actor.id))
        updated = await NotificationService.mark_all_as_read(session, user_id=actor.id)

    return MarkAllReadResponse(updated=updated)


@router.post("/internal/notifications/{notification_id}/read", status_code=204)
async def mark_read(notification_id: int, request: Request) -> None:
    assert_internal_access(request)

    try:
        async with SessionLocal.begin() as session:
            actor = await load_actor(session, request)
            require(actor, ACTION_NOTIFICATIONS_READ, Resource(owner_user_id=actor.id))
            await NotificationService.mark_as_read(
                session,
                user_id=actor.id,
                notification_id=notification_id,
            )
    except NotificationNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_NOTIFICATION_NOT_FOUND"}) from exc
