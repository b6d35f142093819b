from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

ACTION_CLUB_SUBSCRIPTION_UPDATE = "club.subscription.update"
ACTION_CLUB_STATUS_READ = "club.status.read"
ACTION_CLUB_BILLING_PAY = "club.billing.pay"
ACTION_MEMBER_CREATE = "member.create"
ACTION_MEMBER_DELETE = "member.delete"
ACTION_MEMBER_POINTS_ADJUST = "member.points.adjust"
ACTION_STORE_PRODUCT_MANAGE = "store.product.manage"
ACTION_STORE_PURCHASE_FULFILL = "store.purchase.fulfill"
ACTION_STORE_PRODUCTS_READ = "store.products.read"
ACTION_STORE_BUY = "store.buy"
ACTION_STORE_PURCHASES_READ = "store.purchases.read"
ACTION_NOTIFICATIONS_READ = "notifications.read"

MASTER_ROLE = "MASTER"
CLUB_ADMIN_ROLES = frozenset({"OWNER", "ADMIN", "DIRECTOR"})
STORE_MANAGER_ROLES = CLUB_ADMIN_ROLES | {"TREASURER"}

CLUB_SCOPED_RULES: dict[str, frozenset[str]] = {
    ACTION_CLUB_STATUS_READ: CLUB_ADMIN_ROLES | {"TREASURER", "SECRETARY"},
    ACTION_CLUB_BILLING_PAY: CLUB_ADMIN_ROLES | {"TREASURER"},
    ACTION_MEMBER_CREATE: CLUB_ADMIN_ROLES,
    ACTION_MEMBER_DELETE: CLUB_ADMIN_ROLES,
    ACTION_MEMBER_POINTS_ADJUST: CLUB_ADMIN_ROLES,
    ACTION_STORE_PRODUCT_MANAGE: STORE_MANAGER_ROLES,
    ACTION_STORE_PURCHASE_FULFILL: STORE_MANAGER_ROLES,
}
SELF_SCOPED_ACTIONS = frozenset(
    {
        ACTION_STORE_PRODUCTS_READ,
        ACTION_STORE_BUY,
        ACTION_STORE_PURCHASES_READ,
        ACTION_NOTIFICATIONS_READ,
    }
)


class Actor(Protocol):
    id: UUID
    role: str
    club_id: UUID | None
    is_active: bool


@dataclass(frozen=True, slots=True)
class Resource:
    club_id: UUID | None = None
    owner_user_id: UUID | None = None


def can(actor: Actor | None, action: str, resource: Resource | None = None) -> bool:
    if actor is None or not actor.is_active:
        return False
    if actor.role == MASTER_ROLE:
        return True

    target = resource or Resource()
    if action in SELF_SCOPED_ACTIONS:
        if target.owner_user_id is not None and target.owner_user_id != actor.id:
            return False
        return target.club_id is None or target.club_id == actor.club_id

    allowed_roles = CLUB_SCOPED_RULES.get(action)
    if allowed_roles is None or actor.role not in allowed_roles:
        return False
    return actor.club_id is not None and target.club_id == actor.club_id
