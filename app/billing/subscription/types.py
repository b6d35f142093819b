from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID


class PlanTier(str, Enum):
    TRIAL = "TRIAL"
    FREE = "FREE"
    PLAN_P = "PLAN_P"
    PLAN_M = "PLAN_M"
    PLAN_G = "PLAN_G"


class SubscriptionStatus(str, Enum):
    TRIAL = "TRIAL"
    ACTIVE = "ACTIVE"
    OVERDUE = "OVERDUE"
    CANCELED = "CANCELED"


class BillingReminderKind(str, Enum):
    UPCOMING = "UPCOMING"
    GRACE = "GRACE"
    BLOCKED = "BLOCKED"


@dataclass(frozen=True, slots=True)
class ClubBillingSnapshot:
    name: str
    subscription_status: str
    next_billing_date: datetime | None
    grace_period_days: object = 0


@dataclass(slots=True)
class SubscriptionUpdate:
    plan_tier: str
    subscription_status: str
    member_limit: int
    next_billing_date: datetime | None
    grace_period_days: int = 0


@dataclass(slots=True)
class ClubStatusResult:
    club_id: UUID
    name: str
    plan_tier: str
    subscription_status: str
    effective_status: str
    member_limit: int
    paid_members: int
    total_members: int
    next_billing_date: datetime | None
    grace_period_days: int
    billing_cutoff: datetime | None
    write_access: bool


@dataclass(frozen=True, slots=True)
class BillingReminder:
    club_id: UUID
    club_name: str
    kind: BillingReminderKind
    next_billing_date: datetime | None
    billing_cutoff: datetime | None
