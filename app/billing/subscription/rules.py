from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta, timezone

from app.billing.subscription.constants import BLOCKING_STATUSES
from app.billing.subscription.types import BillingReminderKind, ClubBillingSnapshot, SubscriptionStatus


def resolve_grace_period_days(value: object) -> int:
    """Falls back to zero days for missing or non-numeric grace values."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        numeric = float(value)
    else:
        try:
            numeric = float(str(value))
        except ValueError:
            return 0
    if math.isnan(numeric) or math.isinf(numeric):
        return 0
    return max(0, int(numeric))


def _as_utc(value: datetime | date) -> datetime:
    if not isinstance(value, datetime):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def billing_cutoff(next_billing_date: datetime | date | None, grace_period_days: object) -> datetime | None:
    if next_billing_date is None:
        return None
    try:
        return _as_utc(next_billing_date) + timedelta(days=resolve_grace_period_days(grace_period_days))
    except OverflowError:
        # Grace beyond the datetime range never expires.
        return datetime.max.replace(tzinfo=timezone.utc)


def is_overdue(
    *,
    subscription_status: str,
    next_billing_date: datetime | date | None,
    grace_period_days: object,
    now_utc: datetime,
) -> bool:
    if subscription_status in BLOCKING_STATUSES:
        return True

    cutoff = billing_cutoff(next_billing_date, grace_period_days)
    if cutoff is None:
        return False
    return _as_utc(now_utc) > cutoff


def snapshot_is_overdue(snapshot: ClubBillingSnapshot, *, now_utc: datetime) -> bool:
    return is_overdue(
        subscription_status=snapshot.subscription_status,
        next_billing_date=snapshot.next_billing_date,
        grace_period_days=snapshot.grace_period_days,
        now_utc=now_utc,
    )


def effective_status(snapshot: ClubBillingSnapshot, *, now_utc: datetime) -> str:
    if snapshot.subscription_status in BLOCKING_STATUSES:
        return snapshot.subscription_status
    if snapshot_is_overdue(snapshot, now_utc=now_utc):
        return SubscriptionStatus.OVERDUE.value
    return snapshot.subscription_status


def classify_billing_reminder(
    snapshot: ClubBillingSnapshot,
    *,
    now_utc: datetime,
    reminder_window: timedelta,
) -> BillingReminderKind | None:
    if snapshot.subscription_status == SubscriptionStatus.CANCELED.value:
        return None
    if snapshot_is_overdue(snapshot, now_utc=now_utc):
        return BillingReminderKind.BLOCKED
    if snapshot.next_billing_date is None:
        return None

    due_at = _as_utc(snapshot.next_billing_date)
    now = _as_utc(now_utc)
    if due_at < now:
        return BillingReminderKind.GRACE
    if due_at - now <= reminder_window:
        return BillingReminderKind.UPCOMING
    return None
