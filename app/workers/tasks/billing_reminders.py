from __future__ import annotations

import asyncio
from datetime import timedelta
from uuid import UUID

import structlog
from celery.schedules import crontab

from app.billing.subscription.constants import CLUB_ADMIN_ROLES
from app.billing.subscription.service import SubscriptionService
from app.billing.subscription.types import BillingReminder, BillingReminderKind
from app.core import clock
from app.core.config import get_settings
from app.db.repo.users_repo import UsersRepo
from app.db.session import SessionLocal, dispose_engine
from app.notifications.service import notify
from app.notifications.types import NotificationSeverity
from app.workers.celery_app import celery_app

logger = structlog.get_logger(__name__)

BILLING_REMINDER_SCHEDULE_KEY = "billing-reminders-daily"
# Wall-clock hour in celery_app.conf.timezone (America/Sao_Paulo).
REMINDER_HOUR_LOCAL = 12


def _format_date(reminder: BillingReminder) -> str:
    if reminder.next_billing_date is None:
        return "-"
    return reminder.next_billing_date.strftime("%d/%m/%Y")


def build_reminder_message(reminder: BillingReminder) -> tuple[str, str, str]:
    if reminder.kind == BillingReminderKind.UPCOMING:
        return (
            "Assinatura a vencer",
            f"A assinatura do clube {reminder.club_name} vence em {_format_date(reminder)}.",
            NotificationSeverity.WARNING.value,
        )
    if reminder.kind == BillingReminderKind.GRACE:
        return (
            "Assinatura vencida",
            f"A assinatura do clube {reminder.club_name} venceu em {_format_date(reminder)}. "
            "Regularize o pagamento antes do fim da carência.",
            NotificationSeverity.WARNING.value,
        )
    return (
        "Clube bloqueado",
        f"O clube {reminder.club_name} está com assinatura vencida e as alterações estão bloqueadas.",
        NotificationSeverity.ERROR.value,
    )


async def send_billing_reminders_async() -> dict[str, int]:
    now_utc = clock.utc_now()
    window = timedelta(days=get_settings().billing_reminder_days)

    async with SessionLocal.begin() as session:
        reminders = await SubscriptionService.list_clubs_due_for_reminder(
            session,
            now_utc=now_utc,
            reminder_window=window,
        )
        recipients: dict[UUID, list[UUID]] = {}
        for reminder in reminders:
            admins = await UsersRepo.list_by_club_and_roles(
                session,
                club_id=reminder.club_id,
                roles=CLUB_ADMIN_ROLES,
            )
            recipients[reminder.club_id] = [user.id for user in admins]

    delivered = 0
    failed = 0
    for reminder in reminders:
        title, message, severity = build_reminder_message(reminder)
        for user_id in recipients.get(reminder.club_id, []):
            if await notify(user_id, title, message, severity):
                delivered += 1
            else:
                failed += 1

    result = {"clubs": len(reminders), "delivered": delivered, "failed": failed}
    logger.info("billing_reminders_finished", **result)
    return result


async def _send_with_fresh_db_pool() -> dict[str, int]:
    # Each asyncio.run gets its own loop, so pooled connections from a previous run are unusable.
    await dispose_engine()
    try:
        return await send_billing_reminders_async()
    finally:
        await dispose_engine()


@celery_app.task(name="app.workers.tasks.billing_reminders.send_billing_reminders")
def send_billing_reminders() -> dict[str, int]:
    return asyncio.run(_send_with_fresh_db_pool())


celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
celery_app.conf.beat_schedule.update(
    {
        BILLING_REMINDER_SCHEDULE_KEY: {
            "task": "app.workers.tasks.billing_reminders.send_billing_reminders",
            "schedule": crontab(hour=REMINDER_HOUR_LOCAL, minute=0),
            "options": {"queue": "q_low"},
        },
    }
)
