from app.workers.tasks.billing_reminders import send_billing_reminders

__all__ = [
    "send_billing_reminders",
]
