from __future__ import annotations

from datetime import timedelta

BLOCKING_STATUSES = frozenset({"OVERDUE", "CANCELED"})
FREE_SEAT_ROLES = ("PARENT", "MASTER")
CLUB_ADMIN_ROLES = ("OWNER", "ADMIN", "DIRECTOR")
DEFAULT_BILLING_REMINDER_WINDOW = timedelta(days=3)
