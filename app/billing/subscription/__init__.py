from app.billing.subscription.errors import (
    ClubAccessDeniedError,
    ClubNotFoundError,
    SubscriptionError,
    SubscriptionUpdateValidationError,
)
from app.billing.subscription.service import SubscriptionService

__all__ = [
    "ClubAccessDeniedError",
    "ClubNotFoundError",
    "SubscriptionError",
    "SubscriptionService",
    "SubscriptionUpdateValidationError",
]
