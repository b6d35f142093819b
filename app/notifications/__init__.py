from app.notifications.service import NotificationService, notify

__all__ = ["NotificationService", "notify"]
