class NotificationError(Exception):
    pass


class NotificationNotFoundError(NotificationError):
    pass
