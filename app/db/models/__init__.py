from app.db.models.clubs import Club
from app.db.models.notifications import Notification
from app.db.models.points_history import PointsHistoryEntry
from app.db.models.products import Product
from app.db.models.purchases import Purchase
from app.db.models.users import User

__all__ = [
    "Club",
    "Notification",
    "PointsHistoryEntry",
    "Product",
    "Purchase",
    "User",
]
