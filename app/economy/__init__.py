from app.economy.points import PointsLedger
from app.economy.store import StoreService

__all__ = [
    "PointsLedger",
    "StoreService",
]
