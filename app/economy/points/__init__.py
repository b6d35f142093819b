from app.economy.points.service import PointsLedger

__all__ = ["PointsLedger"]
