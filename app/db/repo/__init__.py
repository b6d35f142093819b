from app.db.repo.clubs_repo import ClubsRepo
from app.db.repo.notifications_repo import NotificationsRepo
from app.db.repo.points_history_repo import PointsHistoryRepo
from app.db.repo.products_repo import ProductsRepo
from app.db.repo.purchases_repo import PurchasesRepo
from app.db.repo.users_repo import UsersRepo

__all__ = [
    "ClubsRepo",
    "NotificationsRepo",
    "PointsHistoryRepo",
    "ProductsRepo",
    "PurchasesRepo",
    "UsersRepo",
]
