from app.economy.store.service import StoreService

__all__ = ["StoreService"]
