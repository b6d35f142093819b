from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from app.db.models.purchases import Purchase

UNLIMITED_STOCK = -1


class ProductCategory(str, Enum):
    REAL = "REAL"
    VIRTUAL = "VIRTUAL"


class PurchaseStatus(str, Enum):
    PENDING = "PENDING"
    APPLIED = "APPLIED"


@dataclass(slots=True)
class ProductDraft:
    name: str
    price: int
    stock: int = UNLIMITED_STOCK
    category: str = ProductCategory.REAL.value
    description: str | None = None
    image_url: str | None = None


@dataclass(slots=True)
class PurchaseResult:
    purchase: Purchase
    new_balance: int
