from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True, slots=True)
class PriceBand:
    band_code: str
    title: str
    max_members: int | None
    monthly_price: Decimal


PRICE_BANDS: tuple[PriceBand, ...] = (
    PriceBand(band_code="BASIC", title="Básico", max_members=20, monthly_price=Decimal("19.90")),
    PriceBand(band_code="BRONZE", title="Bronze", max_members=30, monthly_price=Decimal("29.90")),
    PriceBand(band_code="SILVER", title="Prata", max_members=100, monthly_price=Decimal("39.90")),
    PriceBand(band_code="GOLD", title="Ouro", max_members=None, monthly_price=Decimal("59.90")),
)


def price_band_for_members(total_members: int) -> PriceBand:
    for band in PRICE_BANDS:
        if band.max_members is None or total_members <= band.max_members:
            return band
    return PRICE_BANDS[-1]
