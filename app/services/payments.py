from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any
from uuid import UUID

import httpx
import structlog

from app.core.config import Settings

logger = structlog.get_logger(__name__)

PIX_CHARGE_TTL = timedelta(hours=24)
PAYMENT_API_VERSION = "4.0"


class PaymentGatewayError(Exception):
    pass


@dataclass(slots=True)
class PixCharge:
    reference_id: str
    qr_code_image_url: str | None
    payload: str | None
    raw: dict[str, Any] = field(default_factory=dict)


def amount_to_cents(amount: Decimal) -> int:
    if amount <= 0:
        raise ValueError("amount must be positive")
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def build_reference_id(*, user_id: UUID, now_utc: datetime) -> str:
    return f"REF-{user_id}-{int(now_utc.timestamp() * 1000)}"


class PaymentGatewayClient:
    """Order API client for Pix charges. Never call it inside a DB transaction."""

    def __init__(
        self,
        *,
        base_url: str,
        api_token: str,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_token:
            raise PaymentGatewayError("payment API token is not configured")
        self._base_url = base_url.rstrip("/")
        self._api_token = api_token
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> PaymentGatewayClient:
        return cls(
            base_url=settings.payment_base_url,
            api_token=settings.payment_api_token,
            timeout_seconds=settings.payment_timeout_seconds,
        )

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_token}",
            "Content-Type": "application/json",
            "x-api-version": PAYMENT_API_VERSION,
        }

    async def create_pix_charge(
        self,
        *,
        user_id: UUID,
        amount: Decimal,
        description: str,
        user_name: str,
        user_email: str,
        now_utc: datetime,
    ) -> PixCharge:
        reference_id = build_reference_id(user_id=user_id, now_utc=now_utc)
        body = {
            "reference_id": reference_id,
            "description": description,
            "customer": {"name": user_name, "email": user_email},
            "qr_codes": [
                {
                    "amount": {"value": amount_to_cents(amount)},
                    "expiration_date": (now_utc + PIX_CHARGE_TTL).isoformat(),
                }
            ],
        }

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(f"{self._base_url}/orders", json=body, headers=self._headers())
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            logger.exception("payment_pix_charge_failed", reference_id=reference_id)
            raise PaymentGatewayError("payment gateway request failed") from exc

        qr_codes = data.get("qr_codes") or []
        if not qr_codes:
            logger.error("payment_pix_charge_missing_qr", reference_id=reference_id)
            raise PaymentGatewayError("QR code not generated in response")

        qr_code = qr_codes[0]
        png_link = next(
            (link.get("href") for link in qr_code.get("links") or [] if link.get("media") == "image/png"),
            None,
        )
        logger.info("payment_pix_charge_created", reference_id=reference_id, user_id=str(user_id))
        return PixCharge(
            reference_id=reference_id,
            qr_code_image_url=png_link,
            payload=qr_code.get("text"),
            raw=data,
        )
