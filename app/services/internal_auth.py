from __future__ import annotations

import ipaddress
import secrets
from functools import lru_cache
from uuid import UUID

from fastapi import Request

from app.core.config import Settings

IpNetwork = ipaddress.IPv4Network | ipaddress.IPv6Network

INTERNAL_TOKEN_HEADER = "X-Internal-Token"
ACTOR_HEADER = "X-Actor-User-Id"


def is_valid_internal_token(*, expected_token: str, received_token: str | None) -> bool:
    if not expected_token or not received_token:
        return False
    return secrets.compare_digest(expected_token, received_token)


def _as_network(entry: str) -> IpNetwork:
    if "/" not in entry:
        address = ipaddress.ip_address(entry)
        entry = f"{entry}/{address.max_prefixlen}"
    return ipaddress.ip_network(entry, strict=False)


@lru_cache(maxsize=32)
def parse_networks(raw: str) -> tuple[IpNetwork, ...]:
    networks: list[IpNetwork] = []
    for chunk in raw.split(","):
        entry = chunk.strip()
        if not entry:
            continue
        try:
            networks.append(_as_network(entry))
        except ValueError:
            continue
    return tuple(networks)


def normalize_ip(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    try:
        return str(ipaddress.ip_address(value.strip()))
    except ValueError:
        return None


def is_client_ip_allowed(*, client_ip: str | None, allowlist: str) -> bool:
    normalized = normalize_ip(client_ip)
    if normalized is None:
        return False
    address = ipaddress.ip_address(normalized)
    return any(address in network for network in parse_networks(allowlist))


def extract_client_ip(request: Request, *, trusted_proxies: str = "") -> str | None:
    peer_ip = normalize_ip(request.client.host if request.client is not None else None)
    forwarded_for = request.headers.get("X-Forwarded-For")
    if not forwarded_for:
        return peer_ip
    if not is_client_ip_allowed(client_ip=peer_ip, allowlist=trusted_proxies):
        return peer_ip
    # Only the left-most hop is the original client.
    return normalize_ip(forwarded_for.split(",", maxsplit=1)[0])


def internal_access_failure(request: Request, *, settings: Settings) -> str | None:
    """Returns the rejection reason for an internal request, or ``None`` when it passes."""
    client_ip = extract_client_ip(request, trusted_proxies=settings.internal_api_trusted_proxies)
    if not is_valid_internal_token(
        expected_token=settings.internal_api_token,
        received_token=request.headers.get(INTERNAL_TOKEN_HEADER),
    ):
        return "invalid_token"
    if not is_client_ip_allowed(client_ip=client_ip, allowlist=settings.internal_api_allowlist):
        return "ip_not_allowed"
    return None


def parse_actor_id(request: Request) -> UUID | None:
    raw = request.headers.get(ACTOR_HEADER)
    if not raw:
        return None
    try:
        return UUID(raw.strip())
    except ValueError:
        return None
