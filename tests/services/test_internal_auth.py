from __future__ import annotations

from types import SimpleNamespace
from uuid import uuid4

from app.services.internal_auth import (
    extract_client_ip,
    internal_access_failure,
    is_client_ip_allowed,
    is_valid_internal_token,
    parse_actor_id,
)

SETTINGS = SimpleNamespace(
    internal_api_token="secret",
    internal_api_allowlist="127.0.0.1/32",
    internal_api_trusted_proxies="",
)


def _request(*, headers: dict[str, str], host: str = "127.0.0.1") -> SimpleNamespace:
    return SimpleNamespace(headers=headers, client=SimpleNamespace(host=host))


def test_is_valid_internal_token_requires_exact_match() -> None:
    assert is_valid_internal_token(expected_token="secret", received_token="secret") is True
    assert is_valid_internal_token(expected_token="secret", received_token="wrong") is False
    assert is_valid_internal_token(expected_token="secret", received_token=None) is False
    assert is_valid_internal_token(expected_token="", received_token="") is False


def test_is_client_ip_allowed_supports_exact_ip_and_cidr() -> None:
    allowlist = "127.0.0.1,10.0.0.0/8, ::1"
    assert is_client_ip_allowed(client_ip="127.0.0.1", allowlist=allowlist) is True
    assert is_client_ip_allowed(client_ip="10.12.33.1", allowlist=allowlist) is True
    assert is_client_ip_allowed(client_ip="::1", allowlist=allowlist) is True
    assert is_client_ip_allowed(client_ip="192.168.1.5", allowlist=allowlist) is False
    assert is_client_ip_allowed(client_ip="testclient", allowlist=allowlist) is False
    assert is_client_ip_allowed(client_ip="127.0.0.1", allowlist="") is False


def test_extract_client_ip_uses_forwarded_header_only_for_trusted_proxy() -> None:
    request = _request(headers={"X-Forwarded-For": "10.1.1.8, 127.0.0.1"})
    assert extract_client_ip(request, trusted_proxies="127.0.0.1/32") == "10.1.1.8"


def test_extract_client_ip_ignores_forwarded_header_for_untrusted_proxy() -> None:
    request = _request(headers={"X-Forwarded-For": "10.1.1.8"}, host="198.51.100.10")
    assert extract_client_ip(request, trusted_proxies="127.0.0.1/32") == "198.51.100.10"


def test_extract_client_ip_rejects_invalid_forwarded_header_for_trusted_proxy() -> None:
    request = _request(headers={"X-Forwarded-For": "not-an-ip, 127.0.0.1"})
    assert extract_client_ip(request, trusted_proxies="127.0.0.1/32") is None


def test_internal_access_failure_reports_reason() -> None:
    assert internal_access_failure(_request(headers={"X-Internal-Token": "secret"}), settings=SETTINGS) is None
    assert internal_access_failure(_request(headers={}), settings=SETTINGS) == "invalid_token"
    assert (
        internal_access_failure(
            _request(headers={"X-Internal-Token": "secret"}, host="10.0.0.9"),
            settings=SETTINGS,
        )
        == "ip_not_allowed"
    )


def test_parse_actor_id() -> None:
    actor_id = uuid4()
    assert parse_actor_id(_request(headers={"X-Actor-User-Id": str(actor_id)})) == actor_id
    assert parse_actor_id(_request(headers={"X-Actor-User-Id": "42"})) is None
    assert parse_actor_id(_request(headers={})) is None
