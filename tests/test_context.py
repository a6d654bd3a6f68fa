"""Tests for client IP resolution behind proxies."""

import pytest
from starlette.datastructures import Headers

from portfolio_api.core.context import UNKNOWN_CLIENT_IP, TrustedProxies, resolve_client_ip

PROXIES = TrustedProxies.parse("10.0.0.0/8, ::1, testclient")


@pytest.mark.parametrize(
    ("headers", "peer", "expected"),
    [
        ({"X-Forwarded-For": "203.0.113.7, 10.0.0.1"}, "10.0.0.1", "203.0.113.7"),
        ({"X-Forwarded-For": " 198.51.100.2 "}, "::1", "198.51.100.2"),
        ({"X-Real-IP": "198.51.100.9"}, "10.0.0.1", "198.51.100.9"),
        ({"X-Forwarded-For": "203.0.113.7", "X-Real-IP": "198.51.100.9"}, "testclient", "203.0.113.7"),
        ({"X-Forwarded-For": ""}, "10.0.0.5", "10.0.0.5"),
        ({}, "10.0.0.5", "10.0.0.5"),
        ({}, None, UNKNOWN_CLIENT_IP),
    ],
)
def test_trusted_peer_forwards_client_ip(headers, peer, expected) -> None:
    assert resolve_client_ip(Headers(headers), peer, PROXIES) == expected


@pytest.mark.parametrize(
    ("headers", "peer", "expected"),
    [
        ({"X-Forwarded-For": "203.0.113.7"}, "198.51.100.1", "198.51.100.1"),
        ({"X-Real-IP": "203.0.113.7"}, "198.51.100.1", "198.51.100.1"),
        ({"X-Forwarded-For": "203.0.113.7"}, None, UNKNOWN_CLIENT_IP),
    ],
)
def test_untrusted_peer_headers_are_ignored(headers, peer, expected) -> None:
    assert resolve_client_ip(Headers(headers), peer, PROXIES) == expected


def test_no_trusted_proxies_means_peer_only() -> None:
    headers = Headers({"X-Forwarded-For": "203.0.113.7"})

    assert resolve_client_ip(headers, "127.0.0.1") == "127.0.0.1"
    assert resolve_client_ip(headers, "127.0.0.1", TrustedProxies.parse("")) == "127.0.0.1"


class TestTrustedProxies:
    def test_matches_networks_and_names(self) -> None:
        assert "10.20.30.40" in PROXIES
        assert "::1" in PROXIES
        assert "testclient" in PROXIES
        assert "11.0.0.1" not in PROXIES
        assert "otherhost" not in PROXIES

    def test_blank_setting_trusts_nobody(self) -> None:
        proxies = TrustedProxies.parse(" , ")

        assert not proxies
        assert "127.0.0.1" not in proxies
