"""Typed per-request context built at the HTTP boundary.

Handlers and dependencies receive a RequestContext instead of reaching into
the raw Starlette request.
"""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from fastapi import Request

from portfolio_api.core.logging import get_request_id

UNKNOWN_CLIENT_IP = "unknown"


class TrustedProxies:
    """Peers allowed to report the client address in forwarding headers.

    Entries are IP addresses, CIDR networks, or literal host names (matched
    exactly, e.g. ``testclient``).

    Example:
        >>> proxies = TrustedProxies.parse("10.0.0.0/8, 127.0.0.1")
        >>> "10.1.2.3" in proxies
        True
        >>> "203.0.113.7" in proxies
        False
    """

    def __init__(self, entries: Iterable[str] = ()) -> None:
        self._networks: list[ipaddress.IPv4Network | ipaddress.IPv6Network] = []
        self._names: set[str] = set()
        for entry in entries:
            try:
                self._networks.append(ipaddress.ip_network(entry, strict=False))
            except ValueError:
                self._names.add(entry)

    @classmethod
    def parse(cls, value: str | None) -> "TrustedProxies":
        """Build from a comma-separated setting; blanks are ignored."""
        if not value:
            return cls()
        return cls(item.strip() for item in value.split(",") if item.strip())

    def __contains__(self, host: object) -> bool:
        if not isinstance(host, str) or not host:
            return False
        if host in self._names:
            return True
        try:
            address = ipaddress.ip_address(host)
        except ValueError:
            return False
        return any(address in network for network in self._networks)

    def __bool__(self) -> bool:
        return bool(self._networks or self._names)


def resolve_client_ip(
    headers: Mapping[str, str],
    peer_host: str | None = None,
    trusted_proxies: TrustedProxies | None = None,
) -> str:
    """Determine the client IP, honouring proxy headers from trusted peers only.

    When the socket peer is a trusted proxy the order is: first
    ``X-Forwarded-For`` entry, ``X-Real-IP``, then the peer. Any other peer
    is the client itself and its forwarding headers are ignored. Without a
    peer the result is ``"unknown"``.
    """
    if peer_host is None or trusted_proxies is None or peer_host not in trusted_proxies:
        return peer_host or UNKNOWN_CLIENT_IP

    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = (headers.get("x-real-ip") or "").strip()
    if real_ip:
        return real_ip

    return peer_host


@dataclass(frozen=True)
class RequestContext:
    """Request data the auth layer needs, validated once per request."""

    client_ip: str
    method: str
    path: str
    headers: Mapping[str, str] = field(repr=False)
    request_id: str | None = None


def get_request_context(request: Request) -> RequestContext:
    """FastAPI dependency producing the RequestContext for ``request``."""
    peer = request.client.host if request.client else None
    services = getattr(request.app.state, "services", None)
    trusted = services.trusted_proxies if services is not None else None
    return RequestContext(
        client_ip=resolve_client_ip(request.headers, peer, trusted),
        method=request.method,
        path=request.url.path,
        headers=request.headers,
        request_id=get_request_id(),
    )
