"""Client IP resolution from proxy headers and the transport peer."""

from __future__ import annotations

from dataclasses import dataclass, field
from ipaddress import IPv6Address
from typing import Mapping

from starlette.datastructures import Headers
from starlette.requests import Request

FORWARDED_FOR = "x-forwarded-for"
CF_CONNECTING_IP = "cf-connecting-ip"


@dataclass(frozen=True)
class RequestDescriptor:
    """What the filter needs to know about one request."""

    path: str
    headers: Headers = field(default_factory=Headers)
    peer: str = ""

    @classmethod
    def build(
        cls,
        path: str = "/",
        headers: Mapping[str, str] | None = None,
        peer: str | None = None,
    ) -> RequestDescriptor:
        return cls(path=path, headers=Headers(headers=dict(headers or {})), peer=peer or "")

    @classmethod
    def from_request(cls, request: Request) -> RequestDescriptor:
        # Route patterns see the query string too, like the raw request URL
        path = request.url.path
        if request.url.query:
            path = f"{path}?{request.url.query}"
        peer = request.client.host if request.client else ""
        return cls(path=path, headers=request.headers, peer=peer or "")


def _is_ipv6(value: str) -> bool:
    try:
        IPv6Address(value)
    except ValueError:
        return False
    return True


def strip_port(value: str) -> str:
    """Remove a trailing ``:port`` from *value*.

    ``1.2.3.4:8080`` -> ``1.2.3.4``, ``[::1]:443`` -> ``::1`` and
    ``2001:db8::1:443`` -> ``2001:db8::1``. A bare IPv6 address such as
    ``::1`` is returned unchanged.

    Known limitation: an unbracketed IPv6 address whose last group is all
    digits and whose remainder is itself a valid address is read as
    ``address:port``, so ``2001:db8::10:1`` becomes ``2001:db8::10``. Proxies
    that send bracketed ``[v6]:port`` are unaffected.
    """
    if ":" not in value:
        return value
    if value.startswith("["):
        host, sep, _ = value[1:].partition("]")
        return host if sep else value
    if value.count(":") == 1:
        return value.split(":", 1)[0]
    host, _, port = value.rpartition(":")
    if port.isdigit() and _is_ipv6(host):
        return host
    return value


def resolve_client_ip(request: RequestDescriptor) -> str:
    """Return the client address for *request*, or ``""`` if unknown.

    ``X-Forwarded-For`` (first hop) wins over the transport peer, and
    ``CF-Connecting-IP`` wins over both. Neither header is verified: the
    forwarded-for chain is trivially spoofable unless every proxy in front of
    the service is trusted, and the Cloudflare header is only meaningful when
    the service is reachable exclusively through Cloudflare.
    """
    headers = request.headers
    address = ""

    forwarded = headers.get(FORWARDED_FOR)
    if forwarded:
        address = forwarded.split(",")[0].strip()

    if not address:
        address = (request.peer or "").strip()

    cf_ip = headers.get(CF_CONNECTING_IP)
    if cf_ip and cf_ip.strip():
        address = cf_ip.strip()

    if not address:
        return ""
    return strip_port(address)
