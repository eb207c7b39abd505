"""Client address resolution from proxy headers."""

from __future__ import annotations

import ipaddress
from collections.abc import Iterable, Mapping

UNKNOWN_CLIENT = "unknown"


def is_valid_proxy(entry: str) -> bool:
    """A single address or a CIDR network."""
    try:
        ipaddress.ip_network(entry, strict=False)
    except ValueError:
        return False
    return True


def is_trusted_proxy(peer: str | None, trusted_proxies: Iterable[str]) -> bool:
    if not peer:
        return False
    peer = peer.strip().lower()
    try:
        address = ipaddress.ip_address(peer)
    except ValueError:
        address = None

    for entry in trusted_proxies:
        if entry == peer:
            return True
        if address is not None and is_valid_proxy(entry):
            if address in ipaddress.ip_network(entry, strict=False):
                return True
    return False


def client_ip(
    headers: Mapping[str, str],
    peer: str | None = None,
    trusted_proxies: Iterable[str] = (),
) -> str:
    """
    The socket peer, unless the peer is a trusted proxy. Behind a trusted
    proxy: first usable of x-forwarded-for (first hop), cf-connecting-ip,
    x-real-ip, then the peer. Always lower-cased.
    """
    if is_trusted_proxy(peer, trusted_proxies):
        forwarded = headers.get("x-forwarded-for")
        if forwarded:
            first = forwarded.split(",")[0].strip()
            if first:
                return first.lower()

        for header in ("cf-connecting-ip", "x-real-ip"):
            value = (headers.get(header) or "").strip()
            if value:
                return value.lower()

    return peer.lower() if peer else UNKNOWN_CLIENT
