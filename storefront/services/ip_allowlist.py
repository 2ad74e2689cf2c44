from __future__ import annotations

import ipaddress
from functools import lru_cache

from fastapi import Request

FORWARDING_HEADERS = ("X-Forwarded-For", "X-Real-IP", "CF-Connecting-IP")


@lru_cache(maxsize=32)
def _parse_allowlist(
    allowlist: str,
) -> tuple[ipaddress.IPv4Network | ipaddress.IPv6Network, ...]:
    networks: list[ipaddress.IPv4Network | ipaddress.IPv6Network] = []
    for raw_entry in allowlist.split(","):
        entry = raw_entry.strip()
        if not entry:
            continue
        try:
            networks.append(ipaddress.ip_network(entry, strict=False))
        except ValueError:
            continue
    return tuple(networks)


def _parse_ip(value: str | None) -> str | None:
    if value is None:
        return None
    candidate = value.strip()
    if not candidate:
        return None
    try:
        return str(ipaddress.ip_address(candidate))
    except ValueError:
        return None


def is_client_ip_allowed(*, client_ip: str | None, allowlist: str) -> bool:
    if client_ip is None:
        return False
    try:
        parsed_ip = ipaddress.ip_address(client_ip)
    except ValueError:
        return False

    networks = _parse_allowlist(allowlist)
    if not networks:
        return False
    return any(parsed_ip in network for network in networks)


def extract_client_ip(request: Request, *, trusted_proxies: str = "") -> str | None:
    """Returns the notifying host's address.

    Forwarding headers are honoured only when the direct peer is one of our
    own proxies; otherwise anyone could claim a provider address.
    """
    peer_ip = _parse_ip(request.client.host if request.client is not None else None)
    if not is_client_ip_allowed(client_ip=peer_ip, allowlist=trusted_proxies):
        return peer_ip

    for header in FORWARDING_HEADERS:
        raw_value = request.headers.get(header)
        if not raw_value:
            continue
        return _parse_ip(raw_value.split(",", maxsplit=1)[0])
    return peer_ip
