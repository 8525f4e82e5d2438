"""
Client IP resolution.

X-Forwarded-For is only believed for hops added by our own proxies. Each
proxy appends the address it received the request from, so the header is
read right to left, starting from the socket peer, until an address that
isn't a trusted proxy is reached. Anything left of that was written by the
client and could be anything.
"""

import ipaddress
import logging
from functools import lru_cache
from typing import Optional, Union

from fastapi import Depends, Request

from shared.config import Settings, get_settings

logger = logging.getLogger(__name__)

Network = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


@lru_cache
def parse_trusted_proxies(entries: tuple[str, ...]) -> tuple[Network, ...]:
    """Parse trusted proxy addresses and CIDR ranges, skipping invalid entries."""
    networks = []
    for entry in entries:
        try:
            networks.append(ipaddress.ip_network(entry.strip(), strict=False))
        except ValueError:
            logger.warning(f"Ignoring invalid trusted proxy entry {entry!r}")
    return tuple(networks)


def _is_trusted(address: str, trusted: tuple[Network, ...]) -> bool:
    try:
        ip = ipaddress.ip_address(address)
    except ValueError:
        return False
    return any(ip in network for network in trusted)


def resolve_client_ip(
    peer: Optional[str],
    forwarded_for: Optional[str],
    trusted: tuple[Network, ...],
) -> Optional[str]:
    """
    Find the originating client address.

    Args:
        peer: The socket peer address, if known
        forwarded_for: The raw X-Forwarded-For header, if any
        trusted: Networks whose hops are believed

    Returns:
        The right-most address not added by a trusted proxy, or None if
        that address isn't a valid IP
    """
    hops = [hop.strip() for hop in (forwarded_for or "").split(",") if hop.strip()]

    address = peer
    while address is not None and _is_trusted(address, trusted) and hops:
        address = hops.pop()

    if address is None:
        return None
    try:
        return str(ipaddress.ip_address(address))
    except ValueError:
        logger.debug(f"Unusable client address {address!r}")
        return None


def get_client_ip(request: Request, settings: Settings = Depends(get_settings)) -> Optional[str]:
    """Dependency returning the originating client IP for a request."""
    peer = request.client.host if request.client is not None else None
    return resolve_client_ip(
        peer,
        request.headers.get("x-forwarded-for"),
        parse_trusted_proxies(tuple(settings.trusted_proxies)),
    )
