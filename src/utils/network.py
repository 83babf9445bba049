"""
Client address and origin helpers for allow-list checks
"""

import ipaddress
import logging
from typing import Optional

from starlette.requests import Request

logger = logging.getLogger(__name__)


def get_client_ip(request: Request) -> Optional[str]:
    """First X-Forwarded-For hop, then X-Real-IP, then the socket peer"""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    if request.client:
        return request.client.host

    return None


def is_ip_allowed(ip_whitelist, client_ip: Optional[str]) -> bool:
    """
    Empty or missing whitelist allows every address. Entries may be single
    addresses or CIDR networks.
    """
    if not ip_whitelist:
        return True

    if not client_ip:
        return False

    try:
        address = ipaddress.ip_address(client_ip)
    except ValueError:
        return client_ip in ip_whitelist

    for entry in ip_whitelist:
        try:
            if address in ipaddress.ip_network(entry, strict=False):
                return True
        except ValueError:
            logger.warning(f"Ignoring malformed ip_whitelist entry {entry!r}")

    return False


def is_origin_allowed(allowed_origins, origin: Optional[str]) -> bool:
    """
    Requests without an Origin header (server-to-server) are not restricted.
    """
    if not allowed_origins or not origin:
        return True

    return origin.rstrip("/") in {o.rstrip("/") for o in allowed_origins}
