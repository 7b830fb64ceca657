"""
auth/geo.py -- Best-effort coarse location for a session's source address.

Looks the address up once per session create/refresh against an
ip-api.com-compatible JSON endpoint. The call is bounded by a short timeout
and never retried; any failure degrades to DEFAULT_LOCATION. Addresses that
are not globally routable (loopback, RFC 1918, link-local) never leave the
process and resolve to PRIVATE_LOCATION.
"""

from __future__ import annotations

import ipaddress
import logging

import requests

logger = logging.getLogger("vaultauth.geo")

DEFAULT_LOCATION = "Unknown Location"
PRIVATE_LOCATION = "Private Range"

# Module-level session shared across lookups for connection pooling.
# max_redirects=3 replaces the requests default of 30 -- a known public API
# never needs more, and a short chain limits SSRF via redirects.
_session = requests.Session()
_session.max_redirects = 3


class IpApiLocator:
    """Callable strategy: locate(ip) -> "City, Country" or a placeholder."""

    def __init__(self, url_template: str, timeout: float = 3.0, session: requests.Session | None = None) -> None:
        self.url_template = url_template
        self.timeout = timeout
        self.session = session or _session

    def __call__(self, ip: str) -> str:
        try:
            address = ipaddress.ip_address(ip)
        except ValueError:
            return DEFAULT_LOCATION
        if not address.is_global:
            return PRIVATE_LOCATION

        try:
            resp = self.session.get(self.url_template.format(ip=address), timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning("Location lookup failed for %s: %s", ip, e)
            return DEFAULT_LOCATION

        if not isinstance(data, dict):
            return DEFAULT_LOCATION
        if data.get("message") in ("private range", "reserved range"):
            return PRIVATE_LOCATION
        parts = [str(data[key]) for key in ("city", "country") if data.get(key)]
        return ", ".join(parts) or DEFAULT_LOCATION


def no_location(ip: str) -> str:
    """Locator for tests and offline deployments."""
    return DEFAULT_LOCATION
