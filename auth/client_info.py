"""
auth/client_info.py -- Human-readable client description from a User-Agent header.

Produces strings such as "Chrome, Windows, Windows 10" or "Safari, iPhone, iOS 17.2"
for the session list. This is a best-effort decoration: anything that cannot
be recognised degrades to DEFAULT_CLIENT_INFO and nothing here ever raises.

Order matters in _BROWSERS: Edge and Opera UAs also contain "Chrome", and
Chrome UAs also contain "Safari", so the more specific tokens are tried first.
"""

from __future__ import annotations

import logging
import re

logger = logging.getLogger("vaultauth.client_info")

DEFAULT_CLIENT_INFO = "Unknown Client"

_MAX_LENGTH = 255

_BROWSERS: list[tuple[str, re.Pattern]] = [
    ("Edge", re.compile(r"Edg(?:e|A|iOS)?/([\d.]+)")),
    ("Opera", re.compile(r"(?:OPR|Opera)/([\d.]+)")),
    ("Firefox", re.compile(r"(?:Firefox|FxiOS)/([\d.]+)")),
    ("Chrome", re.compile(r"(?:Chrome|CriOS)/([\d.]+)")),
    ("Safari", re.compile(r"Version/([\d.]+).*Safari/")),
    ("curl", re.compile(r"^curl/([\d.]+)")),
]

_PLATFORMS: list[tuple[str, re.Pattern]] = [
    ("iPhone", re.compile(r"\biPhone\b")),
    ("iPad", re.compile(r"\biPad\b")),
    ("Android", re.compile(r"\bAndroid\b")),
    ("Macintosh", re.compile(r"\bMacintosh\b")),
    ("Windows", re.compile(r"\bWindows\b")),
    ("X11", re.compile(r"\bX11\b")),
]

_WINDOWS_VERSIONS = {
    "10.0": "Windows 10",
    "6.3": "Windows 8.1",
    "6.2": "Windows 8",
    "6.1": "Windows 7",
}


def _browser(user_agent: str) -> str:
    for name, pattern in _BROWSERS:
        if pattern.search(user_agent):
            return name
    return ""


def _platform(user_agent: str) -> str:
    for name, pattern in _PLATFORMS:
        if pattern.search(user_agent):
            return name
    return ""


def _os(user_agent: str) -> str:
    match = re.search(r"Windows NT ([\d.]+)", user_agent)
    if match:
        return _WINDOWS_VERSIONS.get(match.group(1), f"Windows NT {match.group(1)}")
    match = re.search(r"Android ([\d.]+)", user_agent)
    if match:
        return f"Android {match.group(1)}"
    match = re.search(r"(?:iPhone|CPU) OS ([\d_]+)", user_agent)
    if match:
        return f"iOS {match.group(1).replace('_', '.')}"
    match = re.search(r"Mac OS X ([\d_.]+)", user_agent)
    if match:
        return f"macOS {match.group(1).replace('_', '.')}"
    if "Linux" in user_agent:
        return "Linux"
    return ""


def describe_client(user_agent: str | None) -> str:
    """Return "<browser>, <platform>, <os>" with empty parts left out.

    Falls back to DEFAULT_CLIENT_INFO for an empty or unrecognised header.
    """
    if not user_agent:
        return DEFAULT_CLIENT_INFO
    try:
        parts = [_browser(user_agent), _platform(user_agent), _os(user_agent)]
    except (TypeError, re.error):
        logger.debug("Could not parse user agent %r", user_agent, exc_info=True)
        return DEFAULT_CLIENT_INFO
    description = ", ".join(p for p in parts if p)
    return description[:_MAX_LENGTH] or DEFAULT_CLIENT_INFO
