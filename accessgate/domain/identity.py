"""Identity normalisation and allow-list entry validation."""

from __future__ import annotations

import ipaddress
import re

# --- Email Validation Regex (RFC 5322 simplified) ---

EMAIL_REGEX = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@"
    r"[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$"
)

MAX_EMAIL_LENGTH = 254

# Host aliases accepted in IP allow-lists alongside literal addresses.
IP_ALIASES = frozenset({"localhost"})


def normalize_email(email: str | None) -> str:
    return email.strip().lower() if email else ""


def is_valid_email(email: str) -> bool:
    return 0 < len(email) <= MAX_EMAIL_LENGTH and bool(EMAIL_REGEX.match(email))


def normalize_ip(ip: str | None) -> str:
    return ip.strip().lower() if ip else ""


def is_valid_ip(ip: str) -> bool:
    if ip in IP_ALIASES:
        return True
    try:
        ipaddress.ip_address(ip)
    except ValueError:
        return False
    return True
