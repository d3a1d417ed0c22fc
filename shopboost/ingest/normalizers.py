"""
Value normalizers for free-text CSV cells.

Every function here is pure and total: bad input yields ``None`` (or an empty
string for keys), never an exception.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone

import pandas as pd

_MONEY_STRIP = re.compile(r"[^0-9,.\-]")
_INT_STRIP = re.compile(r"[^0-9\-]")
_ISO_DAY = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Roles a staff invite may carry (mirrors the profiles.role enum)
STAFF_ROLES = frozenset(
    {
        "owner",
        "admin",
        "manager",
        "advisor",
        "mechanic",
        "parts",
        "driver",
        "dispatcher",
        "fleet_manager",
    }
)

ROLE_ALIASES = {
    "tech": "mechanic",
    "technician": "mechanic",
}


def clean(value: str | None) -> str:
    return (value or "").strip()


def normalize_key(value: str | None) -> str:
    """Matching key for email, phone, VIN and plate comparisons."""
    return clean(value).lower()


def parse_money(value: str | None) -> float | None:
    """
    Parse a locale-tolerant monetary amount.

    >>> parse_money("1,234.56")
    1234.56
    >>> parse_money("6,06")
    6.06
    >>> parse_money("$45")
    45.0
    """
    s = clean(value)
    if not s:
        return None

    cleaned = _MONEY_STRIP.sub("", s)
    if not cleaned:
        return None

    if "," in cleaned and "." in cleaned:
        # 1,234.56 -> 1234.56
        candidate = cleaned.replace(",", "")
    elif "," in cleaned:
        # 6,06 -> 6.06
        candidate = cleaned.replace(",", ".", 1)
    else:
        candidate = cleaned

    try:
        return float(candidate)
    except ValueError:
        return None


def parse_int_safe(value: str | None) -> int | None:
    """Parse an integer out of text such as "2019" or "12,345 hrs"."""
    cleaned = _INT_STRIP.sub("", clean(value))
    if not cleaned:
        return None
    try:
        return int(cleaned)
    except ValueError:
        return None


def parse_date_iso(value: str | None) -> str | None:
    """
    Parse an assorted date spelling into an ISO-8601 UTC instant.

    Free-form parsing is attempted first; a bare ``YYYY-MM-DD`` that the
    general parser rejects is pinned to 12:00 UTC so it cannot slide to the
    neighbouring day in any timezone.
    """
    s = clean(value)
    if not s:
        return None

    try:
        parsed = pd.to_datetime(s, utc=True)
    except (ValueError, TypeError, OverflowError):
        parsed = None

    if parsed is not None and not pd.isna(parsed):
        return parsed.to_pydatetime().isoformat(timespec="milliseconds")

    if _ISO_DAY.match(s):
        try:
            year, month, day = (int(part) for part in s.split("-"))
            midday = datetime(year, month, day, 12, tzinfo=timezone.utc)
        except ValueError:
            return None
        return midday.isoformat(timespec="milliseconds")

    return None


def normalize_role(value: str | None) -> str | None:
    """Collapse a free-text staff role onto ``STAFF_ROLES``."""
    raw = normalize_key(value)
    if raw in ROLE_ALIASES:
        return ROLE_ALIASES[raw]
    if raw in STAFF_ROLES:
        return raw
    return None


def clean_email(value: str | None) -> str | None:
    s = clean(value)
    if s and "@" in s:
        return s
    return None


def is_truthy_flag(value: str | None) -> bool:
    return normalize_key(value) == "true"
