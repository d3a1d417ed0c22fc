"""
Header-pattern field extraction.

Every "which column means X" decision lives in the pattern tables below. To
support a new source system's vocabulary, add a pattern to the relevant
table; nothing else needs to change. Patterns are matched with ``re.search``
against the lower-cased, trimmed header name.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, Mapping, Sequence, Tuple

Patterns = Tuple[re.Pattern[str], ...]


def _compile(*sources: str) -> Patterns:
    return tuple(re.compile(source, re.IGNORECASE) for source in sources)


def _table(aliases: Mapping[str, Sequence[str]]) -> Dict[str, Patterns]:
    return {name: _compile(*sources) for name, sources in aliases.items()}


def pick(row: Mapping[str, str], patterns: Iterable[re.Pattern[str]]) -> str | None:
    """Return the first non-empty value whose header matches any pattern."""
    compiled = tuple(patterns)
    for key, value in row.items():
        normalized_key = (key or "").strip().lower()
        if any(pattern.search(normalized_key) for pattern in compiled):
            cleaned = (value or "").strip()
            if cleaned:
                return cleaned
    return None


def pick_field(row: Mapping[str, str], table: Mapping[str, Patterns], name: str) -> str | None:
    """``pick`` using a named entry of one of the pattern tables."""
    return pick(row, table[name])


# =============================================================================
# Pattern tables
# =============================================================================

CUSTOMER_FIELDS = _table(
    {
        "email": (r"^email$", r"e-mail", r"customer email", r"mail"),
        "phone": (r"^phone$", r"phone number", r"mobile", r"cell"),
        "first_name": (r"^first", r"first name"),
        "last_name": (r"^last", r"last name"),
        "name": (r"^name$", r"customer name"),
        "business_name": (r"business", r"company", r"fleet"),
        "is_fleet": (r"is fleet", r"fleet\?"),
    }
)

VEHICLE_FIELDS = _table(
    {
        "vin": (r"^vin$", r"vehicle vin"),
        "plate": (r"plate", r"license", r"licence"),
        "unit_number": (r"unit", r"unit number", r"truck number"),
        "year": (r"^year$", r"model year"),
        "make": (r"^make$",),
        "model": (r"^model$",),
        "mileage": (r"mileage", r"odometer"),
        "engine_hours": (r"engine hours", r"hours"),
        "customer_email": (r"customer email", r"email"),
        "customer_phone": (r"customer phone", r"phone"),
    }
)

PART_FIELDS = _table(
    {
        "part_number": (r"part number", r"^pn$", r"p/n", r"part_no"),
        "sku": (r"sku",),
        "name": (r"^name$", r"part name", r"description"),
        "cost": (r"^cost$", r"unit cost", r"buy"),
        "price": (r"^price$", r"sell", r"retail"),
        "supplier": (r"supplier", r"vendor"),
        "category": (r"category",),
    }
)

STAFF_FIELDS = _table(
    {
        "full_name": (
            r"^full name$",
            r"^name$",
            r"employee name",
            r"staff name",
            r"technician",
            r"advisor",
        ),
        "email": (r"^email$", r"e-mail", r"mail"),
        "role": (r"^role$", r"position", r"job", r"title"),
        "notes": (r"reason", r"note", r"notes", r"comment"),
    }
)

HISTORY_FIELDS = _table(
    {
        "ro_number": (
            r"^ro$",
            r"ro number",
            r"work order",
            r"order number",
            r"invoice number",
        ),
        "date": (r"date", r"service date", r"closed", r"completed"),
        "complaint": (r"complaint", r"concern"),
        "cause": (r"cause",),
        "correction": (r"correction", r"work performed", r"description"),
        "total": (r"total", r"grand total", r"invoice total"),
        "labor": (r"labor", r"labour"),
        "parts": (r"parts",),
        "vin": (r"vin",),
        "plate": (r"plate", r"license"),
        "customer_email": (r"customer email", r"^email$"),
        "customer_phone": (r"customer phone", r"^phone$"),
        "customer_name": (r"customer name", r"^name$"),
    }
)
