"""Deterministic import identities stamped on every record a run writes."""

from __future__ import annotations

import hashlib

EXTERNAL_ID_PREFIX = "import"
STAFF_HASH_LENGTH = 10


def external_id(intake_id: str, entity: str, row_number: int) -> str:
    """Identity of the record produced from ``row_number`` (1-based) of a file."""
    return f"{EXTERNAL_ID_PREFIX}:{intake_id}:{entity}:{row_number}"


def line_external_id(intake_id: str, row_number: int) -> str:
    return external_id(intake_id, "wol", row_number)


def content_hash(*parts: str | None) -> str:
    """SHA-1 of ``|``-joined parts (None is treated as empty)."""
    text = "|".join(part or "" for part in parts)
    return hashlib.sha1(text.encode("utf-8")).hexdigest()


def staff_external_id(
    intake_id: str,
    row_number: int,
    full_name: str | None,
    email: str | None,
    role: str | None,
) -> str:
    """
    Staff suggestions are replaced wholesale per run; the content hash only
    guards against duplicate inserts inside one run.
    """
    digest = content_hash(full_name, email, role)[:STAFF_HASH_LENGTH]
    return f"{external_id(intake_id, 'staff', row_number)}:{digest}"
