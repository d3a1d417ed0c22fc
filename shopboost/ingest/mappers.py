"""Map decoded CSV rows onto typed records via the header pattern tables."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Mapping

from shopboost.ingest.fields import (
    CUSTOMER_FIELDS,
    HISTORY_FIELDS,
    PART_FIELDS,
    STAFF_FIELDS,
    VEHICLE_FIELDS,
    pick_field,
)
from shopboost.ingest.models import (
    CustomerRecord,
    HistoryRecord,
    PartRecord,
    StaffRecord,
    VehicleRecord,
)
from shopboost.ingest.normalizers import (
    clean_email,
    is_truthy_flag,
    normalize_key,
    normalize_role,
    parse_date_iso,
    parse_int_safe,
    parse_money,
)

DEFAULT_STAFF_NOTE = "Imported from staff CSV"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


def map_customer(row: Mapping[str, str]) -> CustomerRecord:
    first = pick_field(row, CUSTOMER_FIELDS, "first_name")
    last = pick_field(row, CUSTOMER_FIELDS, "last_name")
    name = pick_field(row, CUSTOMER_FIELDS, "name") or " ".join(
        part for part in (first, last) if part
    )
    business = pick_field(row, CUSTOMER_FIELDS, "business_name")
    is_fleet = bool(business) or is_truthy_flag(pick_field(row, CUSTOMER_FIELDS, "is_fleet"))

    return CustomerRecord(
        email=normalize_key(pick_field(row, CUSTOMER_FIELDS, "email")),
        phone=normalize_key(pick_field(row, CUSTOMER_FIELDS, "phone")),
        first_name=first,
        last_name=last,
        name=name or None,
        business_name=business,
        is_fleet=is_fleet,
    )


def map_vehicle(row: Mapping[str, str]) -> VehicleRecord:
    return VehicleRecord(
        vin=normalize_key(pick_field(row, VEHICLE_FIELDS, "vin")),
        plate=normalize_key(pick_field(row, VEHICLE_FIELDS, "plate")),
        unit_number=pick_field(row, VEHICLE_FIELDS, "unit_number"),
        year=parse_int_safe(pick_field(row, VEHICLE_FIELDS, "year")),
        make=pick_field(row, VEHICLE_FIELDS, "make"),
        model=pick_field(row, VEHICLE_FIELDS, "model"),
        mileage=pick_field(row, VEHICLE_FIELDS, "mileage"),
        engine_hours=parse_int_safe(pick_field(row, VEHICLE_FIELDS, "engine_hours")),
        customer_email=normalize_key(pick_field(row, VEHICLE_FIELDS, "customer_email")),
        customer_phone=normalize_key(pick_field(row, VEHICLE_FIELDS, "customer_phone")),
    )


def map_part(row: Mapping[str, str], row_number: int) -> PartRecord:
    part_number = pick_field(row, PART_FIELDS, "part_number")
    sku = pick_field(row, PART_FIELDS, "sku")
    name = pick_field(row, PART_FIELDS, "name") or part_number or sku or f"Part {row_number}"

    return PartRecord(
        name=name,
        part_number=part_number,
        sku=sku,
        supplier=pick_field(row, PART_FIELDS, "supplier"),
        category=pick_field(row, PART_FIELDS, "category"),
        cost=parse_money(pick_field(row, PART_FIELDS, "cost")),
        price=parse_money(pick_field(row, PART_FIELDS, "price")),
    )


def map_staff(row: Mapping[str, str]) -> StaffRecord:
    return StaffRecord(
        full_name=pick_field(row, STAFF_FIELDS, "full_name"),
        email=clean_email(pick_field(row, STAFF_FIELDS, "email")),
        role=normalize_role(pick_field(row, STAFF_FIELDS, "role")),
        notes=pick_field(row, STAFF_FIELDS, "notes") or DEFAULT_STAFF_NOTE,
    )


def map_history(row: Mapping[str, str]) -> HistoryRecord:
    performed_at = parse_date_iso(pick_field(row, HISTORY_FIELDS, "date")) or _now_iso()

    return HistoryRecord(
        ro_number=pick_field(row, HISTORY_FIELDS, "ro_number"),
        performed_at=performed_at,
        complaint=pick_field(row, HISTORY_FIELDS, "complaint"),
        cause=pick_field(row, HISTORY_FIELDS, "cause"),
        correction=pick_field(row, HISTORY_FIELDS, "correction"),
        labor=parse_money(pick_field(row, HISTORY_FIELDS, "labor")),
        parts=parse_money(pick_field(row, HISTORY_FIELDS, "parts")),
        total=parse_money(pick_field(row, HISTORY_FIELDS, "total")),
        vin=normalize_key(pick_field(row, HISTORY_FIELDS, "vin")),
        plate=normalize_key(pick_field(row, HISTORY_FIELDS, "plate")),
        customer_email=normalize_key(pick_field(row, HISTORY_FIELDS, "customer_email")),
        customer_phone=normalize_key(pick_field(row, HISTORY_FIELDS, "customer_phone")),
        customer_name=pick_field(row, HISTORY_FIELDS, "customer_name"),
    )
