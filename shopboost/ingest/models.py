"""
Typed records and run bookkeeping for the onboarding import.

Records are what a single CSV row becomes after field extraction and value
normalization; the orchestrator turns them into store payloads. The summary
classes answer "what did this run actually do", per entity type.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class EntityType(str, Enum):
    """Entity types in the order a run processes them."""

    CUSTOMERS = "customers"
    VEHICLES = "vehicles"
    PARTS = "parts"
    STAFF = "staff"
    HISTORY = "history"

    @property
    def file_path_column(self) -> str:
        return f"{self.value}_file_path"


# Customers/vehicles/history may reference entities resolved by earlier types.
PROCESSING_ORDER: tuple[EntityType, ...] = (
    EntityType.CUSTOMERS,
    EntityType.VEHICLES,
    EntityType.PARTS,
    EntityType.STAFF,
    EntityType.HISTORY,
)

CUSTOMER_CONFIDENCE = 0.75
VEHICLE_CONFIDENCE = 0.75
PART_CONFIDENCE = 0.75
HISTORY_CONFIDENCE = 0.7


def compact(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Drop keys whose value is None or an empty string."""
    return {key: value for key, value in payload.items() if value is not None and value != ""}


# =============================================================================
# Row records
# =============================================================================


@dataclass(slots=True)
class CustomerRecord:
    email: str
    phone: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    name: Optional[str] = None
    business_name: Optional[str] = None
    is_fleet: bool = False

    def fields(self) -> Dict[str, Any]:
        return {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "name": self.name or None,
            "email": self.email or None,
            "phone": self.phone or None,
            "phone_number": self.phone or None,
            "business_name": self.business_name,
            "is_fleet": self.is_fleet,
        }


@dataclass(slots=True)
class VehicleRecord:
    vin: str
    plate: str
    unit_number: Optional[str] = None
    year: Optional[int] = None
    make: Optional[str] = None
    model: Optional[str] = None
    mileage: Optional[str] = None
    engine_hours: Optional[int] = None
    customer_email: str = ""
    customer_phone: str = ""

    def fields(self) -> Dict[str, Any]:
        return {
            "vin": self.vin or None,
            "license_plate": self.plate or None,
            "unit_number": self.unit_number,
            "year": self.year,
            "make": self.make,
            "model": self.model,
            "mileage": self.mileage,
            "engine_hours": self.engine_hours,
        }


@dataclass(slots=True)
class PartRecord:
    name: str
    part_number: Optional[str] = None
    sku: Optional[str] = None
    supplier: Optional[str] = None
    category: Optional[str] = None
    cost: Optional[float] = None
    price: Optional[float] = None

    def fields(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "part_number": self.part_number,
            "sku": self.sku,
            "supplier": self.supplier,
            "category": self.category,
            "cost": self.cost,
            "price": self.price,
            "default_cost": self.cost,
            "default_price": self.price,
        }


@dataclass(slots=True)
class StaffRecord:
    full_name: Optional[str]
    email: Optional[str]
    role: Optional[str]
    notes: str

    @property
    def is_empty(self) -> bool:
        return not self.full_name and not self.email and not self.role


@dataclass(slots=True)
class HistoryRecord:
    ro_number: Optional[str]
    performed_at: str
    complaint: Optional[str] = None
    cause: Optional[str] = None
    correction: Optional[str] = None
    labor: Optional[float] = None
    parts: Optional[float] = None
    total: Optional[float] = None
    vin: str = ""
    plate: str = ""
    customer_email: str = ""
    customer_phone: str = ""
    customer_name: Optional[str] = None

    @property
    def line_description(self) -> str:
        return self.correction or self.complaint or "Imported history line"


# =============================================================================
# Run summary
# =============================================================================


@dataclass(slots=True)
class EntityCounts:
    """Row outcomes for one entity type."""

    rows: int = 0
    inserted: int = 0
    updated: int = 0
    matched: int = 0
    skipped: int = 0
    errored: int = 0


@dataclass(slots=True)
class RowIssue:
    """A row that was skipped or failed, identified by its position."""

    entity: str
    row_number: int
    reason: str


@dataclass(slots=True)
class ImportSummary:
    """What a run did, per entity type. Returned to the caller and persisted."""

    shop_id: str
    intake_id: str
    counts: Dict[str, EntityCounts] = field(
        default_factory=lambda: {entity.value: EntityCounts() for entity in PROCESSING_ORDER}
    )
    files_missing: List[str] = field(default_factory=list)
    invoices_created: int = 0
    job_lines_created: int = 0
    staff_suggestions_cleared: bool = False
    issues: List[RowIssue] = field(default_factory=list)
    issues_truncated: int = 0
    max_issues: int = 200
    started_at: Optional[str] = None
    completed_at: Optional[str] = None

    def for_entity(self, entity: EntityType | str) -> EntityCounts:
        key = entity.value if isinstance(entity, EntityType) else entity
        return self.counts[key]

    def record_issue(self, entity: EntityType | str, row_number: int, reason: str) -> None:
        key = entity.value if isinstance(entity, EntityType) else entity
        if len(self.issues) >= self.max_issues:
            self.issues_truncated += 1
            return
        self.issues.append(RowIssue(entity=key, row_number=row_number, reason=reason))

    def skip(self, entity: EntityType, row_number: int, reason: str) -> None:
        self.for_entity(entity).skipped += 1
        self.record_issue(entity, row_number, reason)

    def error(self, entity: EntityType, row_number: int, reason: str) -> None:
        self.for_entity(entity).errored += 1
        self.record_issue(entity, row_number, reason)

    @property
    def total_errored(self) -> int:
        return sum(counts.errored for counts in self.counts.values())

    def summary(self) -> str:
        """Human-readable one-line summary of the run."""
        parts = []
        for name, counts in self.counts.items():
            if name in self.files_missing:
                continue
            parts.append(
                f"{name}: {counts.inserted} inserted, {counts.updated} updated, "
                f"{counts.matched} matched, {counts.skipped} skipped, {counts.errored} errored"
            )
        body = "; ".join(parts) if parts else "no files provided"
        return f"Import {self.intake_id}: {body}; {self.invoices_created} invoices created"

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready form stored on the intake record."""
        data = asdict(self)
        data.pop("max_issues", None)
        return data
