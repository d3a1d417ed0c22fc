"""
Shop Boost Importer - Onboarding Import Orchestrator

Reconciles a new shop's exported spreadsheets into the live Supabase schema.

Flow for one (shop, intake) run:
    1. Load the intake record; abort the run if it cannot be read.
    2. Download the customers/vehicles/parts/history/staff files concurrently.
       A missing or unreachable file means "nothing to import" for that type.
    3. Pre-load natural-key lookups (customers, vehicles, staff profiles).
    4. Process entity types in dependency order:
       customers -> vehicles -> parts -> staff -> history
    5. Per row: pick fields, normalize, resolve, update-or-insert, register.
    6. History rows also get a job line and, when they carry money, an invoice.
    7. Stamp processed_at and merge the run summary into intake_basics.

Failure semantics:
    - Intake missing/unreadable or lookup preload failure: run aborts, returns None.
    - One bad row: logged with its position, counted, next row continues.
    - Staff suggestion and invoice writes are soft; they never block the job,
      customer or vehicle they derive from.

Usage:
    from shopboost.ingest.orchestrator import run_shop_boost_import

    summary = await run_shop_boost_import(shop_id, intake_id)
    if summary:
        print(summary.summary())
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional

from shopboost.core.config import Settings, get_settings
from shopboost.core.errors import IntakeNotFoundError, RowImportError, ShopBoostError, StoreError
from shopboost.core.logging import LogContext, Timer
from shopboost.db.storage import IntakeFileStorage
from shopboost.db.store import (
    CUSTOMERS_TABLE,
    PARTS_TABLE,
    PROFILES_TABLE,
    STAFF_SUGGESTIONS_TABLE,
    VEHICLES_TABLE,
    WORK_ORDER_LINES_TABLE,
    WORK_ORDERS_TABLE,
    ShopStore,
    SupabaseShopStore,
)
from shopboost.ingest.csv_decoder import CsvRow, parse_csv
from shopboost.ingest.identity import external_id, line_external_id, staff_external_id
from shopboost.ingest.invoices import InvoiceOutcome, synthesize_invoice
from shopboost.ingest.mappers import map_customer, map_history, map_part, map_staff, map_vehicle
from shopboost.ingest.models import (
    CUSTOMER_CONFIDENCE,
    HISTORY_CONFIDENCE,
    PART_CONFIDENCE,
    PROCESSING_ORDER,
    VEHICLE_CONFIDENCE,
    EntityType,
    HistoryRecord,
    ImportSummary,
    compact,
)
from shopboost.ingest.resolver import EntityResolver
from shopboost.ingest.watermark import Watermarks

logger = logging.getLogger(__name__)

INTAKE_NOTES_COLUMN = "intake_basics"


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


class RowOutcome(str, Enum):
    INSERTED = "inserted"
    UPDATED = "updated"
    MATCHED = "matched"
    SKIPPED = "skipped"


@dataclass
class RunContext:
    """
    Mutable state owned by exactly one run.

    The resolvers grow as the run inserts entities, which is how a vehicle row
    finds a customer created a few seconds earlier. Never share a context
    between runs.
    """

    shop_id: str
    intake_id: str
    summary: ImportSummary
    watermarks: Watermarks
    customers: EntityResolver = field(
        default_factory=lambda: EntityResolver("customer", ("email", "phone"))
    )
    vehicles: EntityResolver = field(
        default_factory=lambda: EntityResolver("vehicle", ("vin", "plate"))
    )
    staff: EntityResolver = field(default_factory=lambda: EntityResolver("staff", ("email", "name")))

    def provenance(self, entity: EntityType, row_number: int) -> Dict[str, Any]:
        return {
            "source_intake_id": self.intake_id,
            "external_id": external_id(self.intake_id, entity.value, row_number),
        }


RowHandler = Callable[[RunContext, CsvRow, int], RowOutcome]


class ShopBoostImporter:
    """Runs onboarding imports against an injected store and file storage."""

    def __init__(
        self,
        store: ShopStore,
        storage: IntakeFileStorage,
        settings: Settings | None = None,
    ) -> None:
        self._store = store
        self._storage = storage
        self._settings = settings or get_settings()
        self._handlers: Dict[EntityType, RowHandler] = {
            EntityType.CUSTOMERS: self._import_customer,
            EntityType.VEHICLES: self._import_vehicle,
            EntityType.PARTS: self._import_part,
            EntityType.STAFF: self._import_staff,
            EntityType.HISTORY: self._import_history,
        }

    # =========================================================================
    # Run
    # =========================================================================

    async def run(self, shop_id: str, intake_id: str) -> Optional[ImportSummary]:
        with LogContext(run_id=intake_id, shop_id=shop_id, intake_id=intake_id), Timer() as timer:
            try:
                intake = self._require_intake(shop_id, intake_id)
            except IntakeNotFoundError as exc:
                logger.warning("Aborting import: %s", exc)
                return None

            files = await self._download_files(intake)

            summary = ImportSummary(
                shop_id=shop_id,
                intake_id=intake_id,
                max_issues=self._settings.MAX_ROW_ISSUES,
                started_at=_utc_now(),
            )
            summary.files_missing = [entity.value for entity, text in files.items() if text is None]

            basics = intake.get(INTAKE_NOTES_COLUMN)
            ctx = RunContext(
                shop_id=shop_id,
                intake_id=intake_id,
                summary=summary,
                watermarks=Watermarks(
                    self._store,
                    intake_id,
                    basics if isinstance(basics, dict) else None,
                    enabled=self._settings.IMPORT_RESUME_ENABLED,
                    flush_every=self._settings.IMPORT_WATERMARK_FLUSH_EVERY,
                ),
            )

            try:
                self._preload_lookups(ctx)
            except StoreError as exc:
                logger.error("Aborting import: natural-key preload failed: %s", exc)
                return None

            for entity in PROCESSING_ORDER:
                text = files.get(entity)
                if text is None:
                    logger.debug("No %s file provided; skipping", entity.value)
                    continue
                self._process_file(ctx, entity, text)
                ctx.watermarks.flush()

            summary.completed_at = _utc_now()
            self._mark_processed(ctx)

        logger.info(
            "%s in %.0fms",
            summary.summary(),
            timer.elapsed_ms,
            extra={"duration_ms": round(timer.elapsed_ms, 2), "status": "completed"},
        )
        return summary

    def _require_intake(self, shop_id: str, intake_id: str) -> Dict[str, Any]:
        try:
            intake = self._store.load_intake(intake_id, shop_id)
        except StoreError as exc:
            raise IntakeNotFoundError(intake_id, shop_id, str(exc)) from exc
        if not intake:
            raise IntakeNotFoundError(intake_id, shop_id)
        return intake

    async def _download_files(self, intake: Mapping[str, Any]) -> Dict[EntityType, Optional[str]]:
        entities = list(PROCESSING_ORDER)
        results = await asyncio.gather(
            *(self._storage.fetch_text(intake.get(entity.file_path_column)) for entity in entities),
            return_exceptions=True,
        )

        files: Dict[EntityType, Optional[str]] = {}
        for entity, result in zip(entities, results):
            if isinstance(result, BaseException):
                logger.info("Download of %s file failed (%s); treating as not provided", entity.value, result)
                files[entity] = None
            else:
                files[entity] = result
        return files

    def _preload_lookups(self, ctx: RunContext) -> None:
        limit = self._settings.IMPORT_LOOKUP_LIMIT

        rows = self._store.select_rows(
            CUSTOMERS_TABLE, ("id", "email", "phone", "phone_number", "shop_id"), ctx.shop_id, limit
        )
        ctx.customers.load(rows, email="email", phone=("phone", "phone_number"))

        rows = self._store.select_rows(
            VEHICLES_TABLE, ("id", "vin", "license_plate", "shop_id"), ctx.shop_id, limit
        )
        ctx.vehicles.load(rows, vin="vin", plate="license_plate")

        rows = self._store.select_rows(
            PROFILES_TABLE, ("id", "email", "full_name", "shop_id"), ctx.shop_id, limit
        )
        ctx.staff.load(rows, email="email", name="full_name")

        logger.debug(
            "Preloaded lookups customers=%s vehicles=%s staff=%s",
            ctx.customers.sizes(),
            ctx.vehicles.sizes(),
            ctx.staff.sizes(),
        )

    def _process_file(self, ctx: RunContext, entity: EntityType, text: str) -> None:
        parsed = parse_csv(text)
        counts = ctx.summary.for_entity(entity)
        counts.rows = len(parsed)
        handler = self._handlers[entity]
        # Staff is replaced wholesale each run, so it never resumes mid-file.
        resumable = entity is not EntityType.STAFF

        if entity is EntityType.STAFF and not self._clear_staff_suggestions(ctx):
            return

        logger.info("Importing %d %s rows", len(parsed), entity.value)

        for index, row in enumerate(parsed.rows):
            row_number = index + 1

            if resumable and ctx.watermarks.should_skip(entity.value, row_number):
                counts.skipped += 1
                continue

            if not any(value.strip() for value in row.values()):
                ctx.summary.skip(entity, row_number, "blank row")
                continue

            with LogContext(entity=entity.value, row_number=row_number):
                try:
                    outcome = handler(ctx, row, row_number)
                except ShopBoostError as exc:
                    logger.warning("Row failed: %s", exc)
                    ctx.summary.error(entity, row_number, str(exc))
                    continue
                except Exception as exc:
                    logger.exception("Unexpected error importing row")
                    ctx.summary.error(entity, row_number, f"{type(exc).__name__}: {exc}")
                    continue

            if outcome is RowOutcome.INSERTED:
                counts.inserted += 1
            elif outcome is RowOutcome.UPDATED:
                counts.updated += 1
            elif outcome is RowOutcome.MATCHED:
                counts.matched += 1
            else:
                counts.skipped += 1

            if resumable:
                ctx.watermarks.advance(entity.value, row_number)

    def _mark_processed(self, ctx: RunContext) -> None:
        now = _utc_now()
        basics = ctx.watermarks.completed_basics()
        basics["importedAt"] = now
        basics["importSummary"] = ctx.summary.to_dict()
        try:
            self._store.update_intake(
                ctx.intake_id,
                {"processed_at": now, INTAKE_NOTES_COLUMN: basics},
            )
        except StoreError as exc:
            logger.error("Import finished but intake %s could not be marked processed: %s", ctx.intake_id, exc)

    # =========================================================================
    # Customers
    # =========================================================================

    def _import_customer(self, ctx: RunContext, row: CsvRow, row_number: int) -> RowOutcome:
        record = map_customer(row)
        provenance = ctx.provenance(EntityType.CUSTOMERS, row_number)
        resolution = ctx.customers.resolve(email=record.email, phone=record.phone)

        if resolution.is_match:
            payload = compact(record.fields())
            if not record.is_fleet:
                # Never demote an existing fleet account from a sparse row.
                payload.pop("is_fleet", None)
            payload.update(shop_id=ctx.shop_id, updated_at=_utc_now(), **provenance)
            self._store.update(CUSTOMERS_TABLE, resolution.entity_id, payload)
            ctx.customers.register(resolution.entity_id, email=record.email, phone=record.phone)
            return RowOutcome.UPDATED

        payload = {
            "shop_id": ctx.shop_id,
            **record.fields(),
            **provenance,
            "import_confidence": CUSTOMER_CONFIDENCE,
        }
        new_id = self._store.insert(CUSTOMERS_TABLE, payload)
        if not new_id:
            raise RowImportError(EntityType.CUSTOMERS.value, row_number, "insert returned no id")
        ctx.customers.register(new_id, email=record.email, phone=record.phone)
        return RowOutcome.INSERTED

    # =========================================================================
    # Vehicles
    # =========================================================================

    def _import_vehicle(self, ctx: RunContext, row: CsvRow, row_number: int) -> RowOutcome:
        record = map_vehicle(row)
        provenance = ctx.provenance(EntityType.VEHICLES, row_number)
        customer_id = ctx.customers.resolve(
            email=record.customer_email, phone=record.customer_phone
        ).entity_id
        resolution = ctx.vehicles.resolve(vin=record.vin, plate=record.plate)

        if resolution.is_match:
            payload = compact(record.fields())
            if customer_id:
                payload["customer_id"] = customer_id
            payload.update(
                shop_id=ctx.shop_id, import_confidence=VEHICLE_CONFIDENCE, **provenance
            )
            self._store.update(VEHICLES_TABLE, resolution.entity_id, payload)
            ctx.vehicles.register(resolution.entity_id, vin=record.vin, plate=record.plate)
            return RowOutcome.UPDATED

        payload = {
            "shop_id": ctx.shop_id,
            "customer_id": customer_id,
            **record.fields(),
            **provenance,
            "import_confidence": VEHICLE_CONFIDENCE,
        }
        new_id = self._store.insert(VEHICLES_TABLE, payload)
        if not new_id:
            raise RowImportError(EntityType.VEHICLES.value, row_number, "insert returned no id")
        ctx.vehicles.register(new_id, vin=record.vin, plate=record.plate)
        return RowOutcome.INSERTED

    # =========================================================================
    # Parts
    # =========================================================================

    def _import_part(self, ctx: RunContext, row: CsvRow, row_number: int) -> RowOutcome:
        record = map_part(row, row_number)
        payload = {
            "shop_id": ctx.shop_id,
            **record.fields(),
            **ctx.provenance(EntityType.PARTS, row_number),
            "import_confidence": PART_CONFIDENCE,
        }
        self._store.insert(PARTS_TABLE, payload)
        return RowOutcome.INSERTED

    # =========================================================================
    # Staff (replace semantics)
    # =========================================================================

    def _clear_staff_suggestions(self, ctx: RunContext) -> bool:
        try:
            self._store.delete_staff_suggestions(ctx.shop_id, ctx.intake_id)
        except StoreError as exc:
            logger.error("Skipping staff file: prior suggestions could not be cleared: %s", exc)
            ctx.summary.error(EntityType.STAFF, 0, "prior staff suggestions could not be cleared")
            return False
        ctx.summary.staff_suggestions_cleared = True
        return True

    def _import_staff(self, ctx: RunContext, row: CsvRow, row_number: int) -> RowOutcome:
        record = map_staff(row)
        if record.is_empty:
            ctx.summary.record_issue(EntityType.STAFF, row_number, "no name, email or role")
            return RowOutcome.SKIPPED

        resolution = ctx.staff.resolve(email=record.email, name=record.full_name)
        if resolution.is_match:
            logger.info("Staff row matches an existing staff member on %s", resolution.matched_on)
            ctx.summary.record_issue(
                EntityType.STAFF, row_number, f"already on staff (matched on {resolution.matched_on})"
            )
            return RowOutcome.SKIPPED

        suggestion_id = staff_external_id(
            ctx.intake_id, row_number, record.full_name, record.email, record.role
        )
        payload = {
            "shop_id": ctx.shop_id,
            "intake_id": ctx.intake_id,
            "role": record.role or "mechanic",
            "full_name": record.full_name,
            "email": record.email,
            "count_suggested": 1,
            "notes": record.notes,
            "external_id": suggestion_id,
        }
        new_id = self._store.insert(STAFF_SUGGESTIONS_TABLE, payload)
        ctx.staff.register(new_id or suggestion_id, email=record.email, name=record.full_name)
        return RowOutcome.INSERTED

    # =========================================================================
    # History -> completed work orders, lines and invoices
    # =========================================================================

    def _import_history(self, ctx: RunContext, row: CsvRow, row_number: int) -> RowOutcome:
        record = map_history(row)
        customer_id = ctx.customers.resolve(
            email=record.customer_email, phone=record.customer_phone
        ).entity_id
        vehicle_id = ctx.vehicles.resolve(vin=record.vin, plate=record.plate).entity_id
        provenance = ctx.provenance(EntityType.HISTORY, row_number)

        work_order_id = self._store.find_id(
            WORK_ORDERS_TABLE, ctx.shop_id, {"external_id": provenance["external_id"]}
        )
        outcome = RowOutcome.MATCHED
        if not work_order_id:
            work_order_id, outcome = self._insert_work_order(
                ctx, record, row_number, customer_id, vehicle_id, provenance
            )

        self._insert_history_line(ctx, record, row_number, work_order_id, vehicle_id)

        invoice = synthesize_invoice(
            self._store,
            shop_id=ctx.shop_id,
            work_order_id=work_order_id,
            customer_id=customer_id,
            intake_id=ctx.intake_id,
            row_number=row_number,
            labor=record.labor,
            parts=record.parts,
            total=record.total,
            issued_at=record.performed_at,
        )
        if invoice is InvoiceOutcome.CREATED:
            ctx.summary.invoices_created += 1
        elif invoice is InvoiceOutcome.FAILED:
            ctx.summary.record_issue(EntityType.HISTORY, row_number, "invoice could not be created")

        return outcome

    def _insert_work_order(
        self,
        ctx: RunContext,
        record: HistoryRecord,
        row_number: int,
        customer_id: str | None,
        vehicle_id: str | None,
        provenance: Mapping[str, Any],
    ) -> tuple[str, RowOutcome]:
        payload = {
            "shop_id": ctx.shop_id,
            "customer_id": customer_id,
            "vehicle_id": vehicle_id,
            "status": "completed",
            "type": "repair",
            "custom_id": record.ro_number,
            "customer_name": record.customer_name,
            "labor_total": record.labor,
            "parts_total": record.parts,
            "invoice_total": record.total,
            "created_at": record.performed_at,
            "updated_at": record.performed_at,
            **provenance,
            "import_confidence": HISTORY_CONFIDENCE,
        }
        try:
            work_order_id = self._store.insert(WORK_ORDERS_TABLE, payload)
        except StoreError as exc:
            if not record.ro_number:
                raise
            # Typically a custom_id uniqueness clash: attach to the job already on file.
            work_order_id = self._store.find_latest_work_order(ctx.shop_id, record.ro_number)
            if not work_order_id:
                raise RowImportError(
                    EntityType.HISTORY.value,
                    row_number,
                    f"job insert failed and no job matches RO {record.ro_number}: {exc}",
                ) from exc
            logger.info("Job insert failed; attached to existing job for RO %s", record.ro_number)
            return work_order_id, RowOutcome.MATCHED

        if not work_order_id:
            raise RowImportError(EntityType.HISTORY.value, row_number, "job insert returned no id")
        return work_order_id, RowOutcome.INSERTED

    def _insert_history_line(
        self,
        ctx: RunContext,
        record: HistoryRecord,
        row_number: int,
        work_order_id: str,
        vehicle_id: str | None,
    ) -> None:
        line_id = line_external_id(ctx.intake_id, row_number)
        try:
            if self._store.find_id(WORK_ORDER_LINES_TABLE, ctx.shop_id, {"external_id": line_id}):
                return
            self._store.insert(
                WORK_ORDER_LINES_TABLE,
                {
                    "shop_id": ctx.shop_id,
                    "work_order_id": work_order_id,
                    "vehicle_id": vehicle_id,
                    "complaint": record.complaint,
                    "cause": record.cause,
                    "correction": record.correction,
                    "description": record.line_description,
                    "status": "completed",
                    "job_type": "repair",
                    "line_no": row_number,
                    "source_intake_id": ctx.intake_id,
                    "external_id": line_id,
                    "import_confidence": HISTORY_CONFIDENCE,
                },
            )
        except StoreError as exc:
            logger.warning("Job line insert failed for work order %s: %s", work_order_id, exc)
            ctx.summary.record_issue(EntityType.HISTORY, row_number, "job line could not be created")
            return
        ctx.summary.job_lines_created += 1


async def run_shop_boost_import(
    shop_id: str,
    intake_id: str,
    *,
    store: ShopStore | None = None,
    storage: IntakeFileStorage | None = None,
    settings: Settings | None = None,
) -> Optional[ImportSummary]:
    """
    Import one intake's uploaded files for a shop.

    Collaborators default to Supabase-backed implementations built from
    settings. Returns the run summary, or None when the run was aborted.
    """
    settings = settings or get_settings()
    if store is None or storage is None:
        from shopboost.db.supabase_client import create_supabase_client

        client = create_supabase_client(settings)
        store = store or SupabaseShopStore(client)
        storage = storage or IntakeFileStorage(client, bucket=settings.SHOP_IMPORT_BUCKET)

    importer = ShopBoostImporter(store, storage, settings)
    return await importer.run(shop_id, intake_id)
