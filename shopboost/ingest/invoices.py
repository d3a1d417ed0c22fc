"""
Invoice synthesis for imported job history.

A historical job only gets an invoice when its row carried money. Rows with
no positive labor, parts or total are imported as jobs without fabricating
financial records. The first synthesized invoice for a job wins; later runs
never create a second one or rewrite it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from shopboost.core.errors import StoreError
from shopboost.db.store import INVOICES_TABLE, ShopStore
from shopboost.ingest.identity import external_id

logger = logging.getLogger(__name__)

INVOICE_CURRENCY = "USD"
INVOICE_STATUS = "paid"


class InvoiceOutcome(str, Enum):
    CREATED = "created"
    SKIPPED_NO_MONEY = "skipped_no_money"
    SKIPPED_EXISTS = "skipped_exists"
    FAILED = "failed"


@dataclass(slots=True)
class InvoiceAmounts:
    labor: Optional[float]
    parts: Optional[float]
    total: Optional[float]

    @property
    def has_money(self) -> bool:
        return any((value or 0) > 0 for value in (self.labor, self.parts, self.total))

    @property
    def subtotal(self) -> float:
        return max(0.0, (self.labor or 0) + (self.parts or 0))

    @property
    def grand_total(self) -> float:
        return self.total if self.total is not None else self.subtotal


def build_invoice_payload(
    *,
    shop_id: str,
    work_order_id: str,
    customer_id: str | None,
    intake_id: str,
    row_number: int,
    amounts: InvoiceAmounts,
    issued_at: str | None,
) -> Dict[str, Any]:
    return {
        "shop_id": shop_id,
        "work_order_id": work_order_id,
        "customer_id": customer_id,
        "source_intake_id": intake_id,
        "external_id": external_id(intake_id, "invoice", row_number),
        "status": INVOICE_STATUS,
        "subtotal": amounts.subtotal,
        "labor_cost": amounts.labor or 0,
        "parts_cost": amounts.parts or 0,
        "total": amounts.grand_total,
        "issued_at": issued_at,
        "paid_at": issued_at,
        "currency": INVOICE_CURRENCY,
        "metadata": {"imported": True},
    }


def synthesize_invoice(
    store: ShopStore,
    *,
    shop_id: str,
    work_order_id: str,
    customer_id: str | None,
    intake_id: str,
    row_number: int,
    labor: float | None,
    parts: float | None,
    total: float | None,
    issued_at: str | None,
) -> InvoiceOutcome:
    """Create the paid invoice for an imported job when its row carried money."""
    amounts = InvoiceAmounts(labor=labor, parts=parts, total=total)
    if not amounts.has_money:
        return InvoiceOutcome.SKIPPED_NO_MONEY

    try:
        existing = store.find_id(INVOICES_TABLE, shop_id, {"work_order_id": work_order_id})
        if existing:
            logger.debug("Invoice %s already covers work order %s", existing, work_order_id)
            return InvoiceOutcome.SKIPPED_EXISTS

        store.insert(
            INVOICES_TABLE,
            build_invoice_payload(
                shop_id=shop_id,
                work_order_id=work_order_id,
                customer_id=customer_id,
                intake_id=intake_id,
                row_number=row_number,
                amounts=amounts,
                issued_at=issued_at,
            ),
        )
    except StoreError as exc:
        logger.warning("Invoice synthesis failed for work order %s: %s", work_order_id, exc)
        return InvoiceOutcome.FAILED

    return InvoiceOutcome.CREATED
