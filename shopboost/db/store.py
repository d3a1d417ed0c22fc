"""
Relational store access for the onboarding import.

``ShopStore`` is the structural interface the importer depends on;
``SupabaseShopStore`` implements it over the Supabase PostgREST table API.
Every read is scoped to a shop and every failure surfaces as ``StoreError``
so the importer can decide, per row, whether to continue.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Protocol, Sequence, runtime_checkable

import httpx
from postgrest.exceptions import APIError

from shopboost.core.errors import StoreError

logger = logging.getLogger(__name__)

INTAKES_TABLE = "shop_boost_intakes"
CUSTOMERS_TABLE = "customers"
VEHICLES_TABLE = "vehicles"
PARTS_TABLE = "parts"
PROFILES_TABLE = "profiles"
STAFF_SUGGESTIONS_TABLE = "staff_invite_suggestions"
WORK_ORDERS_TABLE = "work_orders"
WORK_ORDER_LINES_TABLE = "work_order_lines"
INVOICES_TABLE = "invoices"


@runtime_checkable
class ShopStore(Protocol):
    """Tenant-scoped reads and writes used by the importer."""

    def load_intake(self, intake_id: str, shop_id: str) -> Dict[str, Any] | None: ...

    def select_rows(
        self, table: str, columns: Sequence[str], shop_id: str, limit: int
    ) -> List[Dict[str, Any]]: ...

    def find_id(self, table: str, shop_id: str, filters: Mapping[str, Any]) -> str | None: ...

    def find_latest_work_order(self, shop_id: str, custom_id: str) -> str | None: ...

    def insert(self, table: str, payload: Mapping[str, Any]) -> str | None: ...

    def update(self, table: str, record_id: str, payload: Mapping[str, Any]) -> None: ...

    def delete_staff_suggestions(self, shop_id: str, intake_id: str) -> None: ...

    def update_intake(self, intake_id: str, payload: Mapping[str, Any]) -> None: ...


def _first_id(data: Any) -> str | None:
    if isinstance(data, list) and data:
        value = data[0].get("id") if isinstance(data[0], dict) else None
        return str(value) if value else None
    if isinstance(data, dict) and data.get("id"):
        return str(data["id"])
    return None


class SupabaseShopStore:
    """ShopStore backed by a supabase-py ``Client``."""

    def __init__(self, client: Any) -> None:
        self._client = client

    def _execute(self, operation: str, table: str, query: Any) -> Any:
        try:
            response = query.execute()
        except APIError as exc:
            raise StoreError(operation, table, exc.message or str(exc)) from exc
        except httpx.HTTPError as exc:
            raise StoreError(operation, table, str(exc)) from exc
        return getattr(response, "data", None)

    def load_intake(self, intake_id: str, shop_id: str) -> Dict[str, Any] | None:
        query = (
            self._client.table(INTAKES_TABLE)
            .select("*")
            .eq("id", intake_id)
            .eq("shop_id", shop_id)
            .limit(1)
        )
        data = self._execute("select", INTAKES_TABLE, query) or []
        return dict(data[0]) if data else None

    def select_rows(
        self, table: str, columns: Sequence[str], shop_id: str, limit: int
    ) -> List[Dict[str, Any]]:
        query = (
            self._client.table(table)
            .select(",".join(columns))
            .eq("shop_id", shop_id)
            .limit(limit)
        )
        data = self._execute("select", table, query) or []
        if len(data) >= limit:
            logger.warning(
                "Lookup preload for %s hit the %d row cap; older rows will not match",
                table,
                limit,
            )
        return [dict(row) for row in data]

    def find_id(self, table: str, shop_id: str, filters: Mapping[str, Any]) -> str | None:
        query = self._client.table(table).select("id").eq("shop_id", shop_id)
        for column, value in filters.items():
            query = query.eq(column, value)
        return _first_id(self._execute("select", table, query.limit(1)))

    def find_latest_work_order(self, shop_id: str, custom_id: str) -> str | None:
        query = (
            self._client.table(WORK_ORDERS_TABLE)
            .select("id")
            .eq("shop_id", shop_id)
            .eq("custom_id", custom_id)
            .order("created_at", desc=True)
            .limit(1)
        )
        return _first_id(self._execute("select", WORK_ORDERS_TABLE, query))

    def insert(self, table: str, payload: Mapping[str, Any]) -> str | None:
        query = self._client.table(table).insert(dict(payload))
        return _first_id(self._execute("insert", table, query))

    def update(self, table: str, record_id: str, payload: Mapping[str, Any]) -> None:
        query = self._client.table(table).update(dict(payload)).eq("id", record_id)
        self._execute("update", table, query)

    def delete_staff_suggestions(self, shop_id: str, intake_id: str) -> None:
        query = (
            self._client.table(STAFF_SUGGESTIONS_TABLE)
            .delete()
            .eq("shop_id", shop_id)
            .eq("intake_id", intake_id)
        )
        self._execute("delete", STAFF_SUGGESTIONS_TABLE, query)

    def update_intake(self, intake_id: str, payload: Mapping[str, Any]) -> None:
        self.update(INTAKES_TABLE, intake_id, payload)
