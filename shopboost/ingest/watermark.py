"""
Per-entity row watermarks for resuming an interrupted import.

The watermark for an entity type is the highest row number that finished
processing. It lives in ``intake_basics.importWatermarks`` on the intake
record; a restarted run skips rows at or below it. Resolution logic never
sees watermarks.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping

from shopboost.core.errors import StoreError
from shopboost.db.store import ShopStore

logger = logging.getLogger(__name__)

WATERMARKS_KEY = "importWatermarks"


class Watermarks:
    def __init__(
        self,
        store: ShopStore,
        intake_id: str,
        basics: Mapping[str, Any] | None,
        *,
        enabled: bool = False,
        flush_every: int = 1,
    ) -> None:
        self._store = store
        self._intake_id = intake_id
        self._basics: Dict[str, Any] = dict(basics or {})
        self.enabled = enabled
        self._flush_every = max(1, flush_every)
        self._pending = 0

        raw = self._basics.get(WATERMARKS_KEY)
        self._marks: Dict[str, int] = {}
        if enabled and isinstance(raw, dict):
            for entity, value in raw.items():
                if isinstance(value, int) and value > 0:
                    self._marks[str(entity)] = value

    def get(self, entity: str) -> int:
        return self._marks.get(entity, 0)

    def should_skip(self, entity: str, row_number: int) -> bool:
        return self.enabled and row_number <= self.get(entity)

    def advance(self, entity: str, row_number: int) -> None:
        if not self.enabled or row_number <= self.get(entity):
            return
        self._marks[entity] = row_number
        self._pending += 1
        if self._pending >= self._flush_every:
            self.flush()

    def flush(self) -> None:
        if not self.enabled or not self._pending:
            return
        self._basics[WATERMARKS_KEY] = dict(self._marks)
        try:
            self._store.update_intake(self._intake_id, {"intake_basics": dict(self._basics)})
        except StoreError as exc:
            # Losing a watermark only means rows get re-processed on restart.
            logger.warning("Could not persist import watermarks: %s", exc)
            return
        self._pending = 0

    def completed_basics(self) -> Dict[str, Any]:
        """Intake notes for a finished run; watermarks are dropped so a re-run starts over."""
        basics = dict(self._basics)
        basics.pop(WATERMARKS_KEY, None)
        return basics
