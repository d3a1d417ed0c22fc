"""
Natural-key entity resolution.

A resolver answers one question for an incoming row: does this entity already
exist for the tenant? Keys are tried in priority order (for customers: email,
then phone) and compared after ``normalize_key``. Indexes start from the
store's current rows and grow as the run inserts new entities, so a vehicle
row can link to a customer created earlier in the same run without another
store round trip.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Sequence

from shopboost.ingest.normalizers import normalize_key


class KeyIndex:
    """Normalized natural key -> entity id."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._ids: Dict[str, str] = {}

    def get(self, key: str | None) -> str | None:
        normalized = normalize_key(key)
        if not normalized:
            return None
        return self._ids.get(normalized)

    def set(self, key: str | None, entity_id: str) -> None:
        normalized = normalize_key(key)
        if normalized and entity_id:
            self._ids[normalized] = entity_id

    def __len__(self) -> int:
        return len(self._ids)


@dataclass(slots=True)
class Resolution:
    """Outcome of resolving a candidate record."""

    entity_id: str | None
    matched_on: str | None = None

    @property
    def is_match(self) -> bool:
        return self.entity_id is not None


class EntityResolver:
    """
    Ordered multi-key lookup for one entity type.

    Example:
        customers = EntityResolver("customer", ("email", "phone"))
        customers.load(rows, email="email", phone=("phone", "phone_number"))
        resolution = customers.resolve(email=email, phone=phone)
        if not resolution.is_match:
            new_id = store.insert(...)
            customers.register(new_id, email=email, phone=phone)
    """

    def __init__(self, entity: str, key_names: Sequence[str]) -> None:
        if not key_names:
            raise ValueError("EntityResolver needs at least one key")
        self.entity = entity
        self.key_names = tuple(key_names)
        self._indexes: Dict[str, KeyIndex] = {name: KeyIndex(name) for name in self.key_names}

    def resolve(self, **keys: str | None) -> Resolution:
        """First non-empty key, in priority order, that is known wins."""
        self._check_keys(keys)
        for name in self.key_names:
            entity_id = self._indexes[name].get(keys.get(name))
            if entity_id:
                return Resolution(entity_id=entity_id, matched_on=name)
        return Resolution(entity_id=None)

    def register(self, entity_id: str, **keys: str | None) -> None:
        """Record ``entity_id`` under every non-empty key supplied."""
        self._check_keys(keys)
        for name, value in keys.items():
            self._indexes[name].set(value, entity_id)

    def load(
        self,
        rows: Iterable[Mapping[str, Any]],
        id_field: str = "id",
        **columns: str | Sequence[str],
    ) -> int:
        """
        Seed the indexes from store rows.

        ``columns`` maps a key name to the row column holding it, or to a
        sequence of columns where the first non-empty one is used.
        """
        self._check_keys(columns)
        loaded = 0
        for row in rows:
            entity_id = row.get(id_field)
            if not entity_id:
                continue
            for name, column in columns.items():
                candidates = (column,) if isinstance(column, str) else tuple(column)
                value = next((row.get(c) for c in candidates if row.get(c)), None)
                if value is not None:
                    self._indexes[name].set(str(value), str(entity_id))
            loaded += 1
        return loaded

    def sizes(self) -> Dict[str, int]:
        return {name: len(index) for name, index in self._indexes.items()}

    def _check_keys(self, keys: Mapping[str, Any]) -> None:
        unknown = set(keys) - set(self.key_names)
        if unknown:
            raise KeyError(f"Unknown {self.entity} keys: {sorted(unknown)}")
