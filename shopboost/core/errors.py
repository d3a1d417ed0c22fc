"""Shop Boost importer exception hierarchy."""

from __future__ import annotations


class ShopBoostError(Exception):
    """Base exception for all importer errors."""


class ConfigError(ShopBoostError):
    """Required configuration is missing or invalid."""


class IntakeNotFoundError(ShopBoostError):
    """The intake (run configuration) record could not be loaded."""

    def __init__(self, intake_id: str, shop_id: str, reason: str | None = None) -> None:
        self.intake_id = intake_id
        self.shop_id = shop_id
        self.reason = reason
        message = f"Intake {intake_id} not found for shop {shop_id}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class StoreError(ShopBoostError):
    """A relational store read or write failed."""

    def __init__(self, operation: str, table: str, message: str) -> None:
        self.operation = operation
        self.table = table
        super().__init__(f"{operation} on {table} failed: {message}")


class StorageError(ShopBoostError):
    """A file storage download failed."""


class RowImportError(ShopBoostError):
    """A single input row could not be imported."""

    def __init__(self, entity: str, row_number: int, message: str) -> None:
        self.entity = entity
        self.row_number = row_number
        super().__init__(f"{entity} row {row_number}: {message}")
