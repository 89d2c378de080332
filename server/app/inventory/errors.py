from decimal import Decimal


class InventoryError(Exception):
    """Base class for every failure raised by the inventory ledger."""

    code = "INVENTORY_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(InventoryError, ValueError):
    code = "VALIDATION_ERROR"


class NotFoundError(InventoryError, LookupError):
    """Raised for absent rows and for rows owned by another tenant alike."""

    code = "NOT_FOUND"


class InsufficientStockError(InventoryError):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, *, batch_id: int, available: Decimal, requested: Decimal):
        super().__init__(
            f"Insufficient stock in batch {batch_id}: available {available}, requested {requested}."
        )
        self.batch_id = batch_id
        self.available = available
        self.requested = requested


class ConflictError(InventoryError):
    """A concurrent writer changed the position first; the caller may retry."""

    code = "CONFLICT"


class StorageError(InventoryError):
    code = "STORAGE_ERROR"
