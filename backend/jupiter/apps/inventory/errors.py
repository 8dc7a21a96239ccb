from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class LedgerError(Exception):
    """Base class for expected business failures of the stock ledger."""

    error_kind = "LedgerError"

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class InsufficientStockError(LedgerError):
    """Raised when an Outbound quantity exceeds an item's current stock."""

    error_kind = "InsufficientStockError"

    def __init__(self, *, item_id: str, item_name: str, required: Decimal, available: Decimal) -> None:
        self.item_id = item_id
        self.item_name = item_name
        self.required = required
        self.available = available
        self.shortfall = required - available
        super().__init__(
            f"Insufficient stock for {item_name}: required {required}, "
            f"available {available}, short by {self.shortfall}.",
            item_id=item_id,
            required=str(required),
            available=str(available),
            shortfall=str(self.shortfall),
        )


class EmptyTransactionError(LedgerError):
    """Raised when a transaction would be left without line items."""

    error_kind = "EmptyTransactionError"


class NotFoundError(LedgerError):
    """Raised when a referenced transaction or item id no longer exists."""

    error_kind = "NotFoundError"


class DuplicateSkuError(LedgerError):
    """Raised when a second item would claim an existing SKU."""

    error_kind = "DuplicateSkuError"


class ImportRowError(LedgerError):
    """A malformed import row. Collected into the batch report, never fatal."""

    error_kind = "ImportRowError"

    def __init__(self, message: str, *, row_number: int, sku: Optional[str] = None, kind: Optional[str] = None) -> None:
        self.row_number = row_number
        self.sku = sku
        if kind:
            self.error_kind = kind
        super().__init__(message, row_number=row_number, sku=sku)


# ---------------------------------------------------------------------------
# Structured results
# ---------------------------------------------------------------------------


@dataclass
class LedgerResult:
    success: bool
    transaction: Optional[Any] = None
    error_kind: Optional[str] = None
    message: Optional[str] = None
    detail: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, transaction: Any = None) -> "LedgerResult":
        return cls(success=True, transaction=transaction)

    @classmethod
    def failed(cls, error: LedgerError) -> "LedgerResult":
        return cls(
            success=False,
            error_kind=error.error_kind,
            message=error.message,
            detail=dict(error.detail),
        )
