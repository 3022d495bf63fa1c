"""
Typed exception hierarchy for the supply ledger kernel.

Every error carries a class-level ``code`` (machine-readable, stable across
message rewording) and stores its context as attributes, so callers catch by
type and report by structured data instead of parsing messages.

    SupplyKernelError (base)
    |
    +-- ValidationError
    |   +-- InvalidQuantityError
    |   +-- InvalidExpiryDateError
    |   +-- InvalidLabelError
    |   +-- DuplicateLotError
    |
    +-- StockError
    |   +-- InsufficientStockError
    |
    +-- PersistenceError
    |   +-- PersistenceFailureError
    |
    +-- AuditError
    |   +-- AuditEntryNotFoundError
    |
    +-- ConcurrencyError
        +-- UnlockedLabelError
        +-- PendingConfirmationError
        +-- NoPendingBatchError

Propagation policy:
    - ValidationError subclasses are raised before any ledger mutation.
    - InsufficientStockError is normally reported as a per-item result on
      the exit and correction paths; it is raised only by callers that ask
      for strict behaviour.
    - PersistenceFailureError aborts the unit of work it belongs to and is
      never swallowed: an operation reported successful was committed.

A correction whose restock committed but whose re-consumption failed is not
an error.  It is reported through ``CorrectionResult.status == PARTIAL``
with the ``PARTIAL_CORRECTION_STATE`` warning code.
"""

PARTIAL_CORRECTION_STATE = "PARTIAL_CORRECTION_STATE"


class SupplyKernelError(Exception):
    """
    Base exception for all supply ledger errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "SUPPLY_KERNEL_ERROR"


# Validation exceptions


class ValidationError(SupplyKernelError):
    """Base exception for input rejected before any mutation."""

    code: str = "VALIDATION_ERROR"


class InvalidQuantityError(ValidationError):
    """Quantity did not parse as a positive integer."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, raw_value: object):
        self.raw_value = raw_value
        super().__init__(f"Invalid quantity: {raw_value!r}")


class InvalidExpiryDateError(ValidationError):
    """Expiry date is not an ISO date."""

    code: str = "INVALID_EXPIRY_DATE"

    def __init__(self, raw_value: object):
        self.raw_value = raw_value
        super().__init__(f"Invalid expiry date: {raw_value!r}")


class InvalidLabelError(ValidationError):
    """Item label is empty after normalization."""

    code: str = "INVALID_LABEL"

    def __init__(self, raw_label: object):
        self.raw_label = raw_label
        super().__init__(f"Invalid item label: {raw_label!r}")


class DuplicateLotError(ValidationError):
    """Lot identifier already exists within the label bucket."""

    code: str = "DUPLICATE_LOT"

    def __init__(self, label: str, lot_id: str):
        self.label = label
        self.lot_id = lot_id
        super().__init__(f"Lot {lot_id} already exists for {label}")


# Stock exceptions


class StockError(SupplyKernelError):
    """Base exception for stock-level errors."""

    code: str = "STOCK_ERROR"


class InsufficientStockError(StockError):
    """Requested quantity exceeds the label's total stock."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, label: str, requested: int, available: int):
        self.label = label
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for {label}: requested {requested}, "
            f"available {available}"
        )


# Persistence exceptions


class PersistenceError(SupplyKernelError):
    """Base exception for storage errors."""

    code: str = "PERSISTENCE_ERROR"


class PersistenceFailureError(PersistenceError):
    """
    A unit of work could not be durably committed.

    Nothing from the failed unit of work is visible after this is raised.
    """

    code: str = "PERSISTENCE_FAILURE"

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Failed to persist {operation}: {reason}")


# Audit history exceptions


class AuditError(SupplyKernelError):
    """Base exception for audit history errors."""

    code: str = "AUDIT_ERROR"


class AuditEntryNotFoundError(AuditError):
    """No audit entry exists for the given id or position."""

    code: str = "AUDIT_ENTRY_NOT_FOUND"

    def __init__(self, entry_ref: str):
        self.entry_ref = entry_ref
        super().__init__(f"Audit entry not found: {entry_ref}")


# Concurrency exceptions


class ConcurrencyError(SupplyKernelError):
    """Base exception for locking and confirmation-gate errors."""

    code: str = "CONCURRENCY_ERROR"


class UnlockedLabelError(ConcurrencyError):
    """A ledger transaction touched a label it did not lock."""

    code: str = "UNLOCKED_LABEL"

    def __init__(self, label: str, locked_labels: tuple[str, ...]):
        self.label = label
        self.locked_labels = locked_labels
        super().__init__(
            f"Label {label} is not locked by this transaction "
            f"(locked: {', '.join(locked_labels) or 'none'})"
        )


class PendingConfirmationError(ConcurrencyError):
    """A detection batch is already awaiting confirmation."""

    code: str = "CONFIRMATION_PENDING"

    def __init__(self, pending_size: int):
        self.pending_size = pending_size
        super().__init__(
            f"A batch of {pending_size} detection(s) is already awaiting confirmation"
        )


class NoPendingBatchError(ConcurrencyError):
    """Confirmation requested with no pending batch."""

    code: str = "NO_PENDING_BATCH"

    def __init__(self):
        super().__init__("No detection batch is awaiting confirmation")
