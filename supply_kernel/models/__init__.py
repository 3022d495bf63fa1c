"""ORM models for the supply ledger."""

from supply_kernel.models.audit_entry import AuditEntryModel
from supply_kernel.models.ledger_state import (
    LEDGER_INITIALIZED,
    LedgerStateModel,
    LegacyStockModel,
)
from supply_kernel.models.lot import LotModel
from supply_kernel.models.sequence import SequenceCounter

__all__ = [
    "AuditEntryModel",
    "LEDGER_INITIALIZED",
    "LedgerStateModel",
    "LegacyStockModel",
    "LotModel",
    "SequenceCounter",
]
