"""Kernel services: the lot store and flush-only writers."""

from supply_kernel.services.audit_history import AuditHistoryService
from supply_kernel.services.label_locks import LabelLockRegistry
from supply_kernel.services.lot_store import LedgerTransaction, LotStore
from supply_kernel.services.sequence_service import SequenceService

__all__ = [
    "AuditHistoryService",
    "LabelLockRegistry",
    "LedgerTransaction",
    "LotStore",
    "SequenceService",
]
