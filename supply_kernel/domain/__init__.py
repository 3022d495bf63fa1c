"""Pure domain types for the supply ledger -- no I/O."""

from supply_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from supply_kernel.domain.detection import DetectionEvent
from supply_kernel.domain.history import AuditHistoryEntry, OperationType
from supply_kernel.domain.labels import display_label, normalize_label
from supply_kernel.domain.lots import ConsumedLot, Lot, total_quantity
from supply_kernel.domain.quantity import (
    CoercingQuantityPolicy,
    LenientQuantityPolicy,
    QuantityPolicy,
    StrictQuantityPolicy,
)

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "DetectionEvent",
    "AuditHistoryEntry",
    "OperationType",
    "normalize_label",
    "display_label",
    "Lot",
    "ConsumedLot",
    "total_quantity",
    "QuantityPolicy",
    "StrictQuantityPolicy",
    "CoercingQuantityPolicy",
    "LenientQuantityPolicy",
]
