"""
Audit history value objects.

Responsibility:
    Immutable view of one confirmed stock movement and its persisted
    document shape.  The document keys are a contract with external
    reporting and export consumers.

Architecture position:
    Kernel > Domain -- pure, zero I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from supply_kernel.domain.lots import ConsumedLot


class OperationType(str, Enum):
    """Direction of a confirmed stock movement."""

    ENTRY = "entry"
    EXIT = "exit"


@dataclass(frozen=True, slots=True)
class AuditHistoryEntry:
    """
    One confirmed entry or exit.

    ``label`` is the label as detected (or as corrected); ``item`` is its
    normalized ledger key.  Entries carry ``lot_id``; exits and corrected
    entries carry ``consumed_lots``.  Correction fields are set only after
    a successful correction.
    """

    entry_id: UUID
    sequence: int
    label: str
    item: str
    confidence_score: float | None
    image_ref: str | None
    timestamp: datetime
    quantity: int
    operation_type: OperationType
    user: str
    lot_id: str | None = None
    expiry_date: date | None = None
    consumed_lots: tuple[ConsumedLot, ...] = ()
    corrected_by: str | None = None
    corrected_at: datetime | None = None

    @property
    def is_corrected(self) -> bool:
        return self.corrected_at is not None

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "id": str(self.entry_id),
            "label": self.label,
            "confidenceScore": self.confidence_score,
            "imageRef": self.image_ref,
            "timestamp": self.timestamp.isoformat(),
            "quantity": self.quantity,
            "operationType": self.operation_type.value,
            "user": self.user,
        }
        if self.lot_id is not None:
            doc["lotId"] = self.lot_id
        if self.expiry_date is not None:
            doc["expiryDate"] = self.expiry_date.isoformat()
        if self.operation_type is OperationType.EXIT or self.consumed_lots:
            doc["consumedLots"] = [c.to_document() for c in self.consumed_lots]
        if self.corrected_by is not None:
            doc["correctedBy"] = self.corrected_by
        if self.corrected_at is not None:
            doc["correctedAt"] = self.corrected_at.isoformat()
        return doc
