"""
Module: supply_kernel.models.audit_entry
Responsibility: ORM persistence for audit history entries -- one row per
    confirmed entry or exit, amended in place only by corrections.
Architecture position: Kernel > Models.  May import from db/ and domain/
    value objects only.

Invariants enforced:
    - sequence is unique and strictly increasing in insertion order; the
      exposed history is ordered by sequence descending (newest first).
    - Rows are never deleted by the ledger.
    - operation_type is "entry" or "exit" (ck_audit_history_operation_type).
"""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import (
    JSON,
    BigInteger,
    CheckConstraint,
    Date,
    Float,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from supply_kernel.db.base import Base
from supply_kernel.db.types import UTCDateTime
from supply_kernel.domain.history import AuditHistoryEntry, OperationType
from supply_kernel.domain.lots import ConsumedLot


class AuditEntryModel(Base):
    """Persistent storage for one AuditHistoryEntry."""

    __tablename__ = "audit_history"

    __table_args__ = (
        CheckConstraint(
            "operation_type IN ('entry', 'exit')",
            name="ck_audit_history_operation_type",
        ),
        Index("idx_audit_history_item_timestamp", "item", "timestamp"),
    )

    sequence: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        unique=True,
    )

    # Label as detected (or as corrected), before normalization
    label: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # Normalized ledger key for label
    item: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    confidence_score: Mapped[float | None] = mapped_column(
        Float,
        nullable=True,
    )

    image_ref: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    timestamp: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    operation_type: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
    )

    lot_id: Mapped[str | None] = mapped_column(
        String(128),
        nullable=True,
    )

    expiry_date: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
    )

    # [{lotId, qty, ts}]
    consumed_lots: Mapped[list | None] = mapped_column(
        JSON,
        nullable=True,
    )

    user: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
    )

    corrected_by: Mapped[str | None] = mapped_column(
        String(128),
        nullable=True,
    )

    corrected_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(),
        nullable=True,
    )

    def to_domain(self) -> AuditHistoryEntry:
        return AuditHistoryEntry(
            entry_id=self.id,
            sequence=self.sequence,
            label=self.label,
            item=self.item,
            confidence_score=self.confidence_score,
            image_ref=self.image_ref,
            timestamp=self.timestamp,
            quantity=self.quantity,
            operation_type=OperationType(self.operation_type),
            user=self.user,
            lot_id=self.lot_id,
            expiry_date=self.expiry_date,
            consumed_lots=tuple(
                ConsumedLot.from_document(doc) for doc in (self.consumed_lots or [])
            ),
            corrected_by=self.corrected_by,
            corrected_at=self.corrected_at,
        )

    def __repr__(self) -> str:
        return (
            f"<AuditEntry #{self.sequence} {self.operation_type} "
            f"{self.item} qty={self.quantity}>"
        )
