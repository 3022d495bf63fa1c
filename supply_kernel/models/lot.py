"""
Module: supply_kernel.models.lot
Responsibility: ORM persistence for active lots.  One row per lot with
    remaining quantity, grouped into per-label buckets.
Architecture position: Kernel > Models.  May import from db/ only.
    MUST NOT import from services/, selectors/, or outer layers.

Invariants enforced:
    - lot_id is unique within a label (uq_ledger_lot_label_lot).
    - quantity >= 0 (ck_ledger_lot_quantity_non_negative).  Depleted lots
      are deleted by the LotStore rather than kept at zero.

Failure modes:
    - IntegrityError on duplicate (label, lot_id) or negative quantity.
"""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import (
    CheckConstraint,
    Date,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from supply_kernel.db.base import Base
from supply_kernel.db.types import UTCDateTime
from supply_kernel.domain.lots import Lot


class LotModel(Base):
    """
    Persistent storage for one lot in a label bucket.

    ``position`` preserves the stored order of the bucket.  Order within a
    bucket is cosmetic; consumption always re-sorts by ``created_at``.
    """

    __tablename__ = "ledger_lots"

    __table_args__ = (
        UniqueConstraint("label", "lot_id", name="uq_ledger_lot_label_lot"),
        CheckConstraint("quantity >= 0", name="ck_ledger_lot_quantity_non_negative"),
        Index("idx_ledger_lot_label_position", "label", "position"),
    )

    label: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    lot_id: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
    )

    expiry_date: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
    )

    created_by: Mapped[str | None] = mapped_column(
        String(128),
        nullable=True,
    )

    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    def to_domain(self) -> Lot:
        return Lot(
            lot_id=self.lot_id,
            quantity=self.quantity,
            created_at=self.created_at,
            expiry_date=self.expiry_date,
            created_by=self.created_by,
        )

    @classmethod
    def from_domain(cls, label: str, lot: Lot, position: int) -> LotModel:
        return cls(
            label=label,
            lot_id=lot.lot_id,
            quantity=lot.quantity,
            created_at=lot.created_at,
            expiry_date=lot.expiry_date,
            created_by=lot.created_by,
            position=position,
        )

    def __repr__(self) -> str:
        return f"<Lot {self.label}/{self.lot_id}: qty={self.quantity}>"
