"""
Module: supply_kernel.models.ledger_state
Responsibility: Named ledger markers and the legacy flat stock counters.
Architecture position: Kernel > Models.  May import from db/ only.

``ledger_state`` holds one row per marker.  The ``ledger_initialized``
marker records that a lot-structured ledger exists, even when every bucket
has since been emptied, so migration and seeding run at most once.

``legacy_stock`` holds the pre-lot representation (label -> quantity).  It
is read by the MigrationAdapter and never written by the ledger.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from supply_kernel.db.base import Base
from supply_kernel.db.types import UTCDateTime

LEDGER_INITIALIZED = "ledger_initialized"


class LedgerStateModel(Base):
    """One named marker."""

    __tablename__ = "ledger_state"

    name: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
    )

    value: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
    )


class LegacyStockModel(Base):
    """Legacy flat counter for one label."""

    __tablename__ = "legacy_stock"

    label: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
    )

    quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<LegacyStock {self.label}={self.quantity}>"
