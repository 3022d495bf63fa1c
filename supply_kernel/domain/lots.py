"""
Lot value objects.

Responsibility:
    Define the immutable lot and consumed-lot records shared by the FEFO
    engine, the LotStore and the audit history, plus their persisted
    document form (``{lotId, qty, ts, expiryDate?, createdBy?}``).

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Invariants enforced:
    - Lot quantity is a non-negative integer (Lot.__post_init__).
    - Lots are frozen; depletion produces a new Lot via ``with_quantity``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Any

from supply_kernel.domain.clock import utc_from_iso


@dataclass(frozen=True, slots=True)
class Lot:
    """
    A batch of one item with its own quantity and creation metadata.

    ``created_at`` drives consumption order; ``expiry_date`` is recorded for
    reporting but does not influence it.
    """

    lot_id: str
    quantity: int
    created_at: datetime
    expiry_date: date | None = None
    created_by: str | None = None

    def __post_init__(self) -> None:
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValueError(f"Lot quantity must be an integer, got {self.quantity!r}")
        if self.quantity < 0:
            raise ValueError(f"Lot quantity cannot be negative, got {self.quantity}")
        if not self.lot_id:
            raise ValueError("Lot id is required")

    @property
    def is_depleted(self) -> bool:
        return self.quantity == 0

    def with_quantity(self, quantity: int) -> Lot:
        return replace(self, quantity=quantity)

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "lotId": self.lot_id,
            "qty": self.quantity,
            "ts": self.created_at.isoformat(),
        }
        if self.expiry_date is not None:
            doc["expiryDate"] = self.expiry_date.isoformat()
        if self.created_by is not None:
            doc["createdBy"] = self.created_by
        return doc

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> Lot:
        expiry = data.get("expiryDate")
        return cls(
            lot_id=str(data["lotId"]),
            quantity=int(data["qty"]),
            created_at=utc_from_iso(data["ts"]),
            expiry_date=date.fromisoformat(expiry) if expiry else None,
            created_by=data.get("createdBy"),
        )


@dataclass(frozen=True, slots=True)
class ConsumedLot:
    """One partial take from a lot during FEFO consumption."""

    lot_id: str
    quantity: int
    created_at: datetime

    def to_document(self) -> dict[str, Any]:
        return {
            "lotId": self.lot_id,
            "qty": self.quantity,
            "ts": self.created_at.isoformat(),
        }

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> ConsumedLot:
        return cls(
            lot_id=str(data["lotId"]),
            quantity=int(data["qty"]),
            created_at=utc_from_iso(data["ts"]),
        )


def total_quantity(lots: Iterable[Lot]) -> int:
    """Sum of lot quantities -- the authoritative stock for a label."""
    return sum(lot.quantity for lot in lots)
