"""
Module: supply_kernel.selectors.ledger_selector
Responsibility: Read-only views of the lot ledger: per-label totals, the
    persisted ledger document and a canonical hash of the ledger state.
Architecture position: Kernel > Selectors.

The ledger document is the external persisted form:
``{label: [{lotId, qty, ts, expiryDate?, createdBy?}, ...]}``.

canonical_hash() is deterministic over lot content (label, lot id,
quantity, timestamps, expiry, creator) and ignores row ids and stored
order, so two ledgers holding the same lots hash identically.
"""

import hashlib
import json
from typing import Any

from sqlalchemy import func, select

from supply_kernel.domain.lots import Lot
from supply_kernel.models.lot import LotModel
from supply_kernel.selectors.base import BaseSelector


class LedgerSelector(BaseSelector[LotModel]):
    """Read-only ledger queries."""

    def lots(self, label: str) -> list[Lot]:
        """Bucket of one normalized label in stored order."""
        rows = self.session.execute(
            select(LotModel)
            .where(LotModel.label == label)
            .order_by(LotModel.position, LotModel.created_at)
        ).scalars()
        return [row.to_domain() for row in rows]

    def totals(self) -> dict[str, int]:
        rows = self.session.execute(
            select(LotModel.label, func.sum(LotModel.quantity))
            .group_by(LotModel.label)
            .order_by(LotModel.label)
        ).all()
        return {label: int(total) for label, total in rows}

    def ledger_document(self) -> dict[str, list[dict[str, Any]]]:
        rows = self.session.execute(
            select(LotModel).order_by(
                LotModel.label, LotModel.position, LotModel.created_at
            )
        ).scalars()
        doc: dict[str, list[dict[str, Any]]] = {}
        for row in rows:
            doc.setdefault(row.label, []).append(row.to_domain().to_document())
        return doc

    def canonical_hash(self) -> str:
        entries = sorted(
            (label, lot)
            for label, lots in self.ledger_document().items()
            for lot in (json.dumps(d, sort_keys=True) for d in lots)
        )
        digest = hashlib.sha256()
        for label, lot in entries:
            digest.update(label.encode("utf-8"))
            digest.update(b"\x00")
            digest.update(lot.encode("utf-8"))
            digest.update(b"\n")
        return digest.hexdigest()
