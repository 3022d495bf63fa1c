"""
AuditHistoryService -- append and amend audit history entries.

Responsibility:
    Writes the ``audit_history`` table inside the caller's ledger
    transaction: appends one row per confirmed entry or exit and applies
    corrections in place.  Rows are never deleted.

Architecture position:
    Kernel > Services.  Flush-only (BaseService); the LotStore transaction
    commits lot changes and history rows together.

Invariants enforced:
    - Every appended entry gets the next ``audit_history`` sequence value;
      newest-first order is descending sequence.
    - Corrections touch only label, item, quantity, consumed lots and the
      correction metadata.  The original timestamp, user, confidence score
      and image reference stay as recorded.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from supply_kernel.domain.clock import Clock
from supply_kernel.domain.history import AuditHistoryEntry, OperationType
from supply_kernel.domain.lots import ConsumedLot
from supply_kernel.exceptions import AuditEntryNotFoundError
from supply_kernel.logging_config import get_logger
from supply_kernel.models.audit_entry import AuditEntryModel
from supply_kernel.services.base import BaseService
from supply_kernel.services.sequence_service import SequenceService

logger = get_logger("services.audit_history")

EntryRef = UUID | str | int


class AuditHistoryService(BaseService[AuditEntryModel]):
    """
    Flush-only writer for the audit history.

    Entries are addressed either by id (UUID or its string form) or by
    their position in the newest-first history (0 is the newest).
    """

    def __init__(self, session: Session, clock: Clock):
        super().__init__(session)
        self._clock = clock
        self._sequences = SequenceService(session)

    def append(
        self,
        *,
        label: str,
        item: str,
        quantity: int,
        operation_type: OperationType,
        user: str,
        confidence_score: float | None = None,
        image_ref: str | None = None,
        timestamp: datetime | None = None,
        lot_id: str | None = None,
        expiry_date: date | None = None,
        consumed_lots: Sequence[ConsumedLot] = (),
    ) -> AuditHistoryEntry:
        """Add one entry at the front of the history."""
        sequence = self._sequences.next_value(SequenceService.AUDIT_HISTORY)
        row = AuditEntryModel(
            sequence=sequence,
            label=label,
            item=item,
            confidence_score=confidence_score,
            image_ref=image_ref,
            timestamp=timestamp or self._clock.now(),
            quantity=quantity,
            operation_type=operation_type.value,
            lot_id=lot_id,
            expiry_date=expiry_date,
            consumed_lots=(
                [c.to_document() for c in consumed_lots]
                if operation_type is OperationType.EXIT or consumed_lots
                else None
            ),
            user=user,
        )
        self.session.add(row)
        self.session.flush()

        logger.info("audit_entry_appended", extra={
            "entry_id": str(row.id),
            "sequence": sequence,
            "item": item,
            "operation_type": operation_type.value,
            "quantity": quantity,
        })
        return row.to_domain()

    def get(self, entry_ref: EntryRef) -> AuditHistoryEntry:
        return self._resolve(entry_ref).to_domain()

    def count(self) -> int:
        return self.session.execute(
            select(func.count()).select_from(AuditEntryModel)
        ).scalar_one()

    def apply_correction(
        self,
        entry_ref: EntryRef,
        *,
        label: str,
        item: str,
        quantity: int,
        consumed_lots: Sequence[ConsumedLot],
        corrected_by: str,
    ) -> AuditHistoryEntry:
        """
        Amend an entry in place with the corrected label and quantity.

        The revised ``consumed_lots`` replace whatever the entry recorded.
        """
        row = self._resolve(entry_ref)
        previous = {"label": row.label, "quantity": row.quantity}

        row.label = label
        row.item = item
        row.quantity = quantity
        row.consumed_lots = [c.to_document() for c in consumed_lots]
        row.corrected_by = corrected_by
        row.corrected_at = self._clock.now()
        self.session.flush()

        logger.info("audit_entry_corrected", extra={
            "entry_id": str(row.id),
            "previous_label": previous["label"],
            "previous_quantity": previous["quantity"],
            "item": item,
            "quantity": quantity,
            "corrected_by": corrected_by,
        })
        return row.to_domain()

    def _resolve(self, entry_ref: EntryRef) -> AuditEntryModel:
        if isinstance(entry_ref, bool):
            raise AuditEntryNotFoundError(str(entry_ref))

        if isinstance(entry_ref, int):
            if entry_ref < 0:
                raise AuditEntryNotFoundError(str(entry_ref))
            row = self.session.execute(
                select(AuditEntryModel)
                .order_by(AuditEntryModel.sequence.desc())
                .offset(entry_ref)
                .limit(1)
            ).scalar_one_or_none()
        else:
            try:
                entry_id = entry_ref if isinstance(entry_ref, UUID) else UUID(str(entry_ref))
            except ValueError:
                raise AuditEntryNotFoundError(str(entry_ref)) from None
            row = self.session.get(AuditEntryModel, entry_id)

        if row is None:
            raise AuditEntryNotFoundError(str(entry_ref))
        return row
