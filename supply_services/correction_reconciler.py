"""
supply_services.correction_reconciler -- Amend a past audit entry and
compensate the ledger.

Responsibility:
    Re-apply a recorded movement with a (possibly) different label and
    quantity.  Runs as a two-step compensating sequence:

    1. Restock: a new compensating lot of the entry's recorded quantity is
       added to the entry's original label and committed.  The lots the
       entry consumed stay depleted; the quantity is restored in
       aggregate only.
    2. Re-apply: the new quantity is consumed oldest-first from the new
       label.  On success the bucket and the amended audit entry commit
       together.  On insufficient stock nothing of step 2 is written.

    Step 1 is never rolled back.  A failed step 2 leaves stock added and
    the entry unchanged; the result reports PARTIAL with the
    PARTIAL_CORRECTION_STATE warning so the caller knows the entry is
    stale.

Architecture position:
    Services -- orchestration over LotStore, the FEFO engine and
    AuditHistoryService.

Failure modes:
    - AuditEntryNotFoundError, InvalidLabelError, InvalidQuantityError:
      raised before step 1.
    - PersistenceFailureError in step 1: nothing changed.
    - PersistenceFailureError in step 2: step 1 stays committed; the
      error propagates after a ``correction_partial_state`` log record.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from supply_engines.fefo import consume
from supply_kernel.domain.clock import Clock
from supply_kernel.domain.history import AuditHistoryEntry
from supply_kernel.domain.labels import normalize_label
from supply_kernel.domain.lot_ids import correction_lot_id
from supply_kernel.domain.lots import ConsumedLot, Lot
from supply_kernel.domain.quantity import LenientQuantityPolicy, QuantityPolicy
from supply_kernel.exceptions import (
    PARTIAL_CORRECTION_STATE,
    InsufficientStockError,
    PersistenceFailureError,
)
from supply_kernel.logging_config import LogContext, get_logger
from supply_kernel.services.audit_history import AuditHistoryService, EntryRef
from supply_kernel.services.lot_store import LotStore
from supply_services.entry_recorder import DEFAULT_USER

logger = get_logger("services.correction_reconciler")


class CorrectionStatus(str, Enum):
    APPLIED = "applied"
    PARTIAL = "partial"


@dataclass(frozen=True, slots=True)
class CorrectionResult:
    """
    Outcome of one correction.

    ``entry`` is the amended entry when APPLIED and the untouched entry
    when PARTIAL.  ``compensating_lot`` is None only when the original
    quantity was zero.
    """

    status: CorrectionStatus
    message: str
    entry: AuditHistoryEntry
    compensating_lot: Lot | None
    consumed_lots: tuple[ConsumedLot, ...] = ()
    code: str | None = None
    warning: str | None = None

    @property
    def success(self) -> bool:
        return self.status is CorrectionStatus.APPLIED

    @property
    def entry_id(self) -> UUID:
        return self.entry.entry_id


class CorrectionReconciler:
    """Applies corrections to audit entries, compensating the ledger."""

    def __init__(
        self,
        lot_store: LotStore,
        clock: Clock | None = None,
        quantity_policy: QuantityPolicy | None = None,
        default_user: str = DEFAULT_USER,
    ):
        self._lot_store = lot_store
        self._clock = clock or lot_store.clock
        self._quantity_policy = quantity_policy or LenientQuantityPolicy()
        self._default_user = default_user

    def correct(
        self,
        entry_ref: EntryRef,
        *,
        label: str | None = None,
        quantity: object = None,
        user: str | None = None,
    ) -> CorrectionResult:
        """
        Correct the entry ``entry_ref`` (id, or position newest-first).

        ``label`` and ``quantity`` default to the entry's current values.
        """
        actor = user or self._default_user
        original = self._load(entry_ref)

        new_label = label if label is not None else original.label
        new_key = normalize_label(new_label)
        new_qty = self._quantity_policy.resolve(
            quantity if quantity is not None else original.quantity
        )

        with LogContext.bind(actor_id=actor, entry_id=str(original.entry_id)):
            compensating = self._restock(original, actor)

            try:
                return self._reapply(original, new_label, new_key, new_qty, actor, compensating)
            except PersistenceFailureError:
                logger.error("correction_partial_state", extra={
                    "item": new_key,
                    "requested": new_qty,
                    "compensating_lot_id": compensating.lot_id if compensating else None,
                    "warning": PARTIAL_CORRECTION_STATE,
                })
                raise

    def _load(self, entry_ref: EntryRef) -> AuditHistoryEntry:
        with self._lot_store.read_session() as session:
            return AuditHistoryService(session, self._clock).get(entry_ref)

    def _restock(self, original: AuditHistoryEntry, actor: str) -> Lot | None:
        if original.quantity <= 0:
            return None

        with self._lot_store.transaction([original.item], operation="correction_restock") as tx:
            now = self._clock.now()
            bucket = tx.get_lots(original.item)
            lot = Lot(
                lot_id=correction_lot_id(now, {existing.lot_id for existing in bucket}),
                quantity=original.quantity,
                created_at=now,
                created_by=actor,
            )
            tx.replace_lots(original.item, (lot,) + bucket)

        logger.info("correction_restocked", extra={
            "item": original.item,
            "lot_id": lot.lot_id,
            "quantity": lot.quantity,
        })
        return lot

    def _reapply(
        self,
        original: AuditHistoryEntry,
        new_label: str,
        new_key: str,
        new_qty: int,
        actor: str,
        compensating: Lot | None,
    ) -> CorrectionResult:
        with self._lot_store.transaction([new_key], operation="correction_apply") as tx:
            lots = tx.get_lots(new_key)
            result = consume(lots, new_qty)

            if not result.success:
                available = sum(lot.quantity for lot in lots)
                logger.warning("correction_partial_state", extra={
                    "item": new_key,
                    "requested": new_qty,
                    "available": available,
                    "compensating_lot_id": compensating.lot_id if compensating else None,
                    "warning": PARTIAL_CORRECTION_STATE,
                })
                return CorrectionResult(
                    status=CorrectionStatus.PARTIAL,
                    message=(
                        f"Insufficient stock to apply the correction "
                        f"(label {new_label}, {available} available)"
                    ),
                    entry=original,
                    compensating_lot=compensating,
                    code=InsufficientStockError.code,
                    warning=PARTIAL_CORRECTION_STATE,
                )

            tx.replace_lots(new_key, result.updated_lots)
            amended = AuditHistoryService(tx.session, self._clock).apply_correction(
                original.entry_id,
                label=new_label,
                item=new_key,
                quantity=new_qty,
                consumed_lots=result.consumed_lots,
                corrected_by=actor,
            )

        logger.info("correction_applied", extra={
            "item": new_key,
            "previous_item": original.item,
            "previous_quantity": original.quantity,
            "quantity": new_qty,
        })
        return CorrectionResult(
            status=CorrectionStatus.APPLIED,
            message="Correction applied",
            entry=amended,
            compensating_lot=compensating,
            consumed_lots=result.consumed_lots,
        )
