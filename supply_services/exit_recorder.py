"""
supply_services.exit_recorder -- Stock departures consume lots oldest first.

Responsibility:
    Turn a confirmed exit (a batch of detections and one requested
    quantity) into FEFO consumption per label plus one audit entry per
    consumed item.

Architecture position:
    Services -- orchestration over LotStore, the FEFO engine and
    AuditHistoryService.

Invariants enforced:
    - Quantity goes through CoercingQuantityPolicy: invalid or
      non-positive input becomes 1.  Only a quantity above MAX_QUANTITY
      fails the batch, before any item runs.
    - Each item is its own LotStore transaction.  An item with
      insufficient stock is reported and skipped; its bucket is left
      untouched and the remaining items still run.

Failure modes:
    - InvalidLabelError, InvalidQuantityError: rejected before any item
      runs.
    - PersistenceFailureError: the failing item was rolled back and the
      error propagates.  Items before it stay committed; items after it
      do not run.
"""

from __future__ import annotations

from collections.abc import Sequence
from uuid import uuid4

from supply_engines.fefo import consume
from supply_kernel.domain.clock import Clock
from supply_kernel.domain.detection import DetectionEvent
from supply_kernel.domain.history import OperationType
from supply_kernel.domain.labels import normalize_label
from supply_kernel.domain.quantity import CoercingQuantityPolicy, QuantityPolicy
from supply_kernel.exceptions import InsufficientStockError
from supply_kernel.logging_config import LogContext, get_logger
from supply_kernel.services.audit_history import AuditHistoryService
from supply_kernel.services.lot_store import LotStore
from supply_services.entry_recorder import DEFAULT_USER
from supply_services.results import BatchResult, ItemResult

logger = get_logger("services.exit_recorder")


class ExitRecorder:
    """Records confirmed stock departures with per-item partial success."""

    def __init__(
        self,
        lot_store: LotStore,
        clock: Clock | None = None,
        quantity_policy: QuantityPolicy | None = None,
        default_user: str = DEFAULT_USER,
    ):
        self._lot_store = lot_store
        self._clock = clock or lot_store.clock
        self._quantity_policy = quantity_policy or CoercingQuantityPolicy()
        self._default_user = default_user

    def record(
        self,
        detections: Sequence[DetectionEvent],
        quantity: object,
        *,
        user: str | None = None,
    ) -> BatchResult:
        qty = self._quantity_policy.resolve(quantity)
        actor = user or self._default_user
        items = [(detection, normalize_label(detection.label)) for detection in detections]

        results: list[ItemResult] = []
        with LogContext.bind(actor_id=actor, batch_id=str(uuid4())):
            for detection, key in items:
                results.append(self._record_one(detection, key, qty, actor))

        return BatchResult(items=tuple(results))

    def _record_one(
        self,
        detection: DetectionEvent,
        key: str,
        qty: int,
        actor: str,
    ) -> ItemResult:
        with self._lot_store.transaction([key], operation="exit") as tx:
            lots = tx.get_lots(key)
            result = consume(lots, qty)
            if not result.success:
                available = sum(lot.quantity for lot in lots)
                error = InsufficientStockError(key, qty, available)
                logger.warning("exit_insufficient_stock", extra={
                    "item": key,
                    "requested": qty,
                    "available": available,
                })
                return ItemResult(
                    label=key,
                    success=False,
                    message=f"{key}: insufficient stock ({available} available)",
                    code=error.code,
                    quantity=qty,
                )

            tx.replace_lots(key, result.updated_lots)
            entry = AuditHistoryService(tx.session, self._clock).append(
                label=detection.label,
                item=key,
                quantity=qty,
                operation_type=OperationType.EXIT,
                user=actor,
                confidence_score=detection.confidence_score,
                image_ref=detection.image_ref,
                consumed_lots=result.consumed_lots,
            )

        logger.info("exit_consumed", extra={
            "item": key,
            "quantity": qty,
            "consumed_lot_ids": [c.lot_id for c in result.consumed_lots],
            "remaining": result.remaining_stock,
        })
        return ItemResult(
            label=key,
            success=True,
            message=f"{qty} unit(s) removed from {key}",
            quantity=qty,
            consumed_lots=result.consumed_lots,
            entry=entry,
        )
