"""
supply_services.confirmation_gate -- At most one detection batch awaits
confirmation at a time.

A batch is opened from the detections of one capture, then either
confirmed as an entry or an exit (which runs the matching recorder and
closes the batch) or discarded with no effect on the ledger.
"""

from __future__ import annotations

import threading
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID, uuid4

from supply_kernel.domain.clock import Clock
from supply_kernel.domain.detection import DetectionEvent
from supply_kernel.exceptions import (
    NoPendingBatchError,
    PendingConfirmationError,
    PersistenceFailureError,
)
from supply_kernel.logging_config import get_logger
from supply_services.entry_recorder import EntryRecorder
from supply_services.exit_recorder import ExitRecorder
from supply_services.results import BatchResult

logger = get_logger("services.confirmation_gate")


@dataclass(frozen=True, slots=True)
class PendingBatch:
    batch_id: UUID
    detections: tuple[DetectionEvent, ...]
    opened_at: datetime


class ConfirmationGate:
    """
    Holds the single pending batch.

    Validation failures on confirm (for example an invalid entry
    quantity) leave the batch pending so it can be confirmed again.
    """

    def __init__(
        self,
        entry_recorder: EntryRecorder,
        exit_recorder: ExitRecorder,
        clock: Clock,
    ):
        self._entries = entry_recorder
        self._exits = exit_recorder
        self._clock = clock
        self._pending: PendingBatch | None = None
        self._lock = threading.RLock()

    @property
    def pending(self) -> PendingBatch | None:
        return self._pending

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def open(self, detections: Sequence[DetectionEvent]) -> PendingBatch:
        with self._lock:
            if self._pending is not None:
                raise PendingConfirmationError(len(self._pending.detections))
            if not detections:
                raise ValueError("A detection batch needs at least one detection")
            self._pending = PendingBatch(
                batch_id=uuid4(),
                detections=tuple(detections),
                opened_at=self._clock.now(),
            )
            logger.info("batch_opened", extra={
                "batch_id": str(self._pending.batch_id),
                "detection_count": len(detections),
            })
            return self._pending

    def confirm_entry(
        self,
        quantity: object,
        *,
        user: str | None = None,
        lot_id: str | None = None,
        expiry_date: object = None,
    ) -> BatchResult:
        with self._lock:
            batch = self._require_pending()
            result = self._entries.record(
                batch.detections,
                quantity,
                user=user,
                lot_id=lot_id,
                expiry_date=expiry_date,
            )
            self._close(batch, "entry", result)
            return result

    def confirm_exit(self, quantity: object, *, user: str | None = None) -> BatchResult:
        with self._lock:
            batch = self._require_pending()
            try:
                result = self._exits.record(batch.detections, quantity, user=user)
            except PersistenceFailureError:
                # earlier items may have committed; confirming again would repeat them
                self._close(batch, "exit_failed")
                raise
            self._close(batch, "exit", result)
            return result

    def discard(self) -> PendingBatch | None:
        """Drop the pending batch, if any, without touching the ledger."""
        with self._lock:
            batch = self._pending
            if batch is not None:
                self._close(batch, "discarded")
            return batch

    def _require_pending(self) -> PendingBatch:
        if self._pending is None:
            raise NoPendingBatchError()
        return self._pending

    def _close(
        self,
        batch: PendingBatch,
        outcome: str,
        result: BatchResult | None = None,
    ) -> None:
        self._pending = None
        logger.info("batch_closed", extra={
            "batch_id": str(batch.batch_id),
            "outcome": outcome,
            "results": [item.to_dict() for item in result.items] if result is not None else [],
        })
