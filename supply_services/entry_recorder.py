"""
supply_services.entry_recorder -- Stock arrivals become new lots.

Responsibility:
    Turn a confirmed entry (a batch of detections and one quantity) into
    one new lot per detection plus one audit entry each.  Also records
    manually added lots.

Architecture position:
    Services -- orchestration over LotStore and AuditHistoryService.

Invariants enforced:
    - Quantity is validated by StrictQuantityPolicy before the ledger is
      touched; labels, expiry date and supplied lot id likewise.
    - The whole batch (every label bucket and every history entry) is one
      LotStore transaction.  If it fails nothing of the batch is applied
      and PersistenceFailureError reaches the caller.

Failure modes:
    - InvalidQuantityError, InvalidLabelError, InvalidExpiryDateError,
      DuplicateLotError: rejected before any mutation.
    - PersistenceFailureError: the batch was rolled back.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, date, datetime
from uuid import uuid4

from supply_kernel.domain.clock import Clock
from supply_kernel.domain.detection import DetectionEvent
from supply_kernel.domain.history import OperationType
from supply_kernel.domain.labels import normalize_label
from supply_kernel.domain.lot_ids import entry_lot_id, manual_lot_id
from supply_kernel.domain.lots import Lot
from supply_kernel.domain.quantity import QuantityPolicy, StrictQuantityPolicy
from supply_kernel.exceptions import DuplicateLotError, InvalidExpiryDateError
from supply_kernel.logging_config import LogContext, get_logger
from supply_kernel.services.audit_history import AuditHistoryService
from supply_kernel.services.lot_store import LotStore
from supply_services.results import BatchResult, ItemResult

logger = get_logger("services.entry_recorder")

DEFAULT_USER = "unknown"


def parse_expiry_date(raw: object) -> date | None:
    """ISO date, date or datetime; blank means no expiry."""
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    text = str(raw).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        raise InvalidExpiryDateError(raw) from None


def clean_lot_id(raw: str | None) -> str | None:
    """Strip a caller-supplied lot id; blank means generate one."""
    if raw is None:
        return None
    lot_id = str(raw).strip()
    return lot_id or None


class EntryRecorder:
    """
    Records confirmed stock arrivals.

    Contract:
        ``record`` applies one quantity to every detection of a batch;
        ``add_lot`` adds one lot for one label with an optional receipt
        date.  Both return a BatchResult with one ItemResult per lot.
    """

    def __init__(
        self,
        lot_store: LotStore,
        clock: Clock | None = None,
        quantity_policy: QuantityPolicy | None = None,
        default_user: str = DEFAULT_USER,
    ):
        self._lot_store = lot_store
        self._clock = clock or lot_store.clock
        self._quantity_policy = quantity_policy or StrictQuantityPolicy()
        self._default_user = default_user

    def record(
        self,
        detections: Sequence[DetectionEvent],
        quantity: object,
        *,
        user: str | None = None,
        lot_id: str | None = None,
        expiry_date: object = None,
    ) -> BatchResult:
        """
        Add ``quantity`` units of every detected label as a new lot each.

        A supplied ``lot_id`` is used for every label of the batch; it must
        not already exist in any of their buckets.
        """
        qty = self._quantity_policy.resolve(quantity)
        expiry = parse_expiry_date(expiry_date)
        supplied_id = clean_lot_id(lot_id)
        actor = user or self._default_user
        items = [(detection, normalize_label(detection.label)) for detection in detections]
        if not items:
            return BatchResult(items=())

        if supplied_id is not None:
            seen: set[str] = set()
            for _, key in items:
                if key in seen:
                    raise DuplicateLotError(key, supplied_id)
                seen.add(key)

        batch_id = str(uuid4())
        results: list[ItemResult] = []
        with LogContext.bind(actor_id=actor, batch_id=batch_id):
            with self._lot_store.transaction(
                [key for _, key in items], operation="entry"
            ) as tx:
                history = AuditHistoryService(tx.session, self._clock)
                buckets: dict[str, tuple[Lot, ...]] = {}
                now = self._clock.now()

                for detection, key in items:
                    bucket = buckets.get(key)
                    if bucket is None:
                        bucket = tx.get_lots(key)
                    taken = {lot.lot_id for lot in bucket}

                    if supplied_id is not None:
                        if supplied_id in taken:
                            raise DuplicateLotError(key, supplied_id)
                        new_id = supplied_id
                    else:
                        new_id = entry_lot_id(now, taken)

                    lot = Lot(
                        lot_id=new_id,
                        quantity=qty,
                        created_at=now,
                        expiry_date=expiry,
                        created_by=actor,
                    )
                    buckets[key] = tx.replace_lots(key, (lot,) + bucket)

                    entry = history.append(
                        label=detection.label,
                        item=key,
                        quantity=qty,
                        operation_type=OperationType.ENTRY,
                        user=actor,
                        confidence_score=detection.confidence_score,
                        image_ref=detection.image_ref,
                        timestamp=now,
                        lot_id=new_id,
                        expiry_date=expiry,
                    )
                    results.append(ItemResult(
                        label=key,
                        success=True,
                        message=f"{qty} unit(s) added to {key} (lot: {new_id})",
                        quantity=qty,
                        lot_id=new_id,
                        entry=entry,
                    ))

            for result in results:
                logger.info("entry_lot_created", extra={
                    "item": result.label,
                    "lot_id": result.lot_id,
                    "quantity": qty,
                    "expiry_date": expiry,
                })

        return BatchResult(items=tuple(results))

    def add_lot(
        self,
        label: str,
        quantity: object,
        *,
        user: str | None = None,
        lot_id: str | None = None,
        received_at: datetime | None = None,
        expiry_date: object = None,
    ) -> ItemResult:
        """
        Add one lot to ``label`` by hand.

        ``received_at`` dates the lot (and so its place in consumption
        order); it defaults to now.  The lot is recorded in the history as
        an entry with no confidence score or image.
        """
        qty = self._quantity_policy.resolve(quantity)
        expiry = parse_expiry_date(expiry_date)
        supplied_id = clean_lot_id(lot_id)
        actor = user or self._default_user
        key = normalize_label(label)
        if received_at is not None and received_at.tzinfo is None:
            received_at = received_at.replace(tzinfo=UTC)

        with LogContext.bind(actor_id=actor):
            with self._lot_store.transaction([key], operation="add_lot") as tx:
                now = self._clock.now()
                bucket = tx.get_lots(key)
                taken = {lot.lot_id for lot in bucket}
                if supplied_id is not None and supplied_id in taken:
                    raise DuplicateLotError(key, supplied_id)
                new_id = supplied_id or manual_lot_id(now, taken)

                lot = Lot(
                    lot_id=new_id,
                    quantity=qty,
                    created_at=received_at or now,
                    expiry_date=expiry,
                    created_by=actor,
                )
                tx.replace_lots(key, (lot,) + bucket)
                entry = AuditHistoryService(tx.session, self._clock).append(
                    label=label,
                    item=key,
                    quantity=qty,
                    operation_type=OperationType.ENTRY,
                    user=actor,
                    timestamp=now,
                    lot_id=new_id,
                    expiry_date=expiry,
                )

            logger.info("manual_lot_added", extra={
                "item": key,
                "lot_id": new_id,
                "quantity": qty,
                "received_at": lot.created_at,
            })

        return ItemResult(
            label=key,
            success=True,
            message=f"Lot {new_id} added to {key}",
            quantity=qty,
            lot_id=new_id,
            entry=entry,
        )
