"""
supply_engines.fefo.consumer -- Creation-time-ordered lot consumption.

Responsibility:
    Decide which lots of one label to deplete for a requested quantity.
    Pure function: no I/O, no clock, inputs never mutated.  Durability is
    the caller's job.

Algorithm:
    1. Stable-sort a copy of the lots ascending by ``created_at`` (oldest
       first; ties keep their input order).
    2. Walk the sorted lots, skipping empty ones, taking
       ``min(available, remaining)`` from each until nothing remains.
       Each take is recorded as a ConsumedLot.
    3. If stock runs out first, the result is a failure carrying the
       original, untouched input and no consumed lots.
    4. Otherwise the updated lots are the depleted copies in sorted order
       with every zero-quantity lot removed.

Expiry dates are carried on lots but do not influence the order.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from supply_engines.tracer import traced_engine
from supply_kernel.domain.lots import ConsumedLot, Lot, total_quantity
from supply_kernel.logging_config import get_logger

logger = get_logger("engines.fefo.consumer")


@dataclass(frozen=True, slots=True)
class ConsumptionResult:
    """
    Outcome of one consumption attempt.

    On failure ``consumed_lots`` is empty and ``updated_lots`` is the
    input exactly as given.
    """

    success: bool
    requested: int
    consumed_lots: tuple[ConsumedLot, ...]
    updated_lots: tuple[Lot, ...]

    @property
    def consumed_quantity(self) -> int:
        return sum(c.quantity for c in self.consumed_lots)

    @property
    def remaining_stock(self) -> int:
        return total_quantity(self.updated_lots)


@traced_engine(
    "fefo",
    "1.0",
    fingerprint_fields=("desired_qty",),
    outcome=lambda r: {"success": r.success, "lots_touched": len(r.consumed_lots)},
)
def consume(lots: Sequence[Lot], desired_qty: int) -> ConsumptionResult:
    """
    Consume ``desired_qty`` units from ``lots``, oldest lot first.

    A non-positive ``desired_qty`` consumes nothing and succeeds.
    """
    original = tuple(lots)
    remaining = desired_qty
    ordered = sorted(original, key=lambda lot: lot.created_at)

    consumed: list[ConsumedLot] = []
    updated: list[Lot] = []
    for lot in ordered:
        if remaining <= 0 or lot.quantity <= 0:
            updated.append(lot)
            continue
        take = min(lot.quantity, remaining)
        consumed.append(ConsumedLot(
            lot_id=lot.lot_id,
            quantity=take,
            created_at=lot.created_at,
        ))
        updated.append(lot.with_quantity(lot.quantity - take))
        remaining -= take

    if remaining > 0:
        logger.debug("fefo_insufficient_stock", extra={
            "requested": desired_qty,
            "available": total_quantity(original),
        })
        return ConsumptionResult(
            success=False,
            requested=desired_qty,
            consumed_lots=(),
            updated_lots=original,
        )

    return ConsumptionResult(
        success=True,
        requested=desired_qty,
        consumed_lots=tuple(consumed),
        updated_lots=tuple(lot for lot in updated if lot.quantity > 0),
    )
