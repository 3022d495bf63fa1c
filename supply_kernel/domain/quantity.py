"""
Quantity validation policies.

Responsibility:
    Turn operator-entered quantities into integers.  Each ledger path has
    its own named policy and they are deliberately not unified:

    - StrictQuantityPolicy (entry, manual lot): anything that is not a
      positive integer is rejected with InvalidQuantityError before the
      ledger is touched.
    - CoercingQuantityPolicy (exit): anything invalid or non-positive
      becomes 1.  An exit confirmation fails on its quantity only
      when the value is too large to store.
    - LenientQuantityPolicy (correction): anything invalid becomes 0 and
      negatives clamp to 0, so a correction can zero out a movement.

    Every policy rejects values above MAX_QUANTITY with InvalidQuantityError,
    because no lot or audit row can store them.

Parsing follows integer-prefix semantics: ``"12"``, ``" 12 "`` and
``"12abc"`` all read as 12; ``"abc"``, ``""`` and ``None`` do not parse.
Floats are truncated toward zero.

Architecture position:
    Kernel > Domain -- pure, zero I/O.
"""

from __future__ import annotations

import math
import re
from abc import ABC, abstractmethod

from supply_kernel.exceptions import InvalidQuantityError
from supply_kernel.logging_config import get_logger

logger = get_logger("domain.quantity")

_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")

# Largest value an Integer column holds on every supported backend
MAX_QUANTITY = 2**31 - 1


def parse_int_prefix(raw: object) -> int | None:
    """Parse the leading integer of ``raw``; None when there is none."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        if not math.isfinite(raw):
            return None
        return int(raw)
    match = _INT_PREFIX.match(str(raw))
    if match is None:
        return None
    return int(match.group(1))


class QuantityPolicy(ABC):
    """Converts a raw quantity into the integer a ledger path will use."""

    name: str = "quantity"

    @abstractmethod
    def resolve(self, raw: object) -> int:
        ...

    def _checked(self, raw: object, value: int) -> int:
        if value > MAX_QUANTITY:
            raise InvalidQuantityError(raw)
        return value


class StrictQuantityPolicy(QuantityPolicy):
    """Positive integers only; everything else is InvalidQuantityError."""

    name = "strict"

    def resolve(self, raw: object) -> int:
        value = parse_int_prefix(raw)
        if value is None or value <= 0:
            raise InvalidQuantityError(raw)
        return self._checked(raw, value)


class CoercingQuantityPolicy(QuantityPolicy):
    """Invalid or non-positive input becomes ``default``."""

    name = "coercing"

    def __init__(self, default: int = 1):
        self.default = default

    def resolve(self, raw: object) -> int:
        value = parse_int_prefix(raw)
        if value is None or value <= 0:
            logger.info("exit_quantity_coerced", extra={
                "raw_quantity": repr(raw),
                "coerced_to": self.default,
            })
            return self.default
        return self._checked(raw, value)


class LenientQuantityPolicy(QuantityPolicy):
    """Invalid input becomes 0; negatives clamp to 0."""

    name = "lenient"

    def resolve(self, raw: object) -> int:
        value = parse_int_prefix(raw)
        if value is None:
            return 0
        return self._checked(raw, max(value, 0))
