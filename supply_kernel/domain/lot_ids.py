"""Lot identifier generation."""

from __future__ import annotations

import secrets
import string
from collections.abc import Container
from datetime import datetime

_BASE36 = string.digits + string.ascii_lowercase
_SUFFIX_LENGTH = 9


def _epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def _suffix() -> str:
    return "".join(secrets.choice(_BASE36) for _ in range(_SUFFIX_LENGTH))


def _unique(candidate: str, taken: Container[str]) -> str:
    lot_id = candidate
    while lot_id in taken:
        lot_id = f"{candidate}_{_suffix()}"
    return lot_id


def entry_lot_id(moment: datetime, taken: Container[str] = ()) -> str:
    """``entry_<epoch-ms>_<random>``, re-drawn until unused in ``taken``."""
    while True:
        lot_id = f"entry_{_epoch_ms(moment)}_{_suffix()}"
        if lot_id not in taken:
            return lot_id


def migration_lot_id(moment: datetime, taken: Container[str] = ()) -> str:
    return _unique(f"initial_{_epoch_ms(moment)}", taken)


def seed_lot_id(label: str, taken: Container[str] = ()) -> str:
    return _unique(f"initial_{label}", taken)


def correction_lot_id(moment: datetime, taken: Container[str] = ()) -> str:
    return _unique(f"correction_restock_{_epoch_ms(moment)}", taken)


def manual_lot_id(moment: datetime, taken: Container[str] = ()) -> str:
    return _unique(f"lot_{_epoch_ms(moment)}", taken)
