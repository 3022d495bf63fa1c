"""Per-item and per-batch mutation results."""

from __future__ import annotations

from dataclasses import dataclass

from supply_kernel.domain.history import AuditHistoryEntry
from supply_kernel.domain.lots import ConsumedLot


@dataclass(frozen=True, slots=True)
class ItemResult:
    """
    Outcome for one detected item of a confirmed batch.

    ``code`` is None on success and the failing error's code otherwise.
    """

    label: str
    success: bool
    message: str
    code: str | None = None
    quantity: int = 0
    lot_id: str | None = None
    consumed_lots: tuple[ConsumedLot, ...] = ()
    entry: AuditHistoryEntry | None = None

    def to_dict(self) -> dict:
        """The external result shape: success, message and, on failure, code."""
        doc = {"success": self.success, "message": self.message}
        if self.code is not None:
            doc["code"] = self.code
        return doc


@dataclass(frozen=True, slots=True)
class BatchResult:
    """Aggregate of every item result in submission order."""

    items: tuple[ItemResult, ...]

    @property
    def success(self) -> bool:
        return all(item.success for item in self.items)

    @property
    def messages(self) -> list[str]:
        return [item.message for item in self.items]

    @property
    def succeeded(self) -> tuple[ItemResult, ...]:
        return tuple(item for item in self.items if item.success)

    @property
    def failed(self) -> tuple[ItemResult, ...]:
        return tuple(item for item in self.items if not item.success)

    def __len__(self) -> int:
        return len(self.items)
