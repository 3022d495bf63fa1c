"""
supply_engines.reporting.stock_report -- Export rows, stock alerts and
summary statistics.

Responsibility:
    Derive the flat export table ``{item, consumed, stock_on_hand}`` and
    the stock alerts from an audit history and a map of stock totals.
    Pure functions: the caller supplies history entries, totals and the
    time window.

Conventions:
    - Consumption is the sum of exit quantities per normalized item.
    - Every item present in either the totals or the consumption appears
      once in the export.
    - Rows sort by consumed descending, then item ascending.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from supply_engines.tracer import traced_engine
from supply_kernel.domain.history import AuditHistoryEntry, OperationType
from supply_kernel.domain.labels import display_label


@dataclass(frozen=True, slots=True)
class ExportRow:
    """One line of the consumption export."""

    item: str
    consumed: int
    stock_on_hand: int


class AlertSeverity(str, Enum):
    OUT_OF_STOCK = "out_of_stock"
    LOW_STOCK = "low_stock"


@dataclass(frozen=True, slots=True)
class StockAlert:
    item: str
    quantity: int
    severity: AlertSeverity

    @property
    def message(self) -> str:
        name = display_label(self.item)
        if self.severity is AlertSeverity.OUT_OF_STOCK:
            return f"{name} is out of stock"
        return f"{name} is running low ({self.quantity} units)"


@dataclass(frozen=True, slots=True)
class StockStatistics:
    total_stock: int
    total_consumed: int
    exit_count: int
    unique_items_consumed: int
    most_consumed: ExportRow | None
    average_daily_consumption: float
    average_confidence: float | None
    critical_items: int


def _in_window(entry: AuditHistoryEntry, since: datetime | None) -> bool:
    return since is None or entry.timestamp >= since


def _exits(
    history: Iterable[AuditHistoryEntry],
    since: datetime | None,
) -> list[AuditHistoryEntry]:
    return [
        entry for entry in history
        if entry.operation_type is OperationType.EXIT and _in_window(entry, since)
    ]


def consumption_by_item(
    history: Iterable[AuditHistoryEntry],
    since: datetime | None = None,
) -> dict[str, int]:
    """Sum of exit quantities per normalized item."""
    consumed: Counter[str] = Counter()
    for entry in _exits(history, since):
        consumed[entry.item] += entry.quantity
    return dict(consumed)


@traced_engine("stock_report", "1.0")
def build_export_rows(
    history: Iterable[AuditHistoryEntry],
    totals: Mapping[str, int],
    since: datetime | None = None,
) -> list[ExportRow]:
    consumed = consumption_by_item(history, since)
    items = set(totals) | set(consumed)
    rows = [
        ExportRow(
            item=item,
            consumed=consumed.get(item, 0),
            stock_on_hand=totals.get(item, 0),
        )
        for item in items
    ]
    rows.sort(key=lambda row: (-row.consumed, row.item))
    return rows


def stock_alerts(
    totals: Mapping[str, int],
    low_stock_threshold: int,
) -> list[StockAlert]:
    """Out-of-stock alerts first, then low-stock alerts, each by item."""
    alerts = []
    for item, quantity in sorted(totals.items()):
        if quantity <= 0:
            alerts.append(StockAlert(item, quantity, AlertSeverity.OUT_OF_STOCK))
        elif quantity <= low_stock_threshold:
            alerts.append(StockAlert(item, quantity, AlertSeverity.LOW_STOCK))
    alerts.sort(key=lambda a: a.severity is not AlertSeverity.OUT_OF_STOCK)
    return alerts


def summarize(
    history: Iterable[AuditHistoryEntry],
    totals: Mapping[str, int],
    since: datetime | None = None,
    low_stock_threshold: int = 0,
) -> StockStatistics:
    history = list(history)
    exits = _exits(history, since)
    rows = [row for row in build_export_rows(history, totals, since) if row.consumed > 0]

    days = {entry.timestamp.date() for entry in exits}
    total_consumed = sum(entry.quantity for entry in exits)

    scores = [e.confidence_score for e in exits if e.confidence_score is not None]
    alerted = len(stock_alerts(totals, low_stock_threshold))

    return StockStatistics(
        total_stock=sum(totals.values()),
        total_consumed=total_consumed,
        exit_count=len(exits),
        unique_items_consumed=len(rows),
        most_consumed=rows[0] if rows else None,
        average_daily_consumption=round(total_consumed / len(days), 2) if days else 0.0,
        average_confidence=round(sum(scores) / len(scores), 4) if scores else None,
        critical_items=alerted,
    )
