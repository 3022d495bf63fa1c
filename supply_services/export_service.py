"""
supply_services.export_service -- Export table, history document, alerts.

Responsibility:
    Read the ledger and audit history in one session and feed them to the
    pure reporting engine.  Writes the CSV export and the JSON history
    document to caller-supplied streams.

Known items are the tracked labels, every label holding stock and every
item that appears in the history, so depleted items still show up (and
raise an out-of-stock alert).
"""

from __future__ import annotations

import csv
import json
from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import IO, Any

from supply_engines.reporting import (
    ExportRow,
    StockAlert,
    StockStatistics,
    build_export_rows,
    stock_alerts,
    summarize,
)
from supply_kernel.domain.clock import Clock
from supply_kernel.domain.history import AuditHistoryEntry
from supply_kernel.logging_config import get_logger
from supply_kernel.selectors.history_selector import HistorySelector
from supply_kernel.selectors.ledger_selector import LedgerSelector
from supply_kernel.services.lot_store import LotStore

logger = get_logger("services.export")

CSV_HEADER = ("Item", "Consumed", "StockOnHand", "ExportDate")


class ExportService:
    """Read-side service behind the export and alert surfaces."""

    def __init__(
        self,
        lot_store: LotStore,
        clock: Clock | None = None,
        low_stock_threshold: int = 10,
        tracked_labels: Iterable[str] = (),
    ):
        self._lot_store = lot_store
        self._clock = clock or lot_store.clock
        self._low_stock_threshold = low_stock_threshold
        self._tracked = tuple(tracked_labels)

    def _since(self, since_days: int | None) -> datetime | None:
        if since_days is None:
            return None
        return self._clock.now() - timedelta(days=since_days)

    def _read(self) -> tuple[list[AuditHistoryEntry], dict[str, int]]:
        with self._lot_store.read_session() as session:
            history = HistorySelector(session).entries()
            totals = LedgerSelector(session).totals()
        known = {label: 0 for label in self._tracked}
        known.update({entry.item: 0 for entry in history})
        known.update(totals)
        return history, known

    def totals(self) -> dict[str, int]:
        """Stock total for every known item, zero included."""
        return dict(sorted(self._read()[1].items()))

    def export_rows(self, since_days: int | None = None) -> list[ExportRow]:
        history, totals = self._read()
        return build_export_rows(history, totals, since=self._since(since_days))

    def write_csv(self, stream: IO[str], since_days: int | None = None) -> int:
        """Write the export table; returns the number of data rows."""
        rows = self.export_rows(since_days)
        export_date = self._clock.today().isoformat()
        writer = csv.writer(stream, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        for row in rows:
            writer.writerow((row.item, row.consumed, row.stock_on_hand, export_date))
        logger.info("export_csv_written", extra={
            "row_count": len(rows),
            "since_days": since_days,
        })
        return len(rows)

    def history_document(self, since_days: int | None = None) -> list[dict[str, Any]]:
        with self._lot_store.read_session() as session:
            return HistorySelector(session).history_document(since=self._since(since_days))

    def ledger_document(self) -> dict[str, list[dict[str, Any]]]:
        with self._lot_store.read_session() as session:
            return LedgerSelector(session).ledger_document()

    def write_history_json(self, stream: IO[str], since_days: int | None = None) -> int:
        """Write the newest-first history document; returns the entry count."""
        document = self.history_document(since_days)
        json.dump(document, stream, indent=2, ensure_ascii=False)
        logger.info("export_history_written", extra={"entry_count": len(document)})
        return len(document)

    def alerts(self) -> list[StockAlert]:
        return stock_alerts(self._read()[1], self._low_stock_threshold)

    def statistics(self, since_days: int | None = None) -> StockStatistics:
        history, totals = self._read()
        return summarize(
            history,
            totals,
            since=self._since(since_days),
            low_stock_threshold=self._low_stock_threshold,
        )
