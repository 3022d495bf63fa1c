"""
supply_services.ledger_service -- The owning service object for a ledger.

Responsibility:
    Wire one LotStore (and its label locks) to the recorders, the
    correction reconciler, the migration adapter, the export service and
    the confirmation gate.  Callers hold one SupplyLedgerService per
    database instead of reaching for module-level state.

Usage:
    config = get_active_config()
    ledger = SupplyLedgerService.from_config(config)
    ledger.record_entry([DetectionEvent("Luvas")], 10, user="ana")
    ledger.total_quantity("luvas")
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from supply_config.schema import LedgerConfig
from supply_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from supply_kernel.domain.clock import Clock, SystemClock
from supply_kernel.domain.detection import DetectionEvent
from supply_kernel.domain.history import AuditHistoryEntry
from supply_kernel.domain.lots import Lot
from supply_kernel.logging_config import configure_logging, get_logger
from supply_kernel.selectors.history_selector import HistorySelector
from supply_kernel.services.audit_history import EntryRef
from supply_kernel.services.lot_store import LotStore
from supply_services.confirmation_gate import ConfirmationGate
from supply_services.correction_reconciler import CorrectionReconciler, CorrectionResult
from supply_services.entry_recorder import DEFAULT_USER, EntryRecorder
from supply_services.exit_recorder import ExitRecorder
from supply_services.export_service import ExportService
from supply_services.migration_adapter import MigrationAdapter, MigrationResult
from supply_services.results import BatchResult, ItemResult

logger = get_logger("services.ledger")


class SupplyLedgerService:
    """Facade over every ledger operation."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Clock | None = None,
        *,
        seed_labels: Sequence[str] = (),
        seed_quantity: int = 20,
        low_stock_threshold: int = 10,
        default_user: str = DEFAULT_USER,
    ):
        self.clock = clock or SystemClock()
        self.seed_labels = tuple(seed_labels)
        self.seed_quantity = seed_quantity

        self.lot_store = LotStore(session_factory, self.clock)
        self.entries = EntryRecorder(self.lot_store, self.clock, default_user=default_user)
        self.exits = ExitRecorder(self.lot_store, self.clock, default_user=default_user)
        self.corrections = CorrectionReconciler(
            self.lot_store, self.clock, default_user=default_user
        )
        self.migration = MigrationAdapter(self.lot_store, self.clock)
        self.exports = ExportService(
            self.lot_store,
            self.clock,
            low_stock_threshold=low_stock_threshold,
            tracked_labels=self.seed_labels,
        )
        self.gate = ConfirmationGate(self.entries, self.exits, self.clock)

    @classmethod
    def from_config(
        cls,
        config: LedgerConfig,
        clock: Clock | None = None,
        bootstrap: bool = True,
    ) -> SupplyLedgerService:
        """
        Initialize the engine, create missing tables and (by default)
        migrate or seed the ledger.
        """
        configure_logging(level=config.logging.level)
        storage = config.storage
        init_engine_from_url(
            storage.database_url,
            echo=storage.echo,
            pool_size=storage.pool_size,
            max_overflow=storage.max_overflow,
            sqlite_timeout=storage.sqlite_timeout,
        )
        create_tables()

        service = cls(
            get_session_factory(),
            clock,
            seed_labels=config.seed.labels,
            seed_quantity=config.seed.quantity,
            low_stock_threshold=config.alerts.low_stock_threshold,
            default_user=config.default_user,
        )
        if bootstrap:
            service.bootstrap()
        logger.info("ledger_service_ready", extra={"config_set_id": config.config_id})
        return service

    # -- mutations ------------------------------------------------------

    def bootstrap(self, legacy: Mapping[str, object] | None = None) -> MigrationResult:
        return self.migration.bootstrap(
            legacy,
            seed_labels=self.seed_labels,
            seed_quantity=self.seed_quantity,
        )

    def record_entry(
        self,
        detections: Sequence[DetectionEvent],
        quantity: object,
        *,
        user: str | None = None,
        lot_id: str | None = None,
        expiry_date: object = None,
    ) -> BatchResult:
        return self.entries.record(
            detections, quantity, user=user, lot_id=lot_id, expiry_date=expiry_date
        )

    def record_exit(
        self,
        detections: Sequence[DetectionEvent],
        quantity: object,
        *,
        user: str | None = None,
    ) -> BatchResult:
        return self.exits.record(detections, quantity, user=user)

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
        return self.entries.add_lot(
            label,
            quantity,
            user=user,
            lot_id=lot_id,
            received_at=received_at,
            expiry_date=expiry_date,
        )

    def correct(
        self,
        entry_ref: EntryRef,
        *,
        label: str | None = None,
        quantity: object = None,
        user: str | None = None,
    ) -> CorrectionResult:
        return self.corrections.correct(entry_ref, label=label, quantity=quantity, user=user)

    # -- queries --------------------------------------------------------

    def get_lots(self, label: str) -> tuple[Lot, ...]:
        return self.lot_store.get_lots(label)

    def total_quantity(self, label: str) -> int:
        return self.lot_store.total_quantity(label)

    def totals(self) -> dict[str, int]:
        return self.exports.totals()

    def history(self, since: datetime | None = None) -> list[AuditHistoryEntry]:
        with self.lot_store.read_session() as session:
            return HistorySelector(session).entries(since=since)

    def ledger_document(self) -> dict[str, list[dict[str, Any]]]:
        return self.exports.ledger_document()

    def history_document(self) -> list[dict[str, Any]]:
        return self.exports.history_document()
