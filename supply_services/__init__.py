"""
Module: supply_services
Responsibility:
    Ledger operations composed from the kernel and the pure engines:
    entry and exit recording, corrections, migration, export and the
    confirmation gate, behind the SupplyLedgerService facade.

Architecture position:
    Services -- above supply_kernel, supply_engines and supply_config.
"""

from supply_services.confirmation_gate import ConfirmationGate, PendingBatch
from supply_services.correction_reconciler import (
    CorrectionReconciler,
    CorrectionResult,
    CorrectionStatus,
)
from supply_services.entry_recorder import EntryRecorder
from supply_services.exit_recorder import ExitRecorder
from supply_services.export_service import CSV_HEADER, ExportService
from supply_services.ledger_service import SupplyLedgerService
from supply_services.migration_adapter import (
    MigrationAdapter,
    MigrationResult,
    MigrationStatus,
)
from supply_services.results import BatchResult, ItemResult

__all__ = [
    "BatchResult",
    "CSV_HEADER",
    "ConfirmationGate",
    "CorrectionReconciler",
    "CorrectionResult",
    "CorrectionStatus",
    "EntryRecorder",
    "ExitRecorder",
    "ExportService",
    "ItemResult",
    "MigrationAdapter",
    "MigrationResult",
    "MigrationStatus",
    "PendingBatch",
    "SupplyLedgerService",
]
