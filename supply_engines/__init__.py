"""
Module: supply_engines
Responsibility:
    Pure calculation engines for the supply ledger.

Architecture position:
    Engines -- zero I/O.  May import supply_kernel.domain and
    supply_kernel.logging_config only.  MUST NOT import supply_services.

Invariants enforced:
    - Purity: engines never read the clock.  Time windows are passed in.
    - Inputs are never mutated; results are frozen dataclasses.

Usage:
    from supply_engines.fefo import consume
    from supply_engines.reporting import build_export_rows, stock_alerts
"""

from supply_engines.fefo import ConsumptionResult, consume
from supply_engines.reporting import (
    AlertSeverity,
    ExportRow,
    StockAlert,
    StockStatistics,
    build_export_rows,
    stock_alerts,
    summarize,
)

__all__ = [
    "ConsumptionResult",
    "consume",
    "AlertSeverity",
    "ExportRow",
    "StockAlert",
    "StockStatistics",
    "build_export_rows",
    "stock_alerts",
    "summarize",
]
