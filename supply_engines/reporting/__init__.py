"""Reporting - export rows, stock alerts and summary statistics."""

from supply_engines.reporting.stock_report import (
    AlertSeverity,
    ExportRow,
    StockAlert,
    StockStatistics,
    build_export_rows,
    consumption_by_item,
    stock_alerts,
    summarize,
)

__all__ = [
    "AlertSeverity",
    "ExportRow",
    "StockAlert",
    "StockStatistics",
    "build_export_rows",
    "consumption_by_item",
    "stock_alerts",
    "summarize",
]
