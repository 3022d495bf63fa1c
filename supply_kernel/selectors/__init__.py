"""Read-only selectors over the ledger and audit history."""

from supply_kernel.selectors.history_selector import HistorySelector
from supply_kernel.selectors.ledger_selector import LedgerSelector

__all__ = ["HistorySelector", "LedgerSelector"]
