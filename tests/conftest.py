"""
Pytest fixtures for the supply ledger test suite.

Provides:
- A fresh SQLite database per test (file in tmp_path, WAL mode)
- A DeterministicClock shared by every service fixture
- Service fixtures wired to one LotStore
- Structured log capture

Environment Variables:
- SUPPLY_LEDGER_TEST_DATABASE_URL: run against another database (for
  example PostgreSQL).  Tables are dropped after each test.
"""

import json
import logging
import os
from datetime import timedelta
from io import StringIO

import pytest

from supply_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from supply_kernel.domain.clock import DeterministicClock
from supply_kernel.domain.detection import DetectionEvent
from supply_kernel.domain.lots import Lot
from supply_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from supply_kernel.services.lot_store import LotStore
from supply_services.confirmation_gate import ConfirmationGate
from supply_services.correction_reconciler import CorrectionReconciler
from supply_services.entry_recorder import EntryRecorder
from supply_services.exit_recorder import ExitRecorder
from supply_services.export_service import ExportService
from supply_services.ledger_service import SupplyLedgerService
from supply_services.migration_adapter import MigrationAdapter

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow_locks: mark test as potentially waiting for label or DB locks"
    )


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture supply_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, exit_recorder):
            exit_recorder.record(...)
            logs = captured_logs()
            assert any(r["message"] == "exit_consumed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("supply_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def database_url(tmp_path) -> str:
    return os.environ.get(
        "SUPPLY_LEDGER_TEST_DATABASE_URL",
        f"sqlite:///{tmp_path / 'ledger.db'}",
    )


@pytest.fixture
def engine(database_url):
    """Engine with every table created; disposed after the test."""
    eng = init_engine_from_url(database_url, sqlite_timeout=10.0)
    create_tables()
    yield eng
    if not database_url.startswith("sqlite"):
        drop_tables()
    reset_engine()


@pytest.fixture
def session_factory(engine):
    return get_session_factory()


# =============================================================================
# Clock and services
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture
def lot_store(session_factory, deterministic_clock) -> LotStore:
    return LotStore(session_factory, deterministic_clock)


@pytest.fixture
def entry_recorder(lot_store, deterministic_clock) -> EntryRecorder:
    return EntryRecorder(lot_store, deterministic_clock)


@pytest.fixture
def exit_recorder(lot_store, deterministic_clock) -> ExitRecorder:
    return ExitRecorder(lot_store, deterministic_clock)


@pytest.fixture
def correction_reconciler(lot_store, deterministic_clock) -> CorrectionReconciler:
    return CorrectionReconciler(lot_store, deterministic_clock)


@pytest.fixture
def migration_adapter(lot_store, deterministic_clock) -> MigrationAdapter:
    return MigrationAdapter(lot_store, deterministic_clock)


@pytest.fixture
def export_service(lot_store, deterministic_clock) -> ExportService:
    return ExportService(lot_store, deterministic_clock, low_stock_threshold=10)


@pytest.fixture
def confirmation_gate(entry_recorder, exit_recorder, deterministic_clock) -> ConfirmationGate:
    return ConfirmationGate(entry_recorder, exit_recorder, deterministic_clock)


@pytest.fixture
def ledger(session_factory, deterministic_clock) -> SupplyLedgerService:
    return SupplyLedgerService(
        session_factory,
        deterministic_clock,
        seed_labels=("luvas", "seringa"),
        seed_quantity=20,
    )


# =============================================================================
# Data helpers
# =============================================================================


@pytest.fixture
def make_lot(deterministic_clock):
    """Build a Lot created ``minutes`` after the clock's current time."""

    def _make(lot_id: str, quantity: int, minutes: int = 0, **kwargs) -> Lot:
        return Lot(
            lot_id=lot_id,
            quantity=quantity,
            created_at=deterministic_clock.now() + timedelta(minutes=minutes),
            **kwargs,
        )

    return _make


@pytest.fixture
def stock(lot_store, make_lot):
    """
    Put lots straight into a bucket.

    ``stock("luvas", 5, 5)`` stores two lots, ``luvas_0`` and ``luvas_1``,
    one minute apart (oldest first).
    """

    def _stock(label: str, *quantities: int) -> tuple[Lot, ...]:
        lots = tuple(
            make_lot(f"{label}_{i}", qty, minutes=i) for i, qty in enumerate(quantities)
        )
        return lot_store.replace_lots(label, lots)

    return _stock


@pytest.fixture
def detections():
    """Build DetectionEvents from labels."""

    def _detections(*labels: str, score: float = 0.9) -> list[DetectionEvent]:
        return [
            DetectionEvent(label=label, confidence_score=score, image_ref=f"img://{i}")
            for i, label in enumerate(labels)
        ]

    return _detections
