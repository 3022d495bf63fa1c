"""Tests for the legacy counter migration and first-run seeding."""

import pytest

from supply_kernel.db.engine import session_scope
from supply_kernel.models.ledger_state import LegacyStockModel
from supply_kernel.selectors.ledger_selector import LedgerSelector
from supply_services.migration_adapter import MigrationStatus


@pytest.fixture
def ledger_hash(lot_store):
    def _hash():
        with lot_store.read_session() as session:
            return LedgerSelector(session).canonical_hash()

    return _hash


@pytest.fixture
def legacy_table(engine):
    def _fill(counters):
        with session_scope() as session:
            session.add_all(
                LegacyStockModel(label=label, quantity=qty) for label, qty in counters.items()
            )

    return _fill


class TestMigrate:

    def test_each_counter_becomes_one_lot(self, migration_adapter, lot_store, deterministic_clock):
        result = migration_adapter.migrate({"luvas": 12, "Tubo Ensaio": 3})

        assert result.status is MigrationStatus.MIGRATED
        assert result.changed
        assert lot_store.totals() == {"luvas": 12, "tubo_ensaio": 3}

        (lot,) = lot_store.get_lots("luvas")
        now_ms = int(deterministic_clock.now().timestamp() * 1000)
        assert lot.lot_id == f"initial_{now_ms}"
        assert lot.created_at == deterministic_clock.now()

    def test_migration_is_idempotent(self, migration_adapter, ledger_hash, deterministic_clock):
        legacy = {"luvas": 12, "seringa": 7}
        migration_adapter.migrate(legacy)
        once = ledger_hash()

        deterministic_clock.advance(3600)
        second = migration_adapter.migrate(legacy)

        assert second.status is MigrationStatus.SKIPPED_EXISTING
        assert not second.changed
        assert ledger_hash() == once

    def test_existing_ledger_wins_over_legacy_data(self, migration_adapter, lot_store, stock):
        stock("luvas", 2)

        result = migration_adapter.migrate({"luvas": 50})

        assert result.status is MigrationStatus.SKIPPED_EXISTING
        assert lot_store.totals() == {"luvas": 2}

    def test_nothing_to_migrate(self, migration_adapter, lot_store):
        assert migration_adapter.migrate({}).status is MigrationStatus.EMPTY
        assert not lot_store.is_initialized()

    def test_unusable_counters_are_skipped(self, migration_adapter, lot_store, captured_logs):
        result = migration_adapter.migrate(
            {"luvas": 5, "seringa": 0, "alcool": "n/a", "agulha": -2, "gaze": 10**20}
        )

        assert lot_store.totals() == {"luvas": 5}
        assert set(result.skipped) == {"seringa", "alcool", "agulha", "gaze"}
        skipped_logs = [r for r in captured_logs() if r["message"] == "legacy_entry_skipped"]
        assert len(skipped_logs) == 4

    def test_reads_the_legacy_table(self, migration_adapter, lot_store, legacy_table):
        legacy_table({"luvas": 8, "seringa": 2})

        assert migration_adapter.load_legacy() == {"luvas": 8, "seringa": 2}
        result = migration_adapter.migrate()

        assert result.status is MigrationStatus.MIGRATED
        assert lot_store.totals() == {"luvas": 8, "seringa": 2}


class TestSeedAndBootstrap:

    def test_seed_creates_initial_lots(self, migration_adapter, lot_store):
        result = migration_adapter.seed(["Luvas", "seringa", "luvas"], 20)

        assert result.status is MigrationStatus.SEEDED
        assert lot_store.totals() == {"luvas": 20, "seringa": 20}
        assert [lot.lot_id for lot in lot_store.get_lots("luvas")] == ["initial_luvas"]

    def test_seed_runs_once(self, migration_adapter, lot_store):
        migration_adapter.seed(["luvas"], 20)

        result = migration_adapter.seed(["luvas", "seringa"], 20)

        assert result.status is MigrationStatus.SKIPPED_EXISTING
        assert lot_store.totals() == {"luvas": 20}

    def test_bootstrap_prefers_legacy_data(self, migration_adapter, lot_store):
        result = migration_adapter.bootstrap({"luvas": 3}, seed_labels=["seringa"])

        assert result.status is MigrationStatus.MIGRATED
        assert lot_store.totals() == {"luvas": 3}

    def test_bootstrap_seeds_an_empty_database(self, migration_adapter, lot_store):
        result = migration_adapter.bootstrap(None, seed_labels=["seringa"], seed_quantity=5)

        assert result.status is MigrationStatus.SEEDED
        assert lot_store.totals() == {"seringa": 5}

    def test_bootstrap_does_not_reseed_an_emptied_ledger(self, migration_adapter, lot_store):
        migration_adapter.bootstrap(None, seed_labels=["seringa"], seed_quantity=5)
        lot_store.replace_lots("seringa", ())

        result = migration_adapter.bootstrap(None, seed_labels=["seringa"], seed_quantity=5)

        assert result.status is MigrationStatus.SKIPPED_EXISTING
        assert lot_store.totals() == {}
