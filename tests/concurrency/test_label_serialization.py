"""
Concurrency tests for per-label serialization.

Mutations of one label serialize on its lock and on the database write
lock; readers see a bucket either before or after a mutation, never
between.  Every test here uses real threads against a file-backed SQLite
database.

Skip with: pytest -m "not slow_locks"
"""

from concurrent.futures import ThreadPoolExecutor
from threading import Barrier, Event

import pytest

from supply_kernel.domain.detection import DetectionEvent
from supply_kernel.domain.history import OperationType
from supply_kernel.domain.lots import total_quantity
from supply_kernel.selectors.history_selector import HistorySelector
from supply_kernel.selectors.ledger_selector import LedgerSelector
from supply_kernel.services.label_locks import LabelLockRegistry

pytestmark = pytest.mark.slow_locks

WORKERS = 8


class TestSameLabel:

    def test_concurrent_exits_never_oversell(self, exit_recorder, lot_store, stock):
        stock("luvas", 4, 3, 3)
        attempts = 20
        barrier = Barrier(attempts)

        def take_one(_):
            barrier.wait()
            return exit_recorder.record([DetectionEvent("luvas")], 1).success

        with ThreadPoolExecutor(max_workers=attempts) as pool:
            outcomes = list(pool.map(take_one, range(attempts)))

        assert outcomes.count(True) == 10
        assert lot_store.total_quantity("luvas") == 0
        with lot_store.read_session() as session:
            exits = HistorySelector(session).entries()
        assert len(exits) == 10
        consumed_ids = [c.lot_id for e in exits for c in e.consumed_lots]
        assert sorted(set(consumed_ids)) == ["luvas_0", "luvas_1", "luvas_2"]

    def test_concurrent_entries_all_land(self, entry_recorder, lot_store):
        barrier = Barrier(WORKERS)

        def add(i):
            barrier.wait()
            return entry_recorder.record([DetectionEvent("seringa")], i + 1)

        with ThreadPoolExecutor(max_workers=WORKERS) as pool:
            results = list(pool.map(add, range(WORKERS)))

        assert all(r.success for r in results)
        lots = lot_store.get_lots("seringa")
        assert len(lots) == WORKERS
        assert len({lot.lot_id for lot in lots}) == WORKERS
        assert total_quantity(lots) == sum(range(1, WORKERS + 1))

    def test_readers_never_see_a_half_applied_movement(
        self, entry_recorder, exit_recorder, lot_store, stock
    ):
        stock("luvas", 50)
        done = Event()
        violations = []

        def read_loop():
            while not done.is_set():
                with lot_store.read_session() as session:
                    on_hand = LedgerSelector(session).totals().get("luvas", 0)
                    entries = HistorySelector(session).entries()
                moved = sum(
                    e.quantity if e.operation_type is OperationType.ENTRY else -e.quantity
                    for e in entries
                )
                if on_hand != 50 + moved:
                    violations.append((on_hand, moved))

        def write(i):
            if i % 2:
                exit_recorder.record([DetectionEvent("luvas")], 3)
            else:
                entry_recorder.record([DetectionEvent("luvas")], 2)

        with ThreadPoolExecutor(max_workers=WORKERS + 1) as pool:
            reader = pool.submit(read_loop)
            list(pool.map(write, range(30)))
            done.set()
            reader.result()

        assert violations == []
        assert lot_store.total_quantity("luvas") == 50 + 15 * 2 - 15 * 3


class TestDifferentLabels:

    def test_batches_with_overlapping_labels_do_not_deadlock(self, entry_recorder, lot_store):
        barrier = Barrier(WORKERS)

        def add(i):
            labels = ["luvas", "seringa"] if i % 2 else ["seringa", "luvas"]
            barrier.wait()
            return entry_recorder.record([DetectionEvent(label) for label in labels], 1)

        with ThreadPoolExecutor(max_workers=WORKERS) as pool:
            futures = [pool.submit(add, i) for i in range(WORKERS)]
            results = [f.result(timeout=60) for f in futures]

        assert all(r.success for r in results)
        assert lot_store.totals() == {"luvas": WORKERS, "seringa": WORKERS}

    def test_lock_on_one_label_does_not_block_another(self):
        registry = LabelLockRegistry()
        holding = Event()
        release = Event()

        def hold_luvas():
            with registry.hold(["luvas"]):
                holding.set()
                release.wait(timeout=10)

        with ThreadPoolExecutor(max_workers=1) as pool:
            future = pool.submit(hold_luvas)
            assert holding.wait(timeout=10)

            assert registry.lock_for("seringa").acquire(timeout=1)
            registry.lock_for("seringa").release()
            assert not registry.lock_for("luvas").acquire(timeout=0.1)

            release.set()
            future.result()

    def test_hold_yields_sorted_labels(self):
        with LabelLockRegistry().hold(["seringa", "alcool", "seringa"]) as ordered:
            assert ordered == ("alcool", "seringa")


class TestReaders:

    def test_reader_does_not_wait_for_an_open_writer(self, lot_store, stock, make_lot):
        stock("luvas", 5)

        with lot_store.transaction(["luvas"]) as tx:
            tx.replace_lots("luvas", (make_lot("pending", 1),))
            with ThreadPoolExecutor(max_workers=1) as pool:
                seen = pool.submit(lot_store.total_quantity, "luvas").result(timeout=5)

        assert seen == 5
        assert lot_store.total_quantity("luvas") == 1
