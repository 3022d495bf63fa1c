"""
Tests for creation-time-ordered lot consumption.

The engine is pure: no database, no clock.  Lots are built in memory.
"""

from datetime import UTC, datetime, timedelta, date

import pytest

from supply_engines.fefo import ConsumptionResult, consume
from supply_kernel.domain.lots import ConsumedLot, Lot

T0 = datetime(2024, 1, 1, 8, 0, tzinfo=UTC)


def _lot(lot_id: str, qty: int, minutes: int = 0, **kwargs) -> Lot:
    return Lot(lot_id=lot_id, quantity=qty, created_at=T0 + timedelta(minutes=minutes), **kwargs)


class TestOrdering:

    def test_oldest_lot_consumed_first(self):
        a = _lot("A", 5, minutes=0)
        b = _lot("B", 5, minutes=10)

        result = consume([a, b], 7)

        assert result.success
        assert result.consumed_lots == (
            ConsumedLot("A", 5, a.created_at),
            ConsumedLot("B", 2, b.created_at),
        )
        assert result.updated_lots == (b.with_quantity(3),)

    def test_input_order_does_not_matter(self):
        a = _lot("A", 5, minutes=0)
        b = _lot("B", 5, minutes=10)

        result = consume([b, a], 7)

        assert [c.lot_id for c in result.consumed_lots] == ["A", "B"]
        assert result.updated_lots == (b.with_quantity(3),)

    def test_ties_keep_input_order(self):
        first = _lot("first", 3)
        second = _lot("second", 3)

        result = consume([first, second], 4)

        assert [(c.lot_id, c.quantity) for c in result.consumed_lots] == [
            ("first", 3),
            ("second", 1),
        ]

    def test_expiry_date_does_not_change_order(self):
        old_late_expiry = _lot("old", 2, minutes=0, expiry_date=date(2030, 1, 1))
        new_early_expiry = _lot("new", 2, minutes=5, expiry_date=date(2024, 2, 1))

        result = consume([new_early_expiry, old_late_expiry], 2)

        assert [c.lot_id for c in result.consumed_lots] == ["old"]

    def test_zero_quantity_lots_are_skipped(self):
        empty = _lot("empty", 0, minutes=0)
        full = _lot("full", 4, minutes=1)

        result = consume([empty, full], 2)

        assert [c.lot_id for c in result.consumed_lots] == ["full"]
        assert result.updated_lots == (full.with_quantity(2),)


class TestDepletion:

    def test_exact_total_empties_bucket(self):
        result = consume([_lot("A", 3), _lot("B", 2, minutes=1)], 5)

        assert result.success
        assert result.updated_lots == ()
        assert result.consumed_quantity == 5

    def test_updated_lots_are_in_consumption_order(self):
        a = _lot("A", 5, minutes=2)
        b = _lot("B", 5, minutes=1)
        c = _lot("C", 5, minutes=0)

        result = consume([a, b, c], 1)

        assert [lot.lot_id for lot in result.updated_lots] == ["C", "B", "A"]
        assert result.remaining_stock == 14

    def test_zero_request_consumes_nothing(self):
        lots = [_lot("A", 5)]

        result = consume(lots, 0)

        assert result.success
        assert result.consumed_lots == ()
        assert result.updated_lots == tuple(lots)


class TestInsufficientStock:

    def test_failure_returns_input_untouched(self):
        lots = [_lot("A", 5), _lot("B", 5, minutes=1)]
        before = list(lots)

        result = consume(lots, 11)

        assert result == ConsumptionResult(
            success=False,
            requested=11,
            consumed_lots=(),
            updated_lots=tuple(before),
        )
        assert lots == before

    def test_failure_on_empty_bucket(self):
        result = consume([], 1)

        assert not result.success
        assert result.updated_lots == ()

    def test_input_lots_never_mutated_on_success(self):
        a = _lot("A", 5)
        lots = [a]

        consume(lots, 3)

        assert lots == [a]
        assert a.quantity == 5


class TestTrace:

    def test_emits_engine_trace(self, captured_logs):
        consume([_lot("A", 1)], 1)

        traces = [r for r in captured_logs() if r["message"] == "SUPPLY_ENGINE_TRACE"]
        assert traces
        assert traces[-1]["engine_name"] == "fefo"
        assert len(traces[-1]["input_fingerprint"]) == 16
        assert traces[-1]["success"] is True
        assert traces[-1]["lots_touched"] == 1


@pytest.mark.parametrize("qty", [1, 4, 9, 10])
def test_total_is_conserved(qty):
    lots = [_lot("A", 4), _lot("B", 6, minutes=1)]

    result = consume(lots, qty)

    assert result.consumed_quantity + result.remaining_stock == 10
