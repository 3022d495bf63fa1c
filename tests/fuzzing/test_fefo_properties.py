"""
Hypothesis-based property tests for FEFO consumption and label keys.

Properties checked:
- Conservation: consumed + remaining == stock before, on every success
- Oldest first: every consumed lot is at least as old as every lot left
  partially or wholly untouched
- Atomic failure: an oversized request returns the input unchanged
- Normalization is idempotent and never yields spaces
"""

from datetime import datetime, timedelta, timezone

from hypothesis import given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from supply_engines.fefo import consume
from supply_kernel.domain.labels import normalize_label
from supply_kernel.domain.lots import Lot, total_quantity

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


@composite
def lot_buckets(draw):
    """Buckets of up to 12 lots with unique ids and arbitrary (tied) ages."""
    size = draw(st.integers(min_value=0, max_value=12))
    return [
        Lot(
            lot_id=f"lot{i}",
            quantity=draw(st.integers(min_value=0, max_value=50)),
            created_at=T0 + timedelta(minutes=draw(st.integers(min_value=0, max_value=5))),
        )
        for i in range(size)
    ]


@settings(max_examples=200, deadline=None)
@given(lots=lot_buckets(), desired=st.integers(min_value=-5, max_value=400))
def test_consumption_conserves_stock(lots, desired):
    result = consume(lots, desired)
    before = total_quantity(lots)

    if desired > before:
        assert not result.success
        assert result.updated_lots == tuple(lots)
        assert result.consumed_lots == ()
        return

    assert result.success
    taken = sum(c.quantity for c in result.consumed_lots)
    assert taken == max(desired, 0)
    assert total_quantity(result.updated_lots) == before - taken
    assert all(lot.quantity > 0 for lot in result.updated_lots)


@settings(max_examples=200, deadline=None)
@given(lots=lot_buckets(), desired=st.integers(min_value=1, max_value=400))
def test_consumption_takes_the_oldest_lots_first(lots, desired):
    result = consume(lots, desired)
    if not result.success:
        return

    consumed_ids = {c.lot_id for c in result.consumed_lots}
    fully_consumed = consumed_ids - {lot.lot_id for lot in result.updated_lots}
    newest_emptied = max(
        (lot.created_at for lot in lots if lot.lot_id in fully_consumed),
        default=None,
    )
    untouched = [
        lot for lot in lots
        if lot.lot_id not in consumed_ids and lot.quantity > 0
    ]
    if newest_emptied is not None:
        assert all(lot.created_at >= newest_emptied for lot in untouched)


@given(raw=st.text(min_size=1, max_size=40).filter(lambda s: s.strip()))
def test_normalization_is_idempotent(raw):
    key = normalize_label(raw)
    assert normalize_label(key) == key
    assert " " not in key
