"""
supply_services.migration_adapter -- One-shot upgrade from flat counters.

Responsibility:
    When no lot-structured ledger exists yet, turn each legacy
    ``label -> quantity`` counter into a single synthetic lot dated now.
    When neither a ledger nor legacy data exists, ``bootstrap`` seeds the
    configured labels instead.

Invariants enforced:
    - Idempotent: once the ledger is initialized (any lot written, or the
      ``ledger_initialized`` marker set) migration and seeding are no-ops.
    - All migrated or seeded lots commit in one transaction together with
      the marker.

Legacy counters that are not positive integers, or exceed MAX_QUANTITY,
are skipped and logged; a zero counter has nothing to carry over.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum

from sqlalchemy import select

from supply_kernel.domain.clock import Clock
from supply_kernel.domain.labels import normalize_label
from supply_kernel.domain.lot_ids import migration_lot_id, seed_lot_id
from supply_kernel.domain.lots import Lot
from supply_kernel.domain.quantity import MAX_QUANTITY, parse_int_prefix
from supply_kernel.logging_config import get_logger
from supply_kernel.models.ledger_state import LegacyStockModel
from supply_kernel.services.lot_store import LotStore

logger = get_logger("services.migration_adapter")


class MigrationStatus(str, Enum):
    SKIPPED_EXISTING = "skipped_existing"
    MIGRATED = "migrated"
    SEEDED = "seeded"
    EMPTY = "empty"


@dataclass(frozen=True)
class MigrationResult:
    status: MigrationStatus
    lots: dict[str, Lot] = field(default_factory=dict)
    skipped: tuple[str, ...] = ()

    @property
    def changed(self) -> bool:
        return self.status in (MigrationStatus.MIGRATED, MigrationStatus.SEEDED)


class MigrationAdapter:
    """Migrates legacy counters and seeds an empty ledger."""

    def __init__(self, lot_store: LotStore, clock: Clock | None = None):
        self._lot_store = lot_store
        self._clock = clock or lot_store.clock

    def load_legacy(self) -> dict[str, int]:
        """Legacy counters stored in the ``legacy_stock`` table."""
        with self._lot_store.read_session() as session:
            rows = session.execute(select(LegacyStockModel)).scalars()
            return {row.label: row.quantity for row in rows}

    def migrate(self, legacy: Mapping[str, object] | None = None) -> MigrationResult:
        """
        Migrate ``legacy`` (or the ``legacy_stock`` table when None).

        Returns SKIPPED_EXISTING when a ledger already exists and EMPTY
        when there is nothing to migrate.
        """
        if self._lot_store.is_initialized():
            logger.info("ledger_migration_skipped", extra={"reason": "ledger_exists"})
            return MigrationResult(status=MigrationStatus.SKIPPED_EXISTING)

        source = dict(legacy) if legacy is not None else self.load_legacy()
        if not source:
            return MigrationResult(status=MigrationStatus.EMPTY)

        keyed: list[tuple[str, str, object]] = [
            (raw, normalize_label(raw), value) for raw, value in source.items()
        ]

        with self._lot_store.transaction(
            [key for _, key, _ in keyed], operation="migration"
        ) as tx:
            if tx.is_initialized():
                return MigrationResult(status=MigrationStatus.SKIPPED_EXISTING)

            now = self._clock.now()
            created: dict[str, Lot] = {}
            skipped: list[str] = []
            for raw, key, value in keyed:
                qty = parse_int_prefix(value)
                if qty is None or not 0 < qty <= MAX_QUANTITY:
                    skipped.append(raw)
                    logger.warning("legacy_entry_skipped", extra={
                        "legacy_label": raw,
                        "legacy_quantity": repr(value),
                    })
                    continue
                bucket = tx.get_lots(key)
                lot = Lot(
                    lot_id=migration_lot_id(now, {existing.lot_id for existing in bucket}),
                    quantity=qty,
                    created_at=now,
                )
                tx.replace_lots(key, bucket + (lot,))
                created[key] = lot
            tx.mark_initialized()

        logger.info("ledger_migrated", extra={
            "lot_count": len(created),
            "skipped_count": len(skipped),
            "total_quantity": sum(lot.quantity for lot in created.values()),
        })
        return MigrationResult(
            status=MigrationStatus.MIGRATED,
            lots=created,
            skipped=tuple(skipped),
        )

    def seed(self, labels: Iterable[str], quantity: int) -> MigrationResult:
        """One ``initial_<label>`` lot of ``quantity`` per label, once."""
        keys = list(dict.fromkeys(normalize_label(label) for label in labels))
        if not keys:
            return MigrationResult(status=MigrationStatus.EMPTY)

        with self._lot_store.transaction(keys, operation="seed") as tx:
            if tx.is_initialized():
                return MigrationResult(status=MigrationStatus.SKIPPED_EXISTING)

            now = self._clock.now()
            created: dict[str, Lot] = {}
            for key in keys:
                lot = Lot(lot_id=seed_lot_id(key), quantity=quantity, created_at=now)
                tx.replace_lots(key, (lot,))
                created[key] = lot
            tx.mark_initialized()

        logger.info("ledger_seeded", extra={
            "lot_count": len(created),
            "quantity_per_label": quantity,
        })
        return MigrationResult(status=MigrationStatus.SEEDED, lots=created)

    def bootstrap(
        self,
        legacy: Mapping[str, object] | None = None,
        seed_labels: Iterable[str] = (),
        seed_quantity: int = 20,
    ) -> MigrationResult:
        """Migrate legacy data if any, otherwise seed the configured labels."""
        result = self.migrate(legacy)
        if result.status is MigrationStatus.EMPTY:
            return self.seed(seed_labels, seed_quantity)
        return result
