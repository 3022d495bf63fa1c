"""
LotStore -- durable per-label lot buckets, the source of truth for stock.

Responsibility:
    Owns the ``ledger_lots`` table.  Exposes the bucket contract
    (``get_lots``, ``replace_lots``, ``total_quantity``) and the
    ``transaction`` scope every other component uses for a label-scoped
    read-modify-write.

Architecture position:
    Kernel > Services.  The recorders, the correction reconciler and the
    migration adapter in ``supply_services`` mutate the ledger only through
    ``LotStore.transaction``.

Invariants enforced:
    - For every label, the stock total is the sum of its lot quantities;
      there is no stored counter to drift.
    - Every mutation of a bucket runs under that label's lock and inside a
      single database transaction.  Readers never observe a bucket
      mid-replacement.
    - Unknown labels are empty buckets, never an error.
    - Lot ids are unique within a label; depleted (zero) lots are dropped
      on replacement.

Failure modes:
    - PersistenceFailureError: a flush or commit failed.  The transaction
      was rolled back and nothing from it is visible.
    - UnlockedLabelError: a transaction touched a label it did not lock.
    - DuplicateLotError: a replacement bucket repeats a lot id.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Sequence
from contextlib import contextmanager

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from supply_kernel.db.engine import READ_ONLY
from supply_kernel.domain.clock import Clock, SystemClock
from supply_kernel.domain.labels import normalize_label
from supply_kernel.domain.lots import Lot, total_quantity
from supply_kernel.exceptions import (
    DuplicateLotError,
    PersistenceFailureError,
    UnlockedLabelError,
)
from supply_kernel.logging_config import LogContext, get_logger
from supply_kernel.models.ledger_state import LEDGER_INITIALIZED, LedgerStateModel
from supply_kernel.models.lot import LotModel
from supply_kernel.selectors.ledger_selector import LedgerSelector
from supply_kernel.services.label_locks import LabelLockRegistry

logger = get_logger("services.lot_store")

# Driver errors SQLAlchemy does not wrap (sqlite3 raises OverflowError for
# integers outside 64 bits while binding parameters)
STORAGE_ERRORS = (SQLAlchemyError, OverflowError)


def _load_bucket(session: Session, label: str) -> tuple[Lot, ...]:
    return tuple(LedgerSelector(session).lots(label))


def _is_initialized(session: Session) -> bool:
    marker = session.execute(
        select(LedgerStateModel.id).where(LedgerStateModel.name == LEDGER_INITIALIZED)
    ).first()
    if marker is not None:
        return True
    return session.execute(select(LotModel.id).limit(1)).first() is not None


class LedgerTransaction:
    """
    One atomic unit of work over a fixed set of locked labels.

    Obtained from ``LotStore.transaction``; never constructed directly.
    ``session`` is exposed so flush-only services (audit history) write in
    the same transaction as the lot changes.
    """

    def __init__(self, session: Session, labels: tuple[str, ...], clock: Clock):
        self.session = session
        self.labels = labels
        self._clock = clock

    def _check(self, label: str) -> str:
        key = normalize_label(label)
        if key not in self.labels:
            raise UnlockedLabelError(key, self.labels)
        return key

    def get_lots(self, label: str) -> tuple[Lot, ...]:
        return _load_bucket(self.session, self._check(label))

    def total_quantity(self, label: str) -> int:
        return total_quantity(self.get_lots(label))

    def lot_ids(self, label: str) -> set[str]:
        return {lot.lot_id for lot in self.get_lots(label)}

    def replace_lots(self, label: str, lots: Sequence[Lot]) -> tuple[Lot, ...]:
        """
        Replace the whole bucket of ``label`` with ``lots``.

        Zero-quantity lots are dropped.  The stored order follows ``lots``.

        Returns:
            The bucket as stored.
        """
        key = self._check(label)
        kept = tuple(lot for lot in lots if lot.quantity > 0)

        seen: set[str] = set()
        for lot in kept:
            if lot.lot_id in seen:
                raise DuplicateLotError(key, lot.lot_id)
            seen.add(lot.lot_id)

        self.session.execute(delete(LotModel).where(LotModel.label == key))
        self.session.add_all(
            LotModel.from_domain(key, lot, position) for position, lot in enumerate(kept)
        )
        self.mark_initialized()
        self.session.flush()

        logger.debug(
            "bucket_replaced",
            extra={"item": key, "lot_count": len(kept), "total": total_quantity(kept)},
        )
        return kept

    def mark_initialized(self) -> None:
        exists = self.session.execute(
            select(LedgerStateModel).where(LedgerStateModel.name == LEDGER_INITIALIZED)
        ).scalar_one_or_none()
        if exists is None:
            self.session.add(LedgerStateModel(
                name=LEDGER_INITIALIZED,
                value="true",
                updated_at=self._clock.now(),
            ))

    def is_initialized(self) -> bool:
        return _is_initialized(self.session)


class LotStore:
    """
    Service object owning the lot ledger.

    Contract:
        ``session_factory`` produces a new Session per call; each
        ``transaction`` and each read uses its own session, so one LotStore
        may be shared across threads.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Clock | None = None,
        locks: LabelLockRegistry | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._locks = locks or LabelLockRegistry()

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def session_factory(self) -> Callable[[], Session]:
        return self._session_factory

    @contextmanager
    def read_session(self) -> Iterator[Session]:
        """
        Short-lived session for reads; rolled back and closed on exit.

        On SQLite it reads the last committed state without waiting for
        writers.  Database errors surface as PersistenceFailureError.
        """
        session = self._session_factory()
        try:
            session.connection(execution_options={READ_ONLY: True})
            yield session
        except STORAGE_ERRORS as exc:
            logger.error("ledger_read_failed", exc_info=True)
            raise PersistenceFailureError("read", str(exc)) from exc
        finally:
            session.rollback()
            session.close()

    # -- reads ----------------------------------------------------------

    def get_lots(self, label: str) -> tuple[Lot, ...]:
        """Lots of ``label`` in stored order; empty for an unknown label."""
        key = normalize_label(label)
        with self.read_session() as session:
            return _load_bucket(session, key)

    def total_quantity(self, label: str) -> int:
        return total_quantity(self.get_lots(label))

    def labels(self) -> list[str]:
        with self.read_session() as session:
            return list(session.execute(
                select(LotModel.label).distinct().order_by(LotModel.label)
            ).scalars())

    def totals(self) -> dict[str, int]:
        """Stock total per label, for every label holding at least one lot."""
        with self.read_session() as session:
            return LedgerSelector(session).totals()

    def snapshot(self) -> dict[str, tuple[Lot, ...]]:
        """Every bucket, read in one session."""
        with self.read_session() as session:
            rows = session.execute(
                select(LotModel).order_by(
                    LotModel.label, LotModel.position, LotModel.created_at
                )
            ).scalars().all()
            ledger: dict[str, list[Lot]] = {}
            for row in rows:
                ledger.setdefault(row.label, []).append(row.to_domain())
        return {label: tuple(lots) for label, lots in ledger.items()}

    def is_initialized(self) -> bool:
        """True once any lot-structured ledger has been written."""
        with self.read_session() as session:
            return _is_initialized(session)

    # -- writes ---------------------------------------------------------

    def replace_lots(self, label: str, lots: Sequence[Lot]) -> tuple[Lot, ...]:
        """Atomic full replacement of one bucket."""
        with self.transaction([label], operation="replace_lots") as tx:
            return tx.replace_lots(label, lots)

    @contextmanager
    def transaction(
        self,
        labels: Iterable[str],
        operation: str = "ledger_update",
    ) -> Iterator[LedgerTransaction]:
        """
        Lock ``labels``, open one database transaction, commit on exit.

        Postconditions:
            On normal exit everything written through the yielded
            LedgerTransaction (and its session) is committed.  On any
            exception it is rolled back; database errors surface as
            PersistenceFailureError, everything else is re-raised as is.
        """
        keys = tuple(sorted({normalize_label(label) for label in labels}))
        with self._locks.hold(keys), LogContext.bind(label=",".join(keys) or None):
            session = self._session_factory()
            try:
                yield LedgerTransaction(session, keys, self._clock)
                session.commit()
                logger.debug(
                    "ledger_transaction_committed",
                    extra={"operation": operation, "labels": list(keys)},
                )
            except STORAGE_ERRORS as exc:
                session.rollback()
                logger.error(
                    "ledger_transaction_failed",
                    extra={"operation": operation, "labels": list(keys)},
                    exc_info=True,
                )
                raise PersistenceFailureError(operation, str(exc)) from exc
            except Exception:
                session.rollback()
                logger.warning(
                    "transaction_rolled_back",
                    extra={"operation": operation, "labels": list(keys)},
                )
                raise
            finally:
                session.close()
