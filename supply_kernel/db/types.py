"""
Module: supply_kernel.db.types
Responsibility: Column types shared by every model.  Centralizes timestamp
    normalization so that lots written by one backend sort identically when
    read back by another.
Architecture position: Kernel > DB.  May be imported by models/, services/
    and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - Timestamps are stored as naive UTC and always returned timezone-aware
      (UTC).  FEFO ordering compares lots loaded from storage with lots
      built in memory; mixing naive and aware datetimes would raise.
"""

from datetime import UTC
from uuid import UUID

from sqlalchemy import DateTime, String
from sqlalchemy.types import TypeDecorator


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime stored as naive UTC.

    Contract:
        Binding a naive datetime treats it as UTC.  Loading always yields an
        aware datetime in UTC.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is not None:
            value = value.astimezone(UTC)
        return value.replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)



class UUIDString(TypeDecorator):
    """uuid.UUID stored as its 36-character text form on every backend."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)
