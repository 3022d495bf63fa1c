"""
Module: supply_kernel.db.base
Responsibility: Declarative base for the ledger's ORM models.
Architecture position: Kernel > DB.  Every model file imports from here;
    this module MUST NOT import from models/, services/, selectors/,
    domain/, or outer layers.

Invariants enforced:
    - Every row has a uuid4 primary key named ``id``.
    - ``datetime`` annotations map to UTCDateTime, so timestamps load
      timezone-aware whichever backend stored them.
"""

from datetime import date, datetime
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import Date, Integer
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from supply_kernel.db.types import UTCDateTime, UUIDString


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {
        datetime: UTCDateTime(),
        date: Date(),
        UUID: UUIDString(),
        int: Integer,
    }

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
