"""
BaseService -- abstract base for kernel services that write inside a
caller-owned transaction.

Responsibility:
    Holds the SQLAlchemy ``Session`` a service writes through.  Services
    persist with ``session.flush()`` only; the LotStore transaction that
    handed them the session owns commit and rollback.

Architecture position:
    Kernel > Services.  Every service that writes rows the LotStore
    transaction must commit together with lot changes extends this class.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from supply_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for flush-only kernel services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``.  A batch of lot replacements and history
          appends commits or fails as one unit.
    """

    def __init__(self, session: Session):
        self.session = session
