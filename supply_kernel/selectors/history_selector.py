"""
Module: supply_kernel.selectors.history_selector
Responsibility: Read-only views of the audit history, always newest first.
Architecture position: Kernel > Selectors.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import select

from supply_kernel.domain.history import AuditHistoryEntry
from supply_kernel.models.audit_entry import AuditEntryModel
from supply_kernel.selectors.base import BaseSelector


class HistorySelector(BaseSelector[AuditEntryModel]):
    """Read-only audit history queries."""

    def entries(
        self,
        since: datetime | None = None,
        limit: int | None = None,
    ) -> list[AuditHistoryEntry]:
        """Entries newest first, optionally only those at or after ``since``."""
        stmt = select(AuditEntryModel).order_by(AuditEntryModel.sequence.desc())
        if since is not None:
            stmt = stmt.where(AuditEntryModel.timestamp >= since)
        if limit is not None:
            stmt = stmt.limit(limit)
        return [row.to_domain() for row in self.session.execute(stmt).scalars()]

    def at_position(self, position: int) -> AuditHistoryEntry | None:
        row = self.session.execute(
            select(AuditEntryModel)
            .order_by(AuditEntryModel.sequence.desc())
            .offset(position)
            .limit(1)
        ).scalar_one_or_none()
        return row.to_domain() if row is not None else None

    def history_document(self, since: datetime | None = None) -> list[dict[str, Any]]:
        return [entry.to_document() for entry in self.entries(since=since)]
