from __future__ import annotations
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, DateTime, func
from helpdesk.models.base import Base


class Ticket(Base):
    __tablename__ = 'tickets'
    # Status constants
    STATUS_OPEN = 'open'
    STATUS_ASSIGNED = 'assigned'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_PENDING_CLOSURE = 'pending_closure'
    STATUS_RESOLVED = 'resolved'
    STATUS_CLOSED = 'closed'
    STATUS_CANCELLED = 'cancelled'
    ALL_STATUSES = (
        STATUS_OPEN, STATUS_ASSIGNED, STATUS_IN_PROGRESS, STATUS_PENDING_CLOSURE,
        STATUS_RESOLVED, STATUS_CLOSED, STATUS_CANCELLED,
    )
    # Service types
    SERVICE_GENERAL = 'general'
    SERVICE_REPAIR = 'repair'
    SERVICE_REPLACE = 'replace'
    ALL_SERVICE_TYPES = (SERVICE_GENERAL, SERVICE_REPAIR, SERVICE_REPLACE)
    SERVICE_REPORT_TYPES = (SERVICE_REPAIR, SERVICE_REPLACE)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ticket_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=STATUS_OPEN, index=True)
    service_type: Mapped[str] = mapped_column(String(16), nullable=False, default=SERVICE_GENERAL)
    assigned_engineer_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    manager_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    reopen_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Per-ticket ceiling; falls back to ReopenConfig.max_reopen_count when NULL
    max_reopen_count_override: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def requires_service_report(self) -> bool:
        return self.service_type in self.SERVICE_REPORT_TYPES

# Status flow owned by this service:
#   in_progress -> pending_closure -> closed | in_progress (rejected)
#   closed -> in_progress (reopen)
# open/assigned/resolved/cancelled are driven by the external ticket service.
