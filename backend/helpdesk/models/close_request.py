from __future__ import annotations
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Text, DateTime, ForeignKey, Index, event, inspect, text
from helpdesk.models.base import Base
from helpdesk.errors import AlreadyFinalizedError


class CloseRequest(Base):
    __tablename__ = 'close_requests'
    STATUS_PENDING = 'pending'
    STATUS_APPROVED = 'approved'
    STATUS_REJECTED = 'rejected'
    ALL_STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED)
    REVIEW_ACTIONS = (STATUS_APPROVED, STATUS_REJECTED)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ticket_id: Mapped[int] = mapped_column(ForeignKey('tickets.id'), nullable=False, index=True)
    engineer_id: Mapped[int] = mapped_column(Integer, nullable=False)
    request_notes: Mapped[str] = mapped_column(Text, nullable=False)
    service_report_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    request_status: Mapped[str] = mapped_column(String(16), nullable=False, default=STATUS_PENDING, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewer_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    review_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        # at most one pending request per ticket
        Index(
            'uq_close_requests_pending_ticket', 'ticket_id', unique=True,
            sqlite_where=text("request_status = 'pending'"),
            postgresql_where=text("request_status = 'pending'"),
        ),
    )

    @property
    def is_pending(self) -> bool:
        return self.request_status == self.STATUS_PENDING


@event.listens_for(CloseRequest, 'before_update')
def _block_finalized_update(mapper, connection, target: CloseRequest):
    history = inspect(target).attrs.request_status.history
    persisted = history.deleted[0] if history.deleted else target.request_status
    if persisted != CloseRequest.STATUS_PENDING:
        raise AlreadyFinalizedError(f'Close request {target.id} already {persisted}')
