from __future__ import annotations
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Text, DateTime, ForeignKey, UniqueConstraint, event
from helpdesk.models.base import Base
from helpdesk.errors import AlreadyFinalizedError

MAX_REASON_LENGTH = 1000


class ReopenEvent(Base):
    __tablename__ = 'ticket_reopens'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ticket_id: Mapped[int] = mapped_column(ForeignKey('tickets.id'), nullable=False, index=True)
    reopen_number: Mapped[int] = mapped_column(Integer, nullable=False)
    reopened_by: Mapped[int] = mapped_column(Integer, nullable=False)
    reopen_reason: Mapped[str] = mapped_column(Text, nullable=False, default='')
    sla_reset_mode: Mapped[str] = mapped_column(String(16), nullable=False)
    reopened_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (UniqueConstraint('ticket_id', 'reopen_number', name='uq_ticket_reopen_number'),)


@event.listens_for(ReopenEvent, 'before_update')
def _block_update(mapper, connection, target: ReopenEvent):
    raise AlreadyFinalizedError(f'Reopen event {target.id} is append-only')
