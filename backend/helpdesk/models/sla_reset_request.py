from __future__ import annotations
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, DateTime, ForeignKey
from helpdesk.models.base import Base


class SlaResetRequest(Base):
    """Instruction for the external SLA engine, written in the reopen transaction."""
    __tablename__ = 'sla_reset_requests'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ticket_id: Mapped[int] = mapped_column(ForeignKey('tickets.id'), nullable=False, index=True)
    mode: Mapped[str] = mapped_column(String(16), nullable=False)
    requested_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    requested_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
