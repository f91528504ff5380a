from __future__ import annotations
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Text, Float, Boolean, DateTime, ForeignKey, UniqueConstraint
from helpdesk.models.base import Base


class RepairRecord(Base):
    __tablename__ = 'repair_records'
    STATUS_COMPLETED = 'completed'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ticket_id: Mapped[int] = mapped_column(ForeignKey('tickets.id'), nullable=False, index=True)
    close_request_id: Mapped[int] = mapped_column(ForeignKey('close_requests.id'), nullable=False)
    asset_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    fault_type_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    fault_description: Mapped[str] = mapped_column(Text, nullable=False)
    resolution: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    repair_status: Mapped[str] = mapped_column(String(16), nullable=False, default=STATUS_COMPLETED)
    repair_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    parts_cost_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    labor_cost_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    labor_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    parts_replaced: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    warranty_claim: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (UniqueConstraint('close_request_id', 'asset_id', name='uq_repair_close_request_asset'),)
