from __future__ import annotations
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Boolean, DateTime, func
from helpdesk.models.base import Base


class ReopenConfig(Base):
    """One row per saved version; the highest ``version`` is the live config."""
    __tablename__ = 'reopen_configs'
    SLA_CONTINUE = 'continue'
    SLA_RESET = 'reset'
    SLA_NEW = 'new_sla'
    SLA_RESET_MODES = (SLA_CONTINUE, SLA_RESET, SLA_NEW)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    version: Mapped[int] = mapped_column(Integer, unique=True, nullable=False, index=True)
    reopen_window_days: Mapped[int] = mapped_column(Integer, nullable=False)
    max_reopen_count: Mapped[int] = mapped_column(Integer, nullable=False)
    sla_reset_mode: Mapped[str] = mapped_column(String(16), nullable=False, default=SLA_CONTINUE)
    require_reopen_reason: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notify_assignee: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notify_manager: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    updated_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
