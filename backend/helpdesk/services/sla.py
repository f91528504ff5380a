from __future__ import annotations
"""SLA collaborator.

The workflow never computes SLA timers; on reopen it only hands the
configured reset mode to this gateway. The default gateway records
``reset``/``new_sla`` instructions in ``sla_reset_requests`` for the SLA
engine to pick up. ``continue`` leaves the clock alone, so nothing is written.
"""
from datetime import datetime
from typing import Callable, Optional
from sqlalchemy.orm import Session
from helpdesk.models.base import utcnow
from helpdesk.models.reopen_config import ReopenConfig
from helpdesk.models.sla_reset_request import SlaResetRequest
from helpdesk.utils.validation import validate_status


class SlaGateway:
    def apply_reset_mode(self, ticket_id: int, mode: str, actor_id: Optional[int] = None) -> None:
        raise NotImplementedError


class OutboxSlaGateway(SlaGateway):
    def __init__(self, session: Session, clock: Optional[Callable[[], datetime]] = None):
        self.session = session
        self.clock = clock or utcnow

    def apply_reset_mode(self, ticket_id: int, mode: str, actor_id: Optional[int] = None) -> None:
        validate_status(mode, ReopenConfig.SLA_RESET_MODES, 'sla_reset_mode')
        if mode == ReopenConfig.SLA_CONTINUE:
            return
        # joins the caller's transaction; committed together with the reopen
        self.session.add(SlaResetRequest(ticket_id=ticket_id, mode=mode, requested_by=actor_id, requested_at=self.clock()))
