from __future__ import annotations
from datetime import datetime
from typing import List
from sqlalchemy import select
from sqlalchemy.orm import Session
from helpdesk.errors import NotFoundError
from helpdesk.models.reopen_event import ReopenEvent


class ReopenLedger:
    """Append-only reopen history per ticket."""

    def __init__(self, session: Session):
        self.session = session

    def append(self, ticket_id: int, reopen_number: int, reopened_by: int, reopen_reason: str,
               sla_reset_mode: str, reopened_at: datetime) -> ReopenEvent:
        ev = ReopenEvent(
            ticket_id=ticket_id,
            reopen_number=reopen_number,
            reopened_by=reopened_by,
            reopen_reason=reopen_reason,
            sla_reset_mode=sla_reset_mode,
            reopened_at=reopened_at,
        )
        self.session.add(ev)
        self.session.flush()
        return ev

    def get(self, reopen_id: int) -> ReopenEvent:
        ev = self.session.get(ReopenEvent, reopen_id)
        if not ev:
            raise NotFoundError(f'Reopen event {reopen_id} not found')
        return ev

    def list_by_ticket(self, ticket_id: int) -> List[ReopenEvent]:
        stmt = (
            select(ReopenEvent)
            .where(ReopenEvent.ticket_id == ticket_id)
            .order_by(ReopenEvent.reopened_at.asc(), ReopenEvent.reopen_number.asc())
        )
        return list(self.session.execute(stmt).scalars())
