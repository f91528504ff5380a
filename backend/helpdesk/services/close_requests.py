from __future__ import annotations
"""Close-Request Ledger.

Entries are inserted pending and finalized exactly once by a review. The
finalize step is a conditional UPDATE on ``request_status = 'pending'`` so a
second reviewer racing the first gets AlreadyFinalizedError.
"""
from datetime import datetime
from typing import List, Optional
from sqlalchemy import select, update
from sqlalchemy.orm import Session
from helpdesk.errors import NotFoundError, AlreadyFinalizedError
from helpdesk.models.close_request import CloseRequest
from helpdesk.utils.fsm import TransitionValidator

REVIEW_FSM = TransitionValidator({
    CloseRequest.STATUS_PENDING: {CloseRequest.STATUS_APPROVED, CloseRequest.STATUS_REJECTED},
    CloseRequest.STATUS_APPROVED: set(),
    CloseRequest.STATUS_REJECTED: set(),
}, field_name='request_status')


class CloseRequestLedger:
    def __init__(self, session: Session):
        self.session = session

    def insert(self, ticket_id: int, engineer_id: int, request_notes: str, created_at: datetime,
               service_report_id: Optional[int] = None) -> CloseRequest:
        cr = CloseRequest(
            ticket_id=ticket_id,
            engineer_id=engineer_id,
            request_notes=request_notes,
            service_report_id=service_report_id,
            request_status=CloseRequest.STATUS_PENDING,
            created_at=created_at,
        )
        self.session.add(cr)
        self.session.flush()
        return cr

    def get(self, close_request_id: int, refresh: bool = False) -> CloseRequest:
        stmt = select(CloseRequest).where(CloseRequest.id == close_request_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        cr = self.session.execute(stmt).scalar_one_or_none()
        if not cr:
            raise NotFoundError(f'Close request {close_request_id} not found')
        return cr

    def list_by_ticket(self, ticket_id: int) -> List[CloseRequest]:
        stmt = (
            select(CloseRequest)
            .where(CloseRequest.ticket_id == ticket_id)
            .order_by(CloseRequest.created_at.asc(), CloseRequest.id.asc())
        )
        return list(self.session.execute(stmt).scalars())

    def list_by_status_query(self, status: str):
        """Query (not list) so list endpoints can paginate and sort it."""
        return self.session.query(CloseRequest).filter(CloseRequest.request_status == status)

    def latest_approved(self, ticket_id: int) -> Optional[CloseRequest]:
        stmt = (
            select(CloseRequest)
            .where(CloseRequest.ticket_id == ticket_id, CloseRequest.request_status == CloseRequest.STATUS_APPROVED)
            .order_by(CloseRequest.reviewed_at.desc(), CloseRequest.id.desc())
            .limit(1)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def finalize(self, close_request_id: int, status: str, reviewer_id: int, review_notes: Optional[str], reviewed_at: datetime) -> None:
        REVIEW_FSM.assert_can_transition(CloseRequest.STATUS_PENDING, status)
        result = self.session.execute(
            update(CloseRequest)
            .where(CloseRequest.id == close_request_id, CloseRequest.request_status == CloseRequest.STATUS_PENDING)
            .values(request_status=status, reviewer_id=reviewer_id, review_notes=review_notes, reviewed_at=reviewed_at)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise AlreadyFinalizedError(f'Close request {close_request_id} already reviewed')
