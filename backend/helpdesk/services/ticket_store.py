from __future__ import annotations
"""Ticket Store: reads tickets and performs conditional status writes.

``set_status`` is a compare-and-swap: the UPDATE only matches while the row
still holds the expected status (and, optionally, the expected reopen count).
A zero-row update means another transition won the race.
"""
from typing import Any, Optional
from sqlalchemy import select, update
from sqlalchemy.orm import Session
from helpdesk.errors import NotFoundError, InvalidStateError
from helpdesk.models.ticket import Ticket
from helpdesk.utils.validation import validate_status


class TicketStore:
    def __init__(self, session: Session):
        self.session = session

    def get_ticket(self, ticket_id: int, refresh: bool = False) -> Ticket:
        stmt = select(Ticket).where(Ticket.id == ticket_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        t = self.session.execute(stmt).scalar_one_or_none()
        if not t:
            raise NotFoundError(f'Ticket {ticket_id} not found')
        return t

    def set_status(self, ticket_id: int, status: str, *, expected: str, expected_reopen_count: Optional[int] = None, **extra: Any) -> None:
        """Move ticket ``ticket_id`` from ``expected`` to ``status``; ``extra`` holds other column values.

        Does not commit; the caller owns the transaction boundary.
        """
        validate_status(status, Ticket.ALL_STATUSES)
        stmt = update(Ticket).where(Ticket.id == ticket_id, Ticket.status == expected)
        if expected_reopen_count is not None:
            stmt = stmt.where(Ticket.reopen_count == expected_reopen_count)
        values = dict(extra, status=status)
        result = self.session.execute(
            stmt.values(**values).execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidStateError(f'Ticket {ticket_id} is no longer {expected}')
