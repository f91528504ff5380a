"""Test seeding utilities to reduce duplication.

Tickets are owned by the external ticket service, so tests insert them
directly in whatever state a scenario needs.
"""
from datetime import datetime, timedelta, timezone
from itertools import count
from typing import Optional
from helpdesk import get_db
from helpdesk.models.ticket import Ticket
from helpdesk.models.close_request import CloseRequest
from helpdesk.services.reopen_config import ReopenConfigStore

ENGINEER_ID = 11
COORDINATOR_ID = 21
MANAGER_ID = 31
REQUESTER_ID = 41
ADMIN_ID = 51

_numbers = count(1)


def ensure_ticket(
    status: str = Ticket.STATUS_IN_PROGRESS,
    service_type: str = Ticket.SERVICE_GENERAL,
    engineer_id: Optional[int] = ENGINEER_ID,
    manager_id: Optional[int] = MANAGER_ID,
    reopen_count: int = 0,
    closed_at: Optional[datetime] = None,
    max_reopen_count_override: Optional[int] = None,
    title: str = 'Printer offline',
) -> Ticket:
    session = get_db()
    t = Ticket(
        ticket_number=f'TKT-{next(_numbers):05d}',
        title=title,
        status=status,
        service_type=service_type,
        assigned_engineer_id=engineer_id,
        manager_id=manager_id,
        reopen_count=reopen_count,
        closed_at=closed_at,
        max_reopen_count_override=max_reopen_count_override,
    )
    session.add(t); session.commit()
    return t


def ensure_closed_ticket(days_ago: float = 2, now: Optional[datetime] = None, **kw) -> Ticket:
    now = now or datetime.now(timezone.utc)
    return ensure_ticket(status=Ticket.STATUS_CLOSED, closed_at=now - timedelta(days=days_ago), **kw)


def ensure_pending_request(ticket: Optional[Ticket] = None, notes: str = 'Swapped the toner, test page OK',
                           service_report_id: Optional[int] = None) -> CloseRequest:
    """Pending close request plus its ticket in pending_closure, as request_close leaves them."""
    session = get_db()
    if ticket is None:
        ticket = ensure_ticket(status=Ticket.STATUS_PENDING_CLOSURE)
    cr = CloseRequest(
        ticket_id=ticket.id,
        engineer_id=ticket.assigned_engineer_id or ENGINEER_ID,
        request_notes=notes,
        service_report_id=service_report_id,
        request_status=CloseRequest.STATUS_PENDING,
        created_at=datetime.now(timezone.utc),
    )
    session.add(cr); session.commit()
    return cr


def ensure_reopen_config(**fields):
    session = get_db()
    settings = ReopenConfigStore(session).update_reopen_config(fields, actor_id=ADMIN_ID)
    session.commit()
    return settings


def reload_ticket(ticket_id: int) -> Ticket:
    return get_db().get(Ticket, ticket_id, populate_existing=True)


__all__ = [
    'ENGINEER_ID', 'COORDINATOR_ID', 'MANAGER_ID', 'REQUESTER_ID', 'ADMIN_ID',
    'ensure_ticket', 'ensure_closed_ticket', 'ensure_pending_request', 'ensure_reopen_config', 'reload_ticket',
]
