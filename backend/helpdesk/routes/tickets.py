from __future__ import annotations
from flask import Blueprint, request
from helpdesk.decorators.auth import require_permissions
from helpdesk.decorators.audit import audit_log
from helpdesk.utils.listing import list_response, single_response
from helpdesk.utils.filters import apply_filters
from helpdesk.utils.serializers import ticket_json, reopen_event_json
from helpdesk.services.payloads import ReopenInput
from helpdesk.services.policy import current_user_id
from helpdesk.services.ticket_store import TicketStore
from helpdesk.services.reopens import ReopenLedger
from helpdesk.models.ticket import Ticket
from helpdesk import get_db, get_workflow

tickets_bp = Blueprint('tickets', __name__)

FILTERS = {
    'status': {'op': lambda q, v: q.filter(Ticket.status == v), 'validate': lambda v: v in Ticket.ALL_STATUSES},
    'service_type': {'op': lambda q, v: q.filter(Ticket.service_type == v), 'validate': lambda v: v in Ticket.ALL_SERVICE_TYPES},
    'assigned_engineer_id': {'op': lambda q, v: q.filter(Ticket.assigned_engineer_id == v), 'coerce': int},
}

SORTABLE = {
    'ticket_number': Ticket.ticket_number,
    'status': Ticket.status,
    'reopen_count': Ticket.reopen_count,
    'closed_at': Ticket.closed_at,
    'updated_at': Ticket.updated_at,
    'id': Ticket.id,
}


@tickets_bp.route('', methods=['GET', 'HEAD'])
@require_permissions('TKT.READ')
def list_tickets():
    q = apply_filters(get_db().query(Ticket), FILTERS, request.args)
    return list_response(q, ticket_json, sortable=SORTABLE, tie_breaker=Ticket.id, timestamp=lambda t: t.updated_at)


@tickets_bp.route('/<int:ticket_id>', methods=['GET', 'HEAD'])
@require_permissions('TKT.READ')
def get_ticket(ticket_id: int):
    t = TicketStore(get_db()).get_ticket(ticket_id)
    return single_response(ticket_json(t), t.updated_at)


@tickets_bp.get('/<int:ticket_id>/reopen-eligibility')
@require_permissions('TKT.READ')
def reopen_eligibility(ticket_id: int):
    return get_workflow().can_reopen(ticket_id).to_dict()


@tickets_bp.post('/<int:ticket_id>/reopen')
@require_permissions('TKT.REOPEN')
@audit_log('TKT.REOPEN', entity='Ticket', entity_id_key='id', diff_keys=['status', 'reopen_count', 'closed_at'],
           pre_fetch=lambda a, kw: _prefetch_ticket(kw.get('ticket_id')), meta_keys=['reopen_number', 'sla_reset_mode'])
def reopen_ticket(ticket_id: int):
    data = ReopenInput.from_json(request.get_json(silent=True))
    outcome = get_workflow().reopen_ticket(ticket_id, current_user_id(), data.reopen_reason)
    body = ticket_json(outcome.ticket)
    body['reopen_number'] = outcome.reopen_event.reopen_number
    body['sla_reset_mode'] = outcome.reopen_event.sla_reset_mode
    body['reopen'] = reopen_event_json(outcome.reopen_event)
    body['service_report_id'] = outcome.service_report_id
    return body


@tickets_bp.get('/<int:ticket_id>/reopen-history')
@require_permissions('TKT.READ')
def reopen_history(ticket_id: int):
    session = get_db()
    TicketStore(session).get_ticket(ticket_id)
    events = ReopenLedger(session).list_by_ticket(ticket_id)
    return {'data': [reopen_event_json(ev) for ev in events]}


def _prefetch_ticket(ticket_id: int):
    t = get_db().get(Ticket, ticket_id, populate_existing=True)
    if not t:
        return {}
    return ticket_json(t)
