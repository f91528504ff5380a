from __future__ import annotations
from flask import Blueprint, request
from helpdesk.decorators.auth import require_permissions
from helpdesk.decorators.audit import audit_log
from helpdesk.utils.listing import list_response
from helpdesk.utils.serializers import close_request_json, ticket_json, repair_record_json
from helpdesk.utils.validation import validate_status
from helpdesk.services.payloads import CloseRequestInput, ReviewInput
from helpdesk.services.policy import current_user_id
from helpdesk.services.ticket_store import TicketStore
from helpdesk.services.close_requests import CloseRequestLedger
from helpdesk.models.close_request import CloseRequest
from helpdesk.models.ticket import Ticket
from helpdesk import get_db, get_workflow

close_bp = Blueprint('close_requests', __name__)

SORTABLE = {
    'created_at': CloseRequest.created_at,
    'reviewed_at': CloseRequest.reviewed_at,
    'ticket_id': CloseRequest.ticket_id,
    'id': CloseRequest.id,
}


@close_bp.post('/<int:ticket_id>/close-requests')
@require_permissions('TKT.CLOSE.REQUEST')
@audit_log('TKT.CLOSE.REQUEST', entity='CloseRequest', entity_id_key='id', meta_keys=['ticket_id', 'service_report_id'])
def create_close_request(ticket_id: int):
    data = CloseRequestInput.from_json(request.get_json(silent=True))
    cr = get_workflow().request_close(ticket_id, current_user_id(), data.request_notes, data.service_report_id)
    return close_request_json(cr), 201


@close_bp.get('/<int:ticket_id>/close-requests')
@require_permissions('TKT.READ')
def ticket_close_requests(ticket_id: int):
    session = get_db()
    TicketStore(session).get_ticket(ticket_id)
    rows = CloseRequestLedger(session).list_by_ticket(ticket_id)
    return {'data': [close_request_json(cr) for cr in rows]}


@close_bp.get('/close-requests')
@require_permissions('TKT.CLOSE.REVIEW')
def close_request_queue():
    """Coordinator queue; pending requests unless ``status`` says otherwise."""
    status = validate_status(request.args.get('status', CloseRequest.STATUS_PENDING), CloseRequest.ALL_STATUSES)
    q = CloseRequestLedger(get_db()).list_by_status_query(status)
    return list_response(q, close_request_json, sortable=SORTABLE, tie_breaker=CloseRequest.id,
                         timestamp=lambda cr: cr.reviewed_at or cr.created_at)


@close_bp.get('/close-requests/<int:close_request_id>')
@require_permissions('TKT.READ')
def get_close_request(close_request_id: int):
    return close_request_json(CloseRequestLedger(get_db()).get(close_request_id))


@close_bp.post('/close-requests/<int:close_request_id>/review')
@require_permissions('TKT.CLOSE.REVIEW')
@audit_log('TKT.CLOSE.REVIEW', entity='CloseRequest', entity_id_key='id', diff_keys=['request_status', 'ticket_status'],
           pre_fetch=lambda a, kw: _prefetch_request(kw.get('close_request_id')),
           meta_builder=lambda data, rv, a, kw: {'ticket_id': data.get('ticket_id'), 'repairs': len(data.get('repair_records', [])),
                                                 'partial_failures': len(data.get('partial_failures', []))})
def review_close_request(close_request_id: int):
    data = ReviewInput.from_json(request.get_json(silent=True))
    outcome = get_workflow().review_close_request(
        close_request_id, current_user_id(), data.action, data.review_notes, data.repairs,
    )
    body = close_request_json(outcome.close_request)
    body['ticket_status'] = outcome.ticket.status
    body['ticket'] = ticket_json(outcome.ticket)
    body['repair_records'] = [repair_record_json(r) for r in outcome.repair_records]
    body['partial_failures'] = outcome.partial_failures
    return body


def _prefetch_request(close_request_id: int):
    session = get_db()
    cr = session.get(CloseRequest, close_request_id, populate_existing=True)
    if not cr:
        return {}
    t = session.get(Ticket, cr.ticket_id, populate_existing=True)
    return {'request_status': cr.request_status, 'ticket_status': t.status if t else None}
