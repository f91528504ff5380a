from flask import Flask
from helpdesk import get_db
from helpdesk.models.ticket import Ticket
from helpdesk.models.notification import Notification
from helpdesk.models.sla_reset_request import SlaResetRequest
from tests.test_utils_seed import (
    ENGINEER_ID, MANAGER_ID, REQUESTER_ID, ensure_ticket, ensure_closed_ticket, ensure_reopen_config, reload_ticket,
)
from tests.test_lifecycle_helpers import (
    engineer_headers, requester_headers, coordinator_headers, assert_error, request_close, review, exercise_close_and_approve,
)

REASON = 'Issue recurred after one week'


def _reopen(client, ticket_id, reason=REASON, headers=None):
    payload = {} if reason is None else {'reopen_reason': reason}
    return client.post(f'/tickets/{ticket_id}/reopen', json=payload, headers=headers or requester_headers())


def test_eligibility_for_recently_closed_ticket(app_context: Flask):
    client = app_context.test_client()
    t = ensure_closed_ticket(days_ago=2)
    body = client.get(f'/tickets/{t.id}/reopen-eligibility', headers=engineer_headers()).get_json()
    assert body == {
        'can_reopen': True, 'reason': None, 'remaining_reopens': 3, 'days_remaining': 5,
        'reopen_count': 0, 'max_reopen_count': 3, 'reopen_window_days': 7,
    }


def test_eligibility_reasons(app_context: Flask):
    client = app_context.test_client()
    headers = engineer_headers()
    open_t = ensure_ticket()
    expired = ensure_closed_ticket(days_ago=8)
    maxed = ensure_closed_ticket(days_ago=1, reopen_count=3)
    reasons = {
        t.id: client.get(f'/tickets/{t.id}/reopen-eligibility', headers=headers).get_json()
        for t in (open_t, expired, maxed)
    }
    assert reasons[open_t.id]['reason'] == 'not closed'
    assert reasons[open_t.id]['days_remaining'] == 0
    assert reasons[expired.id]['reason'] == 'window expired'
    assert reasons[maxed.id]['reason'] == 'max reopens reached'
    assert reasons[maxed.id]['remaining_reopens'] == 0
    assert reasons[maxed.id]['days_remaining'] == 6
    assert not any(r['can_reopen'] for r in reasons.values())
    missing = client.get('/tickets/404/reopen-eligibility', headers=headers)
    assert_error(missing, 404, 'not_found')


def test_reopen_moves_ticket_back_to_in_progress(app_context: Flask):
    client = app_context.test_client()
    t = ensure_closed_ticket(days_ago=1)
    resp = _reopen(client, t.id, reason='  ' + REASON + '  ')
    assert resp.status_code == 200, resp.get_json()
    body = resp.get_json()
    assert body['status'] == Ticket.STATUS_IN_PROGRESS
    assert body['reopen_count'] == 1
    assert body['closed_at'] is None
    assert body['reopen_number'] == 1
    assert body['sla_reset_mode'] == 'continue'
    assert body['reopen']['reopened_by'] == REQUESTER_ID
    assert body['reopen']['reopen_reason'] == REASON
    assert body['service_report_id'] is None
    events = {(n.user_id, n.event) for n in get_db().query(Notification).all()}
    assert events == {(ENGINEER_ID, 'ticket.reopened'), (MANAGER_ID, 'ticket.reopened')}


def test_reopen_rejections(app_context: Flask):
    client = app_context.test_client()
    expired = ensure_closed_ticket(days_ago=10)
    err = assert_error(_reopen(client, expired.id), 409, 'ineligible')
    assert err['reason'] == 'window expired'
    open_t = ensure_ticket()
    err = assert_error(_reopen(client, open_t.id), 409, 'ineligible')
    assert err['reason'] == 'not closed'
    maxed = ensure_closed_ticket(days_ago=1, reopen_count=3)
    err = assert_error(_reopen(client, maxed.id), 409, 'ineligible')
    assert err['reason'] == 'max reopens reached'
    assert reload_ticket(maxed.id).status == Ticket.STATUS_CLOSED
    assert_error(_reopen(client, 9999), 404, 'not_found')


def test_reopen_reason_rules(app_context: Flask):
    client = app_context.test_client()
    t = ensure_closed_ticket(days_ago=1)
    err = assert_error(_reopen(client, t.id, reason=None), 400, 'validation')
    assert err['field'] == 'reopen_reason'
    err = assert_error(_reopen(client, t.id, reason='too short'), 400, 'validation')
    assert err['field'] == 'reopen_reason'
    assert_error(_reopen(client, t.id, reason='x' * 1001), 400, 'validation')
    resp = client.post(f'/tickets/{t.id}/reopen', json={'reopen_reason': REASON, 'urgent': True}, headers=requester_headers())
    assert_error(resp, 400, 'validation')
    assert reload_ticket(t.id).reopen_count == 0
    ensure_reopen_config(require_reopen_reason=False)
    resp = _reopen(client, t.id, reason=None)
    assert resp.status_code == 200, resp.get_json()
    assert resp.get_json()['reopen_count'] == 1


def test_reopen_requires_permission(app_context: Flask):
    client = app_context.test_client()
    t = ensure_closed_ticket(days_ago=1)
    assert _reopen(client, t.id, headers=engineer_headers()).status_code == 403
    assert client.post(f'/tickets/{t.id}/reopen', json={'reopen_reason': REASON}).status_code == 401
    assert reload_ticket(t.id).status == Ticket.STATUS_CLOSED


def test_reopen_applies_configured_sla_mode(app_context: Flask):
    client = app_context.test_client()
    ensure_reopen_config(sla_reset_mode='reset', notify_manager=False)
    t = ensure_closed_ticket(days_ago=1)
    body = _reopen(client, t.id).get_json()
    assert body['sla_reset_mode'] == 'reset'
    sla = get_db().query(SlaResetRequest).filter_by(ticket_id=t.id).one()
    assert sla.mode == 'reset'
    assert sla.requested_by == REQUESTER_ID
    assert [n.user_id for n in get_db().query(Notification).all()] == [ENGINEER_ID]


def test_reopen_repair_ticket_returns_service_report(app_context: Flask):
    client = app_context.test_client()
    t = ensure_ticket(service_type=Ticket.SERVICE_REPAIR)
    cr = request_close(client, t.id, notes='Board replaced', service_report_id=88)
    review(client, cr['id'], 'approved')
    body = _reopen(client, t.id).get_json()
    assert body['service_report_id'] == 88
    note = get_db().query(Notification).filter_by(event='service_report.reopened').one()
    assert note.user_id == ENGINEER_ID
    assert note.payload['service_report_id'] == 88


def test_reopen_history_accumulates(app_context: Flask):
    client = app_context.test_client()
    t = ensure_ticket()
    exercise_close_and_approve(client, t.id)
    assert _reopen(client, t.id).status_code == 200
    exercise_close_and_approve(client, t.id)
    assert _reopen(client, t.id, reason='Second failure of the same part', headers=coordinator_headers()).status_code == 200
    history = client.get(f'/tickets/{t.id}/reopen-history', headers=engineer_headers()).get_json()['data']
    assert [ev['reopen_number'] for ev in history] == [1, 2]
    assert history[1]['reopen_reason'] == 'Second failure of the same part'
    assert reload_ticket(t.id).reopen_count == 2
    elig = client.get(f'/tickets/{t.id}/reopen-eligibility', headers=engineer_headers()).get_json()
    assert elig['reason'] == 'not closed'
    assert elig['remaining_reopens'] == 1
    assert_error(client.get('/tickets/555/reopen-history', headers=engineer_headers()), 404, 'not_found')
