from datetime import datetime, timedelta, timezone
import pytest
from helpdesk import get_db
from helpdesk.errors import NotFoundError, InvalidStateError, ValidationError, IneligibleError
from helpdesk.models.base import as_utc
from helpdesk.models.ticket import Ticket
from helpdesk.models.close_request import CloseRequest
from helpdesk.models.reopen_event import ReopenEvent
from helpdesk.models.sla_reset_request import SlaResetRequest
from helpdesk.models.notification import Notification
from helpdesk.services.workflow import WorkflowOrchestrator
from helpdesk.services.notifications import Notifier, EVENT_CLOSE_APPROVED, EVENT_CLOSE_REJECTED, EVENT_TICKET_REOPENED, EVENT_SERVICE_REPORT_REOPENED
from helpdesk.services.sla import SlaGateway
from helpdesk.services.close_requests import CloseRequestLedger
from helpdesk.services.reopens import ReopenLedger
from tests.test_utils_seed import (
    ENGINEER_ID, COORDINATOR_ID, MANAGER_ID, ensure_ticket, ensure_closed_ticket, ensure_reopen_config, reload_ticket,
)

START = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
REASON = 'Issue recurred after one week'


class FakeClock:
    def __init__(self, start=START):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kw):
        self.now += timedelta(**kw)


class RecordingNotifier(Notifier):
    def __init__(self):
        self.sent = []

    def notify(self, user_id, event, payload):
        self.sent.append((user_id, event, payload))


class FailingNotifier(Notifier):
    def notify(self, user_id, event, payload):
        raise RuntimeError('mail relay down')


class RecordingSla(SlaGateway):
    def __init__(self):
        self.calls = []

    def apply_reset_mode(self, ticket_id, mode, actor_id=None):
        self.calls.append((ticket_id, mode, actor_id))


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def wf(clock, notifier):
    return WorkflowOrchestrator(get_db(), clock=clock, notifier=notifier)


def test_end_to_end_close_approve_reopen(wf, clock, notifier):
    t = ensure_ticket()
    cr = wf.request_close(t.id, ENGINEER_ID, 'Replaced cable, tested, works')
    assert cr.request_status == CloseRequest.STATUS_PENDING
    assert reload_ticket(t.id).status == Ticket.STATUS_PENDING_CLOSURE
    pending = CloseRequestLedger(get_db()).list_by_ticket(t.id)
    assert [r.request_status for r in pending] == ['pending']

    outcome = wf.review_close_request(cr.id, COORDINATOR_ID, 'approved')
    assert outcome.ticket.status == Ticket.STATUS_CLOSED
    assert as_utc(outcome.ticket.closed_at) == START
    assert outcome.close_request.request_status == CloseRequest.STATUS_APPROVED
    assert outcome.close_request.reviewer_id == COORDINATOR_ID
    assert outcome.partial_failures == []
    assert notifier.sent[-1][:2] == (ENGINEER_ID, EVENT_CLOSE_APPROVED)

    clock.advance(days=2)
    result = wf.reopen_ticket(t.id, COORDINATOR_ID, REASON)
    assert result.ticket.status == Ticket.STATUS_IN_PROGRESS
    assert result.ticket.reopen_count == 1
    assert result.ticket.closed_at is None
    events = ReopenLedger(get_db()).list_by_ticket(t.id)
    assert [(e.reopen_number, e.reopen_reason) for e in events] == [(1, REASON)]
    reopened_to = sorted(uid for uid, event, _ in notifier.sent if event == EVENT_TICKET_REOPENED)
    assert reopened_to == sorted([ENGINEER_ID, MANAGER_ID])


def test_approved_requests_count_exactly_one(wf):
    t = ensure_ticket()
    cr = wf.request_close(t.id, ENGINEER_ID, 'Done and verified')
    wf.review_close_request(cr.id, COORDINATOR_ID, 'approved')
    rows = CloseRequestLedger(get_db()).list_by_ticket(t.id)
    assert [r.request_status for r in rows] == ['approved']


def test_request_close_preconditions(wf):
    with pytest.raises(NotFoundError):
        wf.request_close(9999, ENGINEER_ID, 'notes')
    open_ticket = ensure_ticket(status=Ticket.STATUS_OPEN)
    with pytest.raises(InvalidStateError):
        wf.request_close(open_ticket.id, ENGINEER_ID, 'notes')
    t = ensure_ticket()
    with pytest.raises(ValidationError):
        wf.request_close(t.id, ENGINEER_ID, '   ')
    assert reload_ticket(t.id).status == Ticket.STATUS_IN_PROGRESS


def test_second_request_close_is_invalid_state(wf):
    t = ensure_ticket()
    wf.request_close(t.id, ENGINEER_ID, 'first attempt')
    with pytest.raises(InvalidStateError):
        wf.request_close(t.id, ENGINEER_ID, 'second attempt')
    assert len(CloseRequestLedger(get_db()).list_by_ticket(t.id)) == 1


def test_repair_ticket_requires_service_report(wf):
    t = ensure_ticket(service_type=Ticket.SERVICE_REPAIR)
    with pytest.raises(ValidationError) as exc:
        wf.request_close(t.id, ENGINEER_ID, 'Board replaced')
    assert exc.value.field == 'service_report_id'
    cr = wf.request_close(t.id, ENGINEER_ID, 'Board replaced', service_report_id=77)
    assert cr.service_report_id == 77


def test_reject_requires_notes_and_returns_ticket(wf, notifier):
    t = ensure_ticket()
    cr = wf.request_close(t.id, ENGINEER_ID, 'Looks fixed')
    with pytest.raises(ValidationError):
        wf.review_close_request(cr.id, COORDINATOR_ID, 'rejected', '')
    assert reload_ticket(t.id).status == Ticket.STATUS_PENDING_CLOSURE
    outcome = wf.review_close_request(cr.id, COORDINATOR_ID, 'rejected', 'User still cannot print')
    assert outcome.ticket.status == Ticket.STATUS_IN_PROGRESS
    assert outcome.ticket.closed_at is None
    assert outcome.close_request.review_notes == 'User still cannot print'
    assert notifier.sent[-1][:2] == (ENGINEER_ID, EVENT_CLOSE_REJECTED)
    # engineer can ask again after a rejection
    again = wf.request_close(t.id, ENGINEER_ID, 'Replaced driver too')
    assert again.id != cr.id


def test_review_rejects_unknown_action_and_finalized_request(wf):
    t = ensure_ticket()
    cr = wf.request_close(t.id, ENGINEER_ID, 'Fixed')
    with pytest.raises(ValidationError):
        wf.review_close_request(cr.id, COORDINATOR_ID, 'maybe')
    wf.review_close_request(cr.id, COORDINATOR_ID, 'approved')
    with pytest.raises(InvalidStateError):
        wf.review_close_request(cr.id, COORDINATOR_ID, 'rejected', 'too late')
    with pytest.raises(NotFoundError):
        wf.review_close_request(4242, COORDINATOR_ID, 'approved')


def test_repairs_rejected_with_rejection(wf):
    from helpdesk.services.payloads import RepairEntryInput
    t = ensure_ticket()
    cr = wf.request_close(t.id, ENGINEER_ID, 'Fixed')
    with pytest.raises(ValidationError):
        wf.review_close_request(cr.id, COORDINATOR_ID, 'rejected', 'no', repairs=[RepairEntryInput(asset_id=5, fault_description='Fuser')])


def test_can_reopen_not_closed(wf):
    for status in (Ticket.STATUS_IN_PROGRESS, Ticket.STATUS_CANCELLED, Ticket.STATUS_PENDING_CLOSURE):
        t = ensure_ticket(status=status)
        e = wf.can_reopen(t.id)
        assert e.can_reopen is False
        assert e.reason == 'not closed'
        assert e.days_remaining == 0


def test_can_reopen_window_expired(wf, clock):
    ensure_reopen_config(reopen_window_days=7)
    t = ensure_closed_ticket(days_ago=8, now=clock.now)
    e = wf.can_reopen(t.id)
    assert e.can_reopen is False
    assert e.reason == 'window expired'
    assert e.days_remaining == 0
    with pytest.raises(IneligibleError) as exc:
        wf.reopen_ticket(t.id, COORDINATOR_ID, REASON)
    assert exc.value.reason == 'window expired'


def test_can_reopen_days_remaining_floor(wf, clock):
    t = ensure_closed_ticket(days_ago=2.5, now=clock.now)
    e = wf.can_reopen(t.id)
    assert e.can_reopen is True
    assert e.reason is None
    assert e.days_remaining == 5
    assert e.remaining_reopens == 3


def test_max_reopens_reached(wf, clock):
    ensure_reopen_config(max_reopen_count=3)
    t = ensure_closed_ticket(days_ago=1, now=clock.now, reopen_count=3)
    e = wf.can_reopen(t.id)
    assert (e.can_reopen, e.reason, e.remaining_reopens) == (False, 'max reopens reached', 0)
    with pytest.raises(IneligibleError) as exc:
        wf.reopen_ticket(t.id, COORDINATOR_ID, REASON)
    assert exc.value.reason == 'max reopens reached'
    assert reload_ticket(t.id).status == Ticket.STATUS_CLOSED


def test_max_reopens_reached_and_window_expired(wf, clock):
    t = ensure_closed_ticket(days_ago=30, now=clock.now, reopen_count=3)
    e = wf.can_reopen(t.id)
    assert e.can_reopen is False
    assert e.remaining_reopens == 0
    # window is checked first
    assert e.reason == 'window expired'
    with pytest.raises(IneligibleError):
        wf.reopen_ticket(t.id, COORDINATOR_ID, REASON)
    stored = reload_ticket(t.id)
    assert (stored.status, stored.reopen_count) == (Ticket.STATUS_CLOSED, 3)


def test_per_ticket_override_wins(wf, clock):
    t = ensure_closed_ticket(days_ago=1, now=clock.now, reopen_count=1, max_reopen_count_override=1)
    e = wf.can_reopen(t.id)
    assert e.max_reopen_count == 1
    assert e.reason == 'max reopens reached'


def test_reopen_reason_rules(wf, clock):
    t = ensure_closed_ticket(days_ago=1, now=clock.now)
    with pytest.raises(ValidationError):
        wf.reopen_ticket(t.id, COORDINATOR_ID, 'too short')
    with pytest.raises(ValidationError):
        wf.reopen_ticket(t.id, COORDINATOR_ID, None)
    with pytest.raises(ValidationError):
        wf.reopen_ticket(t.id, COORDINATOR_ID, 'x' * 1001)
    ensure_reopen_config(require_reopen_reason=False)
    with pytest.raises(ValidationError):
        wf.reopen_ticket(t.id, COORDINATOR_ID, 'short')
    result = wf.reopen_ticket(t.id, COORDINATOR_ID, '')
    assert result.reopen_event.reopen_reason == ''


def test_sla_mode_passed_through(clock, notifier):
    sla = RecordingSla()
    wf = WorkflowOrchestrator(get_db(), clock=clock, notifier=notifier, sla=sla)
    ensure_reopen_config(sla_reset_mode='reset')
    t = ensure_closed_ticket(days_ago=1, now=clock.now)
    result = wf.reopen_ticket(t.id, COORDINATOR_ID, REASON)
    assert sla.calls == [(t.id, 'reset', COORDINATOR_ID)]
    assert result.reopen_event.sla_reset_mode == 'reset'


def test_default_sla_gateway_records_reset_requests(wf, clock):
    t = ensure_closed_ticket(days_ago=1, now=clock.now)
    wf.reopen_ticket(t.id, COORDINATOR_ID, REASON)
    assert get_db().query(SlaResetRequest).count() == 0  # continue
    ensure_reopen_config(sla_reset_mode='new_sla')
    t2 = ensure_closed_ticket(days_ago=1, now=clock.now)
    wf.reopen_ticket(t2.id, COORDINATOR_ID, REASON)
    rows = get_db().query(SlaResetRequest).all()
    assert [(r.ticket_id, r.mode) for r in rows] == [(t2.id, 'new_sla')]


def test_notification_failure_does_not_roll_back(clock):
    wf = WorkflowOrchestrator(get_db(), clock=clock, notifier=FailingNotifier())
    t = ensure_ticket()
    cr = wf.request_close(t.id, ENGINEER_ID, 'Fixed for good')
    outcome = wf.review_close_request(cr.id, COORDINATOR_ID, 'approved')
    assert outcome.ticket.status == Ticket.STATUS_CLOSED
    assert reload_ticket(t.id).status == Ticket.STATUS_CLOSED
    clock.advance(days=1)
    wf.reopen_ticket(t.id, COORDINATOR_ID, REASON)
    assert reload_ticket(t.id).status == Ticket.STATUS_IN_PROGRESS


def test_default_notifier_writes_outbox(clock):
    wf = WorkflowOrchestrator(get_db(), clock=clock)
    t = ensure_ticket()
    cr = wf.request_close(t.id, ENGINEER_ID, 'Fixed for good')
    wf.review_close_request(cr.id, COORDINATOR_ID, 'approved')
    rows = get_db().query(Notification).filter_by(user_id=ENGINEER_ID).all()
    assert [n.event for n in rows] == [EVENT_CLOSE_APPROVED]
    assert rows[0].payload['close_request_id'] == cr.id


def test_notify_flags_respected(wf, clock, notifier):
    ensure_reopen_config(notify_manager=False)
    t = ensure_closed_ticket(days_ago=1, now=clock.now)
    wf.reopen_ticket(t.id, COORDINATOR_ID, REASON)
    assert [(uid, ev) for uid, ev, _ in notifier.sent] == [(ENGINEER_ID, EVENT_TICKET_REOPENED)]


def test_repair_ticket_reopen_flags_service_report(wf, clock, notifier):
    t = ensure_ticket(service_type=Ticket.SERVICE_REPAIR)
    cr = wf.request_close(t.id, ENGINEER_ID, 'Replaced power supply', service_report_id=77)
    wf.review_close_request(cr.id, COORDINATOR_ID, 'approved')
    clock.advance(days=3)
    result = wf.reopen_ticket(t.id, COORDINATOR_ID, REASON)
    assert result.service_report_id == 77
    report_events = [p for uid, ev, p in notifier.sent if ev == EVENT_SERVICE_REPORT_REOPENED]
    assert report_events and report_events[0]['service_report_id'] == 77


def test_second_reopen_numbers_sequentially(wf, clock):
    t = ensure_ticket()
    for expected in (1, 2):
        cr = wf.request_close(t.id, ENGINEER_ID, 'Fixed again')
        wf.review_close_request(cr.id, COORDINATOR_ID, 'approved')
        clock.advance(hours=6)
        result = wf.reopen_ticket(t.id, COORDINATOR_ID, REASON)
        assert result.reopen_event.reopen_number == expected
    numbers = [e.reopen_number for e in ReopenLedger(get_db()).list_by_ticket(t.id)]
    assert numbers == [1, 2]
    assert reload_ticket(t.id).reopen_count == 2


def test_reopen_events_are_append_only(wf, clock):
    from helpdesk.errors import AlreadyFinalizedError
    t = ensure_closed_ticket(days_ago=1, now=clock.now)
    ev = wf.reopen_ticket(t.id, COORDINATOR_ID, REASON).reopen_event
    session = get_db()
    row = session.get(ReopenEvent, ev.id)
    row.reopen_reason = 'rewritten history'
    with pytest.raises(AlreadyFinalizedError):
        session.commit()
    session.rollback()
    assert session.get(ReopenEvent, ev.id, populate_existing=True).reopen_reason == REASON


def test_reopen_ledger_lookup(wf, clock):
    t = ensure_closed_ticket(days_ago=1, now=clock.now)
    ev = wf.reopen_ticket(t.id, COORDINATOR_ID, REASON).reopen_event
    ledger = ReopenLedger(get_db())
    assert ledger.get(ev.id).ticket_id == t.id
    with pytest.raises(NotFoundError):
        ledger.get(ev.id + 100)
