from __future__ import annotations
"""Ticket closure & reopen workflow orchestrator.

Transitions handled here:

    in_progress --request_close--> pending_closure
    pending_closure --review(approved)--> closed
    pending_closure --review(rejected)--> in_progress
    closed --reopen--> in_progress

Every transition re-checks its preconditions and then writes with a
conditional UPDATE (see TicketStore.set_status), so two callers racing on one
ticket cannot both succeed. Side effects that must not undo a transition
(repair records, notifications) run after the commit.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from helpdesk.config.reopen import MIN_REASON_LENGTH
from helpdesk.errors import InvalidStateError, ValidationError, IneligibleError
from helpdesk.models.base import utcnow, as_utc
from helpdesk.models.ticket import Ticket
from helpdesk.models.close_request import CloseRequest
from helpdesk.models.reopen_event import ReopenEvent, MAX_REASON_LENGTH
from helpdesk.models.repair_record import RepairRecord
from helpdesk.services.ticket_store import TicketStore
from helpdesk.services.close_requests import CloseRequestLedger
from helpdesk.services.reopens import ReopenLedger
from helpdesk.services.reopen_config import ReopenConfigStore, ReopenSettings
from helpdesk.services.repair_linker import RepairRecordLinker, RepairHistory, LinkResult
from helpdesk.services.sla import SlaGateway, OutboxSlaGateway
from helpdesk.services import notifications as notify_events
from helpdesk.services.notifications import Notifier, OutboxNotifier
from helpdesk.utils.fsm import TransitionValidator
from helpdesk.utils.validation import require_text, validate_status

logger = logging.getLogger(__name__)

TICKET_FSM = TransitionValidator({
    Ticket.STATUS_OPEN: {Ticket.STATUS_ASSIGNED, Ticket.STATUS_IN_PROGRESS, Ticket.STATUS_CANCELLED},
    Ticket.STATUS_ASSIGNED: {Ticket.STATUS_IN_PROGRESS, Ticket.STATUS_CANCELLED},
    Ticket.STATUS_IN_PROGRESS: {Ticket.STATUS_PENDING_CLOSURE, Ticket.STATUS_RESOLVED, Ticket.STATUS_CANCELLED},
    Ticket.STATUS_PENDING_CLOSURE: {Ticket.STATUS_CLOSED, Ticket.STATUS_IN_PROGRESS},
    Ticket.STATUS_RESOLVED: {Ticket.STATUS_CLOSED, Ticket.STATUS_IN_PROGRESS},
    Ticket.STATUS_CLOSED: {Ticket.STATUS_IN_PROGRESS},
    Ticket.STATUS_CANCELLED: set(),
})

REASON_NOT_CLOSED = 'not closed'
REASON_WINDOW_EXPIRED = 'window expired'
REASON_MAX_REOPENS = 'max reopens reached'


@dataclass(frozen=True)
class ReopenEligibility:
    can_reopen: bool
    reason: Optional[str]
    remaining_reopens: int
    days_remaining: int
    reopen_count: int
    max_reopen_count: int
    reopen_window_days: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'can_reopen': self.can_reopen,
            'reason': self.reason,
            'remaining_reopens': self.remaining_reopens,
            'days_remaining': self.days_remaining,
            'reopen_count': self.reopen_count,
            'max_reopen_count': self.max_reopen_count,
            'reopen_window_days': self.reopen_window_days,
        }


@dataclass
class ReviewOutcome:
    close_request: CloseRequest
    ticket: Ticket
    repair_records: List[RepairRecord] = field(default_factory=list)
    partial_failures: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class ReopenOutcome:
    reopen_event: ReopenEvent
    ticket: Ticket
    service_report_id: Optional[int] = None


def evaluate_reopen_eligibility(ticket: Ticket, settings: ReopenSettings, now: datetime) -> ReopenEligibility:
    """Pure eligibility rule; shared by the read-only query and the reopen re-check."""
    if ticket.max_reopen_count_override is not None:
        max_count = ticket.max_reopen_count_override
    else:
        max_count = settings.max_reopen_count
    window = settings.reopen_window_days

    def result(ok: bool, reason: Optional[str], days_remaining: int) -> ReopenEligibility:
        return ReopenEligibility(
            can_reopen=ok,
            reason=reason,
            remaining_reopens=max(0, max_count - ticket.reopen_count),
            days_remaining=days_remaining,
            reopen_count=ticket.reopen_count,
            max_reopen_count=max_count,
            reopen_window_days=window,
        )

    if ticket.status != Ticket.STATUS_CLOSED:
        return result(False, REASON_NOT_CLOSED, 0)
    closed_at = as_utc(ticket.closed_at)
    if closed_at is None:
        return result(False, REASON_WINDOW_EXPIRED, 0)
    elapsed = now - closed_at
    if elapsed > timedelta(days=window):
        return result(False, REASON_WINDOW_EXPIRED, 0)
    elapsed_days = max(0, elapsed // timedelta(days=1))
    days_remaining = max(0, window - elapsed_days)
    if ticket.reopen_count >= max_count:
        return result(False, REASON_MAX_REOPENS, days_remaining)
    return result(True, None, days_remaining)


class WorkflowOrchestrator:
    def __init__(
        self,
        session: Session,
        *,
        sla: Optional[SlaGateway] = None,
        notifier: Optional[Notifier] = None,
        repair_history: Optional[RepairHistory] = None,
        config_store: Optional[ReopenConfigStore] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.session = session
        self.clock = clock or utcnow
        self.tickets = TicketStore(session)
        self.close_requests = CloseRequestLedger(session)
        self.reopens = ReopenLedger(session)
        self.config = config_store or ReopenConfigStore(session)
        self.sla = sla or OutboxSlaGateway(session, self.clock)
        self.notifier = notifier or OutboxNotifier(session, self.clock)
        self.repairs = RepairRecordLinker(session, repair_history, self.clock)

    # ---------- close request ---------- #

    def request_close(self, ticket_id: int, engineer_id: int, request_notes: str, service_report_id: Optional[int] = None) -> CloseRequest:
        ticket = self.tickets.get_ticket(ticket_id, refresh=True)
        notes = require_text(request_notes, 'request_notes')
        TICKET_FSM.assert_can_transition(ticket.status, Ticket.STATUS_PENDING_CLOSURE)
        if ticket.requires_service_report and service_report_id is None:
            raise ValidationError(f'{ticket.service_type} tickets require a service report', field='service_report_id')
        try:
            self.tickets.set_status(ticket_id, Ticket.STATUS_PENDING_CLOSURE, expected=Ticket.STATUS_IN_PROGRESS)
            cr = self.close_requests.insert(ticket_id, engineer_id, notes, self.clock(), service_report_id)
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise InvalidStateError(f'Ticket {ticket_id} already has a pending close request')
        except Exception:
            self.session.rollback()
            raise
        logger.info('ticket %s: close requested by engineer %s (request %s)', ticket_id, engineer_id, cr.id)
        return cr

    def review_close_request(
        self,
        close_request_id: int,
        reviewer_id: int,
        action: str,
        review_notes: Optional[str] = None,
        repairs: Iterable[Any] = (),
    ) -> ReviewOutcome:
        validate_status(action, CloseRequest.REVIEW_ACTIONS, 'action')
        notes = review_notes.strip() if isinstance(review_notes, str) else None
        repairs = list(repairs or ())
        approved = action == CloseRequest.STATUS_APPROVED
        if not approved and not notes:
            raise ValidationError('review_notes required when rejecting', field='review_notes')
        if not approved and repairs:
            raise ValidationError('repairs can only be recorded on approval', field='repairs')

        cr = self.close_requests.get(close_request_id, refresh=True)
        if not cr.is_pending:
            raise InvalidStateError(f'Close request {close_request_id} is {cr.request_status}, expected pending')
        ticket = self.tickets.get_ticket(cr.ticket_id, refresh=True)
        target = Ticket.STATUS_CLOSED if approved else Ticket.STATUS_IN_PROGRESS
        TICKET_FSM.assert_can_transition(ticket.status, target)
        if ticket.status != Ticket.STATUS_PENDING_CLOSURE:
            raise InvalidStateError(f'Ticket {ticket.id} is {ticket.status}, expected {Ticket.STATUS_PENDING_CLOSURE}')

        now = self.clock()
        extra = {'closed_at': now} if approved else {}
        try:
            self.close_requests.finalize(cr.id, action, reviewer_id, notes or None, now)
            self.tickets.set_status(ticket.id, target, expected=Ticket.STATUS_PENDING_CLOSURE, **extra)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        logger.info('ticket %s: close request %s %s by %s', ticket.id, cr.id, action, reviewer_id)

        link = LinkResult()
        if approved and repairs:
            link = self.repairs.create_batch(ticket.id, cr.id, repairs, reviewer_id)
            if link.failures:
                logger.warning('ticket %s: %d of %d repair record(s) failed', ticket.id, len(link.failures), len(repairs))

        cr = self.close_requests.get(cr.id, refresh=True)
        ticket = self.tickets.get_ticket(ticket.id, refresh=True)
        event = notify_events.EVENT_CLOSE_APPROVED if approved else notify_events.EVENT_CLOSE_REJECTED
        self._emit(cr.engineer_id, event, {
            'ticket_id': ticket.id,
            'ticket_number': ticket.ticket_number,
            'close_request_id': cr.id,
            'review_notes': cr.review_notes,
        })
        return ReviewOutcome(cr, ticket, link.created, link.failures)

    # ---------- reopen ---------- #

    def can_reopen(self, ticket_id: int) -> ReopenEligibility:
        ticket = self.tickets.get_ticket(ticket_id, refresh=True)
        return evaluate_reopen_eligibility(ticket, self.config.get_reopen_config(), self.clock())

    def reopen_ticket(self, ticket_id: int, actor_id: int, reopen_reason: Optional[str]) -> ReopenOutcome:
        settings = self.config.get_reopen_config()
        reason = reopen_reason.strip() if isinstance(reopen_reason, str) else ''
        if settings.require_reopen_reason or reason:
            reason = require_text(reason, 'reopen_reason', min_length=MIN_REASON_LENGTH, max_length=MAX_REASON_LENGTH)

        ticket = self.tickets.get_ticket(ticket_id, refresh=True)
        now = self.clock()
        eligibility = evaluate_reopen_eligibility(ticket, settings, now)
        if not eligibility.can_reopen:
            raise IneligibleError(eligibility.reason)
        TICKET_FSM.assert_can_transition(ticket.status, Ticket.STATUS_IN_PROGRESS)

        count = ticket.reopen_count
        try:
            self.tickets.set_status(
                ticket_id, Ticket.STATUS_IN_PROGRESS,
                expected=Ticket.STATUS_CLOSED, expected_reopen_count=count,
                reopen_count=count + 1, closed_at=None,
            )
            ev = self.reopens.append(ticket_id, count + 1, actor_id, reason, settings.sla_reset_mode, now)
            self.sla.apply_reset_mode(ticket_id, settings.sla_reset_mode, actor_id)
            self.session.commit()
        except (InvalidStateError, IntegrityError):
            self.session.rollback()
            # lost a race; report the eligibility rule that now blocks, if any
            current = evaluate_reopen_eligibility(self.tickets.get_ticket(ticket_id, refresh=True), settings, self.clock())
            if not current.can_reopen:
                raise IneligibleError(current.reason)
            raise InvalidStateError(f'Ticket {ticket_id} changed while reopening; retry')
        except Exception:
            self.session.rollback()
            raise
        logger.info('ticket %s: reopened (#%s) by %s, sla mode %s', ticket_id, ev.reopen_number, actor_id, settings.sla_reset_mode)

        ticket = self.tickets.get_ticket(ticket_id, refresh=True)
        payload = {
            'ticket_id': ticket.id,
            'ticket_number': ticket.ticket_number,
            'reopen_number': ev.reopen_number,
            'reopen_reason': ev.reopen_reason,
        }
        if settings.notify_assignee:
            self._emit(ticket.assigned_engineer_id, notify_events.EVENT_TICKET_REOPENED, payload)
        if settings.notify_manager:
            self._emit(ticket.manager_id, notify_events.EVENT_TICKET_REOPENED, payload)
        service_report_id = None
        if ticket.service_type == Ticket.SERVICE_REPAIR:
            # the repair domain moves this report back to draft for the engineer
            approved = self.close_requests.latest_approved(ticket.id)
            service_report_id = approved.service_report_id if approved else None
            if service_report_id is not None:
                self._emit(ticket.assigned_engineer_id, notify_events.EVENT_SERVICE_REPORT_REOPENED,
                           dict(payload, service_report_id=service_report_id))
        return ReopenOutcome(ev, ticket, service_report_id)

    # ---------- side effects ---------- #

    def _emit(self, user_id: Optional[int], event: str, payload: Dict[str, Any]) -> None:
        """Best-effort notification; failures are logged and never undo the transition."""
        if user_id is None:
            return
        try:
            self.notifier.notify(user_id, event, payload)
        except Exception:
            self.session.rollback()
            logger.exception('notification %s to user %s failed', event, user_id)
