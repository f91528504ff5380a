from __future__ import annotations
"""Notification collaborator.

The default implementation writes to the ``notifications`` outbox table that
the notification bell/drawer reads. The orchestrator calls ``notify`` only
after its own commit, so a failure here never touches ticket state.
"""
from datetime import datetime
from typing import Any, Callable, Dict, Optional
from sqlalchemy import select
from sqlalchemy.orm import Session
from helpdesk.errors import NotFoundError
from helpdesk.models.base import utcnow
from helpdesk.models.notification import Notification

EVENT_CLOSE_APPROVED = 'close_request.approved'
EVENT_CLOSE_REJECTED = 'close_request.rejected'
EVENT_TICKET_REOPENED = 'ticket.reopened'
EVENT_SERVICE_REPORT_REOPENED = 'service_report.reopened'


class Notifier:
    def notify(self, user_id: int, event: str, payload: Dict[str, Any]) -> None:
        raise NotImplementedError


class OutboxNotifier(Notifier):
    def __init__(self, session: Session, clock: Optional[Callable[[], datetime]] = None):
        self.session = session
        self.clock = clock or utcnow

    def notify(self, user_id: int, event: str, payload: Dict[str, Any]) -> None:
        self.session.add(Notification(user_id=user_id, event=event, payload=dict(payload), created_at=self.clock()))
        self.session.commit()


def user_notifications_query(session: Session, user_id: int, unread_only: bool = False):
    q = session.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        q = q.filter(Notification.read_at.is_(None))
    return q


def mark_read(session: Session, user_id: int, notification_id: int, at: Optional[datetime] = None) -> Notification:
    n = session.execute(
        select(Notification).where(Notification.id == notification_id, Notification.user_id == user_id)
    ).scalar_one_or_none()
    if not n:
        raise NotFoundError(f'Notification {notification_id} not found')
    if n.read_at is None:
        n.read_at = at or utcnow()
    return n
