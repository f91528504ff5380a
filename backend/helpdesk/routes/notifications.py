from __future__ import annotations
from flask import Blueprint, request
from helpdesk.decorators.auth import require_permissions
from helpdesk.utils.listing import page, build_list_payload
from helpdesk.utils.serializers import notification_json
from helpdesk.services.notifications import user_notifications_query, mark_read
from helpdesk.services.policy import current_user_id
from helpdesk.models.notification import Notification
from helpdesk import get_db

notif_bp = Blueprint('notifications', __name__)


@notif_bp.get('')
@require_permissions()
def list_notifications():
    unread_only = request.args.get('unread') in ('1', 'true')
    q = user_notifications_query(get_db(), current_user_id(), unread_only)
    q = q.order_by(Notification.created_at.desc(), Notification.id.desc())
    rows, total, limit, offset = page(q)
    return build_list_payload([notification_json(n) for n in rows], total, limit, offset)


@notif_bp.post('/<int:notification_id>/read')
@require_permissions()
def read_notification(notification_id: int):
    session = get_db()
    try:
        n = mark_read(session, current_user_id(), notification_id)
        session.commit()
    except Exception:
        session.rollback()
        raise
    return notification_json(n)
