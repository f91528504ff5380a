from __future__ import annotations
from flask import Blueprint, request, current_app
from helpdesk.decorators.auth import require_permissions
from helpdesk.decorators.audit import audit_log
from helpdesk.services.policy import current_user_id
from helpdesk.services.reopen_config import ReopenConfigStore
from helpdesk.utils.validation import coerce_int
from helpdesk import get_db

settings_bp = Blueprint('settings', __name__)

CONFIG_DIFF_KEYS = [
    'reopen_window_days', 'max_reopen_count', 'sla_reset_mode',
    'require_reopen_reason', 'notify_assignee', 'notify_manager', 'version',
]


def _store() -> ReopenConfigStore:
    return ReopenConfigStore(get_db(), current_app.config.get('REOPEN_DEFAULTS'))


@settings_bp.get('/reopen-config')
@require_permissions('TKT.READ')
def get_reopen_config():
    return _store().get_reopen_config().to_dict()


@settings_bp.put('/reopen-config')
@require_permissions('ADMIN.SETTINGS.MANAGE')
@audit_log('SETTINGS.REOPEN.UPDATE', entity='ReopenConfig', entity_id_key='version', diff_keys=CONFIG_DIFF_KEYS,
           pre_fetch=lambda a, kw: _store().get_reopen_config().to_dict())
def update_reopen_config():
    """Save a new config version; ``?expected_version=N`` rejects the write if someone saved first."""
    session = get_db()
    expected = request.args.get('expected_version')
    expected = coerce_int(expected, 'expected_version', minimum=0) if expected is not None else None
    try:
        settings = _store().update_reopen_config(request.get_json(silent=True), actor_id=current_user_id(), expected_version=expected)
        session.commit()
    except Exception:
        session.rollback()
        raise
    current_app.logger.info('reopen config saved as version %s', settings.version)
    return settings.to_dict()
