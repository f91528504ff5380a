from __future__ import annotations
from typing import Any, Dict, Optional
from flask_jwt_extended import get_jwt_identity, get_jwt
from helpdesk import get_db
from helpdesk.models.audit import AuditLog


def add_audit(action: str, entity: Optional[str] = None, entity_id: Optional[str] = None, meta: Optional[Dict[str, Any]] = None):
    """Persist an audit log entry within the current DB session.

    Parameters:
      action: short action code e.g. TKT.CLOSE.REQUEST, TKT.REOPEN, SETTINGS.REOPEN.UPDATE
      entity: optional entity name (Ticket, CloseRequest, ReopenConfig)
      entity_id: optional primary key string
      meta: additional JSON-safe dictionary (will be shallow copied)

    Must run inside a request whose JWT was already verified.
    """
    session = get_db()
    claims = get_jwt() or {}
    ident = get_jwt_identity()
    actor = int(ident) if ident is not None else 0
    log = AuditLog(
        actor_user_id=actor,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        perms_snapshot={'perms': claims.get('perms', [])},
        meta=dict(meta or {}),
    )
    session.add(log)
    # No commit here; caller's transaction boundary controls durability.
    return log
