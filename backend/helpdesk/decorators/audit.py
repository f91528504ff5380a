from __future__ import annotations
"""Audit logging decorator to reduce repetitive add_audit() calls in route handlers.

Usage examples:

@audit_log('TKT.CLOSE.REQUEST', entity='CloseRequest', entity_id_key='id', meta_keys=['ticket_id'])
def create_close_request(ticket_id): ...

@audit_log('TKT.REOPEN', entity='Ticket', entity_id_key='id', diff_keys=['status', 'reopen_count'],
           pre_fetch=lambda a, kw: _prefetch_ticket(kw.get('ticket_id')))
def reopen(ticket_id): ...

Parameters:
  action: required audit action code (e.g. TKT.REOPEN)
  entity: optional entity label (Ticket, CloseRequest, ReopenConfig)
  entity_id_key: key in the returned JSON object whose value becomes entity_id.
  entity_id_arg: name of the path parameter to use for entity_id (fallback if entity_id_key absent).
  meta_keys: list of keys to project from returned JSON into meta dict (shallow copy).
  meta_builder: callable returning a meta dict; receives (data, original_return_value, args, kwargs). If provided it overrides meta_keys.
  diff_keys / pre_fetch: pre_fetch(args, kwargs) snapshots the entity before the view runs; keys in
    diff_keys whose value changed are stored under meta['changes'] as {'before', 'after'}.

Return handling:
  Flask view functions commonly return one of:
    dict
    (dict, status)
    (dict, status, headers)
  The decorator extracts the first element as the JSON payload for key/meta extraction while preserving the original return value.
  Views that raise are not audited; the transition did not happen.
"""
import logging
from functools import wraps
from typing import Any, Callable, Iterable, Optional, Dict

from helpdesk.services.audit import add_audit
from helpdesk import get_db

logger = logging.getLogger(__name__)


def _extract_payload(rv: Any):
    """Return (data, original_rv) where data is the JSON-able dict for inspection."""
    if isinstance(rv, tuple) and rv:
        data = rv[0]
        return data, rv
    return rv, rv


def _diff(before: Dict[str, Any], after: Dict[str, Any], keys: Iterable[str]) -> Dict[str, Any]:
    changes = {}
    for k in keys:
        if k in before and k in after and before.get(k) != after.get(k):
            changes[k] = {'before': before.get(k), 'after': after.get(k)}
    return changes


def audit_log(
    action: str,
    *,
    entity: Optional[str] = None,
    entity_id_key: Optional[str] = None,
    entity_id_arg: Optional[str] = None,
    meta_keys: Optional[Iterable[str]] = None,
    meta_builder: Optional[Callable[[dict, Any, tuple, dict], dict]] = None,
    commit: bool = True,
    # Diff support
    diff_keys: Optional[Iterable[str]] = None,
    pre_fetch: Optional[Callable[[tuple, dict], Dict[str, Any]]] = None,
):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            before_snapshot = pre_fetch(args, kwargs) if diff_keys and pre_fetch else None
            rv = fn(*args, **kwargs)
            # the transition is already committed; a failing audit write must not turn it into an error
            try:
                data, _ = _extract_payload(rv)
                if not isinstance(data, dict):
                    add_audit(action, entity, None, None)
                else:
                    entity_id = None
                    if entity_id_key and entity_id_key in data:
                        entity_id = data.get(entity_id_key)
                    elif entity_id_arg and entity_id_arg in kwargs:
                        entity_id = kwargs.get(entity_id_arg)
                    meta = None
                    if meta_builder:
                        meta = meta_builder(data, rv, args, kwargs)
                    elif meta_keys:
                        meta = {k: data.get(k) for k in meta_keys if k in data}
                    if diff_keys and isinstance(before_snapshot, dict):
                        changes = _diff(before_snapshot, data, diff_keys)
                        if changes:
                            meta = dict(meta or {}, changes=changes)
                    add_audit(action, entity, entity_id, meta)
                if commit:
                    get_db().commit()
            except Exception:
                get_db().rollback()
                logger.exception('audit write for %s failed', action)
            return rv
        return wrapper
    return outer
