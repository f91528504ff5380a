from __future__ import annotations
"""List/detail response helpers shared by the ticket, close-request and repair endpoints.

A list endpoint builds its filtered query and hands it to ``list_response``
which paginates (``limit``/``offset``), applies ``sort``, serializes the page
and attaches caching validators. Conditional requests (If-None-Match, then
If-Modified-Since) short-circuit to an empty 304; HEAD keeps the headers and
drops the body.
"""
import hashlib
import json
from datetime import datetime, timezone, timedelta
from email.utils import parsedate_to_datetime, format_datetime
from typing import Any, Callable, List, Mapping, Optional, Tuple
from flask import request, make_response, jsonify
from sqlalchemy.orm import Query
from helpdesk.config.pagination import normalize_pagination
from helpdesk.errors import ValidationError

# If-Modified-Since has one-second resolution
TIMESTAMP_TOLERANCE = timedelta(seconds=1)


def _utc_seconds(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).replace(microsecond=0)


def to_iso(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace('+00:00', 'Z')


def parse_sort(expr: Optional[str], allowed: Mapping[str, Any]) -> List[Tuple[str, bool]]:
    """``"-reopen_count,id"`` -> ``[('reopen_count', True), ('id', False)]``; unknown keys are rejected."""
    fields = []
    for token in (expr or '').split(','):
        token = token.strip()
        if not token:
            continue
        key = token.lstrip('-')
        if key not in allowed:
            raise ValidationError(f'Invalid sort field {key}', field='sort')
        fields.append((key, token.startswith('-')))
    return fields


def apply_sort(q: Query, expr: Optional[str], allowed: Mapping[str, Any], tie_breaker) -> Query:
    clauses = [allowed[k].desc() if desc else allowed[k].asc() for k, desc in parse_sort(expr, allowed)]
    return q.order_by(*clauses, tie_breaker.asc())


def build_list_payload(rows: list, total: int, limit: int, offset: int):
    return {
        'data': rows,
        'pagination': {'total': total, 'limit': limit, 'offset': offset, 'returned': len(rows)},
    }


def page(q: Query) -> Tuple[list, int, int, int]:
    """Run ``q`` for the page requested by ``limit``/``offset``; returns (rows, total, limit, offset)."""
    limit, offset = normalize_pagination(request.args.get('limit'), request.args.get('offset'))
    total = q.count()
    return q.offset(offset).limit(limit).all(), total, limit, offset


def compute_etag(payload: Any) -> str:
    """Strong validator over the exact JSON body served."""
    blob = json.dumps(payload, sort_keys=True, separators=(',', ':'), default=str)
    return hashlib.sha256(blob.encode()).hexdigest()[:32]


def _validators(resp, etag: str, latest: Optional[datetime]):
    resp.headers['ETag'] = etag
    if latest is not None:
        resp.headers['Last-Modified'] = format_datetime(latest, usegmt=True)
        resp.headers['X-Last-Modified-ISO'] = to_iso(latest)
    return resp


def _parse_http_time(raw: str) -> Optional[datetime]:
    # ISO 8601 (X-Last-Modified-ISO echoed back) or RFC 1123 HTTP-date
    try:
        return datetime.fromisoformat(raw.replace('Z', '+00:00'))
    except ValueError:
        pass
    try:
        return parsedate_to_datetime(raw)
    except (TypeError, ValueError):
        return None


def not_modified(etag: str, latest: Optional[datetime]):
    """Return a 304 response when the client's validators still match, else None."""
    inm = request.headers.get('If-None-Match')
    if inm:
        if inm.strip('"') != etag:
            return None
    else:
        ims = _parse_http_time(request.headers.get('If-Modified-Since') or '')
        if ims is None or latest is None or latest > _utc_seconds(ims) + TIMESTAMP_TOLERANCE:
            return None
    return _validators(make_response('', 304), etag, latest)


def _finish(resp, etag: str, latest: Optional[datetime]):
    _validators(resp, etag, latest)
    if request.method == 'HEAD':
        resp.set_data(b'')
    return resp


def list_response(q: Query, serialize: Callable[[Any], dict], *, sortable: Mapping[str, Any], tie_breaker,
                  timestamp: Callable[[Any], Optional[datetime]]):
    """Sorted, paginated, cache-validated list response for ``q``.

    ``timestamp`` picks the row's last-change time; the newest one on the page
    becomes Last-Modified.
    """
    q = apply_sort(q, request.args.get('sort'), sortable, tie_breaker)
    rows, total, limit, offset = page(q)
    stamps = [_utc_seconds(ts) for ts in map(timestamp, rows) if ts is not None]
    latest = max(stamps, default=None)
    body = [serialize(r) for r in rows]
    payload = build_list_payload(body, total, limit, offset)
    etag = compute_etag(payload)
    return not_modified(etag, latest) or _finish(make_response(payload), etag, latest)


def single_response(body: dict, updated_at: Optional[datetime]):
    latest = _utc_seconds(updated_at) if updated_at is not None else None
    etag = compute_etag(body)
    return not_modified(etag, latest) or _finish(make_response(jsonify(body)), etag, latest)


__all__ = ['to_iso', 'parse_sort', 'apply_sort', 'build_list_payload', 'page', 'compute_etag',
           'not_modified', 'list_response', 'single_response']
