from __future__ import annotations
"""Workflow error taxonomy.

Every error carries a machine readable ``kind`` and the HTTP status the
unified error handler in ``create_app`` maps it to. Services raise these
directly; they never depend on a Flask request context.
"""
from typing import Any, Dict, Optional


class WorkflowError(Exception):
    kind = 'error'
    status_code = 400
    title = 'Bad Request'

    def __init__(self, detail: str, **extra: Any):
        super().__init__(detail)
        self.detail = detail
        self.extra = extra

    def to_dict(self) -> Dict[str, Any]:
        body = {
            'status': self.status_code,
            'title': self.title,
            'kind': self.kind,
            'detail': self.detail,
        }
        body.update(self.extra)
        return body


class NotFoundError(WorkflowError):
    kind = 'not_found'
    status_code = 404
    title = 'Not Found'


class InvalidStateError(WorkflowError):
    kind = 'invalid_state'
    status_code = 409
    title = 'Conflict'


class ValidationError(WorkflowError):
    kind = 'validation'
    status_code = 400
    title = 'Bad Request'

    def __init__(self, detail: str, field: Optional[str] = None):
        if field:
            super().__init__(detail, field=field)
        else:
            super().__init__(detail)
        self.field = field


class IneligibleError(WorkflowError):
    kind = 'ineligible'
    status_code = 409
    title = 'Conflict'

    def __init__(self, reason: str, detail: Optional[str] = None):
        super().__init__(detail or f'Ticket cannot be reopened: {reason}', reason=reason)
        self.reason = reason


class AlreadyFinalizedError(WorkflowError):
    kind = 'already_finalized'
    status_code = 409
    title = 'Conflict'


# Kinds used when framework-level HTTP errors go through the same handler
HTTP_STATUS_KINDS = {
    400: ValidationError.kind,
    401: 'unauthorized',
    403: 'forbidden',
    404: NotFoundError.kind,
    409: InvalidStateError.kind,
}

__all__ = [
    'WorkflowError', 'NotFoundError', 'InvalidStateError', 'ValidationError',
    'IneligibleError', 'AlreadyFinalizedError', 'HTTP_STATUS_KINDS',
]
