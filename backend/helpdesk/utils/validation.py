from __future__ import annotations
"""Reusable validation helpers for request payloads and domain values.

Payload helpers implement an explicit required/optional field table per
operation: unknown keys are rejected rather than passed through.
"""
from typing import Any, Dict, Iterable, Mapping, Optional
from helpdesk.errors import ValidationError


def validate_status(new_status: str, allowed: Iterable[str], field_name: str = 'status') -> str:
    """Validate that new_status is inside allowed.

    Returns the status (to enable inline usage) or raises ValidationError.
    """
    if new_status not in allowed:
        raise ValidationError(f"{field_name} invalid", field=field_name)
    return new_status


def check_fields(data: Any, required: Iterable[str] = (), optional: Iterable[str] = ()) -> Dict[str, Any]:
    """Ensure ``data`` is an object holding every required key and nothing unknown."""
    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ValidationError('JSON object body required')
    required = tuple(required)
    known = set(required) | set(optional)
    unknown = sorted(k for k in data if k not in known)
    if unknown:
        raise ValidationError(f"unknown field(s): {', '.join(unknown)}")
    missing = [k for k in required if data.get(k) is None]
    if missing:
        raise ValidationError(f"{', '.join(missing)} required", field=missing[0])
    return dict(data)


def require_text(value: Any, field_name: str, min_length: int = 1, max_length: Optional[int] = None) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f'{field_name} cannot be empty', field=field_name)
    value = value.strip()
    if len(value) < min_length:
        raise ValidationError(f'{field_name} must be at least {min_length} characters', field=field_name)
    if max_length is not None and len(value) > max_length:
        raise ValidationError(f'{field_name} must be at most {max_length} characters', field=field_name)
    return value


def optional_text(value: Any, field_name: str, max_length: Optional[int] = None) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f'{field_name} must be a string', field=field_name)
    value = value.strip()
    if max_length is not None and len(value) > max_length:
        raise ValidationError(f'{field_name} must be at most {max_length} characters', field=field_name)
    return value or None


def coerce_int(value: Any, field_name: str, minimum: Optional[int] = None, maximum: Optional[int] = None) -> int:
    # bool is an int subclass; a JSON true is never a valid count or id
    if isinstance(value, bool):
        raise ValidationError(f'{field_name} must be int', field=field_name)
    try:
        out = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field_name} must be int', field=field_name)
    if isinstance(value, float) and value != out:
        raise ValidationError(f'{field_name} must be int', field=field_name)
    if minimum is not None and out < minimum:
        raise ValidationError(f'{field_name} must be >= {minimum}', field=field_name)
    if maximum is not None and out > maximum:
        raise ValidationError(f'{field_name} must be <= {maximum}', field=field_name)
    return out


def coerce_bool(value: Any, field_name: str) -> bool:
    if not isinstance(value, bool):
        raise ValidationError(f'{field_name} must be boolean', field=field_name)
    return value

__all__ = ['validate_status', 'check_fields', 'require_text', 'optional_text', 'coerce_int', 'coerce_bool']
