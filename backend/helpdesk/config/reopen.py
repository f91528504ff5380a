"""Reopen policy defaults and allowed ranges.

Defaults apply until an administrator saves the first ReopenConfig version.
Each default can be overridden through the environment (see ``load_reopen_defaults``).
"""
from __future__ import annotations
import os
from typing import Any, Dict, Mapping, Optional

WINDOW_DAYS_RANGE = (1, 365)
MAX_REOPEN_RANGE = (1, 10)
MIN_REASON_LENGTH = 10

DEFAULTS: Dict[str, Any] = {
    'reopen_window_days': 7,
    'max_reopen_count': 3,
    'sla_reset_mode': 'continue',
    'require_reopen_reason': True,
    'notify_assignee': True,
    'notify_manager': True,
}

_ENV_KEYS = {
    'REOPEN_WINDOW_DAYS': ('reopen_window_days', int),
    'REOPEN_MAX_COUNT': ('max_reopen_count', int),
    'REOPEN_SLA_RESET_MODE': ('sla_reset_mode', str),
}


def _check_default(var: str, key: str, value: Any):
    from helpdesk.models.reopen_config import ReopenConfig
    bounds = {'reopen_window_days': WINDOW_DAYS_RANGE, 'max_reopen_count': MAX_REOPEN_RANGE}.get(key)
    if bounds and not bounds[0] <= value <= bounds[1]:
        raise ValueError(f'{var} must be between {bounds[0]} and {bounds[1]}')
    if key == 'sla_reset_mode' and value not in ReopenConfig.SLA_RESET_MODES:
        raise ValueError(f'{var} must be one of {", ".join(ReopenConfig.SLA_RESET_MODES)}')


def load_reopen_defaults(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Defaults merged with ``REOPEN_*`` overrides; a bad override fails at boot, not per request."""
    env = os.environ if environ is None else environ
    out = dict(DEFAULTS)
    for var, (key, coerce) in _ENV_KEYS.items():
        raw = env.get(var)
        if raw:
            try:
                out[key] = coerce(raw)
            except ValueError:
                raise ValueError(f'{var} must be {coerce.__name__}')
            _check_default(var, key, out[key])
    return out
