from __future__ import annotations
"""Config collaborator for the reopen policy.

Reads return the latest saved version (or the process defaults when nothing
has been saved yet). Updates merge the patch onto the latest version,
validate the whole object and insert it as the next version; they never
modify a row in place.
"""
import logging
from dataclasses import dataclass, asdict, replace
from typing import Any, Dict, Mapping, Optional
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from helpdesk.config.reopen import DEFAULTS, WINDOW_DAYS_RANGE, MAX_REOPEN_RANGE
from helpdesk.errors import InvalidStateError, ValidationError
from helpdesk.models.reopen_config import ReopenConfig
from helpdesk.utils.validation import check_fields, coerce_int, coerce_bool, validate_status

logger = logging.getLogger(__name__)

CONFIG_FIELDS = (
    'reopen_window_days', 'max_reopen_count', 'sla_reset_mode',
    'require_reopen_reason', 'notify_assignee', 'notify_manager',
)


@dataclass(frozen=True)
class ReopenSettings:
    reopen_window_days: int
    max_reopen_count: int
    sla_reset_mode: str
    require_reopen_reason: bool
    notify_assignee: bool
    notify_manager: bool
    version: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def validate_settings(values: Mapping[str, Any]) -> Dict[str, Any]:
    """Coerce and range-check a complete or partial set of config fields."""
    out: Dict[str, Any] = {}
    for key, value in values.items():
        if key == 'reopen_window_days':
            out[key] = coerce_int(value, key, *WINDOW_DAYS_RANGE)
        elif key == 'max_reopen_count':
            out[key] = coerce_int(value, key, *MAX_REOPEN_RANGE)
        elif key == 'sla_reset_mode':
            out[key] = validate_status(value, ReopenConfig.SLA_RESET_MODES, key)
        elif key in ('require_reopen_reason', 'notify_assignee', 'notify_manager'):
            out[key] = coerce_bool(value, key)
        else:
            raise ValidationError(f'unknown field(s): {key}')
    return out


def _from_row(row: ReopenConfig) -> ReopenSettings:
    return ReopenSettings(
        reopen_window_days=row.reopen_window_days,
        max_reopen_count=row.max_reopen_count,
        sla_reset_mode=row.sla_reset_mode,
        require_reopen_reason=row.require_reopen_reason,
        notify_assignee=row.notify_assignee,
        notify_manager=row.notify_manager,
        version=row.version,
    )


class ReopenConfigStore:
    def __init__(self, session: Session, defaults: Optional[Mapping[str, Any]] = None):
        self.session = session
        base = dict(DEFAULTS)
        base.update(defaults or {})
        self.defaults = ReopenSettings(**validate_settings(base))

    def get_reopen_config(self) -> ReopenSettings:
        row = self.session.execute(
            select(ReopenConfig).order_by(ReopenConfig.version.desc()).limit(1)
        ).scalar_one_or_none()
        return _from_row(row) if row else self.defaults

    def update_reopen_config(self, patch: Any, actor_id: Optional[int] = None, expected_version: Optional[int] = None) -> ReopenSettings:
        """Validate ``patch``, merge it onto the live config and persist it as a new version.

        Does not commit. A concurrent writer that saved the same next version
        first turns this call into InvalidStateError.
        """
        data = check_fields(patch, optional=CONFIG_FIELDS)
        if not data:
            raise ValidationError('at least one config field required')
        changes = validate_settings(data)
        current = self.get_reopen_config()
        if expected_version is not None and expected_version != current.version:
            raise InvalidStateError(f'Reopen config is at version {current.version}, not {expected_version}')
        merged = replace(current, version=current.version + 1, **changes)
        # whole-object re-validation of the merged result
        validate_settings({k: v for k, v in merged.to_dict().items() if k != 'version'})
        row = ReopenConfig(updated_by=actor_id, **merged.to_dict())
        self.session.add(row)
        try:
            self.session.flush()
        except IntegrityError:
            self.session.rollback()
            logger.warning('reopen config version %s already written by another admin', merged.version)
            raise InvalidStateError('Reopen config changed concurrently; reload and retry')
        return merged
