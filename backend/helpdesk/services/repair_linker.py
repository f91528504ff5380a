from __future__ import annotations
"""Repair Record Linker.

Creates repair-history entries for assets linked to a ticket once its close
request is approved. Each asset is its own unit of work: one failing entry is
rolled back and reported without affecting the others or the (already
committed) ticket closure.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional
from sqlalchemy.orm import Session
from helpdesk.models.base import utcnow
from helpdesk.models.repair_record import RepairRecord

logger = logging.getLogger(__name__)


class RepairHistory:
    """Repair-history collaborator owned by the asset domain."""

    def create(self, record: Dict[str, Any]) -> RepairRecord:
        raise NotImplementedError


class DbRepairHistory(RepairHistory):
    def __init__(self, session: Session):
        self.session = session

    def create(self, record: Dict[str, Any]) -> RepairRecord:
        r = RepairRecord(**record)
        self.session.add(r)
        self.session.flush()
        return r


@dataclass
class LinkResult:
    created: List[RepairRecord] = field(default_factory=list)
    failures: List[Dict[str, Any]] = field(default_factory=list)


class RepairRecordLinker:
    def __init__(self, session: Session, history: Optional[RepairHistory] = None, clock: Optional[Callable[[], datetime]] = None):
        self.session = session
        self.history = history or DbRepairHistory(session)
        self.clock = clock or utcnow

    def create_for_approval(self, ticket_id: int, close_request_id: int, asset_id: int, repair_fields: Dict[str, Any], actor_id: int) -> RepairRecord:
        record = dict(repair_fields)
        record.update(
            ticket_id=ticket_id,
            close_request_id=close_request_id,
            asset_id=asset_id,
            repair_status=RepairRecord.STATUS_COMPLETED,
            repair_date=self.clock(),
            created_by=actor_id,
        )
        return self.history.create(record)

    def create_batch(self, ticket_id: int, close_request_id: int, entries: Iterable[Any], actor_id: int) -> LinkResult:
        """``entries`` are RepairEntryInput-like objects exposing ``asset_id`` and ``fields()``."""
        result = LinkResult()
        for entry in entries:
            try:
                rec = self.create_for_approval(ticket_id, close_request_id, entry.asset_id, entry.fields(), actor_id)
                self.session.commit()
            except Exception as exc:
                self.session.rollback()
                error = str(getattr(exc, 'orig', None) or exc) or exc.__class__.__name__
                logger.warning('repair record for asset %s on ticket %s failed: %s', entry.asset_id, ticket_id, error)
                result.failures.append({'asset_id': entry.asset_id, 'error': error})
                continue
            result.created.append(rec)
        return result
