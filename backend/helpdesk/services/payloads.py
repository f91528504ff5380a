from __future__ import annotations
"""Validated input structs, one per workflow operation.

Each ``from_json`` applies the operation's required/optional field table and
rejects unknown keys, so handlers never pass raw request dicts to services.
"""
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple
from helpdesk.errors import ValidationError
from helpdesk.models.close_request import CloseRequest
from helpdesk.models.reopen_event import MAX_REASON_LENGTH
from helpdesk.utils.validation import check_fields, require_text, optional_text, coerce_int, coerce_bool, validate_status


@dataclass(frozen=True)
class CloseRequestInput:
    request_notes: str
    service_report_id: Optional[int] = None

    @classmethod
    def from_json(cls, data: Any) -> 'CloseRequestInput':
        data = check_fields(data, required=('request_notes',), optional=('service_report_id',))
        report = data.get('service_report_id')
        return cls(
            request_notes=require_text(data['request_notes'], 'request_notes'),
            service_report_id=coerce_int(report, 'service_report_id', minimum=1) if report is not None else None,
        )


@dataclass(frozen=True)
class RepairEntryInput:
    asset_id: int
    fault_description: str
    fault_type_id: Optional[int] = None
    resolution: Optional[str] = None
    parts_cost_cents: int = 0
    labor_cost_cents: int = 0
    labor_hours: float = 0.0
    parts_replaced: Optional[str] = None
    warranty_claim: bool = False
    notes: Optional[str] = None

    REQUIRED = ('asset_id', 'fault_description')
    OPTIONAL = ('fault_type_id', 'resolution', 'parts_cost_cents', 'labor_cost_cents', 'labor_hours',
                'parts_replaced', 'warranty_claim', 'notes')

    @classmethod
    def from_json(cls, data: Any) -> 'RepairEntryInput':
        data = check_fields(data, required=cls.REQUIRED, optional=cls.OPTIONAL)
        hours = data.get('labor_hours', 0)
        if isinstance(hours, bool) or not isinstance(hours, (int, float)) or hours < 0:
            raise ValidationError('labor_hours must be a non-negative number', field='labor_hours')
        fault_type = data.get('fault_type_id')
        return cls(
            asset_id=coerce_int(data['asset_id'], 'asset_id', minimum=1),
            fault_description=require_text(data['fault_description'], 'fault_description'),
            fault_type_id=coerce_int(fault_type, 'fault_type_id', minimum=1) if fault_type is not None else None,
            resolution=optional_text(data.get('resolution'), 'resolution'),
            parts_cost_cents=coerce_int(data.get('parts_cost_cents', 0), 'parts_cost_cents', minimum=0),
            labor_cost_cents=coerce_int(data.get('labor_cost_cents', 0), 'labor_cost_cents', minimum=0),
            labor_hours=float(hours),
            parts_replaced=optional_text(data.get('parts_replaced'), 'parts_replaced', max_length=255),
            warranty_claim=coerce_bool(data.get('warranty_claim', False), 'warranty_claim'),
            notes=optional_text(data.get('notes'), 'notes'),
        )

    def fields(self) -> dict:
        return {
            'fault_type_id': self.fault_type_id,
            'fault_description': self.fault_description,
            'resolution': self.resolution,
            'parts_cost_cents': self.parts_cost_cents,
            'labor_cost_cents': self.labor_cost_cents,
            'labor_hours': self.labor_hours,
            'parts_replaced': self.parts_replaced,
            'warranty_claim': self.warranty_claim,
            'notes': self.notes,
        }


@dataclass(frozen=True)
class ReviewInput:
    action: str
    review_notes: Optional[str] = None
    repairs: Tuple[RepairEntryInput, ...] = field(default_factory=tuple)

    @classmethod
    def from_json(cls, data: Any) -> 'ReviewInput':
        data = check_fields(data, required=('action',), optional=('review_notes', 'repairs'))
        action = validate_status(data['action'], CloseRequest.REVIEW_ACTIONS, 'action')
        raw_repairs = data.get('repairs')
        if raw_repairs is None:
            raw_repairs = []
        elif not isinstance(raw_repairs, list):
            raise ValidationError('repairs must be a list', field='repairs')
        repairs: List[RepairEntryInput] = [RepairEntryInput.from_json(r) for r in raw_repairs]
        return cls(
            action=action,
            review_notes=optional_text(data.get('review_notes'), 'review_notes'),
            repairs=tuple(repairs),
        )


@dataclass(frozen=True)
class ReopenInput:
    reopen_reason: Optional[str] = None

    @classmethod
    def from_json(cls, data: Any) -> 'ReopenInput':
        data = check_fields(data, optional=('reopen_reason',))
        return cls(reopen_reason=optional_text(data.get('reopen_reason'), 'reopen_reason', max_length=MAX_REASON_LENGTH))
