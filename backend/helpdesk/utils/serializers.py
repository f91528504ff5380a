from __future__ import annotations
"""JSON projections shared by the ticket, close-request, settings and repair endpoints."""
from helpdesk.models.ticket import Ticket
from helpdesk.models.close_request import CloseRequest
from helpdesk.models.reopen_event import ReopenEvent
from helpdesk.models.repair_record import RepairRecord
from helpdesk.models.notification import Notification
from helpdesk.utils.listing import to_iso


def ticket_json(t: Ticket):
    return {
        'id': t.id,
        'ticket_number': t.ticket_number,
        'title': t.title,
        'status': t.status,
        'service_type': t.service_type,
        'assigned_engineer_id': t.assigned_engineer_id,
        'manager_id': t.manager_id,
        'reopen_count': t.reopen_count,
        'max_reopen_count_override': t.max_reopen_count_override,
        'closed_at': to_iso(t.closed_at),
    }


def close_request_json(cr: CloseRequest):
    return {
        'id': cr.id,
        'ticket_id': cr.ticket_id,
        'engineer_id': cr.engineer_id,
        'request_notes': cr.request_notes,
        'service_report_id': cr.service_report_id,
        'request_status': cr.request_status,
        'created_at': to_iso(cr.created_at),
        'reviewed_at': to_iso(cr.reviewed_at),
        'reviewer_id': cr.reviewer_id,
        'review_notes': cr.review_notes,
    }


def reopen_event_json(ev: ReopenEvent):
    return {
        'id': ev.id,
        'ticket_id': ev.ticket_id,
        'reopen_number': ev.reopen_number,
        'reopened_by': ev.reopened_by,
        'reopen_reason': ev.reopen_reason,
        'sla_reset_mode': ev.sla_reset_mode,
        'reopened_at': to_iso(ev.reopened_at),
    }


def repair_record_json(r: RepairRecord):
    return {
        'id': r.id,
        'ticket_id': r.ticket_id,
        'close_request_id': r.close_request_id,
        'asset_id': r.asset_id,
        'fault_type_id': r.fault_type_id,
        'fault_description': r.fault_description,
        'resolution': r.resolution,
        'repair_status': r.repair_status,
        'repair_date': to_iso(r.repair_date),
        'parts_cost_cents': r.parts_cost_cents,
        'labor_cost_cents': r.labor_cost_cents,
        'labor_hours': r.labor_hours,
        'parts_replaced': r.parts_replaced,
        'warranty_claim': r.warranty_claim,
        'notes': r.notes,
    }


def notification_json(n: Notification):
    return {
        'id': n.id,
        'event': n.event,
        'payload': n.payload or {},
        'created_at': to_iso(n.created_at),
        'read_at': to_iso(n.read_at),
    }
