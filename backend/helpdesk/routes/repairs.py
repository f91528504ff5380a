from __future__ import annotations
from flask import Blueprint, request
from helpdesk.decorators.auth import require_permissions
from helpdesk.utils.listing import list_response
from helpdesk.utils.filters import apply_filters
from helpdesk.utils.serializers import repair_record_json
from helpdesk.models.repair_record import RepairRecord
from helpdesk import get_db

rpr_bp = Blueprint('repairs', __name__)

FILTERS = {
    'asset_id': {'op': lambda q, v: q.filter(RepairRecord.asset_id == v), 'coerce': int},
    'ticket_id': {'op': lambda q, v: q.filter(RepairRecord.ticket_id == v), 'coerce': int},
    'warranty_claim': {'op': lambda q, v: q.filter(RepairRecord.warranty_claim == (v == '1')), 'validate': lambda v: v in ('0', '1')},
}

SORTABLE = {
    'repair_date': RepairRecord.repair_date,
    'asset_id': RepairRecord.asset_id,
    'parts_cost_cents': RepairRecord.parts_cost_cents,
    'labor_cost_cents': RepairRecord.labor_cost_cents,
    'id': RepairRecord.id,
}


@rpr_bp.get('/records')
@require_permissions('RPR.READ')
def list_records():
    """Asset repair history written when close requests are approved."""
    q = apply_filters(get_db().query(RepairRecord), FILTERS, request.args)
    return list_response(q, repair_record_json, sortable=SORTABLE, tie_breaker=RepairRecord.id, timestamp=lambda r: r.repair_date)
