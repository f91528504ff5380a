"""Centralized constants for the OpenAPI spec builder.

Tests depend on deterministic ordering and content: paths are emitted in
registry order.
"""
from typing import Any, Dict, List, Tuple

# Schema registry: name -> property name -> OpenAPI type
SCHEMAS: Dict[str, Dict[str, str]] = {
    "Ticket": {
        "id": "integer", "ticket_number": "string", "title": "string", "status": "string",
        "service_type": "string", "assigned_engineer_id": "integer", "manager_id": "integer",
        "reopen_count": "integer", "max_reopen_count_override": "integer", "closed_at": "string",
    },
    "CloseRequest": {
        "id": "integer", "ticket_id": "integer", "engineer_id": "integer", "request_notes": "string",
        "service_report_id": "integer", "request_status": "string", "created_at": "string",
        "reviewed_at": "string", "reviewer_id": "integer", "review_notes": "string",
    },
    "ReopenEvent": {
        "id": "integer", "ticket_id": "integer", "reopen_number": "integer", "reopened_by": "integer",
        "reopen_reason": "string", "sla_reset_mode": "string", "reopened_at": "string",
    },
    "ReopenEligibility": {
        "can_reopen": "boolean", "reason": "string", "remaining_reopens": "integer", "days_remaining": "integer",
        "reopen_count": "integer", "max_reopen_count": "integer", "reopen_window_days": "integer",
    },
    "ReopenConfig": {
        "reopen_window_days": "integer", "max_reopen_count": "integer", "sla_reset_mode": "string",
        "require_reopen_reason": "boolean", "notify_assignee": "boolean", "notify_manager": "boolean",
        "version": "integer",
    },
    "RepairRecord": {
        "id": "integer", "ticket_id": "integer", "close_request_id": "integer", "asset_id": "integer",
        "fault_description": "string", "resolution": "string", "repair_status": "string",
        "repair_date": "string", "parts_cost_cents": "integer", "labor_cost_cents": "integer",
        "labor_hours": "number", "warranty_claim": "boolean",
    },
    "Notification": {
        "id": "integer", "event": "string", "payload": "object", "created_at": "string", "read_at": "string",
    },
}

# Endpoint registry: (method, path, summary, permission or None, response schema, shape)
# shape: 'list' -> paginated {data, pagination}; 'items' -> {data: [...]}; 'one' -> object
ENDPOINTS: List[Tuple[str, str, str, Any, str, str]] = [
    ("get", "/tickets", "List tickets", "TKT.READ", "Ticket", "list"),
    ("get", "/tickets/{ticket_id}", "Get ticket", "TKT.READ", "Ticket", "one"),
    ("post", "/tickets/{ticket_id}/close-requests", "Request ticket closure", "TKT.CLOSE.REQUEST", "CloseRequest", "one"),
    ("get", "/tickets/{ticket_id}/close-requests", "Close request history", "TKT.READ", "CloseRequest", "items"),
    ("get", "/tickets/close-requests", "Close request review queue", "TKT.CLOSE.REVIEW", "CloseRequest", "list"),
    ("get", "/tickets/close-requests/{close_request_id}", "Get close request", "TKT.READ", "CloseRequest", "one"),
    ("post", "/tickets/close-requests/{close_request_id}/review", "Approve or reject a close request", "TKT.CLOSE.REVIEW", "CloseRequest", "one"),
    ("get", "/tickets/{ticket_id}/reopen-eligibility", "Reopen eligibility", "TKT.READ", "ReopenEligibility", "one"),
    ("post", "/tickets/{ticket_id}/reopen", "Reopen a closed ticket", "TKT.REOPEN", "Ticket", "one"),
    ("get", "/tickets/{ticket_id}/reopen-history", "Reopen history", "TKT.READ", "ReopenEvent", "items"),
    ("get", "/settings/reopen-config", "Current reopen policy", "TKT.READ", "ReopenConfig", "one"),
    ("put", "/settings/reopen-config", "Save a new reopen policy version", "ADMIN.SETTINGS.MANAGE", "ReopenConfig", "one"),
    ("get", "/repairs/records", "Asset repair history", "RPR.READ", "RepairRecord", "list"),
    ("get", "/notifications", "Current user's notifications", None, "Notification", "list"),
    ("post", "/notifications/{notification_id}/read", "Mark notification read", None, "Notification", "one"),
]

# Paths that also answer HEAD with caching validators
HEAD_PATHS = ("/tickets", "/tickets/{ticket_id}")

# Error responses per method
ERROR_RESPONSES: Dict[str, List[str]] = {
    "get": ["400", "401", "403", "404"],
    "post": ["400", "401", "403", "404", "409"],
    "put": ["400", "401", "403", "409"],
}

SORT_DETAILS = {
    "SortTicketsParam": "Comma list of ticket_number,status,reopen_count,closed_at,updated_at,id (prefix - for desc)",
    "SortCloseRequestsParam": "Comma list of created_at,reviewed_at,ticket_id,id (prefix - for desc)",
    "SortRepairRecordsParam": "Comma list of repair_date,asset_id,parts_cost_cents,labor_cost_cents,id (prefix - for desc)",
}

SORT_PARAM_MAP = {
    "/tickets": "SortTicketsParam",
    "/tickets/close-requests": "SortCloseRequestsParam",
    "/repairs/records": "SortRepairRecordsParam",
}

__all__ = ["SCHEMAS", "ENDPOINTS", "HEAD_PATHS", "ERROR_RESPONSES", "SORT_DETAILS", "SORT_PARAM_MAP"]
