"""Deterministic OpenAPI spec builder for the ticket workflow API.

Scope:
- Every registered workflow endpoint with its required permission
- List endpoints: limit/offset/sort params and caching headers
- Lifecycle metadata: ``x-transitions`` on Ticket and CloseRequest, read from
  the runtime state machines so the document cannot drift from them

Served by `create_app` and written to disk by `scripts/generate_spec.py`.
"""
from typing import Any, Dict
from .openapi_parts.constants import SCHEMAS, ENDPOINTS, HEAD_PATHS, ERROR_RESPONSES, SORT_DETAILS, SORT_PARAM_MAP
from .openapi_parts.helpers import object_schema, caching_headers, path_params, error_ref
from .errors import NotFoundError, InvalidStateError, ValidationError, IneligibleError, AlreadyFinalizedError, HTTP_STATUS_KINDS
from .services.workflow import TICKET_FSM
from .services.close_requests import REVIEW_FSM

__all__ = ["build_openapi_spec"]

ERROR_DESCRIPTIONS = {
    "400": "Validation failed",
    "401": "Missing or invalid token",
    "403": "Missing permission",
    "404": "Not Found",
    "409": "Invalid state, ineligible or already finalized",
}


def _transitions(fsm) -> Dict[str, Any]:
    return {state: sorted(fsm.graph.get(state, ())) for state in fsm.states()}


def _response_schema(schema: str, shape: str) -> Dict[str, Any]:
    ref = {"$ref": f"#/components/schemas/{schema}"}
    if shape == "one":
        return ref
    body: Dict[str, Any] = {"type": "object", "properties": {"data": {"type": "array", "items": ref}}}
    if shape == "list":
        body["properties"]["pagination"] = {"$ref": "#/components/schemas/Pagination"}
    return body


def build_openapi_spec() -> Dict[str, Any]:
    schemas: Dict[str, Any] = {name: object_schema(props) for name, props in SCHEMAS.items()}
    schemas["Ticket"]["x-transitions"] = _transitions(TICKET_FSM)
    schemas["CloseRequest"]["x-transitions"] = _transitions(REVIEW_FSM)
    schemas["Pagination"] = {
        "type": "object",
        "properties": {
            "total": {"type": "integer"},
            "limit": {"type": "integer"},
            "offset": {"type": "integer"},
            "returned": {"type": "integer"},
        },
        "required": ["total", "limit", "offset", "returned"],
    }
    kinds = [cls.kind for cls in (NotFoundError, InvalidStateError, ValidationError, IneligibleError, AlreadyFinalizedError)]
    kinds += [k for k in sorted(set(HTTP_STATUS_KINDS.values())) if k not in kinds] + ["http", "internal"]
    schemas["Error"] = {
        "type": "object",
        "properties": {
            "error": {
                "type": "object",
                "properties": {
                    "status": {"type": "integer"},
                    "title": {"type": "string"},
                    "kind": {"type": "string", "enum": kinds},
                    "detail": {"type": "string"},
                    "reason": {"type": "string"},
                    "field": {"type": "string"},
                },
                "required": ["status", "title", "kind", "detail"],
            }
        },
        "required": ["error"],
    }

    components: Dict[str, Any] = {
        "schemas": schemas,
        "responses": {
            f"E{code}": {
                "description": desc,
                "content": {"application/json": {"schema": {"$ref": "#/components/schemas/Error"}}},
            }
            for code, desc in ERROR_DESCRIPTIONS.items()
        },
        "securitySchemes": {"BearerAuth": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}},
        "parameters": {
            "LimitParam": {"name": "limit", "in": "query", "schema": {"type": "integer", "default": 50}},
            "OffsetParam": {"name": "offset", "in": "query", "schema": {"type": "integer", "default": 0}},
        },
    }
    for pname, desc in SORT_DETAILS.items():
        components["parameters"][pname] = {"name": "sort", "in": "query", "schema": {"type": "string"}, "description": desc}

    paths: Dict[str, Any] = {}
    for method, path, summary, permission, schema, shape in ENDPOINTS:
        params = path_params(path)
        if shape == "list":
            params += [{"$ref": "#/components/parameters/LimitParam"}, {"$ref": "#/components/parameters/OffsetParam"}]
            if path in SORT_PARAM_MAP:
                params.append({"$ref": f"#/components/parameters/{SORT_PARAM_MAP[path]}"})
        ok = {"description": "OK", "content": {"application/json": {"schema": _response_schema(schema, shape)}}}
        if method == "get" and shape == "list":
            ok["headers"] = caching_headers()
        responses: Dict[str, Any] = {"201" if path.endswith("/close-requests") and method == "post" else "200": ok}
        for code in ERROR_RESPONSES[method]:
            responses[code] = error_ref(code)
        op: Dict[str, Any] = {"summary": summary, "parameters": params, "responses": responses}
        if method in ("post", "put"):
            op["requestBody"] = {"content": {"application/json": {"schema": {"type": "object"}}}}
        if permission:
            op["x-required-permissions"] = [permission]
        paths.setdefault(path, {})[method] = op

    for path in HEAD_PATHS:
        get_op = paths[path]["get"]
        get_op["responses"]["200"]["headers"] = caching_headers()
        get_op["responses"]["304"] = {"description": "Not Modified"}
        paths[path]["head"] = {
            "summary": f"{get_op['summary']} (validators only)",
            "parameters": path_params(path),
            "responses": {
                "200": {"description": "Headers only", "headers": caching_headers()},
                "304": {"description": "Not Modified"},
            },
            "x-required-permissions": list(get_op.get("x-required-permissions", [])),
        }

    paths["/healthz"] = {"get": {"summary": "Health check", "security": [], "responses": {"200": {"description": "OK"}}}}

    # Add operationIds & tags
    tag_desc: Dict[str, str] = {}
    for path, ops in paths.items():
        tag = path.split("/")[1].capitalize()
        for method, od in ops.items():
            rid = path.strip("/").replace("/", "_").replace("-", "_").replace("{", "").replace("}", "")
            od["operationId"] = f"{method}_{rid}"
            od["tags"] = [tag]
        tag_desc[tag] = f"{tag} endpoints"

    return {
        "openapi": "3.0.3",
        "info": {"title": "Helpdesk Ticket Workflow API", "version": "0.1.0"},
        "paths": paths,
        "components": components,
        "security": [{"BearerAuth": []}],
        "tags": [{"name": n, "description": d} for n, d in sorted(tag_desc.items())],
    }
