"""Helper functions for the OpenAPI builder.

These are deliberately tiny to avoid changing output ordering or semantics.
"""
import re
from typing import Any, Dict, List


def object_schema(props: Dict[str, str]) -> Dict[str, Any]:
    return {"type": "object", "properties": {k: {"type": t} for k, t in props.items()}}


def caching_headers() -> Dict[str, Any]:
    return {
        "ETag": {"schema": {"type": "string"}},
        "Last-Modified": {"schema": {"type": "string"}},
        "X-Last-Modified-ISO": {"schema": {"type": "string"}},
    }


def path_params(path: str) -> List[Dict[str, Any]]:
    return [
        {"name": name, "in": "path", "required": True, "schema": {"type": "integer"}}
        for name in re.findall(r"{(\w+)}", path)
    ]


def error_ref(code: str) -> Dict[str, Any]:
    return {"$ref": f"#/components/responses/E{code}"}


__all__ = ["object_schema", "caching_headers", "path_params", "error_ref"]
