from __future__ import annotations
from typing import Any, Dict, Mapping
from helpdesk.errors import ValidationError

def apply_filters(query, specs: Dict[str, Dict[str, Any]], params: Mapping[str, Any]):
    """Generic query-string filter builder.

    specs: { param_name: { 'op': callable(query, value)->query, 'coerce': type/func (optional), 'validate': callable (optional) } }
    Parameters absent from ``params`` are skipped.
    """
    for name, meta in specs.items():
        if name not in params or params[name] is None:
            continue
        val = params[name]
        if 'coerce' in meta:
            try:
                val = meta['coerce'](val)
            except (TypeError, ValueError):
                raise ValidationError(f'{name} invalid', field=name)
        if 'validate' in meta and not meta['validate'](val):
            raise ValidationError(f'{name} invalid', field=name)
        query = meta['op'](query, val)
    return query
