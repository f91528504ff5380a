"""Import every model module so its table is registered on ``Base.metadata``.

Used by schema creation in tests and by Alembic autogenerate.
"""
import importlib
from helpdesk.models.base import Base

MODEL_MODULES = (
    'ticket',
    'close_request',
    'reopen_event',
    'reopen_config',
    'repair_record',
    'notification',
    'sla_reset_request',
    'audit',
)


def load_all_models():
    for name in MODEL_MODULES:
        importlib.import_module(f'helpdesk.models.{name}')
    return Base.metadata
