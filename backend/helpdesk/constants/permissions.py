"""Central enum-like definitions to avoid typos in permission/service strings.
Extend cautiously; never rename codes silently, tokens issued by the identity service carry them.
"""
from __future__ import annotations
from typing import List, Dict

SERVICES = ['TKT', 'RPR', 'ADMIN']

SERVICE_ACTIONS = {
    'TKT': ['READ', 'CLOSE.REQUEST', 'CLOSE.REVIEW', 'REOPEN'],
    'RPR': ['READ'],
    'ADMIN': ['SETTINGS.MANAGE'],
}


def build_all_permission_codes() -> List[str]:
    codes: List[str] = []
    for svc, actions in SERVICE_ACTIONS.items():
        for act in actions:
            codes.append(f"{svc}.{act}")
    return codes

ALL_PERMISSION_CODES = build_all_permission_codes()

# Typical grants per helpdesk role; role resolution itself lives in the identity service
ROLE_PRESETS: Dict[str, List[str]] = {
    'Engineer': ['TKT.READ', 'TKT.CLOSE.REQUEST', 'RPR.READ'],
    'Requester': ['TKT.READ', 'TKT.REOPEN'],
    'Coordinator': ['TKT.READ', 'TKT.CLOSE.REVIEW', 'TKT.REOPEN', 'RPR.READ'],
    'Admin': list(ALL_PERMISSION_CODES),
}
