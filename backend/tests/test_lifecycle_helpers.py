"""Reusable test helpers for the ticket workflow.

Patterns unified:
 - Auth header creation using direct JWT claims (identity service is external).
 - Close/review/reopen sequencing with assertion helpers.
"""
from __future__ import annotations
from typing import Dict, List, Optional
from flask_jwt_extended import create_access_token
from helpdesk.constants.permissions import ROLE_PRESETS
from tests.test_utils_seed import ENGINEER_ID, COORDINATOR_ID, REQUESTER_ID, ADMIN_ID

# ---------- Generic Auth Helpers ---------- #

def jwt_headers(user_id: int, perms: List[str]):
    token = create_access_token(identity=str(user_id), additional_claims={
        'perms': perms,
        'roles': [],
    })
    return {'Authorization': f'Bearer {token}'}


def role_headers(role: str, user_id: int):
    return jwt_headers(user_id, ROLE_PRESETS[role])


def engineer_headers(user_id: int = ENGINEER_ID):
    return role_headers('Engineer', user_id)


def coordinator_headers(user_id: int = COORDINATOR_ID):
    return role_headers('Coordinator', user_id)


def requester_headers(user_id: int = REQUESTER_ID):
    return role_headers('Requester', user_id)


def admin_headers(user_id: int = ADMIN_ID):
    return role_headers('Admin', user_id)

# ---------- Assertion Helpers ---------- #

def assert_transition(client, url: str, headers: Dict[str, str], expected_status: int, payload: Optional[dict] = None,
                      expected_body_key: str = 'status', expected_body_value: str = None):
    resp = client.post(url, json=payload or {}, headers=headers)
    assert resp.status_code == expected_status, resp.get_json()
    if expected_status < 400 and expected_body_value is not None:
        body = resp.get_json()
        assert body[expected_body_key] == expected_body_value
    return resp


def assert_error(resp, status: int, kind: str):
    assert resp.status_code == status, resp.get_json()
    err = resp.get_json()['error']
    assert err['status'] == status
    assert err['kind'] == kind
    return err

# ---------- Workflow Wrappers ---------- #

def request_close(client, ticket_id: int, notes: str = 'Replaced cable, tested, works', headers=None, **extra):
    return assert_transition(client, f'/tickets/{ticket_id}/close-requests', headers or engineer_headers(), 201,
                             payload=dict(extra, request_notes=notes), expected_body_key='request_status',
                             expected_body_value='pending').get_json()


def review(client, close_request_id: int, action: str, notes: Optional[str] = None, headers=None, expected_status: int = 200, **extra):
    payload = dict(extra, action=action)
    if notes is not None:
        payload['review_notes'] = notes
    return assert_transition(client, f'/tickets/close-requests/{close_request_id}/review', headers or coordinator_headers(),
                             expected_status, payload=payload)


def exercise_close_and_approve(client, ticket_id: int):
    cr = request_close(client, ticket_id)
    body = review(client, cr['id'], 'approved').get_json()
    assert body['request_status'] == 'approved'
    assert body['ticket_status'] == 'closed'
    return body

__all__ = [
    'jwt_headers', 'role_headers', 'engineer_headers', 'coordinator_headers', 'requester_headers', 'admin_headers',
    'assert_transition', 'assert_error', 'request_close', 'review', 'exercise_close_and_approve',
]
