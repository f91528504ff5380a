from __future__ import annotations
from typing import Set
from flask_jwt_extended import get_jwt, get_jwt_identity


def current_permissions() -> Set[str]:
    claims = get_jwt()
    return set(claims.get('perms', []))


def has_permissions(*codes: str) -> bool:
    perms = current_permissions()
    return all(c in perms for c in codes)


def current_user_id() -> int:
    """Acting user id from the verified token (identity is the stringified id)."""
    return int(get_jwt_identity())
