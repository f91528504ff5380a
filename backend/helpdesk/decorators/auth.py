from functools import wraps
from flask import abort
from flask_jwt_extended import verify_jwt_in_request
from helpdesk.services.policy import has_permissions


def require_permissions(*codes: str):
    """Verify the bearer token and require every listed permission code.

    With no codes only authentication is enforced.
    """
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            if codes and not has_permissions(*codes):
                abort(403, description='Missing permission')
            return fn(*args, **kwargs)
        return wrapper
    return outer
