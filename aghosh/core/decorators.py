"""Custom decorators for route protection"""
from functools import wraps
from flask import abort
from flask_security import current_user


def role_required(*roles):
    """Allow the request if the current user holds any of ``roles``.

    Anonymous users get 401 and authenticated users without the role 403,
    so JSON clients can tell "log in" from "not allowed".
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                abort(401)
            if any(current_user.has_role(role) for role in roles):
                return f(*args, **kwargs)
            abort(403)
        return decorated_function
    return decorator


admin_required = role_required('admin')
donor_required = role_required('donor')
