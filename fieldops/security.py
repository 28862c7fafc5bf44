# -*- coding: utf-8 -*-
from functools import wraps
from flask import abort
from flask_login import current_user

def roles_required(*roles):
    """
    Not logged in -> 401.
    System role not in ``roles`` -> 403.
    """
    def decorator(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            if not current_user.is_authenticated:
                abort(401)
            if current_user.role not in roles:
                abort(403)
            return f(*args, **kwargs)
        return wrapper
    return decorator
