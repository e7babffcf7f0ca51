from functools import wraps
from flask import g

from utils.errors import ForbiddenError, UnauthorizedError


def require_role(*role_names: str):
    """
    Usage: @require_role("tutor")
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = getattr(g, "user", None)
            if user is None:
                raise UnauthorizedError("You must be logged in")
            if user.role not in role_names:
                raise ForbiddenError(f"This action requires the {' or '.join(role_names)} role")
            return fn(*args, **kwargs)
        return wrapper
    return decorator


def require_self(user_id: int):
    """The caller may only read their own resources."""
    user = getattr(g, "user", None)
    if user is None:
        raise UnauthorizedError("You must be logged in")
    if user.id != user_id:
        raise ForbiddenError("You can only access your own data")
    return user
