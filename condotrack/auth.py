from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import current_app, g, request

from .errors import ForbiddenError, UnauthorizedError
from .models import db, User
from .services.tokens import decode_session_jwt


def current_user() -> User | None:
    """Resolve the session cookie to an active user, once per request."""
    if 'current_user' in g:
        return g.current_user
    user = None
    raw = request.cookies.get(current_app.config['AUTH_COOKIE_NAME'])
    payload = decode_session_jwt(raw) if raw else None
    if payload and payload.get('sub'):
        user = db.session.get(User, payload['sub'])
        if user is not None and not user.active:
            user = None
    g.current_user = user
    return user


def require_role(*roles: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """401 without a valid session; 403 when the role is not in ``roles`` (any role if empty)."""
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            user = current_user()
            if user is None:
                raise UnauthorizedError()
            if roles and user.role not in roles:
                raise ForbiddenError()
            return fn(*args, **kwargs)

        return wrapped

    return decorator
