"""Session-based auth and row-level authorization.

We store `user_id` in the Flask session. Customer routes scope every query
to that id; admin routes additionally require `Profile.is_admin`.
"""

from functools import wraps
from typing import Callable, Optional, TypeVar, Any

from flask import g, session

from kkbshop.app.extensions import db
from kkbshop.app.models import Profile
from kkbshop.app.common.errors import abort_json

F = TypeVar("F", bound=Callable[..., Any])


def current_user() -> Optional[Profile]:
    if "current_user" not in g:
        uid = session.get("user_id")
        g.current_user = db.session.get(Profile, uid) if uid else None
    return g.current_user


def login_required(fn: F) -> F:
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if not session.get("user_id"):
            abort_json(401, "unauthorized", "Authentication required")
        if current_user() is None:
            session.pop("user_id", None)
            abort_json(401, "unauthorized", "Invalid session")
        return fn(*args, **kwargs)

    return wrapper  # type: ignore


def admin_required(fn: F) -> F:
    @wraps(fn)
    @login_required
    def wrapper(*args, **kwargs):
        if not current_user().is_admin:
            abort_json(403, "forbidden", "Admin access required")
        return fn(*args, **kwargs)

    return wrapper  # type: ignore
