from __future__ import annotations

import re

from flask import Blueprint, current_app, session
from werkzeug.security import generate_password_hash, check_password_hash

from kkbshop.app.extensions import db
from kkbshop.app.models import Profile, NotificationPreference
from kkbshop.app.common.validation import get_json, get_str, require_fields
from kkbshop.app.common.errors import abort_json
from kkbshop.app.common.auth import current_user, login_required

bp = Blueprint("auth", __name__)

EMAIL_REGEX = r"^[^\s@]+@[^\s@]+\.[^\s@]{2,}$"
MIN_PASSWORD_LENGTH = 6


def profile_to_dict(user: Profile) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "full_name": user.full_name,
        "phone": user.phone,
        "country": user.country,
        "currency": user.currency,
        "is_admin": user.is_admin,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


@bp.post("/users")
def create_user():
    """POST /api/users - Create a new customer account."""
    data = get_json()
    require_fields(data, ["email", "password", "full_name"])

    email = str(data["email"]).strip().lower()
    if not re.match(EMAIL_REGEX, email):
        abort_json(400, "validation_error", "Invalid email format")

    password = str(data["password"])
    if len(password) < MIN_PASSWORD_LENGTH:
        abort_json(400, "validation_error", f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    if Profile.query.filter_by(email=email).first():
        abort_json(409, "conflict", "Email already registered")

    user = Profile(
        email=email,
        password_hash=generate_password_hash(password),
        full_name=get_str(data, "full_name", 200),
        phone=get_str(data, "phone", 50),
        country=get_str(data, "country", 100) or "Uganda",
    )
    db.session.add(user)
    db.session.flush()

    # Default notification preferences: everything on
    db.session.add(NotificationPreference(user_id=user.id))
    db.session.commit()

    current_app.logger.info("Registered user %s", user.id)
    return profile_to_dict(user), 201


@bp.post("/auth/login")
def login():
    """POST /api/auth/login - Authenticate and start a session."""
    data = get_json()
    require_fields(data, ["email", "password"])

    email = str(data["email"]).strip().lower()
    user = Profile.query.filter_by(email=email).first()
    if not user or not check_password_hash(user.password_hash, str(data["password"])):
        abort_json(401, "unauthorized", "Invalid email or password")

    session.clear()
    session["user_id"] = user.id
    return profile_to_dict(user), 200


@bp.post("/auth/logout")
def logout():
    """POST /api/auth/logout - Terminate session."""
    session.pop("user_id", None)
    return {"message": "logged_out"}, 200


@bp.get("/users/me")
@login_required
def me():
    """GET /api/users/me - Current authenticated user."""
    return profile_to_dict(current_user()), 200
