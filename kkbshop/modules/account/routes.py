from __future__ import annotations

from flask import Blueprint

from kkbshop.app.extensions import db
from kkbshop.app.models import NotificationPreference
from kkbshop.app.common.auth import current_user, login_required
from kkbshop.app.common.validation import get_bool, get_json, get_str, one_of
from kkbshop.app.common.errors import abort_json
from kkbshop.modules.auth.routes import profile_to_dict

bp = Blueprint("account", __name__)

CURRENCIES = ("UGX", "USD")
NOTIFICATION_FIELDS = ("email_notifications", "sms_notifications", "order_updates", "promotions")


def _preferences(user_id: int) -> NotificationPreference:
    prefs = NotificationPreference.query.filter_by(user_id=user_id).first()
    if not prefs:
        prefs = NotificationPreference(user_id=user_id)
        db.session.add(prefs)
        db.session.commit()
    return prefs


def _preferences_response(prefs: NotificationPreference) -> dict:
    return {"id": prefs.id, **{f: getattr(prefs, f) for f in NOTIFICATION_FIELDS}}


@bp.get("/account/profile")
@login_required
def get_profile():
    return profile_to_dict(current_user()), 200


@bp.patch("/account/profile")
@login_required
def update_profile():
    """PATCH /api/account/profile - full_name, phone, country, currency."""
    data = get_json()
    user = current_user()

    if "full_name" in data:
        user.full_name = get_str(data, "full_name", 200)
    if "phone" in data:
        user.phone = get_str(data, "phone", 50)
    if "country" in data:
        country = get_str(data, "country", 100)
        if not country:
            abort_json(400, "validation_error", "'country' cannot be empty")
        user.country = country
    if "currency" in data:
        user.currency = one_of(data["currency"], "currency", CURRENCIES)

    db.session.commit()
    return profile_to_dict(user), 200


@bp.get("/account/notifications")
@login_required
def get_notifications():
    return _preferences_response(_preferences(current_user().id)), 200


@bp.put("/account/notifications")
@login_required
def update_notifications():
    data = get_json()
    prefs = _preferences(current_user().id)

    for field in NOTIFICATION_FIELDS:
        value = get_bool(data, field)
        if value is None:
            abort_json(400, "validation_error", f"'{field}' is required")
        setattr(prefs, field, value)

    db.session.commit()
    return _preferences_response(prefs), 200
