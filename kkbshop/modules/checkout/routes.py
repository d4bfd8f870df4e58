from __future__ import annotations

from flask import Blueprint, current_app

from kkbshop.app.common.auth import current_user, login_required
from kkbshop.app.common.validation import get_json, get_str, one_of, require_fields
from kkbshop.modules.checkout.service import (
    ADDRESS_FIELDS,
    PAYMENT_METHODS,
    build_quote,
    find_promo,
    place_order,
)
from kkbshop.modules.orders.service import order_to_dict
from kkbshop.pricing.policy import DELIVERY_TYPES, NORMAL

bp = Blueprint("checkout", __name__)


@bp.post("/checkout/promo")
@login_required
def apply_promo():
    """POST /api/checkout/promo - Check a code against the current cart.

    Request JSON:
      {"code": "GLOW10", "country": "Uganda", "delivery_type": "normal"}
    """
    data = get_json()
    require_fields(data, ["code"])
    user = current_user()

    promo = find_promo(str(data["code"]))
    country = get_str(data, "country", 100) or user.country
    delivery_type = one_of(data.get("delivery_type", NORMAL), "delivery_type", DELIVERY_TYPES)
    _, q = build_quote(user.id, country, delivery_type, promo)

    return {
        "code": promo.code,
        "discount_type": promo.discount_type,
        "discount_value": float(promo.discount_value),
        "discount_amount": q.discount_amount,
        "message": "Promo code applied successfully!",
    }, 200


@bp.post("/checkout/quote")
@login_required
def checkout_quote():
    """POST /api/checkout/quote - Itemized total for the current cart."""
    data = get_json()
    user = current_user()

    country = get_str(data, "country", 100) or user.country
    delivery_type = one_of(data.get("delivery_type", NORMAL), "delivery_type", DELIVERY_TYPES)
    promo = find_promo(get_str(data, "promo_code", 50))
    _, q = build_quote(user.id, country, delivery_type, promo)
    return q.to_dict(), 200


@bp.post("/orders")
@login_required
def create_order():
    """Checkout: cart -> order.

    Request JSON:
      {
        "delivery_address": {"full_name", "phone", "address", "city", "country"},
        "delivery_type": "normal",
        "payment_method": "mtn-momo",
        "promo_code": "GLOW10",        (optional)
        "customer_notes": "..."        (optional)
      }
    """
    data = get_json()
    require_fields(data, ["delivery_address", "delivery_type", "payment_method"])

    raw_address = data["delivery_address"]
    if not isinstance(raw_address, dict):
        raw_address = {}
    require_fields(raw_address, ADDRESS_FIELDS)
    address = {f: get_str(raw_address, f, 255) for f in ADDRESS_FIELDS}
    require_fields(address, ADDRESS_FIELDS)

    delivery_type = one_of(data["delivery_type"], "delivery_type", DELIVERY_TYPES)
    payment_method = one_of(data["payment_method"], "payment_method", PAYMENT_METHODS)
    promo = find_promo(get_str(data, "promo_code", 50))

    user = current_user()
    order = place_order(
        user.id,
        address,
        delivery_type,
        payment_method,
        promo=promo,
        customer_notes=get_str(data, "customer_notes"),
    )
    current_app.logger.info(
        "Order %s placed by user %s: total %s %s", order.order_number, user.id, order.total_amount, order.currency
    )
    return order_to_dict(order, with_items=True), 201
