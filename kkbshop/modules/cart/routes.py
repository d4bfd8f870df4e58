from __future__ import annotations

from flask import Blueprint

from kkbshop.app.extensions import db
from kkbshop.app.models import CartItem, Product
from kkbshop.app.common.auth import current_user, login_required
from kkbshop.app.common.validation import get_int, get_json, one_of, require_fields
from kkbshop.app.common.errors import abort_json
from kkbshop.modules.cart.service import load_cart, price_cart
from kkbshop.pricing.policy import CURRENCY, PRICE_TYPES, RETAIL, cart_subtotal

bp = Blueprint("cart", __name__)


def _cart_response(user_id: int):
    priced = price_cart(load_cart(user_id))
    return {
        "items": [
            {
                "id": item.id,
                "product_id": item.product_id,
                "product": {
                    "name": item.product.name,
                    "slug": item.product.slug,
                    "images": item.product.images or [],
                    "stock_quantity": item.product.stock_quantity,
                    "is_active": item.product.is_active,
                },
                "quantity": item.quantity,
                "price_type": item.price_type,
                "unit_price": line.unit_price,
                "subtotal": line.subtotal,
            }
            for item, line in priced
        ],
        "summary": {
            "currency": CURRENCY,
            "item_count": sum(item.quantity for item, _ in priced),
            "subtotal": cart_subtotal(line for _, line in priced),
        },
    }


def _owned_item(item_id: int) -> CartItem:
    item = CartItem.query.filter_by(id=item_id, user_id=current_user().id).first()
    if not item:
        abort_json(404, "not_found", "Cart item not found")
    return item


@bp.get("/cart")
@login_required
def get_cart():
    return _cart_response(current_user().id), 200


@bp.post("/cart/items")
@login_required
def add_to_cart():
    """POST /api/cart/items - {product_id, quantity, price_type}."""
    data = get_json()
    require_fields(data, ["product_id"])

    product_id = get_int(data, "product_id")
    qty = get_int(data, "quantity", minimum=1, default=1)
    price_type = one_of(data.get("price_type", RETAIL), "price_type", PRICE_TYPES)

    product = db.session.get(Product, product_id)
    if not product or not product.is_active:
        abort_json(404, "not_found", "Product not found")

    user_id = current_user().id
    item = CartItem.query.filter_by(user_id=user_id, product_id=product_id, price_type=price_type).first()
    new_qty = qty + (item.quantity if item else 0)
    if product.stock_quantity < new_qty:
        abort_json(409, "conflict", "Out of stock", {"product_id": product_id, "available": product.stock_quantity})

    if item:
        item.quantity = new_qty
    else:
        item = CartItem(user_id=user_id, product_id=product_id, quantity=qty, price_type=price_type)
        db.session.add(item)

    db.session.commit()
    return _cart_response(user_id), 201


@bp.patch("/cart/items/<int:item_id>")
@login_required
def update_cart_item(item_id: int):
    data = get_json()
    require_fields(data, ["quantity"])
    qty = get_int(data, "quantity", minimum=1)

    item = _owned_item(item_id)
    if item.product.stock_quantity < qty:
        abort_json(409, "conflict", "Out of stock", {"product_id": item.product_id, "available": item.product.stock_quantity})

    item.quantity = qty
    db.session.commit()
    return _cart_response(item.user_id), 200


@bp.delete("/cart/items/<int:item_id>")
@login_required
def remove_cart_item(item_id: int):
    item = _owned_item(item_id)
    user_id = item.user_id
    db.session.delete(item)
    db.session.commit()
    return _cart_response(user_id), 200


@bp.delete("/cart")
@login_required
def clear_cart():
    CartItem.query.filter_by(user_id=current_user().id).delete()
    db.session.commit()
    return {"message": "cleared"}, 200
