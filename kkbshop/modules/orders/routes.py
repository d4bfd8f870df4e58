from __future__ import annotations

from flask import Blueprint, current_app

from kkbshop.app.extensions import db
from kkbshop.app.models import Order
from kkbshop.app.common.auth import current_user, login_required
from kkbshop.app.common.errors import abort_json
from kkbshop.modules.orders.service import change_status, order_to_dict

bp = Blueprint("orders", __name__)

CUSTOMER_CANCELLABLE = ("pending", "confirmed")


def _owned_order(order_id: int) -> Order:
    o = Order.query.filter_by(id=order_id, user_id=current_user().id).first()
    if not o:
        abort_json(404, "not_found", "Order not found")
    return o


@bp.get("/orders")
@login_required
def list_orders():
    orders = (
        Order.query.filter_by(user_id=current_user().id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )
    return {"items": [order_to_dict(o) for o in orders]}, 200


@bp.get("/orders/<int:order_id>")
@login_required
def get_order(order_id: int):
    """GET /api/orders/<id> - Order confirmation / detail view."""
    return order_to_dict(_owned_order(order_id), with_items=True), 200


@bp.post("/orders/<int:order_id>/cancel")
@login_required
def cancel_order(order_id: int):
    o = _owned_order(order_id)
    if o.status not in CUSTOMER_CANCELLABLE:
        abort_json(409, "conflict", "Only pending or confirmed orders can be cancelled")

    change_status(o, "cancelled")
    db.session.commit()
    current_app.logger.info("Order %s cancelled by customer", o.order_number)
    return order_to_dict(o, with_items=True), 200
