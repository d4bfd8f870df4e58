from __future__ import annotations

from kkbshop.app.extensions import db
from kkbshop.app.models import Order, OrderItem, Product
from kkbshop.app.common.errors import abort_json

ORDER_STATUSES = ("pending", "confirmed", "dispatched", "delivered", "cancelled")
PAYMENT_STATUSES = ("pending", "completed", "failed")
DELIVERY_PROVIDERS = ("HDL", "FedEx")

# Allowed status moves; delivered and cancelled are terminal
TRANSITIONS = {
    "pending": ("confirmed", "cancelled"),
    "confirmed": ("dispatched", "cancelled"),
    "dispatched": ("delivered",),
    "delivered": (),
    "cancelled": (),
}


def item_to_dict(i: OrderItem) -> dict:
    return {
        "id": i.id,
        "product_id": i.product_id,
        "product_name": i.product_name,
        "quantity": i.quantity,
        "price_type": i.price_type,
        "unit_price": i.unit_price,
        "subtotal": i.subtotal,
    }


def order_to_dict(o: Order, with_items: bool = False) -> dict:
    data = {
        "id": o.id,
        "order_number": o.order_number,
        "user_id": o.user_id,
        "status": o.status,
        "currency": o.currency,
        "subtotal": o.subtotal,
        "discount_amount": o.discount_amount,
        "delivery_fee": o.delivery_fee,
        "total_amount": o.total_amount,
        "promo_code": o.promo_code.code if o.promo_code else None,
        "payment_method": o.payment_method,
        "payment_status": o.payment_status,
        "payment_reference": o.payment_reference,
        "delivery_type": o.delivery_type,
        "delivery_address": o.delivery_address,
        "delivery_provider": o.delivery_provider,
        "tracking_number": o.tracking_number,
        "customer_notes": o.customer_notes,
        "created_at": o.created_at.isoformat() if o.created_at else None,
        "updated_at": o.updated_at.isoformat() if o.updated_at else None,
    }
    if with_items:
        items = OrderItem.query.filter_by(order_id=o.id).order_by(OrderItem.id.asc()).all()
        data["items"] = [item_to_dict(i) for i in items]
    return data


def change_status(order: Order, status: str) -> None:
    """Move `order` to `status`; cancelling puts the stock back."""
    if status == order.status:
        return
    if status not in TRANSITIONS.get(order.status, ()):
        abort_json(409, "conflict", "Invalid status transition", {"from": order.status, "to": status})

    if status == "cancelled":
        for i in OrderItem.query.filter_by(order_id=order.id).all():
            if i.product_id is None:
                continue
            Product.query.filter(Product.id == i.product_id).update(
                {Product.stock_quantity: Product.stock_quantity + i.quantity}, synchronize_session="fetch"
            )
    order.status = status
    db.session.flush()
