from __future__ import annotations

import secrets
from collections import Counter
from datetime import datetime
from typing import Optional, Tuple

from kkbshop.app.extensions import db
from kkbshop.app.models import CartItem, Order, OrderItem, Product, PromoCode
from kkbshop.app.common.errors import ApiError, abort_json
from kkbshop.modules.cart.service import load_cart, price_cart
from kkbshop.pricing.policy import CURRENCY, PricingError, Promotion, Quote, quote

PAYMENT_METHODS = ("mtn-momo", "airtel-momo", "visa", "mastercard")
ADDRESS_FIELDS = ("full_name", "phone", "address", "city", "country")
ORDER_NUMBER_PREFIX = "KKB"


def to_promotion(p: PromoCode) -> Promotion:
    return Promotion(
        code=p.code,
        discount_type=p.discount_type,
        discount_value=p.discount_value,
        currency=p.currency,
        is_active=p.is_active,
        start_date=p.start_date,
        end_date=p.end_date,
        max_uses=p.max_uses,
        current_uses=p.current_uses or 0,
    )


def find_promo(code: Optional[str]) -> Optional[PromoCode]:
    """Look up a code case-insensitively; unknown codes are a 400."""
    if not code:
        return None
    promo = PromoCode.query.filter_by(code=code.strip().upper()).first()
    if not promo:
        abort_json(400, "promo_invalid", "Invalid promo code")
    return promo


def build_quote(user_id: int, country: str, delivery_type: str, promo: Optional[PromoCode] = None) -> Tuple[list, Quote]:
    """Price the user's cart; returns the (cart row, priced line) pairs and the quote."""
    priced = price_cart(load_cart(user_id))
    _check_available(priced)
    try:
        q = quote(
            [line for _, line in priced],
            country,
            delivery_type,
            promo=to_promotion(promo) if promo is not None else None,
            now=datetime.utcnow(),
        )
    except PricingError as err:
        raise ApiError.from_pricing(err)
    return priced, q


def generate_order_number() -> str:
    while True:
        number = f"{ORDER_NUMBER_PREFIX}{datetime.utcnow():%Y%m%d}{secrets.token_hex(3).upper()}"
        if not Order.query.filter_by(order_number=number).first():
            return number


def _check_available(priced) -> None:
    for item, _ in priced:
        if not item.product.is_active:
            abort_json(409, "conflict", "Product unavailable", {"product_id": item.product_id})


def _reserve_stock(priced) -> None:
    wanted = Counter()
    for item, line in priced:
        wanted[item.product_id] += line.quantity

    for product_id, qty in wanted.items():
        updated = (
            Product.query.filter(Product.id == product_id, Product.stock_quantity >= qty)
            .update({Product.stock_quantity: Product.stock_quantity - qty}, synchronize_session="fetch")
        )
        if not updated:
            available = db.session.get(Product, product_id).stock_quantity
            abort_json(409, "conflict", "Out of stock", {"product_id": product_id, "available": available})


def _redeem_promo(promo: PromoCode) -> None:
    # Conditional increment so two checkouts cannot both take the last use
    q = PromoCode.query.filter(PromoCode.id == promo.id)
    if promo.max_uses:
        q = q.filter(PromoCode.current_uses < promo.max_uses)
    if not q.update({PromoCode.current_uses: PromoCode.current_uses + 1}, synchronize_session="fetch"):
        abort_json(409, "promo_exhausted", "This promo code has reached its usage limit")


def place_order(
    user_id: int,
    address: dict,
    delivery_type: str,
    payment_method: str,
    promo: Optional[PromoCode] = None,
    customer_notes: Optional[str] = None,
) -> Order:
    """Cart -> order in one transaction.

    Totals are recomputed from stored prices; client-side figures are never trusted.
    """
    try:
        priced, q = build_quote(user_id, address["country"], delivery_type, promo)

        _reserve_stock(priced)
        if promo is not None:
            _redeem_promo(promo)

        order = Order(
            order_number=generate_order_number(),
            user_id=user_id,
            status="pending",
            currency=CURRENCY,
            subtotal=q.subtotal,
            discount_amount=q.discount_amount,
            delivery_fee=q.delivery_fee,
            total_amount=q.total,
            promo_code_id=promo.id if promo is not None else None,
            payment_method=payment_method,
            payment_status="pending",
            delivery_type=q.delivery_type,
            delivery_address=address,
            delivery_provider=q.delivery_provider,
            customer_notes=customer_notes,
        )
        db.session.add(order)
        db.session.flush()

        for _, line in priced:
            db.session.add(
                OrderItem(
                    order_id=order.id,
                    product_id=line.product_id,
                    product_name=line.name,
                    quantity=line.quantity,
                    price_type=line.price_type,
                    unit_price=line.unit_price,
                    subtotal=line.subtotal,
                )
            )

        CartItem.query.filter_by(user_id=user_id).delete()
        db.session.commit()
    except ApiError:
        db.session.rollback()
        raise

    return order
