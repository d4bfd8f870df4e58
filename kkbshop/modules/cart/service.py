from __future__ import annotations

from typing import List, Tuple

from kkbshop.app.models import CartItem
from kkbshop.modules.catalog.service import active_discounts, priced_unit
from kkbshop.pricing.policy import PricedLine


def load_cart(user_id: int) -> List[CartItem]:
    return CartItem.query.filter_by(user_id=user_id).order_by(CartItem.id.asc()).all()


def price_cart(items: List[CartItem]) -> List[Tuple[CartItem, PricedLine]]:
    """Pair each cart row with its current price (seasonal discounts applied)."""
    discounts = active_discounts(i.product_id for i in items)
    return [
        (
            item,
            PricedLine(
                product_id=item.product_id,
                name=item.product.name,
                price_type=item.price_type,
                unit_price=priced_unit(item.product, item.price_type, discounts.get(item.product_id)),
                quantity=item.quantity,
            ),
        )
        for item in items
    ]
