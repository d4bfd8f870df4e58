from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, Optional

from kkbshop.app.models import Product, SeasonalDiscount, Category
from kkbshop.pricing.policy import RETAIL, WHOLESALE, unit_price


def active_discounts(product_ids: Iterable[int], now: Optional[datetime] = None) -> Dict[int, SeasonalDiscount]:
    """Best running seasonal discount per product id."""
    ids = list(set(product_ids))
    if not ids:
        return {}
    now = now or datetime.utcnow()

    rows = (
        SeasonalDiscount.query.filter(
            SeasonalDiscount.product_id.in_(ids),
            SeasonalDiscount.is_active.is_(True),
            SeasonalDiscount.start_date <= now,
            SeasonalDiscount.end_date >= now,
        )
        .order_by(SeasonalDiscount.discount_percentage.desc(), SeasonalDiscount.id.asc())
        .all()
    )
    best: Dict[int, SeasonalDiscount] = {}
    for d in rows:
        best.setdefault(d.product_id, d)
    return best


def priced_unit(product: Product, price_type: str, discount: Optional[SeasonalDiscount] = None) -> int:
    pct = discount.discount_percentage if discount is not None else None
    return unit_price(product.retail_price_ugx, product.wholesale_price_ugx, price_type, pct)


def category_to_dict(c: Category) -> dict:
    return {
        "id": c.id,
        "name": c.name,
        "slug": c.slug,
        "description": c.description,
    }


def discount_to_dict(d: SeasonalDiscount) -> dict:
    return {
        "id": d.id,
        "product_id": d.product_id,
        "discount_percentage": float(d.discount_percentage),
        "start_date": d.start_date.isoformat(),
        "end_date": d.end_date.isoformat(),
        "is_active": d.is_active,
        "banner_text": d.banner_text,
    }


def product_to_dict(p: Product, discount: Optional[SeasonalDiscount] = None, detail: bool = False) -> dict:
    data = {
        "id": p.id,
        "name": p.name,
        "slug": p.slug,
        "category_id": p.category_id,
        "origin": p.origin,
        "retail_price_ugx": p.retail_price_ugx,
        "wholesale_price_ugx": p.wholesale_price_ugx,
        "retail_price_usd": float(p.retail_price_usd or 0),
        "wholesale_price_usd": float(p.wholesale_price_usd or 0),
        "sale_retail_price_ugx": priced_unit(p, RETAIL, discount),
        "sale_wholesale_price_ugx": priced_unit(p, WHOLESALE, discount),
        "stock_quantity": p.stock_quantity,
        "images": p.images or [],
        "is_featured": p.is_featured,
        "is_active": p.is_active,
        "discount": discount_to_dict(discount) if discount is not None else None,
    }
    if detail:
        data["description"] = p.description
        data["category"] = category_to_dict(p.category) if p.category else None
        data["created_at"] = p.created_at.isoformat() if p.created_at else None
        data["updated_at"] = p.updated_at.isoformat() if p.updated_at else None
    return data
