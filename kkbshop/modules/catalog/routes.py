from __future__ import annotations

from datetime import datetime
from urllib.parse import quote

from flask import Blueprint, current_app, request

from kkbshop.app.extensions import db
from kkbshop.app.models import Product, Category, PromotionalBanner
from kkbshop.app.common.errors import abort_json
from kkbshop.app.common.validation import get_paging, one_of
from kkbshop.modules.catalog.service import (
    active_discounts,
    category_to_dict,
    product_to_dict,
)
from kkbshop.pricing.policy import PRICE_TYPES, RETAIL

bp = Blueprint("catalog", __name__)

SORTS = ("name", "price-asc", "price-desc")


def whatsapp_link(message: str | None = None) -> str | None:
    number = current_app.config.get("WHATSAPP_NUMBER")
    if not number:
        return None
    url = f"https://wa.me/{number}"
    if message:
        url += f"?text={quote(message)}"
    return url


@bp.get("/categories")
def list_categories():
    categories = Category.query.order_by(Category.name.asc()).all()
    return {"items": [category_to_dict(c) for c in categories]}, 200


@bp.get("/products")
def list_products():
    """GET /api/products - Browse active products.

    Query params:
      - category: category slug
      - origin: e.g. USA
      - featured: "true" for featured products only
      - sort: name | price-asc | price-desc
      - price_type: retail | wholesale (which price the sort uses)
      - limit, offset
    """
    limit, offset = get_paging(current_app.config["DEFAULT_LIMIT"], current_app.config["MAX_LIMIT"])
    category = (request.args.get("category") or "").strip()
    origin = (request.args.get("origin") or "").strip()
    featured = (request.args.get("featured") or "").strip().lower() in ("1", "true", "yes")
    sort = one_of((request.args.get("sort") or "name").strip(), "sort", SORTS)
    price_type = one_of((request.args.get("price_type") or RETAIL).strip(), "price_type", PRICE_TYPES)

    q = Product.query.filter(Product.is_active.is_(True))
    if category:
        q = q.join(Category).filter(Category.slug == category)
    if origin:
        q = q.filter(Product.origin == origin)
    if featured:
        q = q.filter(Product.is_featured.is_(True))

    price_col = Product.retail_price_ugx if price_type == RETAIL else Product.wholesale_price_ugx
    if sort == "price-asc":
        q = q.order_by(price_col.asc(), Product.id.asc())
    elif sort == "price-desc":
        q = q.order_by(price_col.desc(), Product.id.asc())
    else:
        q = q.order_by(Product.name.asc(), Product.id.asc())

    total = q.count()
    products = q.limit(limit).offset(offset).all()
    discounts = active_discounts(p.id for p in products)

    return {
        "items": [product_to_dict(p, discounts.get(p.id)) for p in products],
        "paging": {"limit": limit, "offset": offset, "total": total},
    }, 200


@bp.get("/products/origins")
def list_origins():
    rows = (
        db.session.query(Product.origin)
        .filter(Product.is_active.is_(True), Product.origin.isnot(None))
        .distinct()
        .order_by(Product.origin.asc())
        .all()
    )
    return {"items": [r[0] for r in rows]}, 200


@bp.get("/products/<slug>")
def get_product(slug: str):
    """GET /api/products/<slug> - Product detail page data."""
    p = Product.query.filter_by(slug=slug, is_active=True).first()
    if not p:
        abort_json(404, "not_found", "Product not found")

    data = product_to_dict(p, active_discounts([p.id]).get(p.id), detail=True)
    data["inquiry_url"] = whatsapp_link(f"Hi, I'm interested in {p.name}")
    return data, 200


@bp.get("/banners")
def list_active_banners():
    now = datetime.utcnow()
    banners = (
        PromotionalBanner.query.filter(
            PromotionalBanner.is_active.is_(True),
            PromotionalBanner.start_date <= now,
            PromotionalBanner.end_date >= now,
        )
        .order_by(PromotionalBanner.created_at.desc(), PromotionalBanner.id.desc())
        .all()
    )
    return {
        "items": [
            {
                "id": b.id,
                "title": b.title,
                "description": b.description,
                "image_url": b.image_url,
                "link": b.link,
            }
            for b in banners
        ]
    }, 200


@bp.get("/contact")
def contact():
    return {"whatsapp_url": whatsapp_link()}, 200
