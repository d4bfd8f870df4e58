from __future__ import annotations

import re
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP

from flask import Blueprint, current_app, request
from sqlalchemy import func

from kkbshop.app.extensions import db
from kkbshop.app.models import (
    Category,
    Order,
    Product,
    PromoCode,
    PromotionalBanner,
    SeasonalDiscount,
)
from kkbshop.app.common.auth import admin_required
from kkbshop.app.common.errors import abort_json
from kkbshop.app.common.validation import (
    get_bool,
    get_datetime,
    get_decimal,
    get_int,
    get_json,
    get_paging,
    get_str,
    one_of,
    require_fields,
)
from kkbshop.modules.catalog.service import active_discounts, category_to_dict, discount_to_dict, product_to_dict
from kkbshop.modules.orders.service import (
    DELIVERY_PROVIDERS,
    ORDER_STATUSES,
    PAYMENT_STATUSES,
    change_status,
    order_to_dict,
)
from kkbshop.pricing.policy import DISCOUNT_TYPES

bp = Blueprint("admin", __name__)


def slugify(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")


def _get_or_404(model, obj_id: int, label: str):
    obj = db.session.get(model, obj_id)
    if not obj:
        abort_json(404, "not_found", f"{label} not found")
    return obj


def _check_window(start: datetime, end: datetime) -> None:
    if end < start:
        abort_json(400, "validation_error", "'end_date' must not be before 'start_date'")


# --- Dashboard ---
@bp.get("/admin/dashboard")
@admin_required
def dashboard():
    revenue = (
        db.session.query(func.coalesce(func.sum(Order.total_amount), 0))
        .filter(Order.payment_status == "completed")
        .scalar()
    )
    return {
        "total_products": Product.query.count(),
        "total_orders": Order.query.count(),
        "pending_orders": Order.query.filter_by(status="pending").count(),
        "total_revenue": int(revenue or 0),
    }, 200


# --- Banners ---
def banner_to_dict(b: PromotionalBanner) -> dict:
    return {
        "id": b.id,
        "title": b.title,
        "description": b.description,
        "image_url": b.image_url,
        "link": b.link,
        "start_date": b.start_date.isoformat(),
        "end_date": b.end_date.isoformat(),
        "is_active": b.is_active,
        "created_at": b.created_at.isoformat() if b.created_at else None,
    }


def _apply_banner(b: PromotionalBanner, data: dict, partial: bool) -> None:
    if not partial or "title" in data:
        title = get_str(data, "title", 200)
        if not title:
            abort_json(400, "validation_error", "'title' is required")
        b.title = title
    for field in ("description", "image_url", "link"):
        if not partial or field in data:
            setattr(b, field, get_str(data, field))
    if not partial or "start_date" in data:
        b.start_date = get_datetime(data, "start_date") or datetime.utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
    if not partial or "end_date" in data:
        b.end_date = get_datetime(data, "end_date", end_of_day=True) or b.start_date + timedelta(days=7)
    if "is_active" in data:
        b.is_active = get_bool(data, "is_active")
    _check_window(b.start_date, b.end_date)


@bp.get("/admin/banners")
@admin_required
def list_banners():
    banners = PromotionalBanner.query.order_by(PromotionalBanner.created_at.desc(), PromotionalBanner.id.desc()).all()
    return {"items": [banner_to_dict(b) for b in banners]}, 200


@bp.post("/admin/banners")
@admin_required
def create_banner():
    data = get_json()
    b = PromotionalBanner(is_active=True)
    _apply_banner(b, data, partial=False)
    db.session.add(b)
    db.session.commit()
    return banner_to_dict(b), 201


@bp.patch("/admin/banners/<int:banner_id>")
@admin_required
def update_banner(banner_id: int):
    b = _get_or_404(PromotionalBanner, banner_id, "Banner")
    _apply_banner(b, get_json(), partial=True)
    db.session.commit()
    return banner_to_dict(b), 200


@bp.delete("/admin/banners/<int:banner_id>")
@admin_required
def delete_banner(banner_id: int):
    b = _get_or_404(PromotionalBanner, banner_id, "Banner")
    db.session.delete(b)
    db.session.commit()
    return {"message": "deleted"}, 200


# --- Categories ---
@bp.post("/admin/categories")
@admin_required
def create_category():
    data = get_json()
    require_fields(data, ["name"])
    name = get_str(data, "name", 100)
    slug = slugify(get_str(data, "slug", 120) or name)
    if not slug:
        abort_json(400, "validation_error", "'slug' cannot be empty")
    if Category.query.filter_by(slug=slug).first():
        abort_json(409, "conflict", "Category slug already exists")

    c = Category(name=name, slug=slug, description=get_str(data, "description"))
    db.session.add(c)
    db.session.commit()
    return category_to_dict(c), 201


# --- Products ---
def _apply_product(p: Product, data: dict, partial: bool) -> None:
    if not partial or "name" in data:
        name = get_str(data, "name", 255)
        if not name:
            abort_json(400, "validation_error", "'name' is required")
        p.name = name
    if not partial or "slug" in data:
        slug = slugify(get_str(data, "slug", 255) or p.name)
        if not slug:
            abort_json(400, "validation_error", "'slug' cannot be empty")
        clash = Product.query.filter(Product.slug == slug, Product.id != p.id).first()
        if clash:
            abort_json(409, "conflict", "Product slug already exists")
        p.slug = slug
    for field in ("description", "origin"):
        if field in data:
            setattr(p, field, get_str(data, field))
    if "category_id" in data:
        category_id = get_int(data, "category_id")
        if category_id is not None:
            _get_or_404(Category, category_id, "Category")
        p.category_id = category_id
    for field in ("retail_price_ugx", "wholesale_price_ugx"):
        if not partial or field in data:
            value = get_int(data, field, minimum=0)
            if value is None:
                abort_json(400, "validation_error", f"'{field}' is required")
            setattr(p, field, value)
    for field in ("retail_price_usd", "wholesale_price_usd"):
        if field in data:
            setattr(p, field, get_decimal(data, field, minimum=Decimal("0")) or Decimal("0"))
    if "stock_quantity" in data:
        p.stock_quantity = get_int(data, "stock_quantity", minimum=0) or 0
    if "images" in data:
        images = data["images"] or []
        if not isinstance(images, list) or not all(isinstance(i, str) for i in images):
            abort_json(400, "validation_error", "'images' must be a list of URLs")
        p.images = images
    for field in ("is_featured", "is_active"):
        if field in data:
            setattr(p, field, bool(get_bool(data, field)))


@bp.get("/admin/products")
@admin_required
def list_products():
    limit, offset = get_paging(current_app.config["DEFAULT_LIMIT"], current_app.config["MAX_LIMIT"])
    q = Product.query.order_by(Product.id.desc())
    total = q.count()
    products = q.limit(limit).offset(offset).all()
    discounts = active_discounts(p.id for p in products)
    return {
        "items": [product_to_dict(p, discounts.get(p.id)) for p in products],
        "paging": {"limit": limit, "offset": offset, "total": total},
    }, 200


@bp.post("/admin/products")
@admin_required
def create_product():
    data = get_json()
    p = Product(stock_quantity=0, images=[], is_featured=False, is_active=True)
    _apply_product(p, data, partial=False)
    db.session.add(p)
    db.session.commit()
    return product_to_dict(p, detail=True), 201


@bp.patch("/admin/products/<int:product_id>")
@admin_required
def update_product(product_id: int):
    p = _get_or_404(Product, product_id, "Product")
    _apply_product(p, get_json(), partial=True)
    db.session.commit()
    return product_to_dict(p, detail=True), 200


@bp.delete("/admin/products/<int:product_id>")
@admin_required
def deactivate_product(product_id: int):
    """Soft delete: order history keeps pointing at the product."""
    p = _get_or_404(Product, product_id, "Product")
    p.is_active = False
    db.session.commit()
    return {"id": p.id, "is_active": p.is_active}, 200


# --- Promo codes ---
def promo_to_dict(p: PromoCode) -> dict:
    return {
        "id": p.id,
        "code": p.code,
        "discount_type": p.discount_type,
        "discount_value": float(p.discount_value),
        "currency": p.currency,
        "influencer_name": p.influencer_name,
        "influencer_commission_rate": float(p.influencer_commission_rate or 0),
        "start_date": p.start_date.isoformat(),
        "end_date": p.end_date.isoformat(),
        "max_uses": p.max_uses,
        "current_uses": p.current_uses,
        "is_active": p.is_active,
    }


def _apply_promo(p: PromoCode, data: dict, partial: bool) -> None:
    if not partial:
        require_fields(data, ["code", "discount_type", "discount_value", "start_date", "end_date"])
    if "code" in data:
        code = (get_str(data, "code", 50) or "").upper()
        if not code:
            abort_json(400, "validation_error", "'code' cannot be empty")
        clash = PromoCode.query.filter(PromoCode.code == code, PromoCode.id != p.id).first()
        if clash:
            abort_json(409, "conflict", "Promo code already exists")
        p.code = code
    if "discount_type" in data:
        p.discount_type = one_of(data["discount_type"], "discount_type", DISCOUNT_TYPES)
    if "discount_value" in data:
        p.discount_value = get_decimal(data, "discount_value", minimum=Decimal("0"))
        if p.discount_value is None:
            abort_json(400, "validation_error", "'discount_value' is required")
    if p.discount_type == "percentage" and p.discount_value is not None and Decimal(p.discount_value) > 100:
        abort_json(400, "validation_error", "Percentage discounts cannot exceed 100")
    if "currency" in data:
        p.currency = one_of(data["currency"], "currency", ("UGX", "USD"))
    if "influencer_name" in data:
        p.influencer_name = get_str(data, "influencer_name", 200)
    if "influencer_commission_rate" in data:
        p.influencer_commission_rate = get_decimal(
            data, "influencer_commission_rate", minimum=Decimal("0"), maximum=Decimal("100")
        ) or Decimal("0")
    if "start_date" in data:
        p.start_date = get_datetime(data, "start_date")
    if "end_date" in data:
        p.end_date = get_datetime(data, "end_date", end_of_day=True)
    if "max_uses" in data:
        p.max_uses = get_int(data, "max_uses", minimum=1)
    if "is_active" in data:
        p.is_active = bool(get_bool(data, "is_active"))
    _check_window(p.start_date, p.end_date)


@bp.get("/admin/promo-codes")
@admin_required
def list_promo_codes():
    promos = PromoCode.query.order_by(PromoCode.created_at.desc(), PromoCode.id.desc()).all()
    return {"items": [promo_to_dict(p) for p in promos]}, 200


@bp.post("/admin/promo-codes")
@admin_required
def create_promo_code():
    data = get_json()
    p = PromoCode(currency="UGX", current_uses=0, is_active=True, influencer_commission_rate=Decimal("0"))
    _apply_promo(p, data, partial=False)
    db.session.add(p)
    db.session.commit()
    return promo_to_dict(p), 201


@bp.patch("/admin/promo-codes/<int:promo_id>")
@admin_required
def update_promo_code(promo_id: int):
    p = _get_or_404(PromoCode, promo_id, "Promo code")
    _apply_promo(p, get_json(), partial=True)
    db.session.commit()
    return promo_to_dict(p), 200


@bp.get("/admin/promo-codes/<int:promo_id>/report")
@admin_required
def promo_code_report(promo_id: int):
    """Redemptions and influencer commission for one code (cancelled orders excluded)."""
    p = _get_or_404(PromoCode, promo_id, "Promo code")
    orders, revenue, discounts = (
        db.session.query(
            func.count(Order.id),
            func.coalesce(func.sum(Order.total_amount), 0),
            func.coalesce(func.sum(Order.discount_amount), 0),
        )
        .filter(Order.promo_code_id == p.id, Order.status != "cancelled")
        .one()
    )
    rate = Decimal(p.influencer_commission_rate or 0)
    commission = int((Decimal(revenue) * rate / Decimal("100")).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return {
        **promo_to_dict(p),
        "orders": orders,
        "revenue": int(revenue),
        "discount_given": int(discounts),
        "commission": commission,
    }, 200


# --- Seasonal discounts ---
def _apply_discount(d: SeasonalDiscount, data: dict, partial: bool) -> None:
    if not partial:
        require_fields(data, ["product_id", "discount_percentage", "start_date", "end_date"])
    if "product_id" in data:
        d.product_id = _get_or_404(Product, get_int(data, "product_id"), "Product").id
    if "discount_percentage" in data:
        pct = get_decimal(data, "discount_percentage", minimum=Decimal("0"), maximum=Decimal("100"))
        if pct is None:
            abort_json(400, "validation_error", "'discount_percentage' is required")
        d.discount_percentage = pct
    if "start_date" in data:
        d.start_date = get_datetime(data, "start_date")
    if "end_date" in data:
        d.end_date = get_datetime(data, "end_date", end_of_day=True)
    if "banner_text" in data:
        d.banner_text = get_str(data, "banner_text", 255)
    if "is_active" in data:
        d.is_active = bool(get_bool(data, "is_active"))
    _check_window(d.start_date, d.end_date)


@bp.get("/admin/discounts")
@admin_required
def list_discounts():
    rows = SeasonalDiscount.query.order_by(SeasonalDiscount.start_date.desc(), SeasonalDiscount.id.desc()).all()
    return {"items": [discount_to_dict(d) for d in rows]}, 200


@bp.post("/admin/discounts")
@admin_required
def create_discount():
    d = SeasonalDiscount(is_active=True)
    _apply_discount(d, get_json(), partial=False)
    db.session.add(d)
    db.session.commit()
    return discount_to_dict(d), 201


@bp.patch("/admin/discounts/<int:discount_id>")
@admin_required
def update_discount(discount_id: int):
    d = _get_or_404(SeasonalDiscount, discount_id, "Discount")
    _apply_discount(d, get_json(), partial=True)
    db.session.commit()
    return discount_to_dict(d), 200


@bp.delete("/admin/discounts/<int:discount_id>")
@admin_required
def delete_discount(discount_id: int):
    d = _get_or_404(SeasonalDiscount, discount_id, "Discount")
    db.session.delete(d)
    db.session.commit()
    return {"message": "deleted"}, 200


# --- Orders ---
@bp.get("/admin/orders")
@admin_required
def list_orders():
    limit, offset = get_paging(current_app.config["DEFAULT_LIMIT"], current_app.config["MAX_LIMIT"])
    status = (request.args.get("status") or "").strip()

    q = Order.query
    if status:
        q = q.filter_by(status=one_of(status, "status", ORDER_STATUSES))
    q = q.order_by(Order.created_at.desc(), Order.id.desc())

    total = q.count()
    orders = q.limit(limit).offset(offset).all()
    return {
        "items": [order_to_dict(o) | {"admin_notes": o.admin_notes} for o in orders],
        "paging": {"limit": limit, "offset": offset, "total": total},
    }, 200


@bp.patch("/admin/orders/<int:order_id>")
@admin_required
def update_order(order_id: int):
    """Fulfilment updates: status, payment, tracking, provider, notes."""
    o = _get_or_404(Order, order_id, "Order")
    data = get_json()

    if "status" in data:
        new_status = one_of(data["status"], "status", ORDER_STATUSES)
        old_status = o.status
        change_status(o, new_status)
        if old_status != new_status:
            current_app.logger.info("Order %s status %s -> %s", o.order_number, old_status, new_status)
    if "payment_status" in data:
        o.payment_status = one_of(data["payment_status"], "payment_status", PAYMENT_STATUSES)
    if "payment_reference" in data:
        o.payment_reference = get_str(data, "payment_reference", 100)
    if "tracking_number" in data:
        o.tracking_number = get_str(data, "tracking_number", 100)
    if "delivery_provider" in data:
        o.delivery_provider = one_of(data["delivery_provider"], "delivery_provider", DELIVERY_PROVIDERS)
    if "admin_notes" in data:
        o.admin_notes = get_str(data, "admin_notes")

    db.session.commit()
    return order_to_dict(o, with_items=True) | {"admin_notes": o.admin_notes}, 200
