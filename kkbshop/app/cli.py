from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

import click
from flask import Blueprint
from werkzeug.security import generate_password_hash

from kkbshop.app.extensions import db
from kkbshop.app.models import (
    Category,
    NotificationPreference,
    Product,
    Profile,
    PromoCode,
    PromotionalBanner,
    SeasonalDiscount,
)

cli_bp = Blueprint("cli", __name__)

CATEGORIES = [
    ("Skincare", "skincare", "Serums, creams and cleansers."),
    ("Supplements", "supplements", "Vitamins and wellness supplements."),
    ("Body Care", "body-care", "Lotions and body oils."),
]

PRODUCTS = [
    # name, slug, category slug, origin, retail, wholesale, retail usd, wholesale usd, stock, featured
    ("Vitamin C Serum", "vitamin-c-serum", "skincare", "Korea", 85000, 70000, "23.00", "19.00", 40, True),
    ("Collagen Capsules", "collagen-capsules", "supplements", "USA", 120000, 98000, "32.50", "26.50", 60, True),
    ("Shea Body Butter", "shea-body-butter", "body-care", "Uganda", 35000, 28000, "9.50", "7.60", 100, False),
]


def _user(email: str, password: str, full_name: str, is_admin: bool = False) -> None:
    if Profile.query.filter_by(email=email).first():
        return
    user = Profile(
        email=email,
        password_hash=generate_password_hash(password),
        full_name=full_name,
        country="Uganda",
        is_admin=is_admin,
    )
    db.session.add(user)
    db.session.flush()
    db.session.add(NotificationPreference(user_id=user.id))


@cli_bp.cli.command("seed")
def seed_data() -> None:
    """Seed minimal dev data.

    Safe to run multiple times; it will no-op if data exists.
    """
    now = datetime.utcnow()

    _user("admin@example.com", "Admin123!", "Shop Admin", is_admin=True)
    _user("user@example.com", "Password123!", "Demo User")

    for name, slug, description in CATEGORIES:
        if not Category.query.filter_by(slug=slug).first():
            db.session.add(Category(name=name, slug=slug, description=description))
    db.session.flush()

    if Product.query.count() == 0:
        for name, slug, cat, origin, retail, wholesale, retail_usd, wholesale_usd, stock, featured in PRODUCTS:
            db.session.add(
                Product(
                    name=name,
                    slug=slug,
                    description=f"{name} ({origin}).",
                    category_id=Category.query.filter_by(slug=cat).first().id,
                    origin=origin,
                    retail_price_ugx=retail,
                    wholesale_price_ugx=wholesale,
                    retail_price_usd=Decimal(retail_usd),
                    wholesale_price_usd=Decimal(wholesale_usd),
                    stock_quantity=stock,
                    images=[],
                    is_featured=featured,
                )
            )
        db.session.flush()
        serum = Product.query.filter_by(slug="vitamin-c-serum").first()
        db.session.add(
            SeasonalDiscount(
                product_id=serum.id,
                discount_percentage=Decimal("10"),
                start_date=now,
                end_date=now + timedelta(days=30),
                banner_text="10% off Vitamin C this month",
            )
        )

    if not PromoCode.query.filter_by(code="GLOW10").first():
        db.session.add(
            PromoCode(
                code="GLOW10",
                discount_type="percentage",
                discount_value=Decimal("10"),
                influencer_name="Demo Influencer",
                influencer_commission_rate=Decimal("5"),
                start_date=now,
                end_date=now + timedelta(days=90),
                max_uses=100,
            )
        )

    if PromotionalBanner.query.count() == 0:
        db.session.add(
            PromotionalBanner(
                title="Free delivery in Uganda",
                description="On orders over UGX 500,000",
                start_date=now,
                end_date=now + timedelta(days=30),
            )
        )

    db.session.commit()
    click.echo("Seed complete. Admin: admin@example.com / Admin123!  Customer: user@example.com / Password123!")
