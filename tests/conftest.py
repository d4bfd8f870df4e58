import os
import sys
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from werkzeug.security import generate_password_hash

from kkbshop.app.config import Config
from kkbshop.app.factory import create_app
from kkbshop.app.extensions import db
from kkbshop.app.models import Category, NotificationPreference, Product, Profile, PromoCode


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    # In-memory SQLite for tests.
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    WHATSAPP_NUMBER = "256700000000"
    DEFAULT_LIMIT = 12
    MAX_LIMIT = 50


CUSTOMER = {"email": "customer@test.com", "password": "Secret123"}
OTHER = {"email": "other@test.com", "password": "Secret123"}
ADMIN = {"email": "admin@test.com", "password": "Admin123"}


def _profile(email, password, **kwargs):
    user = Profile(email=email, password_hash=generate_password_hash(password), **kwargs)
    db.session.add(user)
    db.session.flush()
    db.session.add(NotificationPreference(user_id=user.id))
    return user


@pytest.fixture()
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def seed(app):
    """Users, a category, products and promo codes; returns their ids."""
    now = datetime.utcnow()
    with app.app_context():
        customer = _profile(CUSTOMER["email"], CUSTOMER["password"], full_name="Test Customer", country="Uganda")
        other = _profile(OTHER["email"], OTHER["password"], full_name="Other Customer", country="Kenya")
        admin = _profile(ADMIN["email"], ADMIN["password"], full_name="Admin", is_admin=True)

        cat = Category(name="Skincare", slug="skincare")
        db.session.add(cat)
        db.session.flush()

        serum = Product(
            name="Serum", slug="serum", category_id=cat.id, origin="Korea",
            retail_price_ugx=100000, wholesale_price_ugx=80000,
            retail_price_usd=Decimal("27.00"), wholesale_price_usd=Decimal("21.50"),
            stock_quantity=10, images=[], is_featured=True,
        )
        cream = Product(
            name="Cream", slug="cream", category_id=cat.id, origin="USA",
            retail_price_ugx=250000, wholesale_price_ugx=200000,
            stock_quantity=5, images=[],
        )
        hidden = Product(
            name="Archived Oil", slug="archived-oil", retail_price_ugx=50000, wholesale_price_ugx=40000,
            stock_quantity=3, images=[], is_active=False,
        )
        db.session.add_all([serum, cream, hidden])

        window = {"start_date": now - timedelta(days=1), "end_date": now + timedelta(days=30)}
        promos = [
            PromoCode(code="PCT10", discount_type="percentage", discount_value=Decimal("10"),
                      influencer_name="Amina", influencer_commission_rate=Decimal("5"), max_uses=2, **window),
            PromoCode(code="FIX5K", discount_type="fixed", discount_value=Decimal("5000"), **window),
            PromoCode(code="HUGE", discount_type="fixed", discount_value=Decimal("10000000"), **window),
            PromoCode(code="USD5", discount_type="fixed", discount_value=Decimal("5"), currency="USD", **window),
            PromoCode(code="OLD", discount_type="percentage", discount_value=Decimal("20"),
                      start_date=now - timedelta(days=30), end_date=now - timedelta(days=1)),
        ]
        db.session.add_all(promos)
        db.session.commit()

        return {
            "customer_id": customer.id,
            "other_id": other.id,
            "admin_id": admin.id,
            "category_id": cat.id,
            "serum_id": serum.id,
            "cream_id": cream.id,
            "hidden_id": hidden.id,
            "promo_ids": {p.code: p.id for p in promos},
        }


@pytest.fixture()
def client(app):
    return app.test_client()


def login(client, creds=CUSTOMER):
    return client.post("/api/auth/login", json=creds)


@pytest.fixture()
def customer_client(app, seed):
    # No preserved request contexts: tests drive several clients at once.
    c = app.test_client()
    login(c, CUSTOMER)
    return c


@pytest.fixture()
def admin_client(app, seed):
    c = app.test_client()
    login(c, ADMIN)
    return c


ADDRESS = {
    "full_name": "Test Customer",
    "phone": "+256700000001",
    "address": "Plot 1, Kampala Road",
    "city": "Kampala",
    "country": "Uganda",
}


def place_order(client, **overrides):
    payload = {
        "delivery_address": dict(ADDRESS),
        "delivery_type": "normal",
        "payment_method": "mtn-momo",
    }
    payload.update(overrides)
    return client.post("/api/orders", json=payload)
