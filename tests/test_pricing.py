# Pure pricing policy: no app, no database.

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from kkbshop.pricing.policy import (
    PricedLine,
    PricingError,
    Promotion,
    cart_subtotal,
    delivery_fee,
    delivery_options,
    delivery_provider,
    is_domestic,
    promo_discount,
    quote,
    unit_price,
)

NOW = datetime(2026, 10, 19, 12, 0, 0)


def line(unit, qty=1, price_type="retail", product_id=1):
    return PricedLine(product_id=product_id, name=f"P{product_id}", price_type=price_type, unit_price=unit, quantity=qty)


def promo(discount_type="percentage", value="10", **kwargs):
    return Promotion(code="CODE", discount_type=discount_type, discount_value=Decimal(value), **kwargs)


# PRICE-001: retail vs wholesale price selection
def test_unit_price_picks_price_type():
    assert unit_price(100000, 80000, "retail") == 100000
    assert unit_price(100000, 80000, "wholesale") == 80000


# PRICE-002: seasonal discount reduces the unit price, rounded half-up
def test_unit_price_applies_seasonal_discount():
    assert unit_price(100000, 80000, "retail", Decimal("15")) == 85000
    assert unit_price(99999, 80000, "retail", Decimal("12.5")) == 87499  # 87499.125
    assert unit_price(5, 4, "retail", Decimal("50")) == 3  # 2.5 rounds up


def test_unit_price_rejects_unknown_type():
    with pytest.raises(PricingError) as exc:
        unit_price(100, 80, "vip")
    assert exc.value.code == "invalid_price_type"


def test_cart_subtotal_sums_lines():
    assert cart_subtotal([line(100000, 2), line(250000, 1, product_id=2)]) == 450000
    assert cart_subtotal([]) == 0


# PRICE-003: percentage and fixed promo discounts
def test_percentage_discount():
    assert promo_discount(450000, promo("percentage", "10")) == 45000
    assert promo_discount(333, promo("percentage", "10")) == 33


def test_fixed_discount():
    assert promo_discount(450000, promo("fixed", "5000")) == 5000


# PRICE-004: discount never exceeds the subtotal
def test_discount_is_clamped_to_subtotal():
    assert promo_discount(20000, promo("fixed", "50000")) == 20000
    assert promo_discount(20000, promo("percentage", "150")) == 20000


def test_fixed_discount_in_other_currency_rejected():
    with pytest.raises(PricingError) as exc:
        promo_discount(100000, promo("fixed", "5", currency="USD"))
    assert exc.value.code == "promo_currency"


# PRICE-005: promo redemption window and usage limits
@pytest.mark.parametrize(
    "kwargs, code",
    [
        ({"is_active": False}, "promo_inactive"),
        ({"start_date": NOW + timedelta(days=1)}, "promo_not_started"),
        ({"end_date": NOW - timedelta(seconds=1)}, "promo_expired"),
        ({"max_uses": 3, "current_uses": 3}, "promo_exhausted"),
    ],
)
def test_promo_check_rejections(kwargs, code):
    with pytest.raises(PricingError) as exc:
        promo(**kwargs).check(NOW)
    assert exc.value.code == code


def test_promo_check_accepts_open_code():
    promo(start_date=NOW - timedelta(days=1), end_date=NOW + timedelta(days=1), max_uses=3, current_uses=2).check(NOW)
    # max_uses of None/0 means unlimited
    promo(max_uses=None, current_uses=1000).check(NOW)
    promo(max_uses=0, current_uses=1000).check(NOW)


# PRICE-006: delivery fee tiers
def test_domestic_delivery_fee_below_threshold():
    assert delivery_fee("Uganda", 499999, "normal") == 20000


def test_domestic_delivery_is_free_at_threshold():
    assert delivery_fee("Uganda", 500000, "normal") == 0
    assert delivery_fee("Uganda", 500000, "free") == 0


def test_domestic_country_matching_is_case_insensitive():
    assert is_domestic("  uganda ")
    assert not is_domestic("Kenya")
    assert not is_domestic(None)


def test_international_delivery_fees():
    assert delivery_fee("Kenya", 10, "normal") == 50000
    assert delivery_fee("Kenya", 10_000_000, "express") == 100000


@pytest.mark.parametrize(
    "country, subtotal, delivery_type",
    [
        ("Uganda", 100000, "free"),
        ("Uganda", 100000, "express"),
        ("Kenya", 10_000_000, "free"),
    ],
)
def test_unavailable_delivery_rejected(country, subtotal, delivery_type):
    with pytest.raises(PricingError) as exc:
        delivery_fee(country, subtotal, delivery_type)
    assert exc.value.code == "delivery_unavailable"


def test_unknown_delivery_type_rejected():
    with pytest.raises(PricingError) as exc:
        delivery_fee("Uganda", 100, "drone")
    assert exc.value.code == "invalid_delivery_type"


def test_delivery_options():
    assert [o.delivery_type for o in delivery_options("Uganda", 100000)] == ["normal"]
    assert [(o.delivery_type, o.fee) for o in delivery_options("Uganda", 600000)] == [("free", 0), ("normal", 0)]
    assert [(o.delivery_type, o.fee) for o in delivery_options("Kenya", 600000)] == [
        ("normal", 50000),
        ("express", 100000),
    ]


def test_delivery_provider():
    assert delivery_provider("Uganda") == "HDL"
    assert delivery_provider("United Kingdom") == "FedEx"


# PRICE-007: itemized quote
def test_quote_domestic_with_percentage_promo():
    q = quote([line(100000, 2), line(250000, 1, product_id=2)], "Uganda", "normal", promo("percentage", "10"), now=NOW)
    assert q.subtotal == 450000
    assert q.discount_amount == 45000
    assert q.delivery_fee == 20000
    assert q.total == 425000
    assert q.delivery_provider == "HDL"
    assert q.currency == "UGX"
    assert q.promo_code == "CODE"


def test_quote_threshold_uses_subtotal_before_discount():
    q = quote([line(500000)], "Uganda", "normal", promo("fixed", "100000"), now=NOW)
    assert q.delivery_fee == 0
    assert q.total == 400000


def test_quote_international_express():
    q = quote([line(80000, 3, price_type="wholesale")], "Kenya", "express", now=NOW)
    assert q.subtotal == 240000
    assert q.discount_amount == 0
    assert q.total == 340000
    assert q.delivery_provider == "FedEx"


def test_quote_total_never_negative():
    q = quote([line(1000)], "Uganda", "normal", promo("fixed", "999999"), now=NOW)
    assert q.discount_amount == 1000
    assert q.total == 20000


def test_quote_rejects_expired_promo():
    with pytest.raises(PricingError) as exc:
        quote([line(1000)], "Uganda", "normal", promo(end_date=NOW - timedelta(days=1)), now=NOW)
    assert exc.value.code == "promo_expired"


def test_quote_rejects_empty_cart():
    with pytest.raises(PricingError) as exc:
        quote([], "Uganda", "normal")
    assert exc.value.code == "empty_cart"


def test_quote_to_dict():
    data = quote([line(100000)], "Uganda", "normal", now=NOW).to_dict()
    assert data["total"] == 120000
    assert data["lines"][0]["subtotal"] == 100000
    assert data["delivery_options"][0]["delivery_type"] == "normal"
