"""Checkout pricing policy.

Pure functions over plain values: no Flask, no database. Every total the shop
shows or charges (cart summary, checkout quote, placed order) goes through
here so the arithmetic lives in exactly one place.

All amounts are whole Ugandan shillings (UGX has no minor unit).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional

CURRENCY = "UGX"

RETAIL = "retail"
WHOLESALE = "wholesale"
PRICE_TYPES = (RETAIL, WHOLESALE)

PERCENTAGE = "percentage"
FIXED = "fixed"
DISCOUNT_TYPES = (PERCENTAGE, FIXED)

FREE = "free"
NORMAL = "normal"
EXPRESS = "express"
DELIVERY_TYPES = (FREE, NORMAL, EXPRESS)

DOMESTIC_COUNTRY = "Uganda"
FREE_DELIVERY_THRESHOLD = 500_000
DOMESTIC_DELIVERY_FEE = 20_000
INTERNATIONAL_NORMAL_FEE = 50_000
INTERNATIONAL_EXPRESS_FEE = 100_000

DOMESTIC_PROVIDER = "HDL"
INTERNATIONAL_PROVIDER = "FedEx"


class PricingError(ValueError):
    """A pricing input was rejected (bad promo, unavailable delivery, ...)."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


def _round_ugx(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class PricedLine:
    product_id: int
    name: str
    price_type: str
    unit_price: int
    quantity: int

    @property
    def subtotal(self) -> int:
        return self.unit_price * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "price_type": self.price_type,
            "unit_price": self.unit_price,
            "quantity": self.quantity,
            "subtotal": self.subtotal,
        }


@dataclass(frozen=True)
class Promotion:
    code: str
    discount_type: str
    discount_value: Decimal
    currency: str = CURRENCY
    is_active: bool = True
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    max_uses: Optional[int] = None
    current_uses: int = 0

    def check(self, now: datetime) -> None:
        """Raise PricingError unless the code can be redeemed at `now`."""
        if not self.is_active:
            raise PricingError("promo_inactive", "Invalid promo code")
        if self.start_date is not None and now < self.start_date:
            raise PricingError("promo_not_started", "This promo code is not active yet")
        if self.end_date is not None and now > self.end_date:
            raise PricingError("promo_expired", "This promo code has expired")
        if self.max_uses and self.current_uses >= self.max_uses:
            raise PricingError("promo_exhausted", "This promo code has reached its usage limit")


@dataclass(frozen=True)
class DeliveryOption:
    delivery_type: str
    fee: int
    label: str
    eta: str

    def to_dict(self) -> Dict[str, Any]:
        return {"delivery_type": self.delivery_type, "fee": self.fee, "label": self.label, "eta": self.eta}


@dataclass(frozen=True)
class Quote:
    lines: List[PricedLine]
    subtotal: int
    discount_amount: int
    delivery_type: str
    delivery_fee: int
    delivery_provider: str
    total: int
    currency: str = CURRENCY
    promo_code: Optional[str] = None
    options: List[DeliveryOption] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currency": self.currency,
            "lines": [line.to_dict() for line in self.lines],
            "subtotal": self.subtotal,
            "promo_code": self.promo_code,
            "discount_amount": self.discount_amount,
            "delivery_type": self.delivery_type,
            "delivery_fee": self.delivery_fee,
            "delivery_provider": self.delivery_provider,
            "delivery_options": [o.to_dict() for o in self.options],
            "total": self.total,
        }


def unit_price(
    retail: int,
    wholesale: int,
    price_type: str,
    discount_percentage: Optional[Decimal] = None,
) -> int:
    if price_type == RETAIL:
        base = retail
    elif price_type == WHOLESALE:
        base = wholesale
    else:
        raise PricingError("invalid_price_type", f"price_type must be one of {', '.join(PRICE_TYPES)}")

    if not discount_percentage:
        return base
    pct = min(max(Decimal(discount_percentage), Decimal("0")), Decimal("100"))
    return _round_ugx(Decimal(base) * (Decimal("100") - pct) / Decimal("100"))


def cart_subtotal(lines: Iterable[PricedLine]) -> int:
    return sum(line.subtotal for line in lines)


def promo_discount(subtotal: int, promo: Promotion, currency: str = CURRENCY) -> int:
    """Discount for `subtotal`, clamped so it never exceeds the subtotal."""
    value = Decimal(promo.discount_value)
    if value < 0:
        raise PricingError("promo_invalid", "Promo discount cannot be negative")

    if promo.discount_type == PERCENTAGE:
        discount = _round_ugx(Decimal(subtotal) * min(value, Decimal("100")) / Decimal("100"))
    elif promo.discount_type == FIXED:
        if promo.currency != currency:
            raise PricingError("promo_currency", f"This promo code only applies to {promo.currency} orders")
        discount = _round_ugx(value)
    else:
        raise PricingError("promo_invalid", f"Unknown discount type {promo.discount_type!r}")

    return max(0, min(discount, subtotal))


def is_domestic(country: Optional[str]) -> bool:
    return (country or "").strip().lower() == DOMESTIC_COUNTRY.lower()


def delivery_provider(country: Optional[str]) -> str:
    return DOMESTIC_PROVIDER if is_domestic(country) else INTERNATIONAL_PROVIDER


def delivery_options(country: Optional[str], subtotal: int) -> List[DeliveryOption]:
    if is_domestic(country):
        options = []
        if subtotal >= FREE_DELIVERY_THRESHOLD:
            options.append(DeliveryOption(FREE, 0, "Free Delivery", f"Orders over {CURRENCY} {FREE_DELIVERY_THRESHOLD:,}"))
        options.append(DeliveryOption(NORMAL, delivery_fee(country, subtotal, NORMAL), "Normal Delivery", "5-7 business days"))
        return options

    return [
        DeliveryOption(NORMAL, INTERNATIONAL_NORMAL_FEE, "Normal Delivery", "5-7 business days"),
        DeliveryOption(EXPRESS, INTERNATIONAL_EXPRESS_FEE, "Express Delivery", "2-3 business days"),
    ]


def delivery_fee(country: Optional[str], subtotal: int, delivery_type: str) -> int:
    if delivery_type not in DELIVERY_TYPES:
        raise PricingError("invalid_delivery_type", f"delivery_type must be one of {', '.join(DELIVERY_TYPES)}")

    if is_domestic(country):
        if delivery_type == EXPRESS:
            raise PricingError("delivery_unavailable", "Express delivery is only offered for international orders")
        if subtotal >= FREE_DELIVERY_THRESHOLD:
            return 0
        if delivery_type == FREE:
            raise PricingError(
                "delivery_unavailable",
                f"Free delivery requires a subtotal of at least {CURRENCY} {FREE_DELIVERY_THRESHOLD:,}",
            )
        return DOMESTIC_DELIVERY_FEE

    if delivery_type == FREE:
        raise PricingError("delivery_unavailable", "Free delivery is only offered within Uganda")
    return INTERNATIONAL_EXPRESS_FEE if delivery_type == EXPRESS else INTERNATIONAL_NORMAL_FEE


def quote(
    lines: Iterable[PricedLine],
    country: Optional[str],
    delivery_type: str,
    promo: Optional[Promotion] = None,
    now: Optional[datetime] = None,
) -> Quote:
    """Itemized total: subtotal - discount + delivery fee."""
    lines = list(lines)
    if not lines:
        raise PricingError("empty_cart", "Cart is empty")

    subtotal = cart_subtotal(lines)
    discount = 0
    if promo is not None:
        promo.check(now or datetime.utcnow())
        discount = promo_discount(subtotal, promo)

    fee = delivery_fee(country, subtotal, delivery_type)
    total = subtotal - discount + fee

    return Quote(
        lines=lines,
        subtotal=subtotal,
        discount_amount=discount,
        delivery_type=delivery_type,
        delivery_fee=fee,
        delivery_provider=delivery_provider(country),
        total=total,
        promo_code=promo.code if promo is not None else None,
        options=delivery_options(country, subtotal),
    )
