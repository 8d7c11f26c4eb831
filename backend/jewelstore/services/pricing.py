# Overview: Jewelry price arithmetic (rate x weight + wastage + charges).

"""
Price computation.

    effective_weight = net_weight * (1 + wastage_percent / 100)
    metal_amount     = effective_weight * rate_per_gram
    total_price      = metal_amount + making_charges + stone_value

The breakdown reports effective_weight at 3 decimal places and money at 2
(ROUND_HALF_UP). total_price is computed from the unrounded intermediates
and rounded once at the end.

These functions are pure: no database access, no input guards. Payload
validation rejects negative weights and charges before values get here.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ..money import ZERO, round_money, round_weight, to_decimal


@dataclass(frozen=True)
class PriceCalculation:
    net_weight: Decimal
    wastage_percent: Decimal
    effective_weight: Decimal
    metal_rate_per_gram: Decimal
    metal_amount: Decimal
    making_charges: Decimal
    stone_value: Decimal
    total_price: Decimal

    def to_dict(self) -> dict:
        return {
            "netWeight": float(self.net_weight),
            "wastagePercent": float(self.wastage_percent),
            "effectiveWeight": float(self.effective_weight),
            "metalRatePerGram": float(self.metal_rate_per_gram),
            "metalAmount": float(self.metal_amount),
            "makingCharges": float(self.making_charges),
            "stoneValue": float(self.stone_value),
            "totalPrice": float(self.total_price),
        }


def calculate_product_price(
    net_weight,
    wastage_percent,
    metal_rate_per_gram,
    making_charges,
    stone_value=0,
) -> PriceCalculation:
    net = to_decimal(net_weight)
    wastage = to_decimal(wastage_percent)
    rate = to_decimal(metal_rate_per_gram)
    making = to_decimal(making_charges)
    stones = to_decimal(stone_value)

    effective_weight = net * (1 + wastage / 100)
    metal_amount = effective_weight * rate
    total = metal_amount + making + stones

    return PriceCalculation(
        net_weight=net,
        wastage_percent=wastage,
        effective_weight=round_weight(effective_weight),
        metal_rate_per_gram=rate,
        metal_amount=round_money(metal_amount),
        making_charges=making,
        stone_value=stones,
        total_price=round_money(total),
    )


def price_for_product(product, rate) -> PriceCalculation:
    """Price a Product row against a RateMaster row (or a bare rate per gram)."""
    rate_per_gram = getattr(rate, "rate_per_gram", rate)
    return calculate_product_price(
        net_weight=product.net_weight,
        wastage_percent=product.wastage_percent or ZERO,
        metal_rate_per_gram=rate_per_gram,
        making_charges=product.making_charges or ZERO,
        stone_value=product.stone_value or ZERO,
    )


def is_price_outdated(product, rate) -> bool:
    """
    True when the stored calculated_price no longer matches a fresh
    computation with ``rate``. A product that was never priced is outdated.
    """
    if product.calculated_price is None:
        return True
    fresh = price_for_product(product, rate).total_price
    return round_money(product.calculated_price) != fresh


def calculate_purchase_cost(net_weight, metal_rate_per_gram, making_charges=0, stone_cost=0) -> Decimal:
    """Cost of a piece at a given rate, without wastage."""
    metal_cost = to_decimal(net_weight) * to_decimal(metal_rate_per_gram)
    return round_money(metal_cost + to_decimal(making_charges) + to_decimal(stone_cost))


def calculate_discount(order_total, discount_percent=None, discount_amount=None) -> Decimal:
    """
    Discount for an order: a flat amount wins over a percentage; neither
    means no discount.
    """
    if discount_amount is not None:
        return round_money(discount_amount)
    if discount_percent is not None:
        return round_money(to_decimal(order_total) * to_decimal(discount_percent) / 100)
    return round_money(ZERO)


def percentage_change(old, new) -> Decimal:
    """Percent change from old to new, 0 when old is zero or missing."""
    old_d = to_decimal(old)
    if old_d == 0:
        return round_money(ZERO)
    return round_money((to_decimal(new) - old_d) / old_d * 100)
