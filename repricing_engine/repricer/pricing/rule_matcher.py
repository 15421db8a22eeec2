import math
import re
from functools import lru_cache
from typing import Iterable, List, Optional

from repricer.models.schemas import PricingRule, Product, RuleConditions
from repricer.pricing.cost_model import compute_breakdown

@lru_cache(maxsize=256)
def _compile(pattern: str) -> re.Pattern:
    return re.compile(pattern)

def sort_rules(rules: Iterable[PricingRule]) -> List[PricingRule]:
    # sorted() is stable, so equal priorities keep their list order
    return sorted(rules, key=lambda r: r.priority)

def _below(value: float, threshold: Optional[float]) -> bool:
    return threshold is None or value < threshold

def _above(value: float, threshold: Optional[float]) -> bool:
    return threshold is None or value > threshold

def conditions_hold(
    conditions: RuleConditions,
    product: Product,
    current_margin: float,
    sales_velocity: Optional[float] = None,
) -> bool:
    if conditions.brands and product.brand not in conditions.brands:
        return False

    if conditions.categories:
        category = (product.category or "").lower()
        if not any(c.lower() in category for c in conditions.categories):
            return False

    if conditions.skus and product.sku not in conditions.skus:
        return False

    if conditions.sku_patterns:
        if not any(_compile(p).search(product.sku) for p in conditions.sku_patterns):
            return False

    if not (_below(current_margin, conditions.margin_below) and _above(current_margin, conditions.margin_above)):
        return False

    stock = product.stock_level or 0
    if not (_below(stock, conditions.stock_below) and _above(stock, conditions.stock_above)):
        return False

    velocity = (product.sales_velocity if sales_velocity is None else sales_velocity) or 0.0
    if not (
        _below(velocity, conditions.sales_velocity_below)
        and _above(velocity, conditions.sales_velocity_above)
    ):
        return False

    days_of_stock = stock / velocity if velocity > 0 else math.inf
    if not (
        _below(days_of_stock, conditions.days_of_stock_below)
        and _above(days_of_stock, conditions.days_of_stock_above)
    ):
        return False

    price = product.current_price
    if not (_below(price, conditions.price_below) and _above(price, conditions.price_above)):
        return False

    daily_revenue = velocity * price
    return _below(daily_revenue, conditions.daily_revenue_below) and _above(
        daily_revenue, conditions.daily_revenue_above
    )

def match_rule(
    product: Product,
    rules: Iterable[PricingRule],
    sales_velocity: Optional[float] = None,
) -> Optional[PricingRule]:
    """First active rule, in priority order, whose conditions all hold.

    `sales_velocity` overrides the velocity on the product snapshot.
    """
    current_margin = compute_breakdown(
        product.current_price, product.cost_price, product.delivery_cost or 0.0
    ).margin_percent

    for rule in sort_rules(rules):
        if not rule.is_active:
            continue
        if conditions_hold(rule.conditions, product, current_margin, sales_velocity):
            return rule
    return None
