import math
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP
from typing import List, Optional, Tuple

from repricer.config import Config
from repricer.models.schemas import ActionType, CostBreakdown, PricingRule, Product, RoundingRule
from repricer.pricing.cost_model import ComputationAnomaly, compute_breakdown, sanitize

CENT = Decimal("0.01")
UNIT = Decimal("1")

@dataclass(frozen=True)
class PricingSettings:
    default_target_margin_pct: float = 25.0
    minimum_margin_pct: float = 15.0
    change_threshold_pct: float = 1.0
    proposal_ttl_days: int = 30
    velocity_window_days: int = 7

    @classmethod
    def from_config(cls) -> "PricingSettings":
        return cls(
            default_target_margin_pct=Config.DEFAULT_TARGET_MARGIN_PCT,
            minimum_margin_pct=Config.MINIMUM_MARGIN_PCT,
            change_threshold_pct=Config.PROPOSAL_CHANGE_THRESHOLD_PCT,
            proposal_ttl_days=Config.PROPOSAL_TTL_DAYS,
            velocity_window_days=Config.SALES_VELOCITY_WINDOW_DAYS,
        )

@dataclass
class PriceCalculation:
    sku: str
    current_price: float
    raw_price: float
    proposed_price: float
    price_change: float
    price_change_percent: float
    current_margin: float
    proposed_margin: float
    margin_change: float
    current_profit: float
    proposed_profit: float
    cost_breakdown: CostBreakdown
    sales_velocity: float
    estimated_daily_profit_change: float
    estimated_weekly_revenue_impact: float
    estimated_weekly_profit_impact: float
    reason: str
    should_propose: bool
    applied_rule_id: Optional[str] = None
    applied_rule_name: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

def apply_rounding(price: float, rule: Optional[RoundingRule]) -> float:
    """Round a raw price; applying the same rule twice is a no-op."""
    if not math.isfinite(price):
        return price
    amount = Decimal(repr(price))
    if rule == RoundingRule.NEAREST_99P:
        rounded = amount.to_integral_value(rounding=ROUND_FLOOR) + Decimal("0.99")
    elif rule == RoundingRule.NEAREST_95P:
        rounded = amount.to_integral_value(rounding=ROUND_FLOOR) + Decimal("0.95")
    elif rule == RoundingRule.NEAREST_POUND:
        rounded = amount.quantize(UNIT, rounding=ROUND_HALF_UP)
    elif rule == RoundingRule.ROUND_DOWN:
        rounded = amount.quantize(CENT, rounding=ROUND_FLOOR)
    elif rule == RoundingRule.ROUND_UP:
        rounded = amount.quantize(CENT, rounding=ROUND_CEILING)
    else:
        rounded = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    return float(rounded)

def _margin_price(total_cost: float, target_margin_pct: float) -> Tuple[Optional[float], str]:
    # margin = (price - cost) / price  =>  price = cost / (1 - margin)
    divisor = 1 - target_margin_pct / 100
    if divisor <= 0:
        return None, f"Cannot achieve {target_margin_pct:g}% margin - target too high"
    return total_cost / divisor, f"Set to achieve {target_margin_pct:g}% margin"

def raw_price_for(product: Product, rule: Optional[PricingRule], settings: PricingSettings) -> Tuple[Optional[float], str]:
    """Unrounded price and a human-readable reason.

    Returns None as the price when the action cannot produce one.
    """
    total_cost = product.cost_price + (product.delivery_cost or 0.0)
    if rule is None:
        price, reason = _margin_price(total_cost, settings.default_target_margin_pct)
        return price, f"{reason} (default target margin)"

    action = rule.action
    value = action.value
    suffix = f" (rule: {rule.name})"

    if action.type == ActionType.SET_MARGIN:
        price, reason = _margin_price(total_cost, value)
        return price, reason + suffix
    if action.type == ActionType.SET_MARKUP:
        return product.cost_price * value, f"Applied {value:g}x markup on cost{suffix}"
    if action.type == ActionType.ADJUST_PERCENT:
        direction = "increase" if value >= 0 else "decrease"
        return product.current_price * (1 + value / 100), f"{abs(value):g}% {direction}{suffix}"
    if action.type == ActionType.ADJUST_FIXED:
        direction = "increase" if value >= 0 else "decrease"
        return product.current_price + value, f"£{abs(value):.2f} {direction}{suffix}"
    if action.type == ActionType.SET_PRICE:
        return value, f"Set to fixed price £{value:.2f}{suffix}"
    if action.type == ActionType.MATCH_MRP:
        return product.mrp, f"Set to MRP{suffix}"
    if action.type == ActionType.DISCOUNT_FROM_MRP:
        return product.mrp * (1 - value / 100), f"{value:g}% discount from MRP{suffix}"
    return None, f"Unknown action type {action.type}{suffix}"

def calculate_price(
    product: Product,
    rule: Optional[PricingRule],
    settings: PricingSettings,
    sales_velocity: Optional[float] = None,
) -> PriceCalculation:
    warnings: List[str] = []
    anomalies: List[ComputationAnomaly] = []

    current_price = product.current_price
    delivery_cost = product.delivery_cost or 0.0
    velocity = sanitize(product.sales_velocity if sales_velocity is None else sales_velocity)

    raw_price, reason = raw_price_for(product, rule, settings)
    if raw_price is None or not math.isfinite(raw_price):
        warnings.append(f"{reason}; price left unchanged")
        raw_price = current_price
        reason = "No valid price from rule - price unchanged"
    elif raw_price < 0:
        warnings.append(f"Computed price {raw_price:.2f} is negative; clamped to 0")
        raw_price = 0.0

    rounding = rule.action.rounding_rule if rule is not None else None
    proposed_price = sanitize(apply_rounding(raw_price, rounding), "proposed_price", anomalies)

    floor = product.competitor_floor_price
    if floor and proposed_price < floor:
        warnings.append(f"Price {proposed_price:.2f} is below competitor floor {floor:.2f}")

    current = compute_breakdown(current_price, product.cost_price, delivery_cost)
    proposed = compute_breakdown(proposed_price, product.cost_price, delivery_cost, anomalies)

    if proposed.margin_percent < settings.minimum_margin_pct:
        warnings.append(
            f"Margin ({proposed.margin_percent:.1f}%) below minimum ({settings.minimum_margin_pct:g}%)"
        )
    if product.mrp and product.mrp > 0 and proposed_price > product.mrp:
        warnings.append(f"Price {proposed_price:.2f} is above MRP {product.mrp:.2f}")

    price_change = sanitize(proposed_price - current_price, "price_change", anomalies)
    if current_price > 0:
        change_pct = sanitize(price_change / current_price * 100, "price_change_percent", anomalies)
    else:
        change_pct = 100.0

    profit_delta = proposed.net_profit - current.net_profit
    daily_profit = sanitize(profit_delta * velocity, "estimated_daily_profit_change", anomalies)
    weekly_revenue = sanitize(price_change * velocity * 7, "estimated_weekly_revenue_impact", anomalies)
    weekly_profit = sanitize(daily_profit * 7, "estimated_weekly_profit_impact", anomalies)

    warnings.extend(a.as_warning() for a in anomalies)

    # rounded so float noise cannot push an exact 1.00% change under the bar
    should_propose = round(abs(change_pct), 6) >= settings.change_threshold_pct

    return PriceCalculation(
        sku=product.sku,
        current_price=current_price,
        raw_price=raw_price,
        proposed_price=proposed_price,
        price_change=price_change,
        price_change_percent=change_pct,
        current_margin=current.margin_percent,
        proposed_margin=proposed.margin_percent,
        margin_change=proposed.margin_percent - current.margin_percent,
        current_profit=current.net_profit,
        proposed_profit=proposed.net_profit,
        cost_breakdown=proposed,
        sales_velocity=velocity,
        estimated_daily_profit_change=daily_profit,
        estimated_weekly_revenue_impact=weekly_revenue,
        estimated_weekly_profit_impact=weekly_profit,
        reason=reason,
        should_propose=should_propose,
        applied_rule_id=rule.rule_id if rule is not None else None,
        applied_rule_name=rule.name if rule is not None else None,
        warnings=warnings,
    )
