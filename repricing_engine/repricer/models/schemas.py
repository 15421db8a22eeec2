from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple

@dataclass(frozen=True)
class Product:
    sku: str
    brand: str
    cost_price: float
    current_price: float
    title: str = ""
    category: Optional[str] = None
    delivery_cost: float = 0.0
    mrp: float = 0.0
    stock_level: int = 0
    competitor_floor_price: Optional[float] = None
    sales_velocity: float = 0.0

class ActionType(str, Enum):
    SET_MARGIN = "set_margin"
    SET_MARKUP = "set_markup"
    ADJUST_PERCENT = "adjust_percent"
    ADJUST_FIXED = "adjust_fixed"
    SET_PRICE = "set_price"
    MATCH_MRP = "match_mrp"
    DISCOUNT_FROM_MRP = "discount_from_mrp"

class RoundingRule(str, Enum):
    NONE = "none"
    NEAREST_99P = "nearest_99p"
    NEAREST_95P = "nearest_95p"
    NEAREST_POUND = "nearest_pound"
    ROUND_DOWN = "round_down"
    ROUND_UP = "round_up"

@dataclass(frozen=True)
class RuleConditions:
    """Optional thresholds; a rule matches when every populated one holds."""

    brands: Optional[FrozenSet[str]] = None
    categories: Optional[Tuple[str, ...]] = None
    skus: Optional[FrozenSet[str]] = None
    sku_patterns: Optional[Tuple[str, ...]] = None
    margin_below: Optional[float] = None
    margin_above: Optional[float] = None
    stock_below: Optional[float] = None
    stock_above: Optional[float] = None
    sales_velocity_below: Optional[float] = None
    sales_velocity_above: Optional[float] = None
    days_of_stock_below: Optional[float] = None
    days_of_stock_above: Optional[float] = None
    price_below: Optional[float] = None
    price_above: Optional[float] = None
    daily_revenue_below: Optional[float] = None
    daily_revenue_above: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "RuleConditions":
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            if key not in known or value is None:
                continue
            if key in ("brands", "skus"):
                value = frozenset(value) if value else None
            elif key in ("categories", "sku_patterns"):
                value = tuple(value) if value else None
            else:
                value = float(value)
            kwargs[key] = value
        return cls(**kwargs)

@dataclass(frozen=True)
class RuleAction:
    type: ActionType
    value: float = 0.0
    rounding_rule: Optional[RoundingRule] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RuleAction":
        rounding = data.get("rounding_rule")
        return cls(
            type=ActionType(data["type"]),
            value=float(data.get("value", 0) or 0),
            rounding_rule=RoundingRule(rounding) if rounding else None,
        )

@dataclass(frozen=True)
class PricingRule:
    rule_id: str
    name: str
    priority: int
    action: RuleAction
    conditions: RuleConditions = field(default_factory=RuleConditions)
    is_active: bool = True

@dataclass(frozen=True)
class CostBreakdown:
    selling_price: float
    vat_amount: float
    price_ex_vat: float
    clawback: float
    cost_price: float
    delivery_cost: float
    total_costs: float
    net_profit: float
    margin_percent: float
