"""Fixed-rate cost model.

Price Ex-VAT = selling price / 1.2, a flat 20% clawback of the ex-VAT price
stands in for commission, fees, payment processing and advertising, and
whatever is left after delivery and cost is the profit per order (PPO).
"""
import math
from dataclasses import dataclass
from typing import List, Optional

from repricer.models.schemas import CostBreakdown

VAT_RATE = 0.20
CLAWBACK_RATE = 0.20

@dataclass(frozen=True)
class ComputationAnomaly:
    field: str
    value: float

    def as_warning(self) -> str:
        return f"{self.field}: non-finite value replaced with 0"

def sanitize(value: float, name: str = "", anomalies: Optional[List[ComputationAnomaly]] = None) -> float:
    if value is not None and math.isfinite(value):
        return value
    if anomalies is not None and name:
        anomalies.append(ComputationAnomaly(name, value))
    return 0.0

def compute_breakdown(
    selling_price: float,
    cost_price: float,
    delivery_cost: float,
    anomalies: Optional[List[ComputationAnomaly]] = None,
) -> CostBreakdown:
    price_ex_vat = selling_price / (1 + VAT_RATE)
    vat_amount = selling_price - price_ex_vat
    clawback = price_ex_vat * CLAWBACK_RATE
    net_profit = price_ex_vat - clawback - delivery_cost - cost_price
    margin_percent = (net_profit / price_ex_vat) * 100 if price_ex_vat > 0 else 0.0

    def clean(name: str, value: float) -> float:
        return sanitize(value, name, anomalies)

    return CostBreakdown(
        selling_price=clean("selling_price", selling_price),
        vat_amount=clean("vat_amount", vat_amount),
        price_ex_vat=clean("price_ex_vat", price_ex_vat),
        clawback=clean("clawback", clawback),
        cost_price=clean("cost_price", cost_price),
        delivery_cost=clean("delivery_cost", delivery_cost),
        total_costs=clean("total_costs", cost_price + delivery_cost + clawback),
        net_profit=clean("net_profit", net_profit),
        margin_percent=clean("margin_percent", margin_percent),
    )
