import json
from typing import Any, Dict, Iterable, List, Protocol

from repricer.db import fetch_all
from repricer.models.schemas import PricingRule, Product, RuleAction, RuleConditions
from repricer.utils.logging_utils import get_logger

logger = get_logger(__name__)

class ProductCatalog(Protocol):
    def load_all(self) -> List[Product]:
        ...

class RuleStore(Protocol):
    def load_active(self) -> List[PricingRule]:
        ...

def _float_or_none(value: Any):
    return float(value) if value is not None else None

def product_from_row(row: Dict[str, Any]) -> Product:
    return Product(
        sku=row["sku"],
        title=row.get("title") or "",
        brand=row.get("brand") or "",
        category=row.get("category"),
        cost_price=float(row.get("cost_price") or 0),
        delivery_cost=float(row.get("delivery_cost") or 0),
        current_price=float(row.get("current_price") or 0),
        mrp=float(row.get("mrp") or 0),
        stock_level=int(row.get("stock_level") or 0),
        competitor_floor_price=_float_or_none(row.get("competitor_floor_price")),
        sales_velocity=float(row.get("sales_velocity") or 0),
    )

def rule_from_row(row: Dict[str, Any]) -> PricingRule:
    conditions = row.get("conditions_json") or "{}"
    action = row.get("action_json") or "{}"
    if isinstance(conditions, str):
        conditions = json.loads(conditions)
    if isinstance(action, str):
        action = json.loads(action)
    return PricingRule(
        rule_id=str(row["rule_id"]),
        name=row.get("name") or str(row["rule_id"]),
        priority=int(row.get("priority") or 0),
        is_active=bool(row.get("is_active", True)),
        conditions=RuleConditions.from_dict(conditions),
        action=RuleAction.from_dict(action),
    )

class MySQLProductCatalog:
    def load_all(self) -> List[Product]:
        sql = """
            SELECT sku, title, brand, category, cost_price, delivery_cost,
                   current_price, mrp, stock_level, competitor_floor_price
            FROM products
        """
        rows = fetch_all(sql)
        logger.info(f"Loaded {len(rows)} products")
        return [product_from_row(r) for r in rows]

class MySQLRuleStore:
    def load_active(self) -> List[PricingRule]:
        sql = """
            SELECT rule_id, name, priority, is_active, conditions_json, action_json
            FROM pricing_rules
            WHERE is_active = 1
            ORDER BY priority ASC, rule_id ASC
        """
        rules: List[PricingRule] = []
        for row in fetch_all(sql):
            try:
                rules.append(rule_from_row(row))
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping malformed rule {row.get('rule_id')}: {e}")
        logger.info(f"Loaded {len(rules)} active rules")
        return rules

class InMemoryProductCatalog:
    def __init__(self, products: Iterable[Product] = ()):
        self.products = list(products)

    def load_all(self) -> List[Product]:
        return list(self.products)

class InMemoryRuleStore:
    def __init__(self, rules: Iterable[PricingRule] = ()):
        self.rules = list(rules)

    def load_active(self) -> List[PricingRule]:
        return [r for r in self.rules if r.is_active]
