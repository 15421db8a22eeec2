import uuid
from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Optional

from repricer.models.proposal import Proposal, ProposalStatus
from repricer.models.schemas import PricingRule, Product
from repricer.pricing.price_calculator import PriceCalculation, PricingSettings, calculate_price
from repricer.pricing.rule_matcher import match_rule, sort_rules
from repricer.proposals.repository import ProposalRepository
from repricer.utils.logging_utils import get_logger
from repricer.utils.time_utils import ttl_epoch, utcnow, utcnow_iso

logger = get_logger(__name__)

@dataclass
class SkippedProduct:
    sku: str
    reason: str

@dataclass
class ProductError:
    sku: str
    message: str

@dataclass
class BatchRunResult:
    batch_id: str
    proposals: List[Proposal] = field(default_factory=list)
    skipped: List[SkippedProduct] = field(default_factory=list)
    errors: List[ProductError] = field(default_factory=list)

    @property
    def proposal_count(self) -> int:
        return len(self.proposals)

def new_batch_id() -> str:
    return f"calc-{utcnow().strftime('%Y-%m-%d')}-{uuid.uuid4().hex[:8]}"

def build_proposal(
    product: Product,
    calc: PriceCalculation,
    batch_id: str,
    settings: PricingSettings,
) -> Proposal:
    return Proposal(
        proposal_id=str(uuid.uuid4()),
        sku=product.sku,
        batch_id=batch_id,
        title=product.title,
        brand=product.brand,
        category=product.category,
        current_price=calc.current_price,
        proposed_price=calc.proposed_price,
        price_change=calc.price_change,
        price_change_percent=calc.price_change_percent,
        current_margin=calc.current_margin,
        proposed_margin=calc.proposed_margin,
        margin_change=calc.margin_change,
        cost_breakdown=calc.cost_breakdown,
        applied_rule_id=calc.applied_rule_id,
        applied_rule_name=calc.applied_rule_name,
        reason=calc.reason,
        warnings=list(calc.warnings),
        status=ProposalStatus.PENDING,
        stock_level=product.stock_level,
        sales_velocity=calc.sales_velocity,
        estimated_daily_profit_change=calc.estimated_daily_profit_change,
        estimated_weekly_revenue_impact=calc.estimated_weekly_revenue_impact,
        estimated_weekly_profit_impact=calc.estimated_weekly_profit_impact,
        created_at=utcnow_iso(),
        ttl=ttl_epoch(settings.proposal_ttl_days),
    )

def run_batch(
    products: Iterable[Product],
    rules: Iterable[PricingRule],
    sales_velocity_by_sku: Optional[Mapping[str, float]],
    repository: ProposalRepository,
    settings: Optional[PricingSettings] = None,
    batch_id: Optional[str] = None,
) -> BatchRunResult:
    """Price every product once and store the resulting pending proposals.

    A failure on one product is logged and recorded in `errors`; the rest of
    the catalog is still priced. Proposals are written in one bulk call at
    the end of the run.
    """
    settings = settings or PricingSettings.from_config()
    velocity_map = sales_velocity_by_sku or {}
    # snapshot: later edits to the caller's rule list do not affect this run
    rule_snapshot = sort_rules(list(rules))
    result = BatchRunResult(batch_id=batch_id or new_batch_id())

    logger.info(f"Starting batch {result.batch_id} with {len(rule_snapshot)} rules")
    for product in products:
        if not product.cost_price or product.cost_price <= 0:
            result.skipped.append(SkippedProduct(product.sku, "missing cost price"))
            continue
        try:
            velocity = velocity_map.get(product.sku, product.sales_velocity)
            rule = match_rule(product, rule_snapshot, sales_velocity=velocity)
            calc = calculate_price(product, rule, settings, sales_velocity=velocity)
            if not calc.should_propose:
                result.skipped.append(SkippedProduct(product.sku, "change below threshold"))
                continue
            if calc.proposed_price <= 0:
                result.skipped.append(SkippedProduct(product.sku, "non-positive proposed price"))
                continue
            result.proposals.append(build_proposal(product, calc, result.batch_id, settings))
        except Exception as e:
            logger.exception(f"Pricing failed for sku={product.sku} in batch {result.batch_id}: {e}")
            result.errors.append(ProductError(product.sku, str(e)))

    if result.proposals:
        repository.put_many(result.proposals)

    logger.info(
        f"Batch {result.batch_id} completed: {result.proposal_count} proposals, "
        f"{len(result.skipped)} skipped, {len(result.errors)} errors"
    )
    return result
