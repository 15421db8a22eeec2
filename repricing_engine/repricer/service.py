from typing import Any, Dict, Iterable, Optional

import pymysql

from repricer.catalog.store import (
    MySQLProductCatalog,
    MySQLRuleStore,
    ProductCatalog,
    RuleStore,
)
from repricer.catalog.velocity import MySQLSalesVelocity, SalesVelocity
from repricer.channel.client import ChannelEngineClient, ChannelPriceUpdater
from repricer.errors import ExternalServiceError
from repricer.models.proposal import Proposal, ProposalFilters, ProposalPage
from repricer.pricing.price_calculator import PricingSettings
from repricer.proposals.generator import BatchRunResult, run_batch
from repricer.proposals.reporting import BatchSummary, status_counts, summarize_batch
from repricer.proposals.repository import MySQLProposalRepository, ProposalRepository
from repricer.proposals.workflow import BulkResult, ReviewWorkflow
from repricer.sync.pusher import PushReport, PushSynchronizer
from repricer.utils.logging_utils import get_logger

logger = get_logger(__name__)

class RepricingService:
    """Operator-facing entry points: batch runs, review, push."""

    def __init__(
        self,
        catalog: ProductCatalog,
        rule_store: RuleStore,
        velocity: SalesVelocity,
        repository: ProposalRepository,
        channel: ChannelPriceUpdater,
        settings: Optional[PricingSettings] = None,
    ):
        self.catalog = catalog
        self.rule_store = rule_store
        self.velocity = velocity
        self.repository = repository
        self.settings = settings or PricingSettings.from_config()
        self.workflow = ReviewWorkflow(repository)
        self.synchronizer = PushSynchronizer(self.workflow, channel)
        self.last_run: Optional[BatchRunResult] = None

    def trigger_batch_run(self) -> Dict[str, Any]:
        try:
            products = self.catalog.load_all()
            rules = self.rule_store.load_active()
            velocity = self.velocity.get_all(self.settings.velocity_window_days)
        except pymysql.MySQLError as e:
            logger.error(f"Failed to load pricing snapshot: {e}")
            raise ExternalServiceError(f"Failed to load pricing snapshot: {e}") from e

        logger.info(f"Loaded snapshot: {len(products)} products, {len(rules)} rules")
        result = run_batch(products, rules, velocity, self.repository, self.settings)
        self.last_run = result
        return {
            "batch_id": result.batch_id,
            "proposal_count": result.proposal_count,
            "skipped_count": len(result.skipped),
            "error_count": len(result.errors),
            "errors": [{"sku": e.sku, "message": e.message} for e in result.errors],
        }

    def query_proposals(
        self,
        filters: Optional[ProposalFilters] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> ProposalPage:
        return self.workflow.query(filters, page, page_size)

    def get_proposal(self, proposal_id: str) -> Proposal:
        return self.workflow.get(proposal_id)

    def review_proposal(
        self,
        proposal_id: str,
        action,
        reviewer: Optional[str],
        modified_price: Optional[float] = None,
        notes: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Proposal:
        return self.workflow.review(
            proposal_id,
            action,
            reviewer,
            modified_price=modified_price,
            notes=notes,
            expected_version=expected_version,
        )

    def bulk_review(
        self,
        proposal_ids: Iterable[str],
        action,
        reviewer: Optional[str],
        notes: Optional[str] = None,
    ) -> BulkResult:
        return self.workflow.bulk_review(proposal_ids, action, reviewer, notes)

    def bulk_approve_filtered(
        self,
        filters: Optional[ProposalFilters],
        reviewer: str,
        notes: Optional[str] = None,
    ) -> BulkResult:
        return self.workflow.bulk_approve_filtered(filters, reviewer, notes)

    def push_approved(
        self,
        proposal_ids: Optional[Iterable[str]] = None,
        dry_run: bool = False,
    ) -> PushReport:
        return self.synchronizer.push(proposal_ids, dry_run=dry_run)

    def status_counts(self) -> Dict[str, int]:
        return status_counts(self.repository.find_all(ProposalFilters()))

    def batch_summary(self, batch_id: str) -> BatchSummary:
        proposals = self.repository.find_all(ProposalFilters(batch_id=batch_id))
        return summarize_batch(proposals, batch_id)

def build_default_service() -> RepricingService:
    return RepricingService(
        catalog=MySQLProductCatalog(),
        rule_store=MySQLRuleStore(),
        velocity=MySQLSalesVelocity(),
        repository=MySQLProposalRepository(),
        channel=ChannelEngineClient(),
    )
