from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from repricer.channel.client import ChannelPriceUpdater, ChannelUpdateResult, PriceUpdate
from repricer.errors import ExternalServiceError, RepricingError
from repricer.models.proposal import PUSHABLE_STATUSES, Proposal, ProposalFilters
from repricer.proposals.workflow import ReviewWorkflow
from repricer.utils.logging_utils import get_logger

logger = get_logger(__name__)

@dataclass
class PushResult:
    proposal_id: str
    sku: str
    price: float
    success: bool
    error: Optional[str] = None

@dataclass
class PushReport:
    dry_run: bool
    pushed: int = 0
    total_failed: int = 0
    updates: List[PriceUpdate] = field(default_factory=list)
    results: List[PushResult] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors and self.total_failed == 0

class PushSynchronizer:
    """Sends approved and modified prices to the channel in one submission.

    Proposals move to `pushed` only when the whole submission succeeds; on
    failure nothing changes and the channel's errors are returned as-is.
    There is no retry: the proposals stay eligible for the next push.
    """

    def __init__(self, workflow: ReviewWorkflow, channel: ChannelPriceUpdater):
        self.workflow = workflow
        self.channel = channel

    def select(self, proposal_ids: Optional[Iterable[str]] = None) -> List[Proposal]:
        candidates = self.workflow.repository.find_all(ProposalFilters(status=PUSHABLE_STATUSES))
        if proposal_ids is not None:
            wanted = set(proposal_ids)
            candidates = [p for p in candidates if p.proposal_id in wanted]
        return candidates

    def push(self, proposal_ids: Optional[Iterable[str]] = None, dry_run: bool = False) -> PushReport:
        proposals = self.select(proposal_ids)
        updates = [PriceUpdate(sku=p.sku, price=p.effective_price) for p in proposals]
        report = PushReport(dry_run=dry_run, updates=updates)

        if not proposals:
            logger.info("No approved proposals to push")
            return report

        if dry_run:
            report.results = [
                PushResult(p.proposal_id, p.sku, u.price, success=True)
                for p, u in zip(proposals, updates)
            ]
            logger.info(f"Dry run: {len(updates)} price updates prepared")
            return report

        try:
            outcome = self.channel.update_prices(updates)
        except ExternalServiceError as e:
            logger.error(f"Channel push failed: {e}")
            outcome = ChannelUpdateResult(success=False, errors=[str(e)])

        if not outcome.success:
            report.errors = list(outcome.errors)
            report.total_failed = len(proposals)
            report.results = [
                PushResult(p.proposal_id, p.sku, u.price, success=False, error="channel update failed")
                for p, u in zip(proposals, updates)
            ]
            logger.warning(f"Push of {len(updates)} prices rejected by channel: {outcome.errors}")
            return report

        for p, u in zip(proposals, updates):
            try:
                self.workflow.mark_pushed(p, notes="Pushed to channel")
                report.results.append(PushResult(p.proposal_id, p.sku, u.price, success=True))
                report.pushed += 1
            except RepricingError as e:
                # price is live on the channel but the status write lost a race
                logger.error(f"Pushed {p.sku} but could not mark proposal {p.proposal_id}: {e}")
                report.results.append(PushResult(p.proposal_id, p.sku, u.price, success=False, error=str(e)))
                report.total_failed += 1

        logger.info(f"Pushed {report.pushed} prices, {report.total_failed} status updates failed")
        return report
