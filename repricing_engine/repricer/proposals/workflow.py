import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable, List, Optional

from repricer.config import Config
from repricer.errors import (
    ConcurrencyConflictError,
    InvalidTransitionError,
    RepricingError,
    ValidationError,
)
from repricer.models.proposal import (
    ALLOWED_TRANSITIONS,
    Proposal,
    ProposalFilters,
    ProposalPage,
    ProposalStatus,
)
from repricer.proposals.repository import ProposalRepository
from repricer.utils.logging_utils import get_logger
from repricer.utils.time_utils import utcnow_iso

logger = get_logger(__name__)

SYSTEM_REVIEWER = "system"

class ReviewAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    MODIFY = "modify"

ACTION_TARGETS = {
    ReviewAction.APPROVE: ProposalStatus.APPROVED,
    ReviewAction.REJECT: ProposalStatus.REJECTED,
    ReviewAction.MODIFY: ProposalStatus.MODIFIED,
}

BULK_ACTIONS = (ReviewAction.APPROVE, ReviewAction.REJECT)

@dataclass
class BulkItemResult:
    proposal_id: str
    success: bool
    status: Optional[ProposalStatus] = None
    error: Optional[str] = None
    error_type: Optional[str] = None

@dataclass
class BulkResult:
    results: List[BulkItemResult] = field(default_factory=list)

    @property
    def succeeded(self) -> List[str]:
        return [r.proposal_id for r in self.results if r.success]

    @property
    def failed(self) -> List[str]:
        return [r.proposal_id for r in self.results if not r.success]

def parse_action(action) -> ReviewAction:
    if not action:
        raise ValidationError("action is required")
    try:
        return ReviewAction(action)
    except ValueError:
        raise ValidationError(f"Invalid action: {action}") from None

def _require_reviewer(reviewer: Optional[str]) -> str:
    if not reviewer or not str(reviewer).strip():
        raise ValidationError("reviewer is required")
    return str(reviewer).strip()

def _validate_price(price) -> float:
    if price is None:
        raise ValidationError("modified price required for modify action")
    try:
        value = float(price)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid modified price: {price!r}") from None
    if not math.isfinite(value) or value < 0:
        raise ValidationError(f"Modified price must be a non-negative number, got {price!r}")
    return value

class ReviewWorkflow:
    """Status transitions for proposals.

    Reviewers can only move a pending proposal to approved, rejected or
    modified. The move to pushed belongs to the push synchronizer.
    """

    def __init__(self, repository: ProposalRepository):
        self.repository = repository

    def _transition(
        self,
        proposal: Proposal,
        target: ProposalStatus,
        reviewer: str,
        notes: Optional[str] = None,
        approved_price: Optional[float] = None,
    ) -> Proposal:
        if target not in ALLOWED_TRANSITIONS[proposal.status]:
            raise InvalidTransitionError(proposal.proposal_id, proposal.status.value, target.value)

        updated = replace(
            proposal,
            status=target,
            reviewed_at=utcnow_iso(),
            reviewed_by=reviewer,
            review_notes=notes if notes else proposal.review_notes,
            approved_price=approved_price if approved_price is not None else proposal.approved_price,
        )
        saved = self.repository.update(updated, expected_version=proposal.version)
        logger.info(
            f"Proposal {proposal.proposal_id} ({proposal.sku}) "
            f"{proposal.status.value} -> {target.value} by {reviewer}"
        )
        return saved

    def review(
        self,
        proposal_id: str,
        action,
        reviewer: Optional[str],
        modified_price=None,
        notes: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Proposal:
        review_action = parse_action(action)
        reviewer = _require_reviewer(reviewer)
        approved_price = _validate_price(modified_price) if review_action == ReviewAction.MODIFY else None

        proposal = self.repository.require(proposal_id)
        if expected_version is not None and expected_version != proposal.version:
            # caller acted on a stale copy
            raise ConcurrencyConflictError(proposal_id, expected_version, proposal.version)

        return self._transition(
            proposal, ACTION_TARGETS[review_action], reviewer, notes, approved_price
        )

    def approve(self, proposal_id: str, reviewer: str, notes: Optional[str] = None) -> Proposal:
        return self.review(proposal_id, ReviewAction.APPROVE, reviewer, notes=notes)

    def reject(self, proposal_id: str, reviewer: str, notes: Optional[str] = None) -> Proposal:
        return self.review(proposal_id, ReviewAction.REJECT, reviewer, notes=notes)

    def modify(self, proposal_id: str, new_price: float, reviewer: str, notes: Optional[str] = None) -> Proposal:
        return self.review(proposal_id, ReviewAction.MODIFY, reviewer, modified_price=new_price, notes=notes)

    def mark_pushed(self, proposal: Proposal, notes: Optional[str] = None) -> Proposal:
        return self._transition(proposal, ProposalStatus.PUSHED, SYSTEM_REVIEWER, notes)

    def bulk_review(
        self,
        proposal_ids: Iterable[str],
        action,
        reviewer: Optional[str],
        notes: Optional[str] = None,
    ) -> BulkResult:
        """Apply approve/reject to each id independently.

        One failing id never blocks the others and nothing is rolled back.
        """
        review_action = parse_action(action)
        if review_action not in BULK_ACTIONS:
            raise ValidationError(f"Bulk action must be approve or reject, got {review_action.value}")
        reviewer = _require_reviewer(reviewer)
        ids = list(proposal_ids or [])
        if not ids:
            raise ValidationError("proposal ids are required")

        result = BulkResult()
        for proposal_id in ids:
            try:
                saved = self.review(proposal_id, review_action, reviewer, notes=notes)
                result.results.append(BulkItemResult(proposal_id, True, status=saved.status))
            except RepricingError as e:
                logger.warning(f"Bulk {review_action.value} failed for {proposal_id}: {e}")
                result.results.append(
                    BulkItemResult(proposal_id, False, error=str(e), error_type=type(e).__name__)
                )
        logger.info(
            f"Bulk {review_action.value} by {reviewer}: "
            f"{len(result.succeeded)} succeeded, {len(result.failed)} failed"
        )
        return result

    def bulk_approve(self, proposal_ids: Iterable[str], reviewer: str, notes: Optional[str] = None) -> BulkResult:
        return self.bulk_review(proposal_ids, ReviewAction.APPROVE, reviewer, notes)

    def bulk_reject(self, proposal_ids: Iterable[str], reviewer: str, notes: Optional[str] = None) -> BulkResult:
        return self.bulk_review(proposal_ids, ReviewAction.REJECT, reviewer, notes)

    def bulk_approve_filtered(
        self,
        filters: Optional[ProposalFilters],
        reviewer: str,
        notes: Optional[str] = None,
    ) -> BulkResult:
        """Approve every pending proposal matching `filters`."""
        scoped = replace(filters or ProposalFilters(), status=frozenset({ProposalStatus.PENDING}))
        ids = [p.proposal_id for p in self.repository.find_all(scoped)]
        if not ids:
            return BulkResult()
        return self.bulk_approve(ids, reviewer, notes)

    def query(
        self,
        filters: Optional[ProposalFilters] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> ProposalPage:
        page_size = Config.DEFAULT_PAGE_SIZE if page_size is None else page_size
        if page < 1:
            raise ValidationError("page must be >= 1")
        if page_size < 1 or page_size > Config.MAX_PAGE_SIZE:
            raise ValidationError(f"page_size must be between 1 and {Config.MAX_PAGE_SIZE}")
        return self.repository.query(filters or ProposalFilters(), page, page_size)

    def get(self, proposal_id: str) -> Proposal:
        return self.repository.require(proposal_id)
