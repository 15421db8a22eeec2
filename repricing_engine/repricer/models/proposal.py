from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Union

from repricer.models.schemas import CostBreakdown

class ProposalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    MODIFIED = "modified"
    PUSHED = "pushed"

# Every legal move. Anything absent here is an InvalidTransitionError.
ALLOWED_TRANSITIONS: Mapping[ProposalStatus, FrozenSet[ProposalStatus]] = {
    ProposalStatus.PENDING: frozenset(
        {ProposalStatus.APPROVED, ProposalStatus.REJECTED, ProposalStatus.MODIFIED}
    ),
    ProposalStatus.APPROVED: frozenset({ProposalStatus.PUSHED}),
    ProposalStatus.MODIFIED: frozenset({ProposalStatus.PUSHED}),
    ProposalStatus.REJECTED: frozenset(),
    ProposalStatus.PUSHED: frozenset(),
}

PUSHABLE_STATUSES = frozenset({ProposalStatus.APPROVED, ProposalStatus.MODIFIED})

NO_RULE = "__NO_RULE__"

@dataclass
class Proposal:
    proposal_id: str
    sku: str
    batch_id: str
    current_price: float
    proposed_price: float
    price_change: float
    price_change_percent: float
    current_margin: float
    proposed_margin: float
    margin_change: float
    cost_breakdown: CostBreakdown
    reason: str
    created_at: str
    ttl: int
    title: str = ""
    brand: str = ""
    category: Optional[str] = None
    applied_rule_id: Optional[str] = None
    applied_rule_name: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    status: ProposalStatus = ProposalStatus.PENDING
    approved_price: Optional[float] = None
    stock_level: int = 0
    sales_velocity: float = 0.0
    estimated_daily_profit_change: float = 0.0
    estimated_weekly_revenue_impact: float = 0.0
    estimated_weekly_profit_impact: float = 0.0
    reviewed_at: Optional[str] = None
    reviewed_by: Optional[str] = None
    review_notes: Optional[str] = None
    version: int = 1

    @property
    def effective_price(self) -> float:
        return self.approved_price if self.approved_price is not None else self.proposed_price

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data

@dataclass
class ProposalFilters:
    status: Union[ProposalStatus, Iterable[ProposalStatus], None] = None
    batch_id: Optional[str] = None
    brand: Optional[str] = None
    category: Optional[str] = None
    min_price_change: Optional[float] = None
    max_price_change: Optional[float] = None
    min_margin_change: Optional[float] = None
    max_margin_change: Optional[float] = None
    has_warnings: Optional[bool] = None
    search: Optional[str] = None
    applied_rule_name: Optional[str] = None

    def __post_init__(self):
        # a single status is accepted as shorthand for a one-element set
        if isinstance(self.status, (ProposalStatus, str)):
            self.status = frozenset({ProposalStatus(self.status)})
        elif self.status is not None:
            self.status = frozenset(ProposalStatus(s) for s in self.status)

    def matches(self, proposal: Proposal) -> bool:
        if self.status and proposal.status not in self.status:
            return False
        if self.batch_id and proposal.batch_id != self.batch_id:
            return False
        if self.brand and proposal.brand != self.brand:
            return False
        if self.category and self.category.lower() not in (proposal.category or "").lower():
            return False
        if self.min_price_change is not None and proposal.price_change_percent < self.min_price_change:
            return False
        if self.max_price_change is not None and proposal.price_change_percent > self.max_price_change:
            return False
        if self.min_margin_change is not None and proposal.margin_change < self.min_margin_change:
            return False
        if self.max_margin_change is not None and proposal.margin_change > self.max_margin_change:
            return False
        if self.has_warnings is not None and bool(proposal.warnings) != self.has_warnings:
            return False
        if self.applied_rule_name:
            if self.applied_rule_name == NO_RULE:
                if proposal.applied_rule_name:
                    return False
            elif proposal.applied_rule_name != self.applied_rule_name:
                return False
        if self.search:
            term = self.search.lower()
            if term not in proposal.sku.lower() and term not in (proposal.title or "").lower():
                return False
        return True

@dataclass
class ProposalPage:
    items: List[Proposal]
    total_count: int
    page: int
    page_size: int
    has_more: bool

def review_sort_key(proposal: Proposal):
    """Selling, in-stock items first; then biggest weekly profit impact."""
    in_stock = (proposal.stock_level or 0) > 0
    velocity = proposal.sales_velocity if in_stock else 0.0
    return (
        0 if in_stock else 1,
        -(velocity or 0.0),
        -abs(proposal.estimated_weekly_profit_impact or 0.0),
        -(proposal.stock_level or 0),
    )
