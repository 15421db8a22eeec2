"""Proposal persistence.

Every update is conditional on the proposal's `version`, so two reviewers
racing on the same proposal cannot silently overwrite each other.
"""
import copy
import json
import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from repricer.db import execute_many, execute_query, fetch_all, fetch_one
from repricer.errors import ConcurrencyConflictError, NotFoundError
from repricer.models.proposal import (
    NO_RULE,
    Proposal,
    ProposalFilters,
    ProposalPage,
    ProposalStatus,
    review_sort_key,
)
from repricer.models.schemas import CostBreakdown
from repricer.utils.logging_utils import get_logger

logger = get_logger(__name__)

def paginate(items: Sequence[Proposal], page: int, page_size: int) -> ProposalPage:
    total = len(items)
    start = (page - 1) * page_size
    return ProposalPage(
        items=list(items[start:start + page_size]),
        total_count=total,
        page=page,
        page_size=page_size,
        has_more=start + page_size < total,
    )

class ProposalRepository(ABC):
    @abstractmethod
    def put_many(self, proposals: Iterable[Proposal]) -> int:
        ...

    @abstractmethod
    def get(self, proposal_id: str) -> Optional[Proposal]:
        ...

    @abstractmethod
    def update(self, proposal: Proposal, expected_version: int) -> Proposal:
        """Persist `proposal` if the stored version equals `expected_version`.

        Returns the stored copy with its version bumped.
        """

    @abstractmethod
    def query(self, filters: ProposalFilters, page: int, page_size: int) -> ProposalPage:
        ...

    def require(self, proposal_id: str) -> Proposal:
        proposal = self.get(proposal_id)
        if proposal is None:
            raise NotFoundError("Proposal", proposal_id)
        return proposal

    def find_all(self, filters: ProposalFilters) -> List[Proposal]:
        items: List[Proposal] = []
        page = 1
        while True:
            result = self.query(filters, page, 500)
            items.extend(result.items)
            if not result.has_more:
                return items
            page += 1

class InMemoryProposalRepository(ProposalRepository):
    def __init__(self, proposals: Iterable[Proposal] = ()):
        self._items: Dict[str, Proposal] = {}
        self._lock = threading.Lock()
        self.put_many(proposals)

    def put_many(self, proposals: Iterable[Proposal]) -> int:
        count = 0
        with self._lock:
            for p in proposals:
                self._items[p.proposal_id] = copy.deepcopy(p)
                count += 1
        return count

    def get(self, proposal_id: str) -> Optional[Proposal]:
        with self._lock:
            stored = self._items.get(proposal_id)
            return copy.deepcopy(stored) if stored is not None else None

    def update(self, proposal: Proposal, expected_version: int) -> Proposal:
        with self._lock:
            stored = self._items.get(proposal.proposal_id)
            if stored is None:
                raise NotFoundError("Proposal", proposal.proposal_id)
            if stored.version != expected_version:
                raise ConcurrencyConflictError(proposal.proposal_id, expected_version, stored.version)
            saved = replace(copy.deepcopy(proposal), version=expected_version + 1)
            self._items[proposal.proposal_id] = saved
            return copy.deepcopy(saved)

    def query(self, filters: ProposalFilters, page: int, page_size: int) -> ProposalPage:
        with self._lock:
            matched = [copy.deepcopy(p) for p in self._items.values() if filters.matches(p)]
        matched.sort(key=review_sort_key)
        return paginate(matched, page, page_size)

    def __len__(self) -> int:
        return len(self._items)

_COLUMNS = (
    "proposal_id", "sku", "batch_id", "title", "brand", "category",
    "current_price", "proposed_price", "price_change", "price_change_percent",
    "current_margin", "proposed_margin", "margin_change", "cost_breakdown_json",
    "applied_rule_id", "applied_rule_name", "reason", "warnings_json",
    "warning_count", "status", "approved_price", "stock_level", "sales_velocity",
    "estimated_daily_profit_change", "estimated_weekly_revenue_impact",
    "estimated_weekly_profit_impact", "created_at", "reviewed_at", "reviewed_by",
    "review_notes", "ttl", "version",
)

_ORDER_BY = """
    ORDER BY (stock_level > 0) DESC,
             CASE WHEN stock_level > 0 THEN sales_velocity ELSE 0 END DESC,
             ABS(estimated_weekly_profit_impact) DESC,
             stock_level DESC
"""

def _to_row(p: Proposal) -> Tuple[Any, ...]:
    data = p.to_dict()
    data["cost_breakdown_json"] = json.dumps(data.pop("cost_breakdown"))
    data["warnings_json"] = json.dumps(data.pop("warnings"))
    data["warning_count"] = len(p.warnings)
    return tuple(data[c] for c in _COLUMNS)

def _from_row(row: Dict[str, Any]) -> Proposal:
    data = {c: row.get(c) for c in _COLUMNS}
    data["cost_breakdown"] = CostBreakdown(**json.loads(data.pop("cost_breakdown_json") or "{}"))
    data["warnings"] = json.loads(data.pop("warnings_json") or "[]")
    data.pop("warning_count")
    for key in (
        "current_price", "proposed_price", "price_change", "price_change_percent",
        "current_margin", "proposed_margin", "margin_change", "sales_velocity",
        "estimated_daily_profit_change", "estimated_weekly_revenue_impact",
        "estimated_weekly_profit_impact",
    ):
        data[key] = float(data[key] or 0)
    if data["approved_price"] is not None:
        data["approved_price"] = float(data["approved_price"])
    data["status"] = ProposalStatus(data["status"])
    return Proposal(**data)

def build_where(filters: ProposalFilters) -> Tuple[str, List[Any]]:
    clauses: List[str] = []
    params: List[Any] = []

    if filters.status:
        statuses = sorted(s.value for s in filters.status)
        clauses.append(f"status IN ({', '.join(['%s'] * len(statuses))})")
        params.extend(statuses)
    if filters.batch_id:
        clauses.append("batch_id = %s")
        params.append(filters.batch_id)
    if filters.brand:
        clauses.append("brand = %s")
        params.append(filters.brand)
    if filters.category:
        clauses.append("LOWER(category) LIKE %s")
        params.append(f"%{filters.category.lower()}%")
    for column, op, value in (
        ("price_change_percent", ">=", filters.min_price_change),
        ("price_change_percent", "<=", filters.max_price_change),
        ("margin_change", ">=", filters.min_margin_change),
        ("margin_change", "<=", filters.max_margin_change),
    ):
        if value is not None:
            clauses.append(f"{column} {op} %s")
            params.append(value)
    if filters.has_warnings is not None:
        clauses.append("warning_count > 0" if filters.has_warnings else "warning_count = 0")
    if filters.applied_rule_name:
        if filters.applied_rule_name == NO_RULE:
            clauses.append("(applied_rule_name IS NULL OR applied_rule_name = '')")
        else:
            clauses.append("applied_rule_name = %s")
            params.append(filters.applied_rule_name)
    if filters.search:
        term = f"%{filters.search.lower()}%"
        clauses.append("(LOWER(sku) LIKE %s OR LOWER(title) LIKE %s)")
        params.extend([term, term])

    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    return where, params

class MySQLProposalRepository(ProposalRepository):
    table = "price_proposals"

    def put_many(self, proposals: Iterable[Proposal]) -> int:
        rows = [_to_row(p) for p in proposals]
        if not rows:
            return 0
        sql = f"""
            INSERT INTO {self.table}
                ({', '.join(_COLUMNS)})
            VALUES ({', '.join(['%s'] * len(_COLUMNS))})
        """
        execute_many(sql, rows)
        logger.info(f"Inserted {len(rows)} proposals")
        return len(rows)

    def get(self, proposal_id: str) -> Optional[Proposal]:
        row = fetch_one(f"SELECT * FROM {self.table} WHERE proposal_id = %s", (proposal_id,))
        return _from_row(row) if row else None

    def update(self, proposal: Proposal, expected_version: int) -> Proposal:
        sql = f"""
            UPDATE {self.table}
            SET status = %s, approved_price = %s, reviewed_at = %s,
                reviewed_by = %s, review_notes = %s, version = version + 1
            WHERE proposal_id = %s AND version = %s
        """
        affected = execute_query(
            sql,
            (
                proposal.status.value,
                proposal.approved_price,
                proposal.reviewed_at,
                proposal.reviewed_by,
                proposal.review_notes,
                proposal.proposal_id,
                expected_version,
            ),
            fetch="rowcount",
        )
        if not affected:
            current = self.get(proposal.proposal_id)
            if current is None:
                raise NotFoundError("Proposal", proposal.proposal_id)
            raise ConcurrencyConflictError(proposal.proposal_id, expected_version, current.version)
        return replace(proposal, version=expected_version + 1)

    def query(self, filters: ProposalFilters, page: int, page_size: int) -> ProposalPage:
        where, params = build_where(filters)
        count = fetch_one(f"SELECT COUNT(*) AS cnt FROM {self.table} {where}", tuple(params))
        total = int(count["cnt"]) if count else 0

        offset = (page - 1) * page_size
        rows = fetch_all(
            f"SELECT * FROM {self.table} {where} {_ORDER_BY} LIMIT %s OFFSET %s",
            tuple(params) + (page_size, offset),
        )
        return ProposalPage(
            items=[_from_row(r) for r in rows],
            total_count=total,
            page=page,
            page_size=page_size,
            has_more=offset + page_size < total,
        )
