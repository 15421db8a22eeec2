from dataclasses import dataclass, field
from typing import Dict, Iterable

import pandas as pd

from repricer.models.proposal import Proposal, ProposalStatus

@dataclass
class BatchSummary:
    batch_id: str
    total_proposals: int = 0
    status_counts: Dict[str, int] = field(default_factory=dict)
    average_price_change_percent: float = 0.0
    average_margin_change: float = 0.0
    total_estimated_weekly_profit_impact: float = 0.0
    proposals_with_warnings: int = 0

def _frame(proposals: Iterable[Proposal]) -> pd.DataFrame:
    rows = [
        {
            "batch_id": p.batch_id,
            "status": p.status.value,
            "price_change_percent": p.price_change_percent,
            "margin_change": p.margin_change,
            "weekly_profit_impact": p.estimated_weekly_profit_impact,
            "has_warnings": bool(p.warnings),
        }
        for p in proposals
    ]
    return pd.DataFrame(
        rows,
        columns=[
            "batch_id", "status", "price_change_percent", "margin_change",
            "weekly_profit_impact", "has_warnings",
        ],
    )

def status_counts(proposals: Iterable[Proposal]) -> Dict[str, int]:
    df = _frame(proposals)
    counts = df["status"].value_counts()
    result = {s.value: int(counts.get(s.value, 0)) for s in ProposalStatus}
    result["total_approved"] = result[ProposalStatus.APPROVED.value] + result[ProposalStatus.MODIFIED.value]
    return result

def summarize_batch(proposals: Iterable[Proposal], batch_id: str) -> BatchSummary:
    df = _frame(proposals)
    df = df[df["batch_id"] == batch_id]
    summary = BatchSummary(batch_id=batch_id)
    if df.empty:
        summary.status_counts = {s.value: 0 for s in ProposalStatus}
        return summary

    counts = df["status"].value_counts()
    summary.total_proposals = int(len(df))
    summary.status_counts = {s.value: int(counts.get(s.value, 0)) for s in ProposalStatus}
    summary.average_price_change_percent = float(df["price_change_percent"].mean())
    summary.average_margin_change = float(df["margin_change"].mean())
    summary.total_estimated_weekly_profit_impact = float(df["weekly_profit_impact"].sum())
    summary.proposals_with_warnings = int(df["has_warnings"].sum())
    return summary
