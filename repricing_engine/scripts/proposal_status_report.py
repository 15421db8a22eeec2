import sys

from repricer.service import build_default_service
from repricer.utils.logging_utils import get_logger

logger = get_logger(__name__)

def main():
    service = build_default_service()
    counts = service.status_counts()
    logger.info(f"Proposal status counts: {counts}")

    if len(sys.argv) > 1:
        summary = service.batch_summary(sys.argv[1])
        logger.info(
            f"Batch {summary.batch_id}: {summary.total_proposals} proposals, "
            f"avg price change {summary.average_price_change_percent:.2f}%, "
            f"avg margin change {summary.average_margin_change:.2f}pp, "
            f"weekly profit impact {summary.total_estimated_weekly_profit_impact:.2f}, "
            f"{summary.proposals_with_warnings} with warnings"
        )

if __name__ == "__main__":
    main()
