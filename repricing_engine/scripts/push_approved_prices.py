import argparse

from repricer.service import build_default_service
from repricer.utils.logging_utils import get_logger

logger = get_logger(__name__)

def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Push approved proposal prices to the channel")
    parser.add_argument("--dry-run", action="store_true", help="compute the updates without sending them")
    parser.add_argument("--proposal-id", action="append", dest="proposal_ids", help="restrict to these proposals")
    return parser.parse_args(argv)

def main(argv=None):
    args = parse_args(argv)
    service = build_default_service()
    report = service.push_approved(args.proposal_ids, dry_run=args.dry_run)

    if report.dry_run:
        for update in report.updates:
            logger.info(f"[dry-run] {update.sku} -> {update.price:.2f}")
        logger.info(f"Dry run prepared {len(report.updates)} updates")
        return 0

    for error in report.errors:
        logger.error(f"Channel error: {error}")
    logger.info(f"Pushed {report.pushed} prices, {report.total_failed} failed")
    return 0 if report.success else 1

if __name__ == "__main__":
    raise SystemExit(main())
