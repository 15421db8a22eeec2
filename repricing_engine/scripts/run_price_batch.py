from repricer.service import build_default_service
from repricer.utils.logging_utils import get_logger

logger = get_logger(__name__)

def main():
    logger.info("Running batch repricing job")
    service = build_default_service()
    summary = service.trigger_batch_run()
    for err in summary["errors"]:
        logger.warning(f"Could not price sku={err['sku']}: {err['message']}")
    logger.info(
        f"Batch {summary['batch_id']} completed: {summary['proposal_count']} proposals, "
        f"{summary['skipped_count']} skipped, {summary['error_count']} errors"
    )

if __name__ == "__main__":
    main()
