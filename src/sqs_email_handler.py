"""
Lambda entry point for the SES email intake queue.

Each SQS record is handed to EmailProcessor, which parses the notification
once at the boundary and stores the normalized record under OUTPUT_BUCKET.
Records are never retried: a notification that fails to parse will fail the
same way on every delivery, so the batch always reports no item failures.
"""

import logging
from typing import Any, Dict, Iterable

from config import load_settings
from domain.email_processor import EmailProcessor
from domain.models import ProcessingResult

# A bad environment fails the cold start, not the first message
settings = load_settings()

logger = logging.getLogger()
logger.setLevel(settings.log_level)

# Lambda installs its own handler; this one is for local runs
if not logger.handlers:
    console_handler = logging.StreamHandler()
    console_handler.setLevel(settings.log_level)
    console_handler.setFormatter(logging.Formatter('%(levelname)s - %(message)s'))
    logger.addHandler(console_handler)

email_processor = EmailProcessor(settings)


def summarize_batch(results: Iterable[ProcessingResult]) -> Dict[str, int]:
    """
    Count batch outcomes.

    `stored` records were written to the output bucket, `parsed` records were
    accepted while uploads are disabled, `rejected` records never got past
    parsing, and `failed` records parsed but failed later (policy, S3, MIME).
    """
    counts = {'stored': 0, 'parsed': 0, 'rejected': 0, 'failed': 0}
    for result in results:
        if result.success:
            counts['stored' if result.output_key else 'parsed'] += 1
        elif result.metadata is None:
            counts['rejected'] += 1
        else:
            counts['failed'] += 1
    return counts


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Parse and store every SES notification in an SQS batch.

    Returns:
        {"batchItemFailures": []}, so SQS deletes the whole batch
    """
    records = event.get('Records', [])
    logger.info("=" * 70)
    logger.info(
        f"Email intake [{settings.environment}]: {len(records)} record(s), "
        f"output {'s3://' + settings.output_bucket if settings.upload_enabled else 'disabled'}"
    )
    logger.info("=" * 70)

    results = []
    for record in records:
        result = email_processor.process_ses_record(record)
        results.append(result)

        if result.success and result.output_key:
            logger.info(f"✓ {result.message_id} -> {result.output_key}")
        elif result.success:
            logger.info(f"✓ {result.message_id} parsed (upload disabled)")
        else:
            logger.warning(f"⚠ {result.message_id} dropped: {result.error_message}")

    counts = summarize_batch(results)
    logger.info("=" * 70)
    logger.info(
        "Intake summary: stored={stored} parsed={parsed} rejected={rejected} failed={failed}".format(**counts)
    )
    logger.info("=" * 70)

    return {"batchItemFailures": []}
