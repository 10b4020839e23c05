"""
Email intake pipeline - core business logic.

This module handles the end-to-end processing of SES email notifications:
1. Parse SES notification from SQS record into EmailMetadata
2. Apply the sender policy
3. Fetch email from S3 and extract content
4. Store a normalized JSON record in S3 (if an output bucket is configured)
5. Return result (success or failure)

All errors are caught and returned as ProcessingResult with success=False.
No exceptions propagate out of the public methods.
"""

import json
import logging
import time
from datetime import timezone
from typing import Any, Optional

from config import Settings
from services import email as email_service
from services import s3 as s3_service
from .models import EmailContent, EmailMetadata, ProcessingResult, to_record
from .primitives import S3Location
from .ses_notification import parse_sqs_record, sqs_message_id

logger = logging.getLogger(__name__)


class EmailProcessor:
    """
    Handles end-to-end email intake pipeline.

    Parses SES email notifications once at the boundary, then works only with
    the parsed EmailMetadata. Returns ProcessingResult for explicit
    success/failure handling.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()

    def process_ses_record(self, record: Any) -> ProcessingResult:
        """
        Process a single SQS record containing SES notification.

        Args:
            record: SQS record dict containing SES notification

        Returns:
            ProcessingResult with success=True or success=False (errors logged)
        """
        message_id = sqs_message_id(record)
        logger.info(f"Processing SQS message: {message_id}")

        parsed = parse_sqs_record(record)
        if not parsed.success:
            logger.warning(f"Rejected {message_id}: {parsed.error_message}")
            return ProcessingResult(
                success=False,
                message_id=message_id,
                error_message=f"Invalid SES notification: {parsed.error_message}"
            )

        metadata = parsed.value
        logger.info(f"Parsed: from={metadata.sender}, subject={metadata.subject}")

        if not self.settings.sender_allowed(metadata.sender.domain):
            logger.warning(f"Rejected {message_id}: sender domain {metadata.sender.domain} not allowed")
            return ProcessingResult(
                success=False,
                message_id=message_id,
                metadata=metadata,
                error_message=f"Sender domain not allowed: {metadata.sender.domain}"
            )

        try:
            content = self._fetch_email(metadata)
            logger.info(
                f"Fetched: text={len(content.text_body)}, "
                f"html={len(content.html_body)}, attachments={len(content.attachments)}"
            )

            output_key = self._store_record(metadata, content)

            self._log_processing_success(metadata, content, output_key)

            return ProcessingResult(
                success=True,
                message_id=message_id,
                metadata=metadata,
                output_key=output_key
            )

        except Exception as e:
            logger.error(f"Failed to process {message_id}: {e}", exc_info=True)

            return ProcessingResult(
                success=False,
                message_id=message_id,
                metadata=metadata,
                error_message=str(e)
            )

    def output_key_for(self, metadata: EmailMetadata) -> str:
        """
        S3 key for the processed record:
        {prefix}{environment}/{yyyy}/{mm}/{dd}/{mail id}.json
        """
        received = metadata.received_at.value.astimezone(timezone.utc)
        safe_mail_id = s3_service.sanitize_for_s3_key(str(metadata.mail_id))
        return (
            f"{self.settings.output_key_prefix}{self.settings.environment}/"
            f"{received:%Y/%m/%d}/{safe_mail_id}.json"
        )

    def _fetch_email(self, metadata: EmailMetadata) -> EmailContent:
        """
        Fetch email from S3 and parse content.

        Raises:
            ValueError: If the email is missing or larger than the configured limit
        """
        logger.info(f"Fetching email from: {metadata.location.uri}")
        start_time = time.time()

        raw_email = s3_service.fetch_email_from_s3(metadata.location)
        logger.info(f"Fetched {len(raw_email):,} bytes from S3 in {time.time() - start_time:.3f}s")

        if len(raw_email) > self.settings.max_email_size_bytes:
            raise ValueError(
                f"Email too large: {len(raw_email):,} bytes > "
                f"{self.settings.max_email_size_bytes:,} limit"
            )

        return email_service.extract_email_content(raw_email)

    def _store_record(self, metadata: EmailMetadata, content: EmailContent) -> Optional[str]:
        """Upload the normalized record; returns its key, or None if upload is disabled."""
        if not self.settings.upload_enabled:
            logger.info("Output bucket not configured, skipping upload")
            return None

        key = self.output_key_for(metadata)
        # Both parts come from parsed values; a failure here is a bug
        location = S3Location.parse(self.settings.output_bucket, key).unwrap()

        record = to_record(metadata, content)
        s3_service.upload_processed_result(location, json.dumps(record, ensure_ascii=False))
        return key

    def _log_processing_success(
        self,
        metadata: EmailMetadata,
        content: EmailContent,
        output_key: Optional[str]
    ) -> None:
        """Log successful processing summary."""
        logger.info("=" * 50)
        logger.info("EMAIL PROCESSED SUCCESSFULLY")
        logger.info(f"From: {metadata.sender}")
        logger.info(f"To: {', '.join(str(r) for r in metadata.recipients) or '(none)'}")
        logger.info(f"Subject: {metadata.subject}")
        logger.info(f"Attachments: {len(content.attachments)}")

        if content.has_content:
            logger.info(f"Body preview: {content.preview(200)}")

        logger.info(f"Stored: {output_key or '(upload disabled)'}")
        logger.info("=" * 50)
