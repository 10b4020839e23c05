"""
S3 operations for the email intake Lambda.

Functions take parsed S3Location values, so bucket and key have already been
checked by the time a request is made.
"""

import logging
import re

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from domain.primitives import S3Location

logger = logging.getLogger(__name__)

# Configure S3 client with timeouts to prevent infinite hangs
s3_config = Config(
    retries={
        'max_attempts': 1,  # 1 attempt total (no retries)
        'mode': 'standard'
    },
    connect_timeout=10,  # 10 seconds to establish connection
    read_timeout=60      # 60 seconds max for reading response
)

# Initialize S3 client at module level (thread-safe, reused across invocations)
s3_client = boto3.client('s3', config=s3_config)
logger.info("S3 client initialized with timeouts: connect=10s, read=60s, max_attempts=1")


def fetch_email_from_s3(location: S3Location) -> bytes:
    """
    Fetch raw email content from S3.

    Args:
        location: Parsed bucket/key of the raw MIME message

    Returns:
        bytes: The raw email content

    Raises:
        ValueError: If the bucket or object does not exist
        ClientError: For any other S3 error
    """
    try:
        response = s3_client.get_object(Bucket=location.bucket, Key=location.key)
        return response['Body'].read()
    except ClientError as e:
        error_code = e.response.get('Error', {}).get('Code', '')
        if error_code == 'NoSuchKey':
            logger.error(f"S3 object not found: {location.uri}")
            raise ValueError(f"Email file not found in S3: {location.key}")
        elif error_code == 'NoSuchBucket':
            logger.error(f"S3 bucket not found: {location.bucket}")
            raise ValueError(f"S3 bucket not found: {location.bucket}")
        else:
            logger.error(f"Failed to fetch from S3 {location.uri}: {e}")
            raise


def upload_processed_result(
    location: S3Location,
    content: str,
    content_type: str = 'application/json'
) -> None:
    """
    Upload a processed record to S3.

    Args:
        location: Destination bucket/key
        content: Serialized record
        content_type: MIME type stored on the object

    Raises:
        ValueError: If content is empty
        ClientError: If S3 operation fails
    """
    if not content:
        raise ValueError("Content cannot be empty")

    body = content.encode('utf-8')
    try:
        logger.info(f"Uploading result to {location.uri} ({len(body):,} bytes)")

        s3_client.put_object(
            Bucket=location.bucket,
            Key=location.key,
            Body=body,
            ContentType=content_type
        )

        logger.info(f"Successfully uploaded result to {location.uri}")

    except ClientError as e:
        error_code = e.response.get('Error', {}).get('Code', 'Unknown')
        error_message = e.response.get('Error', {}).get('Message', str(e))

        logger.error(
            f"Failed to upload result to {location.uri}: "
            f"error_code={error_code}, error_message={error_message}"
        )

        raise


def sanitize_for_s3_key(value: str) -> str:
    """
    Sanitize a string for use in S3 object keys.

    Removes/replaces characters that are problematic in S3 keys or URLs.

    Args:
        value: String to sanitize

    Returns:
        Sanitized string safe for S3 keys
    """
    # Remove angle brackets common in Message-IDs: <abc@example.com>
    result = value.strip('<>')

    # Replace problematic characters
    result = re.sub(r'[/\\#?&%]', '_', result)

    # Remove any remaining control characters
    result = re.sub(r'[\x00-\x1f\x7f]', '', result)

    return result
