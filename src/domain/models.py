"""
Data models for the email intake domain.

EmailMetadata only holds parsed types, so anything that receives one can use
its fields directly without re-checking addresses, timestamps or S3 locations.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .email_address import Mailbox
from .primitives import MessageId, S3Location, Subject, Timestamp

RECORD_SCHEMA_VERSION = 1


@dataclass
class Attachment:
    """
    Email attachment extracted from the MIME message.

    Attributes:
        filename: Original filename
        content_type: MIME type (e.g., "image/png", "application/pdf")
        size: Size in bytes
        content: Binary content (may be None if not extracted)
    """
    filename: str
    content_type: str
    size: int
    content: Optional[bytes] = None

    @property
    def is_image(self) -> bool:
        """Check if attachment is an image."""
        return self.content_type.lower().startswith('image/')

    def to_record(self) -> Dict[str, Any]:
        """Descriptor for the stored record (binary content is never stored)."""
        return {
            'filename': self.filename,
            'content_type': self.content_type,
            'size': self.size,
        }


@dataclass(frozen=True)
class EmailMetadata:
    """
    Structured email metadata parsed from an SES notification.

    Attributes:
        message_id: SQS message identifier (used for logging and output keys)
        mail_id: SES message id of the received email
        sender: Parsed From mailbox
        recipients: Parsed To mailboxes (may be empty)
        subject: Single-line subject
        received_at: When SES received the email
        location: Where SES stored the raw MIME message
    """
    message_id: str
    mail_id: MessageId
    sender: Mailbox
    recipients: Tuple[Mailbox, ...]
    subject: Subject
    received_at: Timestamp
    location: S3Location


@dataclass
class EmailContent:
    """
    Parsed email content.

    Attributes:
        text_body: Plain text body (empty string if not present)
        html_body: HTML body (empty string if not present)
        attachments: List of Attachment objects
    """
    text_body: str
    html_body: str
    attachments: List[Attachment] = field(default_factory=list)

    @property
    def body(self) -> str:
        """Best available body: text_body > html_body > empty string."""
        return self.text_body or self.html_body or ""

    @property
    def has_content(self) -> bool:
        """Check if email has any body content."""
        return bool(self.text_body or self.html_body)

    def preview(self, limit: int = 200) -> str:
        body = self.body
        return body[:limit] + ('...' if len(body) > limit else '')


@dataclass
class ProcessingResult:
    """
    Result of email processing operation.

    This explicit result type makes success/failure handling clear
    and prevents exceptions from being used for control flow.

    Attributes:
        success: Whether processing succeeded
        message_id: SQS message identifier
        metadata: Email metadata (if parsing succeeded)
        output_key: S3 key of the stored record (if one was written)
        error_message: Error description (if processing failed)
    """
    success: bool
    message_id: str
    metadata: Optional[EmailMetadata] = None
    output_key: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def should_delete_message(self) -> bool:
        """Always True - delete all messages to prevent infinite retries."""
        return True

    def __repr__(self) -> str:
        """Human-readable representation for logging."""
        if self.success:
            return f"ProcessingResult(success=True, message_id={self.message_id})"
        else:
            return f"ProcessingResult(success=False, message_id={self.message_id}, error={self.error_message})"


def to_record(metadata: EmailMetadata, content: EmailContent) -> Dict[str, Any]:
    """
    Build the JSON-serializable record stored for a processed email.

    Args:
        metadata: Parsed email metadata
        content: Parsed email content

    Returns:
        Dict ready for json.dumps()
    """
    return {
        'schema_version': RECORD_SCHEMA_VERSION,
        'sqs_message_id': metadata.message_id,
        'mail_id': str(metadata.mail_id),
        'from': {
            'address': metadata.sender.address.address,
            'name': metadata.sender.display_name,
        },
        'to': [
            {'address': m.address.address, 'name': m.display_name}
            for m in metadata.recipients
        ],
        'subject': str(metadata.subject),
        'received_at': metadata.received_at.isoformat(),
        'source': metadata.location.uri,
        'text_body': content.text_body,
        'html_body': content.html_body,
        'attachments': [a.to_record() for a in content.attachments],
    }
