"""
MIME parsing for raw emails fetched from S3.

extract_email_content() turns the raw message bytes into an EmailContent
with decoded text/HTML bodies and attachments.
"""

import logging
from email import policy
from email.message import EmailMessage
from email.parser import BytesParser
from typing import Optional

from domain.models import Attachment, EmailContent

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = 'application/octet-stream'


def extract_email_content(raw_email: bytes) -> EmailContent:
    """
    Parse raw email (MIME format) and extract bodies and attachments.

    Args:
        raw_email: Raw email bytes from S3

    Returns:
        EmailContent with text_body, html_body and attachments

    Example:
        >>> content = extract_email_content(b"From: a@example.com\\r\\n\\r\\nHello World")
        >>> content.text_body
        'Hello World'
    """
    msg = BytesParser(policy=policy.default).parsebytes(raw_email)
    content = EmailContent(text_body='', html_body='')

    if not msg.is_multipart():
        content_type = msg.get_content_type()
        if content_type == 'text/plain':
            content.text_body = _decode_text(msg)
        elif content_type == 'text/html':
            content.html_body = _decode_text(msg)
        else:
            logger.warning(
                f"Unknown content type for non-multipart email: {content_type}. "
                f"Email body will be empty."
            )
        return content

    for part in msg.walk():
        if part.is_multipart():
            continue

        if part.get_content_disposition() == 'attachment' and not part.get_filename():
            logger.warning("Skipping attachment part without a filename")
            continue

        attachment = _as_attachment(part)
        if attachment is not None:
            content.attachments.append(attachment)
            continue

        content_type = part.get_content_type()
        # First text/plain and text/html parts win
        if content_type == 'text/plain' and not content.text_body:
            content.text_body = _decode_text(part)
        elif content_type == 'text/html' and not content.html_body:
            content.html_body = _decode_text(part)

    return content


def _as_attachment(part: EmailMessage) -> Optional[Attachment]:
    """
    Return an Attachment if `part` is one, else None.

    Counts explicit attachments, inline parts with a filename (images in HTML
    mail) and image/application parts that only carry a filename.
    """
    filename = part.get_filename()
    disposition = part.get_content_disposition()
    content_type = part.get_content_type()

    if not filename:
        return None
    if disposition not in ('attachment', 'inline') and not content_type.startswith(('image/', 'application/')):
        return None

    payload = part.get_payload(decode=True) or b''
    return Attachment(
        filename=filename,
        content_type=content_type or DEFAULT_CONTENT_TYPE,
        size=len(payload),
        content=payload,
    )


def _decode_text(part: EmailMessage) -> str:
    """Decode a text part, falling back to a lenient UTF-8 decode."""
    try:
        # get_content() handles quoted-printable, base64 and declared charsets
        return part.get_content()
    except (LookupError, UnicodeDecodeError, KeyError) as e:
        logger.warning(f"Failed to decode {part.get_content_type()} body with get_content(): {e}")
        payload = part.get_payload(decode=True)
        return payload.decode('utf-8', errors='ignore') if payload else ''
