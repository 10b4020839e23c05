"""
Boundary parser for SES "email received" notifications delivered via SQS.

parse_sqs_record() is the single place where the untyped SQS record is turned
into an EmailMetadata. It never raises on bad input; every problem it finds is
returned in the ParseResult so the caller can log all of them at once.
"""

import json
import logging
from typing import Any, Dict, Mapping

from .email_address import Mailbox, parse_address_list
from .models import EmailMetadata
from .primitives import MessageId, S3Location, Subject, Timestamp
from .result import ParseError, ParseResult, collect

logger = logging.getLogger(__name__)

UNKNOWN_MESSAGE_ID = 'UNKNOWN'
RECEIVED = 'Received'


def parse_sqs_record(record: Any) -> ParseResult[EmailMetadata]:
    """
    Parse an SQS record containing an SES notification.

    Handles both direct SES->SQS and SNS-wrapped (SES->SNS->SQS) notifications.

    Args:
        record: SQS record dict from the Lambda event

    Returns:
        ParseResult holding EmailMetadata, or every field error found
    """
    if not isinstance(record, Mapping):
        return ParseResult.fail(ParseError('record', "expected an object", record))

    message_id = sqs_message_id(record)

    body = record.get('body')
    if not isinstance(body, str):
        return ParseResult.fail(ParseError('body', "expected a JSON string", body))

    return (
        _load_json_object(body, 'body')
        .bind(_unwrap_sns)
        .bind(lambda notification: parse_ses_notification(notification, message_id))
    )


def sqs_message_id(record: Any) -> str:
    """SQS messageId, or 'UNKNOWN' when absent (used for logging only)."""
    if isinstance(record, Mapping):
        value = record.get('messageId')
        if isinstance(value, str) and value:
            return value
    return UNKNOWN_MESSAGE_ID


def parse_ses_notification(notification: Dict[str, Any], message_id: str) -> ParseResult[EmailMetadata]:
    """
    Parse a decoded SES notification into EmailMetadata.

    Args:
        notification: Decoded SES notification JSON
        message_id: SQS message identifier to carry along

    Returns:
        ParseResult holding EmailMetadata
    """
    kind = notification.get('notificationType', notification.get('eventType'))
    if kind is not None and kind != RECEIVED:
        return ParseResult.fail(ParseError(
            'notificationType', f"unsupported notification type {kind!r}", kind
        ))

    mail = notification.get('mail')
    receipt = notification.get('receipt')
    shape = collect([
        _require_object(mail, 'mail'),
        _require_object(receipt, 'receipt'),
    ])
    if not shape.success:
        return ParseResult(errors=shape.errors)

    common_headers = mail.get('commonHeaders', {})
    if not isinstance(common_headers, dict):
        return ParseResult.fail(ParseError(
            'mail.commonHeaders', "expected an object", common_headers
        ))

    return collect([
        MessageId.parse(mail.get('messageId'), 'mail.messageId'),
        _parse_sender(mail, common_headers),
        _parse_recipients(mail, common_headers),
        Subject.parse(common_headers.get('subject'), 'mail.commonHeaders.subject'),
        Timestamp.parse(mail.get('timestamp'), 'mail.timestamp'),
        _parse_location(receipt),
    ]).map(lambda fields: EmailMetadata(message_id, *fields))


def _load_json_object(text: str, field_name: str) -> ParseResult[Dict[str, Any]]:
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        return ParseResult.fail(ParseError(field_name, f"invalid JSON ({e.msg})", text))
    except RecursionError:
        return ParseResult.fail(ParseError(field_name, "JSON nested too deeply", text))
    return _require_object(document, field_name)


def _require_object(value: Any, field_name: str) -> ParseResult[Dict[str, Any]]:
    if not isinstance(value, dict):
        return ParseResult.fail(ParseError(field_name, "expected an object", value))
    return ParseResult.ok(value)


def _unwrap_sns(document: Dict[str, Any]) -> ParseResult[Dict[str, Any]]:
    if document.get('Type') == 'Notification' and 'Message' in document:
        logger.info("Unwrapping SNS message (SES -> SNS -> SQS)")
        message = document['Message']
        if not isinstance(message, str):
            return ParseResult.fail(ParseError('body.Message', "expected a JSON string", message))
        return _load_json_object(message, 'body.Message')
    return ParseResult.ok(document)


def _parse_sender(mail: Dict[str, Any], common_headers: Dict[str, Any]) -> ParseResult[Mailbox]:
    """
    Sender from commonHeaders.from (list or string), falling back to
    mail.source and then mail.returnPath (the envelope sender).
    """
    from_field = common_headers.get('from')
    if isinstance(from_field, list) and from_field:
        return Mailbox.parse(from_field[0], 'mail.commonHeaders.from[0]')
    if isinstance(from_field, str) and from_field:
        return Mailbox.parse(from_field, 'mail.commonHeaders.from')

    for fallback in ('source', 'returnPath'):
        value = mail.get(fallback)
        if value:
            return Mailbox.parse(value, f"mail.{fallback}")

    return ParseResult.fail(ParseError('mail.commonHeaders.from', "no sender address found"))


def _parse_recipients(mail: Dict[str, Any], common_headers: Dict[str, Any]):
    to_field = common_headers.get('to')
    if to_field:
        return parse_address_list(to_field, 'mail.commonHeaders.to')
    return parse_address_list(mail.get('destination'), 'mail.destination')


def _parse_location(receipt: Dict[str, Any]) -> ParseResult[S3Location]:
    action = receipt.get('action')
    if not isinstance(action, dict):
        return ParseResult.fail(ParseError('receipt.action', "expected an object", action))

    action_type = action.get('type')
    if action_type is not None and action_type != 'S3':
        return ParseResult.fail(ParseError(
            'receipt.action.type', f"expected an S3 action, got {action_type!r}", action_type
        ))

    return S3Location.parse(
        action.get('bucketName'),
        action.get('objectKey'),
    ).with_field('receipt.action')
