"""
Parsed primitives used by the email metadata model.

Each type here follows the same shape as EmailAddress: a frozen dataclass that
can only be built by its parse() classmethod, which returns a ParseResult.
"""

import ipaddress
import re
from dataclasses import InitVar, dataclass
from datetime import datetime, timezone
from typing import Any

from ._guard import PARSE_TOKEN, check_token
from .result import ParseError, ParseResult, collect

DEFAULT_SUBJECT = 'No Subject'
MAX_MESSAGE_ID_LENGTH = 998
MAX_S3_KEY_BYTES = 1024

_BUCKET_PATTERN = re.compile(r"[a-z0-9][a-z0-9.-]{1,61}[a-z0-9]")
_LINE_BREAKS = re.compile(r"[\r\n]+")


@dataclass(frozen=True)
class MessageId:
    """RFC 5322 Message-ID (or SES message id) without angle brackets."""
    value: str
    _token: InitVar[object] = None

    def __post_init__(self, _token: object) -> None:
        check_token(self, _token)

    @classmethod
    def parse(cls, raw: Any, field_name: str = 'messageId') -> ParseResult['MessageId']:
        if not isinstance(raw, str):
            return ParseResult.fail(ParseError(field_name, "expected a string", raw))
        value = raw.strip().strip('<>').strip()
        if not value:
            return ParseResult.fail(ParseError(field_name, "message id is empty", raw))
        if len(value) > MAX_MESSAGE_ID_LENGTH:
            return ParseResult.fail(ParseError(
                field_name, f"message id longer than {MAX_MESSAGE_ID_LENGTH} characters", raw
            ))
        return ParseResult.ok(cls(value, _token=PARSE_TOKEN))

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Subject:
    """Single-line subject; missing subjects become DEFAULT_SUBJECT."""
    value: str
    _token: InitVar[object] = None

    def __post_init__(self, _token: object) -> None:
        check_token(self, _token)

    @classmethod
    def parse(cls, raw: Any, field_name: str = 'subject') -> ParseResult['Subject']:
        if raw is None:
            return ParseResult.ok(cls(DEFAULT_SUBJECT, _token=PARSE_TOKEN))
        if not isinstance(raw, str):
            return ParseResult.fail(ParseError(field_name, "expected a string", raw))
        # Folded headers arrive with embedded CRLF
        value = _LINE_BREAKS.sub(' ', raw).strip()
        return ParseResult.ok(cls(value or DEFAULT_SUBJECT, _token=PARSE_TOKEN))

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Timestamp:
    """Timezone-aware point in time parsed from ISO 8601."""
    value: datetime
    _token: InitVar[object] = None

    def __post_init__(self, _token: object) -> None:
        check_token(self, _token)

    @classmethod
    def parse(cls, raw: Any, field_name: str = 'timestamp') -> ParseResult['Timestamp']:
        """
        Parse an ISO 8601 timestamp such as SES's "2025-01-01T00:00:00.000Z".

        Naive timestamps (no offset) are rejected: we cannot know which zone
        they were written in.
        """
        if not isinstance(raw, str):
            return ParseResult.fail(ParseError(field_name, "expected a string", raw))
        text = raw.strip()
        if text.endswith(('Z', 'z')):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return ParseResult.fail(ParseError(field_name, "not an ISO 8601 timestamp", raw))
        if parsed.tzinfo is None:
            return ParseResult.fail(ParseError(field_name, "timestamp has no timezone", raw))
        # isoformat() and output keys convert to UTC; year 1 / 9999 edges can overflow
        try:
            parsed.astimezone(timezone.utc)
        except OverflowError:
            return ParseResult.fail(ParseError(field_name, "timestamp out of range", raw))
        return ParseResult.ok(cls(parsed, _token=PARSE_TOKEN))

    def isoformat(self) -> str:
        """UTC ISO 8601 with a 'Z' suffix."""
        utc = self.value.astimezone(timezone.utc)
        return utc.isoformat().replace('+00:00', 'Z')

    def __str__(self) -> str:
        return self.isoformat()


def _bucket_problem(bucket: str) -> str:
    if not 3 <= len(bucket) <= 63:
        return "bucket name must be 3-63 characters"
    if not _BUCKET_PATTERN.fullmatch(bucket):
        return "bucket name may only contain lowercase letters, digits, '.' and '-'"
    if '..' in bucket:
        return "bucket name cannot contain '..'"
    try:
        ipaddress.IPv4Address(bucket)
    except ValueError:
        return ''
    return "bucket name cannot be formatted as an IP address"


def parse_bucket_name(raw: Any, field_name: str = 'bucketName') -> ParseResult[str]:
    """Parse an S3 bucket name (returned as a plain str)."""
    if not isinstance(raw, str):
        return ParseResult.fail(ParseError(field_name, "expected a string", raw))
    problem = _bucket_problem(raw)
    if problem:
        return ParseResult.fail(ParseError(field_name, problem, raw))
    return ParseResult.ok(raw)


def parse_object_key(raw: Any, field_name: str = 'objectKey') -> ParseResult[str]:
    if not isinstance(raw, str):
        return ParseResult.fail(ParseError(field_name, "expected a string", raw))
    if not raw:
        return ParseResult.fail(ParseError(field_name, "object key is empty", raw))
    if len(raw.encode('utf-8')) > MAX_S3_KEY_BYTES:
        return ParseResult.fail(ParseError(
            field_name, f"object key longer than {MAX_S3_KEY_BYTES} bytes", raw
        ))
    return ParseResult.ok(raw)


@dataclass(frozen=True)
class S3Location:
    """
    Bucket and key of an S3 object.

    Attributes:
        bucket: Valid S3 bucket name
        key: Non-empty object key
    """
    bucket: str
    key: str
    _token: InitVar[object] = None

    def __post_init__(self, _token: object) -> None:
        check_token(self, _token)

    @classmethod
    def parse(cls, bucket: Any, key: Any) -> ParseResult['S3Location']:
        """Parse bucket and key together, reporting problems with both."""
        return collect([
            parse_bucket_name(bucket),
            parse_object_key(key),
        ]).map(lambda parts: cls(parts[0], parts[1], _token=PARSE_TOKEN))

    @property
    def uri(self) -> str:
        return f"s3://{self.bucket}/{self.key}"

    def __str__(self) -> str:
        return self.uri
