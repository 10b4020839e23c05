"""
Email address value objects.

EmailAddress, Mailbox and DomainName can only be obtained through their
parse() classmethods. Once you hold one, it is valid; nothing downstream needs
to check it again.
"""

import re
from dataclasses import InitVar, dataclass
from email.utils import formataddr, getaddresses, parseaddr
from typing import Any, List, Optional, Tuple

from ._guard import PARSE_TOKEN, check_token
from .result import ParseError, ParseResult, collect

MAX_ADDRESS_LENGTH = 254
MAX_LOCAL_PART_LENGTH = 64
MAX_LABEL_LENGTH = 63

# RFC 5322 atext plus '.' (dot placement is checked separately)
_LOCAL_PART_PATTERN = re.compile(r"[A-Za-z0-9!#$%&'*+/=?^_`{|}~.-]+")
_LABEL_PATTERN = re.compile(r"[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?")
_TLD_PATTERN = re.compile(r"[A-Za-z]{2,}")


def _domain_problem(domain: str) -> Optional[str]:
    """Return a description of what is wrong with `domain`, or None."""
    if not domain:
        return "domain is empty"
    labels = domain.split('.')
    if len(labels) < 2:
        return "domain must have at least two labels"
    for label in labels:
        if not label:
            return "domain contains an empty label"
        if len(label) > MAX_LABEL_LENGTH:
            return f"domain label longer than {MAX_LABEL_LENGTH} characters"
        if not _LABEL_PATTERN.fullmatch(label):
            return f"invalid domain label {label!r}"
    if not _TLD_PATTERN.fullmatch(labels[-1]):
        return "top-level domain must be alphabetic and at least 2 characters"
    return None


def _local_part_problem(local_part: str) -> Optional[str]:
    if not local_part:
        return "local part is empty"
    if len(local_part) > MAX_LOCAL_PART_LENGTH:
        return f"local part longer than {MAX_LOCAL_PART_LENGTH} characters"
    if not _LOCAL_PART_PATTERN.fullmatch(local_part):
        return "local part contains invalid characters"
    if local_part.startswith('.') or local_part.endswith('.'):
        return "local part cannot start or end with '.'"
    if '..' in local_part:
        return "local part cannot contain '..'"
    return None


@dataclass(frozen=True)
class DomainName:
    """A syntactically valid, lowercased DNS domain name."""
    value: str
    _token: InitVar[object] = None

    def __post_init__(self, _token: object) -> None:
        check_token(self, _token)

    @classmethod
    def parse(cls, raw: Any, field_name: str = 'domain') -> ParseResult['DomainName']:
        if not isinstance(raw, str):
            return ParseResult.fail(ParseError(field_name, "expected a string", raw))
        domain = raw.strip().lower()
        problem = _domain_problem(domain)
        if problem:
            return ParseResult.fail(ParseError(field_name, problem, raw))
        return ParseResult.ok(cls(domain, _token=PARSE_TOKEN))

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class EmailAddress:
    """
    A valid email address.

    The domain is stored lowercased; the local part keeps its case because
    RFC 5321 leaves its interpretation to the receiving host.

    Attributes:
        local_part: Part before '@'
        domain: Lowercased part after '@'
    """
    local_part: str
    domain: str
    _token: InitVar[object] = None

    def __post_init__(self, _token: object) -> None:
        check_token(self, _token)

    @classmethod
    def parse(cls, raw: Any, field_name: str = 'address') -> ParseResult['EmailAddress']:
        """
        Parse a raw value into an EmailAddress.

        Args:
            raw: Untrusted input (usually a string from a header or payload)
            field_name: Name used in the ParseError if parsing fails

        Returns:
            ParseResult holding the EmailAddress, or the reason it was rejected

        Example:
            >>> EmailAddress.parse(" Alice@Example.COM ").unwrap()
            EmailAddress(local_part='Alice', domain='example.com')
        """
        if not isinstance(raw, str):
            return ParseResult.fail(ParseError(field_name, "expected a string", raw))

        text = raw.strip()
        if not text:
            return ParseResult.fail(ParseError(field_name, "address is empty", raw))
        if len(text) > MAX_ADDRESS_LENGTH:
            return ParseResult.fail(ParseError(
                field_name, f"address longer than {MAX_ADDRESS_LENGTH} characters", raw
            ))
        if text.count('@') != 1:
            return ParseResult.fail(ParseError(field_name, "address must contain exactly one '@'", raw))

        local_part, domain = text.split('@')
        problem = _local_part_problem(local_part) or _domain_problem(domain)
        if problem:
            return ParseResult.fail(ParseError(field_name, problem, raw))

        return ParseResult.ok(cls(local_part, domain.lower(), _token=PARSE_TOKEN))

    @property
    def address(self) -> str:
        return f"{self.local_part}@{self.domain}"

    def __str__(self) -> str:
        return self.address


@dataclass(frozen=True)
class Mailbox:
    """
    An address with an optional display name, as found in From/To headers.

    Attributes:
        address: Parsed EmailAddress
        display_name: Display name ('' if none was given)
    """
    address: EmailAddress
    display_name: str = ''
    _token: InitVar[object] = None

    def __post_init__(self, _token: object) -> None:
        check_token(self, _token)

    @classmethod
    def parse(cls, raw: Any, field_name: str = 'mailbox') -> ParseResult['Mailbox']:
        """Parse 'Name <local@domain>' or a bare 'local@domain'."""
        if not isinstance(raw, str):
            return ParseResult.fail(ParseError(field_name, "expected a string", raw))

        display_name, addr_spec = parseaddr(raw.strip())
        if not addr_spec:
            return ParseResult.fail(ParseError(field_name, "no address found", raw))

        return EmailAddress.parse(addr_spec, field_name).map(
            lambda address: cls(address, display_name.strip(), _token=PARSE_TOKEN)
        )

    @classmethod
    def from_address(cls, address: EmailAddress, display_name: str = '') -> 'Mailbox':
        """Wrap an already-parsed address; no further checks are needed."""
        return cls(address, display_name, _token=PARSE_TOKEN)

    @property
    def domain(self) -> str:
        return self.address.domain

    def __str__(self) -> str:
        return formataddr((self.display_name, self.address.address))


def parse_address_list(raw: Any, field_name: str = 'addresses') -> ParseResult[Tuple[Mailbox, ...]]:
    """
    Parse a header value or list of header values into mailboxes.

    A string is split as an address-list header ("a@x.com, B <b@y.org>").
    Every bad entry is reported, each with its index.

    Args:
        raw: String, list of strings, or None (treated as empty)
        field_name: Field name used in errors

    Returns:
        ParseResult holding a (possibly empty) tuple of Mailbox objects
    """
    if raw is None:
        return ParseResult.ok(())

    if isinstance(raw, (list, tuple)):
        return collect(
            Mailbox.parse(entry, f"{field_name}[{index}]")
            for index, entry in enumerate(raw)
        )

    if not isinstance(raw, str):
        return ParseResult.fail(ParseError(field_name, "expected a string or list of strings", raw))
    if not raw.strip():
        return ParseResult.ok(())

    results: List[ParseResult[Mailbox]] = []
    for index, (display_name, addr_spec) in enumerate(getaddresses([raw])):
        entry_field = f"{field_name}[{index}]"
        if not addr_spec:
            results.append(ParseResult.fail(ParseError(entry_field, "no address found", raw)))
            continue
        results.append(EmailAddress.parse(addr_spec, entry_field).map(
            lambda address, name=display_name: Mailbox.from_address(address, name.strip())
        ))
    return collect(results)
