"""
Explicit success/failure result for boundary parsing.

Parsers in this package never raise on bad input. They return a ParseResult
that either holds a fully-constructed domain value or the list of problems
found, so callers decide what a failure means for them.
"""

from dataclasses import dataclass, replace
from typing import Any, Callable, Generic, Iterable, Optional, Tuple, TypeVar

T = TypeVar('T')
U = TypeVar('U')

_REPR_VALUE_LIMIT = 60


@dataclass(frozen=True)
class ParseError:
    """
    A single problem found while parsing boundary input.

    Attributes:
        field: Dotted path of the offending field (e.g. "mail.source")
        message: Human-readable description
        value: The raw value that was rejected (optional)
    """
    field: str
    message: str
    value: Any = None

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"

    def __repr__(self) -> str:
        raw = repr(self.value)
        if len(raw) > _REPR_VALUE_LIMIT:
            raw = raw[:_REPR_VALUE_LIMIT] + '...'
        return f"ParseError(field={self.field!r}, message={self.message!r}, value={raw})"


class ParseFailure(ValueError):
    """Raised by ParseResult.unwrap() when the result holds errors."""

    def __init__(self, errors: Tuple[ParseError, ...]):
        self.errors = errors
        super().__init__("; ".join(str(e) for e in errors))


@dataclass(frozen=True)
class ParseResult(Generic[T]):
    """
    Outcome of a smart constructor.

    Exactly one of `value` / `errors` is meaningful: a successful result has
    no errors, a failed one has at least one.
    """
    value: Optional[T] = None
    errors: Tuple[ParseError, ...] = ()

    @classmethod
    def ok(cls, value: T) -> 'ParseResult[T]':
        return cls(value=value)

    @classmethod
    def fail(cls, *errors: ParseError) -> 'ParseResult[T]':
        if not errors:
            raise ValueError("ParseResult.fail() requires at least one error")
        return cls(errors=tuple(errors))

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def error_message(self) -> str:
        """All errors joined for logging ('' on success)."""
        return "; ".join(str(e) for e in self.errors)

    def unwrap(self) -> T:
        """
        Return the parsed value.

        Raises:
            ParseFailure: If the result is a failure
        """
        if self.errors:
            raise ParseFailure(self.errors)
        return self.value

    def value_or(self, default: T) -> T:
        return default if self.errors else self.value

    def map(self, fn: Callable[[T], U]) -> 'ParseResult[U]':
        if self.errors:
            return ParseResult(errors=self.errors)
        return ParseResult.ok(fn(self.value))

    def bind(self, fn: Callable[[T], 'ParseResult[U]']) -> 'ParseResult[U]':
        """Chain another parser; a failure short-circuits."""
        if self.errors:
            return ParseResult(errors=self.errors)
        return fn(self.value)

    def with_field(self, prefix: str) -> 'ParseResult[T]':
        """Prefix every error field, e.g. 'to' -> 'mail.commonHeaders.to'."""
        if not self.errors or not prefix:
            return self
        return ParseResult(errors=tuple(
            replace(e, field=f"{prefix}.{e.field}" if e.field else prefix)
            for e in self.errors
        ))

    def __repr__(self) -> str:
        if self.success:
            return f"ParseResult(success=True, value={self.value!r})"
        return f"ParseResult(success=False, errors={self.error_message!r})"


def collect(results: Iterable[ParseResult[Any]]) -> ParseResult[Tuple[Any, ...]]:
    """
    Combine several results into one result holding a tuple of values.

    Unlike bind(), this gathers the errors of every failed result so the
    caller can report them all at once.
    """
    values = []
    errors = []
    for result in results:
        if result.success:
            values.append(result.value)
        else:
            errors.extend(result.errors)

    if errors:
        return ParseResult.fail(*errors)
    return ParseResult.ok(tuple(values))
