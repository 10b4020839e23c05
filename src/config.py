"""
Runtime configuration parsed from environment variables.

load_settings() reads the environment once at cold start and returns an
immutable Settings object. Invalid values raise ConfigurationError listing
every problem, since the function cannot run without a usable configuration.
"""

import logging
import os
from dataclasses import dataclass
from typing import FrozenSet, Mapping, Optional

from domain.email_address import DomainName
from domain.primitives import parse_bucket_name
from domain.result import ParseError, ParseResult, collect

DEFAULT_ENVIRONMENT = 'dev'
DEFAULT_LOG_LEVEL = 'INFO'
DEFAULT_OUTPUT_KEY_PREFIX = 'parsed/'
DEFAULT_MAX_EMAIL_SIZE_MB = 20

_LOG_LEVELS = {
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARNING': logging.WARNING,
    'ERROR': logging.ERROR,
    'CRITICAL': logging.CRITICAL,
}


class ConfigurationError(Exception):
    """Raised when module configuration is invalid or missing."""
    pass


@dataclass(frozen=True)
class Settings:
    """
    Parsed runtime configuration.

    Attributes:
        environment: Deployment environment name (used in output keys)
        log_level: Numeric logging level
        output_bucket: Bucket for processed records (None disables upload)
        output_key_prefix: Key prefix for processed records, ends with '/'
        allowed_sender_domains: Sender domains to accept (empty accepts all)
        max_email_size_bytes: Largest raw email that will be parsed
    """
    environment: str = DEFAULT_ENVIRONMENT
    log_level: int = logging.INFO
    output_bucket: Optional[str] = None
    output_key_prefix: str = DEFAULT_OUTPUT_KEY_PREFIX
    allowed_sender_domains: FrozenSet[str] = frozenset()
    max_email_size_bytes: int = DEFAULT_MAX_EMAIL_SIZE_MB * 1024 * 1024

    @property
    def upload_enabled(self) -> bool:
        return self.output_bucket is not None

    def sender_allowed(self, domain: str) -> bool:
        return not self.allowed_sender_domains or domain in self.allowed_sender_domains


def _parse_log_level(raw: str) -> ParseResult[int]:
    level = _LOG_LEVELS.get(raw.strip().upper())
    if level is None:
        return ParseResult.fail(ParseError(
            'LOG_LEVEL', f"must be one of {', '.join(_LOG_LEVELS)}", raw
        ))
    return ParseResult.ok(level)


def _parse_output_bucket(raw: Optional[str]) -> ParseResult[Optional[str]]:
    if raw is None or not raw.strip():
        return ParseResult.ok(None)
    return parse_bucket_name(raw.strip(), 'OUTPUT_BUCKET')


def _parse_key_prefix(raw: str) -> ParseResult[str]:
    prefix = raw.strip().lstrip('/')
    if prefix and not prefix.endswith('/'):
        prefix += '/'
    return ParseResult.ok(prefix)


def _parse_allowed_domains(raw: str) -> ParseResult[FrozenSet[str]]:
    entries = [entry for entry in raw.split(',') if entry.strip()]
    return collect(
        DomainName.parse(entry, f"ALLOWED_SENDER_DOMAINS[{index}]")
        for index, entry in enumerate(entries)
    ).map(lambda domains: frozenset(d.value for d in domains))


def _parse_max_size(raw: str) -> ParseResult[int]:
    try:
        megabytes = int(raw.strip())
    except ValueError:
        return ParseResult.fail(ParseError('MAX_EMAIL_SIZE_MB', "must be an integer", raw))
    if megabytes <= 0:
        return ParseResult.fail(ParseError('MAX_EMAIL_SIZE_MB', "must be positive", raw))
    return ParseResult.ok(megabytes * 1024 * 1024)


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Parse Settings from the environment.

    Args:
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        Settings: Parsed configuration

    Raises:
        ConfigurationError: If any variable is invalid
    """
    env = os.environ if environ is None else environ

    environment = env.get('ENVIRONMENT', DEFAULT_ENVIRONMENT).strip() or DEFAULT_ENVIRONMENT

    result = collect([
        _parse_log_level(env.get('LOG_LEVEL', DEFAULT_LOG_LEVEL)),
        _parse_output_bucket(env.get('OUTPUT_BUCKET')),
        _parse_key_prefix(env.get('OUTPUT_KEY_PREFIX', DEFAULT_OUTPUT_KEY_PREFIX)),
        _parse_allowed_domains(env.get('ALLOWED_SENDER_DOMAINS', '')),
        _parse_max_size(env.get('MAX_EMAIL_SIZE_MB', str(DEFAULT_MAX_EMAIL_SIZE_MB))),
    ])

    if not result.success:
        raise ConfigurationError(f"Invalid configuration: {result.error_message}")

    log_level, output_bucket, prefix, domains, max_size = result.value
    return Settings(
        environment=environment,
        log_level=log_level,
        output_bucket=output_bucket,
        output_key_prefix=prefix,
        allowed_sender_domains=domains,
        max_email_size_bytes=max_size,
    )
