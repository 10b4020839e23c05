"""
Construction guard for parsed domain types.

Every parsed type takes a hidden `_token` init-only argument; only its parse()
classmethod knows the token, so `EmailAddress("x", "y")` fails instead of
producing an unchecked instance. The token is an InitVar and is not stored, so
dataclasses.replace() cannot carry it over to a modified copy either.
"""

PARSE_TOKEN = object()


def check_token(instance, token: object) -> None:
    """Raise TypeError unless `instance` is being built by its parse() method."""
    if token is not PARSE_TOKEN:
        name = type(instance).__name__
        raise TypeError(f"{name} cannot be constructed directly; use {name}.parse()")
