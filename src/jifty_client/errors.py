"""jifty_client.errors

Exceptions raised by the client. Transport failures are left as the
`requests` exceptions raised by `Response.raise_for_status()`.
"""
from __future__ import annotations

from typing import Iterable, Tuple

__all__ = [
    "JiftyError",
    "AuthenticationError",
    "ArgumentValidationError",
    "MandatoryArgumentError",
    "UnknownArgumentError",
    "InvalidInputError",
]


class JiftyError(Exception):
    """Base class for every error raised by jifty_client itself."""


class AuthenticationError(JiftyError):
    """Login was impossible or the server refused the credentials."""


class ArgumentValidationError(JiftyError):
    """Arguments did not match the server's action spec."""

    def __init__(self, message: str, action: str, names: Iterable[str]) -> None:
        super().__init__(message)
        self.action = action
        self.names: Tuple[str, ...] = tuple(names)


class MandatoryArgumentError(ArgumentValidationError):
    pass


class UnknownArgumentError(ArgumentValidationError):
    pass


class InvalidInputError(JiftyError, ValueError):
    """Malformed input to a local helper (dates, lookup pairs, CRUD names)."""
