"""Failure kinds raised by the workflow engine and its transports.

Every operation either returns its result or raises one of the exceptions
below.  Callers distinguish failures by type; the message is for humans.
"""

from __future__ import annotations


class KalaSetuError(Exception):
    """Base class for all engine failures."""


class ValidationError(KalaSetuError):
    """Malformed or missing input."""


class InvalidRole(ValidationError):
    """The role is not one of ``artisan`` or ``mentor``."""


class SelfRequest(ValidationError):
    """A request whose sender and recipient are the same identity."""


class NotFound(KalaSetuError):
    """A referenced identity, request, message or post does not exist."""


class Forbidden(KalaSetuError):
    """The caller has no rights over the target resource."""


class InvalidTransition(KalaSetuError):
    """The request is no longer ``pending``."""


class DuplicateEmail(KalaSetuError):
    """The email address is already registered."""


class Timeout(KalaSetuError):
    """The backend did not answer within the configured bound."""


class BackendError(KalaSetuError):
    """The backend answered with a status the client does not understand."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


__all__ = [
    "KalaSetuError",
    "ValidationError",
    "InvalidRole",
    "SelfRequest",
    "NotFound",
    "Forbidden",
    "InvalidTransition",
    "DuplicateEmail",
    "Timeout",
    "BackendError",
]
