"""
core.domain.exceptions — Domain-specific exception hierarchy.

These exceptions represent business-rule violations inside service layers.
They are deliberately **not** DRF exceptions so that the domain layer stays
framework-agnostic.  ``core.domain.exception_handler`` maps them to HTTP
responses.

Mapping cheatsheet
------------------
┌──────────────────────┬──────┐
│ Domain Exception     │ Code │
├──────────────────────┼──────┤
│ DomainError          │ 400  │
│ PermissionDenied     │ 403  │
│ NotFound             │ 404  │
│ Conflict             │ 409  │
│ IdempotencyConflict  │ 409  │
│ UpstreamUnavailable  │ 502  │
└──────────────────────┴──────┘

A ``Conflict`` may carry a ``state`` mapping with the authoritative
current state of the resource; the handler merges it into the response
body so the client can reconcile.
"""

from __future__ import annotations

from typing import Any


class DomainError(Exception):
    """
    Base class for all domain / business-rule errors.

    Catch this at the view boundary and convert to a 400 Bad Request.
    """

    def __init__(self, message: str = "A business rule was violated.") -> None:
        self.message = message
        super().__init__(self.message)


class PermissionDenied(DomainError):
    """
    The authenticated actor may not perform this operation on the resource.

    Maps to HTTP 403.
    """

    def __init__(self, message: str = "You do not have permission to perform this action.") -> None:
        super().__init__(message)


class NotFound(DomainError):
    """
    The requested resource does not exist (or is not visible to the
    requesting actor).

    Maps to HTTP 404.
    """

    def __init__(self, message: str = "The requested resource was not found.") -> None:
        super().__init__(message)


class Conflict(DomainError):
    """
    The operation conflicts with the current state of the resource.

    Maps to HTTP 409.
    """

    def __init__(
        self,
        message: str = "The operation conflicts with the current state.",
        *,
        state: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.state = state or {}


class IdempotencyConflict(Conflict):
    """
    Another request carrying the same idempotency key committed first.

    The whole unit of work has been rolled back; retrying with the same key
    returns the stored response.
    """

    def __init__(
        self,
        message: str = "A request with this idempotency key is already being processed.",
    ) -> None:
        super().__init__(message)


class UpstreamUnavailable(DomainError):
    """
    A best-effort external collaborator (e.g. the diagnosis model) failed.

    Maps to HTTP 502.  Never raised from claim or transition paths.
    """

    def __init__(self, message: str = "An upstream service is unavailable.") -> None:
        super().__init__(message)
