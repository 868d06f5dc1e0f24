"""
core.domain.exceptions — Domain-specific exception hierarchy.

These exceptions represent business-rule violations inside service layers.
They are **not** DRF exceptions, which keeps the domain layer
framework-agnostic.  The global DRF exception handler in
``core.domain.exception_handler`` maps them to HTTP responses.

Mapping cheatsheet
------------------
┌──────────────────────┬──────────────────────────────┬──────┐
│ Domain Exception     │ Meaning                      │ Code │
├──────────────────────┼──────────────────────────────┼──────┤
│ DomainError          │ generic business-rule error  │ 400  │
│ ValidationError      │ malformed / incomplete input │ 400  │
│ InvalidArgument      │ value outside an enumeration │ 400  │
│ NotConfigured        │ category has no routing      │ 400  │
│ InsufficientRights   │ actor lacks the edge         │ 403  │
│ NotFound             │ unknown id                   │ 404  │
│ Conflict             │ clashes with current state   │ 409  │
│ StaleState           │ optimistic-lock collision    │ 409  │
│ NoStaffAvailable     │ nobody to assign             │ 409  │
│ InfrastructureError  │ data store unavailable       │ 503  │
└──────────────────────┴──────────────────────────────┴──────┘

Recommended usage inside a service::

    from core.domain.exceptions import InsufficientRights

    if not can_transition(report.status, target, classification):
        raise InsufficientRights(
            f"Cannot move from {report.status} to {target}."
        )
"""

from __future__ import annotations


class DomainError(Exception):
    """
    Base class for all domain / business-rule errors.

    Catch this at the view boundary and convert to a 400 Bad Request.
    ``code`` is a stable machine-readable identifier echoed to clients.
    """

    code = "domain_error"

    def __init__(self, message: str = "A business rule was violated.") -> None:
        self.message = message
        super().__init__(self.message)


class ValidationError(DomainError):
    """
    Input failed a business validation rule (bad coordinate, missing
    rejection reason, unknown category).  Recoverable by correcting the
    input.  Maps to HTTP 400.
    """

    code = "validation_error"

    def __init__(self, message: str = "The submitted data is not valid.") -> None:
        super().__init__(message)


class InvalidArgument(ValidationError):
    """A value is not a member of the enumeration it must belong to."""

    code = "invalid_argument"

    def __init__(self, message: str = "Invalid argument.") -> None:
        super().__init__(message)


class NotConfigured(ValidationError):
    """
    A report category has no responsible role configured, or its
    configuration does not resolve to a single position.
    """

    code = "not_configured"

    def __init__(self, message: str = "No handling role is configured for this category.") -> None:
        super().__init__(message)


class InsufficientRights(DomainError):
    """
    The acting user's classification does not grant the requested
    operation.  Never retried automatically.  Maps to HTTP 403.
    """

    code = "insufficient_rights"

    def __init__(self, message: str = "You do not have permission to perform this action.") -> None:
        super().__init__(message)


class NotFound(DomainError):
    """
    The requested resource does not exist.

    Maps to HTTP 404.
    """

    code = "not_found"

    def __init__(self, message: str = "The requested resource was not found.") -> None:
        super().__init__(message)


class Conflict(DomainError):
    """
    The operation conflicts with the current state of the resource.

    Typical usage: repeating a transition that already happened.
    Maps to HTTP 409.
    """

    code = "conflict"

    def __init__(self, message: str = "The operation conflicts with the current state.") -> None:
        super().__init__(message)


class StaleState(Conflict):
    """
    A conditional write found the row changed since it was read.

    Services retry once with fresh state before letting it surface.
    """

    code = "stale_state"

    def __init__(
        self,
        message: str | None = None,
        *,
        expected: str | None = None,
    ) -> None:
        if message is None:
            message = "The resource was modified concurrently."
            if expected:
                message = (
                    f"The resource is no longer in status '{expected}'; "
                    f"it was modified concurrently."
                )
        super().__init__(message)
        self.expected = expected


class NoStaffAvailable(DomainError):
    """
    Assignment found zero eligible staff members for the target position.

    A legitimate business outcome: the report stays queued and the caller
    may alert an operator.  Maps to HTTP 409.
    """

    code = "no_staff_available"

    def __init__(self, message: str = "No staff member is available for this report.") -> None:
        super().__init__(message)


class InfrastructureError(DomainError):
    """
    The data store (or another collaborator) is unavailable.

    Retryable by the caller.  Maps to HTTP 503.
    """

    code = "infrastructure_error"

    def __init__(self, message: str = "A backing service is temporarily unavailable.") -> None:
        super().__init__(message)
