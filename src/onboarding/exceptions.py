"""
═══════════════════════════════════════════════════════════════════════════════
Onboarding — Domain error hierarchy (Custom Exception Hierarchy)
═══════════════════════════════════════════════════════════════════════════════

Every error that leaves the service layer is an ``OnboardingError``. Its
``kind`` is the stable string clients switch on; the HTTP status mapping
lives in ``onboarding.main:onboarding_error_handler``.

Collaborator failures (database, PDF rendering, signing, SMTP) have their own
classes so services can log the cause before translating it into an
``InternalError``.
"""


class OnboardingError(Exception):
    """
    Base class of every onboarding domain error.

    Attributes
    ──────────
        message (str):  Human readable detail. Sent to the client.
        kind (str):     Stable error kind. Drives the HTTP status.
        details (dict): Extra data for logs (entity, id, ...). Never sent.
    """

    kind = "IResponseErrorInternal"

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class AuthenticationError(OnboardingError):
    """Missing or invalid bearer token: 401 Unauthorized."""

    kind = "IResponseErrorUnauthorized"

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message)


class ForbiddenError(OnboardingError):
    """Role or ownership does not allow the operation: 403 Forbidden."""

    kind = "IResponseErrorForbiddenNotAuthorized"

    def __init__(self, message: str = "You do not have enough permission to complete the operation you requested"):
        super().__init__(message)


class ValidationError(OnboardingError):
    """Malformed input: 400 Bad Request."""

    kind = "IResponseErrorValidation"


class NotFoundError(OnboardingError):
    """Referenced entity does not exist: 404 Not Found."""

    kind = "IResponseErrorNotFound"


class ConflictError(OnboardingError):
    """State invariant violated: 409 Conflict."""

    kind = "IResponseErrorConflict"


class InternalError(OnboardingError):
    """Downstream failure or data-integrity surprise: 500 Internal Server Error."""

    kind = "IResponseErrorInternal"


# ═══════════════════════════════════════════════════════════════════════════════
# Collaborator failures
# ═══════════════════════════════════════════════════════════════════════════════

class StorageError(InternalError):
    """A database read or write failed."""


class DocumentGenerationError(InternalError):
    """The unsigned PDF could not be rendered."""


class DocumentStorageError(InternalError):
    """A document file could not be read or written."""


class SigningError(InternalError):
    """The remote signing service failed or returned an unusable answer."""


class EmailDeliveryError(InternalError):
    """The SMTP transport refused or failed to deliver a message."""


__all__ = [
    "OnboardingError",
    "AuthenticationError",
    "ForbiddenError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "InternalError",
    "StorageError",
    "DocumentGenerationError",
    "DocumentStorageError",
    "SigningError",
    "EmailDeliveryError",
]
