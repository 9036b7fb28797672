"""
onboarding/models/enums.py — Onboarding domain enumerations.

    • UserRole — role attached to the authenticated caller
    • RequestType — kind of onboarding request
    • RequestStatus — lifecycle state of a request
    • RequestAction — bulk actions accepted by ``POST /requests/actions``
    • OrganizationScope — territorial scope of the administration
"""

from enum import Enum


class UserRole(str, Enum):
    """Role of the authenticated user."""
    ADMIN = "ADMIN"
    DEVELOPER = "DEVELOPER"
    ORG_DELEGATE = "ORG_DELEGATE"
    ORG_MANAGER = "ORG_MANAGER"


class RequestType(str, Enum):
    """Kind of onboarding request."""
    ORGANIZATION_REGISTRATION = "ORGANIZATION_REGISTRATION"
    USER_DELEGATION = "USER_DELEGATION"


class RequestStatus(str, Enum):
    """Request lifecycle. Only moves forward: CREATED → SUBMITTED → ACCEPTED."""
    CREATED = "CREATED"
    SUBMITTED = "SUBMITTED"
    ACCEPTED = "ACCEPTED"


class RequestAction(str, Enum):
    """Bulk action on a set of requests."""
    SEND_REGISTRATION_REQUEST_EMAIL_TO_ORG = "SEND_REGISTRATION_REQUEST_EMAIL_TO_ORG"


class OrganizationScope(str, Enum):
    """Territorial scope of the administration."""
    LOCAL = "LOCAL"
    NATIONAL = "NATIONAL"
