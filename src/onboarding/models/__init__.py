"""
onboarding.models — Onboarding domain models.

Re-exports the main classes:
    from onboarding.models import Request, LoggedUser
"""

from onboarding.models.enums import (  # noqa: F401
    OrganizationScope,
    RequestAction,
    RequestStatus,
    RequestType,
    UserRole,
)
from onboarding.models.user import LoggedUser, ProfileUpdate, Requester, UserProfile  # noqa: F401
from onboarding.models.request import ActionPayload, Request, RequestCollection, RequestDraft  # noqa: F401
from onboarding.models.organization import (  # noqa: F401
    IpaPublicAdministration,
    LegalRepresentative,
    OrganizationRegistrationParams,
)
