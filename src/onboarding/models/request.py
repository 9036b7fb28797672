"""
onboarding/models/request.py — Onboarding request entity and payloads.

A request is either the registration of an organization or the delegation
of a user; both carry the same snapshot of the organization being
registered and of its legal representative.
"""

from datetime import datetime

from pydantic import Field

from onboarding.models.common import OnboardingBase
from onboarding.models.enums import OrganizationScope, RequestAction, RequestStatus, RequestType
from onboarding.models.user import Requester


class RequestDraft(OnboardingBase):
    """Values needed to insert a new request row."""
    type: RequestType
    requester_email: str
    organization_ipa_code: str
    organization_fiscal_code: str
    organization_name: str
    organization_pec: str
    organization_scope: OrganizationScope
    legal_representative_given_name: str
    legal_representative_family_name: str
    legal_representative_fiscal_code: str
    legal_representative_phone_number: str


class Request(RequestDraft):
    """Persisted request, with its requester when the association was loaded."""
    id: int
    status: RequestStatus = RequestStatus.CREATED
    requester: Requester | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None


class RequestCollection(OnboardingBase):
    items: list[dict] = Field(default_factory=list)


class ActionPayload(OnboardingBase):
    """Body of ``POST /requests/actions``."""
    type: RequestAction
    ids: list[int] = Field(..., examples=[[1, 2]])
