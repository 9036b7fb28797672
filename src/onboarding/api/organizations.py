"""
onboarding/api/organizations.py — Organization registration endpoint.
"""

from fastapi import APIRouter, Depends, status

from onboarding.dependencies import get_current_user, get_onboarding_service
from onboarding.models.organization import OrganizationRegistrationParams
from onboarding.models.request import RequestCollection
from onboarding.models.user import LoggedUser
from onboarding.services.onboarding_service import OnboardingService

router = APIRouter(prefix="/organizations", tags=["organizations"])


@router.post(
    "",
    response_model=RequestCollection,
    status_code=status.HTTP_201_CREATED,
    summary="Register an organization",
)
async def register_organization(
    body: OrganizationRegistrationParams,
    user: LoggedUser = Depends(get_current_user),
    service: OnboardingService = Depends(get_onboarding_service),
):
    """Creates the registration and delegation requests of a new organization."""
    requests = await service.register_organization(body, user)
    return RequestCollection(items=[r.model_dump(mode="json") for r in requests])
