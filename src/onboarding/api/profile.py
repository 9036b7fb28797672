"""
onboarding/api/profile.py — Profile of the logged user.
"""

from fastapi import APIRouter, Depends

from onboarding.dependencies import get_current_user, get_profile_service
from onboarding.models.user import LoggedUser, ProfileUpdate, UserProfile
from onboarding.services.profile_service import ProfileService

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("", response_model=UserProfile, summary="Profile of the current user")
async def get_profile(
    user: LoggedUser = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
):
    return await service.get_profile(user)


@router.put("", response_model=UserProfile, summary="Edit the work email of the current user")
async def edit_profile(
    body: ProfileUpdate,
    user: LoggedUser = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
):
    return await service.update_profile(user, body.work_email)
