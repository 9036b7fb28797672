"""
onboarding/api/requests.py — Onboarding requests and their documents.
"""

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import FileResponse

from onboarding.dependencies import get_action_executor, get_current_user, get_onboarding_service
from onboarding.models.request import ActionPayload, RequestCollection
from onboarding.models.user import LoggedUser
from onboarding.services.action_executor import ActionExecutor
from onboarding.services.onboarding_service import OnboardingService

router = APIRouter(tags=["requests"])


@router.get(
    "/requests",
    response_model=RequestCollection,
    summary="Requests of the current user",
)
async def list_requests(
    user: LoggedUser = Depends(get_current_user),
    service: OnboardingService = Depends(get_onboarding_service),
):
    return RequestCollection(items=await service.list_requests(user))


@router.post(
    "/requests/actions",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Perform an action on a bulk of requests",
)
async def handle_action(
    body: ActionPayload,
    user: LoggedUser = Depends(get_current_user),
    executor: ActionExecutor = Depends(get_action_executor),
):
    """Runs the action; answers 204 with no body when every step succeeded."""
    await executor.execute(user, body)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/documents/{ipa_code}/{file_name}",
    response_class=FileResponse,
    summary="Download an unsigned onboarding document",
)
async def get_document(
    ipa_code: str,
    file_name: str,
    user: LoggedUser = Depends(get_current_user),
    service: OnboardingService = Depends(get_onboarding_service),
):
    path = await service.get_document(user, ipa_code, file_name)
    return FileResponse(path, media_type="application/pdf", filename=file_name)
