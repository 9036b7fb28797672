"""Tests for the SEND_REGISTRATION_REQUEST_EMAIL_TO_ORG action."""

import base64

import httpx
import pytest

from onboarding import memory_store
from onboarding.adapters.signing_client import SigningClient
from onboarding.db.repositories import request_repo
from onboarding.exceptions import (
    ConflictError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from onboarding.models.enums import RequestAction, RequestStatus, RequestType, UserRole
from onboarding.models.request import ActionPayload
from onboarding.services.action_executor import ActionExecutor
from onboarding.services.document_service import DocumentService
from tests.conftest import FAKE_PDF, MILANO_PEC, OTHER_DELEGATE_EMAIL, ROMA_PEC, make_user

SEND = RequestAction.SEND_REGISTRATION_REQUEST_EMAIL_TO_ORG


def payload(*ids: int) -> ActionPayload:
    return ActionPayload(type=SEND, ids=list(ids))


async def status_of(request_id: int) -> RequestStatus:
    request = await memory_store.find_by_id(request_id)
    return request.status


@pytest.mark.asyncio
@pytest.mark.parametrize("role", [UserRole.ORG_MANAGER, UserRole.ADMIN, UserRole.DEVELOPER])
async def test_roles_without_update_any_are_forbidden(executor, stored_request, monkeypatch, role) -> None:
    """Authorization fails before any storage access."""
    request = stored_request()

    async def fail(*args, **kwargs):
        raise AssertionError("storage must not be touched")

    monkeypatch.setattr(request_repo, "find_by_id", fail)

    with pytest.raises(ForbiddenError):
        await executor.execute(make_user(role), payload(request.id))


@pytest.mark.asyncio
@pytest.mark.parametrize("role", list(UserRole))
async def test_empty_ids_is_a_validation_error(executor, role) -> None:
    with pytest.raises(ValidationError) as exc_info:
        await executor.execute(make_user(role), payload())

    assert exc_info.value.message == "No request ids provided"


@pytest.mark.asyncio
async def test_missing_request_is_not_found(executor, stored_request, email_service) -> None:
    request = stored_request()

    with pytest.raises(NotFoundError) as exc_info:
        await executor.execute(make_user(), payload(request.id, 999))

    assert "999" in exc_info.value.message
    assert email_service.sent == []
    assert await status_of(request.id) == RequestStatus.CREATED


@pytest.mark.asyncio
async def test_request_of_another_user_is_forbidden(executor, stored_request, email_service) -> None:
    """Ownership is checked per request even though the role holds update:any."""
    request = stored_request(requester_email=OTHER_DELEGATE_EMAIL)

    with pytest.raises(ForbiddenError):
        await executor.execute(make_user(), payload(request.id))

    assert email_service.sent == []
    assert await status_of(request.id) == RequestStatus.CREATED


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [RequestStatus.SUBMITTED, RequestStatus.ACCEPTED])
async def test_already_sent_request_is_a_conflict(executor, stored_request, email_service, status) -> None:
    created = stored_request()
    sent = stored_request(status=status)

    with pytest.raises(ConflictError) as exc_info:
        await executor.execute(make_user(), payload(created.id, sent.id))

    assert "already been sent" in exc_info.value.message
    assert email_service.sent == []
    assert await status_of(sent.id) == status
    assert await status_of(created.id) == RequestStatus.CREATED


@pytest.mark.asyncio
async def test_different_destinations_are_a_conflict(executor, stored_request, email_service, signing_client) -> None:
    first = stored_request(pec=ROMA_PEC)
    second = stored_request(RequestType.USER_DELEGATION, pec=MILANO_PEC)

    with pytest.raises(ConflictError):
        await executor.execute(make_user(), payload(first.id, second.id))

    assert signing_client.calls == []
    assert email_service.sent == []
    assert await status_of(first.id) == RequestStatus.CREATED
    assert await status_of(second.id) == RequestStatus.CREATED


@pytest.mark.asyncio
async def test_happy_path_signs_sends_and_submits(
    executor, stored_request, email_service, signing_client, document_service
) -> None:
    registration = stored_request(RequestType.ORGANIZATION_REGISTRATION)
    delegation = stored_request(RequestType.USER_DELEGATION)

    result = await executor.execute(make_user(), payload(registration.id, delegation.id))

    assert result is None
    assert signing_client.calls == [base64.b64encode(FAKE_PDF).decode("ascii")] * 2

    assert len(email_service.sent) == 1
    message = email_service.sent[0]
    assert message.to == ROMA_PEC
    assert [a.filename for a in message.attachments] == [
        f"documento-{registration.id}.pdf",
        f"documento-{delegation.id}.pdf",
    ]
    for attachment, request in zip(message.attachments, (registration, delegation)):
        assert attachment.path == document_service.signed_path(request.id)
        assert attachment.path.read_bytes() == FAKE_PDF

    assert await status_of(registration.id) == RequestStatus.SUBMITTED
    assert await status_of(delegation.id) == RequestStatus.SUBMITTED


@pytest.mark.asyncio
async def test_repeated_ids_are_processed_once(executor, stored_request, email_service) -> None:
    request = stored_request()

    await executor.execute(make_user(), payload(request.id, request.id))

    assert len(email_service.sent[0].attachments) == 1
    assert await status_of(request.id) == RequestStatus.SUBMITTED


@pytest.mark.asyncio
async def test_second_submission_is_a_conflict(executor, stored_request, email_service) -> None:
    request = stored_request()
    await executor.execute(make_user(), payload(request.id))

    with pytest.raises(ConflictError):
        await executor.execute(make_user(), payload(request.id))

    assert len(email_service.sent) == 1


@pytest.mark.asyncio
async def test_signing_failure_sends_nothing(
    executor, stored_request, email_service, signing_client, document_service
) -> None:
    first = stored_request()
    second = stored_request(RequestType.USER_DELEGATION)
    signing_client.fail_on_call = 2

    with pytest.raises(InternalError) as exc_info:
        await executor.execute(make_user(), payload(first.id, second.id))

    assert exc_info.value.message == "An error occurred while signing the document."
    assert email_service.sent == []
    assert await status_of(first.id) == RequestStatus.CREATED
    assert await status_of(second.id) == RequestStatus.CREATED
    # the document signed before the failure is removed
    assert not document_service.signed_path(first.id).exists()


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [["x"], "x", {"signed_document": 5}])
async def test_malformed_signing_answer_is_an_internal_error(
    stored_request, email_service, documents_dir, body
) -> None:
    first = stored_request()
    second = stored_request(RequestType.USER_DELEGATION)

    answers = [{"signed_document": base64.b64encode(FAKE_PDF).decode("ascii")}, body]

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=answers.pop(0))

    documents = DocumentService(
        documents_dir, SigningClient("http://signer.local/sign", transport=httpx.MockTransport(handler))
    )
    executor = ActionExecutor(documents, email_service)

    with pytest.raises(InternalError) as exc_info:
        await executor.execute(make_user(), payload(first.id, second.id))

    assert exc_info.value.message == "An error occurred while signing the document."
    assert email_service.sent == []
    assert not documents.signed_path(first.id).exists()
    assert await status_of(first.id) == RequestStatus.CREATED


@pytest.mark.asyncio
async def test_missing_unsigned_document_is_an_internal_error(
    executor, stored_request, email_service, document_service
) -> None:
    request = stored_request()
    document_service.unsigned_path(request.id).unlink()

    with pytest.raises(InternalError) as exc_info:
        await executor.execute(make_user(), payload(request.id))

    assert exc_info.value.message == "An error occurred while reading unsigned document file"
    assert email_service.sent == []


@pytest.mark.asyncio
async def test_email_failure_commits_nothing(executor, stored_request, email_service) -> None:
    request = stored_request()
    email_service.fail = True

    with pytest.raises(InternalError) as exc_info:
        await executor.execute(make_user(), payload(request.id))

    assert exc_info.value.message == "An error occurred while sending email."
    assert await status_of(request.id) == RequestStatus.CREATED


@pytest.mark.asyncio
async def test_read_failure_is_an_internal_error(executor, stored_request, monkeypatch) -> None:
    request = stored_request()

    async def broken(request_id):
        raise StorageError("Database error during find_by_id")

    monkeypatch.setattr(request_repo, "find_by_id", broken)

    with pytest.raises(InternalError) as exc_info:
        await executor.execute(make_user(), payload(request.id))

    assert exc_info.value.message == "An error occurred while reading from the database"


@pytest.mark.asyncio
async def test_missing_requester_is_an_internal_error(executor, stored_request) -> None:
    request = stored_request()
    memory_store._users.pop(request.requester_email)

    with pytest.raises(InternalError) as exc_info:
        await executor.execute(make_user(), payload(request.id))

    assert exc_info.value.message == "Invalid internal data"


@pytest.mark.asyncio
async def test_commit_failure_keeps_earlier_commits(executor, stored_request, email_service, monkeypatch) -> None:
    """Commits are per row: a failure in the middle leaves earlier rows SUBMITTED."""
    first = stored_request()
    second = stored_request(RequestType.USER_DELEGATION)
    original = memory_store.transition_to_submitted

    async def fail_second(request_id):
        if request_id == second.id:
            raise StorageError("Database error during transition_to_submitted")
        return await original(request_id)

    monkeypatch.setattr(request_repo, "transition_to_submitted", fail_second)

    with pytest.raises(InternalError) as exc_info:
        await executor.execute(make_user(), payload(first.id, second.id))

    assert exc_info.value.message == "An error occurred while updating request status."
    assert len(email_service.sent) == 1
    assert await status_of(first.id) == RequestStatus.SUBMITTED
    assert await status_of(second.id) == RequestStatus.CREATED


@pytest.mark.asyncio
async def test_concurrent_submission_loses_at_commit(executor, stored_request, monkeypatch) -> None:
    """If the row leaves CREATED after validation, the commit reports a conflict."""
    request = stored_request()
    original = memory_store.find_by_id

    async def find_then_race(request_id):
        found = await original(request_id)
        await memory_store.transition_to_submitted(request_id)
        return found

    monkeypatch.setattr(request_repo, "find_by_id", find_then_race)

    with pytest.raises(ConflictError):
        await executor.execute(make_user(), payload(request.id))
