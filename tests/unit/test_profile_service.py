"""Tests for the profile of the logged user."""

import pytest

from onboarding import memory_store
from onboarding.db.repositories import user_repo
from onboarding.exceptions import InternalError, NotFoundError, StorageError
from onboarding.services.profile_service import ProfileService
from tests.conftest import DELEGATE_EMAIL, make_user


@pytest.fixture
def profile_service(email_service) -> ProfileService:
    return ProfileService(email_service)


@pytest.mark.asyncio
async def test_get_profile(profile_service) -> None:
    profile = await profile_service.get_profile(make_user())

    assert profile.email == DELEGATE_EMAIL
    assert profile.work_email is None
    assert profile.role.value == "ORG_DELEGATE"


@pytest.mark.asyncio
async def test_update_work_email_notifies_new_address(profile_service, email_service) -> None:
    profile = await profile_service.update_profile(make_user(), "mario.rossi@comune.roma.it")

    assert profile.work_email == "mario.rossi@comune.roma.it"
    assert memory_store._users[DELEGATE_EMAIL]["work_email"] == "mario.rossi@comune.roma.it"
    assert [m.to for m in email_service.sent] == ["mario.rossi@comune.roma.it"]
    assert "Mario" in email_service.sent[0].text
    assert email_service.sent[0].attachments == []


@pytest.mark.asyncio
async def test_work_email_equal_to_login_email_is_not_notified(profile_service, email_service) -> None:
    profile = await profile_service.update_profile(make_user(), DELEGATE_EMAIL)

    assert profile.work_email == DELEGATE_EMAIL
    assert email_service.sent == []


@pytest.mark.asyncio
async def test_notification_failure_keeps_the_change(profile_service, email_service) -> None:
    email_service.fail = True

    profile = await profile_service.update_profile(make_user(), "mario.rossi@comune.roma.it")

    assert profile.work_email == "mario.rossi@comune.roma.it"
    assert memory_store._users[DELEGATE_EMAIL]["work_email"] == "mario.rossi@comune.roma.it"


@pytest.mark.asyncio
async def test_unknown_user_is_not_found(profile_service) -> None:
    memory_store._users.pop(DELEGATE_EMAIL)

    with pytest.raises(NotFoundError):
        await profile_service.update_profile(make_user(), "mario.rossi@comune.roma.it")


@pytest.mark.asyncio
async def test_storage_failure_is_internal(profile_service, monkeypatch) -> None:
    async def broken(email, work_email):
        raise StorageError("Database error during update_work_email")

    monkeypatch.setattr(user_repo, "update_work_email", broken)

    with pytest.raises(InternalError):
        await profile_service.update_profile(make_user(), "mario.rossi@comune.roma.it")
