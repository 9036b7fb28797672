"""
onboarding/services/profile_service.py — Profile of the logged user.

The only editable field is the work email. When it differs from the login
email the user is told at the new address; a failed notification is logged
and does not undo the change.
"""

from __future__ import annotations

import logging

from onboarding.db.repositories import user_repo
from onboarding.exceptions import EmailDeliveryError, InternalError, NotFoundError, StorageError
from onboarding.locales import it as locale
from onboarding.models.user import LoggedUser, UserProfile
from onboarding.services.email_service import EmailService, Message

logger = logging.getLogger(__name__)


class ProfileService:
    def __init__(self, email_service: EmailService) -> None:
        self._email = email_service

    async def get_profile(self, user: LoggedUser) -> UserProfile:
        return UserProfile(
            email=user.email,
            given_name=user.given_name,
            family_name=user.family_name,
            fiscal_code=user.fiscal_code,
            role=user.role,
            work_email=user.work_email,
        )

    async def update_profile(self, user: LoggedUser, work_email: str) -> UserProfile:
        """Stores the new work email and notifies it."""
        try:
            row = await user_repo.update_work_email(user.email, work_email)
        except StorageError as exc:
            logger.error("ProfileService.update_profile | %s: %r", user.email, exc.__cause__)
            raise InternalError("An error occurred while updating the profile") from exc
        if row is None:
            raise NotFoundError("Could not find the user in the database")

        profile = UserProfile(
            email=row["email"],
            given_name=row["given_name"],
            family_name=row["family_name"],
            fiscal_code=row["fiscal_code"],
            role=user.role,
            work_email=row["work_email"],
        )
        if profile.work_email != profile.email:
            await self._notify_work_email(profile)
        return profile

    async def _notify_work_email(self, profile: UserProfile) -> None:
        text = locale.WORK_EMAIL_CHANGED_CONTENT.format(given_name=profile.given_name)
        try:
            await self._email.send(Message(
                to=profile.work_email,
                subject=locale.WORK_EMAIL_CHANGED_SUBJECT,
                html=text,
                text=text,
            ))
        except EmailDeliveryError as exc:
            logger.error(
                "Failed to send email notification for work email change to %s: %r",
                profile.work_email, exc.__cause__,
            )
