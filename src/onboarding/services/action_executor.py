"""
onboarding/services/action_executor.py — Bulk actions on onboarding requests.

The only action today is ``SEND_REGISTRATION_REQUEST_EMAIL_TO_ORG``: the
requests of a delegate are signed, mailed to the administration PEC and
moved to SUBMITTED. The steps run strictly in this order and the first
failure stops the pipeline:

    1. payload check      ids must not be empty
    2. authorization      update:any on both request resources
    3. fetch & validate   per id, in input order
    4. destination        every request targets the same PEC
    5. signing            one signed PDF per request
    6. notification       one email carrying every signed PDF
    7. commit             CREATED → SUBMITTED per request, in input order

Commits are per row: when the n-th commit fails, the previous ones stay.
Each commit only applies to rows still in CREATED, so two concurrent
submissions of the same request cannot both mark it SUBMITTED; the loser
gets a Conflict.
"""

from __future__ import annotations

import logging

from onboarding import events
from onboarding.db.repositories import request_repo
from onboarding.exceptions import (
    ConflictError,
    DocumentStorageError,
    EmailDeliveryError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from onboarding.locales import it as locale
from onboarding.models.enums import RequestAction, RequestStatus, RequestType
from onboarding.models.request import ActionPayload, Request
from onboarding.models.user import LoggedUser
from onboarding.services import access_policy
from onboarding.services.access_policy import Possession, Resource, Verb
from onboarding.services.document_service import DocumentService
from onboarding.services.email_service import Attachment, EmailService, Message

logger = logging.getLogger(__name__)

REQUEST_RESOURCES = [
    Resource.ORGANIZATION_REGISTRATION_REQUEST,
    Resource.USER_DELEGATION_REQUEST,
]


class ActionExecutor:
    """Runs bulk actions on behalf of an authenticated user."""

    def __init__(self, document_service: DocumentService, email_service: EmailService) -> None:
        self._documents = document_service
        self._email = email_service

    async def execute(self, user: LoggedUser, payload: ActionPayload) -> None:
        """Performs ``payload.type`` on ``payload.ids``. Returns nothing on success."""
        if not payload.ids:
            raise ValidationError("No request ids provided")
        if payload.type == RequestAction.SEND_REGISTRATION_REQUEST_EMAIL_TO_ORG:
            await self.send_registration_email(user, payload.ids)
            return
        logger.error("ActionExecutor.execute | Unhandled action %s", payload.type)
        raise NotFoundError("Unhandled action.")

    # ═══════════════════════════════════════════════════════════════════════
    # SEND_REGISTRATION_REQUEST_EMAIL_TO_ORG
    # ═══════════════════════════════════════════════════════════════════════

    async def send_registration_email(self, user: LoggedUser, request_ids: list[int]) -> None:
        """Signs the documents of the requests, mails them to the PEC, submits the requests."""
        if not access_policy.can_all(user.role, REQUEST_RESOURCES, Verb.UPDATE, Possession.ANY):
            logger.warning(
                "ActionExecutor | user %s (%s) may not submit requests", user.email, user.role.value
            )
            raise ForbiddenError()

        # Repeated ids are redundant, not an error.
        unique_ids = list(dict.fromkeys(request_ids))

        requests = []
        for request_id in unique_ids:
            requests.append(await self.get_submittable_request(request_id, user.email))

        pec = requests[0].organization_pec
        if any(request.organization_pec != pec for request in requests[1:]):
            raise ConflictError("The requests should be sent to different email addresses.")

        attachments = await self._sign_documents(requests)

        try:
            await self._email.send(Message(
                to=pec,
                subject=locale.REGISTRATION_EMAIL_SUBJECT,
                html=locale.REGISTRATION_EMAIL_CONTENT,
                text=locale.REGISTRATION_EMAIL_CONTENT,
                attachments=attachments,
            ))
        except EmailDeliveryError as exc:
            logger.error(
                "ActionExecutor.send_registration_email | email to %s failed: %s (%r)",
                pec, exc, exc.__cause__,
            )
            self._discard(attachments)
            raise InternalError("An error occurred while sending email.") from exc

        for request in requests:
            await self._submit(request)

        logger.info("Requests %s submitted to %s by %s", unique_ids, pec, user.email)
        await events.emit_requests_submitted(unique_ids, pec, user.email)

    async def get_submittable_request(self, request_id: int, user_email: str) -> Request:
        """Returns the request if ``user_email`` may submit it, raises otherwise."""
        try:
            request = await request_repo.find_by_id(request_id)
        except StorageError as exc:
            logger.error(
                "ActionExecutor.get_submittable_request | reading request %s failed: %r",
                request_id, exc.__cause__,
            )
            raise InternalError("An error occurred while reading from the database") from exc

        if request is None:
            raise NotFoundError(f"The request {request_id} does not exist")
        if request.type not in (RequestType.ORGANIZATION_REGISTRATION, RequestType.USER_DELEGATION):
            raise ValidationError(f"The type of request {request_id} is invalid")
        if request.requester is None:
            logger.error(
                "ActionExecutor.get_submittable_request | request %s has no requester", request_id
            )
            raise InternalError("Invalid internal data")
        if request.requester.email != user_email:
            logger.warning(
                "ActionExecutor | user %s tried to submit request %s of %s",
                user_email, request_id, request.requester.email,
            )
            raise ForbiddenError()
        if request.status != RequestStatus.CREATED:
            raise ConflictError(f"The document for the request {request_id} has already been sent.")
        return request

    # ── Steps ────────────────────────────────────────────────────────────

    async def _sign_documents(self, requests: list[Request]) -> list[Attachment]:
        attachments: list[Attachment] = []
        for request in requests:
            try:
                path = await self._documents.create_signed_document(request.id)
            except InternalError as exc:
                logger.error(
                    "ActionExecutor._sign_documents | request %s: %s (%r)",
                    request.id, exc, exc.__cause__,
                )
                self._discard(attachments)
                if isinstance(exc, DocumentStorageError):
                    raise InternalError(exc.message) from exc
                raise InternalError("An error occurred while signing the document.") from exc
            attachments.append(Attachment(filename=f"documento-{request.id}.pdf", path=path))
        return attachments

    async def _submit(self, request: Request) -> None:
        try:
            updated = await request_repo.transition_to_submitted(request.id)
        except StorageError as exc:
            logger.error(
                "ActionExecutor._submit | updating request %s failed: %r", request.id, exc.__cause__
            )
            raise InternalError("An error occurred while updating request status.") from exc
        if not updated:
            logger.error(
                "ActionExecutor._submit | request %s left CREATED during submission", request.id
            )
            raise ConflictError(f"The document for the request {request.id} has already been sent.")

    def _discard(self, attachments: list[Attachment]) -> None:
        for attachment in attachments:
            self._documents.discard(attachment.path)
