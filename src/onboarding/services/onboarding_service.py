"""
onboarding/services/onboarding_service.py — Organization onboarding.

A delegate registers an administration by creating two linked requests,
one ORGANIZATION_REGISTRATION and one USER_DELEGATION, sharing the same
snapshot of the administration and of its legal representative. The
unsigned documents of both requests are generated right away; they are
signed and mailed later by the ``SEND_REGISTRATION_REQUEST_EMAIL_TO_ORG``
action.
"""

from __future__ import annotations

import logging
from pathlib import Path

from onboarding import events
from onboarding.db.repositories import ipa_repo, request_repo
from onboarding.exceptions import (
    ConflictError,
    DocumentGenerationError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from onboarding.locales import it as locale
from onboarding.models.enums import RequestStatus, RequestType
from onboarding.models.organization import IpaPublicAdministration, OrganizationRegistrationParams
from onboarding.models.request import Request, RequestDraft
from onboarding.models.user import LoggedUser
from onboarding.services import access_policy
from onboarding.services.access_policy import Permission, Possession, Resource, Verb
from onboarding.services.document_service import DocumentService

logger = logging.getLogger(__name__)

_DB_READ_ERROR = "An error occurred while reading from the database"


def _owned_by(request: Request, user: LoggedUser) -> bool:
    return request.requester is not None and request.requester.email == user.email


class OnboardingService:
    """Registration of organizations and access to the caller's requests."""

    def __init__(self, document_service: DocumentService) -> None:
        self._documents = document_service

    # ═══════════════════════════════════════════════════════════════════════
    # Registration
    # ═══════════════════════════════════════════════════════════════════════

    async def register_organization(
        self, params: OrganizationRegistrationParams, user: LoggedUser
    ) -> list[Request]:
        """
        Creates the request pair for a new organization.

        Algorithm:
            1. The caller must hold create:own on organizations.
            2. The administration must exist in the IPA registry.
            3. ``selected_pec_label`` must point to a PEC of the administration.
            4. No ACCEPTED registration may exist for the same ipa code, and the
               caller may not have a CREATED one pending for it.
            5. Both requests are inserted in one transaction.
            6. They are reloaded with their requester.
            7. Their unsigned documents are generated; if that fails the pair
               is soft-deleted and the documents written so far are removed.

        Raises:
            ForbiddenError, NotFoundError, ValidationError, ConflictError,
            InternalError.
        """
        if not access_policy.can(user.role, Resource.ORGANIZATION, Verb.CREATE, Possession.OWN).granted:
            raise ForbiddenError()

        administration = await self._get_public_administration(params.ipa_code)

        pec = administration.pec_for_label(params.selected_pec_label)
        if pec is None:
            raise ValidationError("Invalid selected pec label")

        try:
            accepted = await request_repo.find_by_ipa_code_and_status(
                params.ipa_code, RequestStatus.ACCEPTED, RequestType.ORGANIZATION_REGISTRATION
            )
        except StorageError as exc:
            logger.error("OnboardingService.register_organization | conflict check failed: %r", exc.__cause__)
            raise InternalError(_DB_READ_ERROR) from exc
        if accepted:
            raise ConflictError("The administration is already registered")

        try:
            pending = await request_repo.find_by_owner_and_status(user.email, RequestStatus.CREATED)
        except StorageError as exc:
            logger.error("OnboardingService.register_organization | pending check failed: %r", exc.__cause__)
            raise InternalError(_DB_READ_ERROR) from exc
        if any(
            request.type == RequestType.ORGANIZATION_REGISTRATION
            and request.organization_ipa_code == params.ipa_code
            for request in pending
        ):
            raise ConflictError("A registration request for the administration is already pending")

        drafts = [
            RequestDraft(
                type=request_type,
                requester_email=user.email,
                organization_ipa_code=administration.cod_amm,
                organization_fiscal_code=administration.Cf,
                organization_name=administration.des_amm,
                organization_pec=pec,
                organization_scope=params.scope,
                legal_representative_given_name=params.legal_representative.given_name,
                legal_representative_family_name=params.legal_representative.family_name,
                legal_representative_fiscal_code=params.legal_representative.fiscal_code,
                legal_representative_phone_number=params.legal_representative.phone_number,
            )
            for request_type in (RequestType.ORGANIZATION_REGISTRATION, RequestType.USER_DELEGATION)
        ]
        try:
            created = await request_repo.create_pair(drafts)
            requests = [await request_repo.find_by_id(request.id) for request in created]
        except StorageError as exc:
            logger.error("OnboardingService.register_organization | saving requests failed: %r", exc.__cause__)
            raise InternalError("An error occurred while saving the requests") from exc
        if any(request is None or request.requester is None for request in requests):
            logger.error(
                "OnboardingService.register_organization | requests %s not reloaded",
                [request.id for request in created],
            )
            raise InternalError("Invalid internal data")

        await self._create_unsigned_documents(requests)

        logger.info(
            "Registration of %s requested by %s (requests %s)",
            administration.cod_amm, user.email, [request.id for request in requests],
        )
        await events.emit_registration_requested(
            [request.id for request in requests], administration.cod_amm, user.email
        )
        return requests

    async def _get_public_administration(self, ipa_code: str) -> IpaPublicAdministration:
        try:
            row = await ipa_repo.get_public_administration(ipa_code)
        except StorageError as exc:
            logger.error("OnboardingService | reading IPA %s failed: %r", ipa_code, exc.__cause__)
            raise InternalError(_DB_READ_ERROR) from exc
        if row is None:
            raise NotFoundError("IPA public administration does not exist")
        return IpaPublicAdministration.model_validate(row)

    async def _create_unsigned_documents(self, requests: list[Request]) -> None:
        try:
            for request in requests:
                await self._create_unsigned_document(request)
        except InternalError:
            for request in requests:
                self._documents.discard(self._documents.unsigned_path(request.id))
            ids = [request.id for request in requests]
            try:
                await request_repo.soft_delete(ids)
            except StorageError as exc:
                logger.error(
                    "OnboardingService | cleanup of requests %s failed: %r", ids, exc.__cause__
                )
            else:
                logger.warning("OnboardingService | requests %s withdrawn, no documents", ids)
            raise

    async def _create_unsigned_document(self, request: Request) -> Path:
        if request.type == RequestType.ORGANIZATION_REGISTRATION:
            content = locale.REGISTRATION_CONTRACT.format(
                organization=f"{request.organization_ipa_code} {request.organization_fiscal_code}",
            )
        else:
            content = locale.USER_DELEGATION.format(
                legal_representative=(
                    f"{request.legal_representative_given_name} "
                    f"{request.legal_representative_family_name}"
                ),
                organization_name=request.organization_name,
                delegate=f"{request.requester.given_name} {request.requester.family_name}",
            )
        try:
            return await self._documents.generate_document(
                content, self._documents.unsigned_path(request.id)
            )
        except DocumentGenerationError as exc:
            logger.error(
                "OnboardingService | document of request %s failed: %r", request.id, exc.__cause__
            )
            raise InternalError("An error occurred during document generation.") from exc

    # ═══════════════════════════════════════════════════════════════════════
    # Reads
    # ═══════════════════════════════════════════════════════════════════════

    async def list_requests(self, user: LoggedUser) -> list[dict]:
        """
        Requests visible to the caller, reduced to the attributes the role may read.

        A ``read:any`` grant on a request type exposes every request of that
        type; ``read:own`` only the caller's.
        """
        resources = {
            RequestType.ORGANIZATION_REGISTRATION: Resource.ORGANIZATION_REGISTRATION_REQUEST,
            RequestType.USER_DELEGATION: Resource.USER_DELEGATION_REQUEST,
        }
        grants: dict[RequestType, tuple[Permission, bool]] = {}
        for request_type, resource in resources.items():
            any_permission = access_policy.can(user.role, resource, Verb.READ, Possession.ANY)
            if any_permission.granted:
                grants[request_type] = (any_permission, True)
                continue
            own_permission = access_policy.can(user.role, resource, Verb.READ, Possession.OWN)
            if own_permission.granted:
                grants[request_type] = (own_permission, False)
        if not grants:
            raise ForbiddenError()

        try:
            if any(any_owner for _, any_owner in grants.values()):
                requests = await request_repo.find_all()
            else:
                requests = await request_repo.find_by_owner(user.email)
        except StorageError as exc:
            logger.error("OnboardingService.list_requests | %s: %r", user.email, exc.__cause__)
            raise InternalError(_DB_READ_ERROR) from exc

        items = []
        for request in requests:
            if request.type not in grants:
                continue
            permission, any_owner = grants[request.type]
            if not any_owner and not _owned_by(request, user):
                continue
            items.append(permission.filter(request.model_dump(mode="json")))
        return items

    async def get_document(self, user: LoggedUser, ipa_code: str, file_name: str) -> Path:
        """
        Path of an unsigned document of the caller.

        ``file_name`` is ``<request id>.pdf``; the request must belong to the
        caller and target ``ipa_code``.
        """
        if not access_policy.can(user.role, Resource.UNSIGNED_DOCUMENT, Verb.READ, Possession.OWN).granted:
            raise ForbiddenError()
        not_found = NotFoundError("The requested document does not exist")

        stem, _, extension = file_name.partition(".")
        if extension != "pdf" or not stem.isdigit():
            raise not_found
        try:
            request = await request_repo.find_by_id(int(stem))
        except StorageError as exc:
            logger.error("OnboardingService.get_document | %s: %r", file_name, exc.__cause__)
            raise InternalError(_DB_READ_ERROR) from exc
        if (
            request is None
            or not _owned_by(request, user)
            or request.organization_ipa_code != ipa_code
        ):
            raise not_found

        path = self._documents.find_unsigned(file_name)
        if path is None:
            raise not_found
        return path
