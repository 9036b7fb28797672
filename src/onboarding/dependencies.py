"""
═══════════════════════════════════════════════════════════════════════════════
Onboarding — FastAPI dependencies (Dependency Injection)
═══════════════════════════════════════════════════════════════════════════════

Composition root of the service: resolves the caller from the bearer token
and builds the services with their collaborators from OnboardingSettings.
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, Header
from pydantic import ValidationError as PydanticValidationError

from onboarding.adapters.signing_client import SigningClient
from onboarding.config import OnboardingSettings, get_settings
from onboarding.db.repositories import user_repo
from onboarding.exceptions import AuthenticationError, InternalError, StorageError
from onboarding.models.user import LoggedUser
from onboarding.services.action_executor import ActionExecutor
from onboarding.services.auth_service import decode_token
from onboarding.services.document_service import DocumentService
from onboarding.services.email_service import EmailService
from onboarding.services.onboarding_service import OnboardingService
from onboarding.services.profile_service import ProfileService


async def get_current_user(
    authorization: str | None = Header(None),
    settings: OnboardingSettings = Depends(get_settings),
) -> LoggedUser:
    """
    Resolves the caller from the ``Authorization`` header.

    Algorithm:
        1. The header must be present and use the Bearer scheme.
        2. The token is decoded (signature + expiry).
        3. The user is loaded by email (claim ``sub``).
        4. The role of the token wins over the stored one.

    Raises:
        AuthenticationError: missing/invalid token or unknown user.
        InternalError: the users table could not be read.
    """
    # ── Step 1: header ──
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationError("Authorization header must use the Bearer scheme")

    # ── Step 2: token ──
    payload = decode_token(authorization[7:], settings.jwt_secret_key, settings.jwt_algorithm)
    email = payload.get("sub")
    if not email:
        raise AuthenticationError("Token payload missing 'sub'")

    # ── Step 3: user ──
    try:
        user = await user_repo.get_user_by_email(email)
    except StorageError as exc:
        raise InternalError("An error occurred while reading from the database") from exc
    if not user:
        raise AuthenticationError("User not found")

    # ── Step 4: LoggedUser ──
    try:
        return LoggedUser(
            email=user["email"],
            given_name=user["given_name"],
            family_name=user["family_name"],
            fiscal_code=user["fiscal_code"],
            role=payload.get("role") or user["role"],
            work_email=user.get("work_email"),
        )
    except PydanticValidationError as exc:
        raise AuthenticationError("Invalid user data") from exc


# ═══════════════════════════════════════════════════════════════════════════════
# Services
# ═══════════════════════════════════════════════════════════════════════════════

@lru_cache
def get_document_service() -> DocumentService:
    settings = get_settings()
    return DocumentService(
        documents_dir=settings.documents_dir,
        signing_client=SigningClient(
            url=settings.signing_service_url,
            username=settings.signing_service_user,
            password=settings.signing_service_password,
            timeout=settings.signing_timeout,
        ),
    )


@lru_cache
def get_email_service() -> EmailService:
    settings = get_settings()
    return EmailService(
        host=settings.smtp_host,
        port=settings.smtp_port,
        sender=settings.email_sender,
        username=settings.smtp_username,
        password=settings.smtp_password,
        use_tls=settings.smtp_use_tls,
        start_tls=settings.smtp_start_tls,
        timeout=settings.smtp_timeout,
    )


def get_action_executor(
    document_service: DocumentService = Depends(get_document_service),
    email_service: EmailService = Depends(get_email_service),
) -> ActionExecutor:
    return ActionExecutor(document_service, email_service)


def get_onboarding_service(
    document_service: DocumentService = Depends(get_document_service),
) -> OnboardingService:
    return OnboardingService(document_service)


def get_profile_service(
    email_service: EmailService = Depends(get_email_service),
) -> ProfileService:
    return ProfileService(email_service)
