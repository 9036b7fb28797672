"""Shared pytest fixtures for all test suites."""

from pathlib import Path

import pytest

from onboarding import events, memory_store
from onboarding.exceptions import EmailDeliveryError, SigningError
from onboarding.models.enums import OrganizationScope, RequestStatus, RequestType, UserRole
from onboarding.models.request import Request, RequestDraft
from onboarding.models.user import LoggedUser
from onboarding.services.action_executor import ActionExecutor
from onboarding.services.document_service import DocumentService
from onboarding.services.onboarding_service import OnboardingService

DELEGATE_EMAIL = "mario.rossi@email.it"
OTHER_DELEGATE_EMAIL = "luigi.verdi@email.it"
ROMA_PEC = "protocollo@pec.comune.roma.it"
MILANO_PEC = "protocollo@postacert.comune.milano.it"

FAKE_PDF = b"%PDF-1.4\n% fake onboarding document\n%%EOF\n"

ROMA_IPA = {
    "cod_amm": "c_h501",
    "des_amm": "Comune di Roma",
    "Cf": "02438750586",
    "mail1": "info@comune.roma.it",
    "tipo_mail1": "Altro",
    "mail2": ROMA_PEC,
    "tipo_mail2": "pec",
}


class FakeSigningClient:
    """Echoes the document back as 'signed', or fails on demand."""

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.fail_on_call: int | None = None

    async def sign(self, content_base64: str) -> str:
        self.calls.append(content_base64)
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            raise SigningError("Signing service call failed: 503 Service Unavailable")
        return content_base64


class FakeEmailService:
    """Records sent messages instead of talking to an SMTP server."""

    def __init__(self) -> None:
        self.sent = []
        self.fail = False

    async def send(self, message) -> None:
        if self.fail:
            raise EmailDeliveryError(f"Could not send email to {message.to}")
        self.sent.append(message)


@pytest.fixture(autouse=True)
def store():
    """Fresh in-memory store, with no NATS publishing, for every test."""
    events.disable()
    memory_store.activate_memory_store()
    memory_store.reset()
    memory_store.add_user(DELEGATE_EMAIL, "Mario", "Rossi", "RSSMRA80A01H501U")
    memory_store.add_user(OTHER_DELEGATE_EMAIL, "Luigi", "Verdi", "VRDLGU75B02F205X")
    memory_store.add_public_administration(ROMA_IPA)
    yield memory_store
    memory_store.reset()


def make_user(role: UserRole = UserRole.ORG_DELEGATE, email: str = DELEGATE_EMAIL) -> LoggedUser:
    given_name, family_name, fiscal_code = {
        DELEGATE_EMAIL: ("Mario", "Rossi", "RSSMRA80A01H501U"),
        OTHER_DELEGATE_EMAIL: ("Luigi", "Verdi", "VRDLGU75B02F205X"),
    }[email]
    return LoggedUser(
        email=email,
        given_name=given_name,
        family_name=family_name,
        fiscal_code=fiscal_code,
        role=role,
    )


def make_draft(
    request_type: RequestType = RequestType.ORGANIZATION_REGISTRATION,
    requester_email: str = DELEGATE_EMAIL,
    pec: str = ROMA_PEC,
    ipa_code: str = "c_h501",
) -> RequestDraft:
    return RequestDraft(
        type=request_type,
        requester_email=requester_email,
        organization_ipa_code=ipa_code,
        organization_fiscal_code="02438750586",
        organization_name="Comune di Roma",
        organization_pec=pec,
        organization_scope=OrganizationScope.LOCAL,
        legal_representative_given_name="Roberto",
        legal_representative_family_name="Gualtieri",
        legal_representative_fiscal_code="GLTRRT66H11H501Q",
        legal_representative_phone_number="+39 06 0606",
    )


@pytest.fixture
def documents_dir(tmp_path: Path) -> Path:
    return tmp_path / "documents"


@pytest.fixture
def signing_client() -> FakeSigningClient:
    return FakeSigningClient()


@pytest.fixture
def email_service() -> FakeEmailService:
    return FakeEmailService()


@pytest.fixture
def document_service(documents_dir: Path, signing_client: FakeSigningClient) -> DocumentService:
    return DocumentService(documents_dir, signing_client)


@pytest.fixture
def executor(document_service: DocumentService, email_service: FakeEmailService) -> ActionExecutor:
    return ActionExecutor(document_service, email_service)


@pytest.fixture
def onboarding_service(document_service: DocumentService) -> OnboardingService:
    return OnboardingService(document_service)


@pytest.fixture
def stored_request(document_service: DocumentService):
    """Stores a request and writes its unsigned document."""

    def _store(
        request_type: RequestType = RequestType.ORGANIZATION_REGISTRATION,
        requester_email: str = DELEGATE_EMAIL,
        pec: str = ROMA_PEC,
        status: RequestStatus = RequestStatus.CREATED,
    ) -> Request:
        request = memory_store.add_request(
            make_draft(request_type, requester_email, pec), status=status
        )
        path = document_service.unsigned_path(request.id)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(FAKE_PDF)
        return request

    return _store
