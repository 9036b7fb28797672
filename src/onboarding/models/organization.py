"""
onboarding/models/organization.py — Organization registration schemas.

``IpaPublicAdministration`` mirrors a row of the national registry (IPA):
up to five e-mail slots, each typed (``pec`` marks a certified address).
"""

from pydantic import ConfigDict, Field

from onboarding.models.common import OnboardingBase
from onboarding.models.enums import OrganizationScope

PEC_EMAIL_TYPE = "pec"
EMAIL_SLOTS = 5


class LegalRepresentative(OnboardingBase):
    """Legal representative of the organization being registered."""
    given_name: str = Field(..., min_length=1)
    family_name: str = Field(..., min_length=1)
    fiscal_code: str = Field(..., pattern=r"^[A-Z0-9]{16}$")
    phone_number: str = Field(..., min_length=5, max_length=20)


class OrganizationRegistrationParams(OnboardingBase):
    """Body of ``POST /organizations``."""
    ipa_code: str = Field(..., min_length=1, examples=["c_h501"])
    legal_representative: LegalRepresentative
    scope: OrganizationScope
    selected_pec_label: str = Field(..., pattern=r"^[1-5]$", examples=["1"])


class IpaPublicAdministration(OnboardingBase):
    """Public administration as stored in the IPA registry table."""

    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    cod_amm: str
    des_amm: str
    Cf: str
    mail1: str | None = None
    tipo_mail1: str | None = None
    mail2: str | None = None
    tipo_mail2: str | None = None
    mail3: str | None = None
    tipo_mail3: str | None = None
    mail4: str | None = None
    tipo_mail4: str | None = None
    mail5: str | None = None
    tipo_mail5: str | None = None

    def pec_for_label(self, label: str) -> str | None:
        """Returns the address behind ``label`` if that slot holds a PEC."""
        if not label.isdigit() or not 1 <= int(label) <= EMAIL_SLOTS:
            return None
        email = getattr(self, f"mail{label}")
        email_type = getattr(self, f"tipo_mail{label}")
        if not email or (email_type or "").lower() != PEC_EMAIL_TYPE:
            return None
        return email
