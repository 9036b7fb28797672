"""
onboarding/models/user.py — Authenticated caller and requester identity.
"""

from pydantic import EmailStr, Field

from onboarding.models.common import OnboardingBase
from onboarding.models.enums import UserRole


class Requester(OnboardingBase):
    """Owner of a request, loaded together with the request row."""
    email: EmailStr
    given_name: str
    family_name: str
    fiscal_code: str


class LoggedUser(OnboardingBase):
    """Identity of the caller, resolved from the bearer token."""
    email: EmailStr
    given_name: str = Field(..., min_length=1)
    family_name: str = Field(..., min_length=1)
    fiscal_code: str = Field(..., pattern=r"^[A-Z0-9]{16}$", examples=["RSSMRA80A01H501U"])
    role: UserRole
    work_email: EmailStr | None = None


class UserProfile(OnboardingBase):
    """Profile of the caller as exposed by ``/profile``."""
    email: EmailStr
    given_name: str
    family_name: str
    fiscal_code: str
    role: UserRole
    work_email: EmailStr | None = None


class ProfileUpdate(OnboardingBase):
    work_email: EmailStr
