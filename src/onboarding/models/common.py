"""
onboarding/models/common.py — Base types of the onboarding domain.
"""

from pydantic import BaseModel


class OnboardingBase(BaseModel):
    """Base pydantic model for onboarding schemas."""

    model_config = {"str_strip_whitespace": True}
