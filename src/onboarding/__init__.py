"""
onboarding — Onboarding service for public administrations joining IO.

Handles organization registration requests, user delegations and the
submission of signed onboarding documents to the administration PEC.
"""

__version__ = "0.4.0"
