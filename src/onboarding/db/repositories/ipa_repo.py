"""
onboarding/db/repositories/ipa_repo.py — IPA public administrations repository.

The table is filled by the registry ingestion job; read-only here.
"""

from __future__ import annotations

from onboarding.database import storage_connection


async def get_public_administration(ipa_code: str) -> dict | None:
    """Find a public administration by its IPA code (``cod_amm``)."""
    async with storage_connection("get_public_administration") as conn:
        row = await conn.fetchrow(
            'SELECT * FROM ipa_public_administrations WHERE "cod_amm" = $1', ipa_code
        )
        return dict(row) if row else None
