"""
onboarding/db/repositories/user_repo.py — Users repository.

Users are created by the SPID login flow; this service reads them and only
edits the work email of a profile.
"""

from __future__ import annotations

from onboarding.database import storage_connection


async def get_user_by_email(email: str) -> dict | None:
    """Find a user by email."""
    async with storage_connection("get_user_by_email") as conn:
        row = await conn.fetchrow(
            "SELECT * FROM users WHERE email = $1 AND deleted_at IS NULL", email
        )
        return dict(row) if row else None


async def update_work_email(email: str, work_email: str) -> dict | None:
    """Set the work email of a user; returns the updated row, None if the user is gone."""
    async with storage_connection("update_work_email") as conn:
        row = await conn.fetchrow(
            """
            UPDATE users SET work_email = $2, updated_at = NOW()
            WHERE email = $1 AND deleted_at IS NULL
            RETURNING *
            """,
            email, work_email,
        )
        return dict(row) if row else None
