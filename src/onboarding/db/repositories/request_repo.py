"""
onboarding/db/repositories/request_repo.py — Onboarding requests repository.

Every query reads the requester (``users`` row) in the same round trip, so
identity checks on a request never need a second query. Soft-deleted rows
are invisible to every function here.

Database failures are re-raised as ``StorageError``; nothing is retried.
"""

from __future__ import annotations

from onboarding.database import storage_connection
from onboarding.models.enums import RequestStatus, RequestType
from onboarding.models.request import Request, RequestDraft
from onboarding.models.user import Requester

_SELECT_WITH_REQUESTER = """
    SELECT r.*,
           u.email       AS requester_user_email,
           u.given_name  AS requester_given_name,
           u.family_name AS requester_family_name,
           u.fiscal_code AS requester_fiscal_code
    FROM requests r
    LEFT JOIN users u ON u.email = r.requester_email
"""


def _row_to_request(row) -> Request:
    """Converts a joined DB row into a Request."""
    data = dict(row)
    requester = None
    if data.get("requester_user_email") is not None:
        requester = Requester(
            email=data["requester_user_email"],
            given_name=data["requester_given_name"],
            family_name=data["requester_family_name"],
            fiscal_code=data["requester_fiscal_code"],
        )
    return Request(
        id=data["id"],
        type=data["type"],
        status=data["status"],
        requester_email=data["requester_email"],
        requester=requester,
        organization_ipa_code=data["organization_ipa_code"],
        organization_fiscal_code=data["organization_fiscal_code"],
        organization_name=data["organization_name"],
        organization_pec=data["organization_pec"],
        organization_scope=data["organization_scope"],
        legal_representative_given_name=data["legal_representative_given_name"],
        legal_representative_family_name=data["legal_representative_family_name"],
        legal_representative_fiscal_code=data["legal_representative_fiscal_code"],
        legal_representative_phone_number=data["legal_representative_phone_number"],
        created_at=data.get("created_at"),
        updated_at=data.get("updated_at"),
        deleted_at=data.get("deleted_at"),
    )


async def find_by_id(request_id: int) -> Request | None:
    """Find a request with its requester."""
    async with storage_connection("find_by_id") as conn:
        row = await conn.fetchrow(
            _SELECT_WITH_REQUESTER + " WHERE r.id = $1 AND r.deleted_at IS NULL",
            request_id,
        )
        return _row_to_request(row) if row else None


async def find_all() -> list[Request]:
    """Every request that is not soft-deleted."""
    async with storage_connection("find_all") as conn:
        rows = await conn.fetch(
            _SELECT_WITH_REQUESTER + " WHERE r.deleted_at IS NULL ORDER BY r.id"
        )
        return [_row_to_request(r) for r in rows]


async def find_by_owner(owner_email: str) -> list[Request]:
    """All the requests created by a user."""
    async with storage_connection("find_by_owner") as conn:
        rows = await conn.fetch(
            _SELECT_WITH_REQUESTER
            + " WHERE r.requester_email = $1 AND r.deleted_at IS NULL ORDER BY r.id",
            owner_email,
        )
        return [_row_to_request(r) for r in rows]


async def find_by_owner_and_status(owner_email: str, status: RequestStatus) -> list[Request]:
    """Requests of a user in the given status (pending-registration check)."""
    async with storage_connection("find_by_owner_and_status") as conn:
        rows = await conn.fetch(
            _SELECT_WITH_REQUESTER
            + """ WHERE r.requester_email = $1 AND r.status = $2
                  AND r.deleted_at IS NULL ORDER BY r.id""",
            owner_email, status.value,
        )
        return [_row_to_request(r) for r in rows]


async def find_by_ipa_code_and_status(
    ipa_code: str,
    status: RequestStatus,
    request_type: RequestType = RequestType.ORGANIZATION_REGISTRATION,
) -> list[Request]:
    """Requests of a given type and status targeting an administration."""
    async with storage_connection("find_by_ipa_code_and_status") as conn:
        rows = await conn.fetch(
            _SELECT_WITH_REQUESTER
            + """ WHERE r.organization_ipa_code = $1 AND r.status = $2 AND r.type = $3
                  AND r.deleted_at IS NULL ORDER BY r.id""",
            ipa_code, status.value, request_type.value,
        )
        return [_row_to_request(r) for r in rows]


async def create_pair(drafts: list[RequestDraft]) -> list[Request]:
    """
    Insert the requests of a registration in a single transaction.

    Either every draft is stored or none is. Returned requests do not carry
    the requester; reload them with ``find_by_id`` when it is needed.
    """
    async with storage_connection("create_pair") as conn:
        async with conn.transaction():
            created = []
            for draft in drafts:
                row = await conn.fetchrow(
                    """
                    INSERT INTO requests (
                        type, status, requester_email,
                        organization_ipa_code, organization_fiscal_code,
                        organization_name, organization_pec, organization_scope,
                        legal_representative_given_name, legal_representative_family_name,
                        legal_representative_fiscal_code, legal_representative_phone_number
                    )
                    VALUES ($1, 'CREATED', $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
                    RETURNING *
                    """,
                    draft.type.value, draft.requester_email,
                    draft.organization_ipa_code, draft.organization_fiscal_code,
                    draft.organization_name, draft.organization_pec,
                    draft.organization_scope.value,
                    draft.legal_representative_given_name,
                    draft.legal_representative_family_name,
                    draft.legal_representative_fiscal_code,
                    draft.legal_representative_phone_number,
                )
                created.append(_row_to_request(row))
            return created


async def transition_to_submitted(request_id: int) -> bool:
    """
    Move a request from CREATED to SUBMITTED.

    The update only applies to rows still in CREATED; returns False when no
    row was changed (someone else submitted it first, or it is gone).
    """
    async with storage_connection("transition_to_submitted") as conn:
        result = await conn.execute(
            """
            UPDATE requests SET status = 'SUBMITTED', updated_at = NOW()
            WHERE id = $1 AND status = 'CREATED' AND deleted_at IS NULL
            """,
            request_id,
        )
        # asyncpg returns the command tag, e.g. "UPDATE 1"
        return result.split()[-1] != "0"


async def soft_delete(request_ids: list[int]) -> None:
    """Hide requests from every lookup by setting ``deleted_at``."""
    async with storage_connection("soft_delete") as conn:
        await conn.execute(
            """
            UPDATE requests SET deleted_at = NOW(), updated_at = NOW()
            WHERE id = ANY($1::int[]) AND deleted_at IS NULL
            """,
            request_ids,
        )
