"""
═══════════════════════════════════════════════════════════════════════════════
Onboarding — In-memory store (stand-in for PostgreSQL in local development)
═══════════════════════════════════════════════════════════════════════════════

In-memory implementations of ``request_repo``, ``user_repo`` and ``ipa_repo``
plus ``activate_memory_store()``, which swaps them into the repository
modules. Used by ``main.lifespan`` when the database is unreachable and by
the test-suite.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from onboarding.models.enums import RequestStatus, RequestType
from onboarding.models.request import Request, RequestDraft
from onboarding.models.user import Requester

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Data
# ═══════════════════════════════════════════════════════════════════════════════
_users: dict[str, dict] = {}
_public_administrations: dict[str, dict] = {}
_requests: dict[int, dict] = {}
_next_id = 1

_now = lambda: datetime.now(timezone.utc)  # noqa: E731


def reset() -> None:
    """Drops every stored row."""
    global _next_id
    _users.clear()
    _public_administrations.clear()
    _requests.clear()
    _next_id = 1


def add_user(
    email: str, given_name: str, family_name: str, fiscal_code: str, role: str = "ORG_DELEGATE",
) -> dict:
    """Stores a user, as the SPID login flow would."""
    now = _now()
    user = {
        "email": email, "given_name": given_name, "family_name": family_name,
        "fiscal_code": fiscal_code, "role": role, "work_email": None,
        "created_at": now, "updated_at": now, "deleted_at": None,
    }
    _users[email] = user
    return user


def add_public_administration(row: dict) -> dict:
    """Stores an IPA registry row."""
    _public_administrations[row["cod_amm"]] = dict(row)
    return row


def add_request(draft: RequestDraft, status: RequestStatus = RequestStatus.CREATED) -> Request:
    """Stores a request directly in the given status."""
    global _next_id
    now = _now()
    row = {
        **draft.model_dump(), "id": _next_id, "status": status,
        "created_at": now, "updated_at": now, "deleted_at": None,
    }
    _requests[_next_id] = row
    _next_id += 1
    return _to_request(row)


def _to_request(row: dict) -> Request:
    user = _users.get(row["requester_email"])
    requester = None
    if user is not None and user["deleted_at"] is None:
        requester = Requester(
            email=user["email"], given_name=user["given_name"],
            family_name=user["family_name"], fiscal_code=user["fiscal_code"],
        )
    return Request(**row, requester=requester)


def _visible() -> list[dict]:
    return [r for _, r in sorted(_requests.items()) if r["deleted_at"] is None]


# ═══════════════════════════════════════════════════════════════════════════════
# request_repo in-memory
# ═══════════════════════════════════════════════════════════════════════════════

async def find_by_id(request_id: int) -> Request | None:
    row = _requests.get(request_id)
    if row is None or row["deleted_at"] is not None:
        return None
    return _to_request(row)


async def find_all() -> list[Request]:
    return [_to_request(r) for r in _visible()]


async def find_by_owner(owner_email: str) -> list[Request]:
    return [_to_request(r) for r in _visible() if r["requester_email"] == owner_email]


async def find_by_owner_and_status(owner_email: str, status: RequestStatus) -> list[Request]:
    return [
        _to_request(r) for r in _visible()
        if r["requester_email"] == owner_email and r["status"] == status
    ]


async def find_by_ipa_code_and_status(
    ipa_code: str,
    status: RequestStatus,
    request_type: RequestType = RequestType.ORGANIZATION_REGISTRATION,
) -> list[Request]:
    return [
        _to_request(r) for r in _visible()
        if r["organization_ipa_code"] == ipa_code
        and r["status"] == status
        and r["type"] == request_type
    ]


async def create_pair(drafts: list[RequestDraft]) -> list[Request]:
    """Creates every draft in memory; nothing awaits in between, so it is atomic."""
    created = [add_request(draft) for draft in drafts]
    logger.info(
        "Onboarding memory store: created requests %s", [r.id for r in created]
    )
    return [r.model_copy(update={"requester": None}) for r in created]


async def transition_to_submitted(request_id: int) -> bool:
    row = _requests.get(request_id)
    if row is None or row["deleted_at"] is not None or row["status"] != RequestStatus.CREATED:
        return False
    row["status"] = RequestStatus.SUBMITTED
    row["updated_at"] = _now()
    return True


async def soft_delete(request_ids: list[int]) -> None:
    now = _now()
    for request_id in request_ids:
        row = _requests.get(request_id)
        if row is not None and row["deleted_at"] is None:
            row["deleted_at"] = now
            row["updated_at"] = now


# ═══════════════════════════════════════════════════════════════════════════════
# user_repo / ipa_repo in-memory
# ═══════════════════════════════════════════════════════════════════════════════

async def get_user_by_email(email: str) -> dict | None:
    user = _users.get(email)
    if user is None or user["deleted_at"] is not None:
        return None
    return dict(user)


async def update_work_email(email: str, work_email: str) -> dict | None:
    user = _users.get(email)
    if user is None or user["deleted_at"] is not None:
        return None
    user["work_email"] = work_email
    user["updated_at"] = _now()
    return dict(user)


async def get_public_administration(ipa_code: str) -> dict | None:
    row = _public_administrations.get(ipa_code)
    return dict(row) if row else None


# ═══════════════════════════════════════════════════════════════════════════════
# Activation (monkey-patching)
# ═══════════════════════════════════════════════════════════════════════════════

def activate_memory_store() -> None:
    """
    Replaces the functions of ``onboarding.db.repositories.*`` with the
    in-memory ones above.

    Called from ``onboarding.main → lifespan()`` when PostgreSQL is unreachable.
    """
    from onboarding.db.repositories import ipa_repo, request_repo, user_repo

    # ── request_repo ──
    request_repo.find_by_id = find_by_id
    request_repo.find_all = find_all
    request_repo.find_by_owner = find_by_owner
    request_repo.find_by_owner_and_status = find_by_owner_and_status
    request_repo.find_by_ipa_code_and_status = find_by_ipa_code_and_status
    request_repo.create_pair = create_pair
    request_repo.transition_to_submitted = transition_to_submitted
    request_repo.soft_delete = soft_delete

    # ── user_repo ──
    user_repo.get_user_by_email = get_user_by_email
    user_repo.update_work_email = update_work_email

    # ── ipa_repo ──
    ipa_repo.get_public_administration = get_public_administration

    logger.warning(
        "🧠 Onboarding memory store ACTIVATED — all data is in-memory (lost on restart)."
    )
