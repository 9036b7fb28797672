"""
onboarding/services/access_policy.py — Capability matrix of the onboarding service.

Grants are keyed by role, then resource, then ``<verb>:<possession>``:

    • possession ``any`` — the grant applies to everybody's resources
    • possession ``own`` — the grant applies to the caller's resources only

Every grant carries the set of attributes the role may see or touch: ``*``
means all of them, a bare name allows that attribute, ``!name`` excludes it.
Combinations missing from the matrix are simply not granted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from onboarding.models.enums import UserRole

logger = logging.getLogger(__name__)


class Resource(str, Enum):
    ORGANIZATION = "organization"
    ORGANIZATION_REGISTRATION_REQUEST = "organization-registration-request"
    USER_DELEGATION_REQUEST = "user-delegation-request"
    UNSIGNED_DOCUMENT = "unsigned-document"
    SIGNED_DOCUMENT = "signed-document"


class Verb(str, Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


class Possession(str, Enum):
    ANY = "any"
    OWN = "own"


ALL_ATTRIBUTES = frozenset({"*"})

# Attributes of a request a legal representative may not read back.
_MANAGER_REQUEST_ATTRIBUTES = frozenset({
    "*",
    "!legal_representative_fiscal_code",
    "!legal_representative_phone_number",
})


@dataclass(frozen=True)
class Permission:
    """Answer of ``can()``: whether the action is granted and on which attributes."""

    granted: bool
    attributes: frozenset[str] = field(default_factory=frozenset)

    def filter(self, data: Mapping[str, Any]) -> dict[str, Any]:
        """Keeps only the keys of ``data`` this permission exposes."""
        if not self.granted:
            return {}
        denied = {a[1:] for a in self.attributes if a.startswith("!")}
        allowed = {a for a in self.attributes if not a.startswith("!")}
        return {
            key: value
            for key, value in data.items()
            if ("*" in allowed or key in allowed) and key not in denied
        }


# ═══════════════════════════════════════════════════════════════════════════════
# Capability matrix
# ═══════════════════════════════════════════════════════════════════════════════

def _grants(*actions: str, attributes: frozenset[str] = ALL_ATTRIBUTES) -> dict[str, frozenset[str]]:
    return {action: attributes for action in actions}


def _freeze(matrix: dict) -> Mapping:
    return MappingProxyType({
        role: MappingProxyType({
            resource: MappingProxyType(actions) for resource, actions in resources.items()
        })
        for role, resources in matrix.items()
    })


ACCESS_MATRIX: Mapping[UserRole, Mapping[Resource, Mapping[str, frozenset[str]]]] = _freeze({
    UserRole.ORG_DELEGATE: {
        Resource.ORGANIZATION: _grants("create:own", "read:own"),
        Resource.ORGANIZATION_REGISTRATION_REQUEST: _grants("create:own", "read:own", "update:any"),
        Resource.USER_DELEGATION_REQUEST: _grants("create:own", "read:own", "update:any"),
        Resource.UNSIGNED_DOCUMENT: _grants("read:own"),
        Resource.SIGNED_DOCUMENT: _grants("create:own"),
    },
    UserRole.ORG_MANAGER: {
        Resource.ORGANIZATION: _grants("read:own"),
        Resource.ORGANIZATION_REGISTRATION_REQUEST: _grants(
            "read:own", attributes=_MANAGER_REQUEST_ATTRIBUTES
        ),
    },
    UserRole.ADMIN: {
        Resource.ORGANIZATION: _grants("read:any"),
        Resource.ORGANIZATION_REGISTRATION_REQUEST: _grants("read:any"),
        Resource.USER_DELEGATION_REQUEST: _grants("read:any"),
    },
    UserRole.DEVELOPER: {},
})


# ═══════════════════════════════════════════════════════════════════════════════
# Queries
# ═══════════════════════════════════════════════════════════════════════════════

def can(
    role: UserRole | str,
    resource: Resource | str,
    verb: Verb | str,
    possession: Possession | str,
) -> Permission:
    """Looks up the grant of ``role`` for ``verb:possession`` on ``resource``."""
    try:
        role = UserRole(role)
        resource = Resource(resource)
        action = f"{Verb(verb).value}:{Possession(possession).value}"
    except ValueError:
        logger.warning(
            "ACL: unknown grant requested role=%s resource=%s action=%s:%s",
            role, resource, verb, possession,
        )
        return Permission(granted=False)
    attributes = ACCESS_MATRIX.get(role, {}).get(resource, {}).get(action)
    if attributes is None:
        return Permission(granted=False)
    return Permission(granted=True, attributes=attributes)


def can_all(
    role: UserRole | str,
    resources: list[Resource],
    verb: Verb | str,
    possession: Possession | str,
) -> bool:
    """True when ``role`` holds ``verb:possession`` on every resource listed."""
    return all(can(role, resource, verb, possession).granted for resource in resources)
