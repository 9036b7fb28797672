"""Tests for the capability matrix."""

import pytest

from onboarding.models.enums import UserRole
from onboarding.services import access_policy
from onboarding.services.access_policy import ACCESS_MATRIX, Possession, Resource, Verb
from onboarding.services.action_executor import REQUEST_RESOURCES


def test_delegate_can_update_any_request() -> None:
    """Delegates hold update:any on both request resources."""
    assert access_policy.can_all(UserRole.ORG_DELEGATE, REQUEST_RESOURCES, Verb.UPDATE, Possession.ANY)


@pytest.mark.parametrize("role", [UserRole.ORG_MANAGER, UserRole.ADMIN, UserRole.DEVELOPER])
def test_other_roles_cannot_update_requests(role: UserRole) -> None:
    assert not access_policy.can_all(role, REQUEST_RESOURCES, Verb.UPDATE, Possession.ANY)


def test_own_grant_does_not_imply_any() -> None:
    """read:own on organizations does not grant read:any."""
    assert access_policy.can(UserRole.ORG_DELEGATE, Resource.ORGANIZATION, Verb.READ, Possession.OWN).granted
    assert not access_policy.can(UserRole.ORG_DELEGATE, Resource.ORGANIZATION, Verb.READ, Possession.ANY).granted


def test_developer_has_no_grant() -> None:
    for resource in Resource:
        for verb in Verb:
            for possession in Possession:
                assert not access_policy.can(UserRole.DEVELOPER, resource, verb, possession).granted


def test_unknown_values_are_denied() -> None:
    assert not access_policy.can("SUPERUSER", Resource.ORGANIZATION, Verb.READ, Possession.ANY).granted
    assert not access_policy.can(UserRole.ADMIN, "billing", Verb.READ, Possession.ANY).granted
    assert not access_policy.can(UserRole.ADMIN, Resource.ORGANIZATION, "approve", Possession.ANY).granted


def test_string_arguments_are_accepted() -> None:
    permission = access_policy.can("ORG_DELEGATE", "organization", "create", "own")
    assert permission.granted
    assert permission.attributes == frozenset({"*"})


def test_filter_applies_exclusions() -> None:
    """Legal representatives do not read back personal data of the representative."""
    permission = access_policy.can(
        UserRole.ORG_MANAGER, Resource.ORGANIZATION_REGISTRATION_REQUEST, Verb.READ, Possession.OWN
    )
    data = {
        "id": 1,
        "organization_name": "Comune di Roma",
        "legal_representative_fiscal_code": "GLTRRT66H11H501Q",
        "legal_representative_phone_number": "+39 06 0606",
    }

    assert permission.filter(data) == {"id": 1, "organization_name": "Comune di Roma"}


def test_filter_denied_permission_exposes_nothing() -> None:
    permission = access_policy.can(UserRole.DEVELOPER, Resource.ORGANIZATION, Verb.READ, Possession.ANY)
    assert permission.filter({"id": 1}) == {}


def test_matrix_is_read_only() -> None:
    with pytest.raises(TypeError):
        ACCESS_MATRIX[UserRole.DEVELOPER] = {}  # type: ignore[index]
    with pytest.raises(TypeError):
        ACCESS_MATRIX[UserRole.ADMIN][Resource.ORGANIZATION]["update:any"] = frozenset({"*"})  # type: ignore[index]
