from __future__ import annotations

import pytest

from quvo.exceptions import QuvoPermissionDeniedError
from quvo.models.user import UserRole
from quvo.permissions import PermissionPolicy, RolePermissions


def test_default_policy_only_lets_managers_edit_prices() -> None:
    policy = PermissionPolicy()

    assert policy.can_edit_prices(UserRole.SALES_MANAGER)
    assert policy.can_view_all_sites("sales-manager")
    assert not policy.can_edit_prices(UserRole.SALES_PERSON)
    assert not policy.can_edit_prices(UserRole.UNKNOWN)


def test_unknown_role_strings_resolve_to_unknown() -> None:
    assert UserRole("regional-director") is UserRole.UNKNOWN
    assert UserRole("SALES_MANAGER") is UserRole.SALES_MANAGER
    assert PermissionPolicy().permissions("regional-director") == RolePermissions()


def test_require_edit_prices_raises_with_role_and_action() -> None:
    with pytest.raises(QuvoPermissionDeniedError) as exc_info:
        PermissionPolicy().require_edit_prices("viewer")

    assert exc_info.value.role == "viewer"
    assert exc_info.value.action == "edit_prices"


def test_policy_from_dataset_block() -> None:
    policy = PermissionPolicy.from_dataset(
        {
            "sales-person": {
                "permissions": {"editPrices": True},
                "visibleSites": ["acme_north"],
            },
            "not-a-role": {"permissions": {"editPrices": True}},
        }
    )

    assert policy.can_edit_prices(UserRole.SALES_PERSON)
    assert policy.permissions(UserRole.SALES_PERSON).visible_sites == ("acme_north",)
    # Roles missing from the block get no permissions at all.
    assert not policy.can_edit_prices(UserRole.SALES_MANAGER)
    assert not policy.can_edit_prices(UserRole.UNKNOWN)


def test_with_visible_sites_returns_restricted_copy() -> None:
    policy = PermissionPolicy()
    restricted = policy.with_visible_sites(UserRole.SALES_PERSON, ["acme_south"])

    assert restricted.permissions(UserRole.SALES_PERSON).visible_sites == ("acme_south",)
    assert policy.permissions(UserRole.SALES_PERSON).visible_sites == ()
