"""Role-based permission policy.

Every mutating operation consults a :class:`PermissionPolicy` before
touching data.  Roles are :class:`~quvo.models.user.UserRole` members, so
no code compares role strings directly.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from quvo.exceptions import QuvoPermissionDeniedError
from quvo.models.user import UserRole


class RolePermissions(BaseModel):
    """What a role may see and do."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    edit_prices: bool = Field(default=False, validation_alias=AliasChoices("editPrices", "edit_prices"))
    view_all_sites: bool = Field(default=False, validation_alias=AliasChoices("viewAllSites", "view_all_sites"))
    visible_customers: tuple[str, ...] | None = Field(
        default=None,
        validation_alias=AliasChoices("visibleCustomers", "visible_customers"),
    )
    """Customer ids the role may see; ``None`` means all customers."""
    visible_sites: tuple[str, ...] = Field(
        default=(),
        validation_alias=AliasChoices("visibleSites", "visible_sites"),
    )
    """``"<customer>_<site>"`` keys the role may see; empty means no restriction."""


DEFAULT_ROLE_PERMISSIONS: dict[UserRole, RolePermissions] = {
    UserRole.SALES_MANAGER: RolePermissions(edit_prices=True, view_all_sites=True),
    UserRole.SALES_PERSON: RolePermissions(),
    UserRole.VIEWER: RolePermissions(),
}


class PermissionPolicy:
    """Permissions keyed by role.

    Roles without an entry get :class:`RolePermissions` defaults, which
    grant nothing.
    """

    def __init__(self, roles: Mapping[UserRole, RolePermissions] | None = None) -> None:
        self._roles: dict[UserRole, RolePermissions] = dict(DEFAULT_ROLE_PERMISSIONS if roles is None else roles)

    @classmethod
    def from_dataset(cls, user_roles: Mapping[str, Any]) -> PermissionPolicy:
        """Build from a dataset ``userRoles`` block.

        Each entry looks like ``{"permissions": {"editPrices": true, ...},
        "visibleCustomers": [...], "visibleSites": [...]}``.  Unknown role
        names are ignored.
        """
        roles: dict[UserRole, RolePermissions] = {}
        for name, entry in user_roles.items():
            role = UserRole(name)
            if role is UserRole.UNKNOWN or not isinstance(entry, Mapping):
                continue
            permissions = entry.get("permissions")
            payload: dict[str, Any] = dict(permissions) if isinstance(permissions, Mapping) else {}
            for key in ("visibleCustomers", "visibleSites"):
                if entry.get(key) is not None:
                    payload[key] = entry[key]
            roles[role] = RolePermissions.model_validate(payload)
        return cls(roles)

    def permissions(self, role: UserRole | str) -> RolePermissions:
        return self._roles.get(UserRole(role), RolePermissions())

    def with_visible_sites(self, role: UserRole | str, sites: list[str]) -> PermissionPolicy:
        """Return a copy where *role* is restricted to *sites*."""
        resolved = UserRole(role)
        roles = dict(self._roles)
        roles[resolved] = self.permissions(resolved).model_copy(update={"visible_sites": tuple(sites)})
        return PermissionPolicy(roles)

    def can_edit_prices(self, role: UserRole | str) -> bool:
        return self.permissions(role).edit_prices

    def can_view_all_sites(self, role: UserRole | str) -> bool:
        return self.permissions(role).view_all_sites

    def require_edit_prices(self, role: UserRole | str) -> None:
        """Raise :class:`QuvoPermissionDeniedError` unless *role* may edit prices."""
        if not self.can_edit_prices(role):
            resolved = UserRole(role)
            raise QuvoPermissionDeniedError(
                f"Role {resolved.value!r} is not allowed to edit prices",
                role=resolved.value,
                action="edit_prices",
            )
