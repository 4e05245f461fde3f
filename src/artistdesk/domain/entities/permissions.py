"""Permission catalogue.

Permission names are "<resource>.<action>", e.g. "artists.forceDelete". The same names exist
once per guard; the guard is part of the permission's identity in the database.
"""

from enum import Enum


class PolicyAction(str, Enum):
    """Actions a policy can be asked about."""

    VIEW_ANY = "viewAny"
    VIEW = "view"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    RESTORE = "restore"
    FORCE_DELETE = "forceDelete"
    SEND_PASSWORD_RESET_LINK = "sendPasswordResetLink"


class PermissionResource(str, Enum):
    """Resources that carry CRUD permissions."""

    USERS = "users"
    ADMINS = "admins"
    ARTISTS = "artists"


# sendPasswordResetLink piggybacks on *.update, so it is not a permission of its own
CRUD_ACTIONS: tuple[PolicyAction, ...] = (
    PolicyAction.VIEW_ANY,
    PolicyAction.VIEW,
    PolicyAction.CREATE,
    PolicyAction.UPDATE,
    PolicyAction.DELETE,
    PolicyAction.RESTORE,
    PolicyAction.FORCE_DELETE,
)


def permission_name(resource: PermissionResource | str, action: PolicyAction | str) -> str:
    """Build a dot-namespaced permission name."""
    resource_value = resource.value if isinstance(resource, PermissionResource) else resource
    action_value = action.value if isinstance(action, PolicyAction) else action
    return f"{resource_value}.{action_value}"


def all_permissions() -> list[str]:
    """Every permission name, in catalogue order."""
    return [
        permission_name(resource, action)
        for resource in PermissionResource
        for action in CRUD_ACTIONS
    ]


# Hey future me - the default "user" role gets EVERYTHING except forceDelete. Permanent
# deletion is reserved for the "admin" preset. Change these lists, then re-run
# RoleService.seed_default_roles() - it syncs, so removals are applied too.
DEFAULT_ROLE_PERMISSIONS: dict[str, list[str]] = {
    "user": [
        name for name in all_permissions() if not name.endswith(f".{PolicyAction.FORCE_DELETE.value}")
    ],
    "admin": all_permissions(),
}
