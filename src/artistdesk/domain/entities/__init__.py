"""Domain entities."""

from artistdesk.domain.entities.actors import (
    ACTOR_GUARDS,
    ActorContext,
    ActorRef,
    ActorType,
    GuardName,
    actor_type_for_guard,
    guard_for,
)
from artistdesk.domain.entities.lifecycle import (
    PROFILE_PHOTO_COLLECTION,
    LifecycleEventType,
    OAuthProvider,
    ProfilePhotoOutcome,
)
from artistdesk.domain.entities.permissions import (
    CRUD_ACTIONS,
    DEFAULT_ROLE_PERMISSIONS,
    PermissionResource,
    PolicyAction,
    all_permissions,
    permission_name,
)

__all__ = [
    "ACTOR_GUARDS",
    "ActorContext",
    "ActorRef",
    "ActorType",
    "CRUD_ACTIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "GuardName",
    "LifecycleEventType",
    "OAuthProvider",
    "PROFILE_PHOTO_COLLECTION",
    "PermissionResource",
    "PolicyAction",
    "ProfilePhotoOutcome",
    "actor_type_for_guard",
    "all_permissions",
    "guard_for",
    "permission_name",
]
