"""Actor identity value objects.

Hey future me - Users and Admins are DISJOINT identity spaces (separate tables, separate
guards). Nothing here is an inheritance hierarchy: an actor is referenced by (type, id),
and that pair is what lands in polymorphic columns like oauth_tokens.tokenable_type.
"""

from dataclasses import dataclass, field
from enum import Enum


class ActorType(str, Enum):
    """Kinds of authenticated actors."""

    USER = "user"
    ADMIN = "admin"


class GuardName(str, Enum):
    """Authentication scopes. Roles and permissions belong to exactly one guard."""

    WEB = "web"
    ADMIN = "admin"
    API = "api"


# Users authenticate on "web", Admins on "admin". Roles live in the same guard as their holders.
ACTOR_GUARDS: dict[ActorType, GuardName] = {
    ActorType.USER: GuardName.WEB,
    ActorType.ADMIN: GuardName.ADMIN,
}


def guard_for(actor_type: ActorType) -> GuardName:
    """Return the guard an actor type authenticates against."""
    return ACTOR_GUARDS[actor_type]


def actor_type_for_guard(guard: GuardName | str) -> ActorType:
    """Map a login guard to the actor table it authenticates against.

    Anything that isn't the admin guard resolves to users (web/api both log users in).
    """
    return ActorType.ADMIN if GuardName(guard) == GuardName.ADMIN else ActorType.USER


@dataclass(frozen=True)
class ActorRef:
    """Discriminated reference to a User or Admin row."""

    actor_type: ActorType
    actor_id: int

    def __str__(self) -> str:
        return f"{self.actor_type.value}:{self.actor_id}"


# Yo, this is the explicit replacement for "whoever is logged in right now". Every lifecycle
# call takes one of these, so stamps and notifications are deterministic in tests. Build it
# with RoleService.build_actor_context() so permissions reflect the DB, or by hand in tests.
@dataclass(frozen=True)
class ActorContext:
    """The authenticated actor performing an operation."""

    actor_type: ActorType
    actor_id: int
    permissions: frozenset[str] = field(default_factory=frozenset)
    roles: frozenset[str] = field(default_factory=frozenset)
    guard: GuardName | None = None

    def __post_init__(self) -> None:
        if self.guard is None:
            object.__setattr__(self, "guard", guard_for(self.actor_type))

    @property
    def ref(self) -> ActorRef:
        return ActorRef(self.actor_type, self.actor_id)

    def has_permission(self, permission: str) -> bool:
        return permission in self.permissions

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def is_actor(self, actor_type: ActorType, actor_id: int | None) -> bool:
        """Check whether this context IS the given actor (same kind AND same id)."""
        return actor_id is not None and self.actor_type == actor_type and self.actor_id == actor_id
