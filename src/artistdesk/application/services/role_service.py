"""Roles, permissions and actor contexts."""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from artistdesk.domain.entities import (
    DEFAULT_ROLE_PERMISSIONS,
    ActorContext,
    ActorRef,
    GuardName,
    guard_for,
)
from artistdesk.domain.exceptions import DuplicateEntityException, ValidationError
from artistdesk.infrastructure.observability.logger_template import log_action
from artistdesk.infrastructure.persistence.models import RoleModel
from artistdesk.infrastructure.persistence.repositories import RoleRepository

logger = logging.getLogger(__name__)


class RoleService:
    """Guard-scoped role management.

    Hey future me - build_actor_context() is how a request gets its ActorContext. Resolve it
    once per request (after authentication) and pass it to every service call.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._roles = RoleRepository(session)

    async def build_actor_context(self, ref: ActorRef) -> ActorContext:
        """Snapshot the actor's roles and permissions in its own guard."""
        roles = await self._roles.roles_for(ref)
        permissions = await self._roles.permissions_for(ref)
        guard = guard_for(ref.actor_type)
        return ActorContext(
            actor_type=ref.actor_type,
            actor_id=ref.actor_id,
            permissions=frozenset(permissions),
            roles=frozenset(role.name for role in roles if role.guard_name == guard.value),
            guard=guard,
        )

    # Yo, idempotent AND syncing: running it again after editing DEFAULT_ROLE_PERMISSIONS
    # removes permissions that were dropped from a preset, not just adds new ones.
    async def seed_default_roles(
        self, guards: tuple[GuardName, ...] = (GuardName.WEB, GuardName.ADMIN)
    ) -> list[RoleModel]:
        """Create the "user" and "admin" preset roles for each guard."""
        seeded: list[RoleModel] = []
        for guard in guards:
            for role_name, permission_names in DEFAULT_ROLE_PERMISSIONS.items():
                role = await self._roles.get_or_create_role(role_name, guard)
                permissions = [
                    await self._roles.get_or_create_permission(name, guard)
                    for name in permission_names
                ]
                await self._roles.sync_role_permissions(role, permissions)
                seeded.append(role)
        await self._session.commit()
        log_action(
            logger,
            "default_roles_seeded",
            f"Seeded {len(seeded)} default roles",
            guards=[g.value for g in guards],
        )
        return seeded

    async def create_role(
        self, name: str, guard: GuardName | str, permissions: list[str] | None = None
    ) -> RoleModel:
        """Create a role with the given permission names.

        Raises:
            DuplicateEntityException: If the role already exists in that guard
        """
        if await self._roles.get_by_name(name, guard) is not None:
            raise DuplicateEntityException("Role", name)
        role = await self._roles.get_or_create_role(name, guard)
        permission_models = [
            await self._roles.get_or_create_permission(p, guard) for p in permissions or []
        ]
        await self._roles.sync_role_permissions(role, permission_models)
        await self._session.commit()
        return role

    async def find_role(self, value: Any, guard: GuardName | str) -> RoleModel | None:
        """Role by id or name, restricted to the guard."""
        role_id = await self._roles.find_role_id(value, guard)
        if role_id is None:
            return None
        role = await self._roles.get_by_id(role_id)
        if role is None or role.guard_name != GuardName(guard).value:
            return None
        return role

    async def require_role(self, value: Any, guard: GuardName | str) -> RoleModel:
        role = await self.find_role(value, guard)
        if role is None:
            raise ValidationError(f"Role '{value}' does not exist for guard {GuardName(guard).value}")
        return role

    async def assign_role(self, ref: ActorRef, value: Any) -> RoleModel:
        role = await self.require_role(value, guard_for(ref.actor_type))
        await self._roles.assign_role(ref, role)
        await self._session.commit()
        return role

    async def sync_roles(self, ref: ActorRef, values: list[Any]) -> list[RoleModel]:
        """Replace the actor's roles with exactly these."""
        guard = guard_for(ref.actor_type)
        roles = [await self.require_role(value, guard) for value in values]
        await self._roles.sync_roles(ref, roles)
        await self._session.commit()
        return roles

    async def role_names(self, ref: ActorRef) -> list[str]:
        return [role.name for role in await self._roles.roles_for(ref)]
