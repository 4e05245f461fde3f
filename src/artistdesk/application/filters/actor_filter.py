"""Filters for users and admins (search by name/email, role)."""

from typing import Any, ClassVar

from sqlalchemy import Select, select

from artistdesk.domain.entities import ActorType, guard_for
from artistdesk.infrastructure.persistence.models import AdminModel, UserModel, model_has_roles
from artistdesk.infrastructure.persistence.repositories import RoleRepository

from .base import BaseFilter


class ActorFilter(BaseFilter):
    """Adds the role step. role_id beats role; names resolve within the actor's guard."""

    actor_type: ClassVar[ActorType]
    search_fields = ("name", "email")
    sortable_fields = ("name", "email")

    def __init__(self, filters: dict[str, Any] | None, roles: RoleRepository) -> None:
        super().__init__(filters)
        self.roles = roles

    async def apply_specific(self, stmt: Select[Any]) -> Select[Any]:
        return await self.apply_role(stmt)

    async def apply_role(self, stmt: Select[Any]) -> Select[Any]:
        role_id = self.get_int("role_id")
        if role_id is None:
            raw_role = self.get("role")
            if raw_role is None or raw_role == "" or isinstance(raw_role, bool):
                return stmt
            # Hey future me - an unknown role name means "skip the filter", NOT "match nothing"
            role_id = await self.roles.find_role_id(raw_role, guard_for(self.actor_type))
            if role_id is None:
                return stmt

        holders = select(model_has_roles.c.model_id).where(
            model_has_roles.c.model_type == self.actor_type.value,
            model_has_roles.c.role_id == role_id,
        )
        return stmt.where(self.model.id.in_(holders))


class UserFilter(ActorFilter):
    model = UserModel
    actor_type = ActorType.USER


class AdminFilter(ActorFilter):
    model = AdminModel
    actor_type = ActorType.ADMIN
