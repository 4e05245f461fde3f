"""Policies for the actor tables (users, admins)."""

from typing import Any, ClassVar

from artistdesk.domain.entities import ActorContext, ActorType, PermissionResource, PolicyAction

from .base import Policy, PolicyDecision


class ActorPolicy(Policy):
    """Rules shared by UserPolicy and AdminPolicy.

    "Self" means the same actor KIND and the same id. User #3 is not Admin #3.
    """

    target_actor_type: ClassVar[ActorType]

    def is_self(self, actor: ActorContext, target: Any) -> bool:
        if target is None:
            return False
        return actor.is_actor(self.target_actor_type, getattr(target, "id", None))

    def view(self, actor: ActorContext, target: Any = None) -> PolicyDecision:
        if self.is_self(actor, target):
            return PolicyDecision.allow(PolicyAction.VIEW.value, "self")
        return self.permission(actor, PolicyAction.VIEW)

    def update(self, actor: ActorContext, target: Any = None) -> PolicyDecision:
        if self.is_self(actor, target):
            return PolicyDecision.allow(PolicyAction.UPDATE.value, "self")
        return self.permission(actor, PolicyAction.UPDATE)

    # Hey future me - self-deletion is denied EVEN with the permission. An admin holding
    # admins.delete still can't trash their own account through this API.
    def delete(self, actor: ActorContext, target: Any = None) -> PolicyDecision:
        if self.is_self(actor, target):
            return PolicyDecision.deny(PolicyAction.DELETE.value, "self deletion is not allowed")
        return self.permission(actor, PolicyAction.DELETE)

    def restore(self, actor: ActorContext, target: Any = None) -> PolicyDecision:
        return self.permission(actor, PolicyAction.RESTORE)

    def send_password_reset_link(self, actor: ActorContext, target: Any = None) -> PolicyDecision:
        if self.is_self(actor, target):
            return PolicyDecision.allow(PolicyAction.SEND_PASSWORD_RESET_LINK.value, "self")
        decision = self.permission(actor, PolicyAction.UPDATE)
        return PolicyDecision(
            decision.allowed, PolicyAction.SEND_PASSWORD_RESET_LINK.value, decision.reason
        )


class UserPolicy(ActorPolicy):
    resource = PermissionResource.USERS
    target_actor_type = ActorType.USER


class AdminPolicy(ActorPolicy):
    resource = PermissionResource.ADMINS
    target_actor_type = ActorType.ADMIN
