"""Policy for artists."""

from typing import Any

from artistdesk.domain.entities import ActorContext, ActorType, PermissionResource, PolicyAction

from .base import Policy, PolicyDecision


class ArtistPolicy(Policy):
    """Owners may view/update/delete/restore their own artist, never force delete it.

    Owner = a USER actor whose id equals artist.owner_id. Ownerless artists
    (owner_id NULL) are permission-only for everybody.
    """

    resource = PermissionResource.ARTISTS

    @staticmethod
    def is_owner(actor: ActorContext, target: Any) -> bool:
        if target is None:
            return False
        return actor.is_actor(ActorType.USER, getattr(target, "owner_id", None))

    def _owner_or_permission(
        self, actor: ActorContext, target: Any, action: PolicyAction
    ) -> PolicyDecision:
        if self.is_owner(actor, target):
            return PolicyDecision.allow(action.value, "owner")
        return self.permission(actor, action)

    def view(self, actor: ActorContext, target: Any = None) -> PolicyDecision:
        return self._owner_or_permission(actor, target, PolicyAction.VIEW)

    def update(self, actor: ActorContext, target: Any = None) -> PolicyDecision:
        return self._owner_or_permission(actor, target, PolicyAction.UPDATE)

    def delete(self, actor: ActorContext, target: Any = None) -> PolicyDecision:
        return self._owner_or_permission(actor, target, PolicyAction.DELETE)

    def restore(self, actor: ActorContext, target: Any = None) -> PolicyDecision:
        return self._owner_or_permission(actor, target, PolicyAction.RESTORE)
