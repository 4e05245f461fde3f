"""Policy primitives shared by every entity policy."""

from dataclasses import dataclass
from typing import Any, ClassVar

from artistdesk.domain.entities import ActorContext, PermissionResource, PolicyAction, permission_name


@dataclass(frozen=True)
class PolicyDecision:
    """Outcome of an authorization check.

    Hey future me - this is truthy when allowed, so `if engine.authorize(...)` reads
    naturally, but a denial still carries the action and reason for the 403 response.
    """

    allowed: bool
    action: str
    reason: str = ""

    def __bool__(self) -> bool:
        return self.allowed

    @classmethod
    def allow(cls, action: str, reason: str = "") -> "PolicyDecision":
        return cls(True, action, reason)

    @classmethod
    def deny(cls, action: str, reason: str = "") -> "PolicyDecision":
        return cls(False, action, reason)


class Policy:
    """Maps policy actions to per-entity rules.

    Subclasses implement one method per action. target is None for class-level
    checks (e.g. "may this actor update users at all?"), in which case self/owner
    short-circuits can't apply and only the permission decides.
    """

    resource: ClassVar[PermissionResource]

    _METHODS: ClassVar[dict[str, str]] = {
        PolicyAction.VIEW_ANY.value: "view_any",
        PolicyAction.VIEW.value: "view",
        PolicyAction.CREATE.value: "create",
        PolicyAction.UPDATE.value: "update",
        PolicyAction.DELETE.value: "delete",
        PolicyAction.RESTORE.value: "restore",
        PolicyAction.FORCE_DELETE.value: "force_delete",
        PolicyAction.SEND_PASSWORD_RESET_LINK.value: "send_password_reset_link",
    }

    def check(self, actor: ActorContext, action: PolicyAction | str, target: Any = None) -> PolicyDecision:
        action_value = action.value if isinstance(action, PolicyAction) else str(action)
        method_name = self._METHODS.get(action_value)
        method = getattr(self, method_name, None) if method_name else None
        if method is None:
            return PolicyDecision.deny(action_value, f"unknown action for {self.resource.value}")
        decision: PolicyDecision = method(actor, target)
        return decision

    def permission(self, actor: ActorContext, action: PolicyAction) -> PolicyDecision:
        name = permission_name(self.resource, action)
        if actor.has_permission(name):
            return PolicyDecision.allow(action.value, f"has {name}")
        return PolicyDecision.deny(action.value, f"missing {name}")

    def view_any(self, actor: ActorContext, target: Any = None) -> PolicyDecision:
        return self.permission(actor, PolicyAction.VIEW_ANY)

    def create(self, actor: ActorContext, target: Any = None) -> PolicyDecision:
        return self.permission(actor, PolicyAction.CREATE)

    def force_delete(self, actor: ActorContext, target: Any = None) -> PolicyDecision:
        # Permanent removal never rides on self/ownership
        return self.permission(actor, PolicyAction.FORCE_DELETE)
