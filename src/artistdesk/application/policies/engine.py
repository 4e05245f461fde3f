"""Policy engine: one entry point for every authorization question."""

import logging
from typing import Any

from artistdesk.domain.entities import ActorContext, PolicyAction
from artistdesk.domain.exceptions import AuthorizationError, ConfigurationError
from artistdesk.infrastructure.persistence.models import AdminModel, ArtistModel, UserModel

from .actor_policy import AdminPolicy, UserPolicy
from .artist_policy import ArtistPolicy
from .base import Policy, PolicyDecision

logger = logging.getLogger(__name__)


class PolicyEngine:
    """Resolves the policy for a target (instance or class) and evaluates it.

    Example:
        engine = PolicyEngine()
        engine.authorize(actor, PolicyAction.VIEW_ANY, ArtistModel)    # class-level
        engine.ensure(actor, PolicyAction.DELETE, artist)               # raises on deny
    """

    def __init__(self, policies: dict[type, Policy] | None = None) -> None:
        self._policies: dict[type, Policy] = {
            UserModel: UserPolicy(),
            AdminModel: AdminPolicy(),
            ArtistModel: ArtistPolicy(),
        }
        if policies:
            self._policies.update(policies)

    def register(self, model_cls: type, policy: Policy) -> None:
        self._policies[model_cls] = policy

    def policy_for(self, target_or_class: Any) -> Policy:
        cls = target_or_class if isinstance(target_or_class, type) else type(target_or_class)
        for klass in cls.__mro__:
            policy = self._policies.get(klass)
            if policy is not None:
                return policy
        raise ConfigurationError(f"No policy registered for {cls.__name__}")

    def authorize(
        self, actor: ActorContext, action: PolicyAction | str, target_or_class: Any
    ) -> PolicyDecision:
        """Evaluate a policy. Never raises for a denial."""
        policy = self.policy_for(target_or_class)
        target = None if isinstance(target_or_class, type) else target_or_class
        decision = policy.check(actor, action, target)
        if not decision:
            logger.debug(
                "Policy denied %s on %s for %s: %s",
                decision.action,
                policy.resource.value,
                actor.ref,
                decision.reason,
                extra={"action": "policy_denied", "resource": policy.resource.value},
            )
        return decision

    def ensure(
        self, actor: ActorContext, action: PolicyAction | str, target_or_class: Any
    ) -> PolicyDecision:
        """Evaluate a policy and raise AuthorizationError (403) on denial."""
        decision = self.authorize(actor, action, target_or_class)
        if not decision:
            raise AuthorizationError(action=decision.action)
        return decision
