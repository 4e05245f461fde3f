"""Authorization policies."""

from artistdesk.application.policies.actor_policy import ActorPolicy, AdminPolicy, UserPolicy
from artistdesk.application.policies.artist_policy import ArtistPolicy
from artistdesk.application.policies.base import Policy, PolicyDecision
from artistdesk.application.policies.engine import PolicyEngine

__all__ = [
    "ActorPolicy",
    "AdminPolicy",
    "ArtistPolicy",
    "Policy",
    "PolicyDecision",
    "PolicyEngine",
    "UserPolicy",
]
