"""Tests for the policy engine and the entity policies."""

import logging

import pytest

from artistdesk.application.policies import (
    AdminPolicy,
    ArtistPolicy,
    Policy,
    PolicyDecision,
    PolicyEngine,
    UserPolicy,
)
from artistdesk.domain.entities import (
    ActorContext,
    ActorType,
    PermissionResource,
    PolicyAction,
    permission_name,
)
from artistdesk.domain.exceptions import AuthorizationError, ConfigurationError
from artistdesk.infrastructure.persistence import AdminModel, ArtistModel, UserModel


def actor(actor_type: ActorType, actor_id: int, *permissions: str) -> ActorContext:
    return ActorContext(actor_type=actor_type, actor_id=actor_id, permissions=frozenset(permissions))


def artist(owner_id: int | None = None, artist_id: int = 10) -> ArtistModel:
    return ArtistModel(id=artist_id, name="Radiohead", owner_id=owner_id)


class TestPolicyDecision:
    """PolicyDecision truthiness."""

    def test_allow_is_truthy(self) -> None:
        assert PolicyDecision.allow("view", "owner")

    def test_deny_is_falsy_and_keeps_reason(self) -> None:
        decision = PolicyDecision.deny("delete", "missing artists.delete")
        assert not decision
        assert decision.action == "delete"
        assert decision.reason == "missing artists.delete"


class TestArtistPolicy:
    """Owner/permission matrix for artists."""

    @pytest.fixture
    def engine(self) -> PolicyEngine:
        return PolicyEngine()

    def test_ownerless_artist_view_denied_without_permission(self, engine: PolicyEngine) -> None:
        """An authenticated actor with no permission can't view an ownerless artist."""
        decision = engine.authorize(actor(ActorType.USER, 5), PolicyAction.VIEW, artist(None))
        assert not decision

    @pytest.mark.parametrize(
        "action",
        [PolicyAction.VIEW, PolicyAction.UPDATE, PolicyAction.DELETE, PolicyAction.RESTORE],
    )
    def test_owner_allowed_without_permission(
        self, engine: PolicyEngine, action: PolicyAction
    ) -> None:
        decision = engine.authorize(actor(ActorType.USER, 7), action, artist(owner_id=7))
        assert decision
        assert decision.reason == "owner"

    def test_owner_cannot_force_delete(self, engine: PolicyEngine) -> None:
        decision = engine.authorize(
            actor(ActorType.USER, 7), PolicyAction.FORCE_DELETE, artist(owner_id=7)
        )
        assert not decision

    def test_admin_with_same_id_is_not_owner(self, engine: PolicyEngine) -> None:
        """Admin #7 is not User #7."""
        decision = engine.authorize(
            actor(ActorType.ADMIN, 7), PolicyAction.UPDATE, artist(owner_id=7)
        )
        assert not decision

    @pytest.mark.parametrize("action", list(PolicyAction)[:7])
    def test_permission_grants_every_crud_action(
        self, engine: PolicyEngine, action: PolicyAction
    ) -> None:
        name = permission_name(PermissionResource.ARTISTS, action)
        decision = engine.authorize(actor(ActorType.ADMIN, 1, name), action, artist(owner_id=3))
        assert decision

    def test_class_level_check_ignores_ownership(self, engine: PolicyEngine) -> None:
        """viewAny/create are asked about the class, so only the permission counts."""
        assert not engine.authorize(actor(ActorType.USER, 1), PolicyAction.VIEW_ANY, ArtistModel)
        assert engine.authorize(
            actor(ActorType.USER, 1, "artists.create"), PolicyAction.CREATE, ArtistModel
        )


class TestActorPolicies:
    """Self rules for users and admins."""

    @pytest.fixture
    def engine(self) -> PolicyEngine:
        return PolicyEngine()

    def test_self_view_and_update_allowed(self, engine: PolicyEngine) -> None:
        me = actor(ActorType.USER, 3)
        target = UserModel(id=3, name="Me", email="me@example.com")
        assert engine.authorize(me, PolicyAction.VIEW, target)
        assert engine.authorize(me, PolicyAction.UPDATE, target)

    @pytest.mark.parametrize(
        ("actor_type", "model_cls", "resource"),
        [
            (ActorType.USER, UserModel, PermissionResource.USERS),
            (ActorType.ADMIN, AdminModel, PermissionResource.ADMINS),
        ],
    )
    def test_self_delete_forbidden_even_with_every_permission(
        self,
        engine: PolicyEngine,
        actor_type: ActorType,
        model_cls: type,
        resource: PermissionResource,
    ) -> None:
        """Deleting your own record is always Forbidden."""
        everything = [permission_name(resource, a) for a in PolicyAction]
        me = actor(actor_type, 4, *everything)
        target = model_cls(id=4, name="Me", email="me@example.com")

        decision = engine.authorize(me, PolicyAction.DELETE, target)

        assert not decision
        assert decision.reason == "self deletion is not allowed"
        with pytest.raises(AuthorizationError) as exc_info:
            engine.ensure(me, PolicyAction.DELETE, target)
        assert exc_info.value.action == "delete"

    def test_delete_other_actor_needs_permission(self, engine: PolicyEngine) -> None:
        target = UserModel(id=9, name="Other", email="other@example.com")
        assert not engine.authorize(actor(ActorType.ADMIN, 1), PolicyAction.DELETE, target)
        assert engine.authorize(
            actor(ActorType.ADMIN, 1, "users.delete"), PolicyAction.DELETE, target
        )

    def test_admin_is_not_self_for_user_with_same_id(self, engine: PolicyEngine) -> None:
        target = UserModel(id=1, name="User One", email="one@example.com")
        assert not engine.authorize(actor(ActorType.ADMIN, 1), PolicyAction.VIEW, target)

    def test_restore_never_rides_on_self(self, engine: PolicyEngine) -> None:
        target = UserModel(id=3, name="Me", email="me@example.com")
        assert not engine.authorize(actor(ActorType.USER, 3), PolicyAction.RESTORE, target)

    def test_password_reset_link_uses_update_permission(self, engine: PolicyEngine) -> None:
        target = AdminModel(id=8, name="Other", email="other@example.com")
        denied = engine.authorize(
            actor(ActorType.ADMIN, 1), PolicyAction.SEND_PASSWORD_RESET_LINK, target
        )
        allowed = engine.authorize(
            actor(ActorType.ADMIN, 1, "admins.update"),
            PolicyAction.SEND_PASSWORD_RESET_LINK,
            target,
        )
        assert not denied
        assert allowed
        assert allowed.action == "sendPasswordResetLink"

    def test_password_reset_link_for_self(self, engine: PolicyEngine) -> None:
        target = AdminModel(id=1, name="Me", email="me@example.com")
        assert engine.authorize(
            actor(ActorType.ADMIN, 1), PolicyAction.SEND_PASSWORD_RESET_LINK, target
        )


class TestPolicyEngine:
    """Resolution and error behaviour."""

    def test_policy_for_instances_and_classes(self) -> None:
        engine = PolicyEngine()
        assert isinstance(engine.policy_for(UserModel), UserPolicy)
        assert isinstance(engine.policy_for(AdminModel(id=1)), AdminPolicy)
        assert isinstance(engine.policy_for(ArtistModel), ArtistPolicy)

    def test_unknown_target_raises_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError):
            PolicyEngine().policy_for(object())

    def test_unknown_action_is_denied(self) -> None:
        decision = PolicyEngine().authorize(
            actor(ActorType.ADMIN, 1, "artists.view"), "publish", ArtistModel
        )
        assert not decision

    def test_register_overrides_policy(self) -> None:
        class AllowEverything(ArtistPolicy):
            def view(self, actor: ActorContext, target: object = None) -> PolicyDecision:
                return PolicyDecision.allow("view", "test")

        engine = PolicyEngine()
        engine.register(ArtistModel, AllowEverything())
        assert engine.authorize(actor(ActorType.USER, 1), PolicyAction.VIEW, artist())

    def test_denial_is_logged_at_debug(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.DEBUG, logger="artistdesk.application.policies.engine"):
            PolicyEngine().authorize(actor(ActorType.USER, 1), PolicyAction.VIEW, artist())
        assert any(getattr(r, "action", None) == "policy_denied" for r in caplog.records)

    def test_policy_base_denies_missing_method(self) -> None:
        class ReadOnlyPolicy(Policy):
            resource = PermissionResource.ARTISTS

        decision = ReadOnlyPolicy().check(actor(ActorType.USER, 1), PolicyAction.VIEW)
        assert not decision
