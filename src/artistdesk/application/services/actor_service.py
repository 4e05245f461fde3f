"""Lifecycle services for the two actor tables."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, TypeVar

from artistdesk.application.services.lifecycle_service import SoftDeleteLifecycleService
from artistdesk.application.services.role_service import RoleService
from artistdesk.domain.entities import ActorContext, PolicyAction, guard_for
from artistdesk.domain.exceptions import ConfigurationError
from artistdesk.infrastructure.observability.logger_template import log_action
from artistdesk.infrastructure.persistence.models import AdminModel, UserModel
from artistdesk.infrastructure.persistence.repositories import (
    ActorRepository,
    AdminRepository,
    RoleRepository,
    UserRepository,
)
from artistdesk.infrastructure.security import PasswordHasher

if TYPE_CHECKING:
    from artistdesk.domain.ports import IPasswordResetBroker

logger = logging.getLogger(__name__)

A = TypeVar("A", UserModel, AdminModel)

# Input keys that are not columns but still mean something to create()/update()
ROLE_KEY = "role"


class ActorLifecycleService(SoftDeleteLifecycleService[A]):
    """Adds password hashing, role assignment and reset links on top of the lifecycle.

    Hey future me - the password rules:
    - non-empty password in data -> bcrypt hash stored
    - "password": "" or None      -> key dropped, stored hash untouched (edit forms send it empty)
    - no password key             -> nothing happens
    """

    fillable = ("name", "email", "password", "email_verified_at", "spotify_id", "google_id")

    def __init__(
        self,
        *args: Any,
        password_hasher: PasswordHasher | None = None,
        reset_broker: IPasswordResetBroker | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self._hasher = password_hasher or PasswordHasher(self._settings.security.bcrypt_rounds)
        self._reset_broker = reset_broker
        self._role_service = RoleService(self._session)

    @property
    def actor_repository(self) -> ActorRepository[A]:
        repository: ActorRepository[A] = self.repository  # type: ignore[assignment]
        return repository

    async def _prepare_data(
        self, data: dict[str, Any], creating: bool
    ) -> tuple[dict[str, Any], dict[str, Any]]:
        values, extras = await super()._prepare_data(data, creating)

        if "password" in values:
            password = values.pop("password")
            if password:
                values["password"] = self._hasher.hash(password)

        # Resolve the role BEFORE anything is flushed so a bad role can't leave half a row
        role_value = data.get(ROLE_KEY)
        if role_value not in (None, ""):
            guard = guard_for(self.actor_repository.actor_type)
            extras[ROLE_KEY] = await self._role_service.require_role(role_value, guard)
        return values, extras

    async def _after_persist(
        self, actor: ActorContext, entity: A, extras: dict[str, Any], creating: bool
    ) -> None:
        role = extras.get(ROLE_KEY)
        if role is None:
            return
        roles = RoleRepository(self._session)
        if creating:
            await roles.assign_role(entity.actor_ref, role)
        else:
            # A new role on update REPLACES the role set
            await roles.sync_roles(entity.actor_ref, [role])

    async def get_by_email(self, email: str) -> A | None:
        return await self.actor_repository.get_by_email(email)

    def verify_password(self, entity: A, password: str) -> bool:
        return self._hasher.verify(password, entity.password)

    async def send_password_reset_link(self, actor: ActorContext, target: A) -> bool:
        """Ask the reset broker to mail a link to target's address.

        Returns:
            True if the broker accepted the request
        """
        self._authorize(actor, PolicyAction.SEND_PASSWORD_RESET_LINK, target)
        if self._reset_broker is None:
            raise ConfigurationError("No password reset broker configured")

        try:
            sent = await self._reset_broker.send_reset_link(target.email)
        except Exception as e:
            logger.error(f"Password reset broker failed for {self.action_prefix} {target.id}: {e}")
            sent = False

        if sent:
            log_action(
                logger,
                "password_reset_link_sent",
                "Password reset link sent",
                entity_id=target.id,
                actor=str(actor.ref),
            )
            await self._notify_success(
                actor,
                "Password Reset Link Sent",
                f"A password reset link has been sent to {target.email}.",
                action="password_reset_link_sent",
            )
        else:
            log_action(
                logger,
                "password_reset_link_failed",
                "Password reset link could not be sent",
                level=logging.WARNING,
                entity_id=target.id,
                actor=str(actor.ref),
            )
            await self._notify_error(
                actor,
                "Password Reset Failed",
                f"Unable to send a password reset link to {target.email}.",
                action="password_reset_link_failed",
            )
        return sent

    async def _notify_error(
        self, actor: ActorContext, title: str, message: str, **data: Any
    ) -> None:
        if self._notifications is None:
            return
        try:
            await self._notifications.error(actor.ref, title, message, **data)
        except Exception as e:
            logger.warning(f"[NOTIFICATION] {title} not delivered: {e}")


class UserService(ActorLifecycleService[UserModel]):
    """End-user accounts. Force delete also detaches owned artists."""

    repository_class = UserRepository


class AdminService(ActorLifecycleService[AdminModel]):
    """Back-office admin accounts."""

    repository_class = AdminRepository
