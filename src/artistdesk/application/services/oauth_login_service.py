"""OAuth login callback: turn a provider profile into a logged-in actor.

Hey future me - this is the ONE place where provider failures don't degrade to None but to
a login-error result. The end user gets bounced back to the login page with a message; we
never throw a 500 at someone who just clicked "Continue with Spotify".
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from artistdesk.application.services.oauth_credential_service import (
    OAuthCredentialService,
    ProviderProfile,
)
from artistdesk.domain.entities import (
    ActorRef,
    ActorType,
    GuardName,
    OAuthProvider,
    actor_type_for_guard,
)
from artistdesk.domain.exceptions import UnsupportedOAuthProvider
from artistdesk.infrastructure.observability.logger_template import log_action
from artistdesk.infrastructure.persistence.models import utc_now
from artistdesk.infrastructure.persistence.repositories import (
    ActorRepository,
    AdminRepository,
    UserRepository,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

LOGIN_ROUTE = "login"
DASHBOARD_ROUTE = "dashboard"

# Scopes requested at the consent screen, recorded on the token row
DEFAULT_SCOPES: dict[OAuthProvider, list[str]] = {
    OAuthProvider.SPOTIFY: [
        "ugc-image-upload",
        "user-read-playback-state",
        "user-modify-playback-state",
        "user-read-currently-playing",
        "app-remote-control",
        "streaming",
        "playlist-read-private",
        "playlist-read-collaborative",
        "playlist-modify-private",
        "playlist-modify-public",
        "user-follow-modify",
        "user-follow-read",
        "user-read-playback-position",
        "user-top-read",
        "user-read-recently-played",
        "user-library-modify",
        "user-library-read",
        "user-read-email",
        "user-read-private",
    ],
    OAuthProvider.GOOGLE: ["openid", "profile", "email"],
}

# Actor column that remembers the provider account id
PROVIDER_ID_FIELDS: dict[OAuthProvider, str] = {
    OAuthProvider.SPOTIFY: "spotify_id",
    OAuthProvider.GOOGLE: "google_id",
}

ProfileLoader = Callable[[], Awaitable[ProviderProfile]]


@dataclass(frozen=True)
class OAuthLoginResult:
    """Where to send the browser after the callback."""

    success: bool
    redirect_to: str
    actor: ActorRef | None = None
    error: str | None = None

    @classmethod
    def failed(cls, error: str) -> OAuthLoginResult:
        return cls(success=False, redirect_to=LOGIN_ROUTE, error=error)


class OAuthLoginService:
    """Handles the provider callback for both guards (web -> users, admin -> admins)."""

    def __init__(self, session: AsyncSession, credentials: OAuthCredentialService) -> None:
        self._session = session
        self._credentials = credentials

    @staticmethod
    def resolve_provider(provider: str) -> OAuthProvider:
        """Validate provider name.

        Raises:
            UnsupportedOAuthProvider: For anything but spotify/google (422)
        """
        try:
            return OAuthProvider(str(provider).lower())
        except ValueError:
            raise UnsupportedOAuthProvider(str(provider)) from None

    def _repository_for(self, guard: GuardName | str) -> ActorRepository:  # type: ignore[type-arg]
        if actor_type_for_guard(guard) == ActorType.ADMIN:
            return AdminRepository(self._session)
        return UserRepository(self._session)

    async def handle_callback(
        self,
        provider: str,
        guard: GuardName | str,
        profile_loader: ProfileLoader,
        scopes: list[str] | None = None,
    ) -> OAuthLoginResult:
        """Finish an OAuth login.

        Args:
            provider: "spotify" or "google"
            guard: Guard the login happens on ("admin" -> admins table, else users)
            profile_loader: Performs the code exchange and returns the provider profile
            scopes: Granted scopes, defaults to what we request for the provider

        Returns:
            OAuthLoginResult pointing at the dashboard or back at the login page
        """
        oauth_provider = self.resolve_provider(provider)
        guard_value = GuardName(guard).value
        label = oauth_provider.value.capitalize()

        # Listen up - the provider exchange can fail in a hundred ways (denied consent, state
        # mismatch, network). All of them mean the same to the user: try again.
        try:
            profile = await profile_loader()
        except Exception as e:
            log_action(
                logger,
                f"{oauth_provider.value}_callback_failed",
                f"{label} OAuth callback error: {e}",
                level=logging.ERROR,
                provider=oauth_provider.value,
                guard=guard_value,
                error=str(e),
            )
            return OAuthLoginResult.failed(f"{label} authentication failed. Please try again.")

        repository = self._repository_for(guard)
        actor = await repository.get_by_email(profile.email) if profile.email else None
        if actor is None:
            log_action(
                logger,
                "oauth_user_not_found",
                "OAuth login attempted with non-existent user",
                level=logging.WARNING,
                provider=oauth_provider.value,
                email=profile.email,
                guard=guard_value,
            )
            return OAuthLoginResult.failed(
                "No account found with this email address. Please contact an administrator."
            )

        ref = actor.actor_ref
        id_field = PROVIDER_ID_FIELDS[oauth_provider]
        if not getattr(actor, id_field):
            setattr(actor, id_field, str(profile.id))
            await self._session.commit()
            log_action(
                logger,
                "oauth_provider_linked",
                "OAuth provider linked to actor",
                tokenable=str(ref),
                provider=oauth_provider.value,
                guard=guard_value,
            )

        await self._credentials.store_credentials(
            ref,
            oauth_provider.value,
            profile,
            scopes if scopes is not None else list(DEFAULT_SCOPES[oauth_provider]),
        )

        if actor.email_verified_at is None:
            actor.email_verified_at = utc_now()
            await self._session.commit()
            log_action(
                logger,
                "oauth_email_auto_verified",
                "Email auto-verified via OAuth",
                tokenable=str(ref),
                provider=oauth_provider.value,
            )

        log_action(
            logger,
            "oauth_login_success",
            "Actor logged in via OAuth",
            tokenable=str(ref),
            provider=oauth_provider.value,
            guard=guard_value,
        )
        return OAuthLoginResult(success=True, redirect_to=DASHBOARD_ROUTE, actor=ref)
