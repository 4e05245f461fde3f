"""OAuth credential lifecycle: store, refresh, revoke, clean up.

Hey future me - there are TWO flavours of refresh API here on purpose:

- refresh_token(token) RAISES typed errors (NoRefreshTokenAvailable,
  UnsupportedProviderForRefresh, ProviderRefreshHTTPFailure). Use it when the caller
  wants to know WHY.
- get_valid_access_token() swallows those and returns None. A dead Spotify token
  must never crash an unrelated request, it just means "no token available".

All HTTP to the providers goes through OAuthProviderRegistry (timeouts included), so this
service never builds token requests itself.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING, Any

import httpx

from artistdesk.domain.entities import ActorRef
from artistdesk.domain.exceptions import (
    ExternalServiceError,
    NoActiveTokenFound,
    NoRefreshTokenAvailable,
    OAuthError,
    ProviderRefreshHTTPFailure,
    UnsupportedProviderForRefresh,
)
from artistdesk.infrastructure.integrations import OAuthProviderRegistry
from artistdesk.infrastructure.observability.logger_template import log_action
from artistdesk.infrastructure.persistence.models import OAuthTokenModel, utc_now
from artistdesk.infrastructure.persistence.repositories import OAuthTokenRepository

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from artistdesk.config import Settings

logger = logging.getLogger(__name__)

# last_error column is Text, but nobody needs a 50KB HTML error page in there
MAX_ERROR_LENGTH = 1000


@dataclass
class ProviderProfile:
    """What the provider told us about the user after the OAuth code exchange."""

    id: str
    token: str
    refresh_token: str | None = None
    expires_in: int | None = None
    name: str | None = None
    email: str | None = None
    avatar: str | None = None
    nickname: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    def snapshot(self) -> dict[str, Any]:
        """Profile data stored verbatim on the token row."""
        return {
            "name": self.name,
            "email": self.email,
            "avatar": self.avatar,
            "nickname": self.nickname,
        }


class OAuthCredentialService:
    """Per-(actor, provider) OAuth tokens."""

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings,
        providers: OAuthProviderRegistry | None = None,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the credential service.

        Args:
            session: Database session (committed after every token write)
            settings: Application settings (refresh window, HTTP timeout)
            providers: Refresh/revoke strategies, defaults to the built-in ones
            http_transport: Transport for make_api_request (tests use httpx.MockTransport)
        """
        self._session = session
        self._settings = settings
        self._tokens = OAuthTokenRepository(session)
        self._providers = providers or OAuthProviderRegistry.from_settings(settings)
        self._http_transport = http_transport
        self._http_client: httpx.AsyncClient | None = None

    @property
    def refresh_window_minutes(self) -> int:
        return self._settings.oauth.refresh_window_minutes

    # =========================================================================
    # STORE / READ
    # =========================================================================

    async def store_credentials(
        self,
        tokenable: ActorRef,
        provider: str,
        profile: ProviderProfile,
        scopes: list[str] | None = None,
    ) -> OAuthTokenModel:
        """Create or update the token row for (tokenable, provider).

        Tokens are encrypted by the column type, nothing to do here. A missing
        expires_in means a non-expiring token (expires_at NULL).
        """
        now = utc_now()
        values: dict[str, Any] = {
            "provider_user_id": str(profile.id),
            "access_token": profile.token,
            "refresh_token": profile.refresh_token,
            "expires_at": now + timedelta(seconds=profile.expires_in)
            if profile.expires_in
            else None,
            "scopes": list(scopes or []),
            "provider_data": profile.snapshot(),
            "is_active": True,
            "last_error": None,
        }
        token = await self._tokens.upsert(tokenable, provider, values)
        await self._session.commit()

        log_action(
            logger,
            "oauth_credentials_stored",
            "OAuth credentials stored",
            tokenable=str(tokenable),
            provider=provider,
            provider_user_id=str(profile.id),
        )
        return token

    async def get_active_token(self, tokenable: ActorRef, provider: str) -> OAuthTokenModel | None:
        return await self._tokens.get_active(tokenable, provider)

    async def get_valid_access_token(self, tokenable: ActorRef, provider: str) -> str | None:
        """Active access token, refreshed first when inside the refresh window.

        Returns:
            The plaintext access token, or None if there is none or refresh failed
        """
        token = await self._tokens.get_active(tokenable, provider)
        if token is None:
            log_action(
                logger,
                "oauth_token_not_found",
                "No OAuth token found for actor",
                level=logging.WARNING,
                tokenable=str(tokenable),
                provider=provider,
            )
            return None

        if token.needs_refresh(self.refresh_window_minutes):
            try:
                token = await self.refresh_token(token)
            except OAuthError as e:
                log_action(
                    logger,
                    "oauth_token_refresh_failed",
                    f"OAuth token refresh failed: {e}",
                    level=logging.ERROR,
                    tokenable=str(tokenable),
                    provider=provider,
                    error=str(e),
                )
                return None

        return token.access_token

    async def require_valid_access_token(self, tokenable: ActorRef, provider: str) -> str:
        """Like get_valid_access_token() but raises NoActiveTokenFound (401)."""
        access_token = await self.get_valid_access_token(tokenable, provider)
        if access_token is None:
            raise NoActiveTokenFound(provider, str(tokenable))
        return access_token

    # =========================================================================
    # REFRESH
    # =========================================================================

    # Listen up - Spotify MAY send a new refresh token, Google never does. Only overwrite
    # the stored one when the response actually carried one, or we'd lose it for good.
    async def refresh_token(self, token: OAuthTokenModel) -> OAuthTokenModel:
        """Refresh token through its provider strategy.

        Raises:
            NoRefreshTokenAvailable: Token has no refresh token
            UnsupportedProviderForRefresh: No strategy for token.provider
            ProviderRefreshHTTPFailure: Provider rejected the refresh or timed out
        """
        context = {"tokenable": str(token.tokenable), "provider": token.provider}

        if not token.refresh_token:
            error = NoRefreshTokenAvailable(token.provider, token.id)
            await self._record_failure(token, str(error))
            log_action(
                logger,
                "oauth_refresh_token_missing",
                "No refresh token available",
                level=logging.ERROR,
                **context,
            )
            raise error

        try:
            strategy = self._providers.get(token.provider)
        except UnsupportedProviderForRefresh as e:
            await self._record_failure(token, str(e))
            raise

        try:
            result = await strategy.refresh(token.refresh_token)
        except ProviderRefreshHTTPFailure as e:
            # 400/401/403 = the refresh token is dead, no point retrying until a new login
            await self._record_failure(
                token, f"{e}: {e.body}", deactivate=e.requires_reauth
            )
            log_action(
                logger,
                "oauth_token_refresh_failed",
                f"Provider refused token refresh: {e}",
                level=logging.ERROR,
                status_code=e.status_code,
                requires_reauth=e.requires_reauth,
                **context,
            )
            raise

        now = utc_now()
        token.access_token = result.access_token
        if result.refresh_token:
            token.refresh_token = result.refresh_token
        token.expires_at = now + timedelta(seconds=result.expires_in) if result.expires_in else None
        token.last_refreshed_at = now
        token.last_error = None
        token.is_active = True
        await self._session.flush()
        await self._session.commit()

        log_action(logger, "oauth_token_refreshed", "OAuth token refreshed successfully", **context)
        return token

    async def _record_failure(
        self, token: OAuthTokenModel, message: str, deactivate: bool = False
    ) -> None:
        token.last_error = message[:MAX_ERROR_LENGTH]
        if deactivate:
            token.is_active = False
        await self._session.commit()

    # =========================================================================
    # REVOKE / CLEANUP
    # =========================================================================

    # Hey future me - LOCAL FIRST. is_active=False is committed before we even talk to the
    # provider, so a Spotify outage can never leave a token we wanted gone still usable.
    async def revoke_token(self, token: OAuthTokenModel) -> bool:
        """Deactivate the token and best-effort revoke it at the provider.

        Returns:
            True once the local deactivation is committed (remote failures are logged)
        """
        context = {"tokenable": str(token.tokenable), "provider": token.provider}
        access_token = token.access_token

        token.is_active = False
        await self._session.commit()

        if token.provider in self._providers:
            strategy = self._providers.get(token.provider)
            if strategy.supports_revoke:
                try:
                    await strategy.revoke(access_token)
                except (ExternalServiceError, httpx.HTTPError) as e:
                    log_action(
                        logger,
                        "oauth_token_remote_revocation_failed",
                        f"Remote revoke failed, token is deactivated locally: {e}",
                        level=logging.WARNING,
                        error=str(e),
                        **context,
                    )

        log_action(logger, "oauth_token_revoked", "OAuth token revoked", **context)
        return True

    async def cleanup_expired_tokens(self) -> int:
        """Deactivate every active token past expires_at. Rows are kept.

        Returns:
            Number of tokens deactivated by this run
        """
        count = await self._tokens.deactivate_expired(utc_now())
        await self._session.commit()
        log_action(
            logger,
            "oauth_tokens_cleanup",
            f"Deactivated {count} expired OAuth tokens",
            count=count,
        )
        return count

    # =========================================================================
    # AUTHORIZED API CALLS
    # =========================================================================

    async def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self._settings.oauth.http_timeout,
                transport=self._http_transport,
            )
        return self._http_client

    async def make_api_request(
        self,
        tokenable: ActorRef,
        provider: str,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> Any:
        """Call a provider API with the actor's (refreshed if needed) token.

        Raises:
            NoActiveTokenFound: No usable token
            ExternalServiceError: Non-2xx answer or transport failure
        """
        access_token = await self.require_valid_access_token(tokenable, provider)
        headers = dict(kwargs.pop("headers", None) or {})
        headers["Authorization"] = f"Bearer {access_token}"

        client = await self._get_http_client()
        try:
            response = await client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"{provider} API request failed: {e}") from e

        if response.status_code >= 400:
            log_action(
                logger,
                "oauth_api_request_failed",
                "OAuth API request failed",
                level=logging.ERROR,
                tokenable=str(tokenable),
                provider=provider,
                method=method,
                url=url,
                status=response.status_code,
            )
            raise ExternalServiceError(
                f"API request failed: {response.status_code} - {response.text[:MAX_ERROR_LENGTH]}"
            )
        if not response.content:
            return None
        return response.json()

    async def close(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
