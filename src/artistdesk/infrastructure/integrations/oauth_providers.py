"""OAuth provider strategies for token refresh and revocation.

Hey future me - one class per provider, all registered in OAuthProviderRegistry keyed by
provider name. OAuthCredentialService never talks HTTP itself; it asks the registry for
the strategy and lets it deal with each provider's quirks:

- Spotify MAY rotate the refresh token (keep the old one if the response has none)
- Google NEVER returns a new refresh token on refresh
- Only Spotify gets a remote revoke call; everything else is a local-only revoke

Every HTTP problem (non-2xx, timeout, connection error, garbage JSON) becomes a
ProviderRefreshHTTPFailure so callers only catch ONE thing.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

import httpx

from artistdesk.config import Settings
from artistdesk.domain.exceptions import (
    ExternalServiceError,
    ProviderRefreshHTTPFailure,
    UnsupportedProviderForRefresh,
)

logger = logging.getLogger(__name__)


@dataclass
class TokenResult:
    """Result of a token refresh.

    Hey future me - refresh_token is None when the provider didn't rotate it!
    """

    access_token: str
    refresh_token: str | None
    expires_in: int | None
    token_type: str = "Bearer"
    scope: str | None = None


class OAuthProviderClient(ABC):
    """Base class for provider-specific refresh/revoke strategies."""

    name: str = ""
    supports_revoke: bool = False

    # Yo, the httpx client is created lazily (first request) so constructing a strategy
    # outside a running event loop is fine. transport= is for tests (httpx.MockTransport).
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        token_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_url = token_url
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @abstractmethod
    async def refresh(self, refresh_token: str) -> TokenResult:
        """Exchange a refresh token for a new access token.

        Raises:
            ProviderRefreshHTTPFailure: On any HTTP or transport failure
        """
        pass

    async def revoke(self, token: str) -> None:
        """Revoke a token at the provider. No-op unless supports_revoke."""
        return None

    async def _post_form(self, url: str, data: dict[str, str]) -> httpx.Response:
        client = await self._get_client()
        try:
            return await client.post(
                url,
                data=data,
                headers={
                    "Content-Type": "application/x-www-form-urlencoded",
                    "Accept": "application/json",
                },
            )
        except httpx.TimeoutException as e:
            # Timeouts are ordinary failures - no retry loop here
            raise ProviderRefreshHTTPFailure(self.name, None, f"timeout: {e}") from e
        except httpx.HTTPError as e:
            raise ProviderRefreshHTTPFailure(self.name, None, str(e)) from e

    async def _request_token(self, data: dict[str, str]) -> dict[str, Any]:
        response = await self._post_form(self.token_url, data)
        if response.status_code >= 400:
            body = response.text[:1000]
            logger.warning(
                "Token endpoint of %s answered %s",
                self.name,
                response.status_code,
                extra={
                    "action": "oauth_provider_refresh_rejected",
                    "provider": self.name,
                    "status_code": response.status_code,
                },
            )
            raise ProviderRefreshHTTPFailure(self.name, response.status_code, body)
        try:
            payload = response.json()
        except ValueError as e:
            raise ProviderRefreshHTTPFailure(
                self.name, response.status_code, response.text[:1000]
            ) from e
        if not isinstance(payload, dict) or "access_token" not in payload:
            raise ProviderRefreshHTTPFailure(
                self.name, response.status_code, "response without access_token"
            )
        return payload


class SpotifyOAuthProvider(OAuthProviderClient):
    """Spotify accounts service."""

    name = "spotify"
    supports_revoke = True

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        token_url: str = "https://accounts.spotify.com/api/token",
        revoke_url: str = "https://accounts.spotify.com/api/token",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(client_id, client_secret, token_url, timeout, transport)
        self.revoke_url = revoke_url

    async def refresh(self, refresh_token: str) -> TokenResult:
        payload = await self._request_token(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            }
        )
        return TokenResult(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token"),  # May be None!
            expires_in=payload.get("expires_in"),
            token_type=payload.get("token_type", "Bearer"),
            scope=payload.get("scope"),
        )

    async def revoke(self, token: str) -> None:
        response = await self._post_form(
            self.revoke_url,
            {
                "token": token,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
        )
        if response.status_code >= 400:
            raise ExternalServiceError(
                f"Spotify revoke failed with HTTP {response.status_code}"
            )


class GoogleOAuthProvider(OAuthProviderClient):
    """Google OAuth 2.0 token endpoint."""

    name = "google"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        token_url: str = "https://oauth2.googleapis.com/token",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(client_id, client_secret, token_url, timeout, transport)

    async def refresh(self, refresh_token: str) -> TokenResult:
        payload = await self._request_token(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            }
        )
        # Google never hands out a new refresh token here, keep the stored one
        return TokenResult(
            access_token=payload["access_token"],
            refresh_token=None,
            expires_in=payload.get("expires_in"),
            token_type=payload.get("token_type", "Bearer"),
            scope=payload.get("scope"),
        )


class OAuthProviderRegistry:
    """Provider-keyed strategy map."""

    def __init__(self, providers: Iterable[OAuthProviderClient] = ()) -> None:
        self._providers: dict[str, OAuthProviderClient] = {}
        for provider in providers:
            self.register(provider)

    def register(self, provider: OAuthProviderClient) -> None:
        self._providers[provider.name] = provider

    # Listen up - unknown providers fail LOUDLY. A token row for "github" with no strategy
    # is a deployment bug, not something to skip quietly.
    def get(self, name: str) -> OAuthProviderClient:
        try:
            return self._providers[name]
        except KeyError:
            raise UnsupportedProviderForRefresh(name) from None

    def __contains__(self, name: object) -> bool:
        return name in self._providers

    def names(self) -> list[str]:
        return sorted(self._providers)

    async def close(self) -> None:
        for provider in self._providers.values():
            await provider.close()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "OAuthProviderRegistry":
        """Build the registry with every built-in provider."""
        timeout = settings.oauth.http_timeout
        return cls(
            [
                SpotifyOAuthProvider(
                    client_id=settings.spotify.client_id,
                    client_secret=settings.spotify.client_secret,
                    token_url=settings.spotify.token_url,
                    revoke_url=settings.spotify.revoke_url,
                    timeout=timeout,
                    transport=transport,
                ),
                GoogleOAuthProvider(
                    client_id=settings.google.client_id,
                    client_secret=settings.google.client_secret,
                    token_url=settings.google.token_url,
                    timeout=timeout,
                    transport=transport,
                ),
            ]
        )
