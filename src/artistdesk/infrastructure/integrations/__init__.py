"""External integrations."""

from artistdesk.infrastructure.integrations.oauth_providers import (
    GoogleOAuthProvider,
    OAuthProviderClient,
    OAuthProviderRegistry,
    SpotifyOAuthProvider,
    TokenResult,
)

__all__ = [
    "GoogleOAuthProvider",
    "OAuthProviderClient",
    "OAuthProviderRegistry",
    "SpotifyOAuthProvider",
    "TokenResult",
]
