"""Domain exceptions."""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, we store message as an attribute so code can inspect it without parsing
    # str(exception). DON'T raise this base class directly - use a specific subclass so
    # callers (and the FastAPI handlers) can map it to the right status code.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class EntityNotFoundException(DomainException):
    """Raised when an entity is not found."""

    # Yo, this is for "get by ID" lookups that miss - Artist 42 doesn't exist, Admin 7 is gone.
    # entity_type/entity_id stay separate so the 404 handler can log them structured.
    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(f"{entity_type} with id {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ValidationException(DomainException):
    """Raised when entity validation fails.

    Used to signal that an entity's invariants or business rules
    have been violated (e.g., popularity outside 0-100).
    """

    pass


class InvalidStateException(DomainException):
    """Raised when an entity is in an invalid state for the requested operation."""

    pass


class DuplicateEntityException(DomainException):
    """Raised when trying to create a duplicate entity."""

    # Listen, repositories translate unique-index violations (users.email, artists.spotify_id)
    # into this so callers get a 409 with the offending value instead of a raw IntegrityError.
    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(f"{entity_type} with id {entity_id} already exists")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ForceDeleteActiveRecordError(InvalidStateException):
    """Raised when a force delete targets a record that was never soft-deleted.

    Hey future me - permanent removal is only legal from the trash! Hitting this means
    someone skipped the soft-delete step (buggy client or somebody poking the API), which
    is why the lifecycle manager logs it at CRITICAL before raising.

    HTTP Status: 422
    """

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(
            f"Cannot force delete active {entity_type} with ID {entity_id}. "
            "The record must be soft-deleted first."
        )
        self.entity_type = entity_type
        self.entity_id = entity_id


class ValidationError(DomainException):
    """Input validation failed.

    HTTP Status: 422

    Example:
        raise ValidationError("Unsupported OAuth provider: github")
    """

    pass


class ConfigurationError(DomainException):
    """Application misconfiguration.

    HTTP Status: 503 (Service Unavailable)

    Example:
        raise ConfigurationError("Spotify credentials not configured")
    """

    pass


class AuthenticationError(DomainException):
    """Actor is not authenticated or a credential is unusable.

    HTTP Status: 401
    """

    pass


class AuthorizationError(DomainException):
    """Actor is authenticated but not authorized for this action.

    HTTP Status: 403

    Example:
        raise AuthorizationError("This action is unauthorized.")
    """

    def __init__(
        self,
        message: str = "This action is unauthorized.",
        action: str | None = None,
    ) -> None:
        super().__init__(message)
        self.action = action


class ExternalServiceError(DomainException):
    """External service (Spotify, Google) returned an error.

    HTTP Status: 502 (Bad Gateway)
    """

    pass


# =============================================================================
# OAuth credential errors
# Hey future me - these are the typed failures of the token lifecycle. Services catch
# them and degrade to "no token" (None); only the boundary ever turns them into HTTP.
# =============================================================================


class OAuthError(DomainException):
    """Base class for OAuth credential failures."""

    def __init__(self, message: str, provider: str | None = None) -> None:
        super().__init__(message)
        self.provider = provider


class NoRefreshTokenAvailable(OAuthError, AuthenticationError):
    """The stored token has no refresh token, so it cannot be renewed.

    HTTP Status: 401
    """

    def __init__(self, provider: str, token_id: int | None = None) -> None:
        super().__init__(f"No refresh token available for {provider}", provider)
        self.token_id = token_id


class UnsupportedProviderForRefresh(OAuthError, ConfigurationError):
    """No refresh strategy is registered for the provider.

    HTTP Status: 503
    """

    def __init__(self, provider: str) -> None:
        super().__init__(f"Token refresh not supported for provider: {provider}", provider)


class ProviderRefreshHTTPFailure(OAuthError, ExternalServiceError):
    """The provider token endpoint answered with an error (or never answered).

    status_code is None for transport failures such as timeouts.

    HTTP Status: 502
    """

    def __init__(self, provider: str, status_code: int | None, body: str = "") -> None:
        detail = f"HTTP {status_code}" if status_code is not None else "transport error"
        super().__init__(f"Failed to refresh {provider} token: {detail}", provider)
        self.status_code = status_code
        self.body = body

    @property
    def requires_reauth(self) -> bool:
        """Check if the refresh token itself is dead."""
        # 400 invalid_grant / 401 / 403 mean the user has to log in again
        return self.status_code in (400, 401, 403)


class NoActiveTokenFound(OAuthError, AuthenticationError):
    """No active (or refreshable) token exists for the actor and provider.

    HTTP Status: 401
    """

    def __init__(self, provider: str, tokenable: str | None = None) -> None:
        suffix = f" for {tokenable}" if tokenable else ""
        super().__init__(f"No valid {provider} token found{suffix}", provider)
        self.tokenable = tokenable


class UnsupportedOAuthProvider(OAuthError, ValidationError):
    """The login callback was invoked for a provider we don't support.

    HTTP Status: 422
    """

    def __init__(self, provider: str) -> None:
        super().__init__(f"Unsupported OAuth provider: {provider}", provider)


# =============================================================================
# Public API - All exceptions that can be imported
# =============================================================================
__all__ = [
    # Base
    "DomainException",
    # Entity exceptions
    "EntityNotFoundException",
    "DuplicateEntityException",
    # Validation exceptions
    "ValidationException",
    "ValidationError",
    # State exceptions
    "InvalidStateException",
    "ForceDeleteActiveRecordError",
    # External service exceptions
    "ExternalServiceError",
    # Auth exceptions
    "AuthenticationError",
    "AuthorizationError",
    # OAuth
    "OAuthError",
    "NoRefreshTokenAvailable",
    "UnsupportedProviderForRefresh",
    "ProviderRefreshHTTPFailure",
    "NoActiveTokenFound",
    "UnsupportedOAuthProvider",
    # Configuration
    "ConfigurationError",
]
