"""Custom exception handlers for FastAPI application.

This module registers global exception handlers that convert domain exceptions
and validation errors into proper HTTP responses with appropriate status codes.

Hey future me - Starlette picks the handler by walking the exception's MRO, so the OAuth
taxonomy maps itself: NoActiveTokenFound is an AuthenticationError (401),
ProviderRefreshHTTPFailure is an ExternalServiceError (502) and so on. Only
ForceDeleteActiveRecordError needs its own handler because its parent
(InvalidStateException) would answer 400.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from artistdesk.domain.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    DomainException,
    DuplicateEntityException,
    EntityNotFoundException,
    ExternalServiceError,
    ForceDeleteActiveRecordError,
    InvalidStateException,
    ValidationError,
    ValidationException,
)

logger = logging.getLogger(__name__)


# Yo, Pydantic's exc.errors() can carry the raw request body as bytes in 'input', which
# JSONResponse can't serialize. Walk the structure and decode any bytes we find.
def _sanitize_validation_errors(
    errors: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Sanitize validation errors by converting bytes to strings.

    Args:
        errors: List of validation error dictionaries from Pydantic

    Returns:
        Sanitized list where bytes are converted to strings
    """

    def _sanitize_value(value: Any) -> Any:
        if isinstance(value, bytes):
            try:
                return value.decode("utf-8")
            except UnicodeDecodeError:
                return value.decode("latin-1")
        elif isinstance(value, dict):
            return {k: _sanitize_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [_sanitize_value(item) for item in value]
        elif isinstance(value, tuple):
            return tuple(_sanitize_value(item) for item in value)
        return value

    return [_sanitize_value(error) for error in errors]


def _domain_response(
    request: Request,
    exc: DomainException,
    status_code: int,
    label: str,
    level: int = logging.WARNING,
    **extra: Any,
) -> JSONResponse:
    logger.log(
        level,
        "%s at %s: %s",
        label,
        request.url.path,
        exc.message,
        extra={"path": request.url.path, "error": exc.message, **extra},
    )
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


# Hey future me, this registers GLOBAL exception handlers for the entire app! Call it during
# app setup BEFORE any requests arrive. Without it, domain exceptions leak as 500s.
def register_exception_handlers(app: FastAPI) -> None:
    """Register handlers mapping domain exceptions to HTTP status codes.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(ValidationException)
    async def validation_exception_handler(
        request: Request, exc: ValidationException
    ) -> JSONResponse:
        """Handle domain validation exceptions with 422 Unprocessable Entity."""
        return _domain_response(
            request, exc, status.HTTP_422_UNPROCESSABLE_ENTITY, "Validation error"
        )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(
        request: Request, exc: ValidationError
    ) -> JSONResponse:
        """Handle input validation errors with 422 Unprocessable Entity."""
        return _domain_response(
            request, exc, status.HTTP_422_UNPROCESSABLE_ENTITY, "Validation error"
        )

    @app.exception_handler(ForceDeleteActiveRecordError)
    async def force_delete_active_record_handler(
        request: Request, exc: ForceDeleteActiveRecordError
    ) -> JSONResponse:
        """Handle force delete of an active record with 422, logged at CRITICAL."""
        return _domain_response(
            request,
            exc,
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "Force delete of active record",
            level=logging.CRITICAL,
            entity_type=exc.entity_type,
            entity_id=exc.entity_id,
        )

    @app.exception_handler(EntityNotFoundException)
    async def entity_not_found_exception_handler(
        request: Request, exc: EntityNotFoundException
    ) -> JSONResponse:
        """Handle entity not found exceptions with 404 Not Found."""
        return _domain_response(
            request,
            exc,
            status.HTTP_404_NOT_FOUND,
            "Entity not found",
            level=logging.INFO,
            entity_type=exc.entity_type,
            entity_id=exc.entity_id,
        )

    @app.exception_handler(DuplicateEntityException)
    async def duplicate_entity_exception_handler(
        request: Request, exc: DuplicateEntityException
    ) -> JSONResponse:
        """Handle duplicate entity exceptions with 409 Conflict."""
        return _domain_response(
            request,
            exc,
            status.HTTP_409_CONFLICT,
            "Duplicate entity",
            entity_type=exc.entity_type,
            entity_id=exc.entity_id,
        )

    @app.exception_handler(InvalidStateException)
    async def invalid_state_exception_handler(
        request: Request, exc: InvalidStateException
    ) -> JSONResponse:
        """Handle invalid state exceptions with 400 Bad Request."""
        return _domain_response(request, exc, status.HTTP_400_BAD_REQUEST, "Invalid state")

    @app.exception_handler(AuthenticationError)
    async def authentication_error_handler(
        request: Request, exc: AuthenticationError
    ) -> JSONResponse:
        """Handle authentication errors with 401 Unauthorized."""
        return _domain_response(
            request, exc, status.HTTP_401_UNAUTHORIZED, "Authentication error"
        )

    @app.exception_handler(AuthorizationError)
    async def authorization_error_handler(
        request: Request, exc: AuthorizationError
    ) -> JSONResponse:
        """Handle authorization errors with 403 Forbidden."""
        return _domain_response(
            request,
            exc,
            status.HTTP_403_FORBIDDEN,
            "Authorization error",
            policy_action=exc.action,
        )

    @app.exception_handler(ExternalServiceError)
    async def external_service_error_handler(
        request: Request, exc: ExternalServiceError
    ) -> JSONResponse:
        """Handle external service errors with 502 Bad Gateway."""
        return _domain_response(
            request,
            exc,
            status.HTTP_502_BAD_GATEWAY,
            "External service error",
            level=logging.ERROR,
        )

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(
        request: Request, exc: ConfigurationError
    ) -> JSONResponse:
        """Handle configuration errors with 503 Service Unavailable."""
        return _domain_response(
            request,
            exc,
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "Configuration error",
            level=logging.ERROR,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle Pydantic request validation errors with 422 Unprocessable Entity."""
        sanitized_errors = _sanitize_validation_errors(list(exc.errors()))

        logger.warning(
            "Request validation error at %s: %s",
            request.url.path,
            sanitized_errors,
            extra={"path": request.url.path, "errors": sanitized_errors},
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": sanitized_errors},
        )
