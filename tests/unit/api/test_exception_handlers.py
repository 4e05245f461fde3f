"""Tests for the domain exception -> HTTP status mapping."""

import logging

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from artistdesk.api import register_exception_handlers
from artistdesk.domain.exceptions import (
    AuthorizationError,
    ConfigurationError,
    DomainException,
    DuplicateEntityException,
    EntityNotFoundException,
    ExternalServiceError,
    ForceDeleteActiveRecordError,
    InvalidStateException,
    NoActiveTokenFound,
    NoRefreshTokenAvailable,
    ProviderRefreshHTTPFailure,
    UnsupportedOAuthProvider,
    UnsupportedProviderForRefresh,
    ValidationError,
    ValidationException,
)


class ArtistPayload(BaseModel):
    name: str
    popularity: int


def build_app(exc: Exception | None = None) -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/boom")
    async def boom() -> None:
        assert exc is not None
        raise exc

    @app.post("/artists")
    async def create_artist(payload: ArtistPayload) -> dict[str, str]:
        return {"name": payload.name}

    return app


@pytest.mark.parametrize(
    ("exc", "status_code"),
    [
        (ValidationException("Artist name is required"), 422),
        (ValidationError("Role 'ghost' does not exist"), 422),
        (ForceDeleteActiveRecordError("Artist", 3), 422),
        (EntityNotFoundException("Artist", 3), 404),
        (DuplicateEntityException("Artist", "sp-1"), 409),
        (InvalidStateException("Artist with ID 3 is already deleted"), 400),
        (AuthorizationError(action="delete"), 403),
        (ExternalServiceError("Spotify is down"), 502),
        (ConfigurationError("No password reset broker configured"), 503),
        # OAuth failures map through their parent classes
        (NoActiveTokenFound("spotify", "user:1"), 401),
        (NoRefreshTokenAvailable("spotify", 1), 401),
        (ProviderRefreshHTTPFailure("spotify", 500, "oops"), 502),
        (UnsupportedProviderForRefresh("github"), 503),
        (UnsupportedOAuthProvider("github"), 422),
    ],
)
def test_domain_exception_status(exc: DomainException, status_code: int) -> None:
    client = TestClient(build_app(exc))

    response = client.get("/boom")

    assert response.status_code == status_code
    assert response.json() == {"detail": exc.message}


def test_force_delete_active_record_logs_critical(caplog: pytest.LogCaptureFixture) -> None:
    client = TestClient(build_app(ForceDeleteActiveRecordError("Artist", 3)))

    with caplog.at_level(logging.INFO, logger="artistdesk.api.exception_handlers"):
        client.get("/boom")

    record = next(r for r in caplog.records if r.name == "artistdesk.api.exception_handlers")
    assert record.levelno == logging.CRITICAL
    assert record.entity_id == 3
    assert record.path == "/boom"


def test_request_validation_error_is_sanitized() -> None:
    client = TestClient(build_app())

    response = client.post(
        "/artists",
        content=b'{"name": "Muse", "popularity": "loud"}',
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 422
    errors = response.json()["detail"]
    assert errors[0]["loc"] == ["body", "popularity"]


def test_invalid_json_body_does_not_crash_handler() -> None:
    client = TestClient(build_app())

    response = client.post(
        "/artists", content=b"{not json", headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 422
