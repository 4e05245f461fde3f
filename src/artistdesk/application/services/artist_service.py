"""Artist lifecycle."""

from typing import Any

from artistdesk.application.services.lifecycle_service import SoftDeleteLifecycleService
from artistdesk.domain.exceptions import ValidationException
from artistdesk.infrastructure.persistence.models import ArtistModel
from artistdesk.infrastructure.persistence.repositories import ArtistRepository


class ArtistService(SoftDeleteLifecycleService[ArtistModel]):
    """Artists: optional owner, unique spotify_id (409 on clash)."""

    repository_class = ArtistRepository
    fillable = ("owner_id", "spotify_id", "name", "popularity", "followers_count")

    async def _prepare_data(
        self, data: dict[str, Any], creating: bool
    ) -> tuple[dict[str, Any], dict[str, Any]]:
        values, extras = await super()._prepare_data(data, creating)

        if creating and not values.get("name"):
            raise ValidationException("Artist name is required")

        # Same ranges the CHECK constraints enforce, but as a 422 instead of a 500
        popularity = values.get("popularity")
        if popularity is not None and not 0 <= popularity <= 100:
            raise ValidationException("Popularity must be between 0 and 100")
        followers = values.get("followers_count")
        if followers is not None and followers < 0:
            raise ValidationException("Followers count cannot be negative")

        if values.get("spotify_id") == "":
            values["spotify_id"] = None
        return values, extras

    async def get_by_spotify_id(self, spotify_id: str) -> ArtistModel | None:
        return await self.repository.get_by_spotify_id(spotify_id)  # type: ignore[attr-defined]
