"""Filter for artists."""

from typing import Any

from sqlalchemy import Select

from artistdesk.infrastructure.persistence.models import ArtistModel

from .base import BaseFilter


class ArtistFilter(BaseFilter):
    """Search name/spotify_id, exact owner, popularity and followers ranges."""

    model = ArtistModel
    search_fields = ("name", "spotify_id")
    sortable_fields = ("name", "popularity", "followers_count")

    async def apply_specific(self, stmt: Select[Any]) -> Select[Any]:
        owner_id = self.get_int("owner_id")
        if owner_id is not None:
            stmt = stmt.where(ArtistModel.owner_id == owner_id)
        stmt = self.apply_range(stmt, "popularity", "popularity_min", "popularity_max")
        return self.apply_range(stmt, "followers_count", "followers_count_min", "followers_count_max")
