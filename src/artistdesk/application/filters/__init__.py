"""Query filters for list endpoints."""

from artistdesk.application.filters.actor_filter import ActorFilter, AdminFilter, UserFilter
from artistdesk.application.filters.artist_filter import ArtistFilter
from artistdesk.application.filters.base import BaseFilter
from artistdesk.application.filters.service import FilterService

__all__ = [
    "ActorFilter",
    "AdminFilter",
    "ArtistFilter",
    "BaseFilter",
    "FilterService",
    "UserFilter",
]
