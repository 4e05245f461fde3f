"""Entry point that picks the right filter for a SELECT."""

import logging
from typing import Any

from sqlalchemy import Select
from sqlalchemy.ext.asyncio import AsyncSession

from artistdesk.infrastructure.persistence.models import AdminModel, ArtistModel, UserModel
from artistdesk.infrastructure.persistence.repositories import RoleRepository

from .actor_filter import AdminFilter, UserFilter
from .artist_filter import ArtistFilter
from .base import BaseFilter

logger = logging.getLogger(__name__)


class FilterService:
    """Applies raw (untrusted) filter maps to entity queries.

    Usage:
        stmt = await FilterService(session).apply_filters(select(ArtistModel), request_filters)
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self._roles = RoleRepository(session)

    def filter_for(self, model: Any, filters: dict[str, Any] | None) -> BaseFilter | None:
        if model is UserModel:
            return UserFilter(filters, self._roles)
        if model is AdminModel:
            return AdminFilter(filters, self._roles)
        if model is ArtistModel:
            return ArtistFilter(filters)
        return None

    async def apply_filters(
        self, stmt: Select[Any], filters: dict[str, Any] | None
    ) -> Select[Any]:
        """Refine stmt with every applicable filter step.

        Statements over models without a filter come back unchanged.
        """
        descriptions = stmt.column_descriptions
        model = descriptions[0].get("entity") if descriptions else None
        entity_filter = self.filter_for(model, filters)
        if entity_filter is None:
            logger.debug(f"No filter registered for {model!r}, query left as is")
            return stmt
        return await entity_filter.apply(stmt)
