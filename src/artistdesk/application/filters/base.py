"""Base filter with the tolerant value readers and the shared filter steps.

Hey future me - filter input comes straight from query strings. NOTHING in here may raise
on bad input: a garbage date, a non-numeric id or an unknown sort column just turns that
one step into a no-op, so the worst case is "everything, default sort".
"""

import logging
from datetime import UTC, date, datetime, time
from typing import Any, ClassVar

from sqlalchemy import Select, or_

from artistdesk.infrastructure.persistence.models import parse_db_int

logger = logging.getLogger(__name__)

TRUTHY_VALUES = frozenset({"1", "true", "yes", "on"})
MIN_SEARCH_LENGTH = 2
DEFAULT_SORT_FIELD = "created_at"
DEFAULT_SORT_DIRECTION = "desc"

COMMON_SORTABLE_FIELDS: tuple[str, ...] = (
    "id",
    "created_by",
    "updated_by",
    "deleted_by",
    "created_at",
    "updated_at",
    "deleted_at",
)

# filter key prefix -> column name
DATE_RANGE_FIELDS: tuple[tuple[str, str], ...] = (
    ("created", "created_at"),
    ("updated", "updated_at"),
    ("deleted", "deleted_at"),
)


class BaseFilter:
    """Applies one entity's filter steps to a SELECT.

    Subclasses set model/search_fields/sortable_fields and extend apply_specific().
    Visibility is always applied LAST so only_inactive gets the final word.
    """

    model: ClassVar[Any]
    # (primary, secondary) columns for the search term
    search_fields: ClassVar[tuple[str, str]] = ("name", "name")
    sortable_fields: ClassVar[tuple[str, ...]] = ()

    def __init__(self, filters: dict[str, Any] | None = None) -> None:
        self.filters: dict[str, Any] = dict(filters or {})

    # =========================================================================
    # VALUE READERS
    # =========================================================================

    def get(self, key: str, default: Any = None) -> Any:
        value = self.filters.get(key)
        return default if value is None else value

    def get_string(self, key: str) -> str | None:
        value = self.filters.get(key)
        if value is None or isinstance(value, bool):
            return None
        text = str(value).strip()
        return text or None

    def get_int(self, key: str, allow_zero: bool = False) -> int | None:
        """Integer from an int or digit string; falsy/invalid/out of DB range -> None."""
        number = parse_db_int(self.filters.get(key))
        if number is None:
            return None
        if number == 0 and not allow_zero:
            return None
        return number

    def get_bool(self, key: str) -> bool | None:
        value = self.filters.get(key)
        if value is None:
            return None
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in TRUTHY_VALUES
        if isinstance(value, int):
            return value != 0
        return None

    def get_date(self, key: str) -> date | None:
        """Calendar day from a date, datetime or ISO string. Time parts are dropped."""
        value = self.filters.get(key)
        if not value:
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        text = str(value).strip()
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            pass
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            logger.debug(f"Ignoring unparseable date filter {key}={value!r}")
            return None

    # =========================================================================
    # PIPELINE
    # =========================================================================

    async def apply(self, stmt: Select[Any]) -> Select[Any]:
        stmt = self.apply_search(stmt)
        stmt = await self.apply_specific(stmt)
        stmt = self.apply_date_ranges(stmt)
        stmt = self.apply_sort(stmt)
        return self.apply_visibility(stmt)

    async def apply_specific(self, stmt: Select[Any]) -> Select[Any]:
        """Entity specific steps (owner, role, numeric ranges)."""
        return stmt

    def apply_search(self, stmt: Select[Any]) -> Select[Any]:
        term = self.get_string("search")
        if term is None or len(term) < MIN_SEARCH_LENGTH:
            return stmt
        primary, secondary = (getattr(self.model, name) for name in self.search_fields)
        # autoescape so "%" and "_" in the term match literally
        return stmt.where(
            or_(
                primary.icontains(term, autoescape=True),
                secondary.icontains(term, autoescape=True),
            )
        )

    def apply_range(
        self, stmt: Select[Any], column_name: str, min_key: str, max_key: str
    ) -> Select[Any]:
        column = getattr(self.model, column_name)
        minimum = self.get_int(min_key, allow_zero=True)
        maximum = self.get_int(max_key, allow_zero=True)
        if minimum is not None:
            stmt = stmt.where(column >= minimum)
        if maximum is not None:
            stmt = stmt.where(column <= maximum)
        return stmt

    def apply_date_ranges(self, stmt: Select[Any]) -> Select[Any]:
        for prefix, column_name in DATE_RANGE_FIELDS:
            column = getattr(self.model, column_name)
            start = self.get_date(f"{prefix}_from")
            end = self.get_date(f"{prefix}_to")
            # Whole days: from 00:00:00.000000 through to 23:59:59.999999 UTC
            if start is not None:
                stmt = stmt.where(column >= datetime.combine(start, time.min, tzinfo=UTC))
            if end is not None:
                stmt = stmt.where(column <= datetime.combine(end, time.max, tzinfo=UTC))
        return stmt

    def all_sortable_fields(self) -> tuple[str, ...]:
        return COMMON_SORTABLE_FIELDS + self.sortable_fields

    def apply_sort(self, stmt: Select[Any]) -> Select[Any]:
        sort_by = self.get_string("sort_by")
        if sort_by not in self.all_sortable_fields():
            sort_by = DEFAULT_SORT_FIELD
        direction = (self.get_string("sort_direction") or DEFAULT_SORT_DIRECTION).lower()
        if direction not in ("asc", "desc"):
            direction = DEFAULT_SORT_DIRECTION

        def ordered(column_name: str) -> Any:
            column = getattr(self.model, column_name)
            return column.asc() if direction == "asc" else column.desc()

        # Drop whatever ordering the caller had, then id keeps pages stable on ties
        stmt = stmt.order_by(None).order_by(ordered(sort_by))
        if sort_by != "id":
            stmt = stmt.order_by(ordered("id"))
        return stmt

    # Listen up - with_inactive and only_inactive aren't validated against each other.
    # Both true -> only_inactive wins (trashed rows only).
    def apply_visibility(self, stmt: Select[Any]) -> Select[Any]:
        if self.get_bool("only_inactive"):
            return stmt.where(self.model.deleted_at.is_not(None))
        if self.get_bool("with_inactive"):
            return stmt
        return stmt.where(self.model.deleted_at.is_(None))
