from enum import Enum
from typing import Any

from ._logging import logger, redact_pit_id
from .cursor import Cursor, CursorField


class QueryStrategy(str, Enum):
    """
    How the next-page query excludes the keys already delivered.

    RANGE: a single cursor field, one range filter on it.
    SEARCH_AFTER: several fields inside an open point-in-time; the store's
        keyset pagination resumes from the last sort key.
    LEXICOGRAPHIC: several fields without a usable sort key; the disjunctive
        (f1 > v1) OR (f1 = v1 AND f2 > v2) ... form. Used on fresh and
        reframed cursors and when point-in-time sessions are disabled.
    """

    RANGE = "range"
    SEARCH_AFTER = "search_after"
    LEXICOGRAPHIC = "lexicographic"


def select_strategy(cursor: Cursor, has_session: bool) -> QueryStrategy:
    if len(cursor.cursor_fields) == 1:
        return QueryStrategy.RANGE
    if has_session and cursor.sort_values is not None:
        return QueryStrategy.SEARCH_AFTER
    return QueryStrategy.LEXICOGRAPHIC


def _range(cursor_field: CursorField, inclusive: bool) -> dict[str, Any]:
    op = "gte" if inclusive else "gt"
    return {"range": {cursor_field.field: {op: cursor_field.initial_value}}}


def _term(cursor_field: CursorField) -> dict[str, Any]:
    return {"term": {cursor_field.field: cursor_field.initial_value}}


class CursorQueryBuilder:
    """
    Builds the search body fetching the page that follows a cursor.

    Usage:
        body = (
            CursorQueryBuilder(cursor)
            .size(500)
            .point_in_time(pit_id, keep_alive="295s")
            .build()
        )
    """

    def __init__(self, cursor: Cursor):
        self.cursor = cursor
        self.size_val: int | None = None
        self.pit_id: str | None = None
        self.keep_alive: str | None = None

    def size(self, count: int) -> "CursorQueryBuilder":
        """Sets the page size."""
        self.size_val = count
        return self

    def point_in_time(self, pit_id: str | None, keep_alive: str) -> "CursorQueryBuilder":
        """Binds the query to a point-in-time and renews its keep-alive."""
        self.pit_id = pit_id
        self.keep_alive = keep_alive
        return self

    @property
    def strategy(self) -> QueryStrategy:
        return select_strategy(self.cursor, has_session=self.pit_id is not None)

    def _build_filter(self, strategy: QueryStrategy) -> dict[str, Any]:
        cursor = self.cursor
        inclusive = cursor.include_lower_bound

        if strategy is QueryStrategy.RANGE:
            return _range(cursor.primary_field, inclusive)

        if strategy is QueryStrategy.SEARCH_AFTER:
            # Ties on the primary field continue into this page
            return _range(cursor.primary_field, inclusive=True)

        fields = cursor.cursor_fields
        clauses = []
        for position, cursor_field in enumerate(fields):
            is_last = position == len(fields) - 1
            must = [_term(previous) for previous in fields[:position]]
            must.append(_range(cursor_field, inclusive=inclusive and is_last))
            clauses.append({"bool": {"filter": must}})

        return {"bool": {"should": clauses, "minimum_should_match": 1}}

    def build(self) -> dict[str, Any]:
        strategy = self.strategy

        body: dict[str, Any] = {
            "query": {"bool": {"filter": [self._build_filter(strategy)]}},
            "sort": [{name: {"order": "asc"}} for name in self.cursor.field_names],
        }

        if self.size_val:
            body["size"] = self.size_val

        if self.pit_id is not None:
            body["pit"] = {"id": self.pit_id, "keep_alive": self.keep_alive}
            if self.cursor.sort_values is not None:
                body["search_after"] = list(self.cursor.sort_values)

        logger.debug(
            "Built search body",
            extra={
                "index": self.cursor.index,
                "strategy": strategy.value,
                "fields": self.cursor.field_names,
                "inclusive": self.cursor.include_lower_bound,
                "pit_hash": redact_pit_id(self.pit_id),
                "has_search_after": "search_after" in body,
            },
        )
        return body
