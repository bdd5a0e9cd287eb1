"""
Pagination support for pitpager.

This module provides the PageResult returned for each fetched page, and the
logic deriving the next cursor from the last document of a page.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from .cursor import Cursor
from .exceptions import CursorError

# Synthetic fields added to every document
DOCUMENT_ID_FIELD = "es-id"
DOCUMENT_INDEX_FIELD = "es-index"

_MISSING = object()


def lookup_field(source: Mapping[str, Any], path: str) -> Any:
    """
    Reads a field from a document source.

    Dotted paths resolve nested objects ("customer.id") unless the source
    holds the dotted name as a literal key.
    """
    if path in source:
        return source[path]

    node: Any = source
    for part in path.split("."):
        if not isinstance(node, Mapping) or part not in node:
            return _MISSING
        node = node[part]
    return node


def to_document(hit: Mapping[str, Any]) -> dict[str, Any]:
    """Flattens a search hit into its source plus the synthetic id/index fields."""
    document = dict(hit.get("_source") or {})
    document[DOCUMENT_ID_FIELD] = hit.get("_id")
    document[DOCUMENT_INDEX_FIELD] = hit.get("_index")
    return document


@dataclass(frozen=True)
class PageResult:
    """
    Represents a single fetched page and the cursor positioned after it.

    Attributes:
        documents: Documents of this page, in cursor order
        next_cursor: Cursor to pass to the next search
    """

    documents: tuple[dict[str, Any], ...]
    next_cursor: Cursor

    @property
    def count(self) -> int:
        return len(self.documents)

    @property
    def is_empty(self) -> bool:
        """True when the index had nothing past the cursor."""
        return not self.documents

    @property
    def has_more(self) -> bool:
        """Returns True if another search may return documents."""
        return not self.is_empty

    @classmethod
    def from_hits(
        cls,
        hits: list[Mapping[str, Any]],
        cursor: Cursor,
        pit_id: str | None,
        track_sort_values: bool = True,
    ) -> "PageResult":
        """
        Builds the page for the hits returned after a cursor.

        Args:
            hits: Raw search hits, in sort order
            cursor: Cursor the search was issued from
            pit_id: Point-in-time id to carry forward (may be refreshed by the store)
            track_sort_values: Keep the last hit's sort key for search_after

        Raises:
            CursorError: If the last hit cannot position the cursor
        """
        documents = tuple(to_document(hit) for hit in hits)

        if not documents:
            # Nothing new: keep the position and the session for the next poll
            return cls(documents=documents, next_cursor=cursor.with_pit_id(pit_id))

        last_hit = hits[-1]
        last_document = documents[-1]

        values = []
        for name in cursor.field_names:
            value = lookup_field(last_document, name)
            if value is _MISSING or value is None:
                raise CursorError(
                    f"Document '{last_document.get(DOCUMENT_ID_FIELD)}' in index "
                    f"'{cursor.index}' has no value for cursor field '{name}' "
                    f"(cursor fields: {cursor.field_names})",
                    index=cursor.index,
                    field=name,
                )
            values.append(value)

        sort_values = last_hit.get("sort") if track_sort_values else None

        try:
            next_cursor = cursor.advance(
                values=values,
                sort_values=sort_values,
                page_length=len(documents),
                pit_id=pit_id,
            )
        except PydanticValidationError as e:
            raise CursorError(
                f"Cannot advance cursor on index '{cursor.index}' "
                f"(cursor fields: {cursor.field_names}) from values {values!r}: {e}",
                index=cursor.index,
                original_error=e,
            ) from e

        return cls(documents=documents, next_cursor=next_cursor)
