"""
Cursor data model.

A Cursor is the full resume state of one extraction stream: the index, the
ordered fields the stream is sorted by (with the last value seen for each),
and the point-in-time session state used to page inside a snapshot.

Cursors are frozen. Every transition returns a new Cursor so the previous
value can still be persisted if storing the new one fails.
"""

from collections.abc import Sequence
from typing import Annotated, Any, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictFloat,
    StrictInt,
    StrictStr,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from .exceptions import ConfigurationError

LONG_MIN = -(2**63)
LONG_MAX = 2**63 - 1

Int64 = Annotated[StrictInt, Field(ge=LONG_MIN, le=LONG_MAX)]

# Booleans are rejected instead of being coerced to 0/1
CursorValue = Union[Int64, StrictStr]

# The store reports sort keys as numbers or strings (dates as epoch millis)
SortValue = Union[Int64, StrictFloat, StrictStr]


class CursorField(BaseModel):
    """One component of the composite sort/resume key."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    field: str = Field(min_length=1)
    initial_value: CursorValue


class Cursor(BaseModel):
    """
    Resume state of one extraction stream.

    Attributes:
        index: Target index name
        cursor_fields: Ordered sort fields, the first one is the primary key
        pit_id: Handle of the open point-in-time, None when no session is open
        sort_values: Literal sort key of the last document returned, used with
            search_after inside the same point-in-time
        running_document_count: Documents consumed so far
        scroll_limit: Number of times the session has been reframed
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    index: str
    cursor_fields: tuple[CursorField, ...] = Field(min_length=1)
    pit_id: str | None = None
    sort_values: tuple[SortValue, ...] | None = None
    running_document_count: int = Field(default=0, ge=0)
    scroll_limit: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _check_consistency(self) -> "Cursor":
        names = self.field_names
        if len(set(names)) != len(names):
            raise ValueError(f"Cursor fields must be unique, got {names}")

        # The store may append its own tiebreaker (e.g. _shard_doc) to the sort key
        if self.sort_values is not None and len(self.sort_values) < len(names):
            raise ValueError(
                f"sort_values has {len(self.sort_values)} value(s) "
                f"but the cursor is sorted by {len(names)} field(s)"
            )
        return self

    @classmethod
    def of(cls, index: str, cursor_fields: Sequence[CursorField]) -> "Cursor":
        """
        Creates the initial cursor of a stream.

        Raises:
            ConfigurationError: If the index or the fields are invalid
        """
        if not index:
            raise ConfigurationError("Cursor index cannot be empty")
        if not cursor_fields:
            raise ConfigurationError(f"Cursor for index '{index}' needs at least one field")

        try:
            return cls(index=index, cursor_fields=tuple(cursor_fields))
        except PydanticValidationError as e:
            raise ConfigurationError(
                f"Invalid cursor for index '{index}': {e}", original_error=e
            ) from e

    # --- STATE ---

    @property
    def primary_field(self) -> CursorField:
        return self.cursor_fields[0]

    @property
    def secondary_fields(self) -> tuple[CursorField, ...]:
        return self.cursor_fields[1:]

    @property
    def field_names(self) -> list[str]:
        return [cursor_field.field for cursor_field in self.cursor_fields]

    @property
    def is_fresh(self) -> bool:
        """True when querying this cursor opens a new session without search_after."""
        return self.pit_id is None and self.sort_values is None

    @property
    def is_scrollable(self) -> bool:
        """True while a point-in-time session is open and can be reframed."""
        return self.pit_id is not None

    @property
    def include_lower_bound(self) -> bool:
        """
        The field values are inclusive bounds until a document has been consumed.
        Afterwards they hold the last delivered key, which must be excluded.
        """
        return self.running_document_count == 0

    # --- TRANSITIONS ---

    def _replace(self, **changes: Any) -> "Cursor":
        # model_copy() skips validation, rebuilding keeps the invariants checked
        return type(self).model_validate({**self.model_dump(), **changes})

    def with_pit_id(self, pit_id: str | None) -> "Cursor":
        return self._replace(pit_id=pit_id)

    def advance(
        self,
        values: Sequence[Any],
        sort_values: Sequence[Any] | None,
        page_length: int,
        pit_id: str | None,
    ) -> "Cursor":
        """
        Moves the cursor past a consumed page.

        Args:
            values: Last document's value for each cursor field, in order
            sort_values: Last document's sort key, None outside a session
            page_length: Number of documents in the consumed page
            pit_id: Point-in-time id returned with the page
        """
        if len(values) != len(self.cursor_fields):
            raise ValueError(
                f"Expected {len(self.cursor_fields)} cursor value(s), got {len(values)}"
            )
        return self._replace(
            cursor_fields=[
                {"field": cursor_field.field, "initial_value": value}
                for cursor_field, value in zip(self.cursor_fields, values)
            ],
            sort_values=None if sort_values is None else tuple(sort_values),
            running_document_count=self.running_document_count + page_length,
            pit_id=pit_id,
        )

    def without_session(self) -> "Cursor":
        """Drops the point-in-time and its sort key, keeping position and counters."""
        return self._replace(pit_id=None, sort_values=None)

    def reframe(self) -> "Cursor":
        """
        Drops the session state so the next query opens a fresh point-in-time.
        Field values are kept: nothing past the last delivered key is lost.
        """
        return self._replace(pit_id=None, sort_values=None, scroll_limit=self.scroll_limit + 1)
