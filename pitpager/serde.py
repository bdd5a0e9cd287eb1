"""
JSON codec for cursors.

The encoded cursor is what gets persisted as offset state, so its shape is a
compatibility contract: key order and names are fixed, absent optional values
are written as explicit nulls, integers keep their full 64-bit range and
sort values keep their per-element type.

    {"index":"orders","cursorFields":[{"field":"id","initialValue":0}],
     "pitId":null,"sortValues":null,"runningDocumentCount":0,"scrollLimit":0}

Reading is strict: every key must be present under its camelCase name and
unknown keys are rejected, so a damaged offset never resumes from a guessed
position.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from ._logging import logger
from .cursor import Cursor
from .exceptions import CursorSerializationError

OFFSET_KEY = "cursor"


class _PersistedCursorField(BaseModel):
    model_config = ConfigDict(extra="forbid", alias_generator=to_camel)

    field: Any
    initial_value: Any


class _PersistedCursor(BaseModel):
    """Shape of the encoded cursor. Values are checked by Cursor itself."""

    model_config = ConfigDict(extra="forbid", alias_generator=to_camel)

    index: Any
    cursor_fields: list[_PersistedCursorField]
    pit_id: Any
    sort_values: Any
    running_document_count: Any
    scroll_limit: Any


class CursorSerde:
    """Serializes cursors to and from their persisted JSON form."""

    def serialize(self, cursor: Cursor) -> str:
        return cursor.model_dump_json(by_alias=True)

    def deserialize(self, data: str | bytes) -> Cursor:
        """
        Reads a cursor back from its JSON form.

        Raises:
            CursorSerializationError: If the data is not a valid cursor. No default
                position is ever substituted for unreadable data.
        """
        try:
            persisted = _PersistedCursor.model_validate_json(data)
            return Cursor.model_validate(persisted.model_dump())
        except PydanticValidationError as e:
            logger.error("Unreadable persisted cursor", extra={"errors": e.error_count()})
            raise CursorSerializationError(
                f"Invalid persisted cursor: {e}", original_error=e
            ) from e

    def to_offset(self, cursor: Cursor) -> dict[str, str]:
        """Wraps the encoded cursor in an offset mapping for host offset storage."""
        return {OFFSET_KEY: self.serialize(cursor)}

    def from_offset(self, offset: Mapping[str, Any] | None) -> Cursor | None:
        """
        Reads a cursor from an offset mapping.

        Returns None when nothing was stored yet (a brand new stream).
        """
        if not offset:
            return None

        data = offset.get(OFFSET_KEY)
        if not isinstance(data, (str, bytes)):
            raise CursorSerializationError(
                f"Offset has no '{OFFSET_KEY}' entry holding an encoded cursor: {offset!r}"
            )
        return self.deserialize(data)
