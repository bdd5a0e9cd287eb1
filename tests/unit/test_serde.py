"""
Unit tests for CursorSerde.

The encoded form is persisted as offset state, so these tests pin the exact
JSON text, not just the round trip.
"""

import pytest

from pitpager import LONG_MAX, LONG_MIN, Cursor, CursorField, CursorSerde
from pitpager.exceptions import CursorSerializationError


@pytest.fixture
def serde() -> CursorSerde:
    return CursorSerde()


@pytest.mark.unit
class TestCursorSerde:
    """Test the persisted cursor format."""

    def test_serialize_example_cursor(self, serde):
        cursor = Cursor.of("orders", [CursorField(field="id", initial_value=0)])

        serialized = serde.serialize(cursor)

        assert serialized == (
            '{"index":"orders","cursorFields":[{"field":"id","initialValue":0}],'
            '"pitId":null,"sortValues":null,"runningDocumentCount":0,"scrollLimit":0}'
        )
        assert serde.deserialize(serialized) == cursor

    def test_serialize_initial_cursor(self, serde):
        """Long max and empty string survive as bounds."""
        cursor = Cursor.of(
            "some_index",
            [
                CursorField(field="firstField", initial_value=LONG_MAX),
                CursorField(field="secondField", initial_value=""),
            ],
        )

        serialized = serde.serialize(cursor)

        assert serialized == (
            '{"index":"some_index","cursorFields":[{"field":"firstField",'
            '"initialValue":9223372036854775807},{"field":"secondField","initialValue":""}],'
            '"pitId":null,"sortValues":null,"runningDocumentCount":0,"scrollLimit":0}'
        )
        assert serde.deserialize(serialized) == cursor

    def test_serialize_intermediate_cursor(self, serde):
        """Mixed int/str sort values keep their order and types."""
        cursor = Cursor(
            index="some_index",
            cursor_fields=(
                CursorField(field="firstField", initial_value=LONG_MAX),
                CursorField(field="secondField", initial_value=""),
            ),
            pit_id="some_pit_id",
            sort_values=(4711, "some_secondary_value", 37),
            running_document_count=53,
            scroll_limit=64,
        )

        serialized = serde.serialize(cursor)

        assert serialized == (
            '{"index":"some_index","cursorFields":[{"field":"firstField",'
            '"initialValue":9223372036854775807},{"field":"secondField","initialValue":""}],'
            '"pitId":"some_pit_id","sortValues":[4711,"some_secondary_value",37],'
            '"runningDocumentCount":53,"scrollLimit":64}'
        )
        deserialized = serde.deserialize(serialized)
        assert deserialized == cursor
        assert [type(v) for v in deserialized.sort_values] == [int, str, int]

    def test_numeric_strings_stay_strings(self, serde):
        cursor = Cursor.of(
            "orders",
            [
                CursorField(field="code", initial_value="123"),
                CursorField(field="id", initial_value=LONG_MIN),
            ],
        )

        deserialized = serde.deserialize(serde.serialize(cursor))

        assert deserialized.cursor_fields[0].initial_value == "123"
        assert deserialized.cursor_fields[1].initial_value == LONG_MIN

    def test_deserialize_bytes(self, serde):
        data = (
            b'{"index":"orders","cursorFields":[{"field":"id","initialValue":9}],'
            b'"pitId":null,"sortValues":null,"runningDocumentCount":3,"scrollLimit":1}'
        )
        cursor = serde.deserialize(data)
        assert cursor.running_document_count == 3
        assert cursor.scroll_limit == 1

    @pytest.mark.parametrize(
        "data",
        [
            "not json",
            "{}",
            '{"index":"orders","cursorFields":[]}',
            '{"index":"orders","cursorFields":[{"field":"id","initialValue":true}]}',
            '{"index":"orders","cursorFields":[{"field":"id","initialValue":0}],'
            '"pitId":null,"sortValues":null,"runningDocumentCount":-1,"scrollLimit":0}',
        ],
    )
    def test_malformed_input_raises(self, serde, data):
        with pytest.raises(CursorSerializationError):
            serde.deserialize(data)

    def test_missing_key_is_not_defaulted(self, serde):
        """A lost runningDocumentCount would make the last key inclusive again."""
        data = (
            '{"index":"orders","cursorFields":[{"field":"id","initialValue":41}],'
            '"pitId":null,"sortValues":null,"scrollLimit":0}'
        )

        with pytest.raises(CursorSerializationError, match="runningDocumentCount"):
            serde.deserialize(data)

    def test_snake_case_keys_rejected(self, serde):
        data = (
            '{"index":"orders","cursor_fields":[{"field":"id","initial_value":41}],'
            '"pit_id":null,"sort_values":null,"running_document_count":3,"scroll_limit":0}'
        )

        with pytest.raises(CursorSerializationError):
            serde.deserialize(data)

    def test_unknown_keys_rejected(self, serde, orders_cursor):
        data = serde.serialize(orders_cursor)[:-1] + ',"extra":1}'

        with pytest.raises(CursorSerializationError, match="extra"):
            serde.deserialize(data)


@pytest.mark.unit
class TestOffsets:
    """Test the offset mapping wrapper."""

    def test_offset_round_trip(self, serde, orders_cursor):
        offset = serde.to_offset(orders_cursor)
        assert offset == {"cursor": serde.serialize(orders_cursor)}
        assert serde.from_offset(offset) == orders_cursor

    def test_missing_offset_means_new_stream(self, serde):
        assert serde.from_offset(None) is None
        assert serde.from_offset({}) is None

    def test_offset_without_cursor_entry_raises(self, serde):
        with pytest.raises(CursorSerializationError, match="no 'cursor' entry"):
            serde.from_offset({"position": 12})
