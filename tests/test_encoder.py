"""
Tests for value rendering: escaping, scalar formats, references and content.
"""

import math
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from odmaexport.adaptors.memory import MemoryContent
from odmaexport.api import SYSTEM_NAMESPACE, DataType, QName
from odmaexport.exceptions import ContentIOError, InvariantViolation
from odmaexport.export import ExclusionFilter, ValueEncoder, escape_xml, format_datetime

PROP = QName("custom", "prop")


def make_referenced(object_id, namespace="custom", name="Person", retrievable=True):
    referenced = MagicMock()
    referenced.id = object_id
    referenced.odma_class.namespace = namespace
    referenced.odma_class.name = name
    referenced.odma_class.qname = QName(namespace, name)
    referenced.odma_class.retrievable = retrievable
    return referenced


class TestEscapeXml:
    def test_escapes_the_five_special_characters(self):
        assert (
            escape_xml("a\"b&c'd<e>f")
            == "a&#x0022;b&#x0026;c&#x0027;d&#x003C;e&#x003E;f"
        )

    def test_unicode_passes_through(self):
        assert escape_xml("Grüße ✓ 日本") == "Grüße ✓ 日本"

    def test_control_and_whitespace_unchanged(self):
        assert escape_xml("line1\nline2\ttab") == "line1\nline2\ttab"


class TestScalarValues:
    def test_string(self, encoder):
        assert encoder.encode("x<y", DataType.STRING, PROP, {}) == "x&#x003C;y"

    @pytest.mark.parametrize(
        "data_type", [DataType.INTEGER, DataType.SHORT, DataType.LONG]
    )
    def test_integers(self, encoder, data_type):
        assert encoder.encode(-42, data_type, PROP, {}) == "-42"

    def test_float_and_double(self, encoder):
        assert encoder.encode(1.5, DataType.FLOAT, PROP, {}) == "1.5"
        assert encoder.encode(0.1, DataType.DOUBLE, PROP, {}) == "0.1"

    def test_boolean(self, encoder):
        assert encoder.encode(True, DataType.BOOLEAN, PROP, {}) == "true"
        assert encoder.encode(False, DataType.BOOLEAN, PROP, {}) == "false"

    def test_blob_is_base64(self, encoder):
        assert encoder.encode(b"hello", DataType.BLOB, PROP, {}) == "aGVsbG8="

    def test_id_uses_string_form(self, encoder):
        assert encoder.encode(12345, DataType.ID, PROP, {}) == "12345"

    def test_id_is_escaped(self, encoder):
        assert encoder.encode("a&b<c", DataType.ID, PROP, {}) == "a&#x0026;b&#x003C;c"

    @pytest.mark.parametrize(
        "value, text",
        [(math.inf, "Infinity"), (-math.inf, "-Infinity"), (math.nan, "NaN")],
    )
    def test_non_finite_floats(self, encoder, value, text):
        assert encoder.encode(value, DataType.DOUBLE, PROP, {}) == text
        assert encoder.encode(value, DataType.FLOAT, PROP, {}) == text

    def test_guid_value_is_invariant_violation(self, encoder):
        with pytest.raises(InvariantViolation, match="GUID"):
            encoder.encode("g", DataType.GUID, PROP, {})


class TestDatetime:
    def test_zero_padded_and_truncated(self):
        assert format_datetime(datetime(2024, 3, 9, 7, 5, 1, 999999)) == "2024-03-09 07:05:01"

    def test_24_hour_clock(self):
        assert format_datetime(datetime(2023, 12, 31, 23, 59, 59)) == "2023-12-31 23:59:59"

    def test_no_timezone_conversion(self):
        value = datetime(2020, 1, 2, 3, 4, 5, tzinfo=timezone(timedelta(hours=5)))
        assert format_datetime(value) == "2020-01-02 03:04:05"

    def test_small_years_padded(self):
        assert format_datetime(datetime(7, 1, 1)) == "0007-01-01 00:00:00"

    def test_encoder_uses_format(self, encoder):
        value = datetime(2001, 2, 3, 4, 5, 6)
        assert encoder.encode(value, DataType.DATETIME, PROP, {}) == "2001-02-03 04:05:06"


class TestReferenceValues:
    def test_retrievable_reference_is_queued(self, encoder, context):
        frontier = {}
        text = encoder.encode(make_referenced("B"), DataType.REFERENCE, PROP, frontier)

        assert text == "B"
        assert context.pending == {"B": QName("custom", "Person")}
        assert frontier == {}

    def test_queue_position_is_not_overwritten(self, encoder, context):
        encoder.encode(make_referenced("B"), DataType.REFERENCE, PROP, {})
        encoder.encode(make_referenced("C"), DataType.REFERENCE, PROP, {})
        encoder.encode(make_referenced("B"), DataType.REFERENCE, PROP, {})

        assert list(context.pending) == ["B", "C"]
        assert context.statistics.references_queued == 2

    def test_already_exported_is_written_but_not_queued(self, encoder, context):
        context.mark_exported("B")

        text = encoder.encode(make_referenced("B"), DataType.REFERENCE, PROP, {})

        assert text == "B"
        assert context.pending == {}

    def test_system_namespace_reference_is_bare_id(self, context):
        exclusion_filter = MagicMock()
        encoder = ValueEncoder(context, exclusion_filter)
        referenced = make_referenced("class:opendma:Object", namespace=SYSTEM_NAMESPACE, name="Class")

        text = encoder.encode(referenced, DataType.REFERENCE, PROP, {})

        assert text == "class:opendma:Object"
        assert context.pending == {}
        exclusion_filter.is_followable.assert_not_called()

    def test_excluded_class_writes_nothing(self, context):
        encoder = ValueEncoder(context, ExclusionFilter(exclude_classes=["custom:Pers.*"]))

        text = encoder.encode(make_referenced("B"), DataType.REFERENCE, PROP, {})

        assert text is None
        assert context.pending == {}

    def test_excluded_id_writes_nothing(self, context):
        encoder = ValueEncoder(context, ExclusionFilter(exclude_ids=["B"]))

        assert encoder.encode(make_referenced("B"), DataType.REFERENCE, PROP, {}) is None

    def test_non_retrievable_goes_to_frontier(self, encoder, context):
        frontier = {}
        referenced = make_referenced("N", retrievable=False)

        text = encoder.encode(referenced, DataType.REFERENCE, PROP, frontier)

        assert text == "N"
        assert frontier == {"N": referenced}
        assert context.pending == {}

    def test_reference_id_is_escaped(self, encoder, context):
        text = encoder.encode(make_referenced("B&<1"), DataType.REFERENCE, PROP, {})

        assert text == "B&#x0026;&#x003C;1"
        assert list(context.pending) == ["B&<1"]

    def test_system_reference_id_is_escaped(self, encoder):
        referenced = make_referenced("class:a&b", namespace=SYSTEM_NAMESPACE, name="Class")

        assert encoder.encode(referenced, DataType.REFERENCE, PROP, {}) == "class:a&#x0026;b"

    def test_frontier_entry_is_kept(self, encoder):
        first = make_referenced("N", retrievable=False)
        second = make_referenced("N", retrievable=False)
        frontier = {}

        encoder.encode(first, DataType.REFERENCE, PROP, frontier)
        encoder.encode(second, DataType.REFERENCE, PROP, frontier)

        assert frontier["N"] is first


class TestContentValues:
    def test_disabled_writes_nothing(self, encoder, context):
        assert encoder.encode(MemoryContent(b"x"), DataType.CONTENT, PROP, {}) is None
        assert context.statistics.content_files == 0

    def test_enabled_copies_stream(self, context, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        encoder = ValueEncoder(context, ExclusionFilter(), export_content=True, content_directory="data")
        payload = bytes(range(256)) * 10

        text = encoder.encode(MemoryContent(payload), DataType.CONTENT, PROP, {})

        assert text == "data/content1.dat"
        assert (tmp_path / "data" / "content1.dat").read_bytes() == payload

    def test_counter_increases_across_values(self, context, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        encoder = ValueEncoder(context, ExclusionFilter(), export_content=True, content_directory="data")

        paths = [
            encoder.encode(MemoryContent(bytes([i])), DataType.CONTENT, PROP, {})
            for i in range(3)
        ]

        assert paths == ["data/content1.dat", "data/content2.dat", "data/content3.dat"]
        assert (tmp_path / "data" / "content3.dat").read_bytes() == b"\x02"
        assert context.statistics.content_files == 3

    def test_nested_directory_is_created(self, context, tmp_path):
        target = tmp_path / "a" / "b" / "c"
        encoder = ValueEncoder(context, ExclusionFilter(), export_content=True, content_directory=str(target))

        encoder.encode(MemoryContent(b"abc"), DataType.CONTENT, PROP, {})

        assert (target / "content1.dat").read_bytes() == b"abc"

    def test_directory_failure_is_content_io_error(self, context, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        encoder = ValueEncoder(
            context, ExclusionFilter(), export_content=True, content_directory=str(blocker / "data")
        )

        with pytest.raises(ContentIOError):
            encoder.encode(MemoryContent(b"abc"), DataType.CONTENT, PROP, {})

    def test_stream_failure_is_content_io_error(self, context, tmp_path):
        encoder = ValueEncoder(context, ExclusionFilter(), export_content=True, content_directory=str(tmp_path))
        content = MagicMock()
        content.get_stream.side_effect = IOError("stream broken")

        with pytest.raises(ContentIOError):
            encoder.encode(content, DataType.CONTENT, PROP, {})
