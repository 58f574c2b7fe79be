"""Tests for record classification and event units."""

from hec_forwarder.models import (
    EventUnit,
    NumberRecord,
    ObjectRecord,
    OpaqueRecord,
    classify_record,
)


class TestClassifyRecord:
    def test_int_is_number(self):
        assert classify_record(42) == NumberRecord(42)

    def test_float_is_number(self):
        assert classify_record(1.5) == NumberRecord(1.5)

    def test_bool_is_opaque(self):
        assert classify_record(True) == OpaqueRecord(True)

    def test_dict_is_object(self):
        assert classify_record({"a": 1}) == ObjectRecord({"a": 1})

    def test_string_is_opaque(self):
        assert classify_record("line") == OpaqueRecord("line")

    def test_already_classified_passes_through(self):
        record = NumberRecord(7)
        assert classify_record(record) is record


class TestEventUnit:
    def test_coerce_tuple(self):
        unit = EventUnit.coerce(("app", 10, {"m": 1}))
        assert unit == EventUnit(tag="app", time=10, record={"m": 1})

    def test_coerce_unit_is_identity(self):
        unit = EventUnit(tag="app", time=10, record={})
        assert EventUnit.coerce(unit) is unit
