import pytest

from membership_checkout.features.checkout.domain.metadata import (
    RecordRef,
    parse_int,
    parse_record_ref,
)
from membership_checkout.features.registrations.domain.enums import RecordKind


class TestParseRecordRef:
    def test_reads_string_metadata(self):
        ref = parse_record_ref({"record_kind": "membership", "record_id": "7"})
        assert ref == RecordRef(kind=RecordKind.MEMBERSHIP, id=7)

    def test_absent_keys(self):
        assert parse_record_ref({"order_id": "3"}) is None

    @pytest.mark.parametrize(
        "metadata",
        [
            {"record_kind": "membership"},
            {"record_id": "7"},
            {"record_kind": "ticket", "record_id": "7"},
            {"record_kind": "membership", "record_id": "seven"},
        ],
    )
    def test_malformed(self, metadata):
        with pytest.raises(ValueError):
            parse_record_ref(metadata)


class TestParseInt:
    def test_values(self):
        assert parse_int({"order_id": "12"}, "order_id") == 12
        assert parse_int({"order_id": ""}, "order_id") is None
        assert parse_int({}, "order_id") is None

    def test_malformed(self):
        with pytest.raises(ValueError):
            parse_int({"order_id": "12a"}, "order_id")
