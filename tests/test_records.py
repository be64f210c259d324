import pytest
from datetime import datetime, timezone
from pathlib import Path
import sys

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from crime_forecast.records import IncidentRecord, normalize_record, normalize_snapshot, parse_timestamp, as_records

UTC = timezone.utc


class TestParseTimestamp:
    def test_iso_with_z(self):
        assert parse_timestamp('2024-03-05T10:30:00Z') == datetime(2024, 3, 5, 10, 30, tzinfo=UTC)

    def test_naive_iso_is_utc(self):
        assert parse_timestamp('2024-03-05 10:30:00') == datetime(2024, 3, 5, 10, 30, tzinfo=UTC)

    def test_offset_is_converted_to_utc(self):
        assert parse_timestamp('2024-03-05T18:30:00+08:00') == datetime(2024, 3, 5, 10, 30, tzinfo=UTC)

    def test_epoch_seconds_and_millis(self):
        expected = datetime(2024, 1, 1, tzinfo=UTC)
        assert parse_timestamp(1704067200) == expected
        assert parse_timestamp(1704067200000) == expected

    @pytest.mark.parametrize('raw,expected', [
        ('2024/06/01 12:00:00', datetime(2024, 6, 1, 12, tzinfo=UTC)),
        ('June 1, 2024 12:00 PM', datetime(2024, 6, 1, 12, tzinfo=UTC)),
        ('2024-06-01', datetime(2024, 6, 1, tzinfo=UTC)),
    ])
    def test_non_iso_strings(self, raw, expected):
        assert parse_timestamp(raw) == expected

    def test_slash_dated_report_keeps_its_timestamp(self):
        record = normalize_record({'type': 'Theft', 'date': '2024/06/01 12:00:00'})
        assert record.timestamp == datetime(2024, 6, 1, 12, tzinfo=UTC)

    def test_datetime_input(self):
        naive = datetime(2024, 3, 5, 10, 30)
        assert parse_timestamp(naive) == datetime(2024, 3, 5, 10, 30, tzinfo=UTC)
        assert parse_timestamp(naive).tzinfo == UTC

    @pytest.mark.parametrize('value', [None, '', 'not a date', True, float('nan'), {'a': 1}])
    def test_unusable_values(self, value):
        assert parse_timestamp(value) is None


class TestNormalizeRecord:
    def test_category_key_precedence(self):
        assert normalize_record({'type': 'Theft', 'crimeType': 'Fraud'}).category == 'Theft'
        assert normalize_record({'crimeType': 'Fraud', 'crime_type': 'Assault'}).category == 'Fraud'
        assert normalize_record({'crime_type': 'Assault'}).category == 'Assault'

    def test_unresolved_fields_are_empty_strings(self):
        record = normalize_record({'id': 'r1'})
        assert record.category == ''
        assert record.location == ''
        assert record.timestamp is None
        assert record.latitude is None and record.longitude is None

    def test_location_string_and_fallback_keys(self):
        assert normalize_record({'location': 'Barangay 41'}).location == 'Barangay 41'
        assert normalize_record({'location_address': 'Barangay 43'}).location == 'Barangay 43'
        assert normalize_record({'address': 'Tondo'}).location == 'Tondo'

    def test_nested_location_object(self):
        record = normalize_record({
            'location': {'address': 'Barangay 41', 'latitude': '14.6042', 'longitude': 120.9822},
        })
        assert record.location == 'Barangay 41'
        assert record.latitude == pytest.approx(14.6042)
        assert record.longitude == pytest.approx(120.9822)

    def test_nested_location_name_and_unknown(self):
        assert normalize_record({'location': {'name': 'Plaza'}}).location == 'Plaza'
        assert normalize_record({'location': {'lat': 14.6, 'lng': 120.9}}).location == 'Unknown'

    def test_top_level_coordinates(self):
        record = normalize_record({'lat': 14.6, 'lng': 120.9})
        assert (record.latitude, record.longitude) == (14.6, 120.9)
        assert record.has_coordinates
        assert not normalize_record({'lat': 14.6}).has_coordinates

    def test_non_numeric_coordinates(self):
        record = normalize_record({'location': {'latitude': 'abc', 'longitude': None}})
        assert record.latitude is None
        assert record.longitude is None

    def test_timestamp_key_precedence(self):
        record = normalize_record({'dateTime': '2024-05-01T08:00:00Z', 'createdAt': '2023-01-01T00:00:00Z'})
        assert record.timestamp == datetime(2024, 5, 1, 8, tzinfo=UTC)
        assert normalize_record({'date': '2024-02-02'}).timestamp == datetime(2024, 2, 2, tzinfo=UTC)

    def test_report_id_wrapper_is_unwrapped(self):
        raw = {'reportId': 'abc', 'abc': {'crimeType': 'Vandalism', 'status': 'Resolved', 'id': 'abc'}}
        record = normalize_record(raw)
        assert record.category == 'Vandalism'
        assert record.status == 'Resolved'
        assert record.record_id == 'abc'

    def test_resolved_at(self):
        record = normalize_record({'resolvedAt': '2024-05-01T09:00:00Z'})
        assert record.resolved_at == datetime(2024, 5, 1, 9, tzinfo=UTC)

    def test_record_is_immutable(self):
        record = normalize_record({'type': 'Theft'})
        with pytest.raises(Exception):
            record.category = 'Fraud'


class TestNormalizeSnapshot:
    def test_keyed_snapshot_uses_keys_as_ids(self):
        records = normalize_snapshot({'-Nabc': {'type': 'Theft'}, '-Ndef': {'type': 'Fraud'}})
        assert [r.record_id for r in records] == ['-Nabc', '-Ndef']

    def test_list_snapshot_and_junk(self):
        records = normalize_snapshot([{'type': 'Theft', 'id': 7}, 'junk', None])
        assert len(records) == 1
        assert records[0].record_id == '7'

    def test_empty(self):
        assert normalize_snapshot(None) == ()
        assert normalize_snapshot({}) == ()

    def test_as_records_passes_normalized_through(self):
        record = IncidentRecord(record_id='x', category='Theft', timestamp=None)
        assert as_records([record]) == (record,)
        assert as_records([{'type': 'Theft'}])[0].category == 'Theft'

    def test_to_dict_is_json_friendly(self):
        record = normalize_record({'id': 'r', 'type': 'Theft', 'dateTime': '2024-01-01T00:00:00Z'})
        payload = record.to_dict()
        assert payload['timestamp'] == '2024-01-01T00:00:00+00:00'
        assert payload['category'] == 'Theft'
