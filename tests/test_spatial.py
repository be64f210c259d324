import pytest
from datetime import datetime, timedelta, timezone
from pathlib import Path
import sys

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from crime_forecast.records import IncidentRecord
from crime_forecast.spatial import build_heat_map, cell_intensity, filter_reports, grid_key, validate_coordinate
from crime_forecast.utils.crime_taxonomy import AVAILABLE_CRIME_TYPES, extract_crime_types, matches_category
from crime_forecast.utils.exceptions import InvalidCoordinate

UTC = timezone.utc
AS_OF = datetime(2024, 6, 30, 12, tzinfo=UTC)


def report(lat, lng, category='Theft', days_ago=1, idx='r'):
    return IncidentRecord(
        record_id=idx,
        category=category,
        timestamp=AS_OF - timedelta(days=days_ago),
        latitude=lat,
        longitude=lng,
    )


@pytest.fixture
def manila_reports():
    return [
        report(14.60421, 120.98223, idx='a'),
        report(14.60419, 120.98221, idx='b'),
        report(14.59950, 120.98420, 'Burglary', idx='c'),
        report(14.61000, 120.99000, 'Assault', days_ago=45, idx='d'),
    ]


class TestGrid:
    def test_key_rounds_to_four_decimals(self):
        assert grid_key(14.60421, 120.98223) == '14.6042,120.9822'

    def test_intensity_saturates(self):
        assert cell_intensity(2, 5) == pytest.approx(0.1)
        assert cell_intensity(25, 10) == pytest.approx(1.0)
        assert cell_intensity(25, 3) == pytest.approx(0.3)
        assert cell_intensity(10, 10) == pytest.approx(1.0)

    @pytest.mark.parametrize('lat,lng', [
        (None, 120.9),
        (14.6, None),
        (0.0, 0.0),
        (14.6, 0.0),
        (float('nan'), 120.9),
        (91.0, 200.0),
        (35.6, 139.7),  # Tokyo, outside the default area
    ])
    def test_rejected_coordinates(self, lat, lng):
        with pytest.raises(InvalidCoordinate):
            validate_coordinate(lat, lng)

    def test_custom_bounds(self):
        assert validate_coordinate(35.6, 139.7, bounds=(30.0, 40.0, 130.0, 145.0)) == (35.6, 139.7)


class TestHeatMap:
    def test_nearby_points_share_a_cell(self, manila_reports):
        heat = build_heat_map(manila_reports, time_window_days=30, as_of=AS_OF)
        cells = {c.key: c for c in heat.cells}
        assert set(cells) == {'14.6042,120.9822', '14.5995,120.9842'}
        merged = cells['14.6042,120.9822']
        assert merged.count == 2
        assert merged.intensity == pytest.approx(0.1)
        assert merged.latitude == pytest.approx(14.6042)
        assert heat.report_count == 3

    def test_cells_are_sorted_by_key(self, manila_reports):
        heat = build_heat_map(manila_reports, time_window_days=None, as_of=AS_OF)
        keys = [c.key for c in heat.cells]
        assert keys == sorted(keys)
        assert len(keys) == 3

    def test_unusable_coordinates_are_dropped(self, manila_reports):
        junk = [
            report(0.0, 0.0, idx='z'),
            report(91.0, 200.0, idx='o'),
            report(None, None, idx='m'),
            report(float('nan'), 120.98, idx='n'),
        ]
        heat = build_heat_map(manila_reports + junk, time_window_days=30, as_of=AS_OF)
        assert heat.report_count == 3
        assert sum(c.count for c in heat.cells) == 3

    def test_saturation_with_dial(self):
        reports = [report(14.6, 121.0, idx=str(i)) for i in range(25)]
        assert build_heat_map(reports, intensity=10, as_of=AS_OF).cells[0].intensity == pytest.approx(1.0)
        assert build_heat_map(reports, intensity=3, as_of=AS_OF).cells[0].intensity == pytest.approx(0.3)

    def test_alias_category_filter(self, manila_reports):
        heat = build_heat_map(manila_reports, crime_type='Breaking and Entering', as_of=AS_OF)
        assert [c.key for c in heat.cells] == ['14.5995,120.9842']

    def test_time_window_excludes_old_and_undated(self, manila_reports):
        undated = IncidentRecord('u', 'Theft', None, latitude=14.7, longitude=121.0)
        heat = build_heat_map(manila_reports + [undated], time_window_days=30, as_of=AS_OF)
        assert all(c.key != '14.6100,120.9900' for c in heat.cells)
        assert all(c.key != '14.7000,121.0000' for c in heat.cells)

        everything = build_heat_map(manila_reports + [undated], time_window_days=None, as_of=AS_OF)
        assert {'14.6100,120.9900', '14.7000,121.0000'} <= {c.key for c in everything.cells}

    @pytest.mark.parametrize('kwargs', [
        {'intensity': 0},
        {'intensity': 11},
        {'radius': 0},
        {'radius': -5},
    ])
    def test_invalid_dial_or_radius(self, manila_reports, kwargs):
        with pytest.raises(ValueError):
            build_heat_map(manila_reports, as_of=AS_OF, **kwargs)

    def test_radius_passes_through(self, manila_reports):
        heat = build_heat_map(manila_reports, radius=40, as_of=AS_OF)
        payload = heat.to_dict()
        assert payload['radius'] == 40
        assert payload['points'][0] == [payload['cells'][0]['latitude'], payload['cells'][0]['longitude'], payload['cells'][0]['intensity']]

    def test_empty_input(self):
        heat = build_heat_map([], as_of=AS_OF)
        assert heat.cells == ()
        assert heat.report_count == 0

    def test_repeatable(self, manila_reports):
        assert build_heat_map(manila_reports, as_of=AS_OF) == build_heat_map(manila_reports, as_of=AS_OF)

    def test_raw_snapshot_input(self):
        snapshot = {
            'k1': {
                'crimeType': 'Theft',
                'dateTime': '2024-06-29T10:00:00Z',
                'location': {'address': 'Barangay 41', 'latitude': 14.6042, 'longitude': 120.9822},
            },
        }
        heat = build_heat_map(snapshot, as_of=AS_OF)
        assert heat.cells[0].key == '14.6042,120.9822'


class TestCategoryMatching:
    @pytest.mark.parametrize('reported,selected,expected', [
        ('Theft', 'theft', True),
        ('Vehicle Theft', 'Theft', True),
        ('Burglary', 'Breaking and Entering', True),
        ('Car stolen', 'Vehicle Theft', True),
        ('Violence at home', 'Domestic Violence', True),
        ('Fraud', 'Theft', False),
        ('', 'Theft', False),
        ('Anything', None, True),
        ('Anything', '', True),
    ])
    def test_matches(self, reported, selected, expected):
        assert matches_category(reported, selected) is expected

    def test_filter_reports_without_window(self, manila_reports):
        assert len(filter_reports(manila_reports, time_window_days=None, crime_type='Assault')) == 1


class TestCatalogue:
    def test_extract_crime_types(self):
        assert extract_crime_types([' Theft', 'Assault', 'Theft', '', None, '  ']) == ['Assault', 'Theft']

    def test_dashboard_filters_are_sorted(self):
        assert list(AVAILABLE_CRIME_TYPES) == sorted(AVAILABLE_CRIME_TYPES)
        assert 'Breaking and Entering' in AVAILABLE_CRIME_TYPES
