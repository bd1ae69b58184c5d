import io
from datetime import datetime

import pytest

from airwatch.models import Alert, GridCell, Measurement, PolicyRecommendation
from airwatch.services.importer import (extract_impact_percentage,
                                        import_intervention_zones_csv,
                                        import_measurements_csv, normalize_status,
                                        score_to_priority)
from airwatch.services.measurements import (build_measurement, parse_timestamp,
                                            store_measurements)
from airwatch.services.simulation import generate_readings, time_of_day_factor

ZONES_CSV = """Location_Name,Latitude,Longitude,PM25_ugm3,PM10_ugm3,NO2_ugm3,AQI_Category,Last_Updated,Source_Name
Nairobi CBD,-1.2864,36.8172,48.5,80.1,35.2,Unhealthy,2024-05-01T08:00:00Z,Nairobi County
Westlands,-1.2630,36.8089,22.0,40.0,18.0,Moderate,2024-05-01T08:00:00Z,Nairobi County
Karen,-1.3197,36.7083,12.1,25.0,8.0,Good,2024-05-01T08:00:00Z,
"""


def test_import_csv_creates_one_row_per_line(app):
    summary = import_measurements_csv(io.StringIO(ZONES_CSV))

    assert summary == {'inserted': 3, 'duplicates': 0, 'invalid': 0, 'rows': 3}
    cbd = Measurement.query.filter_by(location_name='Nairobi CBD').one()
    assert cbd.pm25 == 48.5
    assert cbd.quality_flag == 2
    assert cbd.recorded_at == datetime(2024, 5, 1, 8, 0)
    assert Measurement.query.filter_by(location_name='Karen').one().data_source == 'CSV import'


def test_import_csv_skips_duplicates(app):
    import_measurements_csv(io.StringIO(ZONES_CSV))
    summary = import_measurements_csv(io.StringIO(ZONES_CSV))

    assert summary['inserted'] == 0
    assert summary['duplicates'] == 3
    assert Measurement.query.count() == 3


def test_import_csv_optional_columns_missing(app):
    summary = import_measurements_csv(io.StringIO('Latitude,Longitude\n-1.28,36.82\n-1.29,36.83\n'))
    assert summary['inserted'] == 2
    assert Measurement.query.filter(Measurement.pm25.isnot(None)).count() == 0


def test_import_csv_requires_coordinates(app):
    with pytest.raises(ValueError):
        import_measurements_csv(io.StringIO('Location_Name,PM25_ugm3\nCBD,40\n'))


def test_import_csv_counts_invalid_rows(app):
    csv = 'Latitude,Longitude,PM25_ugm3\n-1.28,36.82,40\n,36.83,20\n-1.30,36.84,5000\n'
    summary = import_measurements_csv(io.StringIO(csv))
    assert summary['inserted'] == 1
    assert summary['invalid'] == 2


def test_import_csv_raises_alerts_above_threshold(app):
    import_measurements_csv(io.StringIO(ZONES_CSV))
    alerts = Alert.query.filter_by(alert_type='pollution_spike').all()
    assert len(alerts) == 1
    assert alerts[0].zone_name == 'Nairobi CBD'
    assert alerts[0].severity == 'medium'


def test_import_intervention_zones(app):
    csv = ('Zone_Name,Latitude,Longitude,Priority_Score,Dominant_Source,Policy_Type,'
           'Description,Expected_Impact,Status\n'
           'Dandora,-1.2364,36.8969,92,Waste,Waste Management,Stop dumpsite burning,'
           '25-30% PM2.5 reduction,Pending Approval\n'
           'Westlands,-1.2630,36.8089,65,Traffic,Traffic Restriction,Bus lanes,,In Progress\n')
    summary = import_intervention_zones_csv(io.StringIO(csv))

    assert summary == {'rows': 2, 'inserted': 2, 'invalid': 0}
    dandora = GridCell.query.filter_by(name='Dandora').one()
    assert dandora.priority_score == pytest.approx(9.2)
    assert dandora.dominant_source == 'waste'
    rec = PolicyRecommendation.query.filter_by(grid_id=dandora.id).one()
    assert rec.priority == 'critical'
    assert rec.policy_type == 'waste_management'
    assert rec.expected_impact_percent == 25.0
    assert rec.status == 'pending'
    westlands = GridCell.query.filter_by(name='Westlands').one()
    assert westlands.recommendations[0].status == 'in_progress'
    assert westlands.recommendations[0].expected_impact_percent == 20.0


def test_import_helpers():
    assert extract_impact_percentage('about 12.5% less') == 12.5
    assert extract_impact_percentage(None) == 20.0
    assert score_to_priority(80) == 'high'
    assert score_to_priority(59) == 'low'
    assert normalize_status('Approved') == 'approved'
    assert normalize_status('unknown') == 'pending'


def test_build_measurement_validation(app):
    with pytest.raises(ValueError):
        build_measurement({'latitude': -1.28})
    with pytest.raises(ValueError):
        build_measurement({'longitude': 36.8, 'latitude': -1.28, 'humidity': 120})
    with pytest.raises(ValueError):
        build_measurement({'longitude': 36.8, 'latitude': -1.28, 'quality_flag': 4})

    m = build_measurement({'longitude': '36.8', 'latitude': '-1.28', 'source_type': 'drone',
                           'pm25': 'n/a'})
    assert m.source_type == 'unknown'
    assert m.pm25 is None


def test_parse_timestamp_normalises_to_utc():
    assert parse_timestamp('2024-05-01T11:00:00+03:00') == datetime(2024, 5, 1, 8, 0)
    assert parse_timestamp('2024-05-01T08:00:00Z') == datetime(2024, 5, 1, 8, 0)
    assert parse_timestamp('yesterday') is None
    assert parse_timestamp('') is None


def test_store_measurements_duplicate_in_same_batch(app):
    record = {'longitude': 36.8, 'latitude': -1.28, 'pm25': 20,
              'recorded_at': '2024-05-01T08:00:00Z', 'source_type': 'ground_station'}
    summary = store_measurements([record, dict(record)])
    assert summary == {'inserted': 1, 'duplicates': 1, 'invalid': 0}


def test_generate_readings_profiles():
    import random

    now = datetime(2024, 5, 1, 8, 0)
    records = generate_readings(num_readings=3, now=now, rng=random.Random(1))

    assert len(records) == 18
    assert all(r['pm25'] >= 5 for r in records)
    assert records[2]['recorded_at'] == now
    assert len({(r['location_name'], r['recorded_at']) for r in records}) == 18


def test_time_of_day_factor():
    assert time_of_day_factor(8) == 1.3
    assert time_of_day_factor(23) == 0.7
    assert time_of_day_factor(13) == 1.0
