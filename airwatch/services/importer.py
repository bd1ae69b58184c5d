"""
CSV Import Services

Loads monitoring-zone measurements and intervention zones exported
as CSV files.
"""

import logging
import re

import pandas as pd

from airwatch.extensions import db
from airwatch.models import GridCell, PolicyRecommendation
from airwatch.services.aqi import category_to_quality_flag
from airwatch.services.measurements import store_measurements, to_float

logger = logging.getLogger(__name__)

# CSV column -> measurement field
MEASUREMENT_COLUMNS = {
    'PM25_ugm3': 'pm25',
    'PM10_ugm3': 'pm10',
    'NO2_ugm3': 'no2',
    'SO2_ugm3': 'so2',
    'O3_ugm3': 'o3',
    'CO_ugm3': 'co',
    'Last_Updated': 'recorded_at',
    'Location_Name': 'location_name',
    'Source_Name': 'data_source',
}

REQUIRED_COLUMNS = ['Latitude', 'Longitude']

STATUS_ALIASES = {
    'pending': 'pending',
    'pending approval': 'pending',
    'approved': 'approved',
    'in progress': 'in_progress',
    'in_progress': 'in_progress',
    'rejected': 'rejected',
}


def _value(row, column):
    """Row value with pandas NaN mapped to None."""
    value = row.get(column)
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    return value


def read_csv(source):
    df = pd.read_csv(source)
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f'Missing required columns: {missing}')
    return df


def rows_to_records(df, source_type='monitoring_station'):
    records = []
    for _, row in df.iterrows():
        record = {
            'longitude': _value(row, 'Longitude'),
            'latitude': _value(row, 'Latitude'),
            'source_type': source_type,
            'quality_flag': category_to_quality_flag(_value(row, 'AQI_Category')),
        }
        for column, field in MEASUREMENT_COLUMNS.items():
            record[field] = _value(row, column)
        record['data_source'] = record['data_source'] or 'CSV import'
        records.append(record)
    return records


def import_measurements_csv(source, source_type='monitoring_station'):
    """Import a monitoring-zone CSV into air_measurements.

    Only Latitude and Longitude are required; every other column is optional.
    Returns the row count with inserted, duplicate and invalid counts.
    """
    df = read_csv(source)
    logger.info('Loading %d monitoring locations', len(df))
    summary = store_measurements(rows_to_records(df, source_type=source_type))
    summary['rows'] = len(df)
    logger.info('Imported %d of %d rows (%d duplicates, %d invalid)',
                summary['inserted'], summary['rows'], summary['duplicates'], summary['invalid'])
    return summary


def extract_impact_percentage(impact_text, default=20.0):
    """First percentage in text such as '25-30% PM2.5 reduction'."""
    if not impact_text:
        return default
    match = re.search(r'(\d+(?:\.\d+)?)(?:-\d+(?:\.\d+)?)?%', str(impact_text))
    if match:
        return float(match.group(1))
    return default


def score_to_priority(score):
    """Priority level from a 0-100 zone score."""
    if score >= 90:
        return 'critical'
    if score >= 80:
        return 'high'
    if score >= 60:
        return 'medium'
    return 'low'


def normalize_status(value):
    return STATUS_ALIASES.get(str(value or 'pending').strip().lower(), 'pending')


def import_intervention_zones_csv(source):
    """Create a grid cell and one recommendation per intervention-zone row."""
    df = read_csv(source)
    created = 0
    skipped = 0

    for _, row in df.iterrows():
        longitude = to_float(_value(row, 'Longitude'))
        latitude = to_float(_value(row, 'Latitude'))
        if longitude is None or latitude is None:
            skipped += 1
            continue

        score = to_float(_value(row, 'Priority_Score'))
        score = 50.0 if score is None else score
        zone_name = _value(row, 'Zone_Name')
        dominant = _value(row, 'Dominant_Source') or 'unknown'

        cell = GridCell(
            name=zone_name,
            longitude=longitude,
            latitude=latitude,
            priority_score=min(10.0, max(0.0, score / 10.0)),
            dominant_source=str(dominant).strip().lower()
        )
        db.session.add(cell)
        db.session.flush()

        impact = _value(row, 'Expected_Impact')
        policy_type = str(_value(row, 'Policy_Type') or 'general').strip().lower().replace(' ', '_')
        db.session.add(PolicyRecommendation(
            grid_id=cell.id,
            policy_type=policy_type,
            title=_value(row, 'Description') or zone_name or f'Zone {cell.id}',
            description=f"Policy intervention for {zone_name or 'area'} - {impact or 'Impact TBD'}",
            priority=score_to_priority(score),
            expected_impact_percent=extract_impact_percentage(impact),
            status=normalize_status(_value(row, 'Status'))
        ))
        created += 1

    db.session.commit()
    logger.info('Imported %d intervention zones (%d skipped)', created, skipped)
    return {'rows': len(df), 'inserted': created, 'invalid': skipped}
