"""
Measurement Storage Services

Validation, best-effort insertion and recent-reading queries for
air measurements.
"""

import logging
import math
from datetime import datetime, timedelta, timezone

from flask import current_app
from sqlalchemy.exc import IntegrityError

from airwatch.extensions import db
from airwatch.models import Measurement
from airwatch.models.measurement import SOURCE_TYPES
from airwatch.services.alerts import alert_for_measurement

logger = logging.getLogger(__name__)

# Accepted (min, max) ranges
VALUE_RANGES = {
    'pm25': (0, 1000),
    'pm10': (0, 2000),
    'no2': (0, 500),
    'so2': (0, 1000),
    'co': (0, 100),
    'o3': (0, 500),
    'humidity': (0, 100),
    'wind_speed': (0, None),
    'confidence_score': (0, 1),
}

NUMERIC_FIELDS = ('pm25', 'pm10', 'no2', 'so2', 'co', 'o3',
                  'temperature', 'humidity', 'wind_speed', 'confidence_score')


def parse_timestamp(value):
    """Parse an ISO-8601 string (or datetime) into a naive UTC datetime.

    Returns None when the value is empty or unparseable.
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def to_float(value):
    """Convert to float, mapping blanks, NaN and junk to None."""
    if value is None or value == '':
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return number


def build_measurement(record):
    """Validate a plain dict and return an unsaved Measurement.

    Raises ValueError when the location is missing or a value is out of range.
    """
    longitude = to_float(record.get('longitude'))
    latitude = to_float(record.get('latitude'))
    if longitude is None or latitude is None:
        raise ValueError('Measurement requires a longitude/latitude pair')
    if not (-180 <= longitude <= 180 and -90 <= latitude <= 90):
        raise ValueError(f'Invalid coordinates: ({longitude}, {latitude})')

    values = {}
    for field in NUMERIC_FIELDS:
        value = to_float(record.get(field))
        if value is not None and field in VALUE_RANGES:
            low, high = VALUE_RANGES[field]
            if value < low or (high is not None and value > high):
                raise ValueError(f'{field} value {value} outside range {low}-{high}')
        values[field] = value

    source_type = record.get('source_type') or 'unknown'
    if source_type not in SOURCE_TYPES:
        source_type = 'unknown'

    try:
        quality_flag = int(record.get('quality_flag') or 1)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid quality flag: {record.get('quality_flag')}")
    if quality_flag not in (1, 2, 3):
        raise ValueError(f'Invalid quality flag: {quality_flag}')

    return Measurement(
        longitude=longitude,
        latitude=latitude,
        location_name=record.get('location_name'),
        source_type=source_type,
        data_source=record.get('data_source'),
        quality_flag=quality_flag,
        recorded_at=parse_timestamp(record.get('recorded_at')) or datetime.utcnow(),
        **values
    )


def store_measurement(record, raise_alerts=True):
    """Insert one measurement, skipping it on a uniqueness conflict.

    Returns the stored Measurement, or None when it already existed.
    The caller commits.
    """
    measurement = build_measurement(record)
    exists = Measurement.query.filter_by(
        longitude=measurement.longitude,
        latitude=measurement.latitude,
        recorded_at=measurement.recorded_at,
        source_type=measurement.source_type
    ).first()
    if exists:
        return None

    try:
        with db.session.begin_nested():
            db.session.add(measurement)
    except IntegrityError:
        logger.debug('Skipping duplicate measurement at (%s, %s) %s',
                     measurement.longitude, measurement.latitude, measurement.recorded_at)
        return None

    if raise_alerts:
        alert_for_measurement(measurement, current_app.config['ALERT_THRESHOLD_PM25'])
    return measurement


def store_measurements(records, raise_alerts=True):
    """Insert many records and commit once.

    Returns counts of inserted, duplicate and invalid records.
    """
    summary = {'inserted': 0, 'duplicates': 0, 'invalid': 0}
    for record in records:
        try:
            stored = store_measurement(record, raise_alerts=raise_alerts)
        except ValueError as e:
            logger.warning('Invalid measurement skipped: %s', e)
            summary['invalid'] += 1
            continue
        if stored is None:
            summary['duplicates'] += 1
        else:
            summary['inserted'] += 1
    db.session.commit()
    return summary


def recent_measurements(hours=24, bbox=None, require_pm25=True, quality_flag=None):
    """Measurements recorded within the last ``hours``, optionally in a bbox."""
    since = datetime.utcnow() - timedelta(hours=hours)
    query = Measurement.query.filter(Measurement.recorded_at > since)
    if require_pm25:
        query = query.filter(Measurement.pm25.isnot(None))
    if quality_flag is not None:
        query = query.filter(Measurement.quality_flag == quality_flag)
    if bbox:
        query = query.filter(
            Measurement.longitude.between(bbox[0], bbox[2]),
            Measurement.latitude.between(bbox[1], bbox[3])
        )
    return query.order_by(Measurement.recorded_at.desc()).all()


def measurements_in_cell(cell, hours=24, quality_flag=None):
    """Recent measurements that fall inside a grid cell's buffer."""
    candidates = recent_measurements(hours=hours, bbox=cell.bounds(), quality_flag=quality_flag)
    return [m for m in candidates if cell.contains(m.longitude, m.latitude)]
