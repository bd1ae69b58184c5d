"""
Source Attribution Service

Rule-based estimate of which source category dominates a zone, from
chemical signatures of its recent measurements.
"""

import logging
from datetime import datetime

import numpy as np
import pandas as pd

from airwatch.extensions import db
from airwatch.services.measurements import measurements_in_cell

logger = logging.getLogger(__name__)

SOURCES = ('traffic', 'industry', 'waste_burning', 'background')

MIN_MEASUREMENTS = 10

TRAFFIC_NO2_PM_RATIO = 0.6
INDUSTRY_SO2 = 20.0
WASTE_PM_RATIO = 0.7
EVENING_HOURS = (18, 19, 20, 21)
DAYTIME_HOURS = (10, 11, 12, 13, 14)
EVENING_PEAK_FACTOR = 1.3

COLUMNS = ['pm25', 'pm10', 'no2', 'so2', 'recorded_at']


def _clean(value, digits):
    if value is None or pd.isna(value):
        return None
    return round(float(value), digits)


def attribute_sources(measurements):
    """Split pollution between the four source categories.

    Args:
        measurements: iterable of dicts with pm25, pm10, no2, so2, recorded_at

    Returns:
        Result dict with ``source_attribution`` summing to 1.0.
    """
    df = pd.DataFrame(list(measurements), columns=COLUMNS)
    for column in ('pm25', 'pm10', 'no2', 'so2'):
        df[column] = pd.to_numeric(df[column], errors='coerce')
    df = df[df['pm25'].notna()]

    if len(df) < MIN_MEASUREMENTS:
        return {
            'status': 'insufficient_data',
            'message': f'Need at least {MIN_MEASUREMENTS} measurements for reliable attribution',
            'available_measurements': len(df)
        }

    contributions = {source: 0.0 for source in SOURCES}

    # Traffic: high NO2 relative to fine particles
    no2_pm_ratio = (df['no2'] / df['pm25'].replace(0, np.nan)).mean()
    if no2_pm_ratio > TRAFFIC_NO2_PM_RATIO:
        contributions['traffic'] = min(0.8, float(no2_pm_ratio))

    # Industry: elevated SO2
    avg_so2 = df['so2'].mean()
    if avg_so2 > INDUSTRY_SO2:
        contributions['industry'] = min(0.7, float(avg_so2) / 50)

    # Waste burning: fine particles dominate and PM2.5 peaks in the evening
    pm_ratio = (df['pm25'] / df['pm10'].replace(0, np.nan)).mean()
    if pm_ratio > WASTE_PM_RATIO:
        hours = pd.to_datetime(df['recorded_at']).dt.hour
        evening_avg = df.loc[hours.isin(EVENING_HOURS), 'pm25'].mean()
        day_avg = df.loc[hours.isin(DAYTIME_HOURS), 'pm25'].mean()
        if evening_avg > day_avg * EVENING_PEAK_FACTOR:
            contributions['waste_burning'] = 0.5

    total = sum(contributions.values())
    if total > 0:
        contributions = {k: v / total for k, v in contributions.items()}
    else:
        contributions['background'] = 1.0

    confidence = min(1.0, len(df) / 50) * 0.8
    dominant_source = max(contributions, key=contributions.get)

    return {
        'status': 'success',
        'source_attribution': contributions,
        'dominant_source': dominant_source,
        'confidence': round(confidence, 2),
        'measurements_analyzed': len(df),
        'chemical_signatures': {
            'avg_no2_pm_ratio': _clean(no2_pm_ratio, 2),
            'avg_so2': _clean(avg_so2, 1),
            'avg_pm_ratio': _clean(pm_ratio, 2)
        },
        'generated_at': datetime.utcnow().isoformat()
    }


def attribute_grid_sources(cell, hours=24):
    """Run attribution for a grid cell and store its dominant source."""
    try:
        rows = [
            {'pm25': m.pm25, 'pm10': m.pm10, 'no2': m.no2, 'so2': m.so2,
             'recorded_at': m.recorded_at}
            for m in measurements_in_cell(cell, hours=hours)
        ]
        result = attribute_sources(rows)
        result['grid_id'] = cell.id
        if result['status'] != 'success':
            return result

        cell.dominant_source = result['dominant_source']
        cell.last_updated = datetime.utcnow()
        db.session.add(cell)
        db.session.commit()
        logger.info('Grid %s dominant source: %s', cell.id, cell.dominant_source)
        return result

    except Exception as e:
        db.session.rollback()
        logger.exception('Source attribution failed for grid %s: %s', cell.id, e)
        return {
            'status': 'error',
            'grid_id': cell.id,
            'message': str(e),
            'error_type': type(e).__name__
        }
