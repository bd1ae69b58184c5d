"""
Hotspot Detection Service

Flags readings that sit more than two (high) or three (critical) standard
deviations above the mean PM2.5 of the sample.
"""

import logging
from datetime import datetime

import pandas as pd

from airwatch.extensions import db
from airwatch.services.alerts import raise_alert
from airwatch.services.measurements import recent_measurements

logger = logging.getLogger(__name__)

MIN_DATA_POINTS = 5
HIGH_SIGMA = 2
CRITICAL_SIGMA = 3
MAX_RESULTS = 10
MAX_ALERTS = 5

COLUMNS = ['longitude', 'latitude', 'pm25', 'no2', 'source_type', 'recorded_at']


def classify_reading(pm25, mean, std):
    """Return 'critical', 'high' or None for a reading against mean and std."""
    if pm25 > mean + CRITICAL_SIGMA * std:
        return 'critical'
    if pm25 > mean + HIGH_SIGMA * std:
        return 'high'
    return None


def detect_hotspots(readings):
    """Statistical hotspot detection over an in-memory collection of readings.

    Args:
        readings: iterable of dicts with the keys in ``COLUMNS``

    Returns:
        Result dict; ``status`` is ``insufficient_data`` for fewer than
        five usable readings.
    """
    df = pd.DataFrame(list(readings), columns=COLUMNS)
    df['pm25'] = pd.to_numeric(df['pm25'], errors='coerce')
    df['no2'] = pd.to_numeric(df['no2'], errors='coerce')
    df = df[df['pm25'].notna()]

    if len(df) < MIN_DATA_POINTS:
        return {
            'status': 'insufficient_data',
            'message': 'Not enough data points for hotspot analysis',
            'data_points': len(df)
        }

    pm25_mean = float(df['pm25'].mean())
    pm25_std = float(df['pm25'].std())
    threshold_high = pm25_mean + HIGH_SIGMA * pm25_std
    threshold_critical = pm25_mean + CRITICAL_SIGMA * pm25_std

    hotspots = []
    for row in df.itertuples(index=False):
        priority = classify_reading(row.pm25, pm25_mean, pm25_std)
        if priority is None:
            continue

        recorded_at = row.recorded_at
        hotspots.append({
            'longitude': float(row.longitude),
            'latitude': float(row.latitude),
            'pm25_level': float(row.pm25),
            'no2_level': float(row.no2) if pd.notna(row.no2) else None,
            'source_type': row.source_type,
            'priority': priority,
            'severity_score': round(float(row.pm25 / pm25_mean), 3),
            'recorded_at': recorded_at.isoformat() if hasattr(recorded_at, 'isoformat') else recorded_at
        })

    hotspots.sort(key=lambda h: h['severity_score'], reverse=True)

    return {
        'status': 'success',
        'analysis_type': 'hotspot_detection',
        'total_measurements': len(df),
        'mean_pm25': round(pm25_mean, 2),
        'std_pm25': round(pm25_std, 2),
        'threshold_high': round(threshold_high, 2),
        'threshold_critical': round(threshold_critical, 2),
        'hotspots_found': len(hotspots),
        'hotspots': hotspots[:MAX_RESULTS],
        'generated_at': datetime.utcnow().isoformat()
    }


def run_hotspot_analysis(hours=24, bbox=None):
    """Load recent readings, detect hotspots and record the worst as alerts."""
    try:
        readings = [
            {
                'longitude': m.longitude,
                'latitude': m.latitude,
                'pm25': m.pm25,
                'no2': m.no2,
                'source_type': m.source_type,
                'recorded_at': m.recorded_at
            }
            for m in recent_measurements(hours=hours, bbox=bbox)
        ]
        result = detect_hotspots(readings)
        if result['status'] != 'success':
            return result

        for hotspot in result['hotspots'][:MAX_ALERTS]:
            raise_alert(
                'hotspot_detected',
                hotspot['priority'],
                f"Pollution hotspot detected: {hotspot['pm25_level']:.1f} μg/m³ PM2.5",
                longitude=hotspot['longitude'],
                latitude=hotspot['latitude'],
                value=hotspot['pm25_level'],
                threshold=result['threshold_high']
            )
        db.session.commit()
        logger.info('Hotspot analysis found %d hotspots in %d readings',
                    result['hotspots_found'], result['total_measurements'])
        return result

    except Exception as e:
        db.session.rollback()
        logger.exception('Hotspot analysis failed: %s', e)
        return {
            'status': 'error',
            'message': str(e),
            'error_type': type(e).__name__
        }
