"""
Mock Data Generation Service

Generates plausible readings for the Nairobi monitoring zones.
"""

import logging
import random
from datetime import datetime, timedelta

from airwatch.services.measurements import store_measurements

logger = logging.getLogger(__name__)


# Zone-specific pollutant profiles (µg/m³)
MONITORING_ZONES = {
    'Nairobi CBD': {'longitude': 36.8172, 'latitude': -1.2864,
                    'pm25_base': 45, 'no2_base': 35, 'so2_base': 8},
    'Industrial Area': {'longitude': 36.8581, 'latitude': -1.3128,
                        'pm25_base': 65, 'no2_base': 18, 'so2_base': 45},
    'Westlands': {'longitude': 36.8089, 'latitude': -1.2630,
                  'pm25_base': 32, 'no2_base': 25, 'so2_base': 5},
    'Embakasi': {'longitude': 36.8833, 'latitude': -1.3167,
                 'pm25_base': 85, 'no2_base': 22, 'so2_base': 30},
    'Karen': {'longitude': 36.7083, 'latitude': -1.3197,
              'pm25_base': 18, 'no2_base': 10, 'so2_base': 3},
    'Dandora': {'longitude': 36.8969, 'latitude': -1.2364,
                'pm25_base': 55, 'no2_base': 15, 'so2_base': 6},
}

DEFAULT_PROFILE = {'pm25_base': 30, 'no2_base': 20, 'so2_base': 5}


def time_of_day_factor(hour):
    if 7 <= hour <= 9 or 17 <= hour <= 19:  # Rush hours
        return 1.3
    if 22 <= hour or hour <= 5:  # Night time
        return 0.7
    return 1.0


def generate_readings(zones=None, num_readings=5, interval_minutes=10, now=None, rng=None):
    """
    Build mock measurement records for each zone.

    Args:
        zones: mapping of zone name to profile (defaults to MONITORING_ZONES)
        num_readings: number of readings per zone
        interval_minutes: spacing between consecutive readings
        now: timestamp of the latest reading
        rng: random.Random instance for reproducible output
    """
    zones = zones or MONITORING_ZONES
    now = now or datetime.utcnow().replace(microsecond=0)
    rng = rng or random.Random()
    records = []

    for name, zone in zones.items():
        profile = {**DEFAULT_PROFILE, **zone}

        for i in range(num_readings):
            timestamp = now - timedelta(minutes=interval_minutes * (num_readings - i - 1))
            factor = time_of_day_factor(timestamp.hour)

            pm25 = max(5, profile['pm25_base'] * factor + rng.uniform(-10, 15))
            pm10 = max(10, pm25 * rng.uniform(1.5, 2.0) + rng.uniform(-5, 10))
            no2 = max(1, profile['no2_base'] * factor + rng.uniform(-5, 5))
            so2 = max(0.5, profile['so2_base'] + rng.uniform(-2, 4))
            o3 = rng.uniform(20, 100)

            records.append({
                'longitude': profile['longitude'],
                'latitude': profile['latitude'],
                'location_name': name,
                'pm25': round(pm25, 2),
                'pm10': round(pm10, 2),
                'no2': round(no2, 2),
                'so2': round(so2, 2),
                'o3': round(o3, 2),
                'temperature': round(20 + rng.uniform(-5, 10), 1),
                'humidity': round(rng.uniform(45, 85), 1),
                'wind_speed': round(rng.uniform(0.5, 5.0), 1),
                'source_type': 'monitoring_station',
                'data_source': 'Simulated',
                'quality_flag': 1,
                'recorded_at': timestamp
            })

    return records


def simulate_measurements(num_readings=5, zones=None):
    """Generate and store mock readings for all zones."""
    records = generate_readings(zones=zones, num_readings=num_readings)
    summary = store_measurements(records)
    logger.info('Simulated %d readings for %d zones (%d inserted)',
                num_readings, len(zones or MONITORING_ZONES), summary['inserted'])
    return summary
