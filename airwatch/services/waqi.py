"""
WAQI Data Service

Station search and feed lookup against the World Air Quality Index API.
"""

import logging

import requests

from airwatch.services.measurements import parse_timestamp, to_float

logger = logging.getLogger(__name__)

# WAQI iaqi keys to measurement fields
IAQI_FIELDS = {
    'pm25': 'pm25',
    'pm10': 'pm10',
    'no2': 'no2',
    'so2': 'so2',
    'o3': 'o3',
    'co': 'co',
    't': 'temperature',
    'h': 'humidity',
    'w': 'wind_speed',
}


class WAQIClient:
    """Token-authenticated client for api.waqi.info"""

    def __init__(self, token, base_url='https://api.waqi.info', timeout=8):
        self.token = token
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

    def _get(self, url, params):
        resp = requests.get(url, params={'token': self.token, **params}, timeout=self.timeout)
        data = resp.json()
        if resp.status_code != 200 or data.get('status') != 'ok':
            logger.error('WAQI error %s: %s', resp.status_code, data.get('data') or data.get('message'))
            return None
        return data.get('data')

    def search_stations(self, keyword):
        if not self.token:
            logger.warning('No WAQI token configured')
            return []
        try:
            return self._get(f'{self.base_url}/search/', {'keyword': keyword}) or []
        except requests.exceptions.Timeout:
            logger.error('WAQI search timed out')
            return []
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error('WAQI search failed: %s', e)
            return []

    def fetch_feed(self, station_uid):
        if not self.token:
            logger.warning('No WAQI token configured')
            return None
        try:
            return self._get(f'{self.base_url}/feed/@{station_uid}/', {})
        except requests.exceptions.Timeout:
            logger.error('WAQI feed timed out')
            return None
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error('WAQI feed failed: %s', e)
            return None

    def fetch_city(self, city='Nairobi'):
        """Return measurement records for the first station matching ``city``."""
        stations = self.search_stations(city)
        if not stations:
            logger.warning('No WAQI stations found for %s', city)
            return []

        station = stations[0]
        uid = station.get('uid')
        if uid is None:
            return []

        feed = self.fetch_feed(uid)
        if not feed:
            return []

        record = feed_to_record(feed, station_name=(station.get('station') or {}).get('name'))
        return [record] if record else []


def feed_to_record(feed, station_name=None):
    """Convert a WAQI feed payload into a measurement record."""
    city = feed.get('city') or {}
    geo = city.get('geo') or []
    if len(geo) != 2:
        return None

    record = {
        'latitude': geo[0],
        'longitude': geo[1],
        'location_name': station_name or city.get('name'),
        'source_type': 'monitoring_station',
        'data_source': 'WAQI',
        'recorded_at': parse_timestamp((feed.get('time') or {}).get('iso'))
    }
    iaqi = feed.get('iaqi') or {}
    for key, field in IAQI_FIELDS.items():
        value = iaqi.get(key)
        record[field] = to_float(value.get('v')) if isinstance(value, dict) else None
    return record
