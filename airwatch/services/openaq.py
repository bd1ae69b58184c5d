"""
OpenAQ Data Service

Single-page fetch of recent city measurements from the OpenAQ API,
reshaped into measurement records.
"""

import logging
from datetime import datetime, timedelta

import requests

from airwatch.services.aqi import aqi_category, category_to_quality_flag
from airwatch.services.measurements import parse_timestamp

logger = logging.getLogger(__name__)

POLLUTANTS = ('pm25', 'pm10', 'no2', 'so2', 'o3', 'co')


class OpenAQClient:
    """Thin client for the OpenAQ measurements endpoint"""

    def __init__(self, base_url, api_key=None, timeout=8):
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.timeout = timeout

    def _headers(self):
        return {'X-API-Key': self.api_key} if self.api_key else {}

    def fetch_latest_measurements(self, city='Nairobi', country='KE', hours_back=24, limit=10000):
        """Fetch one page of raw measurements for the last ``hours_back`` hours."""
        end_date = datetime.utcnow()
        start_date = end_date - timedelta(hours=hours_back)
        params = {
            'country': country,
            'city': city,
            'date_from': start_date.strftime('%Y-%m-%dT%H:%M:%S+00:00'),
            'date_to': end_date.strftime('%Y-%m-%dT%H:%M:%S+00:00'),
            'limit': limit,
            'sort': 'desc'
        }

        try:
            resp = requests.get(f'{self.base_url}/measurements', params=params,
                                headers=self._headers(), timeout=self.timeout)
            if resp.status_code != 200:
                logger.error('OpenAQ error %s: %s', resp.status_code, resp.text[:200])
                return []
            results = resp.json().get('results', [])
            logger.info('Fetched %d OpenAQ measurements for %s', len(results), city)
            return results
        except requests.exceptions.Timeout:
            logger.error('OpenAQ request timed out')
            return []
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error('OpenAQ request failed: %s', e)
            return []


def process_measurements(measurements):
    """Group raw OpenAQ rows by location, keeping the latest value per parameter.

    Returns a list of measurement records ready for storage.
    """
    locations = {}

    for row in measurements:
        coordinates = row.get('coordinates') or {}
        parameter = row.get('parameter')
        timestamp = parse_timestamp((row.get('date') or {}).get('utc'))
        if parameter is None or timestamp is None:
            continue

        location_id = row.get('locationId') or row.get('location')
        entry = locations.setdefault(location_id, {
            'location_name': row.get('location') or str(location_id),
            'latitude': coordinates.get('latitude'),
            'longitude': coordinates.get('longitude'),
            'values': {}
        })

        current = entry['values'].get(parameter)
        if current is None or timestamp > current['date']:
            entry['values'][parameter] = {'value': row.get('value'), 'date': timestamp}

    records = []
    for entry in locations.values():
        values = entry['values']
        if not values:
            continue

        record = {
            'longitude': entry['longitude'],
            'latitude': entry['latitude'],
            'location_name': entry['location_name'],
            'source_type': 'monitoring_station',
            'data_source': 'OpenAQ',
            'recorded_at': max(v['date'] for v in values.values())
        }
        for pollutant in POLLUTANTS:
            record[pollutant] = values.get(pollutant, {}).get('value')
        record['quality_flag'] = category_to_quality_flag(aqi_category(record['pm25']))
        records.append(record)

    return records
