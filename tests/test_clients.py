from datetime import datetime

import pytest
import requests

from airwatch.services.copernicus import (CopernicusClient, CopernicusError,
                                          bbox_to_wkt, build_product_filter)
from airwatch.services.openaq import OpenAQClient, process_measurements
from airwatch.services.waqi import WAQIClient, feed_to_record

BBOX = [36.70, -1.40, 37.12, -1.15]


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code
        self.text = str(payload)

    def json(self):
        return self._payload


def _openaq_row(parameter, value, date, location_id=1, name='Nairobi CBD'):
    return {'locationId': location_id, 'location': name, 'parameter': parameter,
            'value': value, 'date': {'utc': date},
            'coordinates': {'latitude': -1.2864, 'longitude': 36.8172}}


def test_openaq_fetch_sends_key_and_city(monkeypatch):
    calls = {}

    def fake_get(url, params=None, headers=None, timeout=None):
        calls.update(url=url, params=params, headers=headers, timeout=timeout)
        return FakeResponse({'results': [_openaq_row('pm25', 40, '2024-05-01T08:00:00Z')]})

    monkeypatch.setattr(requests, 'get', fake_get)
    rows = OpenAQClient('https://api.openaq.org/v2/', api_key='key', timeout=3) \
        .fetch_latest_measurements(city='Nairobi', country='KE')

    assert len(rows) == 1
    assert calls['url'] == 'https://api.openaq.org/v2/measurements'
    assert calls['headers'] == {'X-API-Key': 'key'}
    assert calls['params']['city'] == 'Nairobi'
    assert calls['timeout'] == 3


def test_openaq_returns_empty_on_failure(monkeypatch):
    def timeout(*args, **kwargs):
        raise requests.exceptions.Timeout()

    monkeypatch.setattr(requests, 'get', timeout)
    assert OpenAQClient('https://api.openaq.org/v2').fetch_latest_measurements() == []

    monkeypatch.setattr(requests, 'get', lambda *a, **k: FakeResponse({}, status_code=401))
    assert OpenAQClient('https://api.openaq.org/v2').fetch_latest_measurements() == []


def test_process_measurements_keeps_latest_value_per_parameter():
    rows = [
        _openaq_row('pm25', 40, '2024-05-01T08:00:00Z'),
        _openaq_row('pm25', 52, '2024-05-01T09:00:00Z'),
        _openaq_row('no2', 30, '2024-05-01T07:00:00Z'),
        _openaq_row('pm25', 10, '2024-05-01T09:00:00Z', location_id=2, name='Karen'),
        _openaq_row('pm25', 99, None, location_id=3),
    ]
    records = {r['location_name']: r for r in process_measurements(rows)}

    assert set(records) == {'Nairobi CBD', 'Karen'}
    cbd = records['Nairobi CBD']
    assert cbd['pm25'] == 52
    assert cbd['no2'] == 30
    assert cbd['recorded_at'] == datetime(2024, 5, 1, 9, 0)
    assert cbd['data_source'] == 'OpenAQ'
    assert cbd['quality_flag'] == 2
    assert records['Karen']['quality_flag'] == 1


FEED = {
    'city': {'name': 'Nairobi', 'geo': [-1.2864, 36.8172]},
    'time': {'iso': '2024-05-01T11:00:00+03:00'},
    'iaqi': {'pm25': {'v': 57}, 'no2': {'v': 12.5}, 't': {'v': 22}, 'h': {'v': 60}},
}


def test_feed_to_record_swaps_coordinates():
    record = feed_to_record(FEED, station_name='US Embassy')

    assert record['latitude'] == -1.2864
    assert record['longitude'] == 36.8172
    assert record['location_name'] == 'US Embassy'
    assert record['pm25'] == 57
    assert record['temperature'] == 22
    assert record['so2'] is None
    assert record['recorded_at'] == datetime(2024, 5, 1, 8, 0)


def test_feed_to_record_without_geo():
    assert feed_to_record({'city': {'name': 'Nowhere'}}) is None


def test_waqi_fetch_city(monkeypatch):
    def fake_get(url, params=None, timeout=None):
        assert params['token'] == 'token'
        if url.endswith('/search/'):
            return FakeResponse({'status': 'ok',
                                 'data': [{'uid': 8672, 'station': {'name': 'Nairobi US Embassy'}}]})
        assert url.endswith('/feed/@8672/')
        return FakeResponse({'status': 'ok', 'data': FEED})

    monkeypatch.setattr(requests, 'get', fake_get)
    records = WAQIClient('token').fetch_city('Nairobi')

    assert len(records) == 1
    assert records[0]['location_name'] == 'Nairobi US Embassy'
    assert records[0]['data_source'] == 'WAQI'


def test_waqi_error_status(monkeypatch):
    monkeypatch.setattr(requests, 'get',
                        lambda *a, **k: FakeResponse({'status': 'error', 'data': 'Invalid key'}))
    assert WAQIClient('bad').fetch_city('Nairobi') == []
    assert WAQIClient(None).search_stations('Nairobi') == []


def test_copernicus_filter():
    wkt = bbox_to_wkt(BBOX)
    assert wkt.startswith('POLYGON((36.7 -1.4, 37.12 -1.4')
    expr = build_product_filter(BBOX, '2024-05-01T00:00:00.000Z', '2024-05-03T00:00:00.000Z')
    assert "Collection/Name eq 'SENTINEL-5P'" in expr
    assert 'ContentDate/Start gt 2024-05-01T00:00:00.000Z' in expr


def _copernicus():
    return CopernicusClient('client', 'secret', 'https://identity.example/token',
                            'https://catalogue.example/Products', timeout=5)


def test_copernicus_search_uses_bearer_token(monkeypatch):
    posts = []

    def fake_post(url, data=None, timeout=None):
        posts.append(data)
        return FakeResponse({'access_token': 'abc'})

    def fake_get(url, headers=None, params=None, timeout=None):
        assert headers == {'Authorization': 'Bearer abc'}
        assert params['$top'] == 2
        return FakeResponse({'value': [{'Id': 'p1', 'Name': 'S5P_OFFL_L2__NO2'}]})

    monkeypatch.setattr(requests, 'post', fake_post)
    monkeypatch.setattr(requests, 'get', fake_get)
    client = _copernicus()

    assert client.search_products(BBOX, 'a', 'b', top=2) == [{'Id': 'p1', 'Name': 'S5P_OFFL_L2__NO2'}]
    client.search_products(BBOX, 'a', 'b', top=2)
    assert len(posts) == 1
    assert posts[0]['grant_type'] == 'client_credentials'


def test_copernicus_rejected_credentials(monkeypatch):
    monkeypatch.setattr(requests, 'post', lambda *a, **k: FakeResponse({}, status_code=401))
    with pytest.raises(CopernicusError):
        _copernicus().get_token()

    with pytest.raises(CopernicusError):
        CopernicusClient(None, None, 'u', 'c').get_token()


class FakeStream(FakeResponse):
    def __init__(self, chunks):
        super().__init__({})
        self._chunks = chunks

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def raise_for_status(self):
        pass

    def iter_content(self, chunk_size=1024):
        return iter(self._chunks)


def test_copernicus_download_sample_is_capped(monkeypatch, tmp_path):
    monkeypatch.setattr(requests, 'post', lambda *a, **k: FakeResponse({'access_token': 'abc'}))
    monkeypatch.setattr(requests, 'get', lambda *a, **k: FakeStream([b'x' * 600, b'', b'y' * 600]))
    path = tmp_path / 'sample.nc'

    written = _copernicus().download_sample('p1', str(path), max_bytes=1000)

    assert written == 1000
    assert path.read_bytes() == b'x' * 600 + b'y' * 400
