import json

import pytest

from airwatch.extensions import db
from airwatch.models import Alert, GridCell, PolicyRecommendation


def test_index_and_health(client):
    r = client.get('/')
    assert r.status_code == 200
    assert r.get_json()['endpoints']['air'] == '/api/air'

    r = client.get('/health')
    assert r.status_code == 200
    assert r.get_json()['database'] == 'connected'


def test_unknown_route_is_json(client):
    r = client.get('/api/air/nothing-here')
    assert r.status_code == 404
    assert r.get_json() == {'error': 'Not found'}


def test_zones_geojson(client, make_measurement):
    make_measurement(pm25=42.0, location_name='Nairobi CBD')
    make_measurement(pm25=20.0, source_type='satellite')
    # outside the city bbox
    make_measurement(longitude=39.66, latitude=-4.04, pm25=15.0)

    body = client.get('/api/air/zones').get_json()

    assert body['type'] == 'FeatureCollection'
    assert body['total_zones'] == 1
    props = body['features'][0]['properties']
    assert props['id'] == 'zone_1'
    assert props['aqi_category'] == 'Unhealthy'
    assert props['health_message'] == 'Everyone should limit prolonged outdoor exertion'
    assert body['features'][0]['geometry'] == {'type': 'Point', 'coordinates': [36.8172, -1.2864]}


def test_hotspots_aggregate_by_location(client, make_measurement):
    for value in (40, 50, 60):
        make_measurement(pm25=value)
    make_measurement(longitude=36.7083, latitude=-1.3197, pm25=12)

    body = client.get('/api/air/hotspots').get_json()

    assert body['total_hotspots'] == 1
    props = body['features'][0]['properties']
    assert props['pm25_avg'] == 50.0
    assert props['reading_count'] == 3
    assert props['health_impact'] == 'Unhealthy'


@pytest.mark.parametrize('bbox', ['1,2,3', 'a,b,c,d', '37,0,36,1'])
def test_hotspots_reject_bad_bbox(client, bbox):
    r = client.get(f'/api/air/hotspots?bbox={bbox}')
    assert r.status_code == 400
    assert r.get_json()['error'] == 'Invalid bbox'


def test_measurements_filters(client, make_measurement):
    make_measurement(pm25=30, source_type='ground_station')
    make_measurement(pm25=31, source_type='satellite', minutes_ago=600)
    make_measurement(longitude=36.70, latitude=-1.32, pm25=32, source_type='satellite')

    body = client.get('/api/air/measurements?source_type=satellite').get_json()
    assert body['total_measurements'] == 2

    body = client.get('/api/air/measurements?bbox=36.80,-1.30,36.83,-1.28&limit=5').get_json()
    assert body['total_measurements'] == 2

    body = client.get('/api/air/measurements?limit=1').get_json()
    assert body['total_measurements'] == 1

    r = client.get('/api/air/measurements?start_time=not-a-date')
    assert r.status_code == 400


def test_analysis_insufficient_data(client, make_measurement):
    make_measurement(pm25=30)
    r = client.post('/api/air/analysis', json={'hours': 6})
    assert r.status_code == 200
    assert r.get_json()['status'] == 'insufficient_data'

    r = client.post('/api/air/analysis', json={'hours': 'six'})
    assert r.status_code == 400


@pytest.mark.parametrize('url', ['/api/air/analysis', '/api/air/grid/recompute'])
def test_hours_are_capped_at_one_year(client, url):
    r = client.post(url, json={'hours': 10 ** 9})
    assert r.status_code == 400
    assert 'at most 8760' in r.get_json()['message']

    r = client.post(url, json={'hours': 8761})
    assert r.status_code == 400


def test_grid_and_recompute(client, grid_cell, make_measurement):
    make_measurement(pm25=65)

    r = client.post('/api/air/grid/recompute')
    assert r.status_code == 202
    assert r.get_json()['status'] == 'queued'
    assert r.get_json()['task_id']

    body = client.get('/api/air/grid').get_json()
    feature = body['features'][0]
    assert feature['geometry']['type'] == 'Polygon'
    ring = feature['geometry']['coordinates'][0]
    assert ring[0] == ring[-1]
    assert feature['properties']['priority_score'] == pytest.approx(6.5)
    assert feature['properties']['intervention_urgency'] == 'high'


def test_attribution_endpoint(client, grid_cell, make_measurement):
    r = client.post('/api/air/grid/999/attribution')
    assert r.status_code == 404

    r = client.post(f'/api/air/grid/{grid_cell.id}/attribution')
    assert r.get_json()['status'] == 'insufficient_data'

    for _ in range(10):
        make_measurement(pm25=40, pm10=100, no2=5, so2=2)
    body = client.post(f'/api/air/grid/{grid_cell.id}/attribution').get_json()
    assert body['status'] == 'success'
    assert body['source_attribution']['background'] == 1.0


def test_generate_and_list_recommendations(client, grid_cell, make_measurement):
    for _ in range(3):
        make_measurement(pm25=70)

    r = client.post(f'/api/policy/grid/{grid_cell.id}/generate')
    assert r.status_code == 200
    assert r.get_json()['recommendations_generated'] == 2

    body = client.get('/api/policy/recommendations?priority=high').get_json()
    assert body['total'] == 1
    assert body['recommendations'][0]['zone_name'] == 'Nairobi CBD'

    assert client.get('/api/policy/recommendations?status=bogus').status_code == 400
    assert client.post('/api/policy/grid/999/generate').status_code == 404


def _add_recommendation(grid_cell):
    rec = PolicyRecommendation(grid_id=grid_cell.id, policy_type='waste_management',
                               title='Enhanced Waste Collection', priority='high',
                               expected_impact_percent=40.0, implementation_time_days=60)
    db.session.add(rec)
    db.session.commit()
    return rec


def test_update_recommendation_status(client, grid_cell):
    rec = _add_recommendation(grid_cell)
    url = f'/api/policy/recommendations/{rec.id}/status'

    r = client.patch(url, data=json.dumps({'status': 'approved', 'notes': 'Budget agreed'}),
                     content_type='application/json')
    assert r.status_code == 200
    assert r.get_json()['new_status'] == 'approved'

    r = client.patch(url, json={'status': 'implemented'})
    assert r.status_code == 400
    assert 'in_progress' in r.get_json()['valid_statuses']
    assert db.session.get(PolicyRecommendation, rec.id).status == 'approved'

    assert client.patch(url, json={}).status_code == 400
    assert client.patch('/api/policy/recommendations/999/status',
                        json={'status': 'approved'}).status_code == 404


def test_simulate_policy(client, grid_cell):
    rec = _add_recommendation(grid_cell)

    r = client.post('/api/policy/simulate', json={'policy_id': rec.id})
    assert r.status_code == 200
    results = r.get_json()['simulation_results']
    assert results['baseline_pm25'] == 45.2
    assert results['impact_percent'] == 32.0

    assert client.post('/api/policy/simulate', json={'policy_id': 999}).status_code == 404
    assert client.post('/api/policy/simulate', json={}).status_code == 400


def test_alerts_listing_and_update(client):
    db.session.add_all([
        Alert(alert_type='pollution_spike', severity='high', message='PM2.5 60'),
        Alert(alert_type='pollution_spike', severity='low', message='PM2.5 36'),
        Alert(alert_type='pollution_spike', severity='high', message='old', status='resolved'),
    ])
    db.session.commit()

    body = client.get('/api/policy/alerts').get_json()
    assert body['total'] == 2

    body = client.get('/api/policy/alerts?severity=high').get_json()
    assert body['total'] == 1
    alert_id = body['alerts'][0]['id']

    assert client.get('/api/policy/alerts?severity=extreme').status_code == 400

    r = client.patch(f'/api/policy/alerts/{alert_id}', json={'status': 'resolved'})
    assert r.status_code == 200
    assert r.get_json()['resolved_at'] is not None
    assert client.get('/api/policy/alerts?severity=high').get_json()['total'] == 0

    assert client.patch(f'/api/policy/alerts/{alert_id}', json={'status': 'gone'}).status_code == 400


def test_dashboard_stats(client, grid_cell, make_measurement):
    make_measurement(pm25=30)
    make_measurement(pm25=60, source_type='satellite')
    _add_recommendation(grid_cell)
    db.session.add(Alert(alert_type='pollution_spike', severity='high', message='PM2.5 60'))
    db.session.commit()

    body = client.get('/api/policy/dashboard').get_json()

    assert body['air_quality']['total_measurements'] == 2
    assert body['air_quality']['avg_pm25'] == 45.0
    assert body['air_quality']['unhealthy_readings'] == 1
    assert body['air_quality']['very_unhealthy_readings'] == 1
    assert body['policy_stats']['pending']['count'] == 1
    assert body['alert_stats'] == {'high': 1}
    assert {s['source_type'] for s in body['pollution_sources']} == {'monitoring_station', 'satellite'}


def test_default_grid_is_seeded():
    from airwatch import create_app
    from airwatch.config import TestConfig

    class SeededConfig(TestConfig):
        SEED_DEFAULT_GRID = True

    app = create_app(SeededConfig)
    with app.app_context():
        assert GridCell.query.count() == 6
        db.session.remove()
        db.drop_all()
