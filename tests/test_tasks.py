import pytest

from airwatch.extensions import db
from airwatch.models import Alert, GridCell, PolicyRecommendation
from airwatch.tasks import (attribute_sources_task, detect_hotspots_task,
                            generate_policies_task, update_grid_priorities_task)


def test_celery_app_is_registered(app):
    celery_app = app.extensions['celery']
    assert celery_app.conf.task_always_eager is True
    assert 'airwatch.tasks.update_grid_priorities_task' in celery_app.tasks


def test_detect_hotspots_task(make_measurement):
    for i in range(20):
        make_measurement(longitude=36.80 + i * 0.001, pm25=30 + (i % 3))
    make_measurement(longitude=36.90, pm25=250)

    result = detect_hotspots_task.delay(hours=24).get()

    assert result['status'] == 'success'
    assert result['hotspots_found'] == 1
    assert Alert.query.filter_by(alert_type='hotspot_detected').count() == 1


def test_attribute_sources_task(grid_cell, make_measurement):
    for _ in range(12):
        make_measurement(pm25=40, pm10=100, no2=5, so2=35)

    result = attribute_sources_task.delay(grid_cell.id).get()

    assert result['dominant_source'] == 'industry'
    assert db.session.get(GridCell, grid_cell.id).dominant_source == 'industry'


def test_generate_policies_task(grid_cell, make_measurement):
    for _ in range(3):
        make_measurement(pm25=60)

    result = generate_policies_task.delay(grid_cell.id).get()

    assert result['recommendations_generated'] == 2
    assert PolicyRecommendation.query.filter_by(grid_id=grid_cell.id).count() == 2


@pytest.mark.parametrize('task', [attribute_sources_task, generate_policies_task])
def test_grid_tasks_report_missing_cell(app, task):
    result = task.delay(999).get()
    assert result['status'] == 'error'
    assert result['grid_id'] == 999


def test_update_grid_priorities_task(grid_cell, make_measurement):
    make_measurement(pm25=80)

    result = update_grid_priorities_task.delay(hours=24).get()

    assert result['total_grids_updated'] == 1
    assert db.session.get(GridCell, grid_cell.id).priority_score == pytest.approx(8.0)
