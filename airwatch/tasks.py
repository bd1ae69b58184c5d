"""
Background Tasks

Celery tasks for the analysis jobs. Each task runs inside the Flask
application context so the services can use the database session.

Start a worker with:

    celery -A app.celery_app worker --loglevel=info
"""

import logging

from celery import Celery, Task, shared_task
from flask import has_app_context

from airwatch.extensions import db
from airwatch.models import GridCell
from airwatch.services import (attribute_grid_sources, generate_recommendations,
                               run_hotspot_analysis, update_grid_priorities)

logger = logging.getLogger(__name__)


def celery_init_app(app):
    """Create the Celery app bound to ``app`` and register it as the default."""

    class FlaskTask(Task):
        def __call__(self, *args, **kwargs):
            # eager calls from a request reuse its session
            if has_app_context():
                return self.run(*args, **kwargs)
            with app.app_context():
                return self.run(*args, **kwargs)

    celery_app = Celery(app.name, task_cls=FlaskTask)
    celery_app.config_from_object(app.config['CELERY'])
    celery_app.set_default()
    app.extensions['celery'] = celery_app
    return celery_app


def _grid_not_found(grid_id):
    logger.warning('Grid cell %s not found', grid_id)
    return {
        'status': 'error',
        'grid_id': grid_id,
        'message': f'Grid cell {grid_id} not found',
        'error_type': 'LookupError'
    }


@shared_task
def detect_hotspots_task(hours=24, bbox=None):
    return run_hotspot_analysis(hours=hours, bbox=bbox)


@shared_task
def attribute_sources_task(grid_id, hours=24):
    cell = db.session.get(GridCell, grid_id)
    if cell is None:
        return _grid_not_found(grid_id)
    return attribute_grid_sources(cell, hours=hours)


@shared_task
def generate_policies_task(grid_id):
    cell = db.session.get(GridCell, grid_id)
    if cell is None:
        return _grid_not_found(grid_id)
    return generate_recommendations(cell)


@shared_task
def update_grid_priorities_task(hours=24):
    return update_grid_priorities(hours=hours)
