"""
Air Routes

GeoJSON endpoints for measurements, hotspots and the policy grid.
"""

import logging

from flask import current_app, jsonify, request

from airwatch.air import air_bp
from airwatch.air.services import (get_grid, get_hotspots, get_measurements,
                                   get_monitoring_zones)
from airwatch.extensions import db
from airwatch.models import GridCell
from airwatch.services import attribute_grid_sources, run_hotspot_analysis
from airwatch.services.geo import parse_bbox
from airwatch.services.measurements import parse_timestamp
from airwatch.tasks import update_grid_priorities_task

logger = logging.getLogger(__name__)

MAX_LIMIT = 10000
# one year
MAX_HOURS = 8760


def _server_error(message, e):
    logger.exception('%s: %s', message, e)
    return jsonify({'error': message, 'message': str(e)}), 500


def _hours_from(data, default):
    try:
        hours = int(data.get('hours', default))
    except (TypeError, ValueError):
        raise ValueError('hours must be an integer')
    if hours <= 0:
        raise ValueError('hours must be positive')
    if hours > MAX_HOURS:
        raise ValueError(f'hours must be at most {MAX_HOURS}')
    return hours


@air_bp.route('/zones')
def zones():
    """Monitoring-station readings inside the configured city bounding box"""
    try:
        return jsonify(get_monitoring_zones(current_app.config['CITY_BBOX'],
                                            city=current_app.config['DEFAULT_CITY']))
    except Exception as e:
        return _server_error('Failed to load monitoring zones', e)


@air_bp.route('/hotspots')
def hotspots():
    try:
        bbox = parse_bbox(request.args.get('bbox')) or current_app.config['CITY_BBOX']
    except ValueError as e:
        return jsonify({'error': 'Invalid bbox', 'message': str(e)}), 400

    try:
        return jsonify(get_hotspots(bbox, city=current_app.config['DEFAULT_CITY'],
                                    hours=current_app.config['HOTSPOT_WINDOW_HOURS']))
    except Exception as e:
        return _server_error('Failed to load hotspots', e)


@air_bp.route('/measurements')
def measurements():
    """Raw measurements filtered by bbox, time range and source type"""
    try:
        bbox = parse_bbox(request.args.get('bbox'))
    except ValueError as e:
        return jsonify({'error': 'Invalid bbox', 'message': str(e)}), 400

    start_time = request.args.get('start_time')
    end_time = request.args.get('end_time')
    start = parse_timestamp(start_time)
    end = parse_timestamp(end_time)
    if (start_time and start is None) or (end_time and end is None):
        return jsonify({'error': 'Invalid time range',
                        'message': 'start_time and end_time must be ISO-8601 timestamps'}), 400

    limit = request.args.get('limit', 1000, type=int)
    if limit <= 0:
        return jsonify({'error': 'Invalid limit', 'message': 'limit must be positive'}), 400

    try:
        return jsonify(get_measurements(bbox=bbox, start_time=start, end_time=end,
                                        source_type=request.args.get('source_type'),
                                        limit=min(limit, MAX_LIMIT)))
    except Exception as e:
        return _server_error('Failed to load measurements', e)


@air_bp.route('/analysis', methods=['POST'])
def analysis():
    """Statistical hotspot detection over recent readings"""
    data = request.get_json(silent=True) or {}
    try:
        hours = _hours_from(data, current_app.config['HOTSPOT_WINDOW_HOURS'])
        bbox = parse_bbox(data.get('bbox'))
    except ValueError as e:
        return jsonify({'error': 'Invalid analysis request', 'message': str(e)}), 400

    result = run_hotspot_analysis(hours=hours, bbox=bbox)
    if result['status'] == 'error':
        return jsonify({'error': 'Hotspot analysis failed', **result}), 500
    return jsonify(result)


@air_bp.route('/grid')
def grid():
    try:
        return jsonify(get_grid())
    except Exception as e:
        return _server_error('Failed to load grid', e)


@air_bp.route('/grid/recompute', methods=['POST'])
def recompute_grid():
    data = request.get_json(silent=True) or {}
    try:
        hours = _hours_from(data, 24)
    except ValueError as e:
        return jsonify({'error': 'Invalid recompute request', 'message': str(e)}), 400

    try:
        task = update_grid_priorities_task.delay(hours=hours)
    except Exception as e:
        return _server_error('Failed to queue priority update', e)

    logger.info('Queued grid priority update %s (hours=%s)', task.id, hours)
    return jsonify({'status': 'queued', 'task_id': task.id, 'hours': hours}), 202


@air_bp.route('/grid/<int:grid_id>/attribution', methods=['POST'])
def grid_attribution(grid_id):
    """Attribute a grid cell's pollution to traffic, industry, waste burning or background"""
    cell = db.session.get(GridCell, grid_id)
    if cell is None:
        return jsonify({'error': 'Grid cell not found', 'grid_id': grid_id}), 404

    data = request.get_json(silent=True) or {}
    try:
        hours = _hours_from(data, 24)
    except ValueError as e:
        return jsonify({'error': 'Invalid attribution request', 'message': str(e)}), 400

    result = attribute_grid_sources(cell, hours=hours)
    if result['status'] == 'error':
        return jsonify({'error': 'Source attribution failed', **result}), 500
    return jsonify(result)
