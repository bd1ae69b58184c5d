"""
Policy Routes

Recommendations, status workflow, impact simulation and alerts.
"""

import logging

from flask import jsonify, request

from airwatch.extensions import db
from airwatch.models import Alert, GridCell, PolicyRecommendation
from airwatch.models.alert import ALERT_STATUSES
from airwatch.models.policy import POLICY_STATUSES
from airwatch.policy import policy_bp
from airwatch.policy.services import dashboard_stats
from airwatch.services.alerts import (alert_to_dict, get_active_alerts,
                                      update_alert_status)
from airwatch.services.policy import (baseline_for, generate_recommendations,
                                      list_recommendations,
                                      recommendation_to_dict, simulate_impact,
                                      update_status)

logger = logging.getLogger(__name__)


def _server_error(message, e):
    logger.exception('%s: %s', message, e)
    return jsonify({'error': message, 'message': str(e)}), 500


@policy_bp.route('/recommendations')
def recommendations():
    """List recommendations filtered by priority, status and grid"""
    try:
        recs = list_recommendations(
            priority=request.args.get('priority'),
            status=request.args.get('status'),
            grid_id=request.args.get('grid_id', type=int),
            limit=request.args.get('limit', 10, type=int)
        )
    except ValueError as e:
        return jsonify({'error': 'Invalid filter', 'message': str(e)}), 400
    except Exception as e:
        return _server_error('Failed to load recommendations', e)

    return jsonify({
        'recommendations': [recommendation_to_dict(r) for r in recs],
        'total': len(recs)
    })


@policy_bp.route('/grid/<int:grid_id>/generate', methods=['POST'])
def generate(grid_id):
    cell = db.session.get(GridCell, grid_id)
    if cell is None:
        return jsonify({'error': 'Grid cell not found', 'grid_id': grid_id}), 404

    result = generate_recommendations(cell)
    if result['status'] == 'error':
        return jsonify({'error': 'Policy generation failed', **result}), 500
    return jsonify(result)


@policy_bp.route('/recommendations/<int:policy_id>/status', methods=['PATCH'])
def update_recommendation_status(policy_id):
    data = request.get_json(silent=True)
    if not data or not data.get('status'):
        return jsonify({'error': 'Missing status', 'valid_statuses': list(POLICY_STATUSES)}), 400

    rec = db.session.get(PolicyRecommendation, policy_id)
    if rec is None:
        return jsonify({'error': 'Policy not found', 'policy_id': policy_id}), 404

    try:
        update_status(rec, data['status'], notes=data.get('notes'))
    except ValueError as e:
        return jsonify({'error': str(e), 'valid_statuses': list(POLICY_STATUSES)}), 400
    except Exception as e:
        db.session.rollback()
        return _server_error('Failed to update policy status', e)

    return jsonify({
        'message': 'Status updated successfully',
        'policy_id': rec.id,
        'new_status': rec.status,
        'updated_at': rec.updated_at.isoformat()
    })


@policy_bp.route('/simulate', methods=['POST'])
def simulate():
    """Project the impact of a recommendation under a scenario"""
    data = request.get_json(silent=True)
    if not data or data.get('policy_id') is None:
        return jsonify({'error': 'Missing policy_id'}), 400

    try:
        policy_id = int(data['policy_id'])
    except (TypeError, ValueError):
        return jsonify({'error': 'policy_id must be an integer'}), 400

    rec = db.session.get(PolicyRecommendation, policy_id)
    if rec is None:
        return jsonify({'error': 'Policy not found', 'policy_id': policy_id}), 404

    scenario_params = data.get('scenario_params') or {}
    if not isinstance(scenario_params, dict):
        return jsonify({'error': 'scenario_params must be an object'}), 400

    try:
        results = simulate_impact(rec, scenario_params, baseline_pm25=baseline_for(rec))
    except ValueError as e:
        return jsonify({'error': 'Invalid scenario', 'message': str(e)}), 400
    except Exception as e:
        return _server_error('Simulation failed', e)

    return jsonify({
        'policy_id': rec.id,
        'policy_type': rec.policy_type,
        'scenario_params': scenario_params,
        'simulation_results': results
    })


@policy_bp.route('/alerts')
def alerts():
    try:
        items = get_active_alerts(severity=request.args.get('severity'),
                                  limit=request.args.get('limit', 20, type=int))
    except ValueError as e:
        return jsonify({'error': 'Invalid filter', 'message': str(e)}), 400
    except Exception as e:
        return _server_error('Failed to load alerts', e)

    return jsonify({'alerts': [alert_to_dict(a) for a in items], 'total': len(items)})


@policy_bp.route('/alerts/<int:alert_id>', methods=['PATCH'])
def update_alert(alert_id):
    data = request.get_json(silent=True)
    if not data or not data.get('status'):
        return jsonify({'error': 'Missing status', 'valid_statuses': list(ALERT_STATUSES)}), 400

    alert = db.session.get(Alert, alert_id)
    if alert is None:
        return jsonify({'error': 'Alert not found', 'alert_id': alert_id}), 404

    try:
        update_alert_status(alert, data['status'])
    except ValueError as e:
        return jsonify({'error': str(e), 'valid_statuses': list(ALERT_STATUSES)}), 400
    except Exception as e:
        db.session.rollback()
        return _server_error('Failed to update alert', e)

    return jsonify(alert_to_dict(alert))


@policy_bp.route('/dashboard')
def dashboard():
    """Summary statistics for the policy dashboard"""
    try:
        return jsonify(dashboard_stats())
    except Exception as e:
        return _server_error('Failed to load dashboard statistics', e)
