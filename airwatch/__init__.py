"""
Nairobi Air Quality Platform - Application Factory

This module provides the Flask application factory pattern for creating
and configuring the application instance.
"""

import logging
import os
from datetime import datetime

from flask import Flask, jsonify
from sqlalchemy import text

from airwatch.config import Config
from airwatch.extensions import cors, db

logger = logging.getLogger(__name__)

# Seed grid cells: (name, longitude, latitude, dominant source, population density)
DEFAULT_GRID = [
    ('Nairobi CBD', 36.8172, -1.2864, 'traffic', 25000),
    ('Industrial Area', 36.8581, -1.3128, 'industry', 8000),
    ('Westlands', 36.8089, -1.2630, 'traffic', 15000),
    ('Embakasi', 36.8833, -1.3167, 'industry', 18000),
    ('Karen', 36.7083, -1.3197, 'background', 4000),
    ('Dandora', 36.8969, -1.2364, 'waste_burning', 30000),
]


def create_app(config_class=Config):
    """Create and configure the Flask application.

    Args:
        config_class: Configuration class to use (default: Config)

    Returns:
        Configured Flask application instance
    """
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=app.config.get('LOG_LEVEL', 'INFO'),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Initialize extensions
    db.init_app(app)
    origins = app.config['ALLOWED_ORIGINS']
    if origins != '*':
        origins = [o.strip() for o in origins.split(',') if o.strip()]
    cors.init_app(app, resources={r'/api/*': {'origins': origins}})

    # Register blueprints
    from airwatch.air import air_bp
    from airwatch.policy import policy_bp

    app.register_blueprint(air_bp, url_prefix='/api/air')
    app.register_blueprint(policy_bp, url_prefix='/api/policy')

    from airwatch.tasks import celery_init_app
    celery_init_app(app)

    from airwatch.cli import register_commands
    register_commands(app)

    @app.route('/')
    def index():
        return jsonify({
            'message': 'Nairobi Air Quality Platform API',
            'version': '1.0.0',
            'city': app.config['DEFAULT_CITY'],
            'endpoints': {
                'air': '/api/air',
                'policy': '/api/policy',
                'health': '/health'
            }
        })

    @app.route('/health')
    def health():
        """Database connectivity check"""
        try:
            db.session.execute(text('SELECT 1'))
            database = 'connected'
            status, code = 'healthy', 200
        except Exception as e:
            logger.exception('Database health check failed: %s', e)
            database = 'unavailable'
            status, code = 'unhealthy', 503
        return jsonify({
            'status': status,
            'database': database,
            'timestamp': datetime.utcnow().isoformat()
        }), code

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({'error': 'Not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({'error': 'Method not allowed'}), 405

    # Create database tables
    with app.app_context():
        _ensure_instance_dir(app.config['SQLALCHEMY_DATABASE_URI'])
        db.create_all()
        if app.config.get('SEED_DEFAULT_GRID'):
            _ensure_default_grid()

    return app


def _ensure_instance_dir(uri):
    if uri.startswith('sqlite:///') and ':memory:' not in uri:
        directory = os.path.dirname(uri[len('sqlite:///'):])
        if directory:
            os.makedirs(directory, exist_ok=True)


def _ensure_default_grid():
    """Ensure the default Nairobi grid cells exist."""
    from airwatch.models import GridCell

    tol = 0.005
    existing = GridCell.query.all()
    created = 0

    for name, longitude, latitude, source, population in DEFAULT_GRID:
        found = any(abs(c.longitude - longitude) < tol and abs(c.latitude - latitude) < tol
                    for c in existing)
        if not found:
            db.session.add(GridCell(name=name, longitude=longitude, latitude=latitude,
                                    dominant_source=source, population_density=population))
            created += 1

    db.session.commit()
    if created:
        logger.info('Created %d default grid cells', created)
