"""
Configuration settings for the Nairobi Air Quality Platform
"""
import os

from dotenv import load_dotenv

load_dotenv()


def _float_env(name, default):
    value = os.environ.get(name)
    return float(value) if value else default


class Config:
    """Flask application configuration"""

    # Database configuration
    basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        'sqlite:///' + os.path.join(basedir, 'instance', 'air_quality.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Comma separated list of dashboard origins, '*' when unset
    ALLOWED_ORIGINS = os.environ.get('ALLOWED_ORIGINS', '*')

    # OpenAQ
    OPENAQ_API_KEY = os.environ.get('OPENAQ_API_KEY')
    OPENAQ_BASE_URL = os.environ.get('OPENAQ_BASE_URL') or 'https://api.openaq.org/v2'

    # World Air Quality Index project
    WAQI_TOKEN = os.environ.get('WAQI_TOKEN')
    WAQI_BASE_URL = 'https://api.waqi.info'

    # Copernicus Data Space Ecosystem (Sentinel-5P catalogue)
    COPERNICUS_CLIENT_ID = os.environ.get('COPERNICUS_CLIENT_ID')
    COPERNICUS_CLIENT_SECRET = os.environ.get('COPERNICUS_CLIENT_SECRET')
    COPERNICUS_TOKEN_URL = ('https://identity.dataspace.copernicus.eu/auth/realms/CDSE'
                            '/protocol/openid-connect/token')
    COPERNICUS_CATALOGUE_URL = 'https://catalogue.dataspace.copernicus.eu/odata/v1/Products'

    HTTP_TIMEOUT = _float_env('HTTP_TIMEOUT', 8.0)

    # Application settings
    DEFAULT_CITY = os.environ.get('DEFAULT_CITY') or 'Nairobi'
    DEFAULT_COUNTRY = os.environ.get('DEFAULT_COUNTRY') or 'KE'
    # [min_lon, min_lat, max_lon, max_lat]
    CITY_BBOX = [36.70, -1.40, 37.12, -1.15]

    # WHO interim guideline used for alerts and policy generation
    ALERT_THRESHOLD_PM25 = _float_env('ALERT_THRESHOLD_PM25', 35.0)
    POLICY_THRESHOLD_PM25 = 35.0
    HOTSPOT_WINDOW_HOURS = int(os.environ.get('HOTSPOT_WINDOW_HOURS') or 24)

    SEED_DEFAULT_GRID = True

    # Background tasks
    REDIS_URL = os.environ.get('REDIS_URL') or 'redis://localhost:6379/0'
    CELERY = dict(
        broker_url=os.environ.get('CELERY_BROKER_URL') or REDIS_URL,
        result_backend=os.environ.get('CELERY_RESULT_BACKEND') or REDIS_URL,
        task_ignore_result=True,
    )


class TestConfig(Config):
    """Testing configuration"""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    OPENAQ_API_KEY = 'test-key'
    WAQI_TOKEN = 'test-token'
    COPERNICUS_CLIENT_ID = 'test-client'
    COPERNICUS_CLIENT_SECRET = 'test-secret'
    SEED_DEFAULT_GRID = False
    CELERY = dict(
        broker_url='memory://',
        task_always_eager=True,
        task_eager_propagates=True,
        task_ignore_result=True,
    )
