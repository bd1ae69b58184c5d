from datetime import datetime, timedelta

import pytest

from airwatch import create_app
from airwatch.config import TestConfig
from airwatch.extensions import db
from airwatch.models import GridCell, Measurement


@pytest.fixture()
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def make_measurement(app):
    """Insert a measurement recorded ``minutes_ago`` before now."""
    counter = {'n': 0}

    def _make(longitude=36.8172, latitude=-1.2864, minutes_ago=None, **values):
        counter['n'] += 1
        minutes = minutes_ago if minutes_ago is not None else counter['n']
        values.setdefault('source_type', 'monitoring_station')
        values.setdefault('quality_flag', 1)
        m = Measurement(longitude=longitude, latitude=latitude,
                        recorded_at=datetime.utcnow() - timedelta(minutes=minutes),
                        **values)
        db.session.add(m)
        db.session.commit()
        return m

    return _make


@pytest.fixture()
def grid_cell(app):
    cell = GridCell(name='Nairobi CBD', longitude=36.8172, latitude=-1.2864,
                    dominant_source='traffic', population_density=25000)
    db.session.add(cell)
    db.session.commit()
    return cell
