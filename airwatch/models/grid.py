"""
Policy Grid Model
"""

from datetime import datetime

from shapely.geometry import Point

from airwatch.extensions import db

DEFAULT_RADIUS = 0.01


class GridCell(db.Model):
    """Buffered point zone used for prioritising interventions"""
    __tablename__ = 'policy_grid'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100))
    longitude = db.Column(db.Float, nullable=False)
    latitude = db.Column(db.Float, nullable=False)
    radius = db.Column(db.Float, nullable=False, default=DEFAULT_RADIUS)

    priority_score = db.Column(db.Float, default=0.0)
    dominant_source = db.Column(db.String(50))
    population_density = db.Column(db.Integer)
    hotspot_probability = db.Column(db.Float)
    intervention_urgency = db.Column(db.String(20), default='low')
    last_updated = db.Column(db.DateTime, default=datetime.utcnow)

    recommendations = db.relationship('PolicyRecommendation', backref='grid', lazy=True,
                                      cascade='all, delete-orphan')

    @property
    def shape(self):
        """Buffered centre point as a shapely polygon."""
        radius = self.radius if self.radius is not None else DEFAULT_RADIUS
        return Point(self.longitude, self.latitude).buffer(radius)

    def contains(self, longitude, latitude):
        return self.shape.covers(Point(longitude, latitude))

    def bounds(self):
        """(minx, miny, maxx, maxy) of the buffer."""
        return self.shape.bounds

    def __repr__(self):
        return f'<GridCell {self.id} {self.name} priority:{self.priority_score}>'
