"""
Air Measurement Model
"""

from datetime import datetime

from airwatch.extensions import db

SOURCE_TYPES = ('satellite', 'weather_api', 'ground_station',
                'monitoring_station', 'mobile', 'unknown')

QUALITY_GOOD = 1


class Measurement(db.Model):
    """A single air-quality observation at a point"""
    __tablename__ = 'air_measurements'
    __table_args__ = (
        db.UniqueConstraint('longitude', 'latitude', 'recorded_at', 'source_type',
                            name='unique_measurement'),
    )

    id = db.Column(db.Integer, primary_key=True)
    longitude = db.Column(db.Float, nullable=False)
    latitude = db.Column(db.Float, nullable=False)
    location_name = db.Column(db.String(120))

    # Pollutants (µg/m³)
    pm25 = db.Column(db.Float)
    pm10 = db.Column(db.Float)
    no2 = db.Column(db.Float)
    so2 = db.Column(db.Float)
    co = db.Column(db.Float)
    o3 = db.Column(db.Float)

    # Meteorology
    temperature = db.Column(db.Float)
    humidity = db.Column(db.Float)
    wind_speed = db.Column(db.Float)

    source_type = db.Column(db.String(50), nullable=False, default='unknown', index=True)
    data_source = db.Column(db.String(100))
    confidence_score = db.Column(db.Float)
    quality_flag = db.Column(db.Integer, nullable=False, default=QUALITY_GOOD)

    recorded_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<Measurement ({self.longitude}, {self.latitude}) PM2.5:{self.pm25} at {self.recorded_at}>'
