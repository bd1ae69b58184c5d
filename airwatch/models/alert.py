"""
Alert Model
"""

from datetime import datetime

from airwatch.extensions import db

ALERT_SEVERITIES = ('low', 'medium', 'high', 'critical')
ALERT_STATUSES = ('active', 'acknowledged', 'resolved', 'dismissed')


class Alert(db.Model):
    """Severity alert raised by a measurement or a hotspot analysis"""
    __tablename__ = 'alert_history'

    id = db.Column(db.Integer, primary_key=True)
    alert_type = db.Column(db.String(50), nullable=False)
    severity = db.Column(db.String(20), nullable=False, index=True)

    longitude = db.Column(db.Float)
    latitude = db.Column(db.Float)
    zone_name = db.Column(db.String(100))

    message = db.Column(db.Text, nullable=False)
    pollutant = db.Column(db.String(20), default='pm25')
    measurement_value = db.Column(db.Float)
    threshold_value = db.Column(db.Float)

    status = db.Column(db.String(20), nullable=False, default='active', index=True)
    triggered_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    resolved_at = db.Column(db.DateTime)

    def __repr__(self):
        return f'<Alert {self.alert_type} {self.severity} {self.status}>'
