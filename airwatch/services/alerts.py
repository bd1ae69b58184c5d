"""
Alert Services

Creating, listing and updating severity alerts.
"""

import logging
from datetime import datetime

from airwatch.extensions import db
from airwatch.models import Alert
from airwatch.models.alert import ALERT_SEVERITIES, ALERT_STATUSES
from airwatch.services.aqi import alert_severity, aqi_category

logger = logging.getLogger(__name__)

OPEN_STATUSES = ('active', 'acknowledged')


def raise_alert(alert_type, severity, message, longitude=None, latitude=None,
                zone_name=None, value=None, threshold=None, pollutant='pm25'):
    """Add an alert to the current session. The caller commits."""
    alert = Alert(
        alert_type=alert_type,
        severity=severity,
        message=message,
        longitude=longitude,
        latitude=latitude,
        zone_name=zone_name,
        pollutant=pollutant,
        measurement_value=value,
        threshold_value=threshold,
        triggered_at=datetime.utcnow()
    )
    db.session.add(alert)
    return alert


def alert_for_measurement(measurement, threshold):
    """Raise a pollution_spike alert when a measurement's PM2.5 exceeds the threshold."""
    if measurement.pm25 is None or measurement.pm25 <= threshold:
        return None

    place = measurement.location_name or f'({measurement.latitude:.4f}, {measurement.longitude:.4f})'
    message = (f'{aqi_category(measurement.pm25)} air quality detected at {place} - '
               f'PM2.5: {measurement.pm25:.1f} μg/m³')
    logger.info('Alert raised: %s', message)
    return raise_alert(
        'pollution_spike',
        alert_severity(measurement.pm25),
        message,
        longitude=measurement.longitude,
        latitude=measurement.latitude,
        zone_name=measurement.location_name,
        value=measurement.pm25,
        threshold=threshold
    )


def get_active_alerts(severity=None, limit=20):
    if severity is not None and severity not in ALERT_SEVERITIES:
        raise ValueError(f'Invalid severity: {severity}')

    query = Alert.query.filter(Alert.status.in_(OPEN_STATUSES))
    if severity:
        query = query.filter_by(severity=severity)
    return query.order_by(Alert.triggered_at.desc(), Alert.id.desc()).limit(limit).all()


def update_alert_status(alert, status):
    if status not in ALERT_STATUSES:
        raise ValueError(f'Invalid status: {status}')
    alert.status = status
    if status in ('resolved', 'dismissed'):
        alert.resolved_at = datetime.utcnow()
    db.session.add(alert)
    db.session.commit()
    return alert


def time_since(timestamp, now=None):
    """Short relative description such as '2 hours ago'."""
    if timestamp is None:
        return None
    now = now or datetime.utcnow()
    minutes = int((now - timestamp).total_seconds() // 60)
    hours = minutes // 60
    days = hours // 24

    if days > 0:
        return f'{days} day{"s" if days > 1 else ""} ago'
    if hours > 0:
        return f'{hours} hour{"s" if hours > 1 else ""} ago'
    if minutes > 0:
        return f'{minutes} minute{"s" if minutes > 1 else ""} ago'
    return 'Just now'


def alert_to_dict(alert):
    location = None
    if alert.longitude is not None and alert.latitude is not None:
        location = {'type': 'Point', 'coordinates': [alert.longitude, alert.latitude]}
    return {
        'id': alert.id,
        'alert_type': alert.alert_type,
        'severity': alert.severity,
        'location': location,
        'zone_name': alert.zone_name,
        'message': alert.message,
        'pollutant': alert.pollutant,
        'measurement_value': alert.measurement_value,
        'threshold_value': alert.threshold_value,
        'status': alert.status,
        'triggered_at': alert.triggered_at.isoformat() if alert.triggered_at else None,
        'resolved_at': alert.resolved_at.isoformat() if alert.resolved_at else None,
        'time_since': time_since(alert.triggered_at)
    }
