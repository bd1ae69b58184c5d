"""
Policy Dashboard Services

Summary statistics for the policy dashboard.
"""

from datetime import datetime, timedelta

from sqlalchemy import func

from airwatch.extensions import db
from airwatch.models import Alert, Measurement
from airwatch.services.alerts import OPEN_STATUSES
from airwatch.services.policy import status_summary

UNHEALTHY_PM25 = 35.0
VERY_UNHEALTHY_PM25 = 55.0


def _round(value, digits=1):
    return round(float(value), digits) if value is not None else None


def air_quality_stats(hours=24):
    since = datetime.utcnow() - timedelta(hours=hours)
    recent = Measurement.query.filter(Measurement.recorded_at > since,
                                      Measurement.pm25.isnot(None))

    total, avg_pm25, max_pm25, min_pm25, last_update = db.session.query(
        func.count(Measurement.id),
        func.avg(Measurement.pm25),
        func.max(Measurement.pm25),
        func.min(Measurement.pm25),
        func.max(Measurement.recorded_at)
    ).filter(Measurement.recorded_at > since, Measurement.pm25.isnot(None)).one()

    return {
        'total_measurements': total,
        'avg_pm25': _round(avg_pm25),
        'max_pm25': _round(max_pm25),
        'min_pm25': _round(min_pm25),
        'unhealthy_readings': recent.filter(Measurement.pm25 > UNHEALTHY_PM25).count(),
        'very_unhealthy_readings': recent.filter(Measurement.pm25 > VERY_UNHEALTHY_PM25).count(),
        'last_update': last_update.isoformat() if last_update else None
    }


def alert_stats():
    rows = db.session.query(Alert.severity, func.count(Alert.id)).filter(
        Alert.status.in_(OPEN_STATUSES)
    ).group_by(Alert.severity).all()
    return {severity: count for severity, count in rows}


def pollution_sources(hours=24):
    since = datetime.utcnow() - timedelta(hours=hours)
    rows = db.session.query(
        Measurement.source_type,
        func.count(Measurement.id),
        func.avg(Measurement.pm25)
    ).filter(Measurement.recorded_at > since).group_by(Measurement.source_type).all()
    return [
        {'source_type': source, 'count': count, 'avg_pm25': _round(avg)}
        for source, count, avg in rows
    ]


def dashboard_stats(hours=24):
    """Air quality, policy, alert and source statistics over the last ``hours``."""
    return {
        'air_quality': air_quality_stats(hours),
        'policy_stats': status_summary(),
        'alert_stats': alert_stats(),
        'pollution_sources': pollution_sources(hours),
        'generated_at': datetime.utcnow().isoformat()
    }
