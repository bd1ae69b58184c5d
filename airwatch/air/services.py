"""
Air Data Services

Query and GeoJSON shaping for the air-quality endpoints.
"""

from datetime import datetime, timedelta

from shapely.geometry import mapping
from sqlalchemy import func

from airwatch.extensions import db
from airwatch.models import GridCell, Measurement
from airwatch.services.aqi import (aqi_category, calculate_aqi, calculate_aqi_status,
                                   health_message, severity_level)
from airwatch.services.geo import feature, feature_collection, isoformat, point_geometry

HOTSPOT_MIN_AVG_PM25 = 25.0
HOTSPOT_LIMIT = 50


def measurement_feature(m, index=None):
    properties = {
        'id': m.id if index is None else f'zone_{index}',
        'name': m.location_name,
        'pm25': m.pm25,
        'pm10': m.pm10,
        'no2': m.no2,
        'so2': m.so2,
        'o3': m.o3,
        'source_type': m.source_type,
        'data_source': m.data_source,
        'recorded_at': isoformat(m.recorded_at),
        'quality_flag': m.quality_flag,
        'aqi': calculate_aqi(m.pm25),
        'aqi_category': aqi_category(m.pm25),
        'severity': severity_level(m.pm25),
        'color': calculate_aqi_status(m.pm25)['color'],
        'health_message': health_message(m.pm25)
    }
    return feature(point_geometry(m.longitude, m.latitude), properties)


def get_monitoring_zones(bbox, city=None):
    """Monitoring-station measurements inside the city bounding box."""
    rows = Measurement.query.filter(
        Measurement.source_type == 'monitoring_station',
        Measurement.longitude.between(bbox[0], bbox[2]),
        Measurement.latitude.between(bbox[1], bbox[3])
    ).order_by(Measurement.recorded_at.desc()).all()

    features = [measurement_feature(m, index=i + 1) for i, m in enumerate(rows)]
    return feature_collection(features, total_zones=len(features), city=city, bbox=bbox)


def get_measurements(bbox=None, start_time=None, end_time=None, source_type=None, limit=1000):
    query = Measurement.query
    if bbox:
        query = query.filter(
            Measurement.longitude.between(bbox[0], bbox[2]),
            Measurement.latitude.between(bbox[1], bbox[3])
        )
    if start_time:
        query = query.filter(Measurement.recorded_at >= start_time)
    if end_time:
        query = query.filter(Measurement.recorded_at <= end_time)
    if source_type:
        query = query.filter(Measurement.source_type == source_type)

    rows = query.order_by(Measurement.recorded_at.desc()).limit(limit).all()
    features = [measurement_feature(m) for m in rows]
    return feature_collection(features, total_measurements=len(features))


def get_hotspots(bbox, city=None, hours=24):
    """Locations whose average PM2.5 over the window exceeds the hotspot floor."""
    since = datetime.utcnow() - timedelta(hours=hours)
    pm25_avg = func.avg(Measurement.pm25).label('pm25_avg')

    rows = db.session.query(
        Measurement.longitude,
        Measurement.latitude,
        Measurement.source_type,
        pm25_avg,
        func.count(Measurement.id).label('reading_count'),
        func.max(Measurement.recorded_at).label('latest_reading'),
        func.max(Measurement.location_name).label('name')
    ).filter(
        Measurement.longitude.between(bbox[0], bbox[2]),
        Measurement.latitude.between(bbox[1], bbox[3]),
        Measurement.recorded_at > since,
        Measurement.pm25.isnot(None)
    ).group_by(
        Measurement.longitude, Measurement.latitude, Measurement.source_type
    ).having(
        pm25_avg > HOTSPOT_MIN_AVG_PM25
    ).order_by(pm25_avg.desc()).limit(HOTSPOT_LIMIT).all()

    features = []
    for row in rows:
        avg = float(row.pm25_avg)
        features.append(feature(point_geometry(row.longitude, row.latitude), {
            'name': row.name,
            'pm25_avg': round(avg, 1),
            'source_type': row.source_type,
            'reading_count': row.reading_count,
            'latest_reading': isoformat(row.latest_reading),
            'severity': severity_level(avg),
            'health_impact': aqi_category(avg),
            'aqi': calculate_aqi(avg)
        }))

    return feature_collection(features, total_hotspots=len(features), bbox=bbox, city=city)


def grid_feature(cell):
    return feature(mapping(cell.shape), {
        'grid_id': cell.id,
        'name': cell.name,
        'center': [cell.longitude, cell.latitude],
        'priority_score': cell.priority_score,
        'dominant_source': cell.dominant_source,
        'population_density': cell.population_density,
        'hotspot_probability': cell.hotspot_probability,
        'intervention_urgency': cell.intervention_urgency,
        'last_updated': isoformat(cell.last_updated)
    })


def get_grid():
    cells = GridCell.query.order_by(GridCell.priority_score.desc(), GridCell.id).all()
    return feature_collection([grid_feature(c) for c in cells], total_cells=len(cells))
