"""
GeoJSON helpers shared by the REST endpoints.
"""

import math
from datetime import datetime

from shapely.geometry import Point, mapping


def parse_bbox(value):
    """Parse ``"minx,miny,maxx,maxy"`` into a list of four floats.

    Returns None for an empty value and raises ValueError for anything that
    is not four numbers with min <= max.
    """
    if value is None or value == '':
        return None
    if isinstance(value, (list, tuple)):
        parts = list(value)
    else:
        parts = str(value).split(',')
    if len(parts) != 4:
        raise ValueError('bbox must have four comma separated numbers: minx,miny,maxx,maxy')
    try:
        bbox = [float(p) for p in parts]
    except (TypeError, ValueError):
        raise ValueError('bbox values must be numeric')
    if any(math.isnan(v) for v in bbox):
        raise ValueError('bbox values must be numeric')
    if bbox[0] > bbox[2] or bbox[1] > bbox[3]:
        raise ValueError('bbox minimums must not exceed maximums')
    return bbox


def point_geometry(longitude, latitude):
    return mapping(Point(longitude, latitude))


def feature(geometry, properties):
    return {'type': 'Feature', 'geometry': geometry, 'properties': properties}


def feature_collection(features, **metadata):
    metadata.setdefault('generated_at', datetime.utcnow().isoformat())
    return {'type': 'FeatureCollection', 'features': features, 'metadata': metadata}


def isoformat(value):
    return value.isoformat() if value is not None else None
