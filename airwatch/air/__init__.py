"""
Air Blueprint

Measurement, hotspot and grid endpoints under /api/air.
"""

from flask import Blueprint

air_bp = Blueprint('air', __name__)

from airwatch.air import routes  # noqa: E402, F401
