"""
Services Package

Exports the most used services for easy importing.
"""

from airwatch.services.aqi import calculate_aqi, aqi_category, calculate_aqi_status, severity_level
from airwatch.services.hotspots import detect_hotspots, run_hotspot_analysis
from airwatch.services.attribution import attribute_sources, attribute_grid_sources
from airwatch.services.policy import recommendation_templates, generate_recommendations
from airwatch.services.priorities import update_grid_priorities
from airwatch.services.measurements import store_measurement, store_measurements

__all__ = [
    'calculate_aqi',
    'aqi_category',
    'calculate_aqi_status',
    'severity_level',
    'detect_hotspots',
    'run_hotspot_analysis',
    'attribute_sources',
    'attribute_grid_sources',
    'recommendation_templates',
    'generate_recommendations',
    'update_grid_priorities',
    'store_measurement',
    'store_measurements'
]
