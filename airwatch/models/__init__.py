"""
Models Package

Exports all models for easy importing.
"""

from airwatch.models.measurement import Measurement
from airwatch.models.grid import GridCell
from airwatch.models.policy import PolicyRecommendation
from airwatch.models.alert import Alert

__all__ = ['Measurement', 'GridCell', 'PolicyRecommendation', 'Alert']
