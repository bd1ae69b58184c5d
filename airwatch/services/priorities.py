"""
Grid Priority Service

Periodic recompute of every grid cell's priority score from recent
good-quality PM2.5 readings.
"""

import logging
from datetime import datetime

from sqlalchemy import func

from airwatch.extensions import db
from airwatch.models import GridCell
from airwatch.models.measurement import QUALITY_GOOD
from airwatch.services.measurements import measurements_in_cell

logger = logging.getLogger(__name__)


def score_from_pm25(avg_pm25):
    """Priority score on a 0-10 scale (10 µg/m³ per point)."""
    return max(0.0, min(10.0, avg_pm25 / 10.0))


def hotspot_probability(score):
    if score > 7:
        return min(score / 10.0 + 0.2, 1.0)
    if score > 5:
        return score / 10.0 + 0.1
    return score / 10.0


def intervention_urgency(score):
    if score > 8:
        return 'critical'
    if score > 6:
        return 'high'
    if score > 4:
        return 'medium'
    return 'low'


def update_grid_priorities(hours=24):
    """Recompute priority, hotspot probability and urgency for all grid cells.

    Cells without recent good-quality data keep their previous score.
    """
    try:
        cells = GridCell.query.all()
        now = datetime.utcnow()
        for cell in cells:
            readings = measurements_in_cell(cell, hours=hours, quality_flag=QUALITY_GOOD)
            if readings:
                avg_pm25 = sum(m.pm25 for m in readings) / len(readings)
                cell.priority_score = round(score_from_pm25(avg_pm25), 2)

            score = cell.priority_score or 0.0
            cell.hotspot_probability = round(hotspot_probability(score), 2)
            cell.intervention_urgency = intervention_urgency(score)
            cell.last_updated = now
            db.session.add(cell)
        db.session.commit()

        total, avg_priority, max_priority = db.session.query(
            func.count(GridCell.id),
            func.avg(GridCell.priority_score),
            func.max(GridCell.priority_score)
        ).one()

        logger.info('Updated priorities for %d grid cells', total)
        return {
            'status': 'success',
            'total_grids_updated': total,
            'average_priority': round(avg_priority, 2) if avg_priority else 0,
            'max_priority': round(max_priority, 2) if max_priority else 0,
            'updated_at': now.isoformat()
        }

    except Exception as e:
        db.session.rollback()
        logger.exception('Grid priority update failed: %s', e)
        return {
            'status': 'error',
            'message': str(e),
            'error_type': type(e).__name__
        }
