"""
Policy Recommendation Model
"""

from datetime import datetime

from airwatch.extensions import db

POLICY_STATUSES = ('pending', 'approved', 'in_progress', 'rejected')
PRIORITY_LEVELS = ('low', 'medium', 'high', 'critical')


class PolicyRecommendation(db.Model):
    """Rule-generated or imported intervention for a grid cell"""
    __tablename__ = 'policy_recommendations'

    id = db.Column(db.Integer, primary_key=True)
    grid_id = db.Column(db.Integer, db.ForeignKey('policy_grid.id'), index=True)

    policy_type = db.Column(db.String(50), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    priority = db.Column(db.String(20), default='medium')

    expected_impact_percent = db.Column(db.Float)
    cost_estimate = db.Column(db.Float)
    implementation_time_days = db.Column(db.Integer)
    affected_population = db.Column(db.Integer)

    status = db.Column(db.String(20), nullable=False, default='pending', index=True)
    notes = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<PolicyRecommendation {self.id} {self.policy_type} {self.status}>'
