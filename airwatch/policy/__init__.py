"""
Policy Blueprint

Recommendation, alert and dashboard endpoints under /api/policy.
"""

from flask import Blueprint

policy_bp = Blueprint('policy', __name__)

from airwatch.policy import routes  # noqa: E402, F401
