"""
Flask Extensions
"""

from flask_cors import CORS
from flask_sqlalchemy import SQLAlchemy

# Database instance
db = SQLAlchemy()

# Cross-origin access for the map dashboard
cors = CORS()
