"""
FFE Procurement Workflow Engine
Shared SQLAlchemy handle.

Usage:
    from ffe_tracker.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
