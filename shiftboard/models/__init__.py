"""
SQLAlchemy models for the ``sql`` storage backend.

Only ``shiftboard.storage.sql`` touches these tables; everything above the
storage layer works with the dataclasses in ``shiftboard.domain``.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
