"""
SQLAlchemy ORM models package.

Models are imported here so that Base.metadata knows every table and other
modules can import from user_api.models directly.
"""

from user_api.models.user import User  # noqa: F401
