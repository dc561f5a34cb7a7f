"""
Postcraft API Models

Pydantic models for request validation and response serialization, plus
the SQLAlchemy ORM models under ``postcraft.models.db``.
"""
