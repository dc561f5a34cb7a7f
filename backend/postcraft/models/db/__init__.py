"""SQLAlchemy 2.0 ORM models for postcraft.

Import all models here so Alembic's ``env.py`` and the test fixtures can
discover them via::

    from postcraft.models.db import Base  # noqa: F401

Every model must be imported at module level to register with the
``DeclarativeBase`` metadata.
"""

from postcraft.models.db.base import Base, TimestampMixin  # noqa: F401

from postcraft.models.db.project import Project  # noqa: F401
from postcraft.models.db.session import PostSession, SessionStatusHistory  # noqa: F401
from postcraft.models.db.version import ContentVersion  # noqa: F401
from postcraft.models.db.asset import GeneratedAsset  # noqa: F401
from postcraft.models.db.usage import UsageLog  # noqa: F401

__all__ = [
    "Base",
    "TimestampMixin",
    "Project",
    "PostSession",
    "SessionStatusHistory",
    "ContentVersion",
    "GeneratedAsset",
    "UsageLog",
]
