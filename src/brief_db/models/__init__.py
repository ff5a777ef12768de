"""ORM models for brief_db."""

from brief_db.models.base import Base
from brief_db.models.session import BriefSessionRow

__all__ = ["Base", "BriefSessionRow"]
