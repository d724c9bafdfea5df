"""
Database subsystem: declarative base, column mixins and DatabaseService.
"""

from animarc.core.database.base import Base, IdMixin, TimestampMixin
from animarc.core.database.service import DatabaseService

__all__ = ["Base", "IdMixin", "TimestampMixin", "DatabaseService"]
