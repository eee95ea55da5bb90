"""ORM models for database persistence."""

from .base import Base, SqlalchemyBase
from .thread_mapping import ThreadMapping

__all__ = [
    "Base",
    "SqlalchemyBase",
    "ThreadMapping",
]
