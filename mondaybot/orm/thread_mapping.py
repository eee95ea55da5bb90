"""ThreadMapping model linking Monday items to Discord threads."""

from datetime import datetime

from sqlalchemy import DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import SqlalchemyBase


class ThreadMapping(SqlalchemyBase):
    """One row per mapped Monday item."""

    __tablename__ = "thread_mappings"
    __table_args__ = (
        Index("idx_thread_mappings_item_id", "item_id", unique=True),
        Index("idx_thread_mappings_thread_id", "thread_id", unique=True),
        Index("idx_thread_mappings_mapped_at", "mapped_at"),
    )

    item_id: Mapped[str] = mapped_column(String, nullable=False)
    thread_id: Mapped[str] = mapped_column(String, nullable=False)
    project_name: Mapped[str] = mapped_column(String, nullable=False)
    mapped_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<ThreadMapping(item_id='{self.item_id}', thread_id='{self.thread_id}')>"
