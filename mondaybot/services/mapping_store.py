"""Durable item <-> thread mapping store."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.exc import IntegrityError

from ..errors import MappingConflictError
from ..orm.thread_mapping import ThreadMapping
from .database import DatabaseService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MappingRecord:
    """A Monday item and the Discord thread that represents it."""

    item_id: str
    thread_id: str
    project_name: str
    mapped_at: datetime


def _to_record(row: ThreadMapping) -> MappingRecord:
    mapped_at = row.mapped_at
    # SQLite hands back naive datetimes; they were written as UTC
    if mapped_at.tzinfo is None:
        mapped_at = mapped_at.replace(tzinfo=timezone.utc)
    return MappingRecord(
        item_id=row.item_id,
        thread_id=row.thread_id,
        project_name=row.project_name,
        mapped_at=mapped_at,
    )


class MappingStore:
    """Source of truth for which thread belongs to which item.

    Every successful ``put`` is committed before it returns, so a mapping
    survives a crash immediately afterwards. Records are never deleted.
    """

    def __init__(self, db: DatabaseService):
        self.db = db

    async def get(self, item_id: str) -> Optional[MappingRecord]:
        """Return the record for an item, or None if it isn't mapped."""
        async with self.db.session() as session:
            result = await session.execute(
                select(ThreadMapping).where(ThreadMapping.item_id == str(item_id))
            )
            row = result.scalar_one_or_none()
            return _to_record(row) if row else None

    async def get_reverse(self, thread_id: str) -> Optional[str]:
        """Return the item owning a thread, or None."""
        async with self.db.session() as session:
            result = await session.execute(
                select(ThreadMapping.item_id).where(ThreadMapping.thread_id == str(thread_id))
            )
            return result.scalar_one_or_none()

    async def put(
        self,
        item_id: str,
        thread_id: str,
        project_name: str,
        mapped_at: Optional[datetime] = None,
    ) -> MappingRecord:
        """Create or overwrite the mapping for an item.

        Raises:
            MappingConflictError: If the thread already belongs to another item.
        """
        item_id = str(item_id)
        thread_id = str(thread_id)
        mapped_at = mapped_at or datetime.now(timezone.utc)

        async with self.db.session() as session:
            owner = (
                await session.execute(
                    select(ThreadMapping.item_id).where(ThreadMapping.thread_id == thread_id)
                )
            ).scalar_one_or_none()
            if owner is not None and owner != item_id:
                raise MappingConflictError(thread_id, owner, item_id)

            stmt = insert(ThreadMapping).values(
                item_id=item_id,
                thread_id=thread_id,
                project_name=project_name,
                mapped_at=mapped_at,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[ThreadMapping.item_id],
                set_={
                    "thread_id": stmt.excluded.thread_id,
                    "project_name": stmt.excluded.project_name,
                    "mapped_at": stmt.excluded.mapped_at,
                    "updated_at": func.now(),
                },
            )
            try:
                await session.execute(stmt)
                await session.commit()
            except IntegrityError as e:
                # Lost a race for the thread_id unique index
                await session.rollback()
                raise MappingConflictError(thread_id, "unknown", item_id) from e

        logger.info("Mapped Monday item %s to Discord thread %s", item_id, thread_id)
        return MappingRecord(item_id, thread_id, project_name, mapped_at)

    async def all(self) -> dict[str, MappingRecord]:
        """Full snapshot keyed by item id, oldest mapping first."""
        async with self.db.session() as session:
            result = await session.execute(
                select(ThreadMapping).order_by(ThreadMapping.mapped_at)
            )
            return {row.item_id: _to_record(row) for row in result.scalars().all()}

    async def count(self) -> int:
        async with self.db.session() as session:
            result = await session.execute(select(func.count(ThreadMapping.id)))
            return result.scalar_one()

    async def recent(self, limit: int = 5) -> list[MappingRecord]:
        """Most recently mapped records, newest first."""
        async with self.db.session() as session:
            result = await session.execute(
                select(ThreadMapping).order_by(ThreadMapping.mapped_at.desc()).limit(limit)
            )
            return [_to_record(row) for row in result.scalars().all()]
