"""JSON snapshot files for exporting, importing and migrating mappings.

Snapshot layout::

    {"mappings": {"<itemId>": {"threadId": ..., "projectName": ..., "mappedAt": ...}}}
"""

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..errors import MappingConflictError
from .mapping_store import MappingRecord, MappingStore

logger = logging.getLogger(__name__)


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            logger.warning("Unparseable mappedAt %r, using current time", value)
        else:
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return datetime.now(timezone.utc)


def records_from_snapshot(data: dict[str, Any]) -> list[MappingRecord]:
    """Convert a parsed snapshot into records, skipping malformed entries."""
    records = []
    for item_id, entry in (data.get("mappings") or {}).items():
        if not isinstance(entry, dict) or not entry.get("threadId"):
            logger.warning("Skipping malformed snapshot entry for item %s", item_id)
            continue
        records.append(
            MappingRecord(
                item_id=str(item_id),
                thread_id=str(entry["threadId"]),
                project_name=entry.get("projectName") or "Unknown Project",
                mapped_at=_parse_timestamp(entry.get("mappedAt")),
            )
        )
    return records


def records_from_taskbot_state(data: dict[str, Any]) -> list[MappingRecord]:
    """Convert a TaskBot ``project-sync-state.json`` into records.

    Only projects whose Discord thread was actually created are kept.
    """
    records = []
    for item_id, project in (data.get("syncedProjects") or {}).items():
        thread_id = (((project or {}).get("created") or {}).get("discord") or {}).get("threadId")
        if not thread_id:
            continue
        records.append(
            MappingRecord(
                item_id=str(item_id),
                thread_id=str(thread_id),
                project_name=project.get("projectName") or "Unknown Project",
                mapped_at=_parse_timestamp(project.get("syncedAt")),
            )
        )
    return records


def load_snapshot(path: str | Path) -> list[MappingRecord]:
    """Read a snapshot file. A missing file is an empty snapshot."""
    path = Path(path).expanduser()
    if not path.exists():
        logger.info("No snapshot at %s, treating as empty", path)
        return []
    with path.open(encoding="utf-8") as f:
        return records_from_snapshot(json.load(f))


def write_snapshot(path: str | Path, records: dict[str, MappingRecord]) -> None:
    """Write records to `path` via a temp file and atomic rename.

    A crash mid-write leaves the previous file intact.
    """
    path = Path(path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)

    payload = {
        "mappings": {
            item_id: {
                "threadId": record.thread_id,
                "projectName": record.project_name,
                "mappedAt": record.mapped_at.isoformat(),
            }
            for item_id, record in records.items()
        },
        "lastUpdated": datetime.now(timezone.utc).isoformat(),
    }

    fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=".mappings_", suffix=".json.tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_path, path)
    except Exception:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise


async def export_mappings(store: MappingStore, path: str | Path) -> int:
    """Dump the whole store to a snapshot file. Returns the record count."""
    records = await store.all()
    write_snapshot(path, records)
    logger.info("Exported %d mapping(s) to %s", len(records), path)
    return len(records)


async def import_records(store: MappingStore, records: list[MappingRecord]) -> int:
    """Put each record into the store. Returns how many were written."""
    written = 0
    for record in records:
        existing = await store.get(record.item_id)
        if existing and existing.thread_id == record.thread_id:
            continue
        try:
            await store.put(record.item_id, record.thread_id, record.project_name, record.mapped_at)
        except MappingConflictError as e:
            logger.warning("Skipping item %s: %s", record.item_id, e)
            continue
        written += 1
    logger.info("Imported %d of %d mapping(s)", written, len(records))
    return written


def load_taskbot_state(path: str | Path) -> list[MappingRecord]:
    """Read TaskBot's ``project-sync-state.json`` and convert it."""
    path = Path(path).expanduser()
    with path.open(encoding="utf-8") as f:
        return records_from_taskbot_state(json.load(f))
