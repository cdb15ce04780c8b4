from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Set

from archive_search.core.models import ResumePoint
from archive_search.core.window import parse_created_at
from archive_search.sinks.base import TabularStore
from archive_search.utils.logging import get_logger


def parse_record_id(value: Any) -> Optional[int]:
    """Record ids are decimal strings; None when unreadable."""
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


class Checkpointer:
    """
    Recovers the resume point of an interrupted job from its stored rows.

    The walk runs from the most recent record toward the oldest, so the stored
    rows alone say where it stopped: the highest id seen and the earliest
    creation time. Rows are folded chunk by chunk, never loaded all at once.
    """

    def __init__(self, store: TabularStore, chunk_size: int = 10_000):
        self.store = store
        self.chunk_size = chunk_size
        self.log = get_logger("archive_search.checkpoint")

    def resume_point(self, location: str) -> Optional[ResumePoint]:
        """Return the resume point for a store, or None if it is missing or holds no readable rows."""
        if not self.store.exists(location):
            return None

        until_id: Optional[int] = None
        floor_time: Optional[datetime] = None
        floor_ids: Set[int] = set()
        unreadable = 0

        for chunk in self.store.iter_chunks(location, self.chunk_size):
            for row in chunk:
                record_id = parse_record_id(row.get("id"))
                created_at = parse_created_at(row.get("created_at"))
                if record_id is None or created_at is None:
                    unreadable += 1
                    continue

                if until_id is None or record_id > until_id:
                    until_id = record_id

                if floor_time is None or created_at < floor_time:
                    floor_time = created_at
                    floor_ids = {record_id}
                elif created_at == floor_time:
                    floor_ids.add(record_id)

        if unreadable:
            self.log.warning("Checkpoint: ignored %d unreadable rows in %s", unreadable, location)

        if until_id is None or floor_time is None:
            return None

        self.log.info(
            "Checkpoint: until_id=%s floor_time=%s boundary_records=%d",
            until_id,
            floor_time.isoformat(),
            len(floor_ids),
        )
        return ResumePoint(until_id=until_id, floor_time=floor_time, floor_ids=frozenset(floor_ids))
