from __future__ import annotations

import csv
import io
import os
from pathlib import Path
from typing import Iterator, List, Optional

from archive_search.core.models import NULL_MARKER, SAVE_COLUMNS
from archive_search.sinks.base import Row, TabularStore
from archive_search.utils.logging import get_logger

DATA_FOLDER = "archive_search_data"
FINISHED_SUFFIX = "_finished"

# characters that would turn a job key into a nested or invalid path
_UNSAFE = str.maketrans({"/": "-", "\\": "-", ":": "-"})


class CsvTabularStore(TabularStore):
    """
    CSV files under `<root>/archive_search_data`, one per job.

    Batches are appended with a single write followed by fsync. A crash in the
    middle of a write can leave a partial last record, which `repair` cuts off.
    """

    def __init__(self, root: str = ".", columns: Optional[List[str]] = None):
        self.folder = Path(root) / DATA_FOLDER
        self.columns = list(columns or SAVE_COLUMNS)
        self.log = get_logger("archive_search.sink.csv")

    def location_for(self, key: str) -> str:
        return str(self.folder / f"{key.translate(_UNSAFE)}.csv")

    def finished_location_for(self, key: str) -> str:
        return str(self.folder / f"{key.translate(_UNSAFE)}{FINISHED_SUFFIX}.csv")

    def exists(self, location: str) -> bool:
        return os.path.exists(location)

    def append_rows(self, location: str, rows: List[Row]) -> None:
        """Append rows in store column order; the header is written for a new or empty file."""
        if not rows:
            return

        self._ensure_parent_dir(location)
        buf = io.StringIO()
        w = csv.DictWriter(buf, fieldnames=self.columns, restval=NULL_MARKER, extrasaction="ignore", lineterminator="\n")
        if not self._file_has_content(location):
            w.writeheader()
        for row in rows:
            w.writerow(row)

        with open(location, "a", newline="", encoding="utf-8") as f:
            f.write(buf.getvalue())
            f.flush()
            os.fsync(f.fileno())

        self.log.info("CSV append: path=%s rows=%d", location, len(rows))

    def ensure(self, location: str) -> None:
        """Create an empty store (header only) if it does not exist yet."""
        if self._file_has_content(location):
            return
        self._ensure_parent_dir(location)
        with open(location, "w", newline="", encoding="utf-8") as f:
            csv.DictWriter(f, fieldnames=self.columns, lineterminator="\n").writeheader()
            f.flush()
            os.fsync(f.fileno())

    def iter_chunks(self, location: str, chunk_size: int = 10_000) -> Iterator[List[Row]]:
        """Stream the stored rows in chunks of at most chunk_size."""
        chunk: List[Row] = []
        with open(location, "r", newline="", encoding="utf-8") as f:
            for raw in csv.DictReader(f):
                chunk.append({k: (None if v == NULL_MARKER else v) for k, v in raw.items()})
                if len(chunk) >= chunk_size:
                    yield chunk
                    chunk = []
        if chunk:
            yield chunk

    def read_all(self, location: str) -> List[Row]:
        rows: List[Row] = []
        for chunk in self.iter_chunks(location):
            rows.extend(chunk)
        return rows

    def rename(self, location: str, new_location: str) -> None:
        os.replace(location, new_location)
        self.log.info("CSV rename: %s -> %s", location, new_location)

    def repair(self, location: str) -> int:
        """
        Truncate a trailing partial record left by an interrupted append.

        Scans line by line, tracking quote parity, so quoted fields with embedded
        newlines are handled. Returns the number of bytes dropped.
        """
        if not self.exists(location):
            return 0

        complete_up_to = 0
        pos = 0
        quotes = 0
        with open(location, "rb") as f:
            for line in f:
                pos += len(line)
                quotes += line.count(b'"')
                if line.endswith(b"\n") and quotes % 2 == 0:
                    complete_up_to = pos
                    quotes = 0

        dropped = pos - complete_up_to
        if dropped:
            with open(location, "r+b") as f:
                f.truncate(complete_up_to)
            self.log.warning("CSV repair: dropped %d bytes of a partial record from %s", dropped, location)
        return dropped

    def _file_has_content(self, path: str) -> bool:
        return os.path.exists(path) and os.path.getsize(path) > 0

    def _ensure_parent_dir(self, path: str) -> None:
        parent = Path(path).parent
        if str(parent) not in {"", "."}:
            parent.mkdir(parents=True, exist_ok=True)
