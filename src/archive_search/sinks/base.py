from __future__ import annotations

from typing import Any, Dict, Iterator, List, Protocol

Row = Dict[str, Any]


class TabularStore(Protocol):
    """Protocol for the append-only backing store of a job's records."""

    def location_for(self, key: str) -> str: ...

    def finished_location_for(self, key: str) -> str: ...

    def exists(self, location: str) -> bool: ...

    def append_rows(self, location: str, rows: List[Row]) -> None: ...

    def ensure(self, location: str) -> None: ...

    def iter_chunks(self, location: str, chunk_size: int = 10_000) -> Iterator[List[Row]]: ...

    def read_all(self, location: str) -> List[Row]: ...

    def rename(self, location: str, new_location: str) -> None: ...

    def repair(self, location: str) -> int: ...
