from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from archive_search.core.errors import InvalidInput

OPEN_END_SENTINEL = "endoftime"


def normalize_query(query: Any) -> str:
    """Keep only the alphanumeric characters of a query."""
    if isinstance(query, (list, tuple, set)):
        raise InvalidInput("Can only provide 1 query at a time")
    if query is None or not str(query).strip():
        raise InvalidInput("Query cannot be empty")
    return "".join(ch for ch in str(query) if ch.isalnum())


def literal_time(value: Any) -> str:
    """The user's time input as written (dates and datetimes in ISO form)."""
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def derive_key(query: Any, start: Any, end: Optional[Any]) -> str:
    """
    Derive the job key for a query and its literal time inputs.

    The key depends only on its arguments, so repeated invocations with the same
    inputs land on the same store. Queries differing only in whitespace or
    punctuation share a key. An open end always maps to a sentinel, so open and
    closed windows never share a store.
    """
    if start is None:
        raise InvalidInput("Start time cannot be empty")
    end_part = OPEN_END_SENTINEL if end is None else literal_time(end)
    return "_".join([normalize_query(query), literal_time(start), end_part])
