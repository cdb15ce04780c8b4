from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, FrozenSet, List, Optional, Union

# Column order of every persisted store.
SAVE_COLUMNS: List[str] = [
    "id",
    "author_id",
    "source",
    "reply_settings",
    "conversation_id",
    "text",
    "created_at",
    "lang",
    "possibly_sensitive",
    "in_reply_to_user_id",
    "retweet_count",
    "reply_count",
    "like_count",
    "quote_count",
    "place_id",
    "referenced_tweets_json",
    "mentions_json",
    "urls_json",
    "hashtags_json",
    "annotations_json",
    "cashtags_json",
    "media_keys_json",
]

TWEET_FIELDS = (
    "public_metrics,created_at,author_id,attachments,conversation_id,entities,geo,id,"
    "in_reply_to_user_id,lang,possibly_sensitive,referenced_tweets,reply_settings,source,withheld"
)

NULL_MARKER = "NA"

MIN_PAGESIZE = 10
MAX_PAGESIZE = 500

DEFAULT_BASE_URL = "https://api.twitter.com/2/"
DEFAULT_ENDPOINT = "tweets/search/all"

TimeInput = Union[str, datetime, Any]


@dataclass(frozen=True)
class RequestSpec:
    """Specification for an HTTP request."""

    url: str
    method: str = "GET"
    headers: Dict[str, str] = field(default_factory=dict)
    params: Dict[str, Any] = field(default_factory=dict)
    body: Any = None


@dataclass(frozen=True)
class SearchJob:
    """One logical collection task: a query over a time window."""

    query: Any
    start_time: Optional[TimeInput]
    end_time: Optional[TimeInput] = None
    path: str = "."
    read_finished: bool = False
    just_download: bool = False
    pagesize: int = MAX_PAGESIZE
    perseverance: float = 10
    progressbar: bool = True
    base_url: str = DEFAULT_BASE_URL
    endpoint: str = DEFAULT_ENDPOINT


@dataclass(frozen=True)
class TimeWindow:
    """Normalized half-open window [start, end) in UTC, second precision."""

    start: datetime
    end: datetime
    is_open: bool = False

    @property
    def total_seconds(self) -> float:
        return (self.end - self.start).total_seconds()


@dataclass
class RawPage:
    """One decoded page of search results."""

    records: List[Dict[str, Any]]
    result_count: int
    next_token: Optional[str] = None
    error_detail: Optional[List[Dict[str, Any]]] = None

    @property
    def is_last(self) -> bool:
        return not self.next_token


@dataclass(frozen=True)
class ResumePoint:
    """Where an interrupted walk picks up, derived from the stored rows."""

    until_id: int
    floor_time: datetime
    floor_ids: FrozenSet[int] = frozenset()

    def accepts(self, record_id: int) -> bool:
        return record_id < self.until_id and record_id not in self.floor_ids


@dataclass
class SearchReport:
    """Summary of one engine run."""

    job_key: str = ""
    store_path: str = ""
    pages_fetched: int = 0
    records_received: int = 0
    records_appended: int = 0
    records_skipped_existing: int = 0
    batches_written: int = 0
    resumed: bool = False
    finished: bool = False
    rows: Optional[List[Dict[str, Any]]] = None
