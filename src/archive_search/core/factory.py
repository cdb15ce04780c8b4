from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Optional

from archive_search.core.engine import SearchEngine
from archive_search.core.models import SearchJob
from archive_search.credentials.base import CredentialStore
from archive_search.credentials.file_store import FileTokenStore
from archive_search.fetch.fetcher import RateLimitedFetcher
from archive_search.http.client import HttpClient, RequestsHttpClient
from archive_search.http.policies import RequestPacer, RetryPolicy, Sleeper
from archive_search.sinks.base import TabularStore
from archive_search.sinks.csv_sink import CsvTabularStore
from archive_search.state.checkpoint import Checkpointer
from archive_search.utils.progress import NullProgress, ProgressReporter, TqdmProgress


@dataclass(frozen=True)
class BuiltComponents:
    engine: SearchEngine
    fetcher: RateLimitedFetcher
    store: TabularStore
    checkpointer: Checkpointer
    progress: ProgressReporter


class ComponentFactory:
    """
    Factory responsible for wiring dependencies.
    Keeps main.py clean; tests swap in their own client or credentials.
    """

    def __init__(
        self,
        http_timeout_s: int = 30,
        min_interval_s: float = 1.0,
        credentials: Optional[CredentialStore] = None,
        client: Optional[HttpClient] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.http_timeout_s = http_timeout_s
        self.min_interval_s = min_interval_s
        self.credentials = credentials
        self.client = client
        self.cancel_event = cancel_event

    def build(self, job: SearchJob) -> BuiltComponents:
        """
        Build all components needed for one search job.

        Args:
            job: The search job.

        Returns:
            A container with all built components.
        """
        sleeper = Sleeper(self.cancel_event)
        fetcher = self._fetcher(job, sleeper)
        store = self._store(job)
        checkpointer = Checkpointer(store)
        progress = self._progress(job)

        engine = SearchEngine(
            fetcher=fetcher,
            store=store,
            checkpointer=checkpointer,
            progress=progress,
        )

        return BuiltComponents(
            engine=engine,
            fetcher=fetcher,
            store=store,
            checkpointer=checkpointer,
            progress=progress,
        )

    # ---------- Builders (private) ----------

    def _fetcher(self, job: SearchJob, sleeper: Sleeper) -> RateLimitedFetcher:
        """Create the paced fetcher over the HTTP transport."""
        client = self.client or RequestsHttpClient(timeout_s=self.http_timeout_s)
        return RateLimitedFetcher(
            client=client,
            credentials=self.credentials or FileTokenStore(),
            retry=RetryPolicy(perseverance=job.perseverance),
            pacer=RequestPacer(min_interval_s=self.min_interval_s, sleeper=sleeper),
            sleeper=sleeper,
            base_url=job.base_url,
            endpoint=job.endpoint,
        )

    def _store(self, job: SearchJob) -> TabularStore:
        """Create the CSV store under the job's output path."""
        return CsvTabularStore(root=job.path)

    def _progress(self, job: SearchJob) -> ProgressReporter:
        """Create the progress reporter."""
        if job.progressbar and not job.read_finished:
            return TqdmProgress(desc="Searching")
        return NullProgress()
