from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set

from archive_search.core.errors import ArchiveSearchError, InvalidInput, NotYetFinished
from archive_search.core.identity import derive_key
from archive_search.core.models import (
    MAX_PAGESIZE,
    MIN_PAGESIZE,
    TWEET_FIELDS,
    RawPage,
    ResumePoint,
    SearchJob,
    SearchReport,
    TimeWindow,
)
from archive_search.core.window import normalize_window, parse_created_at
from archive_search.fetch.fetcher import RateLimitedFetcher
from archive_search.parse.decoder import to_row
from archive_search.sinks.base import Row, TabularStore
from archive_search.state.checkpoint import Checkpointer, parse_record_id
from archive_search.utils.logging import get_logger
from archive_search.utils.progress import NullProgress, ProgressReporter
from archive_search.utils.time import to_wire, utc_now

BOUNDARY = timedelta(seconds=1)


class WalkState(str, Enum):
    """States of one pagination walk."""

    INIT = "INIT"
    FETCHING_PAGE = "FETCHING_PAGE"
    APPENDING = "APPENDING"
    CONTINUING = "CONTINUING"
    FINISHED = "FINISHED"
    FAILED = "FAILED"


class SearchEngine:
    """
    Walks the paginated search API over a job's window and persists every batch.

    The walk moves from the most recent record toward the oldest. After an
    interruption the job is resumed from what the store already holds: the
    window is capped at the earliest stored second and records already present
    are filtered out. When the API reports no further pages, a closed window's
    store is renamed to its finished name; an open window's store never is.
    """

    def __init__(
        self,
        fetcher: RateLimitedFetcher,
        store: TabularStore,
        checkpointer: Optional[Checkpointer] = None,
        progress: Optional[ProgressReporter] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the search engine.

        Args:
            fetcher: Paced, retrying fetcher for single pages.
            store: Backing store for the job's records.
            checkpointer: Resume point recovery (defaults to one over the store).
            progress: Receives the covered fraction of the window.
            clock: Source of "now" for open windows.
        """
        self.fetcher = fetcher
        self.store = store
        self.checkpointer = checkpointer or Checkpointer(store)
        self.progress = progress or NullProgress()
        self.clock = clock
        self.state = WalkState.INIT
        self.log = get_logger("archive_search.engine")

    def run(self, job: SearchJob) -> SearchReport:
        """
        Execute the job: short-circuit on a finished store, otherwise walk all pages.

        Args:
            job: The search job.

        Returns:
            A report of the run; `rows` holds the stored records unless
            `job.just_download` is set.
        """
        self.state = WalkState.INIT
        validate_job(job)
        key = derive_key(job.query, job.start_time, job.end_time)
        report = SearchReport(job_key=key)

        try:
            window = normalize_window(job.start_time, job.end_time, now=self.clock())
            active = self.store.location_for(key)
            finished = active if window.is_open else self.store.finished_location_for(key)

            if not window.is_open and self.store.exists(finished):
                self.log.info("Job %s already finished; reading %s", key, finished)
                return self._complete(job, report, finished, finished=True)

            if job.read_finished:
                if window.is_open and self.store.exists(active):
                    return self._complete(job, report, active, finished=False)
                raise NotYetFinished("Can't read the finished records of a search that has not finished yet")

            resume = None
            if self.store.exists(active):
                self.log.info("Search %s was started before but didn't finish; continuing where it left off", key)
                self.store.repair(active)
                resume = self.checkpointer.resume_point(active)
                report.resumed = resume is not None

            self.log.info(
                "Job started: %s window=[%s, %s) open=%s pagesize=%s",
                key,
                to_wire(window.start),
                to_wire(window.end),
                window.is_open,
                job.pagesize,
            )
            self._walk(job, window, resume, active, report)

            if window.is_open:
                self.log.info("Open window walked to the end; %s stays resumable", active)
            else:
                self._finalize(active, finished)
                report.finished = True
            self.state = WalkState.FINISHED

            self.log.info(
                "Job done: pages=%s received=%s appended=%s skipped_existing=%s batches=%s finished=%s",
                report.pages_fetched,
                report.records_received,
                report.records_appended,
                report.records_skipped_existing,
                report.batches_written,
                report.finished,
            )
            return self._complete(job, report, finished if report.finished else active, finished=report.finished)
        except ArchiveSearchError as e:
            self.state = WalkState.FAILED
            if e.job_key is None:
                e.job_key = key
            raise
        finally:
            self.progress.close()

    def _walk(
        self,
        job: SearchJob,
        window: TimeWindow,
        resume: Optional[ResumePoint],
        location: str,
        report: SearchReport,
    ) -> None:
        end = window.end
        if resume is not None:
            # re-query the boundary second; its stored records are filtered by id
            end = min(window.end, resume.floor_time + BOUNDARY)

        params = {
            "query": job.query,
            "tweet.fields": TWEET_FIELDS,
            "start_time": to_wire(window.start),
            "end_time": to_wire(end),
            "max_results": job.pagesize,
        }
        tracker = ProgressTracker(window, self.progress)
        tracker.update(end)

        next_token: Optional[str] = None
        while True:
            self.state = WalkState.FETCHING_PAGE
            page = self.fetcher.fetch(params, next_token)
            report.pages_fetched += 1

            self.state = WalkState.APPENDING
            self._append(page, resume, location, report, tracker)

            self.state = WalkState.CONTINUING
            if page.is_last:
                return
            next_token = page.next_token

    def _append(
        self,
        page: RawPage,
        resume: Optional[ResumePoint],
        location: str,
        report: SearchReport,
        tracker: "ProgressTracker",
    ) -> None:
        if page.result_count == 0 or not page.records:
            return
        report.records_received += len(page.records)

        batch: List[Row] = []
        batch_ids: Set[int] = set()
        for record in page.records:
            row = to_row(record)
            record_id = parse_record_id(row.get("id"))
            if record_id is None:
                self.log.warning("Skipping record without a readable id: %r", row.get("id"))
                continue
            if resume is not None and not resume.accepts(record_id):
                report.records_skipped_existing += 1
                continue
            if record_id in batch_ids:
                continue
            batch_ids.add(record_id)
            batch.append(row)

        if not batch:
            return

        self.store.append_rows(location, batch)
        report.records_appended += len(batch)
        report.batches_written += 1

        created = [ts for ts in (parse_created_at(r.get("created_at")) for r in batch) if ts is not None]
        if created:
            tracker.update(min(created))

    def _finalize(self, active: str, finished: str) -> None:
        if self.store.exists(active):
            self.store.rename(active, finished)
        else:
            self.store.ensure(finished)
        self.log.info("Search complete; marked finished at %s", finished)

    def _complete(self, job: SearchJob, report: SearchReport, location: str, finished: bool) -> SearchReport:
        report.store_path = location
        report.finished = finished
        if not job.just_download:
            report.rows = self.store.read_all(location) if self.store.exists(location) else []
        return report


class ProgressTracker:
    """Fraction of the window covered, from the earliest timestamp reached so far."""

    def __init__(self, window: TimeWindow, reporter: ProgressReporter):
        self.window = window
        self.reporter = reporter
        self.done = 0.0

    def update(self, reached: datetime) -> float:
        total = self.window.total_seconds
        if total <= 0:
            fraction = 1.0
        else:
            fraction = (self.window.end - reached).total_seconds() / total
        fraction = max(0.0, min(1.0, fraction))
        if fraction > self.done:
            self.done = fraction
            self.reporter.report(fraction)
        return self.done


def validate_job(job: SearchJob) -> None:
    """Reject bad parameters before any store or network access."""
    if job.start_time is None:
        raise InvalidInput("Start time cannot be empty")
    if isinstance(job.query, (list, tuple, set)):
        raise InvalidInput("Can only provide 1 query at a time")
    if isinstance(job.pagesize, bool) or not isinstance(job.pagesize, int):
        raise InvalidInput(f"pagesize must be an integer, got {job.pagesize!r}")
    if job.pagesize > MAX_PAGESIZE:
        raise InvalidInput(f"pagesize is limited to max {MAX_PAGESIZE}")
    if job.pagesize < MIN_PAGESIZE:
        raise InvalidInput(f"pagesize must be at least {MIN_PAGESIZE}")
    if job.perseverance < 1:
        raise InvalidInput("perseverance must be at least 1")


def job_summary(report: SearchReport) -> Dict[str, Any]:
    """Counters of a report without its rows, for printing."""
    return {
        "job_key": report.job_key,
        "store_path": report.store_path,
        "pages_fetched": report.pages_fetched,
        "records_appended": report.records_appended,
        "records_skipped_existing": report.records_skipped_existing,
        "resumed": report.resumed,
        "finished": report.finished,
        "rows": None if report.rows is None else len(report.rows),
    }
