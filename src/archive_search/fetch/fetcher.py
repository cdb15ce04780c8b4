from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import requests

from archive_search.core.errors import InvalidQuery, RequestExhausted
from archive_search.core.models import DEFAULT_BASE_URL, DEFAULT_ENDPOINT, RawPage, RequestSpec
from archive_search.credentials.base import CredentialStore
from archive_search.http.client import HttpClient
from archive_search.http.policies import RequestPacer, RetryPolicy, Sleeper
from archive_search.http.response import HttpResponse
from archive_search.parse.decoder import parse_error_detail, parse_page
from archive_search.utils.logging import get_logger

UNAVAILABLE_STATUSES = frozenset({502, 503, 504})


@dataclass
class RateLimitState:
    """Process-local view of the remote quota, rebuilt from live responses."""

    remaining: Optional[int] = None
    reset_epoch: Optional[float] = None
    last_status: Optional[int] = None
    attempts: int = 0

    def update(self, resp: HttpResponse) -> None:
        self.last_status = resp.status_code
        remaining = resp.header("x-rate-limit-remaining")
        reset = resp.header("x-rate-limit-reset")
        self.remaining = _to_int(remaining)
        self.reset_epoch = _to_float(reset)


class RateLimitedFetcher:
    """
    Fetches one page of the paginated search endpoint.

    Every outbound request goes through the pacer, so consecutive requests are
    spaced out even across retries. Failures are handled per status kind:
    burst-limited 429s and overload 5xx responses are retried after short waits,
    an exhausted quota waits once until the reported reset instant, and a 400 is
    fatal. Anything else is retried with a warning until the budget runs out.
    """

    def __init__(
        self,
        client: HttpClient,
        credentials: CredentialStore,
        retry: Optional[RetryPolicy] = None,
        pacer: Optional[RequestPacer] = None,
        sleeper: Optional[Sleeper] = None,
        wall_clock: Callable[[], float] = time.time,
        base_url: str = DEFAULT_BASE_URL,
        endpoint: str = DEFAULT_ENDPOINT,
    ):
        self.client = client
        self.credentials = credentials
        self.retry = retry or RetryPolicy()
        self.sleeper = sleeper or Sleeper()
        self.pacer = pacer or RequestPacer(sleeper=self.sleeper)
        self.wall_clock = wall_clock
        self.url = base_url.rstrip("/") + "/" + endpoint.lstrip("/")
        self.state = RateLimitState()
        self.log = get_logger("archive_search.fetch")

    def fetch(self, params: Dict[str, Any], next_token: Optional[str] = None) -> RawPage:
        """
        Fetch one page.

        Args:
            params: Search parameters (query, time bounds, page size).
            next_token: Continuation cursor, or None for the first page.

        Returns:
            The decoded page.

        Raises:
            NoToken: If no bearer token is available.
            InvalidQuery: If the API rejects the query.
            RequestExhausted: If the retry budget runs out.
        """
        query = {k: v for k, v in params.items() if v is not None}
        if next_token is not None:
            query["next_token"] = next_token

        token = self.credentials.get_token()
        req = RequestSpec(
            url=self.url,
            headers={"Authorization": f"Bearer {token}"},
            params=query,
        )

        self.state.attempts = 0
        while self.retry.allows(self.state.attempts):
            self.state.attempts += 1
            self.pacer.wait()

            try:
                resp = self.client.send(req)
            except requests.RequestException as e:
                self.state.last_status = None
                self.log.warning(
                    "Request failed (%s, attempt=%s); retrying in %ss",
                    type(e).__name__,
                    self.state.attempts,
                    self.retry.unexpected_wait_s,
                )
                self.sleeper.sleep(self.retry.unexpected_wait_s)
                continue

            self.state.update(resp)
            status = resp.status_code

            if 200 <= status < 300:
                try:
                    return parse_page(resp.text)
                except ValueError as e:
                    self.log.warning("Undecodable page body (%s, attempt=%s); retrying", e, self.state.attempts)
                    self.sleeper.sleep(self.retry.unexpected_wait_s)
                    continue

            if status == 429:
                self._wait_for_quota()
            elif status in UNAVAILABLE_STATUSES:
                self.log.warning("Service unavailable (status=%s, attempt=%s)", status, self.state.attempts)
                self.sleeper.sleep(self.retry.unavailable_wait_s)
            elif status == 400:
                raise InvalidQuery(parse_error_detail(resp.text))
            else:
                self.log.warning(
                    "Got non-ok status code %s (attempt=%s); waiting %ss and trying again",
                    status,
                    self.state.attempts,
                    self.retry.unexpected_wait_s,
                )
                self.sleeper.sleep(self.retry.unexpected_wait_s)

        raise RequestExhausted(self.state.last_status, self.state.attempts)

    def _wait_for_quota(self) -> None:
        if self.state.remaining is not None and self.state.remaining > 0:
            self.log.warning("Rate limited with %s calls remaining; retrying in %ss", self.state.remaining, self.retry.burst_wait_s)
            self.sleeper.sleep(self.retry.burst_wait_s)
            return

        if self.state.reset_epoch is None:
            self.log.warning("Rate limited without a reset time; retrying in %ss", self.retry.unexpected_wait_s)
            self.sleeper.sleep(self.retry.unexpected_wait_s)
            return

        wait_s = self.state.reset_epoch - self.wall_clock()
        self.log.warning("Rate limit exhausted; waiting %.0fs until reset", max(wait_s, 0))
        if wait_s > 0:
            self.sleeper.sleep(wait_s)


def _to_int(value: Optional[str]) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except ValueError:
        return None


def _to_float(value: Optional[str]) -> Optional[float]:
    try:
        return float(value) if value is not None else None
    except ValueError:
        return None
