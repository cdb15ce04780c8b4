from __future__ import annotations

from typing import Protocol

import requests

from archive_search.core.models import RequestSpec
from archive_search.http.response import HttpResponse
from archive_search.utils.logging import get_logger


class HttpClient(Protocol):
    """Protocol for HTTP transports. Implementations never retry."""

    def send(self, req: RequestSpec) -> HttpResponse: ...


class RequestsHttpClient:
    """HTTP transport using the requests library."""

    def __init__(self, timeout_s: int = 30):
        self.session = requests.Session()
        self.timeout_s = timeout_s
        self.log = get_logger("archive_search.http")

    def send(self, req: RequestSpec) -> HttpResponse:
        """Send one HTTP request; network errors propagate as requests exceptions."""
        r = self.session.request(
            method=req.method,
            url=req.url,
            headers=req.headers,
            params=req.params,
            timeout=self.timeout_s,
        )
        ct = r.headers.get("Content-Type", "")
        if "charset=" not in ct.lower():
            r.encoding = "utf-8"
        self.log.debug("GET %s -> %s", req.url, r.status_code)
        return HttpResponse(status_code=r.status_code, headers=dict(r.headers), text=r.text)

    def close(self) -> None:
        self.session.close()
