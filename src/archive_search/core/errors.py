from __future__ import annotations

from typing import Any, Dict, List, Optional


class ArchiveSearchError(Exception):
    """Base class for every error the search engine lets escape."""

    def __init__(self, message: str, job_key: Optional[str] = None):
        super().__init__(message)
        self.job_key = job_key

    def __str__(self) -> str:
        base = super().__str__()
        if self.job_key:
            return f"{base} (job: {self.job_key})"
        return base


class InvalidInput(ArchiveSearchError, ValueError):
    """Caller-supplied parameters are missing or malformed."""


class InvalidQuery(ArchiveSearchError):
    """The remote API rejected the query (HTTP 400). Never retried."""

    def __init__(self, errors: List[Dict[str, Any]], detail: str = "", job_key: Optional[str] = None):
        self.errors = list(errors)
        self.detail = detail or render_remote_errors(errors)
        super().__init__(
            "The API considers the request bad (400 response status). "
            "This probably means something is wrong with the query.\n\n" + self.detail,
            job_key=job_key,
        )


class RequestExhausted(ArchiveSearchError):
    """The retry budget ran out before a successful response arrived."""

    def __init__(self, last_status: Optional[int], attempts: int, job_key: Optional[str] = None):
        self.last_status = last_status
        self.attempts = attempts
        super().__init__(
            f"Gave up after {attempts} attempts (last status: {last_status if last_status is not None else 'no response'})",
            job_key=job_key,
        )


class NoToken(ArchiveSearchError):
    """No bearer token has been provisioned."""

    def __init__(self, message: str = "No bearer token set yet. Run `archive-search set-token` first."):
        super().__init__(message)


class NotYetFinished(ArchiveSearchError):
    """Read-only access was requested for a job without a finished store."""


class SearchCancelled(ArchiveSearchError):
    """The cancellation signal was raised at a sleep or request boundary."""


def render_remote_errors(errors: List[Dict[str, Any]]) -> str:
    """Render the remote's error objects as `name:\\nvalue` blocks, one per field."""
    blocks = []
    for err in errors:
        if not isinstance(err, dict):
            blocks.append(str(err))
            continue
        for name, value in err.items():
            blocks.append(f"{name}:\n{value}")
    return "\n\n".join(blocks)
