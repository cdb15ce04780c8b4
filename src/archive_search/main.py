from __future__ import annotations

import getpass
import signal
import sys
import threading

from archive_search.config_models import config_to_job, load_and_validate_config
from archive_search.core.engine import job_summary
from archive_search.core.errors import ArchiveSearchError
from archive_search.core.factory import ComponentFactory
from archive_search.core.models import SearchJob, SearchReport
from archive_search.credentials.file_store import FileTokenStore
from archive_search.utils.logging import setup_logging

USAGE = (
    "Usage:\n"
    "  archive-search configs/jobs/<job>.yaml\n"
    "  archive-search set-token\n"
    "  archive-search delete-token"
)


def run_one(job: SearchJob, min_interval_s: float = 1.0, http_timeout_s: int = 30) -> SearchReport:
    """Run a single search job; SIGINT/SIGTERM stop it at the next sleep or request."""
    setup_logging("configs/logging.yaml")

    cancel_event = threading.Event()
    _install_signal_handlers(cancel_event)

    factory = ComponentFactory(
        http_timeout_s=http_timeout_s,
        min_interval_s=min_interval_s,
        cancel_event=cancel_event,
    )
    built = factory.build(job)
    return built.engine.run(job)


def set_token() -> None:
    """Prompt for the bearer token without echoing it and store it."""
    token = getpass.getpass("Enter your API Bearer Token: ")
    FileTokenStore().set_token(token)
    print("Token stored.")


def delete_token() -> None:
    FileTokenStore().delete_token()
    print("Token deleted.")


def main() -> None:
    """Main entry point for archive search."""
    if len(sys.argv) < 2:
        print(USAGE)
        raise SystemExit(2)

    command = sys.argv[1]
    try:
        if command == "set-token":
            set_token()
            return
        if command == "delete-token":
            delete_token()
            return

        print(f"Loading job from {command}")
        config = load_and_validate_config(command)
        job = config_to_job(config)
        report = run_one(job, min_interval_s=config.api.min_interval_s, http_timeout_s=config.api.timeout_s)
        print("DONE:", job_summary(report))
    except ArchiveSearchError as e:
        print(f"ERROR ({type(e).__name__}): {e}", file=sys.stderr)
        raise SystemExit(1)
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        raise SystemExit(1)


def _install_signal_handlers(cancel_event: threading.Event) -> None:
    if threading.current_thread() is not threading.main_thread():
        return

    def _handler(signum, frame):
        print(f"Received signal {signum}; stopping after the current step", file=sys.stderr)
        cancel_event.set()

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)


if __name__ == "__main__":
    main()
