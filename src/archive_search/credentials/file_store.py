from __future__ import annotations

import os
import stat
from pathlib import Path
from typing import Optional

from archive_search.core.errors import NoToken
from archive_search.utils.logging import get_logger

TOKEN_FILE_ENV = "ARCHIVE_SEARCH_TOKEN_FILE"
TOKEN_FILE_NAME = ".archive_search_token"


def default_token_path() -> Path:
    """Token file location: $ARCHIVE_SEARCH_TOKEN_FILE, else ~/.archive_search_token."""
    override = os.environ.get(TOKEN_FILE_ENV)
    if override:
        return Path(override)
    home = os.environ.get("HOME") or str(Path.home())
    return Path(home) / TOKEN_FILE_NAME


class FileTokenStore:
    """Keeps the bearer token in a read-only (0400) file."""

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path) if path else default_token_path()
        self.log = get_logger("archive_search.credentials")

    def get_token(self) -> str:
        try:
            token = self.path.read_text(encoding="utf-8").strip()
        except OSError:
            raise NoToken() from None
        if not token:
            raise NoToken()
        return token

    def set_token(self, token: str) -> None:
        token = (token or "").strip()
        if not token:
            raise ValueError("Token cannot be empty")

        self.path.parent.mkdir(parents=True, exist_ok=True)
        if self.path.exists():
            # the previous token file is read-only
            os.chmod(self.path, stat.S_IRUSR | stat.S_IWUSR)

        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(token)
        os.chmod(self.path, stat.S_IRUSR)
        self.log.info("Bearer token stored at %s", self.path)

    def delete_token(self) -> None:
        if not self.path.exists():
            return
        os.chmod(self.path, stat.S_IRUSR | stat.S_IWUSR)
        self.path.unlink()
        self.log.info("Bearer token deleted from %s", self.path)
