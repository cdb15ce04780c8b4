from __future__ import annotations

from typing import Protocol


class CredentialStore(Protocol):
    """Protocol for bearer token storage."""

    def get_token(self) -> str: ...

    def set_token(self, token: str) -> None: ...

    def delete_token(self) -> None: ...
