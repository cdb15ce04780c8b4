from archive_search.credentials.base import CredentialStore
from archive_search.credentials.file_store import FileTokenStore, default_token_path

__all__ = [
    "CredentialStore",
    "FileTokenStore",
    "default_token_path",
]
