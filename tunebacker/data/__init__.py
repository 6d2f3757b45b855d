"""Public façade for the tunebacker.data package.

This module exposes the store interfaces used by the OAuth flows and their
JSON-file-backed implementations. Callers should use this façade instead of
importing from the internal stores or json_stores modules directly.
"""

from .json_stores import (
    JsonBackupStore,
    JsonLinkedAccountStore,
    JsonNonceStore,
    LocalBlobStore,
    default_paths,
)
from .stores import BackupStore, BlobStore, LinkedAccountStore, NonceStore

__all__ = [
    "NonceStore",
    "BlobStore",
    "LinkedAccountStore",
    "BackupStore",
    "JsonNonceStore",
    "LocalBlobStore",
    "JsonLinkedAccountStore",
    "JsonBackupStore",
    "default_paths",
]
