"""
File system utilities for media storage.

Provides:
- Storage protocol and local directory implementation (storage.py)
- File naming and collision resolution (naming.py)
- Content hashing and the link hash registry (hashing.py)
"""

from .storage import Document, FolderExistsError, LocalStorage, Storage, StorageConflictError, join_path
from .naming import FilenameResolver, NameGenerationError, ResolvedName, sanitize_filename
from .hashing import LinkHashRegistry, compute_bytes_hash

__all__ = [
    "Document",
    "FolderExistsError",
    "LocalStorage",
    "Storage",
    "StorageConflictError",
    "join_path",
    "FilenameResolver",
    "NameGenerationError",
    "ResolvedName",
    "sanitize_filename",
    "LinkHashRegistry",
    "compute_bytes_hash",
]
