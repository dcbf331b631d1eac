"""
Document and media storage.

All paths handed to a Storage are vault-relative POSIX strings, e.g.
"_assets/note.assets/diagram.png". LocalStorage maps them onto a directory
on disk; hosts with their own file abstraction implement the Storage protocol
instead.
"""

from __future__ import annotations

import asyncio
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Protocol


DOCUMENT_SUFFIX = ".md"
DOCUMENT_ENCODING = "utf-8"


class StorageConflictError(FileExistsError):
    """Raised when creating a file or folder that already exists."""


class FolderExistsError(StorageConflictError):
    """Raised by create_folder() when the folder is already there."""


@dataclass(frozen=True)
class Document:
    """
    Identity of a text document inside the vault.

    Only the vault-relative path is held; the content is always read through
    the Storage, so a Document can be queued without owning any text.
    """
    path: str

    @property
    def name(self) -> str:
        """File name with extension, e.g. "note.md"."""
        return PurePosixPath(self.path).name

    @property
    def basename(self) -> str:
        """File name without extension, e.g. "note"."""
        return PurePosixPath(self.path).stem

    @property
    def parent_name(self) -> str:
        """Name of the containing folder; empty for documents at the root."""
        parent = PurePosixPath(self.path).parent
        return "" if str(parent) == "." else parent.name


def join_path(*parts: str) -> str:
    """Join vault-relative path segments, dropping empty ones."""
    cleaned = [p.strip("/") for p in parts if p and p.strip("/")]
    return "/".join(cleaned)


class Storage(Protocol):
    """Host file abstraction consumed by the localization pipeline."""

    async def exists(self, path: str) -> bool: ...

    async def read_bytes(self, path: str) -> bytes: ...

    async def create_file(self, path: str, data: bytes) -> None:
        """Create a new file; raises StorageConflictError if it exists."""
        ...

    async def create_folder(self, path: str) -> None:
        """Create a folder; raises FolderExistsError if it exists."""
        ...

    async def read_document_text(self, document: Document) -> str: ...

    async def write_document_text(self, document: Document, text: str) -> None: ...

    async def list_documents(self) -> list[Document]: ...


class LocalStorage:
    """
    Storage backed by a directory on the local file system.

    Blocking file operations run in worker threads so the event loop only
    suspends at I/O boundaries.
    """

    def __init__(self, root: Path | str):
        """
        Initialize the storage.

        Args:
            root: The vault root directory. Created if missing.
        """
        self._root = Path(root).resolve()
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        """Get the vault root directory."""
        return self._root

    def resolve(self, path: str) -> Path:
        """
        Map a vault-relative path to an absolute path under the root.

        Raises:
            ValueError: If the path escapes the root.
        """
        candidate = (self._root / path).resolve()
        if candidate != self._root and self._root not in candidate.parents:
            raise ValueError(f"Path escapes storage root: {path!r}")
        return candidate

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(self.resolve(path).exists)

    async def read_bytes(self, path: str) -> bytes:
        return await asyncio.to_thread(self.resolve(path).read_bytes)

    async def create_file(self, path: str, data: bytes) -> None:
        await asyncio.to_thread(self._create_file_sync, self.resolve(path), data)

    async def create_folder(self, path: str) -> None:
        target = self.resolve(path)
        try:
            await asyncio.to_thread(target.mkdir, parents=True)
        except FileExistsError as exc:
            raise FolderExistsError(f"Folder already exists: {path}") from exc

    async def read_document_text(self, document: Document) -> str:
        target = self.resolve(document.path)
        return await asyncio.to_thread(self._read_text_sync, target)

    async def write_document_text(self, document: Document, text: str) -> None:
        target = self.resolve(document.path)
        await asyncio.to_thread(self._replace_text_sync, target, text)

    async def list_documents(self) -> list[Document]:
        return await asyncio.to_thread(self._list_documents_sync)

    def _list_documents_sync(self) -> list[Document]:
        documents = []
        for file_path in sorted(self._root.rglob(f"*{DOCUMENT_SUFFIX}")):
            if not file_path.is_file():
                continue
            relative = file_path.relative_to(self._root)
            # Skip hidden folders such as .obsidian/ or .trash/
            if any(part.startswith(".") for part in relative.parts):
                continue
            documents.append(Document(relative.as_posix()))
        return documents

    def _read_text_sync(self, path: Path) -> str:
        # newline="" keeps line endings exactly as stored
        with open(path, "r", encoding=DOCUMENT_ENCODING, newline="") as f:
            return f.read()

    def _create_file_sync(self, final_path: Path, data: bytes) -> None:
        # Write to a temp file, then hard-link it into place: the link fails if
        # the target exists, so a concurrent writer can never be overwritten.
        final_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path_str = tempfile.mkstemp(
            dir=str(final_path.parent),
            prefix=f".{final_path.name}.",
            suffix=".tmp",
        )
        tmp_path = Path(tmp_path_str)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            try:
                os.link(tmp_path, final_path)
            except FileExistsError as exc:
                raise StorageConflictError(f"File already exists: {final_path.name}") from exc
        finally:
            try:
                tmp_path.unlink()
            except FileNotFoundError:
                pass

    def _replace_text_sync(self, final_path: Path, text: str) -> None:
        fd, tmp_path_str = tempfile.mkstemp(
            dir=str(final_path.parent),
            prefix=f".{final_path.name}.",
            suffix=".tmp",
        )
        tmp_path = Path(tmp_path_str)
        try:
            with os.fdopen(fd, "w", encoding=DOCUMENT_ENCODING, newline="") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, final_path)
        finally:
            try:
                tmp_path.unlink()
            except FileNotFoundError:
                pass
