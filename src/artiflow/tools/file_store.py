"""In-memory file/folder map with modification tracking and lock state.

Locks are advisory: the store records them and answers queries, and every
caller that mutates the tree is expected to consult :meth:`FileStore.is_file_locked`
first. The store's own mutators do not refuse locked paths.

Folder locks propagate to the files that exist at lock time and tag them with
``locked_by_folder``. Files locked individually are never tagged, so releasing
a folder leaves them alone.
"""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass, replace
from typing import Dict, Iterator, Mapping, NamedTuple, Union

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class FileEntry:
    """File node in the project tree."""

    content: str
    is_binary: bool = False
    is_locked: bool = False
    locked_by_folder: str | None = None


@dataclass(slots=True)
class FolderEntry:
    """Folder node in the project tree."""

    is_locked: bool = False


Dirent = Union[FileEntry, FolderEntry]


class LockStatus(NamedTuple):
    """Answer to a lock query; ``locked_by`` names the path holding the lock."""

    locked: bool
    locked_by: str | None = None


class FileModification(NamedTuple):
    original: str
    current: str


def _is_within(path: str, folder: str) -> bool:
    prefix = folder.rstrip("/") + "/"
    return path.startswith(prefix)


def _parent_folders(path: str) -> list[str]:
    parents: list[str] = []
    current = posixpath.dirname(path)
    while current and current not in ("/", "."):
        parents.append(current)
        current = posixpath.dirname(current)
    return list(reversed(parents))


class FileStore:
    """Project tree keyed by absolute-style paths such as ``/src/App.jsx``."""

    def __init__(self, files: Mapping[str, Dirent] | None = None) -> None:
        self._entries: Dict[str, Dirent] = {}
        self._original_contents: Dict[str, str] = {}
        self._deleted_paths: set[str] = set()
        if files:
            self.set_files(files)

    # Queries ----------------------------------------------------------

    @property
    def files_count(self) -> int:
        return sum(1 for entry in self._entries.values() if isinstance(entry, FileEntry))

    @property
    def deleted_paths(self) -> frozenset[str]:
        return frozenset(self._deleted_paths)

    def __contains__(self, path: object) -> bool:
        return path in self._entries

    def iter_entries(self) -> Iterator[tuple[str, Dirent]]:
        return iter(list(self._entries.items()))

    def get_entry(self, path: str) -> Dirent | None:
        return self._entries.get(path)

    def get_file(self, path: str) -> FileEntry | None:
        entry = self._entries.get(path)
        return entry if isinstance(entry, FileEntry) else None

    def file_contents(self) -> Dict[str, str]:
        """Return ``{path: content}`` for every file in the tree."""
        return {path: entry.content for path, entry in self._entries.items() if isinstance(entry, FileEntry)}

    def get_file_modifications(self) -> Dict[str, FileModification]:
        """Return original vs. current content for files that actually changed."""
        modifications: Dict[str, FileModification] = {}
        for path, original in self._original_contents.items():
            entry = self.get_file(path)
            if entry is not None and entry.content != original:
                modifications[path] = FileModification(original=original, current=entry.content)
        return modifications

    def get_modified_files(self) -> Dict[str, FileEntry]:
        return {path: self._entries[path] for path in self.get_file_modifications()}  # type: ignore[misc]

    # Mutations ---------------------------------------------------------

    def set_files(self, files: Mapping[str, Dirent]) -> None:
        self._entries = {path: replace(entry) for path, entry in files.items()}
        LOGGER.debug("Files replaced (%d file(s))", self.files_count)

    def create_file(self, path: str, content: str, *, is_binary: bool = False) -> FileEntry:
        """Create ``path`` (and missing parent folders) or overwrite its content.

        Overwriting an existing file keeps its lock flags. New files start
        unlocked even inside a locked folder.
        """
        existing = self.get_file(path)
        if existing is not None:
            self.update_file(path, content)
            return existing
        for folder in _parent_folders(path):
            if folder not in self._entries:
                self._entries[folder] = FolderEntry()
        entry = FileEntry(content=content, is_binary=is_binary)
        self._entries[path] = entry
        self._original_contents.setdefault(path, "")
        self._deleted_paths.discard(path)
        LOGGER.debug("File created %s (%d chars)", path, len(content))
        return entry

    def update_file(self, path: str, content: str) -> bool:
        entry = self.get_file(path)
        if entry is None:
            LOGGER.warning("Trying to update non-existent file %s", path)
            return False
        self._original_contents.setdefault(path, entry.content)
        entry.content = content
        LOGGER.debug("File updated %s (%d chars)", path, len(content))
        return True

    def delete_file(self, path: str) -> bool:
        if self.get_file(path) is None:
            LOGGER.warning("Trying to delete non-existent file %s", path)
            return False
        del self._entries[path]
        self._original_contents.pop(path, None)
        self._deleted_paths.add(path)
        LOGGER.debug("File deleted %s", path)
        return True

    def create_folder(self, path: str) -> FolderEntry:
        entry = self._entries.get(path)
        if isinstance(entry, FolderEntry):
            return entry
        for folder in _parent_folders(path):
            if folder not in self._entries:
                self._entries[folder] = FolderEntry()
        folder_entry = FolderEntry()
        self._entries[path] = folder_entry
        self._deleted_paths.discard(path)
        LOGGER.debug("Folder created %s", path)
        return folder_entry

    def delete_folder(self, path: str) -> bool:
        if not isinstance(self._entries.get(path), FolderEntry):
            LOGGER.warning("Trying to delete non-existent folder %s", path)
            return False
        removed_files = 0
        for candidate in list(self._entries):
            if candidate == path or _is_within(candidate, path):
                if isinstance(self._entries[candidate], FileEntry):
                    removed_files += 1
                    self._original_contents.pop(candidate, None)
                del self._entries[candidate]
                self._deleted_paths.add(candidate)
        LOGGER.debug("Folder deleted %s (%d file(s))", path, removed_files)
        return True

    def cleanup_deleted_files(self) -> int:
        """Drop entries that reappeared under previously deleted paths."""
        if not self._deleted_paths:
            return 0
        stale = [
            path
            for path in self._entries
            if path in self._deleted_paths or any(_is_within(path, deleted) for deleted in self._deleted_paths)
        ]
        for path in stale:
            del self._entries[path]
            self._original_contents.pop(path, None)
        if stale:
            LOGGER.debug("Cleaned up %d deleted path(s)", len(stale))
        return len(stale)

    def reset_file_modifications(self) -> None:
        self._original_contents.clear()

    def reset(self) -> None:
        self._entries.clear()
        self._original_contents.clear()
        self._deleted_paths.clear()

    # Locking -----------------------------------------------------------

    def lock_file(self, path: str) -> bool:
        """Lock ``path`` independently of any folder lock."""
        entry = self.get_file(path)
        if entry is None:
            LOGGER.warning("Cannot lock non-existent file %s", path)
            return False
        entry.is_locked = True
        entry.locked_by_folder = None
        LOGGER.debug("File locked %s", path)
        return True

    def unlock_file(self, path: str) -> bool:
        entry = self.get_file(path)
        if entry is None:
            LOGGER.warning("Cannot unlock non-existent file %s", path)
            return False
        entry.is_locked = False
        entry.locked_by_folder = None
        LOGGER.debug("File unlocked %s", path)
        return True

    def lock_folder(self, path: str) -> bool:
        """Lock ``path`` and every file currently inside it."""
        folder = self._entries.get(path)
        if not isinstance(folder, FolderEntry):
            LOGGER.warning("Cannot lock non-existent folder %s", path)
            return False
        folder.is_locked = True
        for candidate, entry in self._entries.items():
            if not isinstance(entry, FileEntry) or not _is_within(candidate, path):
                continue
            if entry.is_locked and entry.locked_by_folder is None:
                continue
            entry.is_locked = True
            entry.locked_by_folder = path
        LOGGER.debug("Folder locked %s", path)
        return True

    def unlock_folder(self, path: str) -> bool:
        """Release ``path`` and the files it locked.

        Files it had tagged fall back to the nearest other locked ancestor
        folder when one exists.
        """
        folder = self._entries.get(path)
        if not isinstance(folder, FolderEntry):
            LOGGER.warning("Cannot unlock non-existent folder %s", path)
            return False
        folder.is_locked = False
        for candidate, entry in self._entries.items():
            if not isinstance(entry, FileEntry) or entry.locked_by_folder != path:
                continue
            holder = self._nearest_locked_folder(candidate)
            entry.is_locked = holder is not None
            entry.locked_by_folder = holder
        LOGGER.debug("Folder unlocked %s", path)
        return True

    def _nearest_locked_folder(self, path: str) -> str | None:
        for folder in reversed(_parent_folders(path)):
            entry = self._entries.get(folder)
            if isinstance(entry, FolderEntry) and entry.is_locked:
                return folder
        return None

    def is_file_locked(self, path: str) -> LockStatus:
        entry = self.get_file(path)
        if entry is None or not entry.is_locked:
            return LockStatus(False)
        return LockStatus(True, entry.locked_by_folder or path)

    def is_folder_locked(self, path: str) -> LockStatus:
        entry = self._entries.get(path)
        if not isinstance(entry, FolderEntry) or not entry.is_locked:
            return LockStatus(False)
        return LockStatus(True, path)

    def is_locked(self, path: str) -> bool:
        """Return ``True`` when ``path`` is a locked file or folder."""
        entry = self._entries.get(path)
        return bool(entry is not None and entry.is_locked)


__all__ = [
    "Dirent",
    "FileEntry",
    "FileModification",
    "FileStore",
    "FolderEntry",
    "LockStatus",
]
