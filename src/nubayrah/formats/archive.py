# ABOUTME: Read access to the zip container behind an EPUB.
# ABOUTME: Indexes entries by normalized path and unpacks archives for rewriting.

import io
import logging
import os
import posixpath
import shutil
import zipfile
from pathlib import Path
from typing import BinaryIO

from nubayrah.formats.errors import EntryNotFoundError, EpubIOError, NotAnArchiveError

logger = logging.getLogger(__name__)

# Local file header, end of central directory, data descriptor.
ZIP_SIGNATURES: frozenset[bytes] = frozenset(
    {b"PK\x03\x04", b"PK\x05\x06", b"PK\x07\x08"}
)


def check_magic(data: bytes) -> bool:
    """Check whether data starts with one of the zip signatures.

    Passing this check does not mean the data is a valid zip, let alone a
    valid EPUB. It only rejects obviously wrong input before parsing.
    """
    return bytes(data[:4]) in ZIP_SIGNATURES


def normalize_entry_name(name: str) -> str:
    """Normalize an archive or OS-style path to the form used for lookups.

    Backslashes and the OS separator become "/", leading "/" and "./" are
    dropped, and "." / ".." segments are collapsed.
    """
    name = (name or "").replace("\\", "/")
    if os.sep != "/":
        name = name.replace(os.sep, "/")
    normalized = posixpath.normpath(name).lstrip("/")
    return "" if normalized == "." else normalized


class EpubArchive:
    """An in-memory zip container with path-normalized entry lookup.

    The whole archive is held in memory, so no OS file handle stays open and
    the file on disk can be replaced while this object is alive.
    """

    def __init__(self, data: bytes) -> None:
        if not check_magic(data):
            raise NotAnArchiveError("Data does not start with a zip signature")
        try:
            self._zip = zipfile.ZipFile(io.BytesIO(data))
        except zipfile.BadZipFile as exc:
            raise NotAnArchiveError(f"Invalid zip archive: {exc}") from exc

        self._index: dict[str, zipfile.ZipInfo] = {}
        for info in self._zip.infolist():
            key = normalize_entry_name(info.filename)
            if key and key not in self._index:
                self._index[key] = info

    @classmethod
    def from_path(cls, path: Path) -> "EpubArchive":
        """Read an archive from disk.

        Raises:
            EpubIOError: If the file cannot be read.
            NotAnArchiveError: If the file is not a zip container.
        """
        try:
            data = Path(path).read_bytes()
        except OSError as exc:
            raise EpubIOError(f"Failed to read {path}: {exc}") from exc
        logger.debug("Read %d bytes from %s", len(data), path)
        return cls(data)

    @classmethod
    def from_bytes(cls, data: bytes) -> "EpubArchive":
        """Wrap an archive that is already in memory."""
        return cls(bytes(data))

    def _lookup(self, name: str) -> zipfile.ZipInfo:
        info = self._index.get(normalize_entry_name(name))
        if info is None:
            raise EntryNotFoundError(f"File not found in archive: {name}")
        return info

    def has_entry(self, name: str) -> bool:
        """Whether the archive contains an entry at name."""
        return normalize_entry_name(name) in self._index

    def read_entry(self, name: str) -> bytes:
        """Return the decompressed contents of an entry.

        Raises:
            EntryNotFoundError: If no entry matches name.
            EpubIOError: If the entry cannot be decompressed.
        """
        info = self._lookup(name)
        try:
            return self._zip.read(info)
        except (zipfile.BadZipFile, OSError, RuntimeError) as exc:
            raise EpubIOError(f"Failed to read {info.filename}: {exc}") from exc

    def open_entry(self, name: str) -> BinaryIO:
        """Open a binary stream over an entry's decompressed contents."""
        return self._zip.open(self._lookup(name))  # type: ignore[return-value]

    def list_entries(self) -> list[zipfile.ZipInfo]:
        """All entries in archive order."""
        return self._zip.infolist()

    def unpack(self, destination: Path) -> None:
        """Extract every entry under destination.

        Directory structure and unix permission bits stored in the archive
        are preserved.

        Raises:
            EpubIOError: If an entry would escape destination or writing fails.
        """
        root = Path(destination).resolve()
        try:
            root.mkdir(parents=True, exist_ok=True)
            for info in self._zip.infolist():
                name = normalize_entry_name(info.filename)
                if not name:
                    continue
                target = (root / name).resolve()
                if root != target and root not in target.parents:
                    raise EpubIOError(f"Entry escapes archive root: {info.filename}")

                if info.is_dir():
                    target.mkdir(parents=True, exist_ok=True)
                else:
                    target.parent.mkdir(parents=True, exist_ok=True)
                    with self._zip.open(info) as src, open(target, "wb") as dst:
                        shutil.copyfileobj(src, dst)

                mode = (info.external_attr >> 16) & 0o777
                if mode:
                    os.chmod(target, mode | (0o700 if info.is_dir() else 0o600))
        except (OSError, ValueError, zipfile.BadZipFile) as exc:
            raise EpubIOError(f"Failed to unpack archive to {destination}: {exc}") from exc

    def close(self) -> None:
        self._zip.close()
