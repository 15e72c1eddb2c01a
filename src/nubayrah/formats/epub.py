# ABOUTME: The Epub object: opens an archive, exposes its metadata and cover, and writes changes.
# ABOUTME: Rewrites go through a scratch directory and an atomic rename over the original file.

import copy
import logging
import os
import shutil
import tempfile
import uuid
import zipfile
from dataclasses import replace
from pathlib import Path
from types import TracebackType
from typing import Any, BinaryIO

from nubayrah.formats import cover
from nubayrah.formats.archive import EpubArchive, normalize_entry_name
from nubayrah.formats.container import resolve_package_path
from nubayrah.formats.errors import (
    EntryNotFoundError,
    EpubClosedError,
    EpubError,
    EpubIOError,
    InvalidPackageDocumentError,
    RewriteError,
)
from nubayrah.formats.opf import extract_metadata, render_metadata
from nubayrah.formats.package import PackageDocument
from nubayrah.metadata.types import Metadata

logger = logging.getLogger(__name__)

MIMETYPE_ENTRY = "mimetype"


def _load(archive: EpubArchive) -> tuple[PackageDocument, Metadata]:
    """Resolve, parse, and extract the package document of an archive."""
    package_path = resolve_package_path(archive)
    try:
        raw = archive.read_entry(package_path)
    except EntryNotFoundError as exc:
        raise InvalidPackageDocumentError(
            f"Package document {package_path} listed in container.xml is missing"
        ) from exc
    package = PackageDocument.from_bytes(raw, package_path)
    return package, extract_metadata(package)


class Epub:
    """An opened EPUB file.

    Use open_epub() or open_epub_bytes() to create one. Metadata changes and
    a replacement cover are staged in memory and only reach the file when
    write_changes() runs. A successful write closes the Epub; call reload()
    (or open the file again) to see the result.

    An Epub is not safe to share between threads. Callers that need to
    mutate the same file from several places must serialize access
    themselves.
    """

    def __init__(
        self,
        archive: EpubArchive,
        package: PackageDocument,
        metadata: Metadata,
        path: Path | None = None,
    ) -> None:
        self.path = path
        self.metadata = metadata
        self._archive: EpubArchive | None = archive
        self._package: PackageDocument | None = package
        self._cover_image: bytes | None = None

    def __enter__(self) -> "Epub":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "open" if self.is_open else "closed"
        return f"<Epub {self.path or '(memory)'} {state}>"

    # --- Lifecycle ---

    @property
    def is_open(self) -> bool:
        return self._archive is not None

    def _require_archive(self) -> EpubArchive:
        if self._archive is None:
            raise EpubClosedError("EPUB is closed; reload it before reading")
        return self._archive

    @property
    def package(self) -> PackageDocument:
        """The parsed package document.

        Raises:
            EpubClosedError: If the Epub has been closed.
        """
        if self._package is None:
            raise EpubClosedError("EPUB is closed; reload it before reading")
        return self._package

    def reload(self) -> None:
        """Re-read the archive and rebuild package document and metadata.

        File-backed Epubs are re-read from disk. Memory-only Epubs are
        re-parsed from the archive they already hold. State is only replaced
        once everything has loaded, so a failed reload leaves the Epub as it
        was. Any staged cover image is discarded.
        """
        if self.path is not None:
            archive = EpubArchive.from_path(self.path)
        else:
            logger.debug("EPUB has no file path, reloading from memory")
            archive = self._require_archive()

        package, metadata = _load(archive)
        self._archive, self._package, self.metadata = archive, package, metadata
        self._cover_image = None

    def close(self) -> None:
        """Release the archive. The last metadata stays readable."""
        if self._archive is not None:
            self._archive.close()
        self._archive = None
        self._package = None
        self._cover_image = None

    # --- Reading ---

    def read_file(self, name: str) -> bytes:
        """Read an archive entry by path."""
        return self._require_archive().read_entry(name)

    def cover_path(self) -> str:
        """Archive path of the cover image."""
        return cover.cover_path(self.package)

    def read_cover(self) -> bytes:
        """The raw bytes of the cover image."""
        return self.read_file(self.cover_path())

    def get_cover_file(self) -> BinaryIO:
        """Open a binary stream over the cover image entry.

        The caller is responsible for closing the stream.
        """
        return self._require_archive().open_entry(self.cover_path())

    def extract_cover_image(self, dest_dir: Path) -> Path:
        """Write the cover image into dest_dir, keeping its archive file name.

        Returns:
            Path of the written file.
        """
        source = self.cover_path()
        data = self.read_file(source)
        dest = Path(dest_dir) / Path(source).name
        try:
            dest.write_bytes(data)
        except OSError as exc:
            raise EpubIOError(f"Failed to write cover image to {dest}: {exc}") from exc
        return dest

    # --- Staging changes ---

    def set_metadata(self, metadata: Metadata | None = None, **changes: Any) -> Metadata:
        """Stage new metadata for the next write_changes().

        Either pass a complete Metadata, keyword changes applied to the
        current metadata, or both. uid and library_id are not user-editable
        and always carry over from the current metadata.

        Returns:
            The staged Metadata.

        Raises:
            TypeError: If a keyword does not name a Metadata field.
        """
        current = self.metadata
        staged = replace(metadata if metadata is not None else current, **changes)
        staged.uid = current.uid
        staged.library_id = current.library_id
        self.metadata = staged
        return staged

    def assign_library_id(self, library_id: str) -> None:
        """Record the id this book is cataloged under; written by the next write_changes()."""
        self.metadata = replace(self.metadata, library_id=library_id)

    def set_cover_image(self, data: bytes) -> None:
        """Stage a replacement cover, re-encoded to the existing cover's format.

        The manifest is not touched; only the bytes at the existing cover
        path change when write_changes() runs.

        Raises:
            UnsupportedMediaTypeError: If data is not an image.
            CoverNotFoundError: If the EPUB has no resolvable cover to replace.
            UnsupportedConversionError: If the existing cover format cannot be written.
        """
        image = cover.open_image(data)
        self._cover_image = cover.encode_image(image, self.cover_path())

    @property
    def has_pending_cover(self) -> bool:
        return self._cover_image is not None

    # --- Writing ---

    def write_changes(self) -> None:
        """Write staged metadata (and cover, if any) back into the EPUB file.

        The original file is replaced atomically. If anything fails before
        that point the original is left untouched and this Epub stays open.
        On success the Epub is closed.

        Raises:
            RewriteError: If the Epub has no file path or the rewrite fails.
            EpubClosedError: If the Epub is closed.
        """
        if self.path is None:
            raise RewriteError("Cannot write changes to an EPUB opened from memory")

        archive = self._require_archive()
        if not self.metadata.library_id:
            self.metadata = replace(self.metadata, library_id=str(uuid.uuid4()))

        replacements: dict[str, bytes] = {}
        if self._cover_image is not None:
            replacements[self.cover_path()] = self._cover_image

        # Render into a copy so a failed write leaves the loaded document as it was.
        document = PackageDocument(copy.deepcopy(self.package.tree), self.package.internal_path)
        render_metadata(document, self.metadata)
        replacements[document.internal_path] = document.to_bytes(pretty=True)

        rewrite_archive(archive, self.path, replacements)
        logger.debug("Wrote changes to %s", self.path)
        self.close()


def _repack(
    archive: EpubArchive, scratch: Path, dest: BinaryIO, replacements: dict[str, bytes]
) -> None:
    """Zip the scratch tree into dest, in original entry order with mimetype first."""
    entries = archive.list_entries()
    names: list[str] = []
    seen: set[str] = set()
    for info in entries:
        name = normalize_entry_name(info.filename)
        if name and name not in seen:
            seen.add(name)
            names.append(name + "/" if info.is_dir() else name)
    names.extend(name for name in replacements if name not in seen)

    if MIMETYPE_ENTRY in names:
        names.remove(MIMETYPE_ENTRY)
        names.insert(0, MIMETYPE_ENTRY)

    with zipfile.ZipFile(dest, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name in names:
            source = scratch / name
            if name.endswith("/"):
                zf.write(source, arcname=name)
            elif name == MIMETYPE_ENTRY:
                zf.write(source, arcname=name, compress_type=zipfile.ZIP_STORED)
            else:
                zf.write(source, arcname=name)


def rewrite_archive(archive: EpubArchive, target: Path, replacements: dict[str, bytes]) -> None:
    """Rebuild the archive at target with some entries replaced.

    1. Unpack every entry into a scratch directory.
    2. Overwrite the replaced entries in the scratch tree.
    3. Zip the tree into a temporary file next to target and fsync it.
    4. Rename the temporary file over target.

    The scratch directory is removed on every exit path. Failures before the
    rename remove the temporary file and leave target untouched.

    Args:
        archive: The archive currently at target.
        target: File to replace.
        replacements: Archive paths mapped to their new contents.

    Raises:
        RewriteError: If any step before the rename fails.
        EpubIOError: If the final rename fails.
    """
    target = Path(target)
    tmp_handle = None
    try:
        with tempfile.TemporaryDirectory(prefix="nubayrah-") as scratch_dir:
            scratch = Path(scratch_dir).resolve()
            archive.unpack(scratch)
            for name, data in replacements.items():
                path = (scratch / normalize_entry_name(name)).resolve()
                if scratch == path or scratch not in path.parents:
                    raise RewriteError(f"Replacement entry escapes archive root: {name}")
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_bytes(data)

            tmp_handle = tempfile.NamedTemporaryFile(
                prefix=f".{target.stem}.", suffix=".epub.tmp", dir=target.parent, delete=False
            )
            with tmp_handle:
                _repack(archive, scratch, tmp_handle, replacements)
                tmp_handle.flush()
                os.fsync(tmp_handle.fileno())
            if target.exists():
                shutil.copymode(target, tmp_handle.name)
    except (EpubError, OSError, ValueError, zipfile.BadZipFile) as exc:
        if tmp_handle is not None:
            Path(tmp_handle.name).unlink(missing_ok=True)
        raise RewriteError(f"Failed to rewrite {target}: {exc}") from exc

    try:
        os.replace(tmp_handle.name, target)
    except OSError as exc:
        Path(tmp_handle.name).unlink(missing_ok=True)
        raise EpubIOError(f"Failed to replace {target}: {exc}") from exc


def open_epub(path: Path) -> Epub:
    """Open and parse an EPUB file from disk.

    Raises:
        EpubIOError: If the file cannot be read.
        NotAnArchiveError: If the file is not a zip container.
        InvalidContainerError: If container.xml is missing or broken.
        InvalidPackageDocumentError: If the package document cannot be parsed.
    """
    path = Path(path)
    archive = EpubArchive.from_path(path)
    package, metadata = _load(archive)
    logger.debug("Opened %s (package document %s)", path, package.internal_path)
    return Epub(archive, package, metadata, path=path)


def open_epub_bytes(data: bytes) -> Epub:
    """Open and parse an EPUB held in memory. The result has no file path."""
    archive = EpubArchive.from_bytes(data)
    package, metadata = _load(archive)
    return Epub(archive, package, metadata)


def read_epub_metadata(path: Path) -> Metadata:
    """Extract metadata from an EPUB file without keeping it open."""
    with open_epub(path) as book:
        return book.metadata


def write_epub_metadata(path: Path, metadata: Metadata) -> None:
    """Replace the metadata of an EPUB file in place.

    uid and library_id of the file are preserved.
    """
    book = open_epub(path)
    try:
        book.set_metadata(metadata)
        book.write_changes()
    finally:
        book.close()
