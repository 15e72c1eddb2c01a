# ABOUTME: Import pipeline that places EPUBs into the on-disk library.
# ABOUTME: Validates, extracts metadata, writes the file, then hands the result to a commit callback.

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, replace
from pathlib import Path

from nubayrah.core.naming import POSIX_PROFILE, SanitizeProfile, library_path_for
from nubayrah.formats.archive import check_magic
from nubayrah.formats.epub import Epub, open_epub, open_epub_bytes
from nubayrah.formats.errors import CoverNotFoundError, EpubIOError, NotAnArchiveError
from nubayrah.metadata.types import Metadata

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    """Where an imported book landed and what it was cataloged as."""

    metadata: Metadata
    path: Path
    library_id: str
    cover_path: Path | None = None


# Persists an import, e.g. by inserting it into the catalog. Raising undoes the import.
CommitFn = Callable[[ImportResult], None]


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Could not remove %s: %s", path, exc)


def _extract_cover(book: Epub, target: Path) -> Path | None:
    """Write the cover next to the book file as <book stem><image ext>."""
    try:
        data = book.read_cover()
        source = book.cover_path()
    except (CoverNotFoundError, EpubIOError) as exc:
        logger.debug("No cover extracted for %s: %s", target.name, exc)
        return None

    cover_file = target.with_suffix(Path(source).suffix.lower())
    if cover_file.exists():
        logger.debug("Cover file %s already exists, not extracting", cover_file)
        return None
    try:
        cover_file.write_bytes(data)
    except OSError as exc:
        logger.warning("Could not write cover %s: %s", cover_file, exc)
        return None
    return cover_file


def import_from_bytes(
    data: bytes,
    library_root: Path,
    *,
    profile: SanitizeProfile = POSIX_PROFILE,
    commit: CommitFn | None = None,
    extract_cover: bool = False,
) -> ImportResult:
    """Add an EPUB held in memory to the library.

    Steps: magic check, parse, extract metadata, assign a new library id,
    write the file to <library_root>/<author>/<title>.epub (with a numeric
    suffix on collision), then call commit. If commit raises, everything
    this call wrote is removed again and the exception propagates.

    The bytes are written unchanged; the library id is only recorded by the
    commit callback until the book's metadata is next rewritten.

    Args:
        data: The EPUB file contents.
        library_root: Root of the on-disk library.
        profile: Filename sanitation profile.
        commit: Called with the result once the file is on disk.
        extract_cover: Also write the cover image next to the book.

    Returns:
        The ImportResult passed to commit.

    Raises:
        NotAnArchiveError: If data does not look like a zip archive.
        EpubError: If the EPUB cannot be parsed or no filename is free.
        EpubIOError: If the file cannot be written.
    """
    if not check_magic(data):
        raise NotAnArchiveError("Data does not start with a zip signature")

    with open_epub_bytes(data) as book:
        metadata = replace(book.metadata, library_id=str(uuid.uuid4()))

        target = library_path_for(library_root, metadata.author, metadata.title, profile)
        author_dir_existed = target.parent.exists()
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            _remove_quietly(target)
            raise EpubIOError(f"Failed to write {target}: {exc}") from exc
        logger.debug("Placed %s at %s", metadata.title, target)

        cover_file = _extract_cover(book, target) if extract_cover else None

    result = ImportResult(
        metadata=metadata, path=target, library_id=metadata.library_id, cover_path=cover_file
    )
    if commit is None:
        return result

    try:
        commit(result)
    except Exception:
        logger.warning("Commit failed for %s, removing imported file", target)
        _remove_quietly(target)
        if cover_file is not None:
            _remove_quietly(cover_file)
        if not author_dir_existed:
            try:
                target.parent.rmdir()
            except OSError:
                logger.debug("Leaving %s in place, it is not empty", target.parent)
        raise

    return result


def import_file(
    path: Path,
    library_root: Path,
    *,
    profile: SanitizeProfile = POSIX_PROFILE,
    commit: CommitFn | None = None,
    extract_cover: bool = False,
) -> ImportResult:
    """Read an EPUB from disk and import it. The source file is left in place."""
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise EpubIOError(f"Failed to read {path}: {exc}") from exc
    return import_from_bytes(
        data, library_root, profile=profile, commit=commit, extract_cover=extract_cover
    )


def open_existing(path: Path) -> Epub:
    """Open a book that is already in the library."""
    return open_epub(path)
