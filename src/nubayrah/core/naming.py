# ABOUTME: Filename sanitation and collision handling for the on-disk library layout.
# ABOUTME: Books live at <library root>/<author>/<title>.epub.

from dataclasses import dataclass
from pathlib import Path

from nubayrah.formats.errors import NoAvailableFilenameError

EPUB_SUFFIX = ".epub"
MAX_COLLISION_SUFFIX = 255
REPLACEMENT_CHAR = "_"

_CONTROL_CHARS = frozenset(chr(code) for code in range(32))


@dataclass(frozen=True)
class SanitizeProfile:
    """Characters that may not appear in a directory or file name component."""

    name: str
    dir_chars: frozenset[str]
    file_chars: frozenset[str]


POSIX_PROFILE = SanitizeProfile(
    name="posix",
    dir_chars=frozenset("\0/"),
    file_chars=frozenset("\0/"),
)

WINDOWS_PROFILE = SanitizeProfile(
    name="windows",
    dir_chars=_CONTROL_CHARS | frozenset("|\\/"),
    file_chars=_CONTROL_CHARS | frozenset(':*?\\/"<>|'),
)


def profile_for_platform(platform: str) -> SanitizeProfile:
    """Pick the profile for a sys.platform value."""
    if platform.startswith(("win", "cygwin", "msys")):
        return WINDOWS_PROFILE
    return POSIX_PROFILE


def _sanitize(name: str, forbidden: frozenset[str]) -> str:
    cleaned = "".join(REPLACEMENT_CHAR if ch in forbidden else ch for ch in name).strip()
    if cleaned in ("", ".", ".."):
        return REPLACEMENT_CHAR
    return cleaned


def sanitize_dir_name(name: str, profile: SanitizeProfile = POSIX_PROFILE) -> str:
    """Make a single directory name component safe for the given profile."""
    return _sanitize(name, profile.dir_chars)


def sanitize_file_name(name: str, profile: SanitizeProfile = POSIX_PROFILE) -> str:
    """Make a single file name component (without extension) safe for the given profile."""
    return _sanitize(name, profile.file_chars)


def author_dir_for(root: Path, author: str, profile: SanitizeProfile = POSIX_PROFILE) -> Path:
    """Directory holding every book by author under the library root."""
    return Path(root) / sanitize_dir_name(author, profile)


def library_path_for(
    root: Path,
    author: str,
    title: str,
    profile: SanitizeProfile = POSIX_PROFILE,
) -> Path:
    """Pick an unused path for a book in the library.

    The first choice is <root>/<author>/<title>.epub. If that exists,
    <title>_1.epub through <title>_255.epub are tried in order.

    Args:
        root: Library root directory.
        author: Book author, used as the directory name.
        title: Book title, used as the file name.
        profile: Characters to replace in each component.

    Returns:
        A path that did not exist when checked.

    Raises:
        NoAvailableFilenameError: If every candidate is taken.
    """
    directory = author_dir_for(root, author, profile)
    stem = sanitize_file_name(title, profile)

    candidate = directory / f"{stem}{EPUB_SUFFIX}"
    if not candidate.exists():
        return candidate

    for counter in range(1, MAX_COLLISION_SUFFIX + 1):
        candidate = directory / f"{stem}_{counter}{EPUB_SUFFIX}"
        if not candidate.exists():
            return candidate

    raise NoAvailableFilenameError(
        f"No unused filename for '{stem}' in {directory} "
        f"after {MAX_COLLISION_SUFFIX} attempts"
    )
