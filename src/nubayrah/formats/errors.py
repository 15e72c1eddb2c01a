# ABOUTME: Exception hierarchy for the EPUB metadata codec.
# ABOUTME: Every codec failure is an EpubError subclass so callers can catch one type.


class EpubError(Exception):
    """Base class for all EPUB codec errors."""


class NotAnArchiveError(EpubError):
    """Raised when input bytes are not a zip container."""


class InvalidContainerError(EpubError):
    """Raised when META-INF/container.xml is missing, malformed, or has no rootfile."""


class InvalidPackageDocumentError(EpubError):
    """Raised when the OPF package document cannot be parsed or lacks <package>."""


class EntryNotFoundError(EpubError):
    """Raised when a requested path does not exist inside the archive."""


class CoverNotFoundError(EpubError):
    """Raised when the cover image cannot be resolved through the manifest."""


class UnsupportedMediaTypeError(EpubError):
    """Raised when a replacement cover is not a recognizable image."""


class UnsupportedConversionError(EpubError):
    """Raised when the existing cover's format cannot be encoded."""


class NoAvailableFilenameError(EpubError):
    """Raised when every numbered variant of a library filename is taken."""


class EpubIOError(EpubError):
    """Raised when reading from or writing to disk fails."""


class RewriteError(EpubError):
    """Raised when rewriting an archive fails before the original is replaced."""


class EpubClosedError(EpubError):
    """Raised when reading from an Epub whose archive handle has been released."""
