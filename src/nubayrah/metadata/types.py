# ABOUTME: Core metadata data structures for EPUB package documents.
# ABOUTME: Metadata is the interchange format between extraction, rendering, and the catalog.

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Contributor:
    """A secondary contributor (translator, illustrator, ...) and their MARC role."""

    name: str
    role: str = ""

    def __str__(self) -> str:
        return f"{self.name}: {self.role}" if self.role else self.name


@dataclass
class Metadata:
    """Bibliographic metadata for a single EPUB.

    String fields use "" for "not present" so that rendering can omit them.
    The one exception is series_index: None means the package document carries
    no group-position for the series, which is a different statement than a
    position of 0.

    uid and library_id are not user-editable. uid is the package's own unique
    identifier; library_id is the identifier this library assigns on import.
    """

    title: str = ""
    title_sort: str = ""
    author: str = ""
    author_sort: str = ""
    language: str = ""
    series: str = ""
    series_index: float | None = None
    subjects: list[str] = field(default_factory=list)
    isbn: str = ""
    publisher: str = ""
    pub_date: str = ""
    rights: str = ""
    contributors: list[Contributor] = field(default_factory=list)
    description: str = ""
    uid: str = ""
    library_id: str = ""

    @property
    def has_series_index(self) -> bool:
        """Whether a series position is recorded (0.0 counts as recorded)."""
        return self.series_index is not None

    @property
    def series_display(self) -> str:
        """Series with its position, e.g. 'Dune #2', or just the series name."""
        if not self.series:
            return ""
        if self.series_index is None:
            return self.series
        return f"{self.series} #{self.series_index:g}"
