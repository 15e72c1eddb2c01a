# ABOUTME: Reads Metadata out of an OPF package document and renders it back in.
# ABOUTME: Implements the refines/property indirection used by EPUB 3 metadata.

import math
from dataclasses import replace

from lxml import etree

from nubayrah.formats.cover import explicit_cover_id
from nubayrah.formats.errors import InvalidPackageDocumentError
from nubayrah.formats.package import (
    DC_NS,
    OPF_NS,
    PackageDocument,
    element_text,
    get_attr,
    local_name,
)
from nubayrah.metadata.types import Contributor, Metadata

UNKNOWN_TITLE = "Unknown Title"
UNKNOWN_AUTHOR = "Unknown Author"
LIBRARY_ID_PROPERTY = "nubayrah-id"


# --- Extraction ---


def _refined_value(doc: PackageDocument, primary: etree._Element, prop: str) -> str:
    """Resolve a property of a primary element.

    The inline attribute (e.g. opf:file-as) wins. Otherwise, if the primary
    has an id, a <meta property=prop refines="#id"> supplies the value.
    """
    inline = get_attr(primary, prop).strip()
    if inline:
        return inline

    elem_id = get_attr(primary, "id")
    if not elem_id:
        return ""

    meta = doc.find_filtered("meta", {"property": prop, "refines": f"#{elem_id}"})
    return element_text(meta)


def _get_title(doc: PackageDocument) -> tuple[str, str]:
    """Return (title, title_sort)."""
    title_elem = doc.find("title")
    if title_elem is None:
        return UNKNOWN_TITLE, ""
    return element_text(title_elem), _refined_value(doc, title_elem, "file-as")


def _get_author(doc: PackageDocument) -> tuple[str, str]:
    """Return (author, author_sort) for the first creator."""
    creator = doc.find("creator")
    if creator is None:
        return UNKNOWN_AUTHOR, ""
    return element_text(creator), _refined_value(doc, creator, "file-as")


def _parse_series_index(text: str) -> float | None:
    try:
        value = float(text)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _get_series(doc: PackageDocument) -> tuple[str, float | None]:
    """Return (series, series_index). series_index is None when no position is given."""
    collection = doc.find_filtered("meta", {"property": "belongs-to-collection"})
    if collection is None:
        return "", None

    series = element_text(collection)
    elem_id = get_attr(collection, "id")
    if not elem_id:
        return series, None

    position = doc.find_filtered(
        "meta", {"refines": f"#{elem_id}", "property": "group-position"}
    )
    if position is None:
        return series, None
    return series, _parse_series_index(element_text(position))


def _get_isbn(doc: PackageDocument) -> str:
    """Text of the first element whose scheme attribute is ISBN, in any case."""
    schemed = [
        node for node in doc.root.iter() if local_name(node) and get_attr(node, "scheme")
    ]
    for node in schemed:
        if get_attr(node, "scheme") == "ISBN":
            return element_text(node)
    for node in schemed:
        if get_attr(node, "scheme").lower() == "isbn":
            return element_text(node)
    return ""


def _get_pub_date(doc: PackageDocument) -> str:
    """Publication date with any time-of-day component dropped."""
    return doc.text_of("date").split("T", 1)[0]


def _get_contributors(doc: PackageDocument) -> list[Contributor]:
    return [
        Contributor(name=element_text(node), role=_refined_value(doc, node, "role"))
        for node in doc.iter_elements("contributor")
    ]


def _get_uid(doc: PackageDocument) -> str:
    """Follow package@unique-identifier to the identifier element it names."""
    package = doc.package
    if package is None:
        return ""
    uid_name = get_attr(package, "unique-identifier")
    if not uid_name:
        return ""
    return element_text(doc.find_filtered("identifier", {"id": uid_name}))


def extract_metadata(doc: PackageDocument) -> Metadata:
    """Extract bibliographic metadata from a parsed package document.

    Missing optional fields come back empty; this never raises for an
    incomplete document.

    Args:
        doc: The parsed package document.

    Returns:
        Metadata populated from the document.
    """
    title, title_sort = _get_title(doc)
    author, author_sort = _get_author(doc)
    series, series_index = _get_series(doc)

    return Metadata(
        title=title,
        title_sort=title_sort,
        author=author,
        author_sort=author_sort,
        language=doc.text_of("language"),
        series=series,
        series_index=series_index,
        subjects=[element_text(node) for node in doc.iter_elements("subject")],
        isbn=_get_isbn(doc),
        publisher=doc.text_of("publisher"),
        pub_date=_get_pub_date(doc),
        rights=doc.text_of("rights"),
        contributors=_get_contributors(doc),
        description=doc.text_of("description"),
        uid=_get_uid(doc),
        library_id=element_text(
            doc.find_filtered("meta", {"property": LIBRARY_ID_PROPERTY})
        ),
    )


# --- Rendering ---


def _stripped(metadata: Metadata) -> Metadata:
    """Strip surrounding whitespace from every text value, as extraction does."""
    return replace(
        metadata,
        title=metadata.title.strip(),
        title_sort=metadata.title_sort.strip(),
        author=metadata.author.strip(),
        author_sort=metadata.author_sort.strip(),
        language=metadata.language.strip(),
        series=metadata.series.strip(),
        subjects=[subject.strip() for subject in metadata.subjects],
        isbn=metadata.isbn.strip(),
        publisher=metadata.publisher.strip(),
        pub_date=metadata.pub_date.strip(),
        rights=metadata.rights.strip(),
        contributors=[
            Contributor(name=c.name.strip(), role=c.role.strip()) for c in metadata.contributors
        ],
        description=metadata.description.strip(),
        uid=metadata.uid.strip(),
        library_id=metadata.library_id.strip(),
    )


def _append(
    parent: etree._Element,
    tag: str,
    text: str = "",
    attrs: tuple[tuple[str, str], ...] = (),
    nsmap: dict[str | None, str] | None = None,
) -> etree._Element:
    """Append a child element with attributes in the given order."""
    node = etree.SubElement(parent, tag, nsmap=nsmap)
    for key, value in attrs:
        node.set(key, value)
    node.text = text or None
    return node


def render_metadata(doc: PackageDocument, metadata: Metadata) -> None:
    """Replace the package's <metadata> element with one generated from metadata.

    The new element becomes the first child of <package>. Every property that
    relies on refines/property indirection gets the id that extract_metadata
    needs to find it again, and empty optional fields are left out entirely,
    so rendering what was extracted reproduces the same document. Text values
    are written with surrounding whitespace stripped, matching what extraction
    reads back.

    The explicit cover <meta> lives inside the old metadata element, so its
    content is read before removal and re-emitted as the last child.

    Args:
        doc: The package document to modify in place.
        metadata: The values to render.

    Raises:
        InvalidPackageDocumentError: If the document root is not <package>.
    """
    package = doc.package
    if package is None:
        raise InvalidPackageDocumentError(
            "Malformed package document: package element not found"
        )

    metadata = _stripped(metadata)
    cover_id = explicit_cover_id(doc)

    for child in package:
        if local_name(child) == "metadata":
            package.remove(child)
            break

    pkg_ns = etree.QName(package).namespace
    # Package-namespace elements reuse the default declaration in scope so
    # they serialize as <meta>, not <opf:meta>.
    default_ns: dict[str | None, str] | None = {None: pkg_ns} if pkg_ns else None

    def opf(name: str) -> str:
        return f"{{{pkg_ns}}}{name}" if pkg_ns else name

    def dc(name: str) -> str:
        return f"{{{DC_NS}}}{name}"

    def meta(text: str, attrs: tuple[tuple[str, str], ...]) -> None:
        _append(mdata, opf("meta"), text, attrs, nsmap=default_ns)

    mdata = _append(
        package, opf("metadata"), nsmap={**(default_ns or {}), "dc": DC_NS, "opf": OPF_NS}
    )
    package.insert(0, mdata)

    _append(mdata, dc("title"), metadata.title, (("id", "title"),))
    if metadata.title_sort:
        meta(metadata.title_sort, (("refines", "#title"), ("property", "file-as")))

    _append(mdata, dc("creator"), metadata.author, (("id", "author"),))
    if metadata.author_sort:
        meta(metadata.author_sort, (("refines", "#author"), ("property", "file-as")))

    _append(mdata, dc("language"), metadata.language)

    if metadata.series:
        meta(metadata.series, (("property", "belongs-to-collection"), ("id", "series")))
        if metadata.series_index is not None and math.isfinite(metadata.series_index):
            meta(
                f"{metadata.series_index:.2f}",
                (("refines", "#series"), ("property", "group-position")),
            )

    for subject in metadata.subjects:
        _append(mdata, dc("subject"), subject)

    uid_name = package.get("unique-identifier")
    if not uid_name:
        uid_name = "uid"
        package.set("unique-identifier", uid_name)

    if metadata.isbn:
        isbn_attrs: tuple[tuple[str, str], ...] = ((f"{{{OPF_NS}}}scheme", "ISBN"),)
        # The id stays unique so unique-identifier keeps naming the uid element.
        if uid_name != "ISBN":
            isbn_attrs += (("id", "ISBN"),)
        _append(mdata, dc("identifier"), metadata.isbn, isbn_attrs)

    if metadata.publisher:
        _append(mdata, dc("publisher"), metadata.publisher)
    if metadata.pub_date:
        _append(mdata, dc("date"), metadata.pub_date)
    if metadata.rights:
        _append(mdata, dc("rights"), metadata.rights)

    for i, contributor in enumerate(metadata.contributors):
        contributor_id = f"contributor_{i}"
        _append(mdata, dc("contributor"), contributor.name, (("id", contributor_id),))
        meta(contributor.role, (("refines", f"#{contributor_id}"), ("property", "role")))

    if metadata.description:
        _append(mdata, dc("description"), metadata.description)

    _append(mdata, dc("identifier"), metadata.uid, (("id", uid_name),))

    if metadata.library_id:
        meta(metadata.library_id, (("property", LIBRARY_ID_PROPERTY),))

    if cover_id:
        meta("", (("name", "cover"), ("content", cover_id)))
