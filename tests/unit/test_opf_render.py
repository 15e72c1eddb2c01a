# ABOUTME: Unit tests for rendering Metadata back into a package document.
# ABOUTME: Checks element order, ids used for refines, omitted fields, and write/read symmetry.

import pytest

from nubayrah.formats.errors import InvalidPackageDocumentError
from nubayrah.formats.opf import extract_metadata, render_metadata
from nubayrah.formats.package import PackageDocument, get_attr, local_name
from nubayrah.metadata.types import Contributor, Metadata

BASE_OPF = b"""<?xml version="1.0" encoding="UTF-8"?>
<package xmlns="http://www.idpf.org/2007/opf" version="3.0" unique-identifier="bookid">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/">
    <dc:identifier id="bookid">urn:uuid:original</dc:identifier>
    <dc:title>Old Title</dc:title>
    <meta name="cover" content="cover-jpg"/>
    <meta name="calibre:timestamp" content="2020-01-01"/>
  </metadata>
  <manifest>
    <item id="cover-jpg" href="cover.jpg" media-type="image/jpeg"/>
  </manifest>
  <spine/>
</package>
"""


def _full_metadata() -> Metadata:
    return Metadata(
        title="The Left Hand of Darkness",
        title_sort="Left Hand of Darkness, The",
        author="Ursula K. Le Guin",
        author_sort="Le Guin, Ursula K.",
        language="en",
        series="Hainish Cycle",
        series_index=4.0,
        subjects=["Science fiction", "Gender"],
        isbn="9780441478125",
        publisher="Ace Books",
        pub_date="1969-03-01",
        rights="All rights reserved.",
        contributors=[Contributor("Alex Artist", "ill"), Contributor("Ed Itor", "edt")],
        description="An envoy on the planet Gethen.",
        uid="urn:uuid:original",
        library_id="lib-0001",
    )


def _rendered(metadata: Metadata) -> PackageDocument:
    doc = PackageDocument.from_bytes(BASE_OPF, "OEBPS/content.opf")
    render_metadata(doc, metadata)
    return doc


def _metadata_children(doc: PackageDocument) -> list:
    return [child for child in doc.find("metadata") if local_name(child)]


class TestRenderMetadata:
    """Tests for render_metadata."""

    def test_metadata_is_first_child_of_package(self) -> None:
        """The new metadata element is the first child of package."""
        doc = _rendered(_full_metadata())
        assert local_name(doc.package[0]) == "metadata"
        assert len(doc.find_all("metadata")) == 1

    def test_emission_order(self) -> None:
        """Elements are emitted in a fixed order."""
        doc = _rendered(_full_metadata())
        order = [
            (local_name(c), get_attr(c, "id") or get_attr(c, "property") or get_attr(c, "name"))
            for c in _metadata_children(doc)
        ]
        assert order == [
            ("title", "title"),
            ("meta", "file-as"),
            ("creator", "author"),
            ("meta", "file-as"),
            ("language", ""),
            ("meta", "series"),
            ("meta", "group-position"),
            ("subject", ""),
            ("subject", ""),
            ("identifier", "ISBN"),
            ("publisher", ""),
            ("date", ""),
            ("rights", ""),
            ("contributor", "contributor_0"),
            ("meta", "role"),
            ("contributor", "contributor_1"),
            ("meta", "role"),
            ("description", ""),
            ("identifier", "bookid"),
            ("meta", "nubayrah-id"),
            ("meta", "cover"),
        ]

    def test_series_index_has_two_decimals(self) -> None:
        """The series position is written with two decimals."""
        doc = _rendered(_full_metadata())
        position = doc.find_filtered("meta", {"property": "group-position"})
        assert position.text == "4.00"
        assert get_attr(position, "refines") == "#series"

    def test_absent_series_index_is_not_written(self) -> None:
        """No group-position is written for an absent position."""
        meta = _full_metadata()
        meta.series_index = None
        doc = _rendered(meta)
        assert doc.find_filtered("meta", {"property": "belongs-to-collection"}) is not None
        assert doc.find_filtered("meta", {"property": "group-position"}) is None

    def test_empty_optional_fields_are_omitted(self) -> None:
        """Empty optional fields produce no elements."""
        doc = _rendered(Metadata(title="Only Title", author="Someone"))
        names = [local_name(c) for c in _metadata_children(doc)]
        assert names == ["title", "creator", "language", "identifier", "meta"]

    def test_unknown_old_metadata_is_dropped(self) -> None:
        """Metadata the model does not know is not carried over."""
        doc = _rendered(_full_metadata())
        assert doc.find_filtered("meta", {"name": "calibre:timestamp"}) is None

    def test_explicit_cover_meta_is_kept_last(self) -> None:
        """The cover meta is re-emitted as the last child."""
        doc = _rendered(_full_metadata())
        last = _metadata_children(doc)[-1]
        assert get_attr(last, "name") == "cover"
        assert get_attr(last, "content") == "cover-jpg"

    def test_no_cover_meta_without_explicit_cover(self) -> None:
        """No cover meta is invented when there was none."""
        opf = BASE_OPF.replace(b'<meta name="cover" content="cover-jpg"/>', b"")
        doc = PackageDocument.from_bytes(opf, "content.opf")
        render_metadata(doc, _full_metadata())
        assert doc.find_filtered("meta", {"name": "cover"}) is None

    def test_missing_unique_identifier_is_added(self) -> None:
        """A missing unique-identifier is added as "uid"."""
        opf = BASE_OPF.replace(b' unique-identifier="bookid"', b"")
        doc = PackageDocument.from_bytes(opf, "content.opf")
        render_metadata(doc, _full_metadata())
        assert doc.package.get("unique-identifier") == "uid"
        assert extract_metadata(doc).uid == "urn:uuid:original"

    def test_serialized_prefixes(self) -> None:
        """Output uses dc: and opf: prefixes but unprefixed meta."""
        xml = _rendered(_full_metadata()).to_bytes()
        assert b'<dc:title id="title">The Left Hand of Darkness</dc:title>' in xml
        assert b'<meta refines="#title" property="file-as">' in xml
        assert b'opf:scheme="ISBN"' in xml
        assert b"<opf:meta" not in xml

    def test_render_then_extract_is_identity(self) -> None:
        """Extracting rendered metadata gives the same metadata."""
        meta = _full_metadata()
        assert extract_metadata(_rendered(meta)) == meta

    def test_isbn_id_yields_to_uid_named_isbn(self) -> None:
        """The ISBN element drops its id when unique-identifier already uses it."""
        opf = BASE_OPF.replace(b'"bookid"', b'"ISBN"')
        doc = PackageDocument.from_bytes(opf, "content.opf")
        render_metadata(doc, _full_metadata())

        with_isbn_id = [
            node for node in doc.find_all("identifier") if node.get("id") == "ISBN"
        ]
        assert [node.text for node in with_isbn_id] == ["urn:uuid:original"]
        extracted = extract_metadata(doc)
        assert extracted.uid == "urn:uuid:original"
        assert extracted.isbn == "9780441478125"

    def test_padded_values_render_stripped(self) -> None:
        """Surrounding whitespace is dropped so a second render is identical."""
        padded = _full_metadata()
        padded.title = "  The Left Hand of Darkness "
        padded.subjects = [" Gender\n"]
        padded.contributors = [Contributor(" Alex Artist ", " ill ")]

        first = _rendered(padded).to_bytes()
        second = _rendered(extract_metadata(_rendered(padded))).to_bytes()

        assert first == second
        assert b'<dc:title id="title">The Left Hand of Darkness</dc:title>' in first

    def test_non_package_root_raises(self) -> None:
        """A document whose root is not package is rejected."""
        doc = PackageDocument.from_bytes(b"<metadata/>", "content.opf")
        with pytest.raises(InvalidPackageDocumentError):
            render_metadata(doc, Metadata(title="x"))
