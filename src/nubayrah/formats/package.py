# ABOUTME: The OPF package document ("root file") model built on lxml.
# ABOUTME: Provides local-name queries over the tree and serialization for write-back.

import posixpath
from collections.abc import Iterator, Mapping

from lxml import etree

from nubayrah.formats.errors import InvalidPackageDocumentError

OPF_NS = "http://www.idpf.org/2007/opf"
DC_NS = "http://purl.org/dc/elements/1.1/"


def local_name(node: etree._Element) -> str:
    """Tag name without namespace, or "" for comments and processing instructions."""
    if not isinstance(node.tag, str):
        return ""
    return etree.QName(node).localname


def get_attr(node: etree._Element, name: str) -> str:
    """Look up an attribute by local name, ignoring its namespace.

    An unprefixed attribute wins over a namespaced one with the same local
    name, so `file-as` and `opf:file-as` both resolve.
    """
    value = node.get(name)
    if value is not None:
        return value
    for key, value in node.attrib.items():
        if key.startswith("{") and etree.QName(key).localname == name:
            return value
    return ""


def element_text(node: etree._Element | None) -> str:
    """Stripped text content of an element, or "" if node is None."""
    if node is None:
        return ""
    return "".join(node.itertext()).strip()


class PackageDocument:
    """An OPF package document and the archive path it was read from.

    The internal path is kept so the document can be written back to the
    same entry. Element lookups match on local names because real-world
    packages mix prefixed (`dc:title`) and unprefixed spellings.
    """

    def __init__(self, tree: etree._ElementTree, internal_path: str) -> None:
        self.tree = tree
        self.internal_path = internal_path

    @classmethod
    def from_bytes(cls, data: bytes, internal_path: str) -> "PackageDocument":
        """Parse a package document.

        lxml honours the encoding declared in the XML prolog, so documents
        that are not UTF-8 are decoded correctly.

        Raises:
            InvalidPackageDocumentError: If the bytes are not well-formed XML.
        """
        parser = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True)
        try:
            root = etree.fromstring(data, parser=parser)
        except etree.XMLSyntaxError as exc:
            raise InvalidPackageDocumentError(
                f"Failed to parse package document {internal_path}: {exc}"
            ) from exc
        return cls(root.getroottree(), internal_path)

    @property
    def root(self) -> etree._Element:
        return self.tree.getroot()

    @property
    def directory(self) -> str:
        """Archive directory holding the package document ("" at the root)."""
        return posixpath.dirname(self.internal_path)

    @property
    def package(self) -> etree._Element | None:
        """The <package> element, or None if the root is something else."""
        root = self.root
        return root if local_name(root) == "package" else None

    def iter_elements(self, name: str) -> Iterator[etree._Element]:
        """Yield every element with the given local name in document order."""
        for node in self.root.iter():
            if local_name(node) == name:
                yield node

    def find(self, name: str) -> etree._Element | None:
        """First element with the given local name, or None."""
        return next(self.iter_elements(name), None)

    def find_all(self, name: str) -> list[etree._Element]:
        """All elements with the given local name, in document order."""
        return list(self.iter_elements(name))

    def find_filtered(self, name: str, attrs: Mapping[str, str]) -> etree._Element | None:
        """First element with the given local name whose attributes all match.

        Args:
            name: Local element name, e.g. "meta".
            attrs: Attribute local names mapped to required values.
        """
        for node in self.iter_elements(name):
            if all(get_attr(node, key) == value for key, value in attrs.items()):
                return node
        return None

    def text_of(self, name: str) -> str:
        """Stripped text of the first element with the given local name, or ""."""
        return element_text(self.find(name))

    def to_bytes(self, *, pretty: bool = True) -> bytes:
        """Serialize the document as UTF-8 with an XML declaration.

        With pretty=True every element is re-indented by two spaces, replacing
        any whitespace-only text already in the tree. Serializing the same tree
        twice therefore gives identical output.
        """
        if pretty:
            etree.indent(self.tree, space="  ")
        return etree.tostring(
            self.tree, encoding="utf-8", xml_declaration=True, pretty_print=pretty
        )
