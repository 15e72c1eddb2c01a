# ABOUTME: Resolves the package document path from META-INF/container.xml.
# ABOUTME: First step of opening any EPUB after the archive itself.

from lxml import etree

from nubayrah.formats.archive import EpubArchive, normalize_entry_name
from nubayrah.formats.errors import EntryNotFoundError, InvalidContainerError
from nubayrah.formats.package import get_attr, local_name

CONTAINER_PATH = "META-INF/container.xml"


def resolve_package_path(archive: EpubArchive) -> str:
    """Find the archive path of the OPF package document.

    Args:
        archive: The opened EPUB archive.

    Returns:
        The normalized full-path of the first <rootfile> element.

    Raises:
        InvalidContainerError: If container.xml is missing or unparseable, or
            has no <rootfile> with a full-path attribute.
    """
    try:
        raw = archive.read_entry(CONTAINER_PATH)
    except EntryNotFoundError as exc:
        raise InvalidContainerError(f"Missing {CONTAINER_PATH}") from exc

    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(raw, parser=parser)
    except etree.XMLSyntaxError as exc:
        raise InvalidContainerError(f"Invalid container xml: {exc}") from exc

    rootfile = next((node for node in root.iter() if local_name(node) == "rootfile"), None)
    if rootfile is None:
        raise InvalidContainerError("Invalid container xml: rootfile element not found")

    full_path = normalize_entry_name(get_attr(rootfile, "full-path").strip())
    if not full_path:
        raise InvalidContainerError(
            "Invalid container xml: rootfile element missing full-path attr"
        )
    return full_path
