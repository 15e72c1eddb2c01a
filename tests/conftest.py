# ABOUTME: Shared pytest fixtures for nubayrah tests.
# ABOUTME: Builds sample EPUBs from hand-written package documents, plus one made by ebooklib.

import io
import zipfile
from collections.abc import Callable
from pathlib import Path

import pytest
from ebooklib import epub
from PIL import Image

CONTAINER_XML = """<?xml version="1.0" encoding="UTF-8"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="{opf_path}" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>
"""

CHAPTER_XHTML = b"""<?xml version="1.0" encoding="utf-8"?>
<html xmlns="http://www.w3.org/1999/xhtml"><head><title>Chapter</title></head>
<body><p>Call me Ishmael.</p></body></html>
"""

MOBY_DICK_OPF = """<?xml version="1.0" encoding="utf-8"?>
<package xmlns="http://www.idpf.org/2007/opf" version="3.0" unique-identifier="id">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/" xmlns:opf="http://www.idpf.org/2007/opf">
    <dc:identifier id="id">http://www.gutenberg.org/2701</dc:identifier>
    <dc:title>Moby Dick; Or, The Whale</dc:title>
    <dc:creator id="author_0">Herman Melville</dc:creator>
    <meta refines="#author_0" property="file-as">Melville, Herman</meta>
    <dc:language>en</dc:language>
    <dc:subject>Whaling -- Fiction</dc:subject>
    <dc:subject>Sea stories</dc:subject>
    <dc:publisher>Project Gutenberg</dc:publisher>
    <dc:date>2001-07-01T00:00:00+00:00</dc:date>
    <dc:rights>Public domain in the USA.</dc:rights>
    <meta name="cover" content="item1"/>
  </metadata>
  <manifest>
    <item id="item1" href="images/cover.png" media-type="image/png"/>
    <item id="chapter_1" href="text/chapter_1.xhtml" media-type="application/xhtml+xml"/>
  </manifest>
  <spine>
    <itemref idref="chapter_1"/>
  </spine>
</package>
"""

KARAMAZOV_OPF = """<?xml version="1.0" encoding="UTF-8"?>
<package xmlns="http://www.idpf.org/2007/opf" xmlns:opf="http://www.idpf.org/2007/opf"
    version="3.0" unique-identifier="BookId">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/">
    <dc:title id="t1">The Brothers Karamazov</dc:title>
    <meta refines="#t1" property="file-as">Brothers Karamazov, The</meta>
    <dc:creator opf:file-as="Dostoyevsky, Fyodor" opf:role="aut">Fyodor Dostoyevsky</dc:creator>
    <dc:contributor opf:role="trl">Constance Garnett</dc:contributor>
    <dc:identifier id="BookId">urn:uuid:1d4a3c5e-9a53-4d0a-8d5e-bd4e5f0c2a11</dc:identifier>
    <dc:identifier opf:scheme="isbn">9780374528379</dc:identifier>
    <dc:language>en</dc:language>
    <dc:description>
      A passionate philosophical novel set in nineteenth-century Russia.
    </dc:description>
  </metadata>
  <manifest>
    <item id="cov" href="cover%20art.jpg" media-type="image/jpeg" properties="cover-image"/>
    <item id="text" href="text.xhtml" media-type="application/xhtml+xml"/>
  </manifest>
  <spine>
    <itemref idref="text"/>
  </spine>
</package>
"""

STONE_AGE_OPF = """<?xml version="1.0" encoding="UTF-8"?>
<package xmlns="http://www.idpf.org/2007/opf" version="3.0" unique-identifier="pub-id">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/">
    <dc:identifier id="pub-id">urn:uuid:6b1d2b7e-8f0a-4f9b-a0d5-8a3c1e7f4d20</dc:identifier>
    <dc:title>The Stone Age in North America</dc:title>
    <dc:creator>Warren K. Moorehead</dc:creator>
    <dc:language>en</dc:language>
    <meta property="belongs-to-collection" id="c01">American Archaeology</meta>
    <meta refines="#c01" property="group-position">2.00</meta>
  </metadata>
  <manifest>
    <item id="text" href="text.xhtml" media-type="application/xhtml+xml"/>
  </manifest>
  <spine>
    <itemref idref="text"/>
  </spine>
</package>
"""


_FILL = {
    "RGB": (200, 30, 30),
    "RGBA": (200, 30, 30, 128),
    "L": 128,
    "CMYK": (0, 200, 200, 0),
    "F": 0.5,
}


def _image_bytes(fmt: str = "PNG", size: tuple[int, int] = (60, 90), mode: str = "RGB") -> bytes:
    image = Image.new(mode, size, _FILL[mode])
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


def _write_epub(path: Path, opf_path: str, opf: str, files: dict[str, bytes]) -> Path:
    """Zip an EPUB with mimetype first and stored, as readers expect."""
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr("mimetype", "application/epub+zip", compress_type=zipfile.ZIP_STORED)
        zf.writestr("META-INF/container.xml", CONTAINER_XML.format(opf_path=opf_path))
        zf.writestr(opf_path, opf.encode("utf-8"))
        for name, data in files.items():
            zf.writestr(name, data)
    return path


@pytest.fixture
def make_image() -> Callable[..., bytes]:
    """Factory for in-memory images: make_image("JPEG", size=(10, 10), mode="RGB")."""
    return _image_bytes


@pytest.fixture
def build_epub(tmp_path: Path) -> Callable[..., Path]:
    """Factory that writes an EPUB around any package document.

    build_epub(opf, opf_path="content.opf", files=None, name="book.epub")
    """

    def build(
        opf: str,
        opf_path: str = "content.opf",
        files: dict[str, bytes] | None = None,
        name: str = "book.epub",
    ) -> Path:
        return _write_epub(tmp_path / name, opf_path, opf, files or {})

    return build


@pytest.fixture
def moby_dick_epub(tmp_path: Path) -> Path:
    """EPUB 3 with refines-based author sort and a PNG cover named by <meta name="cover">."""
    return _write_epub(
        tmp_path / "pg2701.epub",
        "OEBPS/content.opf",
        MOBY_DICK_OPF,
        {
            "OEBPS/images/cover.png": _image_bytes("PNG"),
            "OEBPS/text/chapter_1.xhtml": CHAPTER_XHTML,
        },
    )


@pytest.fixture
def karamazov_epub(tmp_path: Path) -> Path:
    """Inline opf: attributes, a lowercase isbn scheme, a translator, and an EPUB 3 JPEG cover."""
    return _write_epub(
        tmp_path / "karamazov.epub",
        "content.opf",
        KARAMAZOV_OPF,
        {
            "cover art.jpg": _image_bytes("JPEG"),
            "text.xhtml": CHAPTER_XHTML,
        },
    )


@pytest.fixture
def stone_age_epub(tmp_path: Path) -> Path:
    """A series member at position 2.00 with no cover image."""
    return _write_epub(
        tmp_path / "stone_age.epub",
        "OEBPS/package.opf",
        STONE_AGE_OPF,
        {"OEBPS/text.xhtml": CHAPTER_XHTML},
    )


@pytest.fixture
def sample_epub(tmp_path: Path) -> Path:
    """A minimal valid EPUB written by ebooklib with known metadata."""
    book = epub.EpubBook()

    book.set_identifier("test-isbn-978-0-123456-47-2")
    book.set_title("The Name of the Rose")
    book.set_language("en")
    book.add_author("Umberto Eco")

    book.add_metadata("DC", "publisher", "Harcourt")
    book.add_metadata("DC", "description", "A mystery set in a medieval monastery.")

    chapter = epub.EpubHtml(title="Chapter 1", file_name="chap01.xhtml", lang="en")
    chapter.content = b"<html><body><h1>Chapter 1</h1><p>Content.</p></body></html>"
    book.add_item(chapter)

    book.toc = [epub.Link("chap01.xhtml", "Chapter 1", "chap01")]
    book.add_item(epub.EpubNcx())
    book.add_item(epub.EpubNav())
    book.spine = ["nav", chapter]

    filepath = tmp_path / "name_of_the_rose.epub"
    epub.write_epub(str(filepath), book)
    return filepath


@pytest.fixture
def corrupt_epub(tmp_path: Path) -> Path:
    """A file that is not a zip archive at all."""
    filepath = tmp_path / "corrupt.epub"
    filepath.write_text("this is not a valid epub file")
    return filepath
