# ABOUTME: Locates the cover image inside an EPUB and re-encodes replacement covers.
# ABOUTME: Replacement images are converted to whatever format the existing cover file uses.

import io
import logging
import posixpath
from urllib.parse import unquote

from PIL import Image, UnidentifiedImageError

from nubayrah.formats.archive import normalize_entry_name
from nubayrah.formats.errors import (
    CoverNotFoundError,
    UnsupportedConversionError,
    UnsupportedMediaTypeError,
)
from nubayrah.formats.package import PackageDocument, get_attr

logger = logging.getLogger(__name__)

# Used when neither <meta name="cover"> nor an EPUB 3 cover-image item exists.
DEFAULT_COVER_ID = "cover-image"

_PIL_FORMATS = {
    ".jpg": "JPEG",
    ".jpeg": "JPEG",
    ".png": "PNG",
    ".gif": "GIF",
}


def explicit_cover_id(doc: PackageDocument) -> str:
    """The content of <meta name="cover">, or "" if the document has none."""
    meta = doc.find_filtered("meta", {"name": "cover"})
    if meta is None:
        return ""
    return get_attr(meta, "content").strip()


def resolve_cover_id(doc: PackageDocument) -> str:
    """Determine the manifest id of the cover image.

    Resolution order:
    1. <meta name="cover" content="..."> (EPUB 2 convention).
    2. The manifest item whose properties include "cover-image" (EPUB 3).
    3. DEFAULT_COVER_ID.
    """
    cover_id = explicit_cover_id(doc)
    if cover_id:
        return cover_id

    for item in doc.iter_elements("item"):
        if "cover-image" in get_attr(item, "properties").split():
            item_id = get_attr(item, "id")
            if item_id:
                return item_id

    return DEFAULT_COVER_ID


def cover_path(doc: PackageDocument) -> str:
    """Archive path of the cover image.

    Manifest hrefs are relative to the package document, so the href is joined
    to the package document's directory.

    Raises:
        CoverNotFoundError: If no manifest item has the cover id, it has no href,
            or the href climbs above the archive root.
    """
    cover_id = resolve_cover_id(doc)
    item = doc.find_filtered("item", {"id": cover_id})
    if item is None:
        raise CoverNotFoundError(f"Cover image item '{cover_id}' not found in manifest")

    href = get_attr(item, "href").strip()
    if not href:
        raise CoverNotFoundError(f"Cover image item '{cover_id}' has no href")

    path = normalize_entry_name(posixpath.join(doc.directory, unquote(href)))
    if path == ".." or path.startswith("../"):
        raise CoverNotFoundError(f"Cover image href '{href}' points outside the archive")
    return path


def open_image(data: bytes) -> Image.Image:
    """Decode image bytes with Pillow.

    Raises:
        UnsupportedMediaTypeError: If data is not a recognizable image or is
            too large to decode safely.
    """
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        raise UnsupportedMediaTypeError(f"Not a supported image: {exc}") from exc
    return image


def _flatten_to_rgb(image: Image.Image) -> Image.Image:
    """Composite transparent images onto white; JPEG has no alpha channel."""
    has_alpha = image.mode in ("RGBA", "LA") or (
        image.mode == "P" and "transparency" in image.info
    )
    if has_alpha:
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    if image.mode not in ("RGB", "L"):
        return image.convert("RGB")
    return image


def encode_image(image: Image.Image, target_path: str) -> bytes:
    """Encode a decoded image in the format implied by target_path's extension.

    Raises:
        UnsupportedConversionError: If the target extension is not .jpg, .jpeg,
            .png or .gif, or Pillow cannot write the image in that format.
    """
    source_format = image.format

    ext = posixpath.splitext(target_path)[1].lower()
    pil_format = _PIL_FORMATS.get(ext)
    if pil_format is None:
        raise UnsupportedConversionError(
            f"Image conversion to {ext or target_path} is not supported"
        )

    if pil_format == "JPEG":
        image = _flatten_to_rgb(image)
    elif pil_format == "PNG" and image.mode == "CMYK":
        image = image.convert("RGB")

    buffer = io.BytesIO()
    try:
        image.save(buffer, format=pil_format)
    except (OSError, ValueError) as exc:
        raise UnsupportedConversionError(
            f"Cannot encode {image.mode} image as {pil_format}: {exc}"
        ) from exc
    logger.debug("Converted %s cover to %s", source_format, pil_format)
    return buffer.getvalue()


def convert_cover_image(data: bytes, target_path: str) -> bytes:
    """Re-encode an image into the format implied by target_path's extension.

    Args:
        data: The replacement image in any format Pillow can read.
        target_path: Archive path of the existing cover, e.g. "OEBPS/cover.png".

    Returns:
        The encoded image bytes.

    Raises:
        UnsupportedMediaTypeError: If data is not a recognizable image.
        UnsupportedConversionError: If the target extension is not supported.
    """
    return encode_image(open_image(data), target_path)
