"""
Document intake for uploaded invoices.

Handles:
- Media type allow-list (PDF, JPEG, PNG, WEBP)
- Size and content sanity checks
- Image normalization before upload (EXIF orientation, RGB, downscale)
"""

import base64
import logging
import mimetypes
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Optional, Union

from PIL import Image, ImageOps, UnidentifiedImageError

from order_parser.config import AppConfig, get_config
from order_parser.errors import FileReadError, UnsupportedFileTypeError

logger = logging.getLogger(__name__)

PDF_MEDIA_TYPE = "application/pdf"
PDF_MAGIC = b"%PDF"


@dataclass
class UploadedDocument:
    """A validated document ready to send for extraction."""
    file_name: str
    media_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)

    def to_base64(self) -> str:
        return base64.b64encode(self.content).decode("utf-8")


def resolve_media_type(media_type: Optional[str], file_name: str = "") -> str:
    """Declared media type, or a guess from the file name when none was sent."""
    if media_type:
        return media_type.split(";")[0].strip().lower()
    guessed, _ = mimetypes.guess_type(file_name or "")
    return guessed or ""


def check_media_type(media_type: str, config: Optional[AppConfig] = None) -> None:
    """Raise UnsupportedFileTypeError unless ``media_type`` is accepted."""
    config = config or get_config()
    if media_type not in config.accepted_media_types:
        raise UnsupportedFileTypeError(media_type)


def _prepare_image(content: bytes, max_size: int) -> bytes:
    """Validate, orient, convert and downscale an image; return PNG bytes."""
    try:
        pil_img = Image.open(BytesIO(content))
        pil_img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as e:
        raise FileReadError(f"Cannot decode image: {e}")

    pil_img = ImageOps.exif_transpose(pil_img)

    # Handles CMYK, RGBA, palette and greyscale modes
    if pil_img.mode != "RGB":
        pil_img = pil_img.convert("RGB")

    w, h = pil_img.size
    if max(w, h) > max_size:
        scale = max_size / max(w, h)
        new_w, new_h = int(w * scale), int(h * scale)
        pil_img = pil_img.resize((new_w, new_h), Image.LANCZOS)
        logger.info(f"Resized image from {w}x{h} to {new_w}x{new_h}")

    buffer = BytesIO()
    pil_img.save(buffer, format="PNG", optimize=True)
    logger.info(f"Prepared image: {pil_img.size[0]}x{pil_img.size[1]}, PNG, {buffer.tell():,} bytes")
    return buffer.getvalue()


def load_document(
    content: bytes,
    media_type: Optional[str],
    file_name: str = "",
    config: Optional[AppConfig] = None,
) -> UploadedDocument:
    """
    Validate uploaded bytes and build an UploadedDocument.

    The media type is checked first, so unsupported files never reach the
    extraction service.

    Raises:
        UnsupportedFileTypeError: media type not in the allow-list
        FileReadError: empty, oversized or undecodable content
    """
    config = config or get_config()
    resolved = resolve_media_type(media_type, file_name)
    check_media_type(resolved, config)

    if not content:
        raise FileReadError(f"File is empty: {file_name or '<upload>'}")
    if len(content) > config.max_file_size_bytes:
        raise FileReadError(
            f"File too large: {len(content):,} bytes (limit {config.max_file_size_mb} MB)"
        )

    if resolved == PDF_MEDIA_TYPE:
        if not content.startswith(PDF_MAGIC):
            raise FileReadError(f"Not a PDF document: {file_name or '<upload>'}")
        return UploadedDocument(file_name=file_name, media_type=resolved, content=content)

    prepared = _prepare_image(content, config.max_image_size)
    return UploadedDocument(file_name=file_name, media_type="image/png", content=prepared)


def read_document(path: Union[str, Path], config: Optional[AppConfig] = None) -> UploadedDocument:
    """Load a document from disk, guessing its media type from the suffix."""
    path = Path(path)
    media_type = resolve_media_type(None, path.name)
    # Reject by type before touching the file
    check_media_type(media_type, config)
    try:
        content = path.read_bytes()
    except OSError as e:
        raise FileReadError(f"Cannot read {path}: {e}")
    return load_document(content, media_type, path.name, config)
