"""Local image and text file helpers."""

import logging
import shutil
from io import BytesIO
from pathlib import Path
from typing import Optional, Union

from PIL import Image, UnidentifiedImageError

from .errors import ConfigError, NanoAgentError
from .schemas import ImagePart

logger = logging.getLogger(__name__)

# Modes Pillow can write as PNG without conversion
PNG_MODES = ("1", "L", "LA", "P", "RGB", "RGBA", "I", "I;16")

IMAGE_SUFFIXES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".gif": "image/gif",
    ".png": "image/png",
}


def guess_mime(path: Union[str, Path]) -> str:
    """Infer an image MIME type from the file extension (default image/png)."""
    return IMAGE_SUFFIXES.get(Path(path).suffix.lower(), "image/png")


def is_image_path(path: Union[str, Path]) -> bool:
    return Path(path).suffix.lower() in IMAGE_SUFFIXES


def sniff_mime(data: bytes) -> Optional[str]:
    """Detect the MIME type of image bytes, or None if Pillow can't tell."""
    try:
        with Image.open(BytesIO(data)) as image:
            return Image.MIME.get(image.format or "")
    except (UnidentifiedImageError, OSError):
        return None


def load_image_part(path: Union[str, Path]) -> ImagePart:
    """Read an image file into an ImagePart.

    Raises:
        ConfigError: If the file does not exist or is empty.
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"image not found: {path}")
    data = path.read_bytes()
    if not data:
        raise ConfigError(f"image is empty: {path}")
    return ImagePart(mime_type=guess_mime(path), data=data)


def image_part_from_bytes(data: bytes) -> ImagePart:
    """Wrap generated image bytes, sniffing the real format when possible."""
    return ImagePart(mime_type=sniff_mime(data) or "image/png", data=data)


def ensure_png_path(path: Union[str, Path]) -> Path:
    """Force a ``.png`` suffix onto an output path."""
    path = Path(path)
    if path.suffix.lower() != ".png":
        path = path.with_name(path.name + ".png")
    return path


def save_image(data: bytes, path: Union[str, Path]) -> Path:
    """Write generated image bytes to ``path``.

    Models sometimes return JPEG or WebP even when PNG is expected; those are
    re-encoded with Pillow so the file content matches a ``.png`` name.
    Bytes Pillow cannot identify are written as-is.

    Returns:
        The path written.

    Raises:
        NanoAgentError: If Pillow fails to re-encode the image.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    mime = sniff_mime(data)
    if path.suffix.lower() == ".png" and mime not in (None, "image/png"):
        logger.debug("re-encoding %s output as PNG: %s", mime, path)
        try:
            with Image.open(BytesIO(data)) as image:
                if image.mode not in PNG_MODES:
                    image = image.convert("RGBA" if "A" in image.getbands() else "RGB")
                image.save(path, format="PNG")
        except OSError as e:
            raise NanoAgentError(
                f"could not save {mime} image as PNG: {e}", code="IMAGE_SAVE_ERROR"
            ) from e
        return path

    path.write_bytes(data)
    return path


def snapshot(path: Path, snapshot_path: Path) -> Path:
    """Copy the current output into a numbered snapshot file."""
    snapshot_path.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(path, snapshot_path)
    return snapshot_path
