"""Transparent-background post-processing via ImageMagick."""

import logging
import os
import shutil
import subprocess
from pathlib import Path

import config

from .errors import ConfigError, NanoAgentError

logger = logging.getLogger(__name__)

INSTALL_HINT = (
    "ImageMagick not installed: install via Homebrew (brew install imagemagick) "
    "or apt (sudo apt-get install -y imagemagick)"
)


def find_imagemagick() -> str:
    """Return the ImageMagick executable, preferring IM7 ``magick`` over IM6 ``convert``."""
    for name in ("magick", "convert"):
        found = shutil.which(name)
        if found:
            return found
    raise ConfigError(INSTALL_HINT)


def add_transparent_hint(prompt: str) -> str:
    """Ask the model for a plain white background the post-process can remove."""
    if not prompt.strip():
        return config.TRANSPARENT_HINT
    return f"{prompt}\n\n{config.TRANSPARENT_HINT}"


def make_background_transparent(path: Path, fuzz: str = config.BG_FUZZ) -> Path:
    """Flood-fill the white background from the border to transparency.

    Adds a 1px white border, fills from (1,1) with ``none`` and shaves the
    border again. The result replaces ``path``.
    """
    tool = find_imagemagick()
    tmp = path.with_name(f"{path.stem}__tmp_transparent.png")
    args = [
        tool, str(path),
        "-colorspace", "sRGB", "-alpha", "set",
        "-bordercolor", "white", "-border", "1",
        "-fuzz", fuzz, "-fill", "none",
        "-draw", "color 1,1 floodfill",
        "-shave", "1x1",
        str(tmp),
    ]
    logger.debug("running %s", " ".join(args))
    try:
        subprocess.run(args, check=True, capture_output=True, text=True)
    except subprocess.CalledProcessError as e:
        tmp.unlink(missing_ok=True)
        raise NanoAgentError(
            f"post-process transparency failed: {(e.stderr or '').strip() or e}", code="POSTPROCESS_ERROR"
        ) from e
    os.replace(tmp, path)
    return path
