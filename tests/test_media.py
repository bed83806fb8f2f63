from io import BytesIO

import pytest
from PIL import Image

from nano_agent import media
from nano_agent.errors import ConfigError, NanoAgentError
from nano_agent.media import (
    ensure_png_path,
    guess_mime,
    image_part_from_bytes,
    load_image_part,
    save_image,
    sniff_mime,
)


@pytest.mark.parametrize(
    "name, mime",
    [
        ("a.jpg", "image/jpeg"),
        ("a.JPEG", "image/jpeg"),
        ("a.webp", "image/webp"),
        ("a.gif", "image/gif"),
        ("a.png", "image/png"),
        ("a.bmp", "image/png"),
        ("noext", "image/png"),
    ],
)
def test_guess_mime(name, mime):
    assert guess_mime(name) == mime


def test_load_image_part(tmp_path):
    path = tmp_path / "ref.webp"
    path.write_bytes(b"webp-bytes")
    part = load_image_part(path)
    assert part.mime_type == "image/webp"
    assert part.data == b"webp-bytes"


def test_load_image_part_missing(tmp_path):
    with pytest.raises(ConfigError, match="image not found"):
        load_image_part(tmp_path / "missing.png")


def test_sniff_mime(png_bytes, jpeg_bytes):
    assert sniff_mime(png_bytes) == "image/png"
    assert sniff_mime(jpeg_bytes) == "image/jpeg"
    assert sniff_mime(b"not an image") is None
    assert image_part_from_bytes(jpeg_bytes).mime_type == "image/jpeg"
    assert image_part_from_bytes(b"???").mime_type == "image/png"


def test_ensure_png_path(tmp_path):
    assert ensure_png_path("out.png").name == "out.png"
    assert ensure_png_path("out.PNG").name == "out.PNG"
    assert ensure_png_path("out").name == "out.png"
    assert ensure_png_path("out.jpg").name == "out.jpg.png"


def test_save_image_reencodes_jpeg_as_png(tmp_path, jpeg_bytes):
    out = save_image(jpeg_bytes, tmp_path / "sub" / "out.png")
    with Image.open(out) as image:
        assert image.format == "PNG"


def test_save_image_writes_png_verbatim(tmp_path, png_bytes):
    out = save_image(png_bytes, tmp_path / "out.png")
    assert out.read_bytes() == png_bytes


def test_save_image_converts_cmyk_jpeg(tmp_path):
    buf = BytesIO()
    Image.new("CMYK", (4, 4), (0, 255, 255, 0)).save(buf, format="JPEG")

    out = save_image(buf.getvalue(), tmp_path / "out.png")

    with Image.open(out) as image:
        assert image.format == "PNG"
        assert image.mode == "RGB"


def test_save_image_wraps_pillow_errors(tmp_path, jpeg_bytes, monkeypatch):
    def fail(self, *args, **kwargs):
        raise OSError("cannot write mode XYZ as PNG")

    monkeypatch.setattr(media.Image.Image, "save", fail)

    with pytest.raises(NanoAgentError, match="cannot write mode XYZ") as exc:
        save_image(jpeg_bytes, tmp_path / "out.png")
    assert exc.value.code == "IMAGE_SAVE_ERROR"
