"""Raster image loading and saving backed by Pillow."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from PIL import Image

from .errors import ImageLoadError, ImageSaveError

_MODES_BY_CHANNELS = {1: "L", 3: "RGB", 4: "RGBA"}
_FORMATS_BY_SUFFIX = {
    ".png": "PNG",
    ".jpg": "JPEG",
    ".jpeg": "JPEG",
    ".ppm": "PPM",
}


@dataclass(frozen=True)
class RasterImage:
    """Interleaved 8-bit pixel data exchanged with the engine.

    Attributes:
        width: Width in pixels.
        height: Height in pixels.
        channels: 1 (grey), 3 (RGB) or 4 (RGBA).
        pixels: Row-major bytes, ``width * height * channels`` long.
    """

    width: int
    height: int
    channels: int
    pixels: bytes


def load_image(path: Path | str) -> RasterImage:
    """Decode an image file into a ``RasterImage`` (grey, RGB or RGBA)."""

    p = Path(path)
    try:
        with Image.open(p) as img:
            img.load()
            if img.mode not in {"L", "RGB", "RGBA"}:
                has_alpha = "A" in img.getbands() or "transparency" in img.info
                img = img.convert("RGBA" if has_alpha else "RGB")
            return _to_raster(img)
    except (OSError, ValueError) as exc:
        raise ImageLoadError(f"Failed to load input image: {p}: {exc}") from exc


def save_image(
    image: RasterImage, path: Path | str, *, exif: bytes | None = None
) -> Path:
    """Encode ``image`` to ``path``; the format follows the file extension.

    ``exif`` is embedded in the same encode for PNG and JPEG output and
    ignored for PPM.
    """

    p = Path(path)
    mode = _MODES_BY_CHANNELS.get(image.channels)
    if mode is None:
        raise ImageSaveError(
            f"Failed to save image: {p}: unsupported channel count {image.channels}"
        )
    image_format = _FORMATS_BY_SUFFIX.get(p.suffix.lower(), "PNG")
    try:
        img = Image.frombytes(mode, (image.width, image.height), image.pixels)
        if image_format in {"JPEG", "PPM"} and mode == "RGBA":
            img = img.convert("RGB")
        save_kwargs: dict[str, Any] = {}
        if exif and image_format in {"PNG", "JPEG"}:
            save_kwargs["exif"] = exif
        img.save(p, format=image_format, **save_kwargs)
    except (OSError, ValueError) as exc:
        raise ImageSaveError(f"Failed to save image: {p}: {exc}") from exc
    return p


def _to_raster(img: Image.Image) -> RasterImage:
    width, height = img.size
    return RasterImage(
        width=width,
        height=height,
        channels=len(img.getbands()),
        pixels=img.tobytes(),
    )


__all__ = ["RasterImage", "load_image", "save_image"]
