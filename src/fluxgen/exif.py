from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from typing import Any

import piexif  # type: ignore[import-untyped]
from PIL import Image

SOFTWARE = "fluxgen"
SUPPORTED_SUFFIXES = {".png", ".jpg", ".jpeg"}


def format_description(settings: Mapping[str, Any]) -> str:
    """Render generation settings as a single-line JSON object.

    ``None`` values are skipped. Non-ASCII prompt text is escaped so the
    result fits the EXIF ASCII tag unchanged.
    """

    payload = {key: value for key, value in settings.items() if value is not None}
    return json.dumps(payload, ensure_ascii=True, separators=(", ", ": "))


def parse_description(text: str) -> dict[str, Any]:
    """Inverse of ``format_description``.

    Descriptions that are not a JSON object fall back to a plain
    ``Prompt: ...`` text, which yields only the prompt.
    """

    trimmed = text.strip()
    if trimmed.startswith("{"):
        try:
            data = json.loads(trimmed)
        except json.JSONDecodeError:
            data = None
        if isinstance(data, dict):
            return data

    prompt_index = text.find("Prompt:")
    if prompt_index == -1:
        return {}
    return {"prompt": text[prompt_index + len("Prompt:") :].strip()}


def build_exif(
    settings: Mapping[str, Any], *, file_time: datetime | None = None
) -> bytes:
    """Build fresh EXIF bytes describing how an image was generated.

    Args:
        settings: Ordered generation settings (model, prompt, seed, ...).
        file_time: Timestamp for the date tags; defaults to now.

    Returns:
        bytes: EXIF block to pass as ``exif=`` when the image is encoded, so
        the pixels are only compressed once.
    """
    zeroth: dict[int, Any] = {}
    exif_section: dict[int, Any] = {}
    exif_dict: dict[str, Any] = {
        "0th": zeroth,
        "Exif": exif_section,
        "GPS": {},
        "Interop": {},
        "1st": {},
        "thumbnail": None,
    }

    if file_time is None:
        file_time = datetime.now()
    formatted_date = file_time.strftime("%Y:%m:%d %H:%M:%S")

    zeroth[piexif.ImageIFD.Software] = SOFTWARE.encode()
    description = format_description(settings)
    if description != "{}":
        zeroth[piexif.ImageIFD.ImageDescription] = description.encode("ascii")
    exif_section[piexif.ExifIFD.DateTimeOriginal] = formatted_date.encode()
    exif_section[piexif.ExifIFD.DateTimeDigitized] = formatted_date.encode()

    return piexif.dump(exif_dict)


def read_generation_metadata(image_path: Path | str) -> dict[str, Any]:
    """Return the settings stored by ``build_exif``, if any."""

    try:
        with Image.open(image_path) as img:
            exif = img.getexif()
    except Exception:
        exif = None

    description = exif.get(piexif.ImageIFD.ImageDescription) if exif else None
    if not description:
        return {}
    if isinstance(description, bytes):
        text = description.decode("utf-8", errors="ignore")
    else:
        text = _normalize_text(str(description))
    return parse_description(text)


def _normalize_text(text: str) -> str:
    try:
        return text.encode("latin-1").decode("utf-8")
    except UnicodeError:
        return text


__all__ = [
    "SUPPORTED_SUFFIXES",
    "build_exif",
    "format_description",
    "parse_description",
    "read_generation_metadata",
]
