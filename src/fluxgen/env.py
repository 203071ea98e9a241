"""Environment-backed settings, read after ``.env`` has been loaded."""

from __future__ import annotations

import os

from .errors import ArgumentError


def engine_spec() -> str | None:
    value = os.getenv("FLUX_ENGINE", "").strip()
    return value or None


def default_model_dir() -> str | None:
    value = os.getenv("FLUX_MODEL_DIR", "").strip()
    return value or None


def strict_embeddings_enabled() -> bool:
    value = os.getenv("FLUX_STRICT_EMBEDDINGS", "")
    if not value.strip():
        return False
    return as_boolean(value, key="FLUX_STRICT_EMBEDDINGS")


def write_metadata_enabled() -> bool:
    value = os.getenv("FLUX_WRITE_METADATA", "")
    if not value.strip():
        return True
    return as_boolean(value, key="FLUX_WRITE_METADATA")


def as_boolean(value: str, *, key: str | None = None) -> bool:
    if not key:
        key = "key"
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ArgumentError(
        f"value {value} for {key} must be one of 1, 0, true, false, yes, no, on, off"
    )


__all__ = [
    "as_boolean",
    "default_model_dir",
    "engine_spec",
    "strict_embeddings_enabled",
    "write_metadata_enabled",
]
