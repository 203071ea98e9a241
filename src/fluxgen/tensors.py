"""Loaders for headerless little-endian float32 tensor files.

Neither format carries a header, so shapes are inferred from the file size:

- embeddings: ``[1, seq_len, text_dim]`` with
  ``seq_len = size // (text_dim * 4)``; a trailing partial token is dropped
  unless ``strict`` is set.
- noise: a flat array of ``size // 4`` floats.

Both loaders read the whole file before returning.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from .errors import EmbeddingsFileError, NoiseFileError, TensorFileError

TEXT_DIM = 7680
FLOAT_SIZE = 4
FLOAT_DTYPE = np.dtype("<f4")


@dataclass(frozen=True)
class TensorBuffer:
    """Fully loaded float32 data plus its inferred logical shape."""

    data: np.ndarray
    shape: tuple[int, ...]
    file_size: int

    @property
    def length(self) -> int:
        return int(self.data.size)


def load_embeddings(
    path: Path | str, *, text_dim: int = TEXT_DIM, strict: bool = False
) -> TensorBuffer:
    """Load text embeddings and infer ``seq_len`` from the file size."""

    raw = _read_all(Path(path), EmbeddingsFileError, "embeddings")
    token_bytes = text_dim * FLOAT_SIZE
    if strict and len(raw) % token_bytes:
        raise EmbeddingsFileError(
            f"Embeddings file {path} is {len(raw)} bytes, "
            f"not a multiple of {token_bytes} ({text_dim} float32 per token)",
            path=str(path),
        )
    seq_len = len(raw) // token_bytes
    data = _as_floats(raw, seq_len * text_dim)
    return TensorBuffer(
        data=data.reshape(1, seq_len, text_dim),
        shape=(1, seq_len, text_dim),
        file_size=len(raw),
    )


def load_noise(path: Path | str) -> TensorBuffer:
    """Load a flat noise array of ``size // 4`` floats."""

    raw = _read_all(Path(path), NoiseFileError, "noise")
    count = len(raw) // FLOAT_SIZE
    return TensorBuffer(data=_as_floats(raw, count), shape=(count,), file_size=len(raw))


def _read_all(path: Path, error_cls: type[TensorFileError], label: str) -> bytes:
    try:
        with path.open("rb") as handle:
            expected = os.fstat(handle.fileno()).st_size
            raw = handle.read(expected)
    except OSError as exc:
        raise error_cls(
            f"Failed to open {label} file: {path}: {exc.strerror or exc}",
            path=str(path),
        ) from exc
    if len(raw) < expected:
        raise error_cls(
            f"Failed to read {label} file: {path} "
            f"(read {len(raw)} of {expected} bytes)",
            path=str(path),
        )
    return raw


def _as_floats(raw: bytes, count: int) -> np.ndarray:
    if count == 0:
        return np.zeros(0, dtype=np.float32)
    values = np.frombuffer(raw, dtype=FLOAT_DTYPE, count=count)
    return values.astype(np.float32, copy=True)


__all__ = [
    "FLOAT_SIZE",
    "TEXT_DIM",
    "TensorBuffer",
    "load_embeddings",
    "load_noise",
]
