"""Error types raised by the fluxgen command-line pipeline.

Every failure is terminal for the run. ``main()`` catches ``FluxgenError``,
prints the message once to stderr and exits with status 1.

ArgumentError:
    A required flag is missing or a value is out of range. Raised before any
    resource is acquired.
ModelLoadError:
    The inference engine could not be configured or the model failed to load.
ImageLoadError / ImageSaveError:
    Reading the img2img source or writing the output image failed.
EmbeddingsFileError / NoiseFileError:
    A raw float32 tensor file could not be opened or was short-read.
GenerationError:
    The engine's generation call reported failure.
"""

from __future__ import annotations


class FluxgenError(Exception):
    """Base class for all run failures."""


class ArgumentError(FluxgenError):
    pass


class ModelLoadError(FluxgenError):
    pass


class ImageLoadError(FluxgenError):
    pass


class TensorFileError(FluxgenError):
    """Failure while reading a headerless float32 tensor file."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class EmbeddingsFileError(TensorFileError):
    pass


class NoiseFileError(TensorFileError):
    pass


class GenerationError(FluxgenError):
    pass


class ImageSaveError(FluxgenError):
    pass


__all__ = [
    "ArgumentError",
    "EmbeddingsFileError",
    "FluxgenError",
    "GenerationError",
    "ImageLoadError",
    "ImageSaveError",
    "ModelLoadError",
    "NoiseFileError",
    "TensorFileError",
]
