"""Inference engine interface and backend resolution.

The engine does the actual model loading and sampling. fluxgen only drives
it through the blocking calls below, so any backend can be plugged in by
pointing ``FLUX_ENGINE`` at a ``module:attribute`` factory that returns an
object with these methods.

Failures may be reported either by returning ``None`` or by raising; the
pipeline treats both as terminal.
"""

from __future__ import annotations

import importlib
from typing import Any, Protocol

import numpy as np

from . import env
from .errors import ModelLoadError
from .imageio import RasterImage
from .params import GenerationParameters
from .progress import ProgressReporter


class Engine(Protocol):
    def load_model(self, model_dir: str) -> Any | None: ...

    def model_info(self, ctx: Any) -> str: ...

    def set_seed(self, ctx: Any, seed: int) -> None: ...

    def generate(
        self,
        ctx: Any,
        prompt: str,
        params: GenerationParameters,
        progress: ProgressReporter | None = None,
    ) -> RasterImage | None: ...

    def generate_with_embeddings(
        self,
        ctx: Any,
        embeddings: np.ndarray,
        seq_len: int,
        params: GenerationParameters,
        progress: ProgressReporter | None = None,
    ) -> RasterImage | None: ...

    def generate_with_embeddings_and_noise(
        self,
        ctx: Any,
        embeddings: np.ndarray,
        seq_len: int,
        noise: np.ndarray,
        noise_len: int,
        params: GenerationParameters,
        progress: ProgressReporter | None = None,
    ) -> RasterImage | None: ...

    def img2img(
        self,
        ctx: Any,
        prompt: str | None,
        image: RasterImage,
        params: GenerationParameters,
        progress: ProgressReporter | None = None,
    ) -> RasterImage | None: ...

    def free(self, ctx: Any) -> None: ...

    def free_image(self, image: RasterImage) -> None: ...

    def last_error(self) -> str | None: ...


def load_engine(spec: str | None = None) -> Engine:
    """Instantiate the engine named by ``spec`` or ``FLUX_ENGINE``.

    ``spec`` has the form ``package.module:attribute``; the attribute is
    called without arguments and must return the engine object.
    """

    spec = spec or env.engine_spec()
    if not spec:
        raise ModelLoadError(
            "No inference engine configured; set FLUX_ENGINE to module:factory"
        )
    module_name, _, attribute = spec.partition(":")
    if not module_name or not attribute:
        raise ModelLoadError(
            f"Invalid engine reference '{spec}' (expected module:factory)"
        )
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ModelLoadError(
            f"Failed to import engine module '{module_name}': {exc}"
        ) from exc
    factory = getattr(module, attribute, None)
    if not callable(factory):
        raise ModelLoadError(f"Engine factory '{spec}' is not callable")
    try:
        return factory()
    except Exception as exc:
        raise ModelLoadError(f"Failed to create engine '{spec}': {exc}") from exc


__all__ = ["Engine", "load_engine"]
