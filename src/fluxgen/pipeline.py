"""Mode selection and the load -> generate -> save sequence for one run.

Exactly one generation mode is chosen up front from the optional inputs:

1. an input image selects img2img;
2. otherwise an embeddings file selects external embeddings (with optional
   noise);
3. otherwise the prompt is encoded by the engine itself.

Every resource acquired during the run (model context, generated image) is
released exactly once, on success and on every failure path.
"""

from __future__ import annotations

import sys
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager, nullcontext
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Union

from . import exif
from .engine import Engine
from .errors import FluxgenError, GenerationError, ModelLoadError
from .imageio import RasterImage, load_image, save_image
from .options import ParsedOptions
from .params import GenerationParameters
from .progress import ProgressReporter
from .seed import report_seed, resolve_seed
from .tensors import load_embeddings, load_noise


@dataclass(frozen=True)
class PromptOnly:
    prompt: str


@dataclass(frozen=True)
class ExternalEmbeddings:
    embeddings_path: str
    noise_path: str | None = None


@dataclass(frozen=True)
class Img2Img:
    input_path: str
    prompt: str | None
    strength: float


GenerationMode = Union[PromptOnly, ExternalEmbeddings, Img2Img]


def select_mode(parsed: ParsedOptions) -> GenerationMode:
    """Pick the generation mode; an input image wins over embeddings."""

    if parsed.input_path:
        return Img2Img(
            input_path=parsed.input_path,
            prompt=parsed.prompt,
            strength=parsed.params.strength,
        )
    if parsed.embeddings_path:
        return ExternalEmbeddings(
            embeddings_path=parsed.embeddings_path,
            noise_path=parsed.noise_path or None,
        )
    return PromptOnly(prompt=parsed.prompt or "")


def run_generation(
    parsed: ParsedOptions,
    engine: Engine,
    *,
    reporter: ProgressReporter | None = None,
    strict_embeddings: bool = False,
) -> Path:
    """Load the model, generate one image and save it to the output path.

    Args:
        parsed: Validated command-line options.
        engine: Inference engine implementation.
        reporter: Progress reporter armed around the generation call; when
            None the call runs silently.
        strict_embeddings: Reject embeddings files with a partial trailing
            token instead of truncating them.

    Returns:
        Path of the saved image.
    """

    mode = select_mode(parsed)
    verbose = parsed.verbose
    output_path = Path(parsed.output_path or "")

    if verbose:
        _emit_header(parsed)
    _log(verbose, "Loading model...")
    start_time = time.perf_counter()

    with _loaded_model(engine, parsed.model_dir or "") as ctx:
        if verbose:
            elapsed = _format_elapsed(time.perf_counter() - start_time)
            _log(verbose, f"Model loaded in {elapsed}")
            _log(verbose, f"Model info: {engine.model_info(ctx)}\n")

        resolution = resolve_seed(parsed.params.seed)
        engine.set_seed(ctx, resolution.resolved)
        report_seed(resolution)
        params = replace(parsed.params, seed=resolution.resolved)

        start_time = time.perf_counter()
        if isinstance(mode, Img2Img):
            image = _run_img2img(mode, engine, ctx, parsed, params, reporter)
        elif isinstance(mode, ExternalEmbeddings):
            image = _run_embeddings(
                mode, engine, ctx, params, reporter, verbose, strict_embeddings
            )
        else:
            _log(verbose, "Generating...")
            image = _invoke(
                engine,
                lambda progress: engine.generate(ctx, mode.prompt, params, progress),
                reporter,
            )

        with _owned_image(engine, image):
            if verbose:
                elapsed = _format_elapsed(time.perf_counter() - start_time)
                _log(verbose, f"Generated in {elapsed}")
                _log(
                    verbose,
                    f"Output: {image.width}x{image.height}, "
                    f"{image.channels} channels",
                )
            _log(verbose, f"Saving to {output_path}...")
            metadata = None
            if parsed.write_metadata:
                metadata = _build_exif_metadata(
                    output_path, parsed, mode, params, image
                )
            save_image(image, output_path, exif=metadata)

    _log(verbose, "Done!")
    return output_path


def _run_img2img(
    mode: Img2Img,
    engine: Engine,
    ctx: Any,
    parsed: ParsedOptions,
    params: GenerationParameters,
    reporter: ProgressReporter | None,
) -> RasterImage:
    verbose = parsed.verbose
    _log(verbose, "Loading input image...")
    source = load_image(mode.input_path)

    params = replace(
        params,
        width=params.width if parsed.width_set else source.width,
        height=params.height if parsed.height_set else source.height,
        strength=mode.strength,
    )
    if verbose:
        _log(
            verbose,
            f"Input: {source.width}x{source.height}, {source.channels} channels",
        )
        _log(verbose, f"Output: {params.width}x{params.height}")
    _log(verbose, "Generating...")
    return _invoke(
        engine,
        lambda progress: engine.img2img(ctx, mode.prompt, source, params, progress),
        reporter,
    )


def _run_embeddings(
    mode: ExternalEmbeddings,
    engine: Engine,
    ctx: Any,
    params: GenerationParameters,
    reporter: ProgressReporter | None,
    verbose: bool,
    strict: bool,
) -> RasterImage:
    _log(verbose, f"Loading embeddings from {mode.embeddings_path}...")
    embeddings = load_embeddings(mode.embeddings_path, strict=strict)
    _, seq_len, text_dim = embeddings.shape
    if verbose:
        megabytes = embeddings.file_size / (1024.0 * 1024.0)
        _log(
            verbose,
            f"Embeddings: {seq_len} tokens x {text_dim} dims ({megabytes:.2f} MB)",
        )

    if mode.noise_path is None:
        _log(verbose, "Generating with external embeddings...")
        return _invoke(
            engine,
            lambda progress: engine.generate_with_embeddings(
                ctx, embeddings.data, seq_len, params, progress
            ),
            reporter,
        )

    _log(verbose, f"Loading noise from {mode.noise_path}...")
    noise = load_noise(mode.noise_path)
    if verbose:
        kilobytes = noise.file_size / 1024.0
        _log(verbose, f"Noise: {noise.length} floats ({kilobytes:.2f} KB)")
    _log(verbose, "Generating with external embeddings and noise...")
    return _invoke(
        engine,
        lambda progress: engine.generate_with_embeddings_and_noise(
            ctx, embeddings.data, seq_len, noise.data, noise.length, params, progress
        ),
        reporter,
    )


def _invoke(
    engine: Engine,
    call: Callable[[ProgressReporter | None], RasterImage | None],
    reporter: ProgressReporter | None,
) -> RasterImage:
    session = reporter.session() if reporter is not None else nullcontext(None)
    with session as progress:
        try:
            image = call(progress)
        except FluxgenError:
            raise
        except Exception as exc:
            raise GenerationError(f"Generation failed: {exc}") from exc
    if image is None:
        raise GenerationError(f"Generation failed: {_last_error(engine)}")
    return image


@contextmanager
def _loaded_model(engine: Engine, model_dir: str) -> Iterator[Any]:
    try:
        ctx = engine.load_model(model_dir)
    except FluxgenError:
        raise
    except Exception as exc:
        raise ModelLoadError(f"Failed to load model: {model_dir}: {exc}") from exc
    if ctx is None:
        raise ModelLoadError(
            f"Failed to load model: {model_dir}: {_last_error(engine)}"
        )
    try:
        yield ctx
    finally:
        engine.free(ctx)


@contextmanager
def _owned_image(engine: Engine, image: RasterImage) -> Iterator[RasterImage]:
    try:
        yield image
    finally:
        engine.free_image(image)


def _last_error(engine: Engine) -> str:
    message = engine.last_error()
    return message or "unknown error"


def _build_exif_metadata(
    path: Path,
    parsed: ParsedOptions,
    mode: GenerationMode,
    params: GenerationParameters,
    image: RasterImage,
) -> bytes | None:
    if path.suffix.lower() not in exif.SUPPORTED_SUFFIXES:
        return None
    prompt = None if isinstance(mode, ExternalEmbeddings) else mode.prompt
    settings = {
        "model": parsed.model_dir,
        "prompt": prompt,
        "seed": params.seed,
        "size": f"{image.width}x{image.height}",
        "steps": params.num_steps,
        "guidance": params.guidance_scale,
        "strength": params.strength if isinstance(mode, Img2Img) else None,
    }
    try:
        return exif.build_exif(settings)
    except Exception as exc:
        print(f"warning: unable to build EXIF data for {path}: {exc}", file=sys.stderr)
        return None


def _emit_header(parsed: ParsedOptions) -> None:
    params = parsed.params
    lines = [
        "FLUX.2 klein Image Generator",
        "============================",
        f"Model: {parsed.model_dir}",
        f"Prompt: {parsed.prompt or '(none)'}",
        f"Output: {parsed.output_path}",
        f"Size: {params.width}x{params.height}",
        f"Steps: {params.num_steps}",
        f"Guidance: {params.guidance_scale:.2f}",
    ]
    if parsed.input_path:
        lines.append(f"Input: {parsed.input_path}")
        lines.append(f"Strength: {params.strength:.2f}")
    for line in lines:
        print(line, file=sys.stderr)
    print(file=sys.stderr)


def _log(verbose: bool, message: str) -> None:
    if verbose:
        print(message, file=sys.stderr)


def _format_elapsed(elapsed_seconds: float) -> str:
    hours, remainder = divmod(elapsed_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{int(hours)}:{int(minutes):02d}:{seconds:06.3f}"


__all__ = [
    "ExternalEmbeddings",
    "GenerationMode",
    "Img2Img",
    "PromptOnly",
    "run_generation",
    "select_mode",
]
