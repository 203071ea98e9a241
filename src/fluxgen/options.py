"""Command-line options parser for fluxgen.

Usage:
- build_parser() -> argparse.ArgumentParser
- parse_args(argv, parser=None) -> ParsedOptions
- validate_options(parsed) -> None, raising ArgumentError

Rules enforced by validate_options:
- -d/--dir is required (FLUX_MODEL_DIR supplies a default).
- One of -p/--prompt or -e/--embeddings must be provided.
- -o/--output is required.
- Width and height must be within 64-4096, steps within 1-100 and
  strength within 0.0-1.0.
- The seed must fit in a signed 64-bit integer.

Whether -W/--width and -H/--height were given explicitly is tracked
separately, because img2img falls back to the input image's size only for
dimensions the user did not set.
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import NoReturn

from dotenv import load_dotenv

from . import env
from .errors import ArgumentError
from .params import (
    DEFAULT_GUIDANCE,
    DEFAULT_HEIGHT,
    DEFAULT_STEPS,
    DEFAULT_STRENGTH,
    DEFAULT_WIDTH,
    MAX_DIMENSION,
    MAX_SEED,
    MAX_STEPS,
    MIN_DIMENSION,
    MIN_SEED,
    MIN_STEPS,
    RANDOM_SEED,
    GenerationParameters,
)

VERSION = "1.0.0"
_DOTENV_FILE = Path(".env")
_EXAMPLES = """\
examples:
  %(prog)s -d model/ -p "a cat on a rainbow" -o cat.png
  %(prog)s -d model/ -p "oil painting style" -i photo.png -o art.png -t 0.7
  %(prog)s -d model/ -e prompt.emb -n noise.bin -o out.png -S 42
"""


@dataclass
class ParsedOptions:
    """Structured result of parsing fluxgen command-line arguments.

    Attributes:
        model_dir: Model directory passed to the engine.
        prompt: Prompt text, if any.
        output_path: Where the generated image is written.
        params: Generation parameters as given (seed still unresolved).
        input_path: Source image; selects img2img.
        embeddings_path: Raw float32 text embeddings; selects external
            embeddings unless an input image is also given.
        noise_path: Raw float32 initial noise, used with embeddings only.
        width_set: Whether -W/--width was given explicitly.
        height_set: Whether -H/--height was given explicitly.
        verbose: Print progress and diagnostics to stderr.
        write_metadata: Store generation settings in the output's EXIF.
    """

    model_dir: str | None
    prompt: str | None
    output_path: str | None
    params: GenerationParameters = field(default_factory=GenerationParameters)
    input_path: str | None = None
    embeddings_path: str | None = None
    noise_path: str | None = None
    width_set: bool = False
    height_set: bool = False
    verbose: bool = False
    write_metadata: bool = True


class _Parser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""

    parser = _Parser(
        prog="fluxgen",
        add_help=False,
        description="FLUX.2 klein image generation",
        epilog=_EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    required = parser.add_argument_group("required")
    required.add_argument(
        "-d", "--dir", dest="model_dir", metavar="PATH", help="model directory"
    )
    required.add_argument(
        "-p", "--prompt", dest="prompt", metavar="TEXT", help="text prompt"
    )
    required.add_argument(
        "-o",
        "--output",
        dest="output_path",
        metavar="PATH",
        help="output image path (.png, .jpg, .ppm)",
    )

    generation = parser.add_argument_group("generation options")
    generation.add_argument(
        "-W",
        "--width",
        dest="width",
        type=int,
        metavar="N",
        help=f"output width (default: {DEFAULT_WIDTH})",
    )
    generation.add_argument(
        "-H",
        "--height",
        dest="height",
        type=int,
        metavar="N",
        help=f"output height (default: {DEFAULT_HEIGHT})",
    )
    generation.add_argument(
        "-s",
        "--steps",
        dest="steps",
        type=int,
        default=DEFAULT_STEPS,
        metavar="N",
        help=f"sampling steps (default: {DEFAULT_STEPS})",
    )
    generation.add_argument(
        "-g",
        "--guidance",
        dest="guidance",
        type=float,
        default=DEFAULT_GUIDANCE,
        metavar="N",
        help=f"guidance scale (default: {DEFAULT_GUIDANCE:.1f})",
    )
    generation.add_argument(
        "-S",
        "--seed",
        dest="seed",
        type=int,
        default=RANDOM_SEED,
        metavar="N",
        help="random seed (-1 for random)",
    )

    img2img = parser.add_argument_group("image-to-image options")
    img2img.add_argument(
        "-i", "--input", dest="input_path", metavar="PATH", help="input image"
    )
    img2img.add_argument(
        "-t",
        "--strength",
        dest="strength",
        type=float,
        default=DEFAULT_STRENGTH,
        metavar="N",
        help=f"strength 0.0-1.0 (default: {DEFAULT_STRENGTH:.2f})",
    )

    other = parser.add_argument_group("other options")
    other.add_argument(
        "-e",
        "--embeddings",
        dest="embeddings_path",
        metavar="PATH",
        help="load text embeddings from a raw float32 file",
    )
    other.add_argument(
        "-n",
        "--noise",
        dest="noise_path",
        metavar="PATH",
        help="load initial noise from a raw float32 file (with -e)",
    )
    other.add_argument(
        "--no-metadata",
        dest="write_metadata",
        action="store_false",
        default=None,
        help="do not store generation settings in the image EXIF",
    )
    other.add_argument(
        "-v",
        "--verbose",
        dest="verbose",
        action="store_true",
        help="print progress and diagnostics",
    )
    other.add_argument(
        "-h", "--help", action="help", help="show this help message and exit"
    )
    other.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {VERSION}",
        help="show version and exit",
    )

    return parser


def parse_args(
    argv: list[str], *, parser: argparse.ArgumentParser | None = None
) -> ParsedOptions:
    """Parse argv into a ParsedOptions object without range validation."""

    load_dotenv(_DOTENV_FILE)  # silently ignore if there is none, assume defaults.

    if parser is None:
        parser = build_parser()

    ns = parser.parse_args(argv)

    width_set = ns.width is not None
    height_set = ns.height is not None
    params = GenerationParameters(
        width=ns.width if width_set else DEFAULT_WIDTH,
        height=ns.height if height_set else DEFAULT_HEIGHT,
        num_steps=ns.steps,
        guidance_scale=ns.guidance,
        seed=ns.seed,
        strength=ns.strength,
    )

    write_metadata = ns.write_metadata
    if write_metadata is None:
        write_metadata = env.write_metadata_enabled()

    return ParsedOptions(
        model_dir=ns.model_dir or env.default_model_dir(),
        prompt=ns.prompt,
        output_path=ns.output_path,
        params=params,
        input_path=ns.input_path,
        embeddings_path=ns.embeddings_path,
        noise_path=ns.noise_path,
        width_set=width_set,
        height_set=height_set,
        verbose=bool(ns.verbose),
        write_metadata=bool(write_metadata),
    )


def validate_options(parsed: ParsedOptions) -> None:
    """Reject missing or out-of-range input before anything is loaded."""

    if not parsed.model_dir:
        raise ArgumentError("Model directory (-d) is required")
    if not parsed.prompt and not parsed.embeddings_path:
        raise ArgumentError("Prompt (-p) or embeddings file (-e) is required")
    if not parsed.output_path:
        raise ArgumentError("Output path is required (-o)")

    params = parsed.params
    if not MIN_DIMENSION <= params.width <= MAX_DIMENSION:
        raise ArgumentError(
            f"Width must be between {MIN_DIMENSION} and {MAX_DIMENSION}"
        )
    if not MIN_DIMENSION <= params.height <= MAX_DIMENSION:
        raise ArgumentError(
            f"Height must be between {MIN_DIMENSION} and {MAX_DIMENSION}"
        )
    if not MIN_STEPS <= params.num_steps <= MAX_STEPS:
        raise ArgumentError(f"Steps must be between {MIN_STEPS} and {MAX_STEPS}")
    if not 0.0 <= params.strength <= 1.0:
        raise ArgumentError("Strength must be between 0.0 and 1.0")
    if not MIN_SEED <= params.seed <= MAX_SEED:
        raise ArgumentError("Seed must fit in a signed 64-bit integer")


__all__ = ["ParsedOptions", "VERSION", "build_parser", "parse_args", "validate_options"]
