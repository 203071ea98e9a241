"""fluxgen package entrypoint.

main() parses command-line options using fluxgen.options, resolves the
inference engine from configuration and runs a single generation via
fluxgen.pipeline.
"""

from __future__ import annotations

import sys

from . import env
from .errors import ArgumentError
from .options import VERSION, build_parser, parse_args, validate_options
from .progress import ProgressReporter

__version__ = VERSION


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint: validate input, generate one image and save it."""

    args = sys.argv[1:] if argv is None else argv

    try:
        parsed = parse_args(args)
        validate_options(parsed)
        strict_embeddings = env.strict_embeddings_enabled()
    except ArgumentError as exc:
        print(f"Error: {exc}\n", file=sys.stderr)
        build_parser().print_help(sys.stderr)
        raise SystemExit(1) from exc

    reporter = ProgressReporter() if parsed.verbose else None

    try:
        from . import engine as engine_module
        from . import pipeline

        engine = engine_module.load_engine()
        output_path = pipeline.run_generation(
            parsed,
            engine,
            reporter=reporter,
            strict_embeddings=strict_embeddings,
        )
    except Exception as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    if not parsed.verbose:
        print(str(output_path))
