"""Seed resolution so every run can be reproduced."""

from __future__ import annotations

import sys
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TextIO


@dataclass(frozen=True)
class SeedResolution:
    requested: int
    resolved: int


def resolve_seed(
    requested: int, *, clock: Callable[[], float] | None = None
) -> SeedResolution:
    """Return the concrete seed for a run.

    A non-negative request is used as-is. A negative request is replaced by the
    current wall-clock time in whole seconds. That value is not random in any
    cryptographic sense, it only needs to be reproducible once reported.
    """

    if requested >= 0:
        return SeedResolution(requested=requested, resolved=requested)
    now = clock() if clock is not None else time.time()
    return SeedResolution(requested=requested, resolved=int(now))


def report_seed(resolution: SeedResolution, stream: TextIO | None = None) -> None:
    """Print the resolved seed to stderr regardless of verbosity."""

    out = stream if stream is not None else sys.stderr
    print(f"Seed: {resolution.resolved}", file=out)
    out.flush()


__all__ = ["SeedResolution", "report_seed", "resolve_seed"]
