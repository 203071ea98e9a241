"""Terminal progress rendering for the blocking generation call.

The engine reports two kinds of events synchronously from inside the
generation call:

- step events, one at the start of each sampling step, rendered as a new
  ``Step <n>/<total> `` line;
- substep events, one per transformer block inside a step, rendered as a
  single marker character appended to the open step line.

Single-block substeps are frequent, so only every fifth one prints a marker.
The reporter must be armed before the call and disarmed after it; disarming
closes any open line. Events delivered while disarmed are dropped.
"""

from __future__ import annotations

import enum
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TextIO

SINGLE_BLOCK_MARKER_INTERVAL = 5


class SubstepKind(enum.Enum):
    DOUBLE_BLOCK = "d"
    SINGLE_BLOCK = "s"
    FINAL_LAYER = "F"


class ProgressReporter:
    """Render step and substep events for one generation call at a time."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream
        self._current_step = 0
        self._line_open = False
        self._armed = False

    @property
    def armed(self) -> bool:
        return self._armed

    @property
    def current_step(self) -> int:
        return self._current_step

    def arm(self) -> None:
        self._current_step = 0
        self._line_open = False
        self._armed = True

    def disarm(self) -> None:
        if self._line_open:
            self._write("\n")
        self._current_step = 0
        self._armed = False

    @contextmanager
    def session(self) -> Iterator[ProgressReporter]:
        """Arm for the duration of the block and always disarm afterwards."""

        self.arm()
        try:
            yield self
        finally:
            self.disarm()

    def on_step(self, step: int, total: int) -> None:
        if not self._armed:
            return
        prefix = "\n" if self._line_open else ""
        self._current_step = step
        self._write(f"{prefix}Step {step}/{total} ")

    def on_substep(self, kind: SubstepKind, index: int, total: int) -> None:
        if not self._armed:
            return
        interval = SINGLE_BLOCK_MARKER_INTERVAL
        if kind is SubstepKind.SINGLE_BLOCK and (index + 1) % interval:
            return
        self._write(kind.value)

    def _write(self, text: str) -> None:
        out = self._stream if self._stream is not None else sys.stderr
        out.write(text)
        out.flush()
        self._line_open = not text.endswith("\n")


__all__ = ["ProgressReporter", "SubstepKind"]
