"""Generation parameter defaults, limits and the value passed to the engine."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_WIDTH = 256
DEFAULT_HEIGHT = 256
DEFAULT_STEPS = 4
DEFAULT_GUIDANCE = 1.0
DEFAULT_STRENGTH = 0.75
RANDOM_SEED = -1
MIN_SEED = -(2**63)
MAX_SEED = 2**63 - 1

MIN_DIMENSION = 64
MAX_DIMENSION = 4096
MIN_STEPS = 1
MAX_STEPS = 100


@dataclass(frozen=True)
class GenerationParameters:
    """Parameters handed by value to a single engine generation call.

    Attributes:
        width: Output width in pixels (64-4096).
        height: Output height in pixels (64-4096).
        num_steps: Number of sampling steps (1-100).
        guidance_scale: Classifier-free guidance scale.
        seed: Requested seed; -1 asks for a time-derived seed.
        strength: img2img strength (0.0-1.0); ignored by other modes.
    """

    width: int = DEFAULT_WIDTH
    height: int = DEFAULT_HEIGHT
    num_steps: int = DEFAULT_STEPS
    guidance_scale: float = DEFAULT_GUIDANCE
    seed: int = RANDOM_SEED
    strength: float = DEFAULT_STRENGTH


__all__ = [
    "DEFAULT_GUIDANCE",
    "DEFAULT_HEIGHT",
    "DEFAULT_STEPS",
    "DEFAULT_STRENGTH",
    "DEFAULT_WIDTH",
    "GenerationParameters",
    "MAX_DIMENSION",
    "MAX_SEED",
    "MAX_STEPS",
    "MIN_DIMENSION",
    "MIN_SEED",
    "MIN_STEPS",
    "RANDOM_SEED",
]
