"""
Interaction mode selection for review sessions.

Each queued concept is presented in one of four modes. Active-recall
probing dominates the default mix while every mode still appears over a
long session:

    probe 40% | explain 30% | implement 20% | connect 10%

The RNG is injectable so tests can pin the draw.
"""

from __future__ import annotations

import random
from typing import Mapping, Optional

from neuro_review.models import InteractionMode

DEFAULT_MODE_WEIGHTS: dict[InteractionMode, float] = {
    InteractionMode.PROBE: 0.4,
    InteractionMode.EXPLAIN: 0.3,
    InteractionMode.IMPLEMENT: 0.2,
    InteractionMode.CONNECT: 0.1,
}


def normalize_weights(weights: Mapping[str | InteractionMode, float]) -> dict[InteractionMode, float]:
    """Coerce keys to InteractionMode and reject empty/negative weight sets."""
    result = {InteractionMode(k): float(v) for k, v in weights.items()}
    if any(w < 0 for w in result.values()):
        raise ValueError("Interaction mode weights must be non-negative")
    if sum(result.values()) <= 0:
        raise ValueError("At least one interaction mode needs a positive weight")
    return result


class InteractionModeSelector:
    """Weighted random choice over interaction modes."""

    def __init__(
        self,
        weights: Optional[Mapping[str | InteractionMode, float]] = None,
        rng: Optional[random.Random] = None,
    ):
        self.weights = normalize_weights(weights or DEFAULT_MODE_WEIGHTS)
        self.rng = rng or random.Random()
        self._total = sum(self.weights.values())

    def mode_for(self, draw: float) -> InteractionMode:
        """
        Map a uniform draw in [0, 1) onto a mode by cumulative weight.

        With default weights: <0.4 probe, <0.7 explain, <0.9 implement, else connect.
        """
        threshold = 0.0
        chosen = None
        for mode, weight in self.weights.items():
            if weight <= 0:
                continue
            chosen = mode
            threshold += weight / self._total
            if draw < threshold:
                return mode
        # Floating point slack on the last bucket
        return chosen

    def choose(self) -> InteractionMode:
        return self.mode_for(self.rng.random())
