"""Randomized pacing between page actions.

A fixed interval between clicks is an easy bot signature, so every wait
between actions is ``base + uniform(0, extra)`` and is re-sampled per use.
"""

from __future__ import annotations

import random


def random_delay_ms(base_ms: float, extra_ms: float, rng: random.Random | None = None) -> float:
    """Return a delay in ``[base_ms, base_ms + extra_ms]`` milliseconds."""
    source = rng or random
    return base_ms + source.uniform(0, extra_ms)
