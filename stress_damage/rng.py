"""Seeded RNG factory for reproducible trajectory simulation.

Uses NumPy's SeedSequence → PCG64 so that the same seed gives a
bit-exact replay.

When no seed is configured, a wall-clock seed is drawn and reported so
that the run can still be replayed.
"""

from __future__ import annotations

import time
from typing import Optional

import numpy as np


def resolve_seed(seed: Optional[int] = None) -> int:
    """Return seed, or a wall-clock seed (whole seconds) when seed is None."""
    if seed is None:
        return int(time.time())
    return int(seed)


def create_rng(seed: int) -> np.random.Generator:
    """Create a PCG64 generator from a non-negative integer seed.

    Example:
        >>> rng = create_rng(42)
        >>> rng.random()  # reproducible
    """
    return np.random.Generator(np.random.PCG64(np.random.SeedSequence(seed)))