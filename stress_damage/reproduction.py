"""Seasonal, damage-dependent reproduction.

One reproductive bout per season, at the season boundary
(ts mod max_ts == 0). Fecundity declines linearly with damage:

    F(ts, d) = max(0, 1 − k_fec·d)   if ts mod max_ts == 0
             = 0                      otherwise
"""

from __future__ import annotations

import numpy as np


def is_breeding_phase(ts: int, max_ts: int) -> bool:
    """True at the season boundary, where the reproductive bout happens."""
    return ts % max_ts == 0


def fecundity_table(k_fec: float, max_ts: int, max_d: int) -> np.ndarray:
    """Fecundity for every (ts, d); shape (max_ts + 1, max_d + 1).

    Rows 0 and max_ts are both breeding phases: max_ts closes the season
    loop and is the terminal reward of the backward induction.
    """
    d = np.arange(max_d + 1, dtype=np.float64)
    per_damage = np.maximum(0.0, 1.0 - k_fec * d)
    table = np.zeros((max_ts + 1, max_d + 1), dtype=np.float64)
    for ts in range(max_ts + 1):
        if is_breeding_phase(ts, max_ts):
            table[ts] = per_damage
    return table
