"""Somatic damage dynamics.

Damage rises quadratically with the distance between the chosen hormone
fraction h/max_h and the damage-minimising level hmin, and falls by a
constant repair each step:

    d' = clamp(0, max_d, d + hslope·(hmin − h/max_h)² − repair)

d' is generally fractional. Solvers treat it by linear interpolation
between the two neighbouring integer damage levels.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np


def damage_transition(max_d: int, max_h: int, hmin: float = 0.3,
                      hslope: float = 20.0, repair: float = 1.0) -> np.ndarray:
    """Expected next damage for every (d, h); shape (max_d + 1, max_h + 1)."""
    d = np.arange(max_d + 1, dtype=np.float64)[:, None]
    h_frac = np.arange(max_h + 1, dtype=np.float64)[None, :] / max_h
    raw = d + hslope * (hmin - h_frac) ** 2 - repair
    return np.clip(raw, 0.0, float(max_d))


def interpolation_split(dnew: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Split fractional damage into (floor, ceil, fraction).

    A quantity attached to dnew is shared (1 − fraction) to floor and
    fraction to ceil. When dnew is integral, floor == ceil and fraction == 0.
    """
    floor = np.floor(dnew).astype(np.int64)
    ceil = np.ceil(dnew).astype(np.int64)
    fraction = dnew - floor
    return floor, ceil, fraction


def interpolate(values: np.ndarray, floor: np.ndarray, ceil: np.ndarray,
                fraction: np.ndarray) -> np.ndarray:
    """Linear interpolation of `values` (damage on the last axis).

    Args:
        values: Array (..., max_d + 1).
        floor, ceil, fraction: Split from interpolation_split(), any shape.

    Returns:
        Array of shape values.shape[:-1] + floor.shape.
    """
    return (1.0 - fraction) * values[..., floor] + fraction * values[..., ceil]
