"""Per-state optimal hormone choice.

For one season phase at a time, PolicyOptimizer finds for every
(t, d) the hormone level that maximises the carried-forward fitness, then
turns those optima into the expected fitness W(t, ts, d, h) of entering
the step with hormone level h.

The search over h is an integer golden-section search. It assumes the
fitness is unimodal in h; on multimodal input it silently returns a local
optimum. Rounding is half-away-from-zero and ties discard the right-hand
side, so results on plateaus are deterministic.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np

from stress_damage.damage import interpolate
from stress_damage.types import ModelTables


INV_PHI = 1.0 / ((np.sqrt(5.0) + 1.0) / 2.0)   # ≈ 0.618


def _round_half_up(x: np.ndarray) -> np.ndarray:
    """C-style round() for non-negative inputs (numpy rounds half to even)."""
    return np.floor(x + 0.5).astype(np.int64)


# ═══════════════════════════════════════════════════════════════════════
# GOLDEN-SECTION SEARCH
# ═══════════════════════════════════════════════════════════════════════

def golden_section_argmax(values: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Integer golden-section search for the maximum along the last axis.

    Every row over the leading axes is searched independently (the
    searches run in lock-step; finished rows are frozen).

    Bracket (lhs, rhs) starts at (0, n − 1) with probes
        x1 = rhs − round((rhs − lhs)·φ⁻¹),  x2 = lhs + round((rhs − lhs)·φ⁻¹)
    While x1 < x2:
      f(x1) <  f(x2): lhs = x1, x1 = x2, x2 = rhs − round((rhs − x1)·φ⁻¹)
      f(x1) >= f(x2): rhs = x2, x2 = x1, x1 = lhs + round((x2 − lhs)·φ⁻¹)

    Args:
        values: Array (..., n) with n >= 1.

    Returns:
        (index, value): arrays of shape values.shape[:-1] with the
        selected index and values[..., index].
    """
    values = np.asarray(values, dtype=np.float64)
    lead_shape = values.shape[:-1]
    n = values.shape[-1]
    flat = values.reshape(-1, n)
    rows = np.arange(flat.shape[0])

    lhs = np.zeros(rows.size, dtype=np.int64)
    rhs = np.full(rows.size, n - 1, dtype=np.int64)
    x1 = rhs - _round_half_up((rhs - lhs) * INV_PHI)
    x2 = lhs + _round_half_up((rhs - lhs) * INV_PHI)

    active = x1 < x2
    while active.any():
        move_right = active & (flat[rows, x1] < flat[rows, x2])
        move_left = active & ~move_right

        right_x2 = rhs - _round_half_up((rhs - x2) * INV_PHI)
        left_x1 = lhs + _round_half_up((x1 - lhs) * INV_PHI)

        lhs = np.where(move_right, x1, lhs)
        rhs = np.where(move_left, x2, rhs)
        x1, x2 = (
            np.where(move_right, x2, np.where(move_left, left_x1, x1)),
            np.where(move_right, right_x2, np.where(move_left, x1, x2)),
        )
        active = x1 < x2

    best = flat[rows, x1]
    return x1.reshape(lead_shape), best.reshape(lead_shape)


# ═══════════════════════════════════════════════════════════════════════
# POLICY OPTIMIZER
# ═══════════════════════════════════════════════════════════════════════

class PolicyOptimizer:
    """Owns the hormone policy and the per-state optimal fitness.

    policy[t, ts, d]     optimal hormone level chosen after a step that
                         ended in (t, d) at phase ts, for the next step
    per_state[t, ts, d]  fitness of that choice

    Row t = 0 is the post-attack state: its choice is evaluated against
    the t = 1 row of the next phase, exactly like every other row t is
    evaluated against min(t + 1, max_t).
    """

    def __init__(self, tables: ModelTables):
        self.tables = tables
        self.policy = np.zeros(tables.policy_shape, dtype=np.int64)
        self.per_state = np.zeros(tables.policy_shape, dtype=np.float64)
        self._next_t = np.minimum(np.arange(tables.max_t + 1) + 1, tables.max_t)

    def optimize_phase(self, ts: int, carry: np.ndarray) -> None:
        """Golden-section search for every (t, d) at season phase ts.

        Reads carry[min(t+1, max_t), ts+1, d, :] only, so every (t, d)
        is independent of the others.
        """
        h_star, w_star = golden_section_argmax(carry[self._next_t, ts + 1])
        self.policy[:, ts, :] = h_star
        self.per_state[:, ts, :] = w_star

    def expected_fitness(self, ts: int, out: np.ndarray) -> None:
        """Write W(t, ts, d, h) for t >= 1 into out[:, ts].

        With probability P(t)·p_attack the predator attacks: the
        individual survives with (1 − K(h))(1 − μ(d)), reproduces and
        continues from the post-attack row t = 0. Otherwise it survives
        with (1 − μ(d)), reproduces and continues from row t. The future
        value is interpolated over the damage transition of (d, h).
        """
        tab = self.tables
        w_opt = self.per_state[:, ts, :]                       # (T+1, D+1)
        future = interpolate(w_opt, tab.damage_floor, tab.damage_ceil,
                             tab.damage_fraction)              # (T+1, D+1, H+1)

        risk = (tab.predator_presence[1:] * tab.p_attack)[:, None, None]
        survive_bg = (1.0 - tab.background_mortality)[None, :, None]
        survive_attack = (1.0 - tab.kill_probability)[None, None, :]
        fec = tab.fecundity[ts][None, :, None]

        out[1:, ts] = (
            risk * survive_attack * survive_bg * (fec + future[0][None])
            + (1.0 - risk) * survive_bg * (fec + future[1:])
        )

    def wrap_season(self) -> None:
        """Phase 0 closes the season loop: mirror it into phase max_ts."""
        self.policy[:, self.tables.max_ts] = self.policy[:, 0]
        self.per_state[:, self.tables.max_ts] = self.per_state[:, 0]
