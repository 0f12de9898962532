"""Core data types for the stress-damage model.

This module is the single home of:
  - ModelTables: the write-once environment, damage and reproduction tables
  - DeathSplit: mass lost per breeding cycle, by cause
  - TRAJECTORY_DTYPE: structured dtype for simulated individual paths

All tables use inclusive grid bounds: an axis for t has max_t + 1 entries.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


# ═══════════════════════════════════════════════════════════════════════
# WRITE-ONCE MODEL TABLES
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ModelTables:
    """Everything the solvers read but never write.

    Shapes (T = max_t, S = max_ts, D = max_d, H = max_h):
      predator_presence      (T+1,)      P(predator present | t)
      kill_probability       (H+1,)      P(killed | attacked, h)
      background_mortality   (D+1,)      μ(d)
      damage_transition      (D+1, H+1)  expected next damage
      damage_floor/ceil      (D+1, H+1)  interpolation bins (int)
      damage_fraction        (D+1, H+1)  weight of the ceil bin
      fecundity              (S+1, D+1)  offspring at season phase ts
    """
    p_attack: float
    predator_presence: np.ndarray
    kill_probability: np.ndarray
    background_mortality: np.ndarray
    damage_transition: np.ndarray
    damage_floor: np.ndarray
    damage_ceil: np.ndarray
    damage_fraction: np.ndarray
    fecundity: np.ndarray

    @property
    def max_t(self) -> int:
        return self.predator_presence.shape[0] - 1

    @property
    def max_ts(self) -> int:
        return self.fecundity.shape[0] - 1

    @property
    def max_d(self) -> int:
        return self.background_mortality.shape[0] - 1

    @property
    def max_h(self) -> int:
        return self.kill_probability.shape[0] - 1

    @property
    def policy_shape(self):
        """(t, ts, d) shape of policy and per-state value tables."""
        return (self.max_t + 1, self.max_ts + 1, self.max_d + 1)

    @property
    def value_shape(self):
        """(t, ts, d, h) shape of value and frequency tables."""
        return (self.max_t + 1, self.max_ts + 1, self.max_d + 1, self.max_h + 1)


@dataclass
class DeathSplit:
    """Population mass lost during one breeding cycle, by cause."""
    predation: float = 0.0
    damage: float = 0.0        # mortality in excess of the zero-damage baseline
    background: float = 0.0

    @property
    def total(self) -> float:
        return self.predation + self.damage + self.background


# ═══════════════════════════════════════════════════════════════════════
# TRAJECTORY RECORDS
# ═══════════════════════════════════════════════════════════════════════

TRAJECTORY_DTYPE = np.dtype([
    ('time',      np.int32),   # step index
    ('t',         np.int32),   # time since last attack
    ('ts',        np.int32),   # season phase (0 = breeding bout)
    ('damage',    np.int32),   # damage after this step's transition
    ('hormone',   np.int32),   # hormone level chosen this step
    ('attack',    np.bool_),   # scripted attack this step
    ('reproduce', np.bool_),   # breeding phase this step
])


def allocate_trajectory(n_steps: int) -> np.ndarray:
    """Zeroed trajectory record array of length n_steps."""
    return np.zeros(n_steps, dtype=TRAJECTORY_DTYPE)
