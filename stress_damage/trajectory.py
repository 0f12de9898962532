"""Single-individual trajectory under the converged policy.

The individual starts undamaged and long after the last attack. For a
fixed number of steps it reads its hormone level from the policy, takes
one stochastic damage transition (floor or ceil bin, chosen with the
interpolation weight), and advances the season phase. A scripted window
of consecutive attacks shows the stress response and the damage it costs.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from stress_damage.config import SimulationSection
from stress_damage.types import ModelTables, allocate_trajectory


class TrajectorySimulator:
    """Simulates one individual; the generator is injected for replay."""

    def __init__(self, tables: ModelTables, policy: np.ndarray,
                 rng: np.random.Generator,
                 section: Optional[SimulationSection] = None):
        self.tables = tables
        self.policy = policy
        self.rng = rng
        self.section = section if section is not None else SimulationSection()

    @property
    def n_steps(self) -> int:
        return self.section.n_seasons * self.tables.max_ts

    def is_attack_step(self, step: int) -> bool:
        return self.section.attack_start < step < self.section.attack_end

    def run(self) -> np.ndarray:
        """Simulate and return a TRAJECTORY_DTYPE record per step."""
        tab = self.tables
        sec = self.section
        max_t, max_ts = tab.max_t, tab.max_ts

        records = allocate_trajectory(self.n_steps)
        t = max_t
        d = 0
        ts = max_ts - sec.reproduce_at   # phase counter; may start negative

        for step in range(self.n_steps):
            attack = self.is_attack_step(step)
            t = 0 if attack else min(t + 1, max_t)

            phase = ts % max_ts
            h = int(self.policy[t, phase, d])

            fraction = tab.damage_fraction[d, h]
            if self.rng.random() < fraction:
                d = int(tab.damage_ceil[d, h])
            else:
                d = int(tab.damage_floor[d, h])

            records[step] = (step, t, phase, d, h, attack, phase == 0)
            ts += 1

        return records
