"""Forward projection of a population under the converged policy.

Starting from a single point mass, the frequency distribution over
(t, ts, d, h) is pushed through one breeding cycle at a time
(ts = 0 → max_ts). Individuals who die are removed; the survivors at the
next breeding bout are renormalised to sum to one and become the phase-0
distribution of the next cycle. Repeating converges to the stationary
distribution and yields per-cycle death rates by cause, which serves as an
independent check on the backward solution.

Routing mirrors the backward induction:
  - attacked and survived:  → (1, ts+1, d', policy[0, ts, d'])
  - not attacked, survived: → (min(t+1, max_t), ts+1, d', policy[t, ts, d'])
with d' split over the floor / ceil of the damage transition.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, field
from typing import List

import numpy as np

from stress_damage.types import DeathSplit, ModelTables
from stress_damage.value_iteration import ConvergenceWarning

logger = logging.getLogger(__name__)


class ProjectionError(RuntimeError):
    """The whole population died within one breeding cycle."""


@dataclass
class ProjectionResult:
    """Stationary distribution and its mortality profile."""
    frequency: np.ndarray                # (T+1, S+1, D+1, H+1), last cycle
    deaths: DeathSplit
    n_cycles: int = 0
    converged: bool = False
    history: List[float] = field(default_factory=list)   # max change per cycle

    def stationary(self) -> np.ndarray:
        """Distribution at the breeding bout (phase 0), shape (T+1, D+1, H+1)."""
        return self.frequency[:, 0]


class ForwardProjector:
    """Owns the population frequency table."""

    def __init__(self, tables: ModelTables, policy: np.ndarray,
                 tolerance: float = 1e-6, max_iterations: int = 100_000,
                 report_interval: int = 1):
        if policy.shape != tables.policy_shape:
            raise ValueError(
                f"policy shape {policy.shape} does not match grid "
                f"{tables.policy_shape}"
            )
        self.tables = tables
        self.policy = policy
        self.tolerance = tolerance
        self.max_iterations = max_iterations
        self.report_interval = report_interval
        self.frequency = np.zeros(tables.value_shape, dtype=np.float64)
        self.deaths = DeathSplit()
        self.cycles = 0
        self.history: List[float] = []

        # Index grids reused every phase: source t, next t after no attack
        shape = (tables.max_t + 1, tables.max_d + 1, tables.max_h + 1)
        self._t_src = np.broadcast_to(
            np.arange(tables.max_t + 1)[:, None, None], shape)
        self._t_calm = np.minimum(self._t_src + 1, tables.max_t)
        self._floor = np.broadcast_to(tables.damage_floor[None], shape)
        self._ceil = np.broadcast_to(tables.damage_ceil[None], shape)
        self.reset()

    def reset(self) -> None:
        """All mass at (t=max_t, ts=0, d=0, h=0)."""
        self.frequency[:] = 0.0
        self.frequency[self.tables.max_t, 0, 0, 0] = 1.0
        self.deaths = DeathSplit()
        self.cycles = 0
        self.history = []

    def _advance_phase(self, ts: int, deaths: DeathSplit) -> None:
        tab = self.tables
        src = self.frequency[:, ts]                                 # (T+1, D+1, H+1)
        dest = self.frequency[:, ts + 1]
        policy = self.policy[:, ts]                                 # (T+1, D+1)

        risk = (tab.predator_presence * tab.p_attack)[:, None, None]
        kill = tab.kill_probability[None, None, :]
        mu = tab.background_mortality[None, :, None]
        stay = 1.0 - tab.damage_fraction
        move = tab.damage_fraction

        # attacked and survived: every t lands on t = 1
        attacked = (src * risk * (1.0 - kill) * (1.0 - mu)).sum(axis=0)   # (D+1, H+1)
        np.add.at(dest[1], (tab.damage_floor, policy[0][tab.damage_floor]),
                  attacked * stay)
        np.add.at(dest[1], (tab.damage_ceil, policy[0][tab.damage_ceil]),
                  attacked * move)

        # not attacked and survived
        calm = src * (1.0 - risk) * (1.0 - mu)
        np.add.at(dest, (self._t_calm, self._floor,
                         policy[self._t_src, self._floor]), calm * stay[None])
        np.add.at(dest, (self._t_calm, self._ceil,
                         policy[self._t_src, self._ceil]), calm * move[None])

        not_killed = src * (1.0 - risk * kill)
        deaths.predation += float((src * risk * kill).sum())
        deaths.damage += float((not_killed * (mu - tab.background_mortality[0])).sum())
        deaths.background += float((not_killed * tab.background_mortality[0]).sum())

    def cycle(self) -> float:
        """Advance one breeding cycle; return the largest frequency change."""
        max_ts = self.tables.max_ts
        self.frequency[:, 1:] = 0.0
        deaths = DeathSplit()
        for ts in range(max_ts):
            self._advance_phase(ts, deaths)

        survivors = 1.0 - deaths.total
        if survivors <= 0.0:
            raise ProjectionError(
                f"population extinct in cycle {self.cycles + 1} "
                f"(deaths {deaths.total:.6g})"
            )
        self.frequency[:, max_ts] /= survivors
        change = float(np.abs(self.frequency[:, max_ts] - self.frequency[:, 0]).max())
        self.frequency[:, 0] = self.frequency[:, max_ts]

        self.deaths = deaths
        self.cycles += 1
        self.history.append(change)
        return change

    def run(self) -> ProjectionResult:
        """Cycle until the largest change < tolerance or the cap is hit."""
        converged = False
        while self.cycles < self.max_iterations:
            change = self.cycle()
            if self.cycles % self.report_interval == 0:
                logger.debug("cycle %d: max frequency change %.3e",
                             self.cycles, change)
            if change < self.tolerance:
                converged = True
                break

        if converged:
            logger.info("Stationary distribution reached after %d cycles",
                        self.cycles)
        else:
            msg = (f"Forward projection did not converge within "
                   f"{self.cycles} cycles")
            logger.warning(msg)
            warnings.warn(msg, ConvergenceWarning, stacklevel=2)

        return ProjectionResult(
            frequency=self.frequency.copy(),
            deaths=self.deaths,
            n_cycles=self.cycles,
            converged=converged,
            history=list(self.history),
        )
