"""Backward induction over the cyclic season.

One outer iteration = one backward sweep over the season phases
(ts = max_ts − 1 .. 0) followed by a fit-replacement step that compares
the new phase-0 fitness with the previous one and wraps it round to
phase max_ts for the next sweep. Iterates until the aggregate absolute
fitness change falls below the tolerance or the iteration cap is hit.

Value tables (owned here):
  current[t, d, h]        phase-0 fitness from the previous outer iteration
  candidate[t, ts, d, h]  fitness computed during the current sweep
  carry[t, ts, d, h]      fitness read by the next (earlier) phase's search
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from stress_damage.optimizer import PolicyOptimizer
from stress_damage.types import ModelTables

logger = logging.getLogger(__name__)


class ConvergenceWarning(UserWarning):
    """An iterative solver stopped at its cap before converging."""


@dataclass
class SolverResult:
    """Outcome of value iteration."""
    policy: np.ndarray                  # (T+1, S+1, D+1) hormone levels
    value: np.ndarray                   # (T+1, D+1, H+1) phase-0 fitness
    n_iterations: int = 0
    converged: bool = False
    history: List[float] = field(default_factory=list)   # difference per iteration

    @property
    def final_difference(self) -> float:
        return self.history[-1] if self.history else float('inf')


class ValueIterator:
    """Drives PolicyOptimizer to a self-consistent seasonal strategy."""

    def __init__(self, tables: ModelTables, tolerance: float = 1e-6,
                 max_iterations: int = 1_000_000, report_interval: int = 1):
        self.tables = tables
        self.tolerance = tolerance
        self.max_iterations = max_iterations
        self.report_interval = report_interval
        self.optimizer = PolicyOptimizer(tables)
        self.current = np.zeros(
            (tables.max_t + 1, tables.max_d + 1, tables.max_h + 1), dtype=np.float64
        )
        self.candidate = np.zeros(tables.value_shape, dtype=np.float64)
        self.carry = np.zeros(tables.value_shape, dtype=np.float64)
        self.iteration = 0
        self.history: List[float] = []
        self.reset()

    @property
    def policy(self) -> np.ndarray:
        return self.optimizer.policy

    def reset(self) -> None:
        """Terminal condition: fitness at the final breeding bout, for t >= 1.

        Row t = 0 is never read (after an attack the next state is t = 1).
        """
        terminal = self.tables.fecundity[self.tables.max_ts][None, :, None]
        self.current[:] = 0.0
        self.current[1:] = terminal
        self.candidate[:] = 0.0
        self.carry[:] = 0.0
        self.carry[1:, self.tables.max_ts] = terminal
        self.iteration = 0
        self.history = []

    def sweep(self) -> None:
        """One backward pass over the season phases max_ts − 1 .. 0."""
        for ts in range(self.tables.max_ts - 1, -1, -1):
            self.optimizer.optimize_phase(ts, self.carry)
            self.optimizer.expected_fitness(ts, self.candidate)
            self.carry[1:, ts] = self.candidate[1:, ts]

    def replace_fit(self) -> float:
        """Compare and wrap the phase-0 fitness; return the aggregate change."""
        new = self.candidate[1:, 0]
        difference = float(np.abs(self.current[1:] - new).sum())
        self.carry[1:, self.tables.max_ts] = new
        self.optimizer.wrap_season()
        self.current[1:] = new
        return difference

    def step(self) -> float:
        """One outer iteration: sweep, then fit replacement."""
        self.sweep()
        difference = self.replace_fit()
        self.iteration += 1
        self.history.append(difference)
        return difference

    def run(self, max_iterations: Optional[int] = None) -> SolverResult:
        """Iterate to convergence or the cap.

        Hitting the cap is not an error: a ConvergenceWarning is issued
        and the result is flagged converged=False.
        """
        cap = self.max_iterations if max_iterations is None else max_iterations
        converged = False
        while self.iteration < cap:
            difference = self.step()
            if self.iteration % self.report_interval == 0:
                logger.debug("iteration %d: fitness difference %.3e",
                             self.iteration, difference)
            if difference < self.tolerance:
                converged = True
                break

        if converged:
            logger.info("Strategy converged after %d iterations "
                        "(difference %.3e)", self.iteration, self.history[-1])
        else:
            msg = f"Value iteration did not converge within {self.iteration} iterations"
            logger.warning(msg)
            warnings.warn(msg, ConvergenceWarning, stacklevel=2)

        return SolverResult(
            policy=self.policy.copy(),
            value=self.current.copy(),
            n_iterations=self.iteration,
            converged=converged,
            history=list(self.history),
        )
