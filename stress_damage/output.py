"""Flat tab-delimited output files.

Three artifacts, each named after the parameters that distinguish a run
(six decimals, e.g. ``stressL0.500000A0.100000Kmort0.000000Kfec0.050000.txt``):
  - strategy:   optimal hormone level per (t, ts, d) + run metadata
  - fwdCalc:    stationary frequencies and death rates (optional)
  - simAttacks: one simulated trajectory
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

import numpy as np

from stress_damage.config import ModelConfig
from stress_damage.forward import ProjectionResult
from stress_damage.value_iteration import SolverResult


STRATEGY_PREFIX = "stress"
FORWARD_PREFIX = "fwdCalc"
TRAJECTORY_PREFIX = "simAttacks"


def output_filename(prefix: str, config: ModelConfig) -> str:
    """File name encoding p_leave, p_arrive, k_mort and k_fec."""
    env, phys = config.environment, config.physiology
    return (f"{prefix}L{env.p_leave:.6f}A{env.p_arrive:.6f}"
            f"Kmort{phys.k_mort:.6f}Kfec{phys.k_fec:.6f}.txt")


def format_parameters(config: ModelConfig) -> str:
    """The PARAMETER VALUES block appended to the strategy file."""
    env, phys, grid = config.environment, config.physiology, config.grid
    rows = [
        ('pLeave', env.p_leave),
        ('pArrive', env.p_arrive),
        ('pAttack', env.p_attack),
        ('alpha', env.alpha),
        ('mu0', phys.mu0),
        ('Kmort', phys.k_mort),
        ('Kfec', phys.k_fec),
        ('maxI', config.solver.max_iterations),
        ('maxT', grid.max_t),
        ('maxTs', grid.max_ts),
        ('maxD', grid.max_d),
        ('maxH', grid.max_h),
        ('hmin', phys.hmin),
        ('hslope', phys.hslope),
        ('repair', phys.repair),
    ]
    lines = ["", "PARAMETER VALUES"]
    lines += [f"{name}: \t{value:g}" for name, value in rows]
    return "\n".join(lines) + "\n"


def write_strategy(path: Union[str, Path], result: SolverResult,
                   config: ModelConfig, seed: Optional[int] = None) -> Path:
    """Write the optimal strategy, iteration count and parameters."""
    path = Path(path)
    max_t, max_ts, max_d = (config.grid.max_t, config.grid.max_ts,
                            config.grid.max_d)
    with open(path, 'w') as f:
        if seed is not None:
            f.write(f"Random seed: {seed}\n")
        if not result.converged:
            f.write(f"*** DID NOT CONVERGE WITHIN {result.n_iterations} "
                    f"ITERATIONS ***\n")
        f.write("\n")
        f.write("t\td\tts\thormone\n")
        for t in range(max_t + 1):
            for ts in range(max_ts):
                for d in range(max_d + 1):
                    f.write(f"{t}\t{d}\t{ts}\t{result.policy[t, ts, d]}\n")
        f.write("\n")
        f.write(f"nIterations\t{result.n_iterations}\n")
        f.write("\n")
        f.write(format_parameters(config))
    return path


def write_forward(path: Union[str, Path], projection: ProjectionResult) -> Path:
    """Write death rates and the (t >= 1) frequency table."""
    path = Path(path)
    freq = projection.frequency
    deaths = projection.deaths
    with open(path, 'w') as f:
        f.write("SUMMARY STATS\n")
        f.write(f"predDeaths: \t{deaths.predation:.6g}\n")
        f.write(f"damageDeaths: \t{deaths.damage:.6g}\n")
        f.write(f"bkgrndDeaths: \t{deaths.background:.6g}\n")
        f.write(f"nCycles: \t{projection.n_cycles}\n")
        f.write(f"converged: \t{int(projection.converged)}\n")
        f.write("\n")
        f.write("\tt\tts\tdamage\thormone\tfreq\n")
        for (t, ts, d, h), value in np.ndenumerate(freq[1:]):
            f.write(f"\t{t + 1}\t{ts}\t{d}\t{h}\t{value:.4g}\t\n")
    return path


def write_trajectory(path: Union[str, Path], trajectory: np.ndarray) -> Path:
    """Write one row per simulated step."""
    path = Path(path)
    with open(path, 'w') as f:
        f.write("time\tt\tts\tdamage\thormone\tattack\treproduce\n")
        for rec in trajectory:
            f.write(f"{rec['time']}\t{rec['t']}\t{rec['ts']}\t{rec['damage']}\t"
                    f"{rec['hormone']}\t{int(rec['attack'])}\t"
                    f"{int(rec['reproduce'])}\n")
    return path


class StrategyFileError(ValueError):
    """A strategy file does not describe the configured grid."""


def read_strategy(path: Union[str, Path], max_t: int, max_ts: int,
                  max_d: int, max_h: Optional[int] = None) -> np.ndarray:
    """Parse a strategy file back into a (t, ts, d) policy array.

    Every (t, ts < max_ts, d) cell must appear. Phase max_ts
    is filled from phase 0, as after fit replacement.

    Raises:
        StrategyFileError: If the file has no strategy table, a row lies
            outside the grid (or above max_h, when given), or cells are
            missing.
    """
    path = Path(path)
    grid = (max_t, max_ts, max_d)
    policy = np.zeros((max_t + 1, max_ts + 1, max_d + 1), dtype=np.int64)
    filled = np.zeros((max_t + 1, max_ts, max_d + 1), dtype=bool)
    in_table = False
    with open(path) as f:
        for line in f:
            fields = line.rstrip("\n").split("\t")
            if fields[:4] == ['t', 'd', 'ts', 'hormone']:
                in_table = True
                continue
            if in_table:
                if len(fields) != 4:
                    break
                t, d, ts, h = (int(x) for x in fields)
                if not (0 <= t <= max_t and 0 <= ts < max_ts and 0 <= d <= max_d):
                    raise StrategyFileError(
                        f"{path}: row (t={t}, ts={ts}, d={d}) lies outside "
                        f"the grid (max_t, max_ts, max_d) = {grid}"
                    )
                if h < 0 or (max_h is not None and h > max_h):
                    raise StrategyFileError(
                        f"{path}: hormone level {h} at (t={t}, ts={ts}, d={d}) "
                        f"is outside the grid (max_h = {max_h})"
                    )
                policy[t, ts, d] = h
                filled[t, ts, d] = True

    if not in_table:
        raise StrategyFileError(f"{path}: no strategy table found")
    if not filled.all():
        raise StrategyFileError(
            f"{path}: {int((~filled).sum())} of {filled.size} cells missing "
            f"for the grid (max_t, max_ts, max_d) = {grid}"
        )
    policy[:, max_ts] = policy[:, 0]
    return policy
