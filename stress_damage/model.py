"""Model orchestration.

  1. Build the write-once tables (environment, damage, reproduction)
  2. Value iteration → converged seasonal hormone strategy
  3. Optional forward projection → stationary distribution, death rates
  4. Trajectory simulation with a scripted attack window
  5. Write the flat-text artifacts
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Union

import numpy as np

from stress_damage.config import ModelConfig, default_config
from stress_damage.damage import damage_transition, interpolation_split
from stress_damage.environment import (
    background_mortality,
    kill_probability,
    predator_presence,
)
from stress_damage.forward import ForwardProjector, ProjectionResult
from stress_damage.output import (
    FORWARD_PREFIX,
    STRATEGY_PREFIX,
    TRAJECTORY_PREFIX,
    output_filename,
    write_forward,
    write_strategy,
    write_trajectory,
)
from stress_damage.reproduction import fecundity_table
from stress_damage.rng import create_rng, resolve_seed
from stress_damage.trajectory import TrajectorySimulator
from stress_damage.types import ModelTables
from stress_damage.value_iteration import SolverResult, ValueIterator

logger = logging.getLogger(__name__)


def build_tables(config: ModelConfig) -> ModelTables:
    """Compute every write-once table from the configuration."""
    env, phys, grid = config.environment, config.physiology, config.grid
    dnew = damage_transition(grid.max_d, grid.max_h, hmin=phys.hmin,
                             hslope=phys.hslope, repair=phys.repair)
    floor, ceil, fraction = interpolation_split(dnew)
    return ModelTables(
        p_attack=env.p_attack,
        predator_presence=predator_presence(env.p_leave, env.p_arrive,
                                            env.p_attack, grid.max_t),
        kill_probability=kill_probability(env.alpha, grid.max_h),
        background_mortality=background_mortality(phys.mu0, phys.k_mort,
                                                  grid.max_d),
        damage_transition=dnew,
        damage_floor=floor,
        damage_ceil=ceil,
        damage_fraction=fraction,
        fecundity=fecundity_table(phys.k_fec, grid.max_ts, grid.max_d),
    )


def solve(tables: ModelTables, config: ModelConfig) -> SolverResult:
    """Run value iteration with the solver section's settings."""
    solver = config.solver
    iterator = ValueIterator(tables, tolerance=solver.tolerance,
                             max_iterations=solver.max_iterations,
                             report_interval=solver.report_interval)
    return iterator.run()


def project(tables: ModelTables, policy: np.ndarray,
            config: ModelConfig) -> ProjectionResult:
    """Run the forward projection under `policy`."""
    solver = config.solver
    projector = ForwardProjector(tables, policy,
                                 tolerance=solver.forward_tolerance,
                                 max_iterations=solver.forward_max_iterations,
                                 report_interval=solver.report_interval)
    return projector.run()


@dataclass
class ModelRun:
    """Everything produced by one run_model() call."""
    config: ModelConfig
    tables: ModelTables
    seed: int
    policy: np.ndarray
    solver: Optional[SolverResult] = None        # None when the policy was supplied
    projection: Optional[ProjectionResult] = None
    trajectory: Optional[np.ndarray] = None
    paths: Dict[str, Path] = field(default_factory=dict)
    elapsed: Dict[str, float] = field(default_factory=dict)


def run_model(
    config: Optional[ModelConfig] = None,
    output_dir: Optional[Union[str, Path]] = None,
    policy: Optional[np.ndarray] = None,
) -> ModelRun:
    """Solve, validate and simulate one parameter set.

    Args:
        config: Model configuration; defaults if None.
        output_dir: Where to write the artifacts. None writes nothing.
        policy: Optional precomputed (t, ts, d) strategy; skips value
            iteration (the strategy file is then not rewritten).

    Returns:
        ModelRun with all results and the paths of written files.
    """
    if config is None:
        config = default_config()
    seed = resolve_seed(config.simulation.seed)
    tables = build_tables(config)
    elapsed: Dict[str, float] = {}

    solver_result = None
    if policy is None:
        start = time.perf_counter()
        solver_result = solve(tables, config)
        elapsed['solve'] = time.perf_counter() - start
        policy = solver_result.policy
    elif policy.shape != tables.policy_shape:
        raise ValueError(
            f"policy shape {policy.shape} does not match grid "
            f"{tables.policy_shape}"
        )

    projection = None
    if config.solver.forward_enabled:
        start = time.perf_counter()
        projection = project(tables, policy, config)
        elapsed['forward'] = time.perf_counter() - start
        logger.info("Deaths per cycle: predation %.4g, damage %.4g, "
                    "background %.4g", projection.deaths.predation,
                    projection.deaths.damage, projection.deaths.background)

    simulator = TrajectorySimulator(tables, policy, create_rng(seed),
                                    config.simulation)
    trajectory = simulator.run()

    run = ModelRun(config=config, tables=tables, seed=seed, policy=policy,
                   solver=solver_result, projection=projection,
                   trajectory=trajectory, elapsed=elapsed)

    if output_dir is not None:
        out = Path(output_dir)
        out.mkdir(parents=True, exist_ok=True)
        if solver_result is not None and config.output.write_strategy:
            run.paths['strategy'] = write_strategy(
                out / output_filename(STRATEGY_PREFIX, config),
                solver_result, config, seed=seed)
        if projection is not None:
            run.paths['forward'] = write_forward(
                out / output_filename(FORWARD_PREFIX, config), projection)
        if config.output.write_trajectory:
            run.paths['trajectory'] = write_trajectory(
                out / output_filename(TRAJECTORY_PREFIX, config), trajectory)
        for name, path in run.paths.items():
            logger.info("Wrote %s file %s", name, path)

    return run
