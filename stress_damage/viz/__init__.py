"""Stress-damage visualization library.

Modules:
  - style: Dark theme colours and helpers
  - strategy: Policy heatmap, convergence, trajectory, stationary distribution
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, List, Union

from stress_damage.viz.style import (  # noqa: F401
    DARK_BG,
    DARK_PANEL,
    DEATH_COLORS,
    GRID_COLOR,
    TEXT_COLOR,
    apply_dark_theme,
    dark_figure,
    save_figure,
)

from stress_damage.viz.strategy import (  # noqa: F401
    plot_convergence,
    plot_policy_heatmap,
    plot_stationary_damage,
    plot_trajectory,
)

if TYPE_CHECKING:
    from stress_damage.model import ModelRun


def save_run_figures(run: 'ModelRun', directory: Union[str, Path]) -> List[Path]:
    """Save every figure that applies to a ModelRun; return the paths."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    saved = []

    path = directory / 'policy_phase0.png'
    plot_policy_heatmap(run.policy, ts=0, max_h=run.tables.max_h, save_path=path)
    saved.append(path)

    if run.solver is not None:
        path = directory / 'convergence.png'
        plot_convergence(run.solver.history, run.config.solver.tolerance,
                         save_path=path)
        saved.append(path)

    if run.trajectory is not None:
        path = directory / 'trajectory.png'
        plot_trajectory(run.trajectory, save_path=path)
        saved.append(path)

    if run.projection is not None:
        deaths = run.projection.deaths
        path = directory / 'stationary_damage.png'
        plot_stationary_damage(
            run.projection.stationary(),
            deaths={'predation': deaths.predation, 'damage': deaths.damage,
                    'background': deaths.background},
            save_path=path,
        )
        saved.append(path)

    return saved
