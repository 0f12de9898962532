"""Strategy, convergence and trajectory figures.

Every function:
  - Returns a matplotlib Figure
  - Has an optional ``save_path`` parameter (saves PNG and closes the figure)
  - Uses the shared dark theme from ``stress_damage.viz.style``

matplotlib backend is forced to Agg (no display) on import.
"""

from __future__ import annotations

import matplotlib
matplotlib.use('Agg')

from typing import Optional, Sequence

import matplotlib.pyplot as plt
import numpy as np

from stress_damage.viz.style import (
    ATTACK_COLOR,
    BREEDING_COLOR,
    DAMAGE_COLOR,
    DEATH_COLORS,
    HORMONE_COLOR,
    POLICY_CMAP,
    TEXT_COLOR,
    TIME_COLOR,
    dark_figure,
    save_figure,
)


def _finish(fig, save_path: Optional[str]) -> plt.Figure:
    if save_path is not None:
        save_figure(fig, save_path)
    return fig


# ═══════════════════════════════════════════════════════════════════════
# 1. POLICY HEATMAP
# ═══════════════════════════════════════════════════════════════════════

def plot_policy_heatmap(
    policy: np.ndarray,
    ts: int = 0,
    max_h: Optional[int] = None,
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Optimal hormone level over (time since attack, damage) at one phase.

    Args:
        policy: (t, ts, d) strategy array.
        ts: Season phase to show.
        max_h: Colour-scale maximum (defaults to the policy maximum).
        save_path: Optional path to save the figure.
    """
    fig, ax = dark_figure()
    vmax = max_h if max_h is not None else max(int(policy.max()), 1)
    im = ax.imshow(policy[:, ts, :].T, origin='lower', aspect='auto',
                   cmap=POLICY_CMAP, vmin=0, vmax=vmax)
    cbar = fig.colorbar(im, ax=ax)
    cbar.set_label('Hormone level', color=TEXT_COLOR)
    cbar.ax.tick_params(colors=TEXT_COLOR)
    ax.set_xlabel('Time since last attack (t)')
    ax.set_ylabel('Damage (d)')
    ax.set_title(f'Optimal hormone level, season phase {ts}')
    return _finish(fig, save_path)


# ═══════════════════════════════════════════════════════════════════════
# 2. CONVERGENCE
# ═══════════════════════════════════════════════════════════════════════

def plot_convergence(
    history: Sequence[float],
    tolerance: float = 1e-6,
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Aggregate fitness difference per outer iteration (log scale)."""
    fig, ax = dark_figure()
    diffs = np.asarray(history, dtype=float)
    iterations = np.arange(1, diffs.size + 1)
    positive = diffs > 0
    ax.semilogy(iterations[positive], diffs[positive], color=HORMONE_COLOR,
                linewidth=1.5)
    ax.axhline(tolerance, color=ATTACK_COLOR, linestyle='--', linewidth=1,
               label=f'tolerance {tolerance:g}')
    ax.set_xlabel('Iteration')
    ax.set_ylabel('Σ |ΔW|')
    ax.set_title('Value iteration convergence')
    ax.legend(facecolor='none', labelcolor=TEXT_COLOR)
    return _finish(fig, save_path)


# ═══════════════════════════════════════════════════════════════════════
# 3. SIMULATED TRAJECTORY
# ═══════════════════════════════════════════════════════════════════════

def plot_trajectory(
    trajectory: np.ndarray,
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Hormone, damage and time since attack along one simulated path.

    Attack steps are shaded; breeding bouts are marked with vertical lines.
    """
    fig, axes = dark_figure(nrows=3, ncols=1, figsize=(12, 9), sharex=True)
    time = trajectory['time']

    for ax in axes:
        for step in time[trajectory['attack']]:
            ax.axvspan(step - 0.5, step + 0.5, color=ATTACK_COLOR, alpha=0.15,
                       linewidth=0)
        for step in time[trajectory['reproduce']]:
            ax.axvline(step, color=BREEDING_COLOR, alpha=0.6, linewidth=1)

    axes[0].step(time, trajectory['hormone'], where='mid', color=HORMONE_COLOR)
    axes[0].set_ylabel('Hormone')
    axes[1].step(time, trajectory['damage'], where='mid', color=DAMAGE_COLOR)
    axes[1].set_ylabel('Damage')
    axes[2].step(time, trajectory['t'], where='mid', color=TIME_COLOR)
    axes[2].set_ylabel('Time since attack')
    axes[2].set_xlabel('Time step')
    axes[0].set_title('Simulated response to a run of attacks')
    return _finish(fig, save_path)


# ═══════════════════════════════════════════════════════════════════════
# 4. STATIONARY DISTRIBUTION
# ═══════════════════════════════════════════════════════════════════════

def plot_stationary_damage(
    stationary: np.ndarray,
    deaths: Optional[dict] = None,
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Damage distribution at the breeding bout, with deaths per cycle.

    Args:
        stationary: (t, d, h) phase-0 frequency table.
        deaths: Optional {'predation': x, 'damage': y, 'background': z}.
        save_path: Optional path to save the figure.
    """
    ncols = 2 if deaths else 1
    fig, axes = dark_figure(nrows=1, ncols=ncols, figsize=(7 * ncols, 5))
    ax = axes[0] if ncols == 2 else axes

    by_damage = stationary.sum(axis=(0, 2))
    ax.bar(np.arange(by_damage.size), by_damage, color=DAMAGE_COLOR)
    ax.set_xlabel('Damage (d)')
    ax.set_ylabel('Frequency')
    ax.set_title('Stationary damage distribution')

    if deaths:
        ax2 = axes[1]
        names = list(deaths)
        ax2.bar(names, [deaths[n] for n in names],
                color=[DEATH_COLORS.get(n, TEXT_COLOR) for n in names])
        ax2.set_ylabel('Deaths per breeding cycle')
        ax2.set_title('Mortality by cause')
    return _finish(fig, save_path)
