"""Configuration system for the stress-damage model.

Hierarchical YAML configuration with deep-merge support:
  base.yaml → override file(s) → programmatic overrides (CLI, sweeps)

Sections map 1:1 to YAML top-level keys. Unknown keys are ignored so that
older config files keep loading.

Design decisions:
  - Grid bounds are inclusive (t ∈ [0, max_t] etc.), as in the tables.
  - p_attack must stay below 1: the predator-presence recursion divides
    by 1 − P·p_attack.
  - The forward projection is off by default and carries an iteration
    cap; it has no natural termination guarantee.
"""

from __future__ import annotations

import copy
import dataclasses
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml


class InvalidConfigError(ValueError):
    """A configuration value is malformed or outside its allowed range."""

    def __init__(self, name: str, value: Any, expected: str):
        self.name = name
        self.value = value
        self.expected = expected
        super().__init__(f"{name} must be {expected}, got {value!r}")


# ═══════════════════════════════════════════════════════════════════════
# CONFIGURATION DATACLASSES
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class EnvironmentSection:
    """Predator dynamics and lethality of attacks."""
    p_leave: float = 0.5       # P(predator leaves) per time step
    p_arrive: float = 0.1      # P(predator arrives) per time step
    p_attack: float = 0.5      # P(attack | predator present)
    alpha: float = 1.0         # Shape of hormone effect on P(killed | attack)


@dataclass
class PhysiologySection:
    """Damage, mortality and fecundity parameters."""
    mu0: float = 0.002         # Background mortality at zero damage
    k_mort: float = 0.0        # Increase in mortality per damage unit
    k_fec: float = 0.05        # Decrease in fecundity per damage unit
    hmin: float = 0.3          # Hormone fraction that minimises damage
    hslope: float = 20.0       # Curvature of damage around hmin
    repair: float = 1.0        # Damage units repaired per time step


@dataclass
class GridSection:
    """Discretisation of the state and control space (inclusive bounds)."""
    max_t: int = 100           # Time steps since last attack
    max_ts: int = 10           # Season length (time steps between bouts)
    max_d: int = 20            # Damage levels
    max_h: int = 500           # Hormone levels


@dataclass
class SolverSection:
    """Value iteration and forward projection control."""
    max_iterations: int = 1_000_000
    tolerance: float = 1e-6
    report_interval: int = 1             # Log the fitness difference every N iterations
    forward_enabled: bool = False
    forward_max_iterations: int = 100_000
    forward_tolerance: float = 1e-6


@dataclass
class SimulationSection:
    """Single-individual trajectory with a scripted attack window."""
    seed: Optional[int] = None    # None = seed from wall clock
    n_seasons: int = 3
    attack_start: int = 16        # Attacks at steps strictly inside
    attack_end: int = 33          # (attack_start, attack_end)
    reproduce_at: int = 40        # Step offset of the first breeding bout


@dataclass
class OutputSection:
    """Output control."""
    directory: str = "."
    write_strategy: bool = True
    write_trajectory: bool = True


@dataclass
class ModelConfig:
    """Complete model configuration.

    Load from YAML via `load_config()`.
    """
    environment: EnvironmentSection = field(default_factory=EnvironmentSection)
    physiology: PhysiologySection = field(default_factory=PhysiologySection)
    grid: GridSection = field(default_factory=GridSection)
    solver: SolverSection = field(default_factory=SolverSection)
    simulation: SimulationSection = field(default_factory=SimulationSection)
    output: OutputSection = field(default_factory=OutputSection)


_SECTION_MAP = {
    'environment': EnvironmentSection,
    'physiology': PhysiologySection,
    'grid': GridSection,
    'solver': SolverSection,
    'simulation': SimulationSection,
    'output': OutputSection,
}


# ═══════════════════════════════════════════════════════════════════════
# YAML LOADING & MERGING
# ═══════════════════════════════════════════════════════════════════════

def deep_merge(base: Dict, override: Dict) -> Dict:
    """Recursively merge override into base. Modifies base in place.

    - Dict values are merged recursively
    - Non-dict values are replaced
    - Keys in override but not base are added

    Returns:
        The merged base dictionary.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _dict_to_section(section_cls, data: Dict) -> Any:
    """Convert a dict to a dataclass, ignoring unknown keys."""
    valid_fields = {f.name for f in dataclasses.fields(section_cls)}
    filtered = {k: v for k, v in data.items() if k in valid_fields}
    return section_cls(**filtered)


def config_from_dict(data: Dict) -> ModelConfig:
    """Convert a merged dict to a ModelConfig (no validation)."""
    sections = {}
    for key, cls in _SECTION_MAP.items():
        if key in data and isinstance(data[key], dict):
            sections[key] = _dict_to_section(cls, data[key])
        else:
            sections[key] = cls()
    return ModelConfig(**sections)


def config_to_dict(config: ModelConfig) -> Dict:
    """Plain-dict view of a config, suitable for YAML dumping or merging."""
    return copy.deepcopy(dataclasses.asdict(config))


def _check_range(name: str, value, lo=None, hi=None,
                 lo_open: bool = False, hi_open: bool = False) -> None:
    """Raise InvalidConfigError unless lo <= value <= hi (bounds optional)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidConfigError(name, value, "a number")
    if value != value:  # NaN
        raise InvalidConfigError(name, value, "a number")
    ok = True
    if lo is not None:
        ok = ok and (value > lo if lo_open else value >= lo)
    if hi is not None:
        ok = ok and (value < hi if hi_open else value <= hi)
    if not ok:
        left = '(' if lo_open else '['
        right = ')' if hi_open else ']'
        lo_s = '-inf' if lo is None else f"{lo:g}"
        hi_s = 'inf' if hi is None else f"{hi:g}"
        raise InvalidConfigError(name, value, f"in {left}{lo_s}, {hi_s}{right}")


def _check_int(name: str, value, minimum: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidConfigError(name, value, "an integer")
    if value < minimum:
        raise InvalidConfigError(name, value, f"an integer >= {minimum}")


def validate_config(config: ModelConfig) -> None:
    """Validate configuration constraints.

    Raises:
        InvalidConfigError: naming the first offending field and its
            expected range.
    """
    env = config.environment
    _check_range('environment.p_leave', env.p_leave, 0.0, 1.0)
    _check_range('environment.p_arrive', env.p_arrive, 0.0, 1.0)
    _check_range('environment.p_attack', env.p_attack, 0.0, 1.0, hi_open=True)
    _check_range('environment.alpha', env.alpha, 0.0)

    phys = config.physiology
    _check_range('physiology.mu0', phys.mu0, 0.0, 1.0)
    _check_range('physiology.k_mort', phys.k_mort, 0.0)
    _check_range('physiology.k_fec', phys.k_fec, 0.0)
    _check_range('physiology.hmin', phys.hmin, 0.0, 1.0)
    _check_range('physiology.hslope', phys.hslope, 0.0)
    _check_range('physiology.repair', phys.repair, 0.0)

    grid = config.grid
    for name in ('max_t', 'max_ts', 'max_d', 'max_h'):
        _check_int(f'grid.{name}', getattr(grid, name), 1)

    solver = config.solver
    _check_int('solver.max_iterations', solver.max_iterations, 1)
    _check_int('solver.report_interval', solver.report_interval, 1)
    _check_int('solver.forward_max_iterations', solver.forward_max_iterations, 1)
    _check_range('solver.tolerance', solver.tolerance, 0.0, lo_open=True)
    _check_range('solver.forward_tolerance', solver.forward_tolerance, 0.0,
                 lo_open=True)

    sim = config.simulation
    if sim.seed is not None:
        _check_int('simulation.seed', sim.seed, 0)
    _check_int('simulation.n_seasons', sim.n_seasons, 1)
    _check_int('simulation.attack_start', sim.attack_start, -1)
    _check_int('simulation.attack_end', sim.attack_end, 0)
    if sim.attack_end < sim.attack_start:
        raise InvalidConfigError(
            'simulation.attack_end', sim.attack_end,
            f">= attack_start ({sim.attack_start})",
        )
    _check_int('simulation.reproduce_at', sim.reproduce_at, 0)


def load_config(
    base_path: Union[str, Path],
    override_paths: Optional[list] = None,
    overrides: Optional[Dict] = None,
) -> ModelConfig:
    """Load and merge hierarchical YAML configuration.

    Merge order: base → each override file → overrides dict.
    Each layer overrides only the fields it specifies.

    Raises:
        FileNotFoundError: If base_path doesn't exist.
        InvalidConfigError: If validation fails.
    """
    base_path = Path(base_path)
    if not base_path.exists():
        raise FileNotFoundError(f"Config file not found: {base_path}")

    with open(base_path) as f:
        config_dict = yaml.safe_load(f) or {}

    for path in override_paths or []:
        path = Path(path)
        if path.exists():
            with open(path) as f:
                deep_merge(config_dict, yaml.safe_load(f) or {})

    if overrides is not None:
        deep_merge(config_dict, copy.deepcopy(overrides))

    config = config_from_dict(config_dict)
    validate_config(config)
    return config


def default_config() -> ModelConfig:
    """Return a ModelConfig with all default values."""
    config = ModelConfig()
    validate_config(config)
    return config
