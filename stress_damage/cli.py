"""Command-line entry point.

Usage:
    python -m stress_damage pLeave pArrive pAttack alpha Kmort Kfec
    python -m stress_damage 0.5 0.1 0.5 1.0 0 0.05 --config configs/small.yaml --seed 42
    python -m stress_damage 0.5 0.1 0.5 1.0 0 0.05 --forward --plots -v
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from stress_damage.config import (
    InvalidConfigError,
    config_from_dict,
    config_to_dict,
    deep_merge,
    default_config,
    load_config,
    validate_config,
)
from stress_damage.forward import ProjectionError
from stress_damage.model import run_model
from stress_damage.output import StrategyFileError, read_strategy

logger = logging.getLogger(__name__)

POSITIONAL = [
    ('pLeave', 'environment', 'p_leave', "probability that the predator leaves"),
    ('pArrive', 'environment', 'p_arrive', "probability that the predator arrives"),
    ('pAttack', 'environment', 'p_attack', "probability that a present predator attacks"),
    ('alpha', 'environment', 'alpha', "effect of hormone level on P(killed)"),
    ('Kmort', 'physiology', 'k_mort', "increase in mortality per damage unit"),
    ('Kfec', 'physiology', 'k_fec', "decrease in fecundity per damage unit"),
]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='stress_damage',
        description="Optimal stress-hormone strategy under predation risk "
                    "and somatic damage.",
    )
    for name, _section, _key, help_text in POSITIONAL:
        parser.add_argument(name, type=float, help=help_text)
    parser.add_argument('--config', type=Path, default=None,
                        help="YAML configuration (grid, physiology, solver, ...)")
    parser.add_argument('--seed', type=int, default=None,
                        help="seed for the trajectory simulation (default: clock)")
    parser.add_argument('--output-dir', type=Path, default=None,
                        help="directory for output files (default: config or cwd)")
    parser.add_argument('--forward', action='store_true',
                        help="run the forward projection")
    parser.add_argument('--max-iterations', type=int, default=None,
                        help="value-iteration cap")
    parser.add_argument('--strategy', type=Path, default=None,
                        help="reuse a strategy file instead of solving")
    parser.add_argument('--plots', action='store_true',
                        help="save PNG figures next to the output files")
    parser.add_argument('-v', '--verbose', action='store_true',
                        help="log every iteration")
    return parser


def config_from_args(args: argparse.Namespace):
    """Merge config file, positional parameters and flags; validate."""
    overrides = {}
    for name, section, key, _help in POSITIONAL:
        overrides.setdefault(section, {})[key] = getattr(args, name)
    if args.seed is not None:
        overrides.setdefault('simulation', {})['seed'] = args.seed
    if args.forward:
        overrides.setdefault('solver', {})['forward_enabled'] = True
    if args.max_iterations is not None:
        overrides.setdefault('solver', {})['max_iterations'] = args.max_iterations

    if args.config is not None:
        return load_config(args.config, overrides=overrides)
    data = deep_merge(config_to_dict(default_config()), overrides)
    config = config_from_dict(data)
    validate_config(config)
    return config


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = config_from_args(args)
    except (InvalidConfigError, FileNotFoundError) as exc:
        parser.error(str(exc))

    output_dir = args.output_dir or Path(config.output.directory)
    policy = None
    if args.strategy is not None:
        grid = config.grid
        try:
            policy = read_strategy(args.strategy, grid.max_t, grid.max_ts,
                                   grid.max_d, max_h=grid.max_h)
        except (StrategyFileError, FileNotFoundError) as exc:
            parser.error(str(exc))

    try:
        run = run_model(config, output_dir=output_dir, policy=policy)
    except ProjectionError as exc:
        logger.error("Forward projection failed: %s", exc)
        return 1

    if args.plots:
        from stress_damage.viz import save_run_figures
        for path in save_run_figures(run, output_dir):
            logger.info("Saved figure %s", path)

    return 0


if __name__ == '__main__':
    sys.exit(main())
