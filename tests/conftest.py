"""Shared fixtures: small grids that solve in well under a second."""

import pytest

from stress_damage.config import (
    EnvironmentSection,
    GridSection,
    ModelConfig,
    PhysiologySection,
    SimulationSection,
    SolverSection,
)
from stress_damage.model import build_tables


def make_config(max_t=2, max_ts=2, max_d=2, max_h=4, *,
                p_leave=0.5, p_arrive=0.1, p_attack=0.5, alpha=1.0,
                k_mort=0.0, k_fec=0.05, max_iterations=10_000,
                seed=42, **simulation) -> ModelConfig:
    """ModelConfig on a reduced grid; other sections at their defaults."""
    config = ModelConfig(
        environment=EnvironmentSection(p_leave=p_leave, p_arrive=p_arrive,
                                       p_attack=p_attack, alpha=alpha),
        physiology=PhysiologySection(k_mort=k_mort, k_fec=k_fec),
        grid=GridSection(max_t=max_t, max_ts=max_ts, max_d=max_d, max_h=max_h),
        solver=SolverSection(max_iterations=max_iterations),
        simulation=SimulationSection(seed=seed, **simulation),
    )
    return config


@pytest.fixture
def tiny_config():
    """maxT=2, maxTs=2, maxD=2, maxH=4."""
    return make_config()


@pytest.fixture
def tiny_tables(tiny_config):
    return build_tables(tiny_config)


@pytest.fixture
def reference_config():
    """The documented end-to-end case: maxT=5, maxTs=3, maxD=3, maxH=10."""
    return make_config(max_t=5, max_ts=3, max_d=3, max_h=10,
                       attack_start=3, attack_end=6, reproduce_at=3)


@pytest.fixture
def reference_tables(reference_config):
    return build_tables(reference_config)


@pytest.fixture
def config_factory():
    """make_config, for tests that need a one-off parameter set."""
    return make_config
