"""Tests for stress_damage.forward — stationary distribution and death rates."""

import numpy as np
import pytest

from stress_damage.config import PhysiologySection
from stress_damage.forward import ForwardProjector, ProjectionError, ProjectionResult
from stress_damage.model import build_tables
from stress_damage.types import DeathSplit
from stress_damage.value_iteration import ConvergenceWarning


def _constant_policy(tables, level=2):
    return np.full(tables.policy_shape, level, dtype=np.int64)


class TestSetup:
    def test_initial_point_mass(self, tiny_tables):
        proj = ForwardProjector(tiny_tables, _constant_policy(tiny_tables))
        assert proj.frequency.sum() == 1.0
        assert proj.frequency[tiny_tables.max_t, 0, 0, 0] == 1.0

    def test_policy_shape_checked(self, tiny_tables):
        bad = np.zeros((1, 1, 1), dtype=np.int64)
        with pytest.raises(ValueError, match="policy shape"):
            ForwardProjector(tiny_tables, bad)


class TestConservation:
    def test_single_phase_balances_deaths(self, reference_tables):
        proj = ForwardProjector(reference_tables,
                                _constant_policy(reference_tables, 5))
        for ts in range(reference_tables.max_ts):
            before = proj.frequency[:, ts].sum()
            deaths = DeathSplit()
            proj._advance_phase(ts, deaths)
            after = proj.frequency[:, ts + 1].sum()
            assert after + deaths.total == pytest.approx(before, abs=1e-12)

    def test_every_cycle_renormalised(self, reference_tables):
        proj = ForwardProjector(reference_tables,
                                _constant_policy(reference_tables, 5))
        for _ in range(25):
            proj.cycle()
            assert proj.frequency[:, 0].sum() == pytest.approx(1.0, abs=1e-9)

    def test_deaths_are_fractions(self, reference_tables):
        proj = ForwardProjector(reference_tables,
                                _constant_policy(reference_tables, 5))
        proj.cycle()
        deaths = proj.deaths
        assert deaths.predation >= 0.0
        assert deaths.damage >= 0.0
        assert deaths.background > 0.0
        assert 0.0 < deaths.total < 1.0


class TestRouting:
    def test_mass_follows_policy(self, tiny_tables):
        proj = ForwardProjector(tiny_tables, _constant_policy(tiny_tables, 3))
        proj.cycle()
        phase0 = proj.frequency[:, 0]
        assert phase0[..., 3].sum() == pytest.approx(1.0)
        np.testing.assert_array_equal(np.delete(phase0, 3, axis=-1), 0.0)

    def test_no_mass_remains_in_post_attack_row(self, tiny_tables):
        proj = ForwardProjector(tiny_tables, _constant_policy(tiny_tables))
        for _ in range(5):
            proj.cycle()
        np.testing.assert_array_equal(proj.frequency[0], 0.0)

    def test_attacked_survivors_land_on_t1(self, tiny_tables):
        proj = ForwardProjector(tiny_tables, _constant_policy(tiny_tables))
        proj.frequency[:] = 0.0
        proj.frequency[2, 0, 0, 4] = 1.0
        deaths = DeathSplit()
        proj._advance_phase(0, deaths)
        tab = tiny_tables
        risk = tab.predator_presence[2] * tab.p_attack
        survive_attack = risk * (1 - tab.kill_probability[4]) * (1 - tab.background_mortality[0])
        survive_calm = (1 - risk) * (1 - tab.background_mortality[0])
        assert proj.frequency[1, 1].sum() == pytest.approx(survive_attack)
        assert proj.frequency[2, 1].sum() == pytest.approx(survive_calm)

    def test_damage_split_over_bins(self, tiny_tables):
        proj = ForwardProjector(tiny_tables, _constant_policy(tiny_tables))
        tab = tiny_tables
        proj.frequency[:] = 0.0
        proj.frequency[2, 0, 1, 4] = 1.0
        proj._advance_phase(0, DeathSplit())
        lo, hi = tab.damage_floor[1, 4], tab.damage_ceil[1, 4]
        frac = tab.damage_fraction[1, 4]
        dest = proj.frequency[:, 1].sum(axis=(0, 2))
        total = dest.sum()
        if lo == hi:
            assert dest[lo] == pytest.approx(total)
        else:
            assert dest[hi] / total == pytest.approx(frac)
            assert dest[lo] / total == pytest.approx(1 - frac)


class TestDeathSplit:
    def test_no_damage_deaths_without_kmort(self, tiny_tables):
        proj = ForwardProjector(tiny_tables, _constant_policy(tiny_tables))
        proj.cycle()
        assert proj.deaths.damage == 0.0

    def test_damage_deaths_with_kmort(self, config_factory):
        tables = build_tables(config_factory(k_mort=0.1))
        proj = ForwardProjector(tables, _constant_policy(tables))
        proj.cycle()
        assert proj.deaths.damage > 0.0

    def test_no_predation_without_attacks(self, config_factory):
        tables = build_tables(config_factory(p_attack=0.0))
        proj = ForwardProjector(tables, _constant_policy(tables))
        proj.cycle()
        assert proj.deaths.predation == 0.0

    def test_extinction_raises(self, config_factory):
        config = config_factory(p_attack=0.0)
        config.physiology = PhysiologySection(mu0=1.0)
        tables = build_tables(config)
        proj = ForwardProjector(tables, _constant_policy(tables))
        with pytest.raises(ProjectionError, match="extinct"):
            proj.cycle()


class TestRun:
    def test_converges_to_stationary(self, tiny_tables):
        result = ForwardProjector(tiny_tables, _constant_policy(tiny_tables)).run()
        assert isinstance(result, ProjectionResult)
        assert result.converged
        assert result.history[-1] < 1e-6
        assert result.stationary().shape == (3, 3, 5)
        assert result.stationary().sum() == pytest.approx(1.0)

    def test_stationary_is_fixed_point(self, tiny_tables):
        policy = _constant_policy(tiny_tables)
        result = ForwardProjector(tiny_tables, policy).run()
        proj = ForwardProjector(tiny_tables, policy)
        proj.frequency[:, 0] = result.stationary()
        assert proj.cycle() < 1e-5

    def test_cap_warns(self, tiny_tables):
        proj = ForwardProjector(tiny_tables, _constant_policy(tiny_tables),
                                max_iterations=1)
        with pytest.warns(ConvergenceWarning, match="Forward projection"):
            result = proj.run()
        assert not result.converged
        assert result.n_cycles == 1
