"""Tests for stress_damage.reproduction — seasonal fecundity."""

import numpy as np
import pytest

from stress_damage.reproduction import fecundity_table, is_breeding_phase


class TestBreedingPhase:
    def test_boundaries(self):
        assert is_breeding_phase(0, 10)
        assert is_breeding_phase(10, 10)
        assert is_breeding_phase(-10, 10)
        assert not is_breeding_phase(3, 10)


class TestFecundityTable:
    def test_shape(self):
        assert fecundity_table(0.05, max_ts=10, max_d=20).shape == (11, 21)

    def test_only_at_season_boundary(self):
        table = fecundity_table(0.05, max_ts=4, max_d=3)
        np.testing.assert_array_equal(table[1:4], 0.0)
        assert np.all(table[0] > 0.0)
        np.testing.assert_array_equal(table[0], table[4])

    def test_declines_with_damage(self):
        table = fecundity_table(0.05, max_ts=3, max_d=5)
        np.testing.assert_allclose(table[0], 1.0 - 0.05 * np.arange(6))
        assert np.all(np.diff(table[0]) <= 0.0)

    def test_floored_at_zero(self):
        table = fecundity_table(0.5, max_ts=2, max_d=5)
        assert table.min() == 0.0
        assert table[0, 2] == pytest.approx(0.0)
        assert table[0, 5] == 0.0
