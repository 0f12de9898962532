"""Tests for stress_damage.damage — damage transition and interpolation."""

import numpy as np
import pytest

from stress_damage.damage import damage_transition, interpolate, interpolation_split


class TestDamageTransition:
    def test_within_bounds(self):
        dnew = damage_transition(max_d=20, max_h=500)
        assert dnew.shape == (21, 501)
        assert dnew.min() >= 0.0
        assert dnew.max() <= 20.0

    def test_minimised_at_hmin(self):
        """With no clamping in play, the minimum sits at h/max_h = hmin."""
        dnew = damage_transition(max_d=50, max_h=100, hmin=0.3, hslope=20.0,
                                 repair=1.0)
        d = 25
        assert np.argmin(dnew[d]) == 30
        assert dnew[d, 30] == pytest.approx(d - 1.0)

    def test_minimum_location_tracks_hmin(self):
        dnew = damage_transition(max_d=50, max_h=40, hmin=0.75, hslope=5.0,
                                 repair=0.5)
        assert np.argmin(dnew[30]) == 30

    def test_formula(self):
        dnew = damage_transition(max_d=20, max_h=10, hmin=0.3, hslope=20.0,
                                 repair=1.0)
        # d=2, h=8: 2 + 20·(0.3 − 0.8)² − 1 = 6
        assert dnew[2, 8] == pytest.approx(6.0)

    def test_clamped_at_zero_and_max(self):
        dnew = damage_transition(max_d=3, max_h=10, hmin=0.3, hslope=20.0,
                                 repair=1.0)
        assert dnew[0, 3] == 0.0        # 0 + 0 − 1 → 0
        assert dnew[3, 10] == 3.0       # 3 + 9.8 − 1 → 3

    def test_non_decreasing_in_current_damage(self):
        dnew = damage_transition(max_d=10, max_h=20)
        assert np.all(np.diff(dnew, axis=0) >= 0.0)


class TestInterpolation:
    def test_split(self):
        floor, ceil, fraction = interpolation_split(np.array([[0.0, 1.25, 2.999, 3.0]]))
        np.testing.assert_array_equal(floor, [[0, 1, 2, 3]])
        np.testing.assert_array_equal(ceil, [[0, 2, 3, 3]])
        np.testing.assert_allclose(fraction, [[0.0, 0.25, 0.999, 0.0]])

    def test_interpolate_linear(self):
        values = np.array([[0.0, 10.0, 20.0, 30.0],
                           [1.0, 1.0, 1.0, 1.0]])
        floor, ceil, fraction = interpolation_split(np.array([[0.5, 2.25]]))
        out = interpolate(values, floor, ceil, fraction)
        assert out.shape == (2, 1, 2)
        np.testing.assert_allclose(out[0], [[5.0, 22.5]])
        np.testing.assert_allclose(out[1], [[1.0, 1.0]])

    def test_integral_damage_is_exact(self):
        values = np.array([3.0, 7.0, 11.0])
        floor, ceil, fraction = interpolation_split(np.array([0.0, 1.0, 2.0]))
        np.testing.assert_array_equal(interpolate(values, floor, ceil, fraction),
                                      values)
