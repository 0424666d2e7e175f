"""
Tests for the Roe and JST convective fluxes and MUSCL reconstruction.
"""

import pytest
import numpy as np

from fvflow.grid import line_mesh
from fvflow.numerics import (
    FluxConfig,
    compute_convective_fluxes,
    harten_fix,
    limited_slope,
    limiter_id,
    muscl_pair,
)
from fvflow.numerics.reconstruction import LIMITERS

GAMMA = 1.4


def euler_flux(rho, U, p, n):
    """Analytical flux of one state through a unit face with normal n."""
    un = U @ n
    Et = p / (GAMMA - 1.0) + 0.5 * rho * U @ U
    return np.concatenate([[rho * un], rho * U * un + p * n, [(Et + p) * un]])


def two_cell_fluxes(left, right, cfg, mesh=None):
    """Fluxes on a two-cell line mesh with the given primitive states."""
    mesh = mesh or line_mesh(n_cells=2)
    rho = np.array([left[0], right[0]])
    U = np.array([left[1], right[1]], dtype=float)
    p = np.array([left[2], right[2]])
    rho_b = rho.copy()
    U_b = U.copy()
    p_b = p.copy()
    return compute_convective_fluxes(rho, U, p, rho_b, U_b, p_b, mesh, GAMMA, cfg)


STATE = (1.2, [60.0, 5.0, 0.0], 1.0e5)


class TestConsistency:
    """Uniform states reproduce the analytical flux."""

    @pytest.mark.parametrize("scheme", ["roe", "jameson"])
    def test_uniform_state(self, scheme):
        flux = two_cell_fluxes(STATE, STATE, FluxConfig(scheme=scheme))
        expected = euler_flux(STATE[0], np.array(STATE[1]), STATE[2], np.array([1.0, 0.0, 0.0]))
        np.testing.assert_allclose(flux[0], expected, rtol=1e-12)

    def test_boundary_face_opposite_normal(self):
        flux = two_cell_fluxes(STATE, STATE, FluxConfig())
        # Inlet normal is -x, outlet +x
        np.testing.assert_allclose(flux[1], -flux[0], rtol=1e-12)
        np.testing.assert_allclose(flux[2], flux[0], rtol=1e-12)

    def test_mesh_velocity_removes_mass_flux(self):
        mesh = line_mesh(n_cells=2)
        U = STATE[1][0]
        mesh.Vf[:] = U * mesh.n[:, 0]
        flux = two_cell_fluxes(STATE, STATE, FluxConfig(), mesh=mesh)
        assert abs(flux[0, 0]) < 1e-10
        # Pressure work remains: p U·n
        assert flux[0, 4] == pytest.approx(STATE[2] * U, rel=1e-10)


class TestRoe:
    """Roe flux-difference splitting."""

    def test_supersonic_upwinding(self):
        left = (1.0, [800.0, 0.0, 0.0], 1.0e5)
        right = (0.5, [700.0, 0.0, 0.0], 0.4e5)
        flux = two_cell_fluxes(left, right, FluxConfig(high_resolution=False))
        expected = euler_flux(left[0], np.array(left[1]), left[2], np.array([1.0, 0.0, 0.0]))
        np.testing.assert_allclose(flux[0], expected, rtol=1e-10)

    def test_mirror_symmetry(self):
        left = (1.2, [10.0, 0.0, 0.0], 1.0e5)
        right = (1.0, [-5.0, 0.0, 0.0], 0.9e5)
        f = two_cell_fluxes(left, right, FluxConfig(high_resolution=False))[0]
        mirrored_left = (right[0], [5.0, 0.0, 0.0], right[2])
        mirrored_right = (left[0], [-10.0, 0.0, 0.0], left[2])
        g = two_cell_fluxes(mirrored_left, mirrored_right, FluxConfig(high_resolution=False))[0]
        # Reflecting x flips mass, energy flux and the tangential momenta
        np.testing.assert_allclose(g[0], -f[0], rtol=1e-10, atol=1e-8)
        np.testing.assert_allclose(g[1], f[1], rtol=1e-10)
        np.testing.assert_allclose(g[4], -f[4], rtol=1e-10, atol=1e-6)

    def test_arithmetic_average_still_consistent(self):
        flux = two_cell_fluxes(STATE, STATE, FluxConfig(roe_average=False))
        expected = euler_flux(STATE[0], np.array(STATE[1]), STATE[2], np.array([1.0, 0.0, 0.0]))
        np.testing.assert_allclose(flux[0], expected, rtol=1e-12)

    def test_unknown_scheme(self):
        with pytest.raises(ValueError, match="Unknown flux scheme"):
            FluxConfig(scheme="ausm").scheme_id()


class TestEntropyFix:
    """Harten's fix keeps |λ| away from zero."""

    def test_above_threshold_unchanged(self):
        assert harten_fix(3.0, 1.0) == 3.0
        assert harten_fix(-3.0, 1.0) == 3.0

    def test_below_threshold(self):
        assert harten_fix(0.0, 2.0) == pytest.approx(1.0)
        assert harten_fix(1.0, 2.0) == pytest.approx(0.5 * (1.0 + 4.0) / 2.0)

    def test_continuous_at_threshold(self):
        delta = 0.7
        assert harten_fix(delta * (1.0 - 1e-12), delta) == pytest.approx(delta)


class TestReconstruction:
    """Slope limiters and MUSCL face states."""

    @pytest.mark.parametrize("name", sorted(LIMITERS))
    def test_extremum_gives_first_order(self, name):
        lim = limiter_id(name)
        assert limited_slope(1.0, -1.0, lim) == 0.0
        left, right = muscl_pair(0.0, 1.0, 0.0, 1.0, lim)
        assert left == 1.0 and right == 0.0

    @pytest.mark.parametrize("name", sorted(LIMITERS))
    def test_linear_data_exact(self, name):
        left, right = muscl_pair(1.0, 2.0, 3.0, 4.0, limiter_id(name))
        assert left == pytest.approx(2.5)
        assert right == pytest.approx(2.5)

    def test_minmod_picks_smaller(self):
        assert limited_slope(1.0, 3.0, limiter_id("minmod")) == 1.0

    def test_vanleer_harmonic(self):
        assert limited_slope(1.0, 3.0, limiter_id("vanleer")) == pytest.approx(1.5)

    def test_unknown_limiter(self):
        with pytest.raises(ValueError, match="Unknown limiter"):
            limiter_id("superbee")
