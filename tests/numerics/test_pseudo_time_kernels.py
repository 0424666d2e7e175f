"""
Tests for residual smoothing, the Patankar update, local time steps and
scalar transport.
"""

import pytest
import numpy as np

from fvflow.config import SimulationConfig
from fvflow.grid import line_mesh, rectangle_mesh
from fvflow.numerics import (
    smooth_residual,
    apply_patankar_update,
    convective_spectral_radius,
    compute_local_timestep,
    bound_timestep,
    courant_statistics,
    advect_scalar,
    diffuse_scalar,
)


@pytest.fixture
def checker_residual():
    """High-frequency residual on a 6x5 box."""
    mesh = rectangle_mesh(6, 5)
    i = np.arange(mesh.n_cells) % 6
    j = np.arange(mesh.n_cells) // 6
    R = np.where((i + j) % 2 == 0, 1.0, -1.0)
    return mesh, R


class TestSmoothing:
    """Implicit and explicit residual smoothing."""

    @pytest.mark.parametrize("mode", ["implicit", "explicit"])
    def test_zero_iterations_is_noop(self, checker_residual, mode):
        mesh, R = checker_residual
        original = R.copy()
        out = smooth_residual(R, mesh, epsilon=0.5, iterations=0, mode=mode)
        assert out is R
        np.testing.assert_array_equal(R, original)

    def test_implicit_damps_oscillations(self, checker_residual):
        mesh, R = checker_residual
        smooth_residual(R, mesh, epsilon=0.5, iterations=3, mode="implicit")
        assert np.abs(R).max() < 1.0

    @pytest.mark.parametrize("mode", ["implicit", "explicit"])
    def test_default_epsilon_damps_box_checkerboard(self, checker_residual, mode):
        mesh, R = checker_residual
        smooth_residual(R, mesh, epsilon=SimulationConfig().flow.epsilon, iterations=2, mode=mode)
        assert np.abs(R).max() < 1.0

    def test_explicit_default_epsilon_removes_line_checkerboard(self):
        mesh = line_mesh(n_cells=10)
        R = np.where(np.arange(mesh.n_cells) % 2 == 0, 1.0, -1.0)
        smooth_residual(R, mesh, epsilon=SimulationConfig().flow.epsilon, iterations=2, mode="explicit")
        assert np.abs(R).max() < 1e-12

    def test_explicit_partial_damping(self, checker_residual):
        mesh, R = checker_residual
        smooth_residual(R, mesh, epsilon=0.25, iterations=1, mode="explicit")
        np.testing.assert_allclose(np.abs(R), 0.5, rtol=1e-12)

    @pytest.mark.parametrize("epsilon", [0.75, -0.1])
    def test_explicit_rejects_unstable_epsilon(self, checker_residual, epsilon):
        mesh, R = checker_residual
        with pytest.raises(ValueError, match="Explicit smoothing needs"):
            smooth_residual(R, mesh, epsilon=epsilon, iterations=1, mode="explicit")

    @pytest.mark.parametrize("mode", ["implicit", "explicit"])
    def test_constant_preserved(self, mode):
        mesh = rectangle_mesh(5, 4)
        R = np.full((mesh.n_cells, 3), 2.0)
        smooth_residual(R, mesh, epsilon=0.2, iterations=4, mode=mode)
        np.testing.assert_allclose(R, 2.0, atol=1e-13)

    def test_vector_field_in_place(self):
        mesh = line_mesh(n_cells=6)
        R = np.zeros((mesh.n_cells, 3))
        R[2, 0] = 1.0
        smooth_residual(R, mesh, epsilon=0.5, iterations=2, mode="implicit")
        assert R[1, 0] > 0.0 and R[3, 0] > 0.0
        np.testing.assert_array_equal(R[:, 1:], 0.0)

    def test_unknown_mode(self, checker_residual):
        mesh, R = checker_residual
        with pytest.raises(ValueError, match="Unknown smoothing mode"):
            smooth_residual(R, mesh, iterations=1, mode="multigrid")


class TestPatankar:
    """Positivity-preserving update."""

    def test_positive_increment_explicit(self):
        q = apply_patankar_update(np.array([1.0]), np.array([0.5]))
        assert q[0] == pytest.approx(1.5)

    def test_large_negative_increment_stays_positive(self):
        q = apply_patankar_update(np.array([1.0, 2.0]), np.array([-10.0, -1e6]))
        assert np.all(q > 0.0)
        assert q[0] == pytest.approx(1.0 / 11.0)

    def test_floor(self):
        q = apply_patankar_update(np.array([0.0]), np.array([-1.0]), floor=1e-10)
        assert q[0] == 1e-10


class TestLocalTimeStep:
    """Spectral radii and dt bounding."""

    def test_uniform_line(self):
        mesh = line_mesh(n_cells=10, length=1.0)
        wave = np.full(mesh.n_faces, 400.0)
        lam = convective_spectral_radius(wave, mesh)
        np.testing.assert_allclose(lam, 800.0)

        dt = compute_local_timestep(lam, np.zeros_like(lam), cfl=2.0, mesh=mesh)
        np.testing.assert_allclose(dt, 2.0 * 0.1 / 800.0)

    def test_global_time_stepping(self):
        mesh = line_mesh(n_cells=4)
        dt = np.array([1.0, 2.0, 3.0, 4.0])
        np.testing.assert_array_equal(bound_timestep(dt, mesh, "global"), 1.0)

    def test_global_bounds(self):
        mesh = line_mesh(n_cells=4)
        dt = np.array([1.0, 2.0, 300.0, 4.0])
        out = bound_timestep(dt, mesh, "local", bounds="global", min_max=10.0)
        np.testing.assert_array_equal(out, [1.0, 2.0, 10.0, 4.0])

    def test_local_bounds(self):
        mesh = line_mesh(n_cells=4)
        dt = np.array([1.0, 2.0, 300.0, 4.0])
        out = bound_timestep(dt, mesh, "local", bounds="local", min_max=10.0)
        # Cell 2 is limited by its smallest face neighbour (cell 1)
        np.testing.assert_array_equal(out, [1.0, 2.0, 20.0, 4.0])

    def test_no_bounds(self):
        mesh = line_mesh(n_cells=3)
        dt = np.array([1.0, 1e6, 1.0])
        np.testing.assert_array_equal(bound_timestep(dt, mesh, "local", bounds="none"), dt)

    def test_unknown_modes(self):
        mesh = line_mesh(n_cells=3)
        with pytest.raises(ValueError):
            bound_timestep(np.ones(3), mesh, "dual")
        with pytest.raises(ValueError):
            bound_timestep(np.ones(3), mesh, "local", bounds="cell")

    def test_statistics(self):
        mesh = line_mesh(n_cells=4)
        stats = courant_statistics(np.array([1.0, 2.0, 3.0, 2.0]), np.array([1.0, 1.0, 1.0, 5.0]),
                                   mesh.reductions)
        assert stats.courant_min == 1.0
        assert stats.courant_max == 3.0
        assert stats.courant_avg == pytest.approx(2.0)
        assert stats.courant_std == pytest.approx(np.sqrt(0.5))
        assert stats.dt_avg == pytest.approx(2.0)


class TestScalarTransport:
    """Advective and diffusive rhs of a transported scalar."""

    def test_uniform_field_no_advection(self):
        mesh = line_mesh(n_cells=8)
        phi = np.full(mesh.n_cells, 0.7)
        q = np.ones(mesh.n_faces) * mesh.n[:, 0] * 30.0
        rhs = advect_scalar(phi, np.full(mesh.n_boundary, 0.7), q, np.abs(q) + 300.0, mesh)
        np.testing.assert_array_equal(rhs, 0.0)

    def test_upwind_inflow(self):
        mesh = line_mesh(n_cells=4, length=1.0)
        phi = np.zeros(mesh.n_cells)
        phi_b = np.array([1.0, 0.0])
        q = 10.0 * mesh.n[:, 0]  # u = 10 along +x
        rhs = advect_scalar(phi, phi_b, q, np.abs(q), mesh, linear_fix=0.0)
        assert rhs[0] == pytest.approx(10.0)
        np.testing.assert_array_equal(rhs[1:], 0.0)

    def test_diffusion_linear_profile(self):
        mesh = line_mesh(n_cells=5, length=1.0)
        x = mesh.C[:, 0]
        xb = mesh.Cf[mesh.n_internal:, 0]
        rhs = diffuse_scalar(3.0 * x, 3.0 * xb, np.ones(mesh.n_faces), mesh)
        np.testing.assert_allclose(rhs, 0.0, atol=1e-12)

    def test_diffusion_from_hot_boundary(self):
        mesh = line_mesh(n_cells=3, length=3.0)
        rhs = diffuse_scalar(np.zeros(3), np.array([1.0, 0.0]), np.full(mesh.n_faces, 2.0), mesh)
        # Boundary face at half a cell from the centre
        assert rhs[0] == pytest.approx(2.0 * 1.0 / 0.5)
        assert rhs[1] == 0.0
