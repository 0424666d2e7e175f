"""
Tests for Green-Gauss gradients and the face interpolation helpers.
"""

import pytest
import numpy as np

from fvflow.grid import line_mesh, rectangle_mesh
from fvflow.numerics import (
    green_gauss,
    vorticity_magnitude,
    strain_magnitude,
    interpolate_to_faces,
    scatter_outflow,
)


def linear_field(points, a=2.0, b=-3.0, c=0.5):
    return a * points[:, 0] + b * points[:, 1] + c


class TestGreenGauss:
    """Green-Gauss is exact for linear fields on uniform meshes."""

    @pytest.mark.parametrize("distance_weighted", [True, False])
    def test_linear_scalar_box(self, box_mesh, distance_weighted):
        phi = linear_field(box_mesh.C)
        phi_b = linear_field(box_mesh.Cf[box_mesh.n_internal:])
        grad = green_gauss(phi, phi_b, box_mesh, distance_weighted)

        assert grad.shape == (box_mesh.n_cells, 3)
        np.testing.assert_allclose(grad[:, 0], 2.0, atol=1e-12)
        np.testing.assert_allclose(grad[:, 1], -3.0, atol=1e-12)
        np.testing.assert_allclose(grad[:, 2], 0.0, atol=1e-12)

    def test_linear_vector_line(self):
        mesh = line_mesh(n_cells=12, length=3.0)
        U = np.zeros((mesh.n_cells, 3))
        U[:, 0] = 4.0 * mesh.C[:, 0]
        U[:, 1] = -1.0 * mesh.C[:, 0] + 7.0
        xb = mesh.Cf[mesh.n_internal:, 0]
        U_b = np.stack([4.0 * xb, -xb + 7.0, np.zeros_like(xb)], axis=1)

        grad = green_gauss(U, U_b, mesh)
        assert grad.shape == (mesh.n_cells, 3, 3)
        np.testing.assert_allclose(grad[:, 0, 0], 4.0, atol=1e-12)
        np.testing.assert_allclose(grad[:, 1, 0], -1.0, atol=1e-12)

    def test_uniform_field_zero_gradient(self, box_mesh):
        grad = green_gauss(np.full(box_mesh.n_cells, 3.3), np.full(box_mesh.n_boundary, 3.3), box_mesh)
        np.testing.assert_allclose(grad, 0.0, atol=1e-12)


class TestVelocityInvariants:
    """Vorticity and strain magnitudes of simple gradients."""

    def test_pure_shear(self):
        grad_U = np.zeros((1, 3, 3))
        grad_U[0, 0, 1] = 5.0  # du/dy
        assert vorticity_magnitude(grad_U)[0] == pytest.approx(5.0)
        assert strain_magnitude(grad_U)[0] == pytest.approx(5.0)

    def test_solid_rotation(self):
        grad_U = np.zeros((1, 3, 3))
        grad_U[0, 0, 1] = -2.0
        grad_U[0, 1, 0] = 2.0
        assert strain_magnitude(grad_U)[0] == pytest.approx(0.0)
        assert vorticity_magnitude(grad_U)[0] == pytest.approx(4.0)


class TestFaceLoops:
    """Interpolation and scatter helpers."""

    def test_interpolation_appends_boundary_values(self):
        mesh = line_mesh(n_cells=3)
        phi = np.array([1.0, 2.0, 4.0])
        phi_f = interpolate_to_faces(phi, np.array([0.5, 9.0]), mesh.owner, mesh.neighbour, mesh.weights)
        np.testing.assert_allclose(phi_f, [1.5, 3.0, 0.5, 9.0])

    def test_scatter_conserves(self):
        mesh = rectangle_mesh(4, 3)
        rng = np.random.default_rng(1)
        flux = rng.normal(size=mesh.n_faces)
        flux[mesh.n_internal:] = 0.0
        out = scatter_outflow(flux, mesh.owner, mesh.neighbour, mesh.n_cells)
        assert abs(out.sum()) < 1e-12

    def test_scatter_sign(self):
        mesh = line_mesh(n_cells=2)
        flux = np.array([[1.0], [0.0], [0.0]])
        out = scatter_outflow(flux, mesh.owner, mesh.neighbour, mesh.n_cells, sign=1.0)
        np.testing.assert_allclose(out[:, 0], [-1.0, 1.0])
        out = scatter_outflow(flux, mesh.owner, mesh.neighbour, mesh.n_cells, sign=-1.0)
        np.testing.assert_allclose(out[:, 0], [1.0, -1.0])
