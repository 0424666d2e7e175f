"""
Common machinery of the turbulence closures.

A closure transports its working variables with the flow's face velocity,
advances them point-implicitly with a Patankar update so they stay positive,
and hands eddy viscosity and turbulent kinetic energy back to the flow
through update(). It never writes the flow's conservative fields.
"""

from typing import Sequence

import numpy as np
import numpy.typing as npt
from loguru import logger

from ..grid.mesh import WALL_KINDS, compute_wall_distance
from ..numerics.face_loops import interpolate_to_faces
from ..numerics.scalar_transport import advect_scalar, diffuse_scalar
from ..numerics.updates import apply_patankar_update
from ..operators.base import DiscretizationOperator

NDArrayFloat = npt.NDArray[np.floating]

Y_PLUS_LAMINAR = 11.25
WALL_FUNCTION_ITERATIONS = 20


def friction_velocity(u_t: NDArrayFloat, y: NDArrayFloat, nu: NDArrayFloat,
                      kappa: float, E: float, iterations: int = WALL_FUNCTION_ITERATIONS) -> NDArrayFloat:
    """
    Solve the log law u_t / u_tau = ln(E y u_tau / nu) / kappa for u_tau.

    Newton iterations on f(u_tau) = kappa u_t / u_tau - ln(E y u_tau / nu),
    started from the laminar estimate sqrt(nu u_t / y).
    """
    u_tau = np.sqrt(np.maximum(nu * u_t / y, 1e-300))
    for _ in range(iterations):
        f = kappa * u_t / u_tau - np.log(np.maximum(E * y * u_tau / nu, 1e-300))
        df = -kappa * u_t / u_tau ** 2 - 1.0 / u_tau
        u_tau = np.maximum(u_tau - f / df, 1e-12)
    return u_tau


class TurbulenceClosure(DiscretizationOperator):
    """
    Base class of the turbulence closures.

    Parameters
    ----------
    flow : NavierStokesOperator
        The flow operator supplying density, velocity and viscosity.
    names : sequence of str
        Equation names.
    cfg : SpalartAllmarasConfig or KappaOmegaConfig
        Closure constants and numerics.
    """

    def __init__(self, flow, names: Sequence[str], cfg):
        super().__init__(flow.mesh, names, smoothing=cfg.smoothing, time_step=flow.time_step)
        self.flow = flow
        self.cfg = cfg
        self.wall_distance = np.array(flow.mesh.wall_distance, dtype=float)
        self.y_plus = np.zeros(flow.mesh.n_boundary)

    # -------------------------------------------------------------------------
    # Flow quantities
    # -------------------------------------------------------------------------

    def laminar_viscosity(self):
        """Kinematic viscosity in cells and on boundary faces."""
        return self.flow.mu / self.flow.rho, self.flow.mu_b / self.flow.rho_b

    def face_values(self, phi: NDArrayFloat, phi_b: NDArrayFloat) -> NDArrayFloat:
        """Cell field interpolated to every face."""
        mesh = self.mesh
        weights = mesh.weights if self.flow.numerics.distance_weighted else np.full(mesh.n_internal, 0.5)
        return interpolate_to_faces(phi, phi_b, mesh.owner, mesh.neighbour, weights)

    def pseudo_time_step(self) -> NDArrayFloat:
        return self.flow.dt

    # -------------------------------------------------------------------------
    # Transport helpers
    # -------------------------------------------------------------------------

    def _advect(self, i: int) -> None:
        self.fields.rhs(i)[...] += advect_scalar(
            self.conservative(i), self.boundary(i),
            self.flow.face_velocity, self.flow.face_wave, self.mesh,
            linear_fix=self.cfg.linear_fix,
            high_resolution=self.cfg.high_resolution,
            limiter=self.cfg.limiter,
        )

    def _diffuse(self, i: int, gamma_f: NDArrayFloat) -> None:
        self.fields.rhs(i)[...] += diffuse_scalar(self.conservative(i), self.boundary(i), gamma_f, self.mesh)

    def advection(self) -> None:
        for i in range(self.size()):
            self._advect(i)

    def _advance(self, alpha: float) -> None:
        """Point-implicit update from the checkpoint, kept positive by Patankar."""
        dtau = self.flow.dt
        V = self.mesh.V
        for i in range(self.size()):
            dq = alpha * dtau * self.fields.rhs(i) / (V + alpha * dtau * self.fields.lhs(i))
            self.fields.conservative(i)[...] = apply_patankar_update(self.fields.start(i), dq,
                                                                     floor=self.cfg.small)

    # -------------------------------------------------------------------------
    # Wall treatment
    # -------------------------------------------------------------------------

    def wall_functions(self) -> None:
        """
        Log-law eddy viscosity on wall faces.

        Where the first cell lies beyond the viscous sublayer
        (y+ > 11.25) the wall eddy viscosity mu (y+ kappa / ln(E y+) - 1)
        reproduces the log-law wall shear with the two-point gradient.
        """
        if not self.cfg.wall_functions:
            return
        mesh = self.mesh
        flow = self.flow
        for patch in mesh.patches_of_kind(WALL_KINDS):
            bs = mesh.boundary_slice(patch)
            cells = mesh.owner[patch.faces]
            n = mesh.n[patch.faces]
            y = mesh.delta[patch.faces]

            du = flow.U[cells] - flow.U_b[bs]
            du_t = du - np.sum(du * n, axis=1)[:, None] * n
            u_t = np.linalg.norm(du_t, axis=1)

            mu = flow.mu[cells]
            nu = mu / flow.rho[cells]
            u_tau = friction_velocity(u_t, y, nu, self.cfg.kappa, self.cfg.E)
            y_plus = y * u_tau / nu
            self.y_plus[bs] = y_plus

            log_term = np.log(np.maximum(self.cfg.E * y_plus, 1.0 + 1e-12))
            mu_tur_w = np.where(y_plus > Y_PLUS_LAMINAR,
                                mu * np.maximum(y_plus * self.cfg.kappa / log_term - 1.0, 0.0),
                                0.0)
            flow.set_wall_eddy_viscosity(patch, mu_tur_w)

    def update_wall_distance(self) -> None:
        """Recompute the wall distance from the current mesh geometry."""
        self.wall_distance[...] = compute_wall_distance(self.mesh)
        logger.debug(f"{type(self).__name__}: wall distance refreshed, "
                     f"min={float(np.min(self.wall_distance)):.3e}")
