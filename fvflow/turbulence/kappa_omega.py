"""
Menter SST k-omega two-equation closure.

    dk/dt + U·∇k = P_k - β* k ω + ∇·((ν + σk νt) ∇k)
    dω/dt + U·∇ω = γ S² - β ω² + CDkω + ∇·((ν + σω νt) ∇ω)

Coefficients are blended between the inner (k-ω) and outer (k-ε) sets with
F1; the eddy viscosity is limited with F2.

Reference: Menter (1994), AIAA Journal 32(8), 1598-1605.
"""

import numpy as np
from loguru import logger

from ..fields.boundary_conditions import correct_scalar_boundaries
from ..grid.mesh import WALL_KINDS
from ..numerics.gradients import green_gauss, strain_magnitude
from ..physics import kappa_omega as kw
from .base import TurbulenceClosure

K_IDX = 0
OMEGA_IDX = 1


class KappaOmegaClosure(TurbulenceClosure):
    """SST closure with working variables k and omega."""

    def __init__(self, flow, cfg):
        super().__init__(flow, ("k", "omega"), cfg)

        fs = flow.config.freestream
        rho_inf = float(flow.gas.density(flow.freestream.p, flow.freestream.T))
        nu_inf = float(flow.gas.viscosity(flow.freestream.T)) / rho_inf
        speed = float(np.linalg.norm(flow.freestream.U))
        self.k_inflow = 1.5 * (fs.turbulence_intensity * speed) ** 2
        self.omega_inflow = self.k_inflow / (fs.viscosity_ratio * nu_inf)
        self.omega_wall = np.zeros(self.mesh.n_boundary)

        self.k[...] = self.k_inflow
        self.omega[...] = self.omega_inflow
        self.correct_boundary_conditions()
        self.update()
        self.store()
        self.checkpoint()

        logger.debug(f"KappaOmega: inflow k={self.k_inflow:.3e}, omega={self.omega_inflow:.3e}")

    @property
    def k(self):
        return self.conservative(K_IDX)

    @property
    def omega(self):
        return self.conservative(OMEGA_IDX)

    @property
    def k_b(self):
        return self.boundary(K_IDX)

    @property
    def omega_b(self):
        return self.boundary(OMEGA_IDX)

    def _blending(self):
        """F1, ∇k·∇ω and the laminar viscosity in cells."""
        cfg = self.cfg
        dw = self.flow.numerics.distance_weighted
        grad_k = green_gauss(self.k, self.k_b, self.mesh, dw)
        grad_w = green_gauss(self.omega, self.omega_b, self.mesh, dw)
        k_dot_omega = np.sum(grad_k * grad_w, axis=1)
        nu, _ = self.laminar_viscosity()
        F1 = kw.f1(self.k, self.omega, self.wall_distance, nu, k_dot_omega,
                   cfg.alphaOmega2, cfg.betaStar)
        return F1, k_dot_omega, nu

    def diffusion(self) -> None:
        cfg = self.cfg
        F1, _, nu = self._blending()
        _, nu_b = self.laminar_viscosity()
        nu_t = self.flow.muTur / self.flow.rho
        nu_t_b = self.flow.muTur_b / self.flow.rho_b
        owner_b = self.mesh.boundary_owner

        for i, (c1, c2) in ((K_IDX, (cfg.alphaKappa1, cfg.alphaKappa2)),
                            (OMEGA_IDX, (cfg.alphaOmega1, cfg.alphaOmega2))):
            sigma = kw.blend(F1, c1, c2)
            gamma = nu + sigma * nu_t
            gamma_b = nu_b + sigma[owner_b] * nu_t_b
            self._diffuse(i, self.face_values(gamma, gamma_b))

    def source(self, unsteady: bool = False) -> None:
        cfg = self.cfg
        F1, k_dot_omega, _ = self._blending()
        strain = strain_magnitude(self.flow.grad_U)
        nu_t = self.flow.muTur / self.flow.rho

        src = kw.sst_sources(self.k, self.omega, strain, nu_t, F1, k_dot_omega,
                             gamma1=cfg.gamma1, gamma2=cfg.gamma2,
                             beta1=cfg.beta1, beta2=cfg.beta2, beta_star=cfg.betaStar,
                             alpha_omega2=cfg.alphaOmega2, c1=cfg.c1)

        V = self.mesh.V
        self.fields.rhs(K_IDX)[...] += V * (src.production_k - src.destruction_k)
        self.fields.lhs(K_IDX)[...] += V * src.d_destruction_k
        self.fields.rhs(OMEGA_IDX)[...] += V * (src.production_omega - src.destruction_omega
                                                + src.cross_diffusion)
        self.fields.lhs(OMEGA_IDX)[...] += V * src.d_destruction_omega

        if unsteady:
            self._add_dual_time_terms()

    def update(self) -> None:
        """Push muTur = rho a1 k / max(a1 omega, S F2) and kTur = k to the flow."""
        cfg = self.cfg
        flow = self.flow
        nu, _ = self.laminar_viscosity()
        strain = strain_magnitude(flow.grad_U)
        F2 = kw.f2(self.k, self.omega, self.wall_distance, nu, cfg.betaStar)
        nu_t = kw.eddy_viscosity(self.k, self.omega, strain, F2, cfg.a1)

        owner_b = self.mesh.boundary_owner
        nu_t_b = kw.eddy_viscosity(self.k_b, np.maximum(self.omega_b, cfg.small),
                                   strain[owner_b], F2[owner_b], cfg.a1)
        flow.update_turbulence(flow.rho * nu_t, self.k.copy(), flow.rho_b * nu_t_b, self.k_b.copy())

    def correct_boundary_conditions(self) -> None:
        """Inflow values on inlets, k = 0 and omega = 60 nu / (beta1 y²) on walls."""
        mesh = self.mesh
        _, nu_b = self.laminar_viscosity()
        for patch in mesh.patches_of_kind(WALL_KINDS):
            bs = mesh.boundary_slice(patch)
            y = mesh.delta[patch.faces]
            self.omega_wall[bs] = 60.0 * nu_b[bs] / (self.cfg.beta1 * y ** 2)

        correct_scalar_boundaries(mesh, self.k, self.k_b, inflow_value=self.k_inflow, wall_value=0.0)
        correct_scalar_boundaries(mesh, self.omega, self.omega_b,
                                  inflow_value=self.omega_inflow, wall_value=self.omega_wall)
