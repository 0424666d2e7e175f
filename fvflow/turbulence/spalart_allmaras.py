"""
Spalart-Allmaras one-equation closure.

    dν̃/dt + U·∇ν̃ = cb1 S̃ ν̃ - cw1 fw (ν̃/d)²
                    + (1/σ) [∇·((ν + ν̃) ∇ν̃) + cb2 |∇ν̃|²]

The destruction-minus-production derivative feeds the point-implicit
diagonal, so the update stays stable for stiff near-wall sources.

Reference: Spalart & Allmaras (1994), La Recherche Aérospatiale 1, 5-21.
"""

import numpy as np
from loguru import logger

from ..numerics.gradients import green_gauss, vorticity_magnitude, strain_magnitude
from ..fields.boundary_conditions import correct_scalar_boundaries
from ..physics import spalart_allmaras as sa
from .base import TurbulenceClosure

NU_TILDA_IDX = 0


class SpalartAllmarasClosure(TurbulenceClosure):
    """Spalart-Allmaras closure with working variable nuTilda."""

    def __init__(self, flow, cfg):
        super().__init__(flow, ("nuTilda",), cfg)

        fs = flow.config.freestream
        rho_inf = flow.gas.density(flow.freestream.p, flow.freestream.T)
        nu_inf = float(flow.gas.viscosity(flow.freestream.T)) / float(rho_inf)
        self.inflow_value = fs.nu_tilda_ratio * nu_inf

        self.conservative(NU_TILDA_IDX)[...] = self.inflow_value
        self.correct_boundary_conditions()
        self.update()
        self.store()
        self.checkpoint()

        logger.debug(f"Spalart-Allmaras: kappa={cfg.kappa}, Cw1={cfg.Cw1:.4f}, "
                     f"inflow nuTilda={self.inflow_value:.3e}")

    @property
    def nu_tilda(self):
        return self.conservative(NU_TILDA_IDX)

    @property
    def nu_tilda_b(self):
        return self.boundary(NU_TILDA_IDX)

    def diffusion(self) -> None:
        nu, nu_b = self.laminar_viscosity()
        nu_f = self.face_values(nu, nu_b)
        nt_f = self.face_values(self.nu_tilda, self.nu_tilda_b)
        self._diffuse(NU_TILDA_IDX, (nu_f + nt_f) / self.cfg.sigma)

    def source(self, unsteady: bool = False) -> None:
        cfg = self.cfg
        flow = self.flow
        nt = self.nu_tilda
        nu, _ = self.laminar_viscosity()

        omega = sa.vorticity_measure(vorticity_magnitude(flow.grad_U),
                                     strain_magnitude(flow.grad_U), cfg.Cprod)
        src = sa.sa_sources(omega, nt, nu, self.wall_distance,
                            kappa=cfg.kappa, cb1=cfg.Cb1, cw1=cfg.Cw1,
                            cv1=cfg.Cv1, cw2=cfg.Cw2, cw3=cfg.Cw3)

        grad_nt = green_gauss(nt, self.nu_tilda_b, self.mesh, flow.numerics.distance_weighted)
        cross = cfg.Cb2 / cfg.sigma * np.sum(grad_nt * grad_nt, axis=1)

        V = self.mesh.V
        self.fields.rhs(NU_TILDA_IDX)[...] += V * (src.production - src.destruction + cross)
        self.fields.lhs(NU_TILDA_IDX)[...] += V * np.maximum(src.d_destruction - src.d_production, 0.0)

        if unsteady:
            self._add_dual_time_terms()

    def update(self) -> None:
        """Push muTur = rho nuTilda fv1 and kTur = 0 to the flow."""
        flow = self.flow
        nu, nu_b = self.laminar_viscosity()
        mu_tur = sa.eddy_viscosity(self.nu_tilda, nu, flow.rho, self.cfg.Cv1)
        mu_tur_b = sa.eddy_viscosity(self.nu_tilda_b, nu_b, flow.rho_b, self.cfg.Cv1)
        flow.update_turbulence(mu_tur, np.zeros_like(mu_tur), mu_tur_b, np.zeros_like(mu_tur_b))

    def correct_boundary_conditions(self) -> None:
        correct_scalar_boundaries(self.mesh, self.nu_tilda, self.nu_tilda_b,
                                  inflow_value=self.inflow_value, wall_value=0.0)
