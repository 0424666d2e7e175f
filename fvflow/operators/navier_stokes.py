"""
Flow operator for the compressible Euler / Reynolds-averaged Navier-Stokes
equations.

Equation set: rho, m = rho U (vector), Et. The operator keeps the primitive
state (p, U, T) in sync with the conservative one, and the auxiliary fields
shared with a turbulence closure: laminar viscosity mu, eddy viscosity
muTur and turbulent kinetic energy kTur. Closures write muTur and kTur only
through update_turbulence().
"""

from typing import Optional, Sequence

import numpy as np
import numpy.typing as npt
from loguru import logger

from ..config.schema import SimulationConfig
from ..constants import RHO_IDX, M_IDX, ET_IDX
from ..fields.boundary_conditions import FreestreamState, correct_flow_boundaries
from ..grid.mesh import WALL_KINDS
from ..numerics.face_loops import scatter_outflow, interpolate_to_faces
from ..numerics.fluxes import FluxConfig, compute_convective_fluxes
from ..numerics.forces import AeroLoads, integrate_wall_loads
from ..numerics.gradients import green_gauss
from ..numerics.reconstruction import limiter_id
from ..numerics.time_stepping import (
    CourantStatistics,
    VISCOUS_FACTOR,
    convective_spectral_radius,
    viscous_spectral_radius,
    compute_local_timestep,
    bound_timestep,
    courant_statistics,
)
from ..numerics.viscous_fluxes import compute_viscous_fluxes
from ..physics.thermodynamics import PerfectGas
from .base import DiscretizationOperator

NDArrayFloat = npt.NDArray[np.floating]

FlowStatistics = CourantStatistics


class NavierStokesOperator(DiscretizationOperator):
    """
    Discretization of the flow equations.

    Parameters
    ----------
    mesh : FVMesh
    config : SimulationConfig
        physics selects Euler or RANS; flow holds the numerics.
    """

    def __init__(self, mesh, config: Optional[SimulationConfig] = None):
        config = config or SimulationConfig()
        self.config = config
        self.variant = config.physics_variant
        self.numerics = config.flow
        self.gas = PerfectGas.from_config(config.gas)
        self.freestream = FreestreamState.from_config(config.freestream)

        self.flux_config = FluxConfig(
            scheme=self.numerics.flux,
            high_resolution=self.numerics.high_resolution,
            limiter=self.numerics.limiter,
            roe_average=self.numerics.roe_average,
            nonlinear_fix=self.numerics.nonlinear_fix,
            linear_fix=self.numerics.linear_fix,
            k2=self.numerics.jst_k2,
            k4=self.numerics.jst_k4,
        )
        # Fail on bad names now rather than inside the first face loop
        self.flux_config.scheme_id()
        limiter_id(self.flux_config.limiter)

        super().__init__(mesh, ("rho", "m", "Et"), (1, 3, 1),
                         smoothing=self.numerics.smoothing,
                         time_step=config.solver.time_step)

        nc, nb, nf = mesh.n_cells, mesh.n_boundary, mesh.n_faces

        # Primitive state
        self.p = np.zeros(nc)
        self.U = np.zeros((nc, 3))
        self.T = np.zeros(nc)
        self.p_b = np.zeros(nb)
        self.U_b = np.zeros((nb, 3))
        self.T_b = np.zeros(nb)

        # Auxiliary fields shared with the turbulence closure
        self.mu = np.zeros(nc)
        self.mu_b = np.zeros(nb)
        self.muTur = np.zeros(nc)
        self.muTur_b = np.zeros(nb)
        self.kTur = np.zeros(nc)
        self.kTur_b = np.zeros(nb)

        # Gradients and face transport velocities
        self.grad_U = np.zeros((nc, 3, 3))
        self.grad_T = np.zeros((nc, 3))
        self.face_velocity = np.zeros(nf)
        self.face_wave = np.zeros(nf)

        # Pseudo-time stepping
        self.dt = np.zeros(nc)
        self.courant = np.zeros(nc)
        self.spectral_radius = np.zeros(nc)
        self._statistics: Optional[FlowStatistics] = None

        p, U, T = self.freestream.arrays(nc)
        self.set_state(p, U, T)

        logger.debug(f"Flow operator: {self.variant}, flux={self.numerics.flux}, "
                     f"high_resolution={self.numerics.high_resolution}, limiter={self.numerics.limiter}")

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def rho(self) -> NDArrayFloat:
        return self.fields.conservative(RHO_IDX)

    @property
    def m(self) -> NDArrayFloat:
        return self.fields.conservative(M_IDX)

    @property
    def Et(self) -> NDArrayFloat:
        return self.fields.conservative(ET_IDX)

    @property
    def rho_b(self) -> NDArrayFloat:
        return self.fields.boundary(RHO_IDX)

    @property
    def m_b(self) -> NDArrayFloat:
        return self.fields.boundary(M_IDX)

    @property
    def Et_b(self) -> NDArrayFloat:
        return self.fields.boundary(ET_IDX)

    @property
    def viscous(self) -> bool:
        return self.variant == "RANS"

    def set_state(self, p: NDArrayFloat, U: NDArrayFloat, T: NDArrayFloat) -> None:
        """Initialize all cells from primitives and commit them as the stored state."""
        rho, m, Et = self.gas.conservative(np.asarray(p, dtype=float),
                                           np.asarray(U, dtype=float),
                                           np.asarray(T, dtype=float))
        self.rho[...] = rho
        self.m[...] = m
        self.Et[...] = Et
        self.update()
        self.correct_boundary_conditions()
        self.store()
        self.checkpoint()

    def update_turbulence(self, mu_tur: NDArrayFloat, k_tur: NDArrayFloat,
                          mu_tur_b: Optional[NDArrayFloat] = None,
                          k_tur_b: Optional[NDArrayFloat] = None) -> None:
        """Coupling point for closures: eddy viscosity and turbulent kinetic energy."""
        owner_b = self.mesh.boundary_owner
        self.muTur[...] = mu_tur
        self.kTur[...] = k_tur
        self.muTur_b[...] = self.muTur[owner_b] if mu_tur_b is None else mu_tur_b
        self.kTur_b[...] = self.kTur[owner_b] if k_tur_b is None else k_tur_b

    def set_wall_eddy_viscosity(self, patch, mu_tur_w: NDArrayFloat) -> None:
        """Override the eddy viscosity on the faces of a wall patch."""
        self.muTur_b[self.mesh.boundary_slice(patch)] = mu_tur_w

    # -------------------------------------------------------------------------
    # Discretization
    # -------------------------------------------------------------------------

    def _add_face_fluxes(self, flux: NDArrayFloat, sign: float) -> None:
        res = scatter_outflow(flux, self.mesh.owner, self.mesh.neighbour, self.mesh.n_cells, sign)
        self.fields.rhs(RHO_IDX)[...] += res[:, 0]
        self.fields.rhs(M_IDX)[...] += res[:, 1:4]
        self.fields.rhs(ET_IDX)[...] += res[:, 4]

    def advection(self) -> None:
        flux = compute_convective_fluxes(self.rho, self.U, self.p,
                                         self.rho_b, self.U_b, self.p_b,
                                         self.mesh, self.gas.gamma, self.flux_config)
        self._add_face_fluxes(flux, 1.0)

    def diffusion(self) -> None:
        if not self.viscous:
            return
        mu_eff = self.mu + self.muTur
        mu_eff_b = self.mu_b + self.muTur_b
        flux = compute_viscous_fluxes(
            self.U, self.T, self.U_b, self.T_b, self.grad_U, self.grad_T,
            mu_eff, self.gas.conductivity(self.mu, self.muTur), self.rho * self.kTur,
            mu_eff_b, self.gas.conductivity(self.mu_b, self.muTur_b), self.rho_b * self.kTur_b,
            self.mesh, self.numerics.distance_weighted,
        )
        self._add_face_fluxes(flux, -1.0)

    def source(self, unsteady: bool = False) -> None:
        """No volumetric flow source; only the dual-time term when unsteady."""
        if unsteady:
            self._add_dual_time_terms()

    def pseudo_time_step(self) -> NDArrayFloat:
        return self.dt

    def _advance(self, alpha: float) -> None:
        """W = W0 + alpha dtau / V R, with the dual-time term point-implicit."""
        factor = alpha * self.dt / self.mesh.V
        if self.dts.active:
            factor = factor / (1.0 + alpha * self.dts.coefficient * self.dt / self.time_step)
        for i in range(self.size()):
            f = factor if self.fields.components[i] == 1 else factor[:, None]
            self.fields.conservative(i)[...] = self.fields.start(i) + f * self.fields.rhs(i)

    def update(self) -> None:
        """Primitive state and laminar viscosity from the conservative state."""
        p, U, T = self.gas.primitive(self.rho, self.m, self.Et)
        self.p[...] = p
        self.U[...] = U
        self.T[...] = T
        self.mu[...] = self.gas.viscosity(T)

    def correct_boundary_conditions(self) -> None:
        """Boundary state, then the gradients and face velocities built on it."""
        correct_flow_boundaries(self.mesh, self.gas, self.freestream,
                                self.rho, self.m, self.Et, self.p, self.U, self.T,
                                self.rho_b, self.m_b, self.Et_b)
        p_b, U_b, T_b = self.gas.primitive(self.rho_b, self.m_b, self.Et_b)
        self.p_b[...] = p_b
        self.U_b[...] = U_b
        self.T_b[...] = T_b
        self.mu_b[...] = self.gas.viscosity(T_b)
        self._update_face_fields()

    def _update_face_fields(self) -> None:
        mesh = self.mesh
        dw = self.numerics.distance_weighted
        weights = mesh.weights if dw else np.full(mesh.n_internal, 0.5)

        self.grad_U[...] = green_gauss(self.U, self.U_b, mesh, dw)
        if self.viscous:
            self.grad_T[...] = green_gauss(self.T, self.T_b, mesh, dw)

        U_f = interpolate_to_faces(self.U, self.U_b, mesh.owner, mesh.neighbour, weights)
        T_f = interpolate_to_faces(self.T, self.T_b, mesh.owner, mesh.neighbour, weights)
        self.face_velocity[...] = np.sum(U_f * mesh.n, axis=1) - mesh.Vf
        self.face_wave[...] = np.abs(self.face_velocity) + self.gas.sound_speed(T_f)

    # -------------------------------------------------------------------------
    # Pseudo-time step
    # -------------------------------------------------------------------------

    def _spectral_radii(self):
        """Convective and viscous spectral radius per cell (viscous is zero for Euler)."""
        lam_c = convective_spectral_radius(self.face_wave, self.mesh)
        if not self.viscous:
            return lam_c, np.zeros_like(lam_c)
        lam_v = viscous_spectral_radius(self.rho, self.mu, self.muTur, self.gas.gamma,
                                        self.gas.Pr, self.gas.Prt, self.mesh)
        return lam_c, lam_v

    def update_dt(self, time_stepping: str = "local", cfl: float = 1.5,
                  min_max: float = 100.0, bounds: str = "global") -> FlowStatistics:
        """
        Pseudo-time step from the Courant target.

        Returns the Courant and dt statistics after bounding.
        """
        lam_c, lam_v = self._spectral_radii()
        dt = compute_local_timestep(lam_c, lam_v, cfl, self.mesh)
        self.dt[...] = bound_timestep(dt, self.mesh, time_stepping, bounds, min_max)
        return self.update_courant(lam_c + VISCOUS_FACTOR * lam_v)

    def update_courant(self, spectral_radius: Optional[NDArrayFloat] = None) -> FlowStatistics:
        """Courant number per cell for the current dt and state."""
        if spectral_radius is None:
            lam_c, lam_v = self._spectral_radii()
            spectral_radius = lam_c + VISCOUS_FACTOR * lam_v
        self.spectral_radius[...] = spectral_radius
        self.courant[...] = self.dt * self.spectral_radius / self.mesh.V
        self._statistics = courant_statistics(self.courant, self.dt, self.mesh.reductions)
        return self._statistics

    def statistics(self) -> Optional[FlowStatistics]:
        """Statistics of the last update_courant call."""
        return self._statistics

    # -------------------------------------------------------------------------
    # Outward interface
    # -------------------------------------------------------------------------

    def loads(self, kinds: Sequence[str] = WALL_KINDS, p_ref: Optional[float] = None,
              reference_point: Optional[Sequence[float]] = None) -> AeroLoads:
        """Force and moment on the wall patches, relative to the freestream pressure."""
        p_ref = self.freestream.p if p_ref is None else p_ref
        mu_eff_b = self.mu_b + self.muTur_b if self.viscous else np.zeros(self.mesh.n_boundary)
        return integrate_wall_loads(self.p_b, self.U, self.U_b, mu_eff_b, self.mesh,
                                    p_ref=p_ref, reference_point=reference_point, kinds=kinds)
