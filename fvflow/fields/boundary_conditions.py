"""
Boundary-value policies per patch kind.

Boundary values live on boundary faces. Each operator refreshes them from
the cell values after every update (correct_boundary_conditions):

Flow (conservative state on the face):
    inlet, freestream : fixed freestream (p, U, T)
    outlet            : fixed freestream pressure, U and T extrapolated
    extrapolated      : all conservative variables copied from the owner
    wall              : no-slip (face moves with the mesh), p and T extrapolated
    slip, symmetry    : normal relative velocity removed, p and T extrapolated

Transported scalars:
    inlet, freestream : fixed inflow value
    wall              : fixed wall value
    others            : zero gradient
"""

from dataclasses import dataclass
from typing import Union

import numpy as np
import numpy.typing as npt

NDArrayFloat = npt.NDArray[np.floating]

INFLOW_KINDS = ("inlet", "freestream")
WALL_KINDS = ("wall",)
SLIP_KINDS = ("slip", "symmetry")


@dataclass
class FreestreamState:
    """Primitive freestream state used by fixed-value patches."""
    p: float
    U: NDArrayFloat
    T: float

    @classmethod
    def from_config(cls, cfg) -> "FreestreamState":
        return cls(p=float(cfg.p), U=np.asarray(cfg.U, dtype=float), T=float(cfg.T))

    def arrays(self, n: int):
        """Freestream (p, U, T) broadcast to n faces or cells."""
        return np.full(n, self.p), np.tile(self.U, (n, 1)), np.full(n, self.T)


def correct_flow_boundaries(mesh, gas, freestream: FreestreamState,
                            rho: NDArrayFloat, m: NDArrayFloat, Et: NDArrayFloat,
                            p: NDArrayFloat, U: NDArrayFloat, T: NDArrayFloat,
                            rho_b: NDArrayFloat, m_b: NDArrayFloat, Et_b: NDArrayFloat) -> None:
    """
    Refresh the boundary conservative state in place.

    Parameters
    ----------
    mesh : FVMesh
    gas : PerfectGas
    freestream : FreestreamState
    rho, m, Et : ndarray
        Cell conservative state.
    p, U, T : ndarray
        Cell pressure, velocity and temperature (consistent with rho, m, Et).
    rho_b, m_b, Et_b : ndarray
        Boundary-face conservative state, overwritten.
    """
    for patch in mesh.patches:
        bs = mesh.boundary_slice(patch)
        cells = mesh.owner[patch.faces]
        kind = patch.kind

        if kind in INFLOW_KINDS:
            p_f, U_f, T_f = freestream.arrays(patch.size)
            rho_b[bs], m_b[bs], Et_b[bs] = gas.conservative(p_f, U_f, T_f)
        elif kind == "extrapolated":
            rho_b[bs] = rho[cells]
            m_b[bs] = m[cells]
            Et_b[bs] = Et[cells]
        elif kind == "outlet":
            p_f = np.full(patch.size, freestream.p)
            rho_b[bs], m_b[bs], Et_b[bs] = gas.conservative(p_f, U[cells], T[cells])
        elif kind in WALL_KINDS:
            # No-slip: the fluid follows the face
            U_f = mesh.Vf[patch.faces][:, None] * mesh.n[patch.faces]
            rho_b[bs], m_b[bs], Et_b[bs] = gas.conservative(p[cells], U_f, T[cells])
        elif kind in SLIP_KINDS:
            n = mesh.n[patch.faces]
            U_c = U[cells]
            un = np.sum(U_c * n, axis=1) - mesh.Vf[patch.faces]
            U_f = U_c - un[:, None] * n
            rho_b[bs], m_b[bs], Et_b[bs] = gas.conservative(p[cells], U_f, T[cells])
        else:
            raise ValueError(f"Unknown patch kind '{kind}' on patch '{patch.name}'")


def correct_scalar_boundaries(mesh, phi: NDArrayFloat, phi_b: NDArrayFloat,
                              inflow_value: Union[float, NDArrayFloat],
                              wall_value: Union[float, NDArrayFloat] = 0.0) -> None:
    """
    Refresh boundary values of a transported scalar in place.

    ``inflow_value`` and ``wall_value`` may be scalars or arrays over all
    boundary faces (only the entries of the matching patches are used).
    """
    for patch in mesh.patches:
        bs = mesh.boundary_slice(patch)
        cells = mesh.owner[patch.faces]
        kind = patch.kind

        if kind in INFLOW_KINDS:
            phi_b[bs] = inflow_value[bs] if np.ndim(inflow_value) else inflow_value
        elif kind in WALL_KINDS:
            phi_b[bs] = wall_value[bs] if np.ndim(wall_value) else wall_value
        else:
            phi_b[bs] = phi[cells]
