"""
Aerodynamic loads on wall patches.

Integrates pressure and wall shear over the faces of the wall patches and
returns the total force and the moment about a reference point. These are
the aggregated quantities an aeroelastic coupling layer consumes once per
physical time step.
"""

from typing import NamedTuple, Sequence, Optional

import numpy as np
import numpy.typing as npt

from ..grid.mesh import WALL_KINDS

NDArrayFloat = npt.NDArray[np.floating]


class AeroLoads(NamedTuple):
    """Integrated wall loads."""
    force: NDArrayFloat           # Total force (3,)
    moment: NDArrayFloat          # Moment about the reference point (3,)
    pressure_force: NDArrayFloat  # Pressure contribution (3,)
    viscous_force: NDArrayFloat   # Shear contribution (3,)


def integrate_wall_loads(p_b: NDArrayFloat, U: NDArrayFloat, U_b: NDArrayFloat,
                         mu_eff_b: NDArrayFloat, mesh,
                         p_ref: float = 0.0,
                         reference_point: Optional[Sequence[float]] = None,
                         kinds: Sequence[str] = WALL_KINDS) -> AeroLoads:
    """
    Force and moment exerted by the fluid on the wall patches.

    Pressure acts along the outward face normal (into the body); the shear
    stress is approximated from the tangential velocity jump between the
    wall-adjacent cell and the wall over the normal distance.

    Parameters
    ----------
    p_b : ndarray
        Boundary-face pressure (n_boundary,).
    U, U_b : ndarray
        Cell velocity (n_cells, 3) and boundary-face velocity (n_boundary, 3).
    mu_eff_b : ndarray
        Effective viscosity on boundary faces; zero for inviscid flow.
    mesh : FVMesh
    p_ref : float
        Reference pressure subtracted before integration.
    reference_point : sequence of 3 floats, optional
        Moment reference (default origin).
    kinds : sequence of str
        Patch kinds to integrate over.

    Returns
    -------
    AeroLoads
    """
    x_ref = np.zeros(3) if reference_point is None else np.asarray(reference_point, dtype=float)
    f_p = np.zeros(3)
    f_v = np.zeros(3)
    moment = np.zeros(3)

    for patch in mesh.patches_of_kind(kinds):
        faces = patch.faces
        bs = mesh.boundary_slice(patch)
        n = mesh.n[faces]
        S = mesh.Sf[faces]
        cells = mesh.owner[faces]

        dF_p = ((p_b[bs] - p_ref) * S)[:, None] * n

        du = U[cells] - U_b[bs]
        du_t = du - np.sum(du * n, axis=1)[:, None] * n
        dF_v = (mu_eff_b[bs] * S / mesh.delta[faces])[:, None] * du_t

        dF = dF_p + dF_v
        f_p += dF_p.sum(axis=0)
        f_v += dF_v.sum(axis=0)
        moment += np.cross(mesh.Cf[faces] - x_ref, dF).sum(axis=0)

    reduce = mesh.reductions.sum
    f_p = np.array([reduce(v) for v in f_p])
    f_v = np.array([reduce(v) for v in f_v])
    moment = np.array([reduce(v) for v in moment])

    return AeroLoads(force=f_p + f_v, moment=moment, pressure_force=f_p, viscous_force=f_v)
