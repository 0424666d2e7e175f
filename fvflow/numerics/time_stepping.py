"""
Local pseudo-time stepping on unstructured meshes.

Δt_i = CFL · V_i / (Λc_i + C Λv_i)

with the convective spectral radius summed over the faces of cell i

    Λc_i = Σ_f (|q_f| + c_f) S_f

and, for viscous flow, the viscous spectral radius

    Λv_i = Σ_f max(4/3, γ)/ρ_i · (μ/Pr + μt/Prt)_i · S_f² / V_i

Bounding limits how far a cell may run ahead of the stiffest cells:
"global" caps every dt at min_max times the global minimum, "local" at
min_max times the smallest dt among the cell and its face neighbours.

Reference: Blazek, Computational Fluid Dynamics, section 6.1.4.
"""

from typing import NamedTuple

import numpy as np
import numpy.typing as npt
from numba import njit

NDArrayFloat = npt.NDArray[np.floating]

VISCOUS_FACTOR = 4.0
TIME_STEPPING_MODES = ("local", "global")
BOUNDS_MODES = ("global", "local", "none")


class CourantStatistics(NamedTuple):
    """Global statistics of the Courant number and the pseudo-time step."""
    courant_min: float
    courant_max: float
    courant_avg: float
    courant_std: float
    dt_min: float
    dt_max: float
    dt_avg: float


@njit(cache=True)
def _face_sum_kernel(face_value, owner, neighbour, out):
    n_internal = neighbour.shape[0]
    for f in range(owner.shape[0]):
        out[owner[f]] += face_value[f]
        if f < n_internal:
            out[neighbour[f]] += face_value[f]


@njit(cache=True)
def _neighbour_min_kernel(dt, owner, neighbour, out):
    for i in range(dt.shape[0]):
        out[i] = dt[i]
    for f in range(neighbour.shape[0]):
        o = owner[f]
        nb = neighbour[f]
        if dt[nb] < out[o]:
            out[o] = dt[nb]
        if dt[o] < out[nb]:
            out[nb] = dt[o]


def convective_spectral_radius(wave: NDArrayFloat, mesh) -> NDArrayFloat:
    """Λc per cell from the face wave speed |q| + c."""
    out = np.zeros(mesh.n_cells)
    _face_sum_kernel(np.ascontiguousarray(wave * mesh.Sf), mesh.owner, mesh.neighbour, out)
    return out


def viscous_spectral_radius(rho: NDArrayFloat, mu: NDArrayFloat, mu_tur: NDArrayFloat,
                            gamma: float, Pr: float, Prt: float, mesh) -> NDArrayFloat:
    """Λv per cell."""
    area2 = np.zeros(mesh.n_cells)
    _face_sum_kernel(np.ascontiguousarray(mesh.Sf ** 2), mesh.owner, mesh.neighbour, area2)
    coeff = max(4.0 / 3.0, gamma) / rho * (mu / Pr + mu_tur / Prt)
    return coeff * area2 / mesh.V


def compute_local_timestep(lambda_c: NDArrayFloat, lambda_v: NDArrayFloat,
                           cfl: float, mesh) -> NDArrayFloat:
    """Unbounded local pseudo-time step from the spectral radii."""
    lam = lambda_c + VISCOUS_FACTOR * lambda_v
    return cfl * mesh.V / np.maximum(lam, 1e-300)


def bound_timestep(dt: NDArrayFloat, mesh, time_stepping: str = "local",
                   bounds: str = "global", min_max: float = 100.0) -> NDArrayFloat:
    """
    Apply global time stepping or dt bounding.

    Parameters
    ----------
    dt : ndarray
        Local pseudo-time step; not modified.
    time_stepping : str
        "global" uses the global minimum everywhere; "local" keeps local steps.
    bounds : str
        "global", "local" or "none" (ignored for global time stepping).
    min_max : float
        Largest allowed ratio to the reference minimum.

    Returns
    -------
    ndarray
    """
    if time_stepping not in TIME_STEPPING_MODES:
        raise ValueError(f"Unknown time stepping '{time_stepping}', expected one of {TIME_STEPPING_MODES}")
    if bounds not in BOUNDS_MODES:
        raise ValueError(f"Unknown dt bounds '{bounds}', expected one of {BOUNDS_MODES}")

    if time_stepping == "global":
        return np.full_like(dt, mesh.reductions.min(float(np.min(dt))))

    if bounds == "global":
        return np.minimum(dt, min_max * mesh.reductions.min(float(np.min(dt))))
    if bounds == "local":
        local_min = np.empty_like(dt)
        _neighbour_min_kernel(np.ascontiguousarray(dt), mesh.owner, mesh.neighbour, local_min)
        return np.minimum(dt, min_max * local_min)
    return dt.copy()


def courant_statistics(courant: NDArrayFloat, dt: NDArrayFloat, reductions) -> CourantStatistics:
    """Min, max, mean and standard deviation over all partitions."""
    count = reductions.sum(float(courant.shape[0]))
    avg = reductions.sum(float(np.sum(courant))) / count
    var = reductions.sum(float(np.sum((courant - avg) ** 2))) / count
    return CourantStatistics(
        courant_min=reductions.min(float(np.min(courant))),
        courant_max=reductions.max(float(np.max(courant))),
        courant_avg=avg,
        courant_std=float(np.sqrt(max(var, 0.0))),
        dt_min=reductions.min(float(np.min(dt))),
        dt_max=reductions.max(float(np.max(dt))),
        dt_avg=reductions.sum(float(np.sum(dt))) / count,
    )
