"""
Face-to-cell accumulation for unstructured finite-volume residuals.

Every face flux is computed once and scattered to the two cells it
separates: subtracted from the owner (outflow) and added to the neighbour.
Boundary faces only touch their owner.
"""

import numpy as np
import numpy.typing as npt
from numba import njit

NDArrayFloat = npt.NDArray[np.floating]


@njit(cache=True)
def _scatter_kernel(out: np.ndarray, flux: np.ndarray,
                    owner: np.ndarray, neighbour: np.ndarray,
                    sign: float) -> None:
    """out[owner] -= sign * flux, out[neighbour] += sign * flux."""
    n_faces = flux.shape[0]
    n_internal = neighbour.shape[0]
    n_comp = flux.shape[1]

    for f in range(n_internal):
        o = owner[f]
        nb = neighbour[f]
        for k in range(n_comp):
            out[o, k] -= sign * flux[f, k]
            out[nb, k] += sign * flux[f, k]

    for f in range(n_internal, n_faces):
        o = owner[f]
        for k in range(n_comp):
            out[o, k] -= sign * flux[f, k]


def scatter_outflow(flux: NDArrayFloat, owner: np.ndarray, neighbour: np.ndarray,
                    n_cells: int, sign: float = 1.0) -> NDArrayFloat:
    """
    Net contribution of face fluxes to each cell.

    Parameters
    ----------
    flux : ndarray, shape (n_faces,) or (n_faces, n_comp)
        Area-integrated flux through each face, positive along the face normal.
    owner, neighbour : ndarray
        Mesh connectivity.
    n_cells : int
        Number of cells.
    sign : float
        +1 for convective outflow (reduces the owner), -1 for diffusive
        fluxes written as flux into the owner.

    Returns
    -------
    ndarray, shape (n_cells,) or (n_cells, n_comp)
    """
    flat = flux.ndim == 1
    f2 = flux.reshape(flux.shape[0], -1)
    out = np.zeros((n_cells, f2.shape[1]))
    _scatter_kernel(out, np.ascontiguousarray(f2), owner, neighbour, sign)
    if flat:
        return out[:, 0]
    return out


def interpolate_to_faces(phi: NDArrayFloat, phi_b: NDArrayFloat,
                         owner: np.ndarray, neighbour: np.ndarray,
                         weights: NDArrayFloat) -> NDArrayFloat:
    """
    Face values of a cell field: internal faces interpolated, boundary
    faces taken from the boundary values.

    phi_f = phi_O + w (phi_N - phi_O), which keeps a uniform field exact.
    """
    n_internal = neighbour.shape[0]
    po = phi[owner[:n_internal]]
    pn = phi[neighbour]
    w = weights.reshape((-1,) + (1,) * (phi.ndim - 1))
    internal = po + w * (pn - po)
    return np.concatenate([internal, phi_b], axis=0)
