"""
Transport of turbulence working variables on unstructured meshes.

Advection is written in non-conservative (advective) form,

    V dφ/dt = -Σ_f (F_f - φ_P q_f S_f)

so a uniform field stays exactly uniform in any velocity field. The face
flux is the upwind flux with an entropy fix on the single linear field:

    F_f = ½ q (φ_L + φ_R) - ½ |q|_fix (φ_R - φ_L)
    |q|_fix = harten(q, linear_fix · (|q| + c))

Diffusion uses the two-point normal gradient (φ_R - φ_L) / δ_f with a face
diffusivity supplied by the closure.
"""

import numpy as np
import numpy.typing as npt
from numba import njit

from .fluxes import harten_fix
from .reconstruction import muscl_pair, limiter_id

NDArrayFloat = npt.NDArray[np.floating]


@njit(cache=True)
def _advection_kernel(phi, phi_b, q, wave, area, owner, neighbour, ll, rr,
                      linear_fix, high_resolution, limiter, rhs):
    n_internal = neighbour.shape[0]
    n_faces = owner.shape[0]

    for f in range(n_internal):
        iL = owner[f]
        iR = neighbour[f]
        pl = phi[iL]
        pr = phi[iR]
        if high_resolution:
            pl, pr = muscl_pair(phi[ll[f]], phi[iL], phi[iR], phi[rr[f]], limiter)
        lam = harten_fix(q[f], linear_fix * wave[f])
        flux = 0.5 * q[f] * (pl + pr) - 0.5 * lam * (pr - pl)
        rhs[iL] -= (flux - phi[iL] * q[f]) * area[f]
        rhs[iR] += (flux - phi[iR] * q[f]) * area[f]

    for f in range(n_internal, n_faces):
        iL = owner[f]
        b = f - n_internal
        pl = phi[iL]
        pr = phi_b[b]
        lam = harten_fix(q[f], linear_fix * wave[f])
        flux = 0.5 * q[f] * (pl + pr) - 0.5 * lam * (pr - pl)
        rhs[iL] -= (flux - pl * q[f]) * area[f]


@njit(cache=True)
def _diffusion_kernel(phi, phi_b, gamma_f, area, delta, owner, neighbour, rhs):
    n_internal = neighbour.shape[0]
    n_faces = owner.shape[0]

    for f in range(n_internal):
        iL = owner[f]
        iR = neighbour[f]
        flux = gamma_f[f] * area[f] * (phi[iR] - phi[iL]) / delta[f]
        rhs[iL] += flux
        rhs[iR] -= flux

    for f in range(n_internal, n_faces):
        iL = owner[f]
        flux = gamma_f[f] * area[f] * (phi_b[f - n_internal] - phi[iL]) / delta[f]
        rhs[iL] += flux


def advect_scalar(phi: NDArrayFloat, phi_b: NDArrayFloat, q: NDArrayFloat,
                  wave: NDArrayFloat, mesh, linear_fix: float = 0.1,
                  high_resolution: bool = False, limiter: str = "vanleer") -> NDArrayFloat:
    """
    Advective contribution of a transported scalar to its rhs.

    Parameters
    ----------
    phi, phi_b : ndarray
        Cell and boundary-face values.
    q : ndarray, shape (n_faces,)
        Face normal convective velocity U·n - Vf.
    wave : ndarray, shape (n_faces,)
        Local wave speed |q| + c used to scale the entropy fix.
    mesh : FVMesh
    linear_fix : float
        Entropy fix fraction.

    Returns
    -------
    rhs : ndarray, shape (n_cells,)
    """
    rhs = np.zeros(mesh.n_cells)
    _advection_kernel(
        np.ascontiguousarray(phi, dtype=np.float64),
        np.ascontiguousarray(phi_b, dtype=np.float64),
        q, wave, mesh.Sf, mesh.owner, mesh.neighbour,
        mesh.owner_owner, mesh.neighbour_neighbour,
        float(linear_fix), bool(high_resolution), limiter_id(limiter), rhs,
    )
    return rhs


def diffuse_scalar(phi: NDArrayFloat, phi_b: NDArrayFloat,
                   gamma_f: NDArrayFloat, mesh) -> NDArrayFloat:
    """
    Diffusive contribution ∮ Γ ∇φ·n dS of a scalar to its rhs.

    gamma_f holds the face diffusivity for every face (internal then boundary).
    """
    rhs = np.zeros(mesh.n_cells)
    _diffusion_kernel(
        np.ascontiguousarray(phi, dtype=np.float64),
        np.ascontiguousarray(phi_b, dtype=np.float64),
        np.ascontiguousarray(gamma_f, dtype=np.float64),
        mesh.Sf, mesh.delta, mesh.owner, mesh.neighbour, rhs,
    )
    return rhs
