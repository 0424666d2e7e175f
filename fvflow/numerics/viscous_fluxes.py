"""
Viscous fluxes for the compressible Navier-Stokes equations.

Face gradients are interpolated from Green-Gauss cell gradients and then
corrected along the cell-to-cell direction (tight stencil):

    ∇φ_f = ∇φ_avg + [(φ_R - φ_L)/|d| - ∇φ_avg·e] e,   e = d/|d|

which removes odd-even decoupling. The Boussinesq stress

    τ = μ_eff (∇U + ∇Uᵀ - ⅔ (∇·U) I) - ⅔ ρ k I

and the heat flux -κ_eff ∇T give the face flux

    F_m = τ·n S,   F_E = (τ·U_f + κ_eff ∇T_f)·n S

returned as flux into the owner cell, in the [rho, mx, my, mz, Et] layout.
"""

import numpy as np
import numpy.typing as npt
from numba import njit, prange

from ..constants import N_FLUX_COMPONENTS

NDArrayFloat = npt.NDArray[np.floating]


@njit(cache=True)
def _face_flux(gu, gt, u, v, w, mu, kappa, rhok, nx, ny, nz, out):
    """Viscous flux for a unit-area face from the face gradients."""
    div = gu[0, 0] + gu[1, 1] + gu[2, 2]
    iso = -2.0 / 3.0 * (mu * div + rhok)

    txx = mu * 2.0 * gu[0, 0] + iso
    tyy = mu * 2.0 * gu[1, 1] + iso
    tzz = mu * 2.0 * gu[2, 2] + iso
    txy = mu * (gu[0, 1] + gu[1, 0])
    txz = mu * (gu[0, 2] + gu[2, 0])
    tyz = mu * (gu[1, 2] + gu[2, 1])

    fx = txx * nx + txy * ny + txz * nz
    fy = txy * nx + tyy * ny + tyz * nz
    fz = txz * nx + tyz * ny + tzz * nz

    out[0] = 0.0
    out[1] = fx
    out[2] = fy
    out[3] = fz
    out[4] = u * fx + v * fy + w * fz + kappa * (gt[0] * nx + gt[1] * ny + gt[2] * nz)


@njit(cache=True, parallel=True)
def _viscous_kernel(U, T, U_b, T_b, grad_U, grad_T,
                    mu, kappa, rhok, mu_b, kappa_b, rhok_b,
                    owner, neighbour, weights, d, normals, area, out):
    n_internal = neighbour.shape[0]
    n_faces = owner.shape[0]

    for f in prange(n_faces):
        iL = owner[f]
        internal = f < n_internal
        gu = np.empty((3, 3))
        gt = np.empty(3)
        uf = np.empty(3)

        dist = np.sqrt(d[f, 0] ** 2 + d[f, 1] ** 2 + d[f, 2] ** 2)
        ex = d[f, 0] / dist
        ey = d[f, 1] / dist
        ez = d[f, 2] / dist

        if internal:
            iR = neighbour[f]
            wgt = weights[f]
            for a in range(3):
                uf[a] = U[iL, a] + wgt * (U[iR, a] - U[iL, a])
                gt[a] = grad_T[iL, a] + wgt * (grad_T[iR, a] - grad_T[iL, a])
                for b in range(3):
                    gu[a, b] = grad_U[iL, a, b] + wgt * (grad_U[iR, a, b] - grad_U[iL, a, b])
            dT = T[iR] - T[iL]
            mu_f = mu[iL] + wgt * (mu[iR] - mu[iL])
            k_f = kappa[iL] + wgt * (kappa[iR] - kappa[iL])
            rk_f = rhok[iL] + wgt * (rhok[iR] - rhok[iL])
            dU0 = U[iR, 0] - U[iL, 0]
            dU1 = U[iR, 1] - U[iL, 1]
            dU2 = U[iR, 2] - U[iL, 2]
        else:
            bf = f - n_internal
            for a in range(3):
                uf[a] = U_b[bf, a]
                gt[a] = grad_T[iL, a]
                for b in range(3):
                    gu[a, b] = grad_U[iL, a, b]
            dT = T_b[bf] - T[iL]
            mu_f = mu_b[bf]
            k_f = kappa_b[bf]
            rk_f = rhok_b[bf]
            dU0 = U_b[bf, 0] - U[iL, 0]
            dU1 = U_b[bf, 1] - U[iL, 1]
            dU2 = U_b[bf, 2] - U[iL, 2]

        # Tight-stencil correction along e
        corr = dT / dist - (gt[0] * ex + gt[1] * ey + gt[2] * ez)
        gt[0] += corr * ex
        gt[1] += corr * ey
        gt[2] += corr * ez
        for a in range(3):
            if a == 0:
                du = dU0
            elif a == 1:
                du = dU1
            else:
                du = dU2
            corr = du / dist - (gu[a, 0] * ex + gu[a, 1] * ey + gu[a, 2] * ez)
            gu[a, 0] += corr * ex
            gu[a, 1] += corr * ey
            gu[a, 2] += corr * ez

        _face_flux(gu, gt, uf[0], uf[1], uf[2], mu_f, k_f, rk_f,
                   normals[f, 0], normals[f, 1], normals[f, 2], out[f])
        for k in range(5):
            out[f, k] *= area[f]


def compute_viscous_fluxes(U: NDArrayFloat, T: NDArrayFloat,
                           U_b: NDArrayFloat, T_b: NDArrayFloat,
                           grad_U: NDArrayFloat, grad_T: NDArrayFloat,
                           mu_eff: NDArrayFloat, kappa_eff: NDArrayFloat, rho_k: NDArrayFloat,
                           mu_eff_b: NDArrayFloat, kappa_eff_b: NDArrayFloat, rho_k_b: NDArrayFloat,
                           mesh, distance_weighted: bool = True) -> NDArrayFloat:
    """
    Area-integrated viscous flux into the owner cell of every face.

    Parameters
    ----------
    U, T : ndarray
        Cell velocity (n_cells, 3) and temperature (n_cells,).
    U_b, T_b : ndarray
        Boundary-face velocity and temperature.
    grad_U, grad_T : ndarray
        Cell gradients, shapes (n_cells, 3, 3) and (n_cells, 3).
    mu_eff, kappa_eff, rho_k : ndarray
        Effective viscosity μ + μ_t, conductivity and ρk per cell.
    mu_eff_b, kappa_eff_b, rho_k_b : ndarray
        The same on boundary faces.
    mesh : FVMesh
    distance_weighted : bool
        Distance-weighted (else arithmetic) face interpolation.

    Returns
    -------
    flux : ndarray, shape (n_faces, 5)
    """
    weights = mesh.weights if distance_weighted else np.full(mesh.n_internal, 0.5)
    out = np.zeros((mesh.n_faces, N_FLUX_COMPONENTS))
    _viscous_kernel(
        np.ascontiguousarray(U, dtype=np.float64), np.ascontiguousarray(T, dtype=np.float64),
        np.ascontiguousarray(U_b, dtype=np.float64), np.ascontiguousarray(T_b, dtype=np.float64),
        np.ascontiguousarray(grad_U, dtype=np.float64), np.ascontiguousarray(grad_T, dtype=np.float64),
        np.ascontiguousarray(mu_eff, dtype=np.float64), np.ascontiguousarray(kappa_eff, dtype=np.float64),
        np.ascontiguousarray(rho_k, dtype=np.float64),
        np.ascontiguousarray(mu_eff_b, dtype=np.float64), np.ascontiguousarray(kappa_eff_b, dtype=np.float64),
        np.ascontiguousarray(rho_k_b, dtype=np.float64),
        mesh.owner, mesh.neighbour, weights, mesh.d, mesh.n, mesh.Sf, out,
    )
    return out
