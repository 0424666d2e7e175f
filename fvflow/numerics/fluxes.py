"""
Convective fluxes for the compressible Euler equations on unstructured meshes.

Two interchangeable flux policies:

Roe flux-difference splitting:
    F = ½ (F_L + F_R) - ½ Σ_k |λ̃_k| α_k K_k
    with Roe (or arithmetic) averaged states, Harten's entropy fix applied to
    the acoustic (nonlinear) and convective (linear) fields with a threshold
    that is a fixed fraction of the local wave speed |q̃| + c̃, and optional
    MUSCL reconstruction of the primitive face states.

Jameson-Schmidt-Turkel central scheme:
    F = ½ (F_L + F_R) - λ (ε2 ΔW - ε4 Δ³W)
    with the pressure switch ε2 = k2 ν, ε4 = max(0, k4 - ε2) evaluated on the
    extended LL-L-R-RR stencil.

Moving meshes enter through the face normal velocity Vf: the convective
velocity is q = U·n - Vf while the pressure work uses U·n.

All fluxes are returned per face, already multiplied by the face area, in
the component order [rho, mx, my, mz, Et].

Reference: Blazek, Computational Fluid Dynamics: Principles and Applications.
"""

from dataclasses import dataclass

import numpy as np
import numpy.typing as npt
from numba import njit, prange

from .reconstruction import muscl_pair, limiter_id
from ..constants import N_FLUX_COMPONENTS

NDArrayFloat = npt.NDArray[np.floating]

FLUX_SCHEMES = {
    "roe": 0,
    "jameson": 1,
}


@dataclass
class FluxConfig:
    """Configuration for the convective flux."""
    scheme: str = "roe"
    high_resolution: bool = True
    limiter: str = "vanleer"
    roe_average: bool = True
    nonlinear_fix: float = 0.05  # Entropy fix fraction on u ± c
    linear_fix: float = 0.05     # Entropy fix fraction on u
    k2: float = 0.5              # JST 2nd-difference coefficient
    k4: float = 0.03125          # JST 4th-difference coefficient

    def scheme_id(self) -> int:
        try:
            return FLUX_SCHEMES[self.scheme.lower()]
        except KeyError:
            raise ValueError(
                f"Unknown flux scheme '{self.scheme}', expected one of {sorted(FLUX_SCHEMES)}"
            ) from None


@njit(cache=True)
def harten_fix(lam: float, delta: float) -> float:
    """|λ| with Harten's entropy fix: smooth parabola below the threshold δ."""
    a = abs(lam)
    if a < delta:
        return 0.5 * (lam * lam + delta * delta) / delta
    return a


@njit(cache=True)
def _roe_flux(rl, ul, vl, wl, pl, rr, ur, vr, wr, pr,
              nx, ny, nz, vf, gamma, nonlinear_fix, linear_fix, roe_average, out):
    """Roe flux through a unit-area face (writes out[0:5])."""
    gm1 = gamma - 1.0

    unl = ul * nx + vl * ny + wl * nz
    unr = ur * nx + vr * ny + wr * nz
    ql = unl - vf
    qr = unr - vf

    el = pl / gm1 + 0.5 * rl * (ul * ul + vl * vl + wl * wl)
    er = pr / gm1 + 0.5 * rr * (ur * ur + vr * vr + wr * wr)
    hl = (el + pl) / rl
    hr = (er + pr) / rr

    # Central part
    out[0] = 0.5 * (rl * ql + rr * qr)
    out[1] = 0.5 * (rl * ul * ql + pl * nx + rr * ur * qr + pr * nx)
    out[2] = 0.5 * (rl * vl * ql + pl * ny + rr * vr * qr + pr * ny)
    out[3] = 0.5 * (rl * wl * ql + pl * nz + rr * wr * qr + pr * nz)
    out[4] = 0.5 * (el * ql + pl * unl + er * qr + pr * unr)

    # Averaged state
    if roe_average:
        sl = np.sqrt(rl)
        sr = np.sqrt(rr)
        wgt = sl / (sl + sr)
        rho = sl * sr
    else:
        wgt = 0.5
        rho = 0.5 * (rl + rr)
    u = wgt * ul + (1.0 - wgt) * ur
    v = wgt * vl + (1.0 - wgt) * vr
    w = wgt * wl + (1.0 - wgt) * wr
    h = wgt * hl + (1.0 - wgt) * hr
    ke = 0.5 * (u * u + v * v + w * w)
    un = u * nx + v * ny + w * nz
    q = un - vf
    c2 = gm1 * (h - ke)
    if c2 < 1e-12:
        c2 = 1e-12
    c = np.sqrt(c2)

    # Jumps
    drho = rr - rl
    dp = pr - pl
    du = ur - ul
    dv = vr - vl
    dw = wr - wl
    dun = unr - unl

    # Eigenvalues with entropy fix
    wave = abs(q) + c
    l1 = harten_fix(q - c, nonlinear_fix * wave)
    l2 = harten_fix(q, linear_fix * wave)
    l3 = harten_fix(q + c, nonlinear_fix * wave)

    # Wave strengths
    a1 = (dp - rho * c * dun) / (2.0 * c2)
    a3 = (dp + rho * c * dun) / (2.0 * c2)
    a2 = drho - dp / c2
    dut = du - dun * nx
    dvt = dv - dun * ny
    dwt = dw - dun * nz

    out[0] -= 0.5 * (l1 * a1 + l2 * a2 + l3 * a3)
    out[1] -= 0.5 * (l1 * a1 * (u - c * nx) + l2 * (a2 * u + rho * dut) + l3 * a3 * (u + c * nx))
    out[2] -= 0.5 * (l1 * a1 * (v - c * ny) + l2 * (a2 * v + rho * dvt) + l3 * a3 * (v + c * ny))
    out[3] -= 0.5 * (l1 * a1 * (w - c * nz) + l2 * (a2 * w + rho * dwt) + l3 * a3 * (w + c * nz))
    out[4] -= 0.5 * (l1 * a1 * (h - c * un)
                     + l2 * (a2 * ke + rho * (u * dut + v * dvt + w * dwt))
                     + l3 * a3 * (h + c * un))


@njit(cache=True)
def _conservative(r, u, v, w, p, gm1, W):
    W[0] = r
    W[1] = r * u
    W[2] = r * v
    W[3] = r * w
    W[4] = p / gm1 + 0.5 * r * (u * u + v * v + w * w)


@njit(cache=True)
def _central_flux(rl, ul, vl, wl, pl, rr, ur, vr, wr, pr, nx, ny, nz, vf, gm1, out):
    """½ (F_L + F_R) through a unit-area face."""
    unl = ul * nx + vl * ny + wl * nz
    unr = ur * nx + vr * ny + wr * nz
    ql = unl - vf
    qr = unr - vf
    el = pl / gm1 + 0.5 * rl * (ul * ul + vl * vl + wl * wl)
    er = pr / gm1 + 0.5 * rr * (ur * ur + vr * vr + wr * wr)
    out[0] = 0.5 * (rl * ql + rr * qr)
    out[1] = 0.5 * (rl * ul * ql + pl * nx + rr * ur * qr + pr * nx)
    out[2] = 0.5 * (rl * vl * ql + pl * ny + rr * vr * qr + pr * ny)
    out[3] = 0.5 * (rl * wl * ql + pl * nz + rr * wr * qr + pr * nz)
    out[4] = 0.5 * (el * ql + pl * unl + er * qr + pr * unr)


@njit(cache=True)
def _spectral_radius(rl, ul, vl, wl, pl, rr, ur, vr, wr, pr, nx, ny, nz, vf, gamma):
    """|q| + c at the face from the arithmetic mean of both sides."""
    q = 0.5 * ((ul + ur) * nx + (vl + vr) * ny + (wl + wr) * nz) - vf
    c = 0.5 * (np.sqrt(gamma * pl / rl) + np.sqrt(gamma * pr / rr))
    return abs(q) + c


@njit(cache=True, parallel=True)
def _flux_kernel(rho, U, p, rho_b, U_b, p_b,
                 owner, neighbour, ll, rr, normals, area, vf,
                 gamma, scheme, high_resolution, limiter, roe_average,
                 nonlinear_fix, linear_fix, k2, k4, out):
    n_internal = neighbour.shape[0]
    n_faces = owner.shape[0]
    gm1 = gamma - 1.0

    for f in prange(n_internal):
        iL = owner[f]
        iR = neighbour[f]
        nx = normals[f, 0]
        ny = normals[f, 1]
        nz = normals[f, 2]

        if scheme == 0:
            rl = rho[iL]
            ul = U[iL, 0]
            vl = U[iL, 1]
            wl = U[iL, 2]
            pl = p[iL]
            rr_ = rho[iR]
            ur = U[iR, 0]
            vr = U[iR, 1]
            wr = U[iR, 2]
            pr = p[iR]
            if high_resolution:
                iLL = ll[f]
                iRR = rr[f]
                rl, rr_ = muscl_pair(rho[iLL], rho[iL], rho[iR], rho[iRR], limiter)
                ul, ur = muscl_pair(U[iLL, 0], U[iL, 0], U[iR, 0], U[iRR, 0], limiter)
                vl, vr = muscl_pair(U[iLL, 1], U[iL, 1], U[iR, 1], U[iRR, 1], limiter)
                wl, wr = muscl_pair(U[iLL, 2], U[iL, 2], U[iR, 2], U[iRR, 2], limiter)
                pl, pr = muscl_pair(p[iLL], p[iL], p[iR], p[iRR], limiter)
            _roe_flux(rl, ul, vl, wl, pl, rr_, ur, vr, wr, pr,
                      nx, ny, nz, vf[f], gamma, nonlinear_fix, linear_fix, roe_average, out[f])
        else:
            iLL = ll[f]
            iRR = rr[f]
            _central_flux(rho[iL], U[iL, 0], U[iL, 1], U[iL, 2], p[iL],
                          rho[iR], U[iR, 0], U[iR, 1], U[iR, 2], p[iR],
                          nx, ny, nz, vf[f], gm1, out[f])
            lam = _spectral_radius(rho[iL], U[iL, 0], U[iL, 1], U[iL, 2], p[iL],
                                   rho[iR], U[iR, 0], U[iR, 1], U[iR, 2], p[iR],
                                   nx, ny, nz, vf[f], gamma)

            # Pressure switch on both sides of the face
            nu_l = abs(p[iR] - 2.0 * p[iL] + p[iLL]) / (p[iR] + 2.0 * p[iL] + p[iLL])
            nu_r = abs(p[iRR] - 2.0 * p[iR] + p[iL]) / (p[iRR] + 2.0 * p[iR] + p[iL])
            eps2 = k2 * max(nu_l, nu_r)
            eps4 = max(0.0, k4 - eps2)

            W_ll = np.empty(5)
            W_l = np.empty(5)
            W_r = np.empty(5)
            W_rr = np.empty(5)
            _conservative(rho[iLL], U[iLL, 0], U[iLL, 1], U[iLL, 2], p[iLL], gm1, W_ll)
            _conservative(rho[iL], U[iL, 0], U[iL, 1], U[iL, 2], p[iL], gm1, W_l)
            _conservative(rho[iR], U[iR, 0], U[iR, 1], U[iR, 2], p[iR], gm1, W_r)
            _conservative(rho[iRR], U[iRR, 0], U[iRR, 1], U[iRR, 2], p[iRR], gm1, W_rr)
            for k in range(5):
                d2 = W_r[k] - W_l[k]
                d4 = W_rr[k] - 3.0 * W_r[k] + 3.0 * W_l[k] - W_ll[k]
                out[f, k] -= lam * (eps2 * d2 - eps4 * d4)

        for k in range(5):
            out[f, k] *= area[f]

    # Boundary faces: first order, owner state against boundary state
    for f in prange(n_internal, n_faces):
        iL = owner[f]
        b = f - n_internal
        nx = normals[f, 0]
        ny = normals[f, 1]
        nz = normals[f, 2]
        if scheme == 0:
            _roe_flux(rho[iL], U[iL, 0], U[iL, 1], U[iL, 2], p[iL],
                      rho_b[b], U_b[b, 0], U_b[b, 1], U_b[b, 2], p_b[b],
                      nx, ny, nz, vf[f], gamma, nonlinear_fix, linear_fix, roe_average, out[f])
        else:
            _central_flux(rho[iL], U[iL, 0], U[iL, 1], U[iL, 2], p[iL],
                          rho_b[b], U_b[b, 0], U_b[b, 1], U_b[b, 2], p_b[b],
                          nx, ny, nz, vf[f], gm1, out[f])
            lam = _spectral_radius(rho[iL], U[iL, 0], U[iL, 1], U[iL, 2], p[iL],
                                   rho_b[b], U_b[b, 0], U_b[b, 1], U_b[b, 2], p_b[b],
                                   nx, ny, nz, vf[f], gamma)
            W_l = np.empty(5)
            W_r = np.empty(5)
            _conservative(rho[iL], U[iL, 0], U[iL, 1], U[iL, 2], p[iL], gm1, W_l)
            _conservative(rho_b[b], U_b[b, 0], U_b[b, 1], U_b[b, 2], p_b[b], gm1, W_r)
            for k in range(5):
                out[f, k] -= 0.5 * lam * (W_r[k] - W_l[k])
        for k in range(5):
            out[f, k] *= area[f]


def compute_convective_fluxes(rho: NDArrayFloat, U: NDArrayFloat, p: NDArrayFloat,
                              rho_b: NDArrayFloat, U_b: NDArrayFloat, p_b: NDArrayFloat,
                              mesh, gamma: float, cfg: FluxConfig) -> NDArrayFloat:
    """
    Area-integrated convective flux through every face.

    Parameters
    ----------
    rho, U, p : ndarray
        Cell density (n_cells,), velocity (n_cells, 3) and pressure (n_cells,).
    rho_b, U_b, p_b : ndarray
        The same quantities on boundary faces.
    mesh : FVMesh
        Mesh metrics and connectivity.
    gamma : float
        Ratio of specific heats.
    cfg : FluxConfig
        Flux policy and coefficients.

    Returns
    -------
    flux : ndarray, shape (n_faces, 5)
        Flux along the face normal, [rho, mx, my, mz, Et].
    """
    out = np.zeros((mesh.n_faces, N_FLUX_COMPONENTS))
    _flux_kernel(
        np.ascontiguousarray(rho, dtype=np.float64),
        np.ascontiguousarray(U, dtype=np.float64),
        np.ascontiguousarray(p, dtype=np.float64),
        np.ascontiguousarray(rho_b, dtype=np.float64),
        np.ascontiguousarray(U_b, dtype=np.float64),
        np.ascontiguousarray(p_b, dtype=np.float64),
        mesh.owner, mesh.neighbour, mesh.owner_owner, mesh.neighbour_neighbour,
        mesh.n, mesh.Sf, mesh.Vf,
        float(gamma), cfg.scheme_id(), bool(cfg.high_resolution), limiter_id(cfg.limiter),
        bool(cfg.roe_average), float(cfg.nonlinear_fix), float(cfg.linear_fix),
        float(cfg.k2), float(cfg.k4), out,
    )
    return out
