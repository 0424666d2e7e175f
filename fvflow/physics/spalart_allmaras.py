"""
Spalart-Allmaras Turbulence Model Functions.

This module implements the Spalart-Allmaras one-equation model functions
with analytical derivatives with respect to the working variable nuTilda,
for use in the point-implicit treatment of the source terms.

Dimension Agnostic:
    All functions work with any array shape - scalars, 1D arrays, full
    unstructured fields. NumPy arrays and PyTorch tensors are both
    accepted; the torch path is what the autograd checks run against.

Notation:
    chi    = nuTilda / nu
    omega  = vorticity measure (magnitude, optionally strain-corrected)
    d      = wall distance

Every function returning a pair gives (value, d(value)/d(nuTilda)) unless
its docstring says the derivative is taken with respect to chi.
"""

from typing import NamedTuple

import numpy as np
import torch

# Default constants (Spalart & Allmaras 1994, Dacles-Mariani correction)
SIGMA = 2.0 / 3.0
KAPPA = 0.4187
CB1 = 0.1355
CB2 = 0.622
CV1 = 7.1
CW2 = 0.3
CW3 = 2.0
CW1 = CB1 / KAPPA ** 2 + (1.0 + CB2) / SIGMA
CPROD = 2.0


def _get_backend(x):
    """Get the appropriate math backend (numpy or torch) for input x."""
    if isinstance(x, torch.Tensor):
        return torch
    return np


def _clamp_min(x, lo):
    if isinstance(x, torch.Tensor):
        return torch.clamp(x, min=lo)
    return np.maximum(x, lo)


def _clamp_max(x, hi):
    if isinstance(x, torch.Tensor):
        return torch.clamp(x, max=hi)
    return np.minimum(x, hi)


def fv1(chi, cv1=CV1):
    """
    Compute fv1 damping function and its derivative with respect to chi.

    fv1 = chi³ / (chi³ + cv1³)

    Parameters
    ----------
    chi : array_like
        Viscosity ratio nuTilda / nu (any shape).
    cv1 : float
        Model constant.

    Returns
    -------
    val : array_like
        fv1 value (same shape as input).
    grad : array_like
        d(fv1)/d(chi) (same shape as input).
    """
    chi3 = chi ** 3
    denom = chi3 + cv1 ** 3

    val = chi3 / denom

    # d/dchi [chi^3 / (chi^3 + cv1^3)] = 3chi^2 * cv1^3 / denom^2
    grad = (3 * chi ** 2 * cv1 ** 3) / (denom ** 2)

    return val, grad


def fv2(chi, cv1=CV1):
    """
    Returns (fv2, d(fv2)/d(chi)).
    """
    fv1_val, fv1_grad = fv1(chi, cv1)

    denom = 1.0 + chi * fv1_val
    val = 1.0 - chi / denom

    # d(chi/denom)/dchi = (1 - chi^2*fv1') / denom^2
    grad = -(1.0 - chi ** 2 * fv1_grad) / (denom ** 2)

    return val, grad


def vorticity_measure(vorticity, strain, cprod=CPROD):
    """
    Vorticity with the rotation/strain production correction.

    S = |Ω| + Cprod · min(0, |S_ij| - |Ω|)

    In regions where strain dominates rotation the vorticity is kept;
    where rotation dominates (vortex cores) production is reduced.
    """
    backend = _get_backend(vorticity)
    omega = backend.abs(vorticity)
    return omega + cprod * _clamp_max(backend.abs(strain) - omega, 0.0)


def s_tilde(omega, nu_tilda, nu, d, kappa=KAPPA, cv1=CV1):
    """
    Compute modified vorticity S_tilde and its derivative.

    S̃ = Ω + (ν̃ / κ²d²) · fv2(χ)

    Parameters
    ----------
    omega : array_like
        Vorticity measure (any shape).
    nu_tilda : array_like
        SA working variable (same shape).
    nu : array_like
        Laminar kinematic viscosity.
    d : array_like
        Wall distance.

    Returns
    -------
    val : array_like
        S_tilde value, clamped to at least 1e-16.
    grad : array_like
        d(S_tilde)/d(nuTilda); zero where the clamp is active.
    """
    backend = _get_backend(nu_tilda)
    chi = nu_tilda / nu
    fv2_val, fv2_grad = fv2(chi, cv1)

    inv_k2d2 = 1.0 / (kappa ** 2 * d ** 2)

    s_raw = omega + nu_tilda * inv_k2d2 * fv2_val

    # d/dnuTilda [nuTilda * fv2(nuTilda/nu)] = fv2 + chi * fv2'
    grad_raw = inv_k2d2 * (fv2_val + chi * fv2_grad)

    val = _clamp_min(s_raw, 1e-16)
    grad = backend.where(s_raw < 1e-16, backend.zeros_like(grad_raw), grad_raw)

    return val, grad


def r(omega, nu_tilda, nu, d, kappa=KAPPA, cv1=CV1):
    """
    Returns (r, d(r)/d(nuTilda)), r = ν̃ / (S̃ κ² d²) clamped at 10.
    """
    backend = _get_backend(nu_tilda)
    s_val, s_grad = s_tilde(omega, nu_tilda, nu, d, kappa, cv1)

    k2d2 = kappa ** 2 * d ** 2
    r_raw = nu_tilda / (s_val * k2d2)

    # d/dnuTilda [nuTilda / (S C)] = (S - nuTilda*S') / (C S^2)
    grad_raw = (s_val - nu_tilda * s_grad) / (k2d2 * s_val ** 2)

    val = _clamp_max(r_raw, 10.0)
    grad = backend.where(r_raw > 10.0, backend.zeros_like(grad_raw), grad_raw)

    return val, grad


def g(omega, nu_tilda, nu, d, kappa=KAPPA, cv1=CV1, cw2=CW2):
    """
    Returns (g, d(g)/d(nuTilda)), g = r + cw2 (r⁶ - r).
    """
    r_val, r_grad = r(omega, nu_tilda, nu, d, kappa, cv1)

    val = r_val + cw2 * (r_val ** 6 - r_val)
    dg_dr = 1.0 + cw2 * (6.0 * r_val ** 5 - 1.0)

    return val, dg_dr * r_grad


def fw(omega, nu_tilda, nu, d, kappa=KAPPA, cv1=CV1, cw2=CW2, cw3=CW3):
    """
    Returns (fw, d(fw)/d(nuTilda)), fw = g ((1 + cw3⁶) / (g⁶ + cw3⁶))^(1/6).
    """
    g_val, g_grad = g(omega, nu_tilda, nu, d, kappa, cv1, cw2)

    c6 = cw3 ** 6
    denom = g_val ** 6 + c6
    radicand = ((1.0 + c6) / denom) ** (1.0 / 6.0)

    val = g_val * radicand

    # dfw/dg = radicand * c6 / (g^6 + c6)
    dfw_dg = radicand * c6 / denom

    return val, dfw_dg * g_grad


class SASources(NamedTuple):
    """Per unit volume source terms of the nuTilda equation."""
    production: object
    destruction: object
    d_production: object   # d(production)/d(nuTilda)
    d_destruction: object  # d(destruction)/d(nuTilda)


def sa_sources(omega, nu_tilda, nu, d, kappa=KAPPA, cb1=CB1, cw1=CW1,
               cv1=CV1, cw2=CW2, cw3=CW3) -> SASources:
    """
    Production and destruction of the SA working variable.

    P = cb1 · S̃ · ν̃
    D = cw1 · fw · (ν̃ / d)²

    Parameters
    ----------
    omega : array_like
        Vorticity measure.
    nu_tilda : array_like
        SA working variable (positive).
    nu : array_like
        Laminar kinematic viscosity.
    d : array_like
        Wall distance.

    Returns
    -------
    SASources
        Production, destruction and their derivatives with respect to ν̃.
    """
    s_val, s_grad = s_tilde(omega, nu_tilda, nu, d, kappa, cv1)
    fw_val, fw_grad = fw(omega, nu_tilda, nu, d, kappa, cv1, cw2, cw3)

    production = cb1 * s_val * nu_tilda
    d_production = cb1 * (s_val + nu_tilda * s_grad)

    inv_d2 = 1.0 / d ** 2
    destruction = cw1 * fw_val * nu_tilda ** 2 * inv_d2
    d_destruction = cw1 * inv_d2 * (fw_grad * nu_tilda ** 2 + 2.0 * fw_val * nu_tilda)

    return SASources(production, destruction, d_production, d_destruction)


def eddy_viscosity(nu_tilda, nu, rho, cv1=CV1):
    """
    Dynamic eddy viscosity μ_t = ρ ν̃ fv1(χ).
    """
    fv1_val, _ = fv1(nu_tilda / nu, cv1)
    return rho * nu_tilda * fv1_val
