"""
Menter SST k-omega Model Functions.

Blending functions, blended coefficients and the eddy-viscosity limiter
of the shear-stress-transport model (Menter 1994), in the per-unit-mass
form used by the KappaOmega closure.

Dimension Agnostic:
    All functions work with any array shape and accept NumPy arrays or
    PyTorch tensors.
"""

from typing import NamedTuple

import numpy as np
import torch

# Default constants
ALPHA_KAPPA1 = 0.85034
ALPHA_KAPPA2 = 1.0
ALPHA_OMEGA1 = 0.5
ALPHA_OMEGA2 = 0.85616
GAMMA1 = 0.5532
GAMMA2 = 0.4403
BETA1 = 0.075
BETA2 = 0.0828
BETA_STAR = 0.09
A1 = 0.31
C1 = 10.0


def _get_backend(x):
    """Get the appropriate math backend (numpy or torch) for input x."""
    if isinstance(x, torch.Tensor):
        return torch
    return np


def _maximum(a, b):
    backend = _get_backend(a)
    if backend is torch:
        return torch.maximum(a, torch.as_tensor(b, dtype=a.dtype))
    return np.maximum(a, b)


def _minimum(a, b):
    backend = _get_backend(a)
    if backend is torch:
        return torch.minimum(a, torch.as_tensor(b, dtype=a.dtype))
    return np.minimum(a, b)


def blend(F1, phi1, phi2):
    """φ = F1 φ1 + (1 - F1) φ2."""
    return F1 * phi1 + (1.0 - F1) * phi2


def cross_diffusion(k_dot_omega, omega, alpha_omega2=ALPHA_OMEGA2):
    """
    Cross-diffusion term 2 σω2 (1/ω) ∇k·∇ω.

    Parameters
    ----------
    k_dot_omega : array_like
        ∇k · ∇ω per cell.
    omega : array_like
        Specific dissipation rate (positive).
    """
    return 2.0 * alpha_omega2 * k_dot_omega / omega


def f1(k, omega, d, nu, k_dot_omega, alpha_omega2=ALPHA_OMEGA2, beta_star=BETA_STAR):
    """
    First blending function F1 = tanh(arg1⁴).

    arg1 = min(max(√k / (β* ω d), 500 ν / (d² ω)), 4 σω2 k / (CDkω d²))
    CDkω = max(2 σω2 (1/ω) ∇k·∇ω, 1e-10)
    """
    backend = _get_backend(k)
    sqrt_k = backend.sqrt(_maximum(k, 0.0))
    cd_kw = _maximum(cross_diffusion(k_dot_omega, omega, alpha_omega2), 1e-10)

    arg1 = _minimum(
        _maximum(sqrt_k / (beta_star * omega * d), 500.0 * nu / (d ** 2 * omega)),
        4.0 * alpha_omega2 * k / (cd_kw * d ** 2),
    )
    return backend.tanh(arg1 ** 4)


def f2(k, omega, d, nu, beta_star=BETA_STAR):
    """
    Second blending function F2 = tanh(arg2²).

    arg2 = max(2 √k / (β* ω d), 500 ν / (d² ω))
    """
    backend = _get_backend(k)
    sqrt_k = backend.sqrt(_maximum(k, 0.0))
    arg2 = _maximum(2.0 * sqrt_k / (beta_star * omega * d), 500.0 * nu / (d ** 2 * omega))
    return backend.tanh(arg2 ** 2)


def eddy_viscosity(k, omega, strain, F2, a1=A1):
    """
    Kinematic eddy viscosity with the SST limiter.

    ν_t = a1 k / max(a1 ω, S F2)
    """
    return a1 * k / _maximum(a1 * omega, strain * F2)


class SSTSources(NamedTuple):
    """Per unit mass source terms of the k and omega equations."""
    production_k: object
    destruction_k: object
    production_omega: object
    destruction_omega: object
    cross_diffusion: object
    d_destruction_k: object      # d(destruction_k)/dk
    d_destruction_omega: object  # d(destruction_omega)/d(omega)


def sst_sources(k, omega, strain, nu_t, F1, k_dot_omega,
                gamma1=GAMMA1, gamma2=GAMMA2, beta1=BETA1, beta2=BETA2,
                beta_star=BETA_STAR, alpha_omega2=ALPHA_OMEGA2, c1=C1) -> SSTSources:
    """
    SST source terms with the production limiter.

    P_k = min(ν_t S², c1 β* k ω)
    D_k = β* k ω
    P_ω = γ S²
    D_ω = β ω²
    CD  = (1 - F1) 2 σω2 (1/ω) ∇k·∇ω
    """
    gamma = blend(F1, gamma1, gamma2)
    beta = blend(F1, beta1, beta2)

    production_k = _minimum(nu_t * strain ** 2, c1 * beta_star * k * omega)
    destruction_k = beta_star * k * omega
    production_omega = gamma * strain ** 2
    destruction_omega = beta * omega ** 2
    cd = (1.0 - F1) * cross_diffusion(k_dot_omega, omega, alpha_omega2)

    return SSTSources(
        production_k=production_k,
        destruction_k=destruction_k,
        production_omega=production_omega,
        destruction_omega=destruction_omega,
        cross_diffusion=cd,
        d_destruction_k=beta_star * omega,
        d_destruction_omega=2.0 * beta * omega,
    )
