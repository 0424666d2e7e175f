"""
Perfect-gas thermodynamic closure.

Pure functions mapping primitive (p, U, T) to conservative (rho, m, Et)
variables and back, plus transport properties. All functions accept arrays
of any leading shape; velocities and momenta carry a trailing axis of
length 3.
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np
import numpy.typing as npt

from ..config.schema import GasConfig

NDArrayFloat = npt.NDArray[np.floating]


@dataclass(frozen=True)
class PerfectGas:
    """Calorically perfect gas with Sutherland viscosity."""

    gamma: float = 1.4
    R: float = 287.0
    Pr: float = 0.72
    Prt: float = 0.9
    mu_ref: float = 1.716e-5
    T_ref: float = 273.15
    S: float = 110.4

    @classmethod
    def from_config(cls, cfg: GasConfig) -> "PerfectGas":
        return cls(gamma=cfg.gamma, R=cfg.R, Pr=cfg.Pr, Prt=cfg.Prt,
                   mu_ref=cfg.mu_ref, T_ref=cfg.T_ref, S=cfg.S)

    @property
    def cv(self) -> float:
        return self.R / (self.gamma - 1.0)

    @property
    def cp(self) -> float:
        return self.gamma * self.R / (self.gamma - 1.0)

    def conservative(self, p: NDArrayFloat, U: NDArrayFloat,
                     T: NDArrayFloat) -> Tuple[NDArrayFloat, NDArrayFloat, NDArrayFloat]:
        """(p, U, T) -> (rho, m, Et)."""
        rho = p / (self.R * T)
        m = rho[..., None] * U
        Et = rho * (self.cv * T + 0.5 * np.sum(U * U, axis=-1))
        return rho, m, Et

    def primitive(self, rho: NDArrayFloat, m: NDArrayFloat,
                  Et: NDArrayFloat) -> Tuple[NDArrayFloat, NDArrayFloat, NDArrayFloat]:
        """(rho, m, Et) -> (p, U, T)."""
        U = m / rho[..., None]
        e = Et / rho - 0.5 * np.sum(U * U, axis=-1)
        p = (self.gamma - 1.0) * rho * e
        T = e / self.cv
        return p, U, T

    def density(self, p: NDArrayFloat, T: NDArrayFloat) -> NDArrayFloat:
        return p / (self.R * T)

    def sound_speed(self, T: NDArrayFloat) -> NDArrayFloat:
        return np.sqrt(self.gamma * self.R * np.maximum(T, 1e-300))

    def viscosity(self, T: NDArrayFloat) -> NDArrayFloat:
        """Sutherland's law."""
        return self.mu_ref * (T / self.T_ref) ** 1.5 * (self.T_ref + self.S) / (T + self.S)

    def conductivity(self, mu: NDArrayFloat, mu_tur: NDArrayFloat = 0.0) -> NDArrayFloat:
        """Effective thermal conductivity cp (mu/Pr + muTur/Prt)."""
        return self.cp * (mu / self.Pr + mu_tur / self.Prt)
