"""
Turbulence closures and their runtime selector.
"""

from .base import TurbulenceClosure, friction_velocity
from .spalart_allmaras import SpalartAllmarasClosure
from .kappa_omega import KappaOmegaClosure
from .selector import TurbulenceModel, TurbulenceState, resolve_tag

__all__ = [
    'TurbulenceClosure',
    'friction_velocity',
    'SpalartAllmarasClosure',
    'KappaOmegaClosure',
    'TurbulenceModel',
    'TurbulenceState',
    'resolve_tag',
]
