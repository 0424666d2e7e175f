"""
Physical closures: thermodynamics and turbulence model functions.
"""

from .thermodynamics import PerfectGas

__all__ = [
    'PerfectGas',
]
