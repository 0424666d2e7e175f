"""
Solvers: the multi-stage pseudo-time integrator and its selector.
"""

from .time_integrator import TimeSteppingSolver
from .factory import Solver, create_solver, DEFAULT_SOLVER

__all__ = [
    'TimeSteppingSolver',
    'Solver',
    'create_solver',
    'DEFAULT_SOLVER',
]
