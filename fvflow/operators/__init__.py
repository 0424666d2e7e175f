"""Discretization operators: shared contract and the flow equations."""

from .base import DiscretizationOperator
from .navier_stokes import NavierStokesOperator, FlowStatistics

__all__ = [
    'DiscretizationOperator',
    'NavierStokesOperator',
    'FlowStatistics',
]
