"""Field storage, residual bookkeeping, dual-time sources and boundary values."""

from .ledger import FieldLedger
from .residuals import ResidualTracker, NORMALIZATION_MODES, rms
from .dual_time import DualTimeSource, DTSPhase, BDF2_COEFFICIENT
from .boundary_conditions import (
    FreestreamState,
    correct_flow_boundaries,
    correct_scalar_boundaries,
    INFLOW_KINDS,
)

__all__ = [
    'FieldLedger',
    'ResidualTracker',
    'NORMALIZATION_MODES',
    'rms',
    'DualTimeSource',
    'DTSPhase',
    'BDF2_COEFFICIENT',
    'FreestreamState',
    'correct_flow_boundaries',
    'correct_scalar_boundaries',
    'INFLOW_KINDS',
]
