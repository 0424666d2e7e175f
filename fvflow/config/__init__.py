"""
Configuration module for the fvflow solver core.

Provides YAML-based configuration with dataclass schema.
"""

from .schema import (
    SimulationConfig,
    GasConfig,
    FreestreamConfig,
    CourantConfig,
    SolverSettings,
    FlowNumerics,
    SpalartAllmarasConfig,
    KappaOmegaConfig,
    OutputConfig,
    PHYSICS_ALIASES,
)

from .loader import (
    load_yaml,
    from_dict,
    apply_overrides,
    save_yaml,
)

__all__ = [
    # Schema classes
    'SimulationConfig',
    'GasConfig',
    'FreestreamConfig',
    'CourantConfig',
    'SolverSettings',
    'FlowNumerics',
    'SpalartAllmarasConfig',
    'KappaOmegaConfig',
    'OutputConfig',
    'PHYSICS_ALIASES',
    # Loader functions
    'load_yaml',
    'from_dict',
    'apply_overrides',
    'save_yaml',
]
