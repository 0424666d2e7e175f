"""
Numerical kernels: fluxes, reconstruction, gradients, smoothing, updates.
"""

from .fluxes import FluxConfig, compute_convective_fluxes, harten_fix, FLUX_SCHEMES
from .reconstruction import LIMITERS, limiter_id, limited_slope, muscl_pair
from .gradients import green_gauss, vorticity_magnitude, strain_magnitude
from .viscous_fluxes import compute_viscous_fluxes
from .scalar_transport import advect_scalar, diffuse_scalar
from .smoothing import smooth_residual, SMOOTHING_MODES
from .face_loops import scatter_outflow, interpolate_to_faces
from .updates import apply_patankar_update
from .forces import AeroLoads, integrate_wall_loads
from .time_stepping import (
    CourantStatistics,
    convective_spectral_radius,
    viscous_spectral_radius,
    compute_local_timestep,
    bound_timestep,
    courant_statistics,
)

__all__ = [
    'FluxConfig',
    'compute_convective_fluxes',
    'harten_fix',
    'FLUX_SCHEMES',
    'LIMITERS',
    'limiter_id',
    'limited_slope',
    'muscl_pair',
    'green_gauss',
    'vorticity_magnitude',
    'strain_magnitude',
    'compute_viscous_fluxes',
    'advect_scalar',
    'diffuse_scalar',
    'smooth_residual',
    'SMOOTHING_MODES',
    'scatter_outflow',
    'interpolate_to_faces',
    'apply_patankar_update',
    'AeroLoads',
    'integrate_wall_loads',
    'CourantStatistics',
    'convective_spectral_radius',
    'viscous_spectral_radius',
    'compute_local_timestep',
    'bound_timestep',
    'courant_statistics',
]
