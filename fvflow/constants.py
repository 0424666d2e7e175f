"""
Global constants for the finite-volume solver core.

Equation indices and sentinels shared by operators, the residual tracker
and the model selectors.
"""

# Flow equation set: density, momentum (vector), total energy
RHO_IDX = 0
M_IDX = 1
ET_IDX = 2

# Flux vector layout used by the face kernels: [rho, mx, my, mz, Et]
N_FLUX_COMPONENTS = 5

# Residual reported before the first update_residual call
RESIDUAL_UNDEFINED = -1.0

# Normalization reference below this value is treated as zero
RESIDUAL_FLOOR = 1e-16

# Wall distance assigned to cells when the mesh has no wall patch
FAR_WALL_DISTANCE = 1.0e10
