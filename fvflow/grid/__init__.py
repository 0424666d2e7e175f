"""
Mesh collaborator for the solver core.
"""

from .mesh import (
    FVMesh,
    Patch,
    SerialReductions,
    PATCH_KINDS,
    WALL_KINDS,
    compute_wall_distance,
    line_mesh,
    rectangle_mesh,
)

__all__ = [
    'FVMesh',
    'Patch',
    'SerialReductions',
    'PATCH_KINDS',
    'WALL_KINDS',
    'compute_wall_distance',
    'line_mesh',
    'rectangle_mesh',
]
