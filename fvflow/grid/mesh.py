"""
Unstructured face-based finite-volume mesh.

The solver core consumes the mesh as a collaborator: cell volumes and
centres, face areas, unit normals and centres, owner/neighbour connectivity
(internal faces first, then boundary faces grouped by patch), an extended
two-hop stencil for reconstruction and fourth-difference dissipation, face
normal velocities for moving meshes, wall distance and global reductions.

Conventions:
    - Internal face f (f < n_internal) separates owner[f] and neighbour[f];
      its normal points from owner to neighbour.
    - Boundary face f (f >= n_internal) belongs to owner[f] only; its
      normal points out of the domain.
    - owner_owner[f] is the cell behind the owner along the face direction,
      neighbour_neighbour[f] the cell beyond the neighbour. Where no such
      cell exists the owner (resp. neighbour) itself is used, which reduces
      limited reconstruction to first order at the boundary.
"""

from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

import numpy as np
import numpy.typing as npt

from ..constants import FAR_WALL_DISTANCE

NDArrayFloat = npt.NDArray[np.floating]
NDArrayInt = npt.NDArray[np.int64]

PATCH_KINDS = ("inlet", "freestream", "outlet", "extrapolated", "wall", "slip", "symmetry")
WALL_KINDS = ("wall",)


@dataclass
class Patch:
    """A contiguous group of boundary faces sharing one boundary policy."""

    name: str
    kind: str
    start: int  # First global face index
    size: int

    @property
    def faces(self) -> slice:
        """Global face indices of the patch."""
        return slice(self.start, self.start + self.size)


class SerialReductions:
    """Global reductions for a single partition (identity operations).

    A partitioned mesh provider replaces this with collective reductions;
    the operators only ever reduce scalars.
    """

    def sum(self, value: float) -> float:
        return value

    def max(self, value: float) -> float:
        return value

    def min(self, value: float) -> float:
        return value


@dataclass
class FVMesh:
    """Face-based unstructured mesh metrics."""

    V: NDArrayFloat                 # Cell volumes (n_cells,)
    C: NDArrayFloat                 # Cell centres (n_cells, 3)
    Sf: NDArrayFloat                # Face areas (n_faces,)
    n: NDArrayFloat                 # Unit face normals (n_faces, 3)
    Cf: NDArrayFloat                # Face centres (n_faces, 3)
    owner: NDArrayInt               # (n_faces,)
    neighbour: NDArrayInt           # (n_internal,)
    owner_owner: NDArrayInt         # (n_internal,)
    neighbour_neighbour: NDArrayInt  # (n_internal,)
    patches: List[Patch] = field(default_factory=list)
    Vf: NDArrayFloat = None         # Face normal velocity (n_faces,), moving meshes
    V_o: NDArrayFloat = None        # Cell volumes at the previous physical time step
    wall_distance: NDArrayFloat = None
    level: int = 0                  # Multigrid level, 0 = finest
    reductions: SerialReductions = field(default_factory=SerialReductions)

    def __post_init__(self):
        for patch in self.patches:
            if patch.kind not in PATCH_KINDS:
                raise ValueError(f"Unknown patch kind '{patch.kind}' for patch '{patch.name}'")
        if self.Vf is None:
            self.Vf = np.zeros(self.n_faces)
        if self.V_o is None:
            self.V_o = self.V.copy()
        if self.wall_distance is None:
            self.wall_distance = compute_wall_distance(self)
        self._delta, self._weights, self._d = _face_geometry(self)

    # -------------------------------------------------------------------------
    # Sizes
    # -------------------------------------------------------------------------

    @property
    def n_cells(self) -> int:
        return self.V.shape[0]

    @property
    def n_faces(self) -> int:
        return self.owner.shape[0]

    @property
    def n_internal(self) -> int:
        return self.neighbour.shape[0]

    @property
    def n_boundary(self) -> int:
        return self.n_faces - self.n_internal

    # -------------------------------------------------------------------------
    # Derived face geometry
    # -------------------------------------------------------------------------

    @property
    def delta(self) -> NDArrayFloat:
        """Normal distance between the cells on either side of each face.

        Internal faces: |(C_N - C_O) . n|; boundary faces: |(Cf - C_O) . n|.
        """
        return self._delta

    @property
    def weights(self) -> NDArrayFloat:
        """Distance-based interpolation weight of the neighbour, internal faces."""
        return self._weights

    @property
    def d(self) -> NDArrayFloat:
        """Owner-to-neighbour (or owner-to-face on boundaries) vectors."""
        return self._d

    @property
    def boundary_owner(self) -> NDArrayInt:
        return self.owner[self.n_internal:]

    def boundary_slice(self, patch: Patch) -> slice:
        """Indices of a patch into boundary-face arrays."""
        start = patch.start - self.n_internal
        return slice(start, start + patch.size)

    def patch(self, name: str) -> Patch:
        for p in self.patches:
            if p.name == name:
                return p
        raise KeyError(f"No patch named '{name}'")

    def patches_of_kind(self, kinds: Sequence[str]) -> List[Patch]:
        return [p for p in self.patches if p.kind in kinds]

    def cell_neighbour_count(self) -> NDArrayFloat:
        """Number of internal faces attached to each cell."""
        counts = np.zeros(self.n_cells)
        np.add.at(counts, self.owner[:self.n_internal], 1.0)
        np.add.at(counts, self.neighbour, 1.0)
        return counts


def _face_geometry(mesh: FVMesh) -> Tuple[NDArrayFloat, NDArrayFloat, NDArrayFloat]:
    """Normal distances, interpolation weights and centre vectors per face."""
    ni = mesh.n_internal
    own = mesh.owner

    d = np.empty((mesh.n_faces, 3))
    d[:ni] = mesh.C[mesh.neighbour] - mesh.C[own[:ni]]
    d[ni:] = mesh.Cf[ni:] - mesh.C[own[ni:]]

    delta = np.abs(np.einsum('ij,ij->i', d, mesh.n))
    delta = np.maximum(delta, 1e-300)

    dist_o = np.linalg.norm(mesh.Cf[:ni] - mesh.C[own[:ni]], axis=1)
    dist_n = np.linalg.norm(mesh.Cf[:ni] - mesh.C[mesh.neighbour], axis=1)
    weights = dist_o / np.maximum(dist_o + dist_n, 1e-300)

    return delta, weights, d


def compute_wall_distance(mesh: FVMesh) -> NDArrayFloat:
    """Distance from each cell centre to the nearest wall face centre.

    Brute force over wall faces; meshes without walls get a large constant.
    """
    walls = mesh.patches_of_kind(WALL_KINDS)
    if not walls:
        return np.full(mesh.n_cells, FAR_WALL_DISTANCE)

    centres = np.concatenate([mesh.Cf[p.faces] for p in walls], axis=0)
    dist = np.full(mesh.n_cells, np.inf)
    # Chunked to bound memory on larger meshes
    chunk = 4096
    for start in range(0, mesh.n_cells, chunk):
        block = mesh.C[start:start + chunk]
        diff = block[:, None, :] - centres[None, :, :]
        dist[start:start + chunk] = np.sqrt(np.min(np.sum(diff ** 2, axis=2), axis=1))
    return dist


# =============================================================================
# Builders
# =============================================================================

def line_mesh(n_cells: int = 20, length: float = 1.0, area: float = 1.0,
              inlet: str = "inlet", outlet: str = "extrapolated") -> FVMesh:
    """
    One-dimensional row of cells along x.

    Parameters
    ----------
    n_cells : int
        Number of cells.
    length : float
        Domain length.
    area : float
        Cross-section area of every face.
    inlet, outlet : str
        Patch kinds at x = 0 and x = length.

    Returns
    -------
    FVMesh
        Internal faces 0..n_cells-2, then the inlet face, then the outlet face.
    """
    dx = length / n_cells
    xc = (np.arange(n_cells) + 0.5) * dx

    n_int = n_cells - 1
    left = np.arange(n_int, dtype=np.int64)

    owner = np.concatenate([left, [0, n_cells - 1]]).astype(np.int64)
    neighbour = left + 1
    owner_owner = np.maximum(left - 1, 0)
    neighbour_neighbour = np.minimum(left + 2, n_cells - 1)

    xf = np.concatenate([(left + 1) * dx, [0.0, length]])
    normals = np.zeros((n_int + 2, 3))
    normals[:, 0] = 1.0
    normals[n_int, 0] = -1.0

    C = np.zeros((n_cells, 3))
    C[:, 0] = xc
    Cf = np.zeros((n_int + 2, 3))
    Cf[:, 0] = xf

    patches = [
        Patch("inlet", inlet, n_int, 1),
        Patch("outlet", outlet, n_int + 1, 1),
    ]
    return FVMesh(
        V=np.full(n_cells, dx * area),
        C=C,
        Sf=np.full(n_int + 2, area),
        n=normals,
        Cf=Cf,
        owner=owner,
        neighbour=neighbour,
        owner_owner=owner_owner,
        neighbour_neighbour=neighbour_neighbour,
        patches=patches,
    )


def rectangle_mesh(nx: int, ny: int, lx: float = 1.0, ly: float = 1.0,
                   kinds: dict = None, depth: float = 1.0) -> FVMesh:
    """
    Uniform two-dimensional Cartesian mesh of nx by ny cells (one cell deep).

    Cell (i, j) has index i + j * nx. Patches are named "left", "right",
    "bottom" and "top"; ``kinds`` maps these names to patch kinds
    (default: inlet, extrapolated, wall, freestream).
    """
    kinds_all = {"left": "inlet", "right": "extrapolated", "bottom": "wall", "top": "freestream"}
    if kinds:
        kinds_all.update(kinds)

    dx, dy = lx / nx, ly / ny
    ii, jj = np.meshgrid(np.arange(nx), np.arange(ny), indexing='ij')
    ii = ii.T.ravel()
    jj = jj.T.ravel()
    cell = ii + jj * nx

    C = np.zeros((nx * ny, 3))
    C[cell, 0] = (ii + 0.5) * dx
    C[cell, 1] = (jj + 0.5) * dy

    # Internal x-faces between (i, j) and (i+1, j)
    xi_i, xi_j = np.meshgrid(np.arange(nx - 1), np.arange(ny), indexing='ij')
    xi_i, xi_j = xi_i.ravel(), xi_j.ravel()
    x_own = xi_i + xi_j * nx
    x_nei = x_own + 1
    x_oo = np.maximum(xi_i - 1, 0) + xi_j * nx
    x_nn = np.minimum(xi_i + 2, nx - 1) + xi_j * nx
    x_cf = np.stack([(xi_i + 1) * dx, (xi_j + 0.5) * dy, np.zeros_like(xi_i, dtype=float)], axis=1)

    # Internal y-faces between (i, j) and (i, j+1)
    yi_i, yi_j = np.meshgrid(np.arange(nx), np.arange(ny - 1), indexing='ij')
    yi_i, yi_j = yi_i.ravel(), yi_j.ravel()
    y_own = yi_i + yi_j * nx
    y_nei = y_own + nx
    y_oo = yi_i + np.maximum(yi_j - 1, 0) * nx
    y_nn = yi_i + np.minimum(yi_j + 2, ny - 1) * nx
    y_cf = np.stack([(yi_i + 0.5) * dx, (yi_j + 1) * dy, np.zeros_like(yi_i, dtype=float)], axis=1)

    n_x, n_y = x_own.size, y_own.size
    owner = [x_own, y_own]
    normals = [np.tile([1.0, 0.0, 0.0], (n_x, 1)), np.tile([0.0, 1.0, 0.0], (n_y, 1))]
    areas = [np.full(n_x, dy * depth), np.full(n_y, dx * depth)]
    centres = [x_cf, y_cf]

    n_internal = n_x + n_y
    patches = []
    start = n_internal

    j_all = np.arange(ny)
    i_all = np.arange(nx)
    boundary = {
        "left": (0 + j_all * nx, [-1.0, 0.0, 0.0], dy,
                 np.stack([np.zeros(ny), (j_all + 0.5) * dy, np.zeros(ny)], axis=1)),
        "right": (nx - 1 + j_all * nx, [1.0, 0.0, 0.0], dy,
                  np.stack([np.full(ny, lx), (j_all + 0.5) * dy, np.zeros(ny)], axis=1)),
        "bottom": (i_all, [0.0, -1.0, 0.0], dx,
                   np.stack([(i_all + 0.5) * dx, np.zeros(nx), np.zeros(nx)], axis=1)),
        "top": (i_all + (ny - 1) * nx, [0.0, 1.0, 0.0], dx,
                np.stack([(i_all + 0.5) * dx, np.full(nx, ly), np.zeros(nx)], axis=1)),
    }
    for name in ("left", "right", "bottom", "top"):
        cells, normal, length, cf = boundary[name]
        owner.append(cells)
        normals.append(np.tile(normal, (cells.size, 1)))
        areas.append(np.full(cells.size, length * depth))
        centres.append(cf)
        patches.append(Patch(name, kinds_all[name], start, cells.size))
        start += cells.size

    return FVMesh(
        V=np.full(nx * ny, dx * dy * depth),
        C=C,
        Sf=np.concatenate(areas),
        n=np.concatenate(normals, axis=0),
        Cf=np.concatenate(centres, axis=0),
        owner=np.concatenate(owner).astype(np.int64),
        neighbour=np.concatenate([x_nei, y_nei]).astype(np.int64),
        owner_owner=np.concatenate([x_oo, y_oo]).astype(np.int64),
        neighbour_neighbour=np.concatenate([x_nn, y_nn]).astype(np.int64),
        patches=patches,
    )
