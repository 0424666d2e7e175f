"""
Field ledger: storage for the conservative quantities of one equation set.

For every equation the ledger holds the current cell values, boundary-face
values, the previous-time-step copy, the iteration-start copy used by the
multi-stage update, the right-hand-side and body-source accumulators, and
the point-implicit diagonal. Arrays are allocated once; every operation
mutates them in place so views handed out stay valid for the whole run.
"""

from typing import Sequence, Tuple, Optional, List

import numpy as np
import numpy.typing as npt

NDArrayFloat = npt.NDArray[np.floating]


class FieldLedger:
    """
    Per-equation arrays of a discretization operator.

    Parameters
    ----------
    names : sequence of str
        Equation names, fixing the equation count for the ledger's lifetime.
    n_cells, n_boundary : int
        Number of cells and boundary faces.
    components : sequence of int, optional
        Components per equation (1 for scalars, 3 for vectors).
    """

    def __init__(self, names: Sequence[str], n_cells: int, n_boundary: int,
                 components: Optional[Sequence[int]] = None):
        self.names: Tuple[str, ...] = tuple(names)
        if components is None:
            components = [1] * len(self.names)
        if len(components) != len(self.names):
            raise ValueError("components must match the number of equations")
        self.components: Tuple[int, ...] = tuple(components)

        def alloc(n):
            return [np.zeros((n,) if c == 1 else (n, c)) for c in self.components]

        self._current: List[NDArrayFloat] = alloc(n_cells)
        self._boundary: List[NDArrayFloat] = alloc(n_boundary)
        self._previous: List[NDArrayFloat] = alloc(n_cells)
        self._start: List[NDArrayFloat] = alloc(n_cells)
        self._rhs: List[NDArrayFloat] = alloc(n_cells)
        self._body: List[NDArrayFloat] = alloc(n_cells)
        self._lhs: List[NDArrayFloat] = [np.zeros(n_cells) for _ in self.names]
        self._unsmoothed: Optional[List[NDArrayFloat]] = None

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    def size(self) -> int:
        return len(self.names)

    def index(self, name: str) -> int:
        return self.names.index(name)

    def conservative(self, i: int) -> NDArrayFloat:
        return self._current[i]

    def boundary(self, i: int) -> NDArrayFloat:
        return self._boundary[i]

    def conservative_o(self, i: int) -> NDArrayFloat:
        return self._previous[i]

    def start(self, i: int) -> NDArrayFloat:
        return self._start[i]

    def rhs(self, i: int) -> NDArrayFloat:
        return self._rhs[i]

    def body(self, i: int) -> NDArrayFloat:
        return self._body[i]

    def lhs(self, i: int) -> NDArrayFloat:
        return self._lhs[i]

    def unsmoothed_rhs(self, i: int) -> NDArrayFloat:
        """The rhs as assembled, before any smoothing pass."""
        if self._unsmoothed is None:
            return self._rhs[i]
        return self._unsmoothed[i]

    # -------------------------------------------------------------------------
    # Bookkeeping
    # -------------------------------------------------------------------------

    def reset_rhs(self) -> None:
        for rhs, lhs in zip(self._rhs, self._lhs):
            rhs.fill(0.0)
            lhs.fill(0.0)
        self._unsmoothed = None

    def reset_body(self) -> None:
        for body in self._body:
            body.fill(0.0)

    def snapshot_rhs(self) -> None:
        """Keep a copy of the assembled rhs before it is smoothed."""
        if self._unsmoothed is None:
            self._unsmoothed = [r.copy() for r in self._rhs]

    def store(self) -> None:
        """Copy the current state into the previous-time-step state."""
        for cur, prev in zip(self._current, self._previous):
            np.copyto(prev, cur)

    def checkpoint(self) -> None:
        """Copy the current state into the iteration-start state."""
        for cur, start in zip(self._current, self._start):
            np.copyto(start, cur)
