"""
Discretization-operator contract shared by the flow and every turbulence closure.

An operator owns the field ledger of one equation set, its residual tracker
and its dual-time-stepping source. Within one pseudo-time stage the caller
drives it in a fixed order:

    reset_rhs, reset_body          zero the accumulators
    advection, diffusion, source   assemble the discretization into rhs
    add_body                       fold the external forcing into rhs
    solve(alpha, iterations, eps)  smooth, then advance from the checkpoint
    update                         refresh derived fields
    correct_boundary_conditions    refresh boundary values

Accessors are indexed by equation, ``0 <= i < size()``.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence

import numpy as np
import numpy.typing as npt

from ..fields.ledger import FieldLedger
from ..fields.residuals import ResidualTracker
from ..fields.dual_time import DualTimeSource
from ..numerics.smoothing import smooth_residual

NDArrayFloat = npt.NDArray[np.floating]


class DiscretizationOperator(ABC):
    """
    Base class of every equation set.

    Parameters
    ----------
    mesh : FVMesh
        Mesh metrics, connectivity and reductions.
    names : sequence of str
        Equation names.
    components : sequence of int, optional
        Components per equation (3 for vectors).
    smoothing : str
        Residual smoothing mode, "implicit" or "explicit".
    time_step : float
        Physical time step used by the dual-time source.
    """

    def __init__(self, mesh, names: Sequence[str], components: Optional[Sequence[int]] = None,
                 smoothing: str = "implicit", time_step: float = 1e-3):
        self.mesh = mesh
        self.fields = FieldLedger(names, mesh.n_cells, mesh.n_boundary, components)
        self.residuals = ResidualTracker(names)
        self.dts = DualTimeSource(len(self.fields.names))
        self.smoothing = smoothing
        self.time_step = float(time_step)

    # -------------------------------------------------------------------------
    # Discretization (implemented per equation set)
    # -------------------------------------------------------------------------

    @abstractmethod
    def advection(self) -> None:
        """Add the convective contribution to rhs."""

    @abstractmethod
    def diffusion(self) -> None:
        """Add the diffusive contribution to rhs."""

    @abstractmethod
    def source(self, unsteady: bool = False) -> None:
        """Add volumetric sources (and the dual-time term when unsteady) to rhs."""

    @abstractmethod
    def update(self) -> None:
        """Recompute derived quantities from the conservative state."""

    @abstractmethod
    def correct_boundary_conditions(self) -> None:
        """Reapply the boundary-value policies to every owned field."""

    @abstractmethod
    def pseudo_time_step(self) -> NDArrayFloat:
        """Local pseudo-time step per cell."""

    @abstractmethod
    def _advance(self, alpha: float) -> None:
        """Update the conservative state from the checkpoint with the current rhs."""

    # -------------------------------------------------------------------------
    # Assembly bookkeeping
    # -------------------------------------------------------------------------

    def add_body(self, unsteady: bool = False) -> None:
        """Fold the externally injected forcing into rhs.

        Forcing carries no time-derivative part, so steady and unsteady runs
        treat it alike.
        """
        for i in range(self.size()):
            self.fields.rhs(i)[...] += self.fields.body(i)

    def reset_rhs(self) -> None:
        self.fields.reset_rhs()

    def reset_body(self) -> None:
        self.fields.reset_body()

    def smooth_rhs(self, iterations: int = 0, epsilon: float = 0.5) -> None:
        """Smooth every rhs in place; the assembled rhs is kept for residuals."""
        self.fields.snapshot_rhs()
        if iterations <= 0:
            return
        for i in range(self.size()):
            smooth_residual(self.fields.rhs(i), self.mesh, epsilon, iterations, self.smoothing)

    def solve(self, alpha: float = 1.0, iterations: int = 0, epsilon: float = 0.5) -> None:
        """One relaxed pseudo-time stage: smooth rhs, then advance."""
        self.smooth_rhs(iterations, epsilon)
        self._advance(alpha)

    def store(self) -> None:
        """Commit the physical-time-step boundary."""
        self.fields.store()

    def checkpoint(self) -> None:
        """Mark the current state as the start of a multi-stage iteration."""
        self.fields.checkpoint()

    # -------------------------------------------------------------------------
    # Residuals
    # -------------------------------------------------------------------------

    def residual(self) -> float:
        return self.residuals.combined()

    def reset_residual(self) -> None:
        self.residuals.reset()

    def update_residual(self, normalization: str = "initial") -> None:
        rhs = [self.fields.unsmoothed_rhs(i) for i in range(self.size())]
        self.residuals.update(rhs, self.mesh.reductions, normalization)

    # -------------------------------------------------------------------------
    # Dual time stepping
    # -------------------------------------------------------------------------

    def build_dts(self, half: int) -> None:
        """
        Build the dual-time source; half 1 freezes V W^n / dt from the stored
        state, half 2 blends it with the previous physical step.
        """
        contributions = None
        if half == 1:
            contributions = [self._volume(i, self.mesh.V_o) * self.fields.conservative_o(i) / self.time_step
                             for i in range(self.size())]
        self.dts.build(half, contributions)

    def _add_dual_time_terms(self) -> None:
        """rhs += S - c V W / dt, and c V / dt on the implicit diagonal."""
        if not self.dts.active:
            return
        c = self.dts.coefficient
        for i in range(self.size()):
            V = self._volume(i)
            self.fields.rhs(i)[...] += self.dts.source(i) - c * V * self.fields.conservative(i) / self.time_step
            self.fields.lhs(i)[...] += c * self.mesh.V / self.time_step

    def _volume(self, i: int, V: Optional[NDArrayFloat] = None) -> NDArrayFloat:
        """Cell volumes shaped to broadcast against equation i."""
        V = self.mesh.V if V is None else V
        if self.fields.components[i] == 1:
            return V
        return V[:, None]

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def names(self):
        return self.fields.names

    def size(self) -> int:
        return self.fields.size()

    def conservative(self, i: int) -> NDArrayFloat:
        return self.fields.conservative(i)

    def conservative_o(self, i: int) -> NDArrayFloat:
        return self.fields.conservative_o(i)

    def boundary(self, i: int) -> NDArrayFloat:
        return self.fields.boundary(i)

    def body(self, i: int) -> NDArrayFloat:
        return self.fields.body(i)

    def rhs(self, i: int) -> NDArrayFloat:
        return self.fields.rhs(i)
