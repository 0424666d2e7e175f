"""
Residual tracking with a lazily established normalization reference.

The residual of an equation is the root-mean-square of its unsmoothed rhs
over all cells (vector equations use the magnitude per cell), reduced over
partitions, divided by a reference. The reference is captured on the first
update and then held fixed, so the reported history is a true relative
drop. The combined residual is the largest equation residual.
"""

from typing import Sequence

import numpy as np
import numpy.typing as npt

from ..constants import RESIDUAL_UNDEFINED, RESIDUAL_FLOOR

NDArrayFloat = npt.NDArray[np.floating]

NORMALIZATION_MODES = ("initial", "none")


def rms(values: NDArrayFloat, reductions) -> float:
    """Global RMS of a per-cell scalar or vector field."""
    flat = values.reshape(values.shape[0], -1)
    sum_sq = reductions.sum(float(np.sum(flat * flat)))
    count = reductions.sum(float(values.shape[0]))
    if count <= 0.0:
        return 0.0
    return float(np.sqrt(sum_sq / count))


class ResidualTracker:
    """
    Residual state of one equation set.

    Attributes
    ----------
    residuals : ndarray
        Current normalized residual per equation, RESIDUAL_UNDEFINED until
        the first update.
    reference : ndarray
        Normalization reference per equation (zero until established).
    """

    def __init__(self, names: Sequence[str]):
        self.names = tuple(names)
        n = len(self.names)
        self.residuals = np.full(n, RESIDUAL_UNDEFINED)
        self.raw = np.full(n, RESIDUAL_UNDEFINED)
        self.reference = np.zeros(n)
        self.established = False

    def reset(self) -> None:
        """Clear the current residuals to the sentinel; the reference is kept."""
        self.residuals.fill(RESIDUAL_UNDEFINED)
        self.raw.fill(RESIDUAL_UNDEFINED)

    def update(self, rhs_arrays: Sequence[NDArrayFloat], reductions,
               normalization: str = "initial") -> None:
        """
        Recompute residuals from the rhs arrays (one per equation).

        Parameters
        ----------
        rhs_arrays : sequence of ndarray
            Unsmoothed rhs of every equation.
        reductions : object
            Provides ``sum`` for the global reduction.
        normalization : str
            "initial": reference is the first residual (1.0 if that is zero).
            "none": reference is 1.0.
            Only consulted on the first call.
        """
        raw = np.array([rms(r, reductions) for r in rhs_arrays], dtype=float)

        if not self.established:
            if normalization not in NORMALIZATION_MODES:
                raise ValueError(
                    f"Unknown normalization '{normalization}', expected one of {NORMALIZATION_MODES}"
                )
            if normalization == "none":
                self.reference = np.ones_like(raw)
            else:
                self.reference = np.where(raw > RESIDUAL_FLOOR, raw, 1.0)
            self.established = True

        self.raw[:] = raw
        self.residuals[:] = raw / self.reference

    def value(self, i: int) -> float:
        return float(self.residuals[i])

    def combined(self) -> float:
        """Maximum across equations, or the sentinel if any is undefined."""
        if self.residuals.size == 0 or np.any(self.residuals < 0.0):
            return RESIDUAL_UNDEFINED
        return float(np.max(self.residuals))
