"""
Dual-time-stepping source built with an explicit two-half protocol.

With the physical time derivative discretized by second-order backward
differences,

    V dW/dt ≈ V (3 W - 4 W^n + W^(n-1)) / (2 Δt)

the pseudo-time residual gains  S - c V W / Δt  where the frozen source S
and the implicit coefficient c are assembled in two halves:

    half 1:  first = V W^n / Δt   (frozen)
             S = first, c = 1     (backward Euler until half 2)
    half 2:  S = 2 first - ½ older,  c = 3/2
             older <- first

``older`` is the first half of the previous physical step, i.e.
V W^(n-1) / Δt. On the first physical step it is taken equal to ``first``
(constant history start). With first = 2.0 and older = 3.0 the blended
source is 2 · 2.0 - ½ · 3.0 = 2.5.
"""

from enum import Enum
from typing import List, Optional, Sequence

import numpy as np
import numpy.typing as npt

NDArrayFloat = npt.NDArray[np.floating]

BDF2_COEFFICIENT = 1.5


class DTSPhase(Enum):
    """Build state of the dual-time-stepping source."""
    EMPTY = 0        # Nothing built (steady run or before the first physical step)
    FIRST_HALF = 1   # First half frozen, provisional backward-Euler source
    READY = 2        # Blended source valid until the next physical step


class DualTimeSource:
    """Two-half dual-time-stepping source for one equation set."""

    def __init__(self, size: int):
        self.size = size
        self.phase = DTSPhase.EMPTY
        self.coefficient = 0.0
        self._first: Optional[List[NDArrayFloat]] = None
        self._older: Optional[List[NDArrayFloat]] = None
        self._source: Optional[List[NDArrayFloat]] = None

    def build(self, half: int, contributions: Optional[Sequence[NDArrayFloat]] = None) -> None:
        """
        Advance the build protocol.

        Parameters
        ----------
        half : int
            1 to freeze the first half from ``contributions``, 2 to blend.
        contributions : sequence of ndarray
            V W^n / Δt per equation; required for half 1, ignored for half 2.

        Raises
        ------
        ValueError
            If half is neither 1 nor 2, or half 1 is given no contributions.
        RuntimeError
            If half 2 is requested before half 1.
        """
        if half == 1:
            if contributions is None or len(contributions) != self.size:
                raise ValueError("build_dts(1) needs one contribution per equation")
            self._first = [np.array(c, dtype=float, copy=True) for c in contributions]
            self._source = [c.copy() for c in self._first]
            self.coefficient = 1.0
            self.phase = DTSPhase.FIRST_HALF
        elif half == 2:
            if self.phase is not DTSPhase.FIRST_HALF:
                raise RuntimeError(f"build_dts(2) called in phase {self.phase.name}, expected FIRST_HALF")
            older = self._older if self._older is not None else self._first
            self._source = [2.0 * f - 0.5 * o for f, o in zip(self._first, older)]
            self._older = self._first
            self.coefficient = BDF2_COEFFICIENT
            self.phase = DTSPhase.READY
        else:
            raise ValueError(f"build_dts half must be 1 or 2, got {half!r}")

    @property
    def active(self) -> bool:
        return self.phase is not DTSPhase.EMPTY

    def source(self, i: int) -> NDArrayFloat:
        """Blended (or provisional) source of equation i."""
        if self._source is None:
            raise RuntimeError("Dual-time source requested before build_dts(1)")
        return self._source[i]
