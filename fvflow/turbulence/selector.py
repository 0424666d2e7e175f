"""
Turbulence model selection.

TurbulenceModel resolves the configured tag once, owns the one closure it
allocates and forwards the whole operator contract to it. When no closure
is active (no tag, an unknown tag, or a coarse multigrid level with the
closure suppressed) it is Off: size() is 0, field accessors return one
shared read-only placeholder array, residual() is -1.0 and every other
operation does nothing. Callers never branch on the state themselves.
"""

from enum import Enum
from typing import Optional

import numpy as np
from loguru import logger

from ..config.schema import SimulationConfig
from ..constants import RESIDUAL_UNDEFINED
from .spalart_allmaras import SpalartAllmarasClosure
from .kappa_omega import KappaOmegaClosure


class TurbulenceState(Enum):
    """Lifecycle of the selector; fixed after construction."""
    UNSELECTED = 0
    ACTIVE = 1
    OFF = 2


# Alias -> (closure class, config section)
_CLOSURES = {
    "SpalartAllmaras": (SpalartAllmarasClosure, "spalart_allmaras"),
    "SA": (SpalartAllmarasClosure, "spalart_allmaras"),
    "KappaOmega": (KappaOmegaClosure, "kappa_omega"),
    "KW": (KappaOmegaClosure, "kappa_omega"),
}

_DUMMY = np.zeros(1)
_DUMMY.setflags(write=False)


def resolve_tag(tag: Optional[str]):
    """Closure class and config section for a tag, or None when it names no closure."""
    if tag is None:
        return None
    return _CLOSURES.get(tag)


class TurbulenceModel:
    """
    Forwarding wrapper around the selected turbulence closure.

    Parameters
    ----------
    flow : NavierStokesOperator
        Flow operator the closure couples to.
    config : SimulationConfig, optional
        turbulence selects the closure; turbulence_on_coarse_levels keeps it
        on coarse multigrid levels (mesh.level > 0).
    """

    def __init__(self, flow, config: Optional[SimulationConfig] = None):
        config = config or flow.config
        self.state = TurbulenceState.UNSELECTED
        self.tag = config.turbulence
        self._closure = None
        self.settings = None

        entry = resolve_tag(self.tag)
        coarse = flow.mesh.level > 0 and not config.turbulence_on_coarse_levels

        if entry is None:
            if self.tag is None:
                logger.info("Turbulence: off (no model configured)")
            else:
                logger.info(f"Turbulence: off (unknown model '{self.tag}', "
                            f"expected one of {sorted(_CLOSURES)})")
            self.state = TurbulenceState.OFF
        elif coarse:
            logger.info(f"Turbulence: off on multigrid level {flow.mesh.level}")
            self.state = TurbulenceState.OFF
        else:
            cls, section = entry
            self.settings = getattr(config, section)
            self._closure = cls(flow, self.settings)
            self.state = TurbulenceState.ACTIVE
            logger.info(f"Turbulence: {cls.__name__} ({', '.join(self._closure.names)})")

    @property
    def active(self) -> bool:
        return self.state is TurbulenceState.ACTIVE

    @property
    def closure(self):
        """The owned closure, None when Off."""
        return self._closure

    @property
    def names(self):
        return self._closure.names if self.active else ()

    # -------------------------------------------------------------------------
    # Forwarded contract
    # -------------------------------------------------------------------------

    def advection(self) -> None:
        if self.active:
            self._closure.advection()

    def diffusion(self) -> None:
        if self.active:
            self._closure.diffusion()

    def source(self, unsteady: bool = False) -> None:
        if self.active:
            self._closure.source(unsteady)

    def add_body(self, unsteady: bool = False) -> None:
        if self.active:
            self._closure.add_body(unsteady)

    def reset_rhs(self) -> None:
        if self.active:
            self._closure.reset_rhs()

    def reset_body(self) -> None:
        if self.active:
            self._closure.reset_body()

    def smooth_rhs(self, iterations: int = 0, epsilon: float = 0.5) -> None:
        if self.active:
            self._closure.smooth_rhs(iterations, epsilon)

    def solve(self, alpha: float = 1.0, iterations: int = 0, epsilon: float = 0.5) -> None:
        if self.active:
            self._closure.solve(alpha, iterations, epsilon)

    def store(self) -> None:
        if self.active:
            self._closure.store()

    def checkpoint(self) -> None:
        if self.active:
            self._closure.checkpoint()

    def update(self) -> None:
        if self.active:
            self._closure.update()

    def correct_boundary_conditions(self) -> None:
        if self.active:
            self._closure.correct_boundary_conditions()

    def wall_functions(self) -> None:
        if self.active:
            self._closure.wall_functions()

    def update_wall_distance(self) -> None:
        if self.active:
            self._closure.update_wall_distance()

    def residual(self) -> float:
        if self.active:
            return self._closure.residual()
        return RESIDUAL_UNDEFINED

    def reset_residual(self) -> None:
        if self.active:
            self._closure.reset_residual()

    def update_residual(self, normalization: str = "initial") -> None:
        if self.active:
            self._closure.update_residual(normalization)

    def build_dts(self, half: int) -> None:
        if self.active:
            self._closure.build_dts(half)

    def size(self) -> int:
        return self._closure.size() if self.active else 0

    def conservative(self, i: int):
        return self._closure.conservative(i) if self.active else _DUMMY

    def conservative_o(self, i: int):
        return self._closure.conservative_o(i) if self.active else _DUMMY

    def body(self, i: int):
        return self._closure.body(i) if self.active else _DUMMY

    def rhs(self, i: int):
        return self._closure.rhs(i) if self.active else _DUMMY
