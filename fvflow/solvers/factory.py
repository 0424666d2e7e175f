"""
Solver selection.

Solver wraps the strategy named by ``solver.tag`` the way TurbulenceModel
wraps a closure: the tag is resolved once and the wrapper forwards the run
interface. Unknown tags fall back to TimeStepping with a warning.
"""

from typing import Optional

from loguru import logger

from ..config.schema import SimulationConfig
from .time_integrator import TimeSteppingSolver

DEFAULT_SOLVER = "TimeStepping"

_SOLVERS = {
    "TimeStepping": TimeSteppingSolver,
    "TS": TimeSteppingSolver,
}


class Solver:
    """
    Forwarding wrapper around the selected solver strategy.

    Parameters
    ----------
    mesh : FVMesh
    config : SimulationConfig, optional
    forcing : callable, optional
        External forcing hook passed to the strategy.
    """

    def __init__(self, mesh, config: Optional[SimulationConfig] = None, forcing=None):
        self.config = config or SimulationConfig()
        tag = self.config.solver.tag
        cls = _SOLVERS.get(tag)
        if cls is None:
            logger.warning(f"Unknown solver '{tag}', expected one of {sorted(_SOLVERS)}; "
                           f"using {DEFAULT_SOLVER}")
            cls = _SOLVERS[DEFAULT_SOLVER]
        self.tag = tag if tag in _SOLVERS else DEFAULT_SOLVER
        self.strategy = cls(mesh, self.config, forcing=forcing)

    @property
    def flow(self):
        return self.strategy.flow

    @property
    def turbulence(self):
        return self.strategy.turbulence

    @property
    def residual_history(self):
        return self.strategy.residual_history

    def iterate(self, unsteady: bool = False) -> float:
        return self.strategy.iterate(unsteady)

    def step(self) -> bool:
        return self.strategy.step()

    def run(self) -> bool:
        return self.strategy.run()

    def residual(self) -> float:
        return self.strategy.residual()

    def statistics(self):
        return self.strategy.statistics()

    def save_residual_history(self, filename: Optional[str] = None):
        return self.strategy.save_residual_history(filename)


def create_solver(mesh, config: Optional[SimulationConfig] = None, forcing=None) -> Solver:
    """
    Create a solver for a mesh with consistent settings.

    Parameters
    ----------
    mesh : FVMesh
        Mesh collaborator.
    config : SimulationConfig, optional
        Full configuration; defaults are used when omitted.
    forcing : callable, optional
        Hook called with each operator to fill its body arrays.

    Returns
    -------
    Solver
    """
    return Solver(mesh, config, forcing=forcing)
