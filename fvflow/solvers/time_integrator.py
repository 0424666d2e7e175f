"""
Multi-stage pseudo-time integrator with dual time stepping.

One pseudo-time iteration checkpoints the state and runs the stages
α_1 .. α_m. Each stage assembles and advances the flow first, then the
turbulence closure, so the closure sources see the freshest flow state:

    reset_rhs, reset_body, forcing, advection, diffusion, source, add_body,
    solve(α), update, correct_boundary_conditions

Residuals are taken from the first stage of every iteration, before
smoothing. Unsteady runs wrap the iterations in physical time steps with
the two-half dual-time source (build_dts(1) before the first
sub-iteration, build_dts(2) after it) and commit with store().
"""

from pathlib import Path
from typing import Callable, List, Optional

import numpy as np
from loguru import logger

from ..config.schema import SimulationConfig
from ..operators.navier_stokes import NavierStokesOperator, FlowStatistics
from ..turbulence.selector import TurbulenceModel

ForcingHook = Callable[[object], None]


class TimeSteppingSolver:
    """
    Local-time-stepping multi-stage solver for the flow and its closure.

    Parameters
    ----------
    mesh : FVMesh
    config : SimulationConfig, optional
    forcing : callable, optional
        Called with each operator after reset_body() to inject external
        forcing through its body(i) arrays.
    """

    def __init__(self, mesh, config: Optional[SimulationConfig] = None,
                 forcing: Optional[ForcingHook] = None):
        self.config = config or SimulationConfig()
        self.settings = self.config.solver
        self.mesh = mesh
        self.forcing = forcing

        self.flow = NavierStokesOperator(mesh, self.config)
        self.turbulence = TurbulenceModel(self.flow, self.config)

        self.iteration = 0
        self.physical_step = 0
        self.time = 0.0
        self.converged = False
        self.residual_history: List[tuple] = []
        self.iteration_history: List[int] = []
        self._dt_stale = True

        logger.info(f"{'='*60}")
        logger.info("TimeStepping Solver Initialized")
        logger.info(f"{'='*60}")
        logger.info(f"Cells: {mesh.n_cells}, faces: {mesh.n_faces} ({mesh.n_boundary} boundary)")
        logger.info(f"Physics: {self.flow.variant}, flux: {self.config.flow.flux}")
        logger.info(f"Turbulence: {', '.join(self.turbulence.names) or 'off'}")
        logger.info(f"Stages: {list(self.settings.stages)}")
        logger.info(f"Target Courant: {self.settings.courant.target}")
        if self.settings.unsteady:
            logger.info(f"Dual time stepping: dt={self.settings.time_step:.3e}, "
                        f"{self.settings.sub_iterations} sub-iterations")
        logger.info(f"{'='*60}")

    # -------------------------------------------------------------------------
    # Pseudo-time iteration
    # -------------------------------------------------------------------------

    def update_dt(self) -> FlowStatistics:
        c = self.settings.courant
        stats = self.flow.update_dt(c.time_stepping, c.target, c.min_max, c.bounds)
        self._dt_stale = False
        return stats

    def _refresh_dt(self) -> None:
        refresh = self.settings.courant.refresh
        if self._dt_stale or (refresh > 0 and self.iteration % refresh == 0):
            self.update_dt()

    def _stage(self, op, alpha: float, unsteady: bool, iterations: int,
               epsilon: float, first: bool) -> None:
        op.reset_rhs()
        op.reset_body()
        if self.forcing is not None:
            self.forcing(op)
        op.advection()
        op.diffusion()
        op.source(unsteady)
        op.add_body(unsteady)
        op.solve(alpha, iterations, epsilon)
        op.update()
        op.correct_boundary_conditions()
        if first:
            op.update_residual(self.settings.normalization)

    def iterate(self, unsteady: bool = False) -> float:
        """One multi-stage pseudo-time iteration; returns the combined residual."""
        self._refresh_dt()

        flow_num = self.config.flow
        turb = self.turbulence.settings
        turb_iterations = turb.iterations if turb is not None else 0
        turb_epsilon = turb.epsilon if turb is not None else 0.0

        self.flow.checkpoint()
        self.turbulence.checkpoint()
        for k, alpha in enumerate(self.settings.stages):
            first = k == 0
            if first:
                self.flow.reset_residual()
                self.turbulence.reset_residual()
            self._stage(self.flow, alpha, unsteady, flow_num.iterations, flow_num.epsilon, first)
            self._stage(self.turbulence, alpha, unsteady, turb_iterations, turb_epsilon, first)
            self.turbulence.wall_functions()

        self.iteration += 1
        res = self.residual()
        self.residual_history.append((self.flow.residual(), self.turbulence.residual(), res))
        self.iteration_history.append(self.iteration)

        if self.iteration % self.settings.print_freq == 0 or self.iteration == 1:
            self._log_iteration(res)
        return res

    def residual(self) -> float:
        """Combined residual: the largest of the flow and closure residuals."""
        return max(self.flow.residual(), self.turbulence.residual())

    def statistics(self) -> Optional[FlowStatistics]:
        return self.flow.statistics()

    def _log_iteration(self, res: float) -> None:
        stats = self.flow.statistics()
        line = (f"{self.iteration:>8d} {res:>14.6e} {self.flow.residual():>14.6e} "
                f"{self.turbulence.residual():>14.6e}")
        if stats is not None:
            line += f"  CFL min/max/avg={stats.courant_min:.2f}/{stats.courant_max:.2f}/{stats.courant_avg:.2f}"
        logger.info(line)

    # -------------------------------------------------------------------------
    # Runs
    # -------------------------------------------------------------------------

    def run_steady(self, max_iter: Optional[int] = None) -> bool:
        """Iterate until the combined residual drops below tol."""
        max_iter = self.settings.max_iter if max_iter is None else max_iter
        logger.info("Starting steady-state iteration")
        logger.info(f"{'Iter':>8} {'Residual':>14} {'Flow':>14} {'Turbulence':>14}")
        logger.info(f"{'-'*60}")

        for _ in range(max_iter):
            res = self.iterate()
            if not np.isfinite(res):
                logger.warning(f"DIVERGED at iteration {self.iteration} (residual {res})")
                return False
            if 0.0 <= res <= self.settings.tol:
                self.converged = True
                logger.info(f"CONVERGED at iteration {self.iteration}, residual {res:.3e}")
                return True

        logger.info(f"Maximum iterations ({max_iter}) reached, residual {self.residual():.3e}")
        return False

    def step(self) -> bool:
        """
        Advance one physical time step with dual time stepping.

        Returns True if the sub-iterations met the residual criterion.
        """
        self._dt_stale = True
        self.flow.build_dts(1)
        self.turbulence.build_dts(1)

        converged = False
        for k in range(self.settings.sub_iterations):
            res = self.iterate(unsteady=True)
            if k == 0:
                self.flow.build_dts(2)
                self.turbulence.build_dts(2)
            if not np.isfinite(res):
                logger.warning(f"DIVERGED in physical step {self.physical_step + 1}")
                break
            if 0.0 <= res <= self.settings.tol:
                converged = True
                break

        self.flow.store()
        self.turbulence.store()
        self.physical_step += 1
        self.time += self.settings.time_step
        logger.info(f"Physical step {self.physical_step}: t={self.time:.6e}, "
                    f"residual {self.residual():.3e}")
        return converged

    def run(self) -> bool:
        """Complete steady or unsteady run as configured."""
        if not self.settings.unsteady:
            return self.run_steady()
        all_converged = True
        for _ in range(self.settings.n_time_steps):
            all_converged = self.step() and all_converged
            if not np.isfinite(self.residual()):
                return False
        self.converged = all_converged
        return all_converged

    def save_residual_history(self, filename: Optional[str] = None) -> Path:
        """Write the residual history as plain columns."""
        if filename is None:
            out_dir = Path(self.config.output.directory)
            out_dir.mkdir(parents=True, exist_ok=True)
            filename = out_dir / f"{self.config.output.case_name}_residuals.dat"
        filename = Path(filename)

        with open(filename, 'w') as f:
            f.write("# Normalized RMS residuals (-1 = undefined)\n")
            f.write("# Iteration  Flow  Turbulence  Combined\n")
            for it, (r_flow, r_turb, r_all) in zip(self.iteration_history, self.residual_history):
                f.write(f"{it:8d}  {r_flow:.10e}  {r_turb:.10e}  {r_all:.10e}\n")

        logger.info(f"Residual history saved to: {filename}")
        return filename
