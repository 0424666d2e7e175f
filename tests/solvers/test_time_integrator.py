"""
Tests for the multi-stage pseudo-time integrator and the solver factory.
"""

import pytest
import numpy as np

from fvflow.config import SimulationConfig
from fvflow.constants import ET_IDX, RESIDUAL_UNDEFINED
from fvflow.fields import DTSPhase
from fvflow.grid import line_mesh
from fvflow.operators import NavierStokesOperator
from fvflow.solvers import TimeSteppingSolver, Solver, create_solver, DEFAULT_SOLVER

from conftest import gaussian


def seed_bump(solver, amplitude=1.0):
    """Superimpose a nuTilda bump on the freestream value and commit it."""
    closure = solver.turbulence.closure
    x = solver.mesh.C[:, 0]
    closure.nu_tilda[:] = closure.inflow_value * (1.0 + amplitude * gaussian(x))
    closure.correct_boundary_conditions()
    closure.update()
    closure.store()
    closure.checkpoint()


class TestSteadyIteration:
    """Local-time-stepping iterations towards a steady state."""

    def test_uniform_flow_converges_immediately(self, channel_mesh, euler_config):
        solver = TimeSteppingSolver(channel_mesh, euler_config)
        assert solver.run() is True
        assert solver.iteration == 1
        assert solver.residual() == 0.0
        assert solver.turbulence.residual() == RESIDUAL_UNDEFINED

    def test_spalart_allmaras_bump_washes_out(self, sa_config):
        mesh = line_mesh(n_cells=20, length=1.0, inlet="inlet", outlet="extrapolated")
        solver = TimeSteppingSolver(mesh, sa_config)
        seed_bump(solver)

        for _ in range(400):
            solver.iterate()

        history = np.array(solver.residual_history)
        flow, turb, combined = history[:, 0], history[:, 1], history[:, 2]

        # Uniform flow is an exact discrete steady state
        np.testing.assert_array_equal(flow, 0.0)
        np.testing.assert_array_equal(combined, turb)
        assert combined[0] == pytest.approx(1.0)
        assert combined[-1] < 0.1 * combined[0]
        assert combined[399] <= combined[199]
        assert np.all(solver.turbulence.closure.nu_tilda > 0.0)

    def test_kappa_omega_smoke(self, box_mesh, kw_config):
        solver = TimeSteppingSolver(box_mesh, kw_config)
        for _ in range(30):
            res = solver.iterate()
        assert np.isfinite(res)
        assert solver.turbulence.residual() >= 0.0
        closure = solver.turbulence.closure
        assert np.all(closure.k > 0.0)
        assert np.all(closure.omega > 0.0)
        assert np.all(np.isfinite(solver.flow.rho))

    def test_smoothing_does_not_change_residual(self, sa_config):
        """Residuals are taken from the assembled rhs, before smoothing."""
        mesh = line_mesh(n_cells=20)
        plain = TimeSteppingSolver(mesh, sa_config)
        seed_bump(plain)
        plain.iterate()

        smoothed_config = SimulationConfig(turbulence="SA")
        smoothed_config.spalart_allmaras.iterations = 4
        smoothed = TimeSteppingSolver(mesh, smoothed_config)
        seed_bump(smoothed)
        smoothed.iterate()

        assert smoothed.turbulence.closure.residuals.raw[0] == pytest.approx(
            plain.turbulence.closure.residuals.raw[0], rel=1e-12)

    def test_max_iter_reached(self, sa_config):
        sa_config.solver.max_iter = 5
        solver = TimeSteppingSolver(line_mesh(n_cells=20), sa_config)
        seed_bump(solver)
        assert solver.run_steady() is False
        assert solver.iteration == 5

    def test_dt_refresh_zero_keeps_dt(self, channel_mesh, euler_config):
        euler_config.solver.courant.refresh = 0
        solver = TimeSteppingSolver(channel_mesh, euler_config)
        solver.iterate()
        solver.flow.dt[:] = 1e-9
        solver.iterate()
        np.testing.assert_array_equal(solver.flow.dt, 1e-9)

    def test_dt_refresh_every_iteration(self, channel_mesh, euler_config):
        solver = TimeSteppingSolver(channel_mesh, euler_config)
        solver.iterate()
        solver.flow.dt[:] = 1e-9
        solver.iterate()
        assert np.all(solver.flow.dt > 1e-9)


class TestForcing:
    """External forcing hook."""

    def test_energy_forcing_heats_flow(self, channel_mesh, euler_config):
        def heat(op):
            if isinstance(op, NavierStokesOperator):
                op.body(ET_IDX)[:] = 1.0e3 * op.mesh.V

        solver = TimeSteppingSolver(channel_mesh, euler_config, forcing=heat)
        Et0 = solver.flow.Et.copy()
        solver.iterate()
        assert np.all(solver.flow.Et > Et0)
        assert solver.flow.residual() > 0.0


class TestDualTimeStepping:
    """Physical time steps with the two-half dual-time source."""

    def test_step_protocol(self, channel_mesh, euler_config):
        euler_config.solver.unsteady = True
        euler_config.solver.sub_iterations = 3
        euler_config.solver.time_step = 1e-4
        solver = TimeSteppingSolver(channel_mesh, euler_config)

        assert solver.step() is True
        assert solver.physical_step == 1
        assert solver.time == pytest.approx(1e-4)
        assert solver.flow.dts.phase is DTSPhase.READY
        np.testing.assert_array_equal(solver.flow.conservative_o(0), solver.flow.rho)

    def test_unsteady_bump_is_advected(self, sa_config):
        sa_config.solver.unsteady = True
        sa_config.solver.sub_iterations = 20
        sa_config.solver.n_time_steps = 3
        sa_config.solver.time_step = 2e-3
        sa_config.solver.tol = 1e-12
        mesh = line_mesh(n_cells=20)
        solver = TimeSteppingSolver(mesh, sa_config)
        seed_bump(solver)

        closure = solver.turbulence.closure
        x = mesh.C[:, 0]
        centre0 = np.sum(x * (closure.nu_tilda - closure.inflow_value)) / np.sum(
            closure.nu_tilda - closure.inflow_value)

        solver.run()
        assert solver.physical_step == 3
        assert closure.dts.phase is DTSPhase.READY
        excess = closure.nu_tilda - closure.inflow_value
        centre = np.sum(x * excess) / np.sum(excess)
        # 3 steps of 2 ms at 50 m/s move the bump about 0.3 downstream
        assert centre > centre0 + 0.1
        np.testing.assert_array_equal(closure.conservative_o(0), closure.nu_tilda)

    def test_first_step_dts_source(self, channel_mesh, euler_config):
        solver = TimeSteppingSolver(channel_mesh, euler_config)
        flow = solver.flow
        flow.build_dts(1)
        expected = channel_mesh.V * flow.conservative_o(0) / flow.time_step
        np.testing.assert_array_equal(flow.dts.source(0), expected)
        flow.build_dts(2)
        np.testing.assert_allclose(flow.dts.source(0), 1.5 * expected)
        assert flow.dts.coefficient == 1.5


class TestFactory:
    """Solver selection by tag."""

    def test_default(self, channel_mesh):
        solver = create_solver(channel_mesh)
        assert isinstance(solver, Solver)
        assert solver.tag == DEFAULT_SOLVER
        assert isinstance(solver.strategy, TimeSteppingSolver)

    def test_alias(self, channel_mesh, euler_config):
        euler_config.solver.tag = "TS"
        assert create_solver(channel_mesh, euler_config).tag == "TS"

    def test_unknown_tag_falls_back(self, channel_mesh, euler_config):
        euler_config.solver.tag = "NewtonKrylov"
        solver = create_solver(channel_mesh, euler_config)
        assert solver.tag == DEFAULT_SOLVER
        assert solver.run() is True

    def test_forwarding(self, channel_mesh, sa_config):
        solver = create_solver(channel_mesh, sa_config)
        assert solver.flow is solver.strategy.flow
        assert solver.turbulence.active
        res = solver.iterate()
        assert res == solver.residual()
        assert len(solver.residual_history) == 1
        assert solver.statistics() is not None

    def test_residual_history_file(self, channel_mesh, euler_config, tmp_path):
        solver = create_solver(channel_mesh, euler_config)
        solver.iterate()
        solver.iterate()
        path = solver.save_residual_history(tmp_path / "residuals.dat")
        lines = [l for l in path.read_text().splitlines() if not l.startswith("#")]
        assert len(lines) == 2
        assert lines[0].split()[0] == "1"
