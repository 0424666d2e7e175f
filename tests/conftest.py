"""
Shared pytest fixtures for the test suite.

Meshes are cheap to build but the flux and gradient kernels are compiled
on first use, so the mesh fixtures are session-scoped and shared.
"""

import pytest
import numpy as np
from pathlib import Path

from fvflow.config import SimulationConfig
from fvflow.grid import line_mesh, rectangle_mesh
from fvflow.utils.logging import setup_logging


# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent
EXAMPLE_CONFIGS = PROJECT_ROOT / "config" / "examples"


@pytest.fixture(scope="session", autouse=True)
def quiet_logging():
    """Keep solver banners out of the test output."""
    setup_logging(level="WARNING", show_time=False)


# =============================================================================
# Mesh Fixtures
# =============================================================================

@pytest.fixture(scope="session")
def channel_mesh():
    """
    20-cell channel of unit length, inlet on the left, extrapolated outflow.

    Session-scoped: the mesh is never modified by the operators.
    """
    return line_mesh(n_cells=20, length=1.0, inlet="inlet", outlet="extrapolated")


@pytest.fixture(scope="session")
def box_mesh():
    """8x6 Cartesian box with the default patch kinds (bottom wall)."""
    return rectangle_mesh(8, 6, lx=2.0, ly=1.0)


@pytest.fixture(scope="session")
def open_box_mesh():
    """8x6 Cartesian box without walls."""
    return rectangle_mesh(8, 6, lx=2.0, ly=1.0,
                          kinds={"bottom": "freestream", "top": "freestream"})


# =============================================================================
# Configuration Fixtures
# =============================================================================

@pytest.fixture
def euler_config():
    """Inviscid flow, no turbulence closure."""
    return SimulationConfig()


@pytest.fixture
def sa_config():
    """Euler flow carrying a Spalart-Allmaras closure."""
    config = SimulationConfig(turbulence="SpalartAllmaras")
    config.solver.print_freq = 1000
    return config


@pytest.fixture
def kw_config():
    """RANS flow with the SST closure."""
    config = SimulationConfig(physics="RANS", turbulence="KappaOmega")
    config.solver.print_freq = 1000
    return config


def gaussian(x, centre=0.3, width=0.1):
    """Smooth bump used as an initial disturbance."""
    return np.exp(-((x - centre) / width) ** 2)
