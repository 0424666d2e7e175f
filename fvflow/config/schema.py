"""
Configuration schema for the fvflow solver core.

Dataclass-based configuration that can be loaded from YAML or constructed
programmatically. The tree is built once at startup and handed to every
component constructor.
"""

from dataclasses import dataclass, field, asdict
from typing import Optional, List
import math


PHYSICS_ALIASES = {
    "Euler": "Euler",
    "E": "Euler",
    "ReynoldsAveragedNavierStokes": "RANS",
    "RANS": "RANS",
}


@dataclass
class GasConfig:
    """Perfect gas with Sutherland viscosity."""

    gamma: float = 1.4
    R: float = 287.0
    Pr: float = 0.72            # Laminar Prandtl number
    Prt: float = 0.9            # Turbulent Prandtl number
    mu_ref: float = 1.716e-5    # Sutherland reference viscosity [Pa s]
    T_ref: float = 273.15       # Sutherland reference temperature [K]
    S: float = 110.4            # Sutherland constant [K]


@dataclass
class FreestreamConfig:
    """Freestream / initial state."""

    p: float = 101325.0
    U: List[float] = field(default_factory=lambda: [50.0, 0.0, 0.0])
    T: float = 288.15
    nu_tilda_ratio: float = 3.0         # nuTilda / nu at inflow
    turbulence_intensity: float = 0.001  # k = 1.5 (I |U|)^2
    viscosity_ratio: float = 0.1         # nut / nu used for omega at inflow


@dataclass
class CourantConfig:
    """Local pseudo-time step control."""

    target: float = 1.5          # Target Courant number
    time_stepping: str = "local"  # "local" or "global"
    bounds: str = "global"       # "global", "local" or "none"
    min_max: float = 100.0       # Largest allowed dt ratio for bounding
    refresh: int = 1             # Recompute dt every N iterations (0 = once per physical step)


@dataclass
class SolverSettings:
    """Solver iteration settings."""

    tag: str = "TimeStepping"
    max_iter: int = 1000
    tol: float = 1e-8            # Residual drop criterion (normalized)
    print_freq: int = 10
    normalization: str = "initial"  # "initial" or "none"
    stages: List[float] = field(default_factory=lambda: [0.25, 0.1666667, 0.375, 0.5, 1.0])
    courant: CourantConfig = field(default_factory=CourantConfig)

    # Dual time stepping
    unsteady: bool = False
    time_step: float = 1e-3      # Physical time step [s]
    n_time_steps: int = 1
    sub_iterations: int = 50


@dataclass
class FlowNumerics:
    """Flow operator discretization settings."""

    flux: str = "roe"               # "roe" (flux-difference splitting) or "jameson"
    high_resolution: bool = True    # MUSCL reconstruction of face states
    limiter: str = "vanleer"        # "minmod", "vanleer", "vanalbada"
    roe_average: bool = True        # Roe averaging (else arithmetic)
    nonlinear_fix: float = 0.05     # Entropy fix fraction, acoustic fields
    linear_fix: float = 0.05        # Entropy fix fraction, convective field
    jst_k2: float = 0.5             # JST 2nd-difference coefficient
    jst_k4: float = 0.03125         # JST 4th-difference coefficient
    distance_weighted: bool = True  # Face interpolation weights (else arithmetic)
    smoothing: str = "implicit"     # "implicit" or "explicit"
    iterations: int = 0             # Residual smoothing passes
    epsilon: float = 0.5            # Residual smoothing coefficient


@dataclass
class SpalartAllmarasConfig:
    """Spalart-Allmaras constants and numerics."""

    sigma: float = 2.0 / 3.0
    kappa: float = 0.4187
    Cb1: float = 0.1355
    Cb2: float = 0.622
    Cv1: float = 7.1
    Cw2: float = 0.3
    Cw3: float = 2.0
    Cprod: float = 2.0           # Rotation/strain correction of the vorticity
    C: float = 5.5               # Log-law intercept
    linear_fix: float = 0.10
    high_resolution: bool = False
    limiter: str = "vanleer"
    small: float = 1e-10         # Floor for nuTilda
    wall_functions: bool = False
    smoothing: str = "implicit"
    iterations: int = 0
    epsilon: float = 0.5

    @property
    def Cw1(self) -> float:
        return self.Cb1 / self.kappa ** 2 + (1.0 + self.Cb2) / self.sigma

    @property
    def E(self) -> float:
        return math.exp(self.C * self.kappa)


@dataclass
class KappaOmegaConfig:
    """Menter SST constants and numerics."""

    kappa: float = 0.41
    alphaKappa1: float = 0.85034
    alphaKappa2: float = 1.0
    alphaOmega1: float = 0.5
    alphaOmega2: float = 0.85616
    gamma1: float = 0.5532
    gamma2: float = 0.4403
    beta1: float = 0.075
    beta2: float = 0.0828
    betaStar: float = 0.09
    a1: float = 0.31
    c1: float = 10.0             # Production limiter
    C: float = 5.5
    linear_fix: float = 0.10
    high_resolution: bool = False
    limiter: str = "vanleer"
    small: float = 1e-10
    wall_functions: bool = False
    smoothing: str = "implicit"
    iterations: int = 0
    epsilon: float = 0.5

    @property
    def E(self) -> float:
        return math.exp(self.C * self.kappa)


@dataclass
class OutputConfig:
    """Output configuration."""

    directory: str = "output/fvflow"
    case_name: str = "solution"


@dataclass
class SimulationConfig:
    """Complete simulation configuration."""

    physics: str = "Euler"
    turbulence: Optional[str] = None
    turbulence_on_coarse_levels: bool = True
    gas: GasConfig = field(default_factory=GasConfig)
    freestream: FreestreamConfig = field(default_factory=FreestreamConfig)
    solver: SolverSettings = field(default_factory=SolverSettings)
    flow: FlowNumerics = field(default_factory=FlowNumerics)
    spalart_allmaras: SpalartAllmarasConfig = field(default_factory=SpalartAllmarasConfig)
    kappa_omega: KappaOmegaConfig = field(default_factory=KappaOmegaConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    @property
    def physics_variant(self) -> str:
        """Canonical physics tag: "Euler" or "RANS"."""
        try:
            return PHYSICS_ALIASES[self.physics]
        except KeyError:
            raise ValueError(
                f"Unknown physics '{self.physics}', expected one of {sorted(PHYSICS_ALIASES)}"
            ) from None

    def to_dict(self) -> dict:
        """Convert to nested dictionary."""
        return asdict(self)
