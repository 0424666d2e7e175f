"""
fvflow: finite-volume solver core for compressible flow.

Operators for the flow equations and the turbulence closures share a single
discretization contract; the time integrator drives them in pseudo-time.
"""

__version__ = "0.1.0"
