#!/usr/bin/env python3
"""
One-dimensional channel run.

Builds a row of cells between an inflow and an outflow patch, runs the
configured solver to convergence (or through the physical time steps of
an unsteady run) and writes the residual history.

Usage:
    python scripts/run_channel.py config/examples/channel_sa.yaml
    python scripts/run_channel.py config/examples/channel_sa.yaml --turbulence KW --max-iter 500
"""

import argparse
import sys
from pathlib import Path

import numpy as np
import yaml
from loguru import logger

from fvflow.config import load_yaml, apply_overrides
from fvflow.grid import line_mesh
from fvflow.solvers import create_solver
from fvflow.utils.logging import setup_logging


def load_mesh_section(path: Path) -> dict:
    """The optional ``mesh`` block of the case file (not part of the solver config)."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    return data.get("mesh", {})


def main():
    parser = argparse.ArgumentParser(description="Run a 1D channel case")
    parser.add_argument("config", help="YAML case file")
    parser.add_argument("--turbulence", type=str, default=None, help="Override the turbulence tag")
    parser.add_argument("--max-iter", type=int, default=None)
    parser.add_argument("--cfl", type=float, default=None)
    parser.add_argument("--unsteady", action="store_true")
    parser.add_argument("--log-level", type=str, default="INFO")
    args = parser.parse_args()

    setup_logging(level=args.log_level)

    path = Path(args.config)
    config = load_yaml(path)
    config = apply_overrides(config, {
        "solver.max_iter": args.max_iter,
        "solver.courant.target": args.cfl,
        "solver.unsteady": True if args.unsteady else None,
    })
    if args.turbulence is not None:
        config.turbulence = args.turbulence

    mesh_cfg = load_mesh_section(path)
    mesh = line_mesh(
        n_cells=int(mesh_cfg.get("n_cells", 40)),
        length=float(mesh_cfg.get("length", 1.0)),
        inlet=mesh_cfg.get("inlet", "inlet"),
        outlet=mesh_cfg.get("outlet", "extrapolated"),
    )

    solver = create_solver(mesh, config)
    converged = solver.run()
    solver.save_residual_history()

    res = solver.residual()
    if not np.isfinite(res):
        logger.error(f"Non-finite residual ({res}), stopping")
        return 1

    loads = solver.flow.loads()
    logger.info(f"Final residual: {res:.3e} ({'converged' if converged else 'not converged'})")
    logger.info(f"Wall force: {loads.force}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
