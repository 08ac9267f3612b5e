"""
Script to run germinal-center simulations from a parameter file.

    python scripts/run_simulation.py --param_file <param_file> [--parallel_run_idx <i>] [--log_level DEBUG]

<param_file> is a json or yaml file overriding the defaults in
gcmature.parameters.Parameters. Results are written to a timestamped
subdirectory of `experiment_dir`.
"""

import os
import sys
sys.path.append(os.getcwd())

from tap import tapify

from gcmature.simulation import Simulation
from scripts import configure_logging


def run_simulation(param_file: str | None = None, parallel_run_idx: int = 0, log_level: str = "INFO"):
    """Run one Simulation.

    Args:
        param_file: json or yaml parameter file; defaults are used if omitted.
        parallel_run_idx: suffix of the experiment directory name.
        log_level: logging level name.
    """
    configure_logging(log_level)
    sim = Simulation(param_file, parallel_run_idx=parallel_run_idx)
    sim.run()
    return sim


if __name__ == "__main__":
    tapify(run_simulation)
