"""
Script to run a parameter sweep serially on the local machine.

    python scripts/run_sweep.py --sweep_file <sweep_dir>/<sweep_name>.yaml [--sweep_dir <dir>]

See gcmature.sweep for the sweep file format. One json input file is written
per parameter set and replicate; simulations whose history already exists
are skipped, so an interrupted sweep can be resumed by running it again.
"""

import os
import sys
sys.path.append(os.getcwd())

from tap import tapify

from gcmature.sweep import run_sweep
from scripts import configure_logging


def main(sweep_file: str, sweep_dir: str | None = None, log_level: str = "INFO"):
    """Run every simulation of a sweep.

    Args:
        sweep_file: yaml sweep specification.
        sweep_dir: directory for inputs and results, defaults to the sweep file's directory.
        log_level: logging level name.
    """
    configure_logging(log_level)
    run_sweep(sweep_file, sweep_dir)


if __name__ == "__main__":
    tapify(main)
