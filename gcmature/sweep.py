r"""
Parameter sweeps
================

A sweep file is a yaml file naming the parameters to vary. Every key other
than ``num_sim_repeats`` is a `Parameters` field and holds either

* a single value, held fixed across the sweep;
* ``{'list': [...]}``, the values to sweep;
* ``{'min': a, 'max': b}``, integers from a to b inclusive;
* ``{'min': a, 'max': b, 'num': n}``, n evenly spaced values, or n values
  spaced evenly on a log scale between 10**a and 10**b with ``log: true``.

One json input file is written per combination of swept values and per
replicate, with the replicate index as the random seed, under
``<sweep_dir>/sweep_<i>/sweep_<i>_<j>.json``. The inputs are then run one
after another by `run_sweep`.
"""
import collections.abc
import logging
from itertools import product
from pathlib import Path

import numpy as np

from . import utils
from .parameters import Parameters
from .simulation import Simulation

logger = logging.getLogger(__name__)


def get_values_from_sweep_config(param_sweep_config: dict):
    """Get the values to sweep from the sweep config specifications.

    Args:
        param_sweep_config (dict) : dictionary containing sweep specifications

    Returns:
        list of values to sweep
    """
    if "list" in param_sweep_config:
        return list(param_sweep_config["list"])
    if "min" not in param_sweep_config or "max" not in param_sweep_config:
        raise KeyError("Both min and max must be specified for a parameter sweep")
    min_value = param_sweep_config["min"]
    max_value = param_sweep_config["max"]
    if param_sweep_config.get("num", None) is None:
        # assume step size of 1 (integer spacing)
        return np.arange(min_value, max_value + 1).tolist()
    if not param_sweep_config.get("log", False):
        return np.linspace(min_value, max_value, param_sweep_config["num"]).tolist()
    return np.logspace(min_value, max_value, param_sweep_config["num"]).tolist()


def process_sweep_file(sweep_file: Path | str):
    """Parse file that specifies parameters to sweep.

    Returns:
        keys : list of str
            parameter names to sweep
        values : list of lists
            parameter values to sweep
        num_sim_repeats : int
            number of replicates of each parameter set
    """
    config = utils.read_yaml(Path(sweep_file)) or {}
    sweep_param_keys = []
    sweep_param_values = []
    num_sim_repeats = 1

    for param_name, param_config in config.items():
        if param_name == "num_sim_repeats":
            num_sim_repeats = int(param_config)
        elif isinstance(param_config, collections.abc.Mapping):
            sweep_param_keys.append(param_name)
            sweep_param_values.append(get_values_from_sweep_config(param_config))
        else:
            # parameter that has a single value
            sweep_param_keys.append(param_name)
            sweep_param_values.append([param_config])

    return sweep_param_keys, sweep_param_values, num_sim_repeats


def write_input_json_files(sweep_dir, sweep_param_keys, sweep_param_values, num_sim_repeats) -> list[Path]:
    """Generate a combinatorial sweep and write 1 input file per parameter set
    and replicate.

    Returns:
        paths of the input files written, in sweep order.
    """
    sweep_dir = Path(sweep_dir)
    input_files = []
    for i, param_set in enumerate(product(*sweep_param_values)):
        param_dir = sweep_dir / f"sweep_{i}"
        param_dir.mkdir(parents=True, exist_ok=True)
        param_dict = dict(zip(sweep_param_keys, param_set))
        param_dict["experiment_dir"] = str(param_dir)
        for j in range(num_sim_repeats):
            param_dict["seed"] = j
            input_file = param_dir / f"sweep_{i}_{j}.json"
            utils.write_json(param_dict, input_file)
            input_files.append(input_file)
    return input_files


def get_output_file_names(param_dir: Path) -> tuple[str, str]:
    """History and parameter file names used by the runs of a parameter
    directory, read from its input files and defaulting to `Parameters`."""
    input_files = sorted(param_dir.glob("*.json"))
    params = utils.read_json(input_files[0]) if input_files else {}
    return (
        params.get("history_file_name", Parameters.history_file_name),
        params.get("param_file_name", Parameters.param_file_name),
    )


def enumerate_completed_tasks(sweep_dir: Path) -> dict[Path, list[int]]:
    """Map each parameter directory to the seeds whose history already exists."""
    sweeps_ran = {}
    for param_dir in Path(sweep_dir).iterdir():
        if param_dir.is_dir():
            history_file_name, param_file_name = get_output_file_names(param_dir)
            replicates_ran = []
            for exp_dir in param_dir.iterdir():
                if exp_dir.is_dir() and (exp_dir / history_file_name).is_file():
                    params = utils.read_json(exp_dir / param_file_name)
                    replicates_ran.append(params["seed"])
            sweeps_ran[param_dir] = replicates_ran
    return sweeps_ran


def prune_completed_tasks(sweep_dir: Path, input_files: list[Path]) -> list[Path]:
    """Drop input files whose simulation has already been run, so that an
    interrupted sweep can be resumed."""
    sweeps_ran = enumerate_completed_tasks(sweep_dir)
    remaining = []
    for input_file in input_files:
        seed_num = int(input_file.stem.split("_")[-1])
        if seed_num not in sweeps_ran.get(input_file.parent, []):
            remaining.append(input_file)
    return remaining


def run_sweep(sweep_file: Path | str, sweep_dir: Path | str | None=None) -> list[Simulation]:
    """Write the inputs of a sweep file and run every simulation not yet run.

    Args:
        sweep_file: yaml sweep specification.
        sweep_dir: directory for inputs and results, by default the directory
            of the sweep file.
    """
    sweep_file = Path(sweep_file)
    sweep_dir = Path(sweep_dir) if sweep_dir is not None else sweep_file.parent
    keys, values, num_sim_repeats = process_sweep_file(sweep_file)
    input_files = write_input_json_files(sweep_dir, keys, values, num_sim_repeats)
    input_files = prune_completed_tasks(sweep_dir, input_files)
    logger.info('Running %d simulations of sweep %s.', len(input_files), sweep_file.stem)

    simulations = []
    for input_file in input_files:
        seed_num = int(input_file.stem.split("_")[-1])
        sim = Simulation(str(input_file), parallel_run_idx=seed_num)
        sim.run()
        simulations.append(sim)
    return simulations
