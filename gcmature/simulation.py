r"""
Simulation class
================
The `Simulation` class is the driver for affinity-maturation experiments. It
inherits every parameter from `Parameters`, builds the epitopes, antigens and
vaccination schedule they describe, and runs `n_trials` independent
germinal-center trials. Each trial gets its own random generator seeded with
``(seed, trial_index)`` and its own `Models` bundle, so trials are
reproducible and share no mutable state.

`run()` stops early once ``plasma_target`` plasma cells have been produced
across trials (if set), and saves a history.pkl file containing, for every
trial, the final state, production rates, clonal diversity of the last
cycle, and the per-cycle population records.
"""
import datetime
import logging
import os
import time
from typing import Any
from pathlib import Path

import numpy as np

from . import utils
from .antigens import Antigen
from .germinal_center import GerminalCenter, GerminalCenterEvent
from .models import Models
from .parameters import Parameters
from .receptors import BitString, Epitope
from .vaccines import VaccinationSchedule

logger = logging.getLogger(__name__)


class Simulation(Parameters):
    """Class for running the simulation, inherits from Parameters, so all
    simulation parameters are available as attributes.

    Attributes:
        epitopes: dict of epitope key to epitope, keys E1..En.
        antigens: dict of antigen key to antigen.
        schedule: the vaccination schedule shared by all trials.
        germinal_centers: completed trials, in trial order.
        history: Dict containing the history of the simulation. See reset_history.
    """

    def __init__(self, updated_params_file: str | None=None, parallel_run_idx: int=0):
        """Initialize attributes.

        All the default parameters from Parameters are included. If
        updated_params_file is passed, then the parameters specified in the
        file are updated from the file.
        """
        super().__init__()
        self.update_parameters_from_file(updated_params_file)
        self.parallel_run_idx = parallel_run_idx

        structure_rng = np.random.default_rng(self.seed)
        self.epitopes = self.create_epitopes(structure_rng)
        self.antigens = self.create_antigens()
        self.schedule = self.create_schedule()
        self.germinal_centers = []
        self.create_file_paths()
        self.reset_history()

    def create_epitopes(self, rng: np.random.Generator) -> dict[str, Epitope]:
        """Random epitope structures keyed E1, E2, ..."""
        if self.epitope_count < 1:
            raise ValueError('At least one epitope is required.')
        return {
            f'E{index}': Epitope(f'E{index}', BitString.random(rng, self.receptor_length))
            for index in range(1, self.epitope_count + 1)
        }

    def create_antigens(self) -> dict[str, Antigen]:
        if not self.antigen_specs:
            return {key: Antigen(key, (epitope,)) for key, epitope in self.epitopes.items()}
        antigens = {}
        for spec in self.antigen_specs:
            antigen = Antigen.parse(spec, self.epitopes)
            if antigen.key in antigens:
                raise ValueError(f'Duplicate antigen key: [{antigen.key}].')
            antigens[antigen.key] = antigen
        return antigens

    def create_schedule(self) -> VaccinationSchedule:
        if not self.vaccination_schedule:
            return VaccinationSchedule.shortcut(self.antigens.values(), self.total_conc)
        return VaccinationSchedule.parse(self.vaccination_schedule, self.antigens)

    def create_file_paths(self) -> None:
        """Build timestamped file-path attributes for simulation outputs.

        The directory itself is *not* created here; it is created when the
        history is written.
        """
        date_time = datetime.datetime.now().strftime('%Y_%m_%d_%H_%M_%S')
        self.data_dir = Path(self.experiment_dir) / f'{date_time}_{self.parallel_run_idx}'
        self.history_path = self.data_dir / self.history_file_name
        self.parameter_json_path = self.data_dir / self.param_file_name

    def reset_history(self) -> None:
        """(Re)initialize the ``history`` attribute.

        Keys
        ----
        * ``'final_state'`` (list[str]): terminal state name of each trial.
        * ``'cycles'`` (list[int]): number of cycles of each trial.
        * ``'initial_size'`` (list[int]): replicated founder count of each trial.
        * ``'plasma_cells'`` / ``'antibodies'`` (list[int]): plasma cells and
          distinct receptors produced by each trial.
        * ``'antibody_prod_rate'``, ``'plasma_cell_prod_rate'``,
          ``'plasma_cell_diversity'`` (list[float]).
        * ``'clonal_count'`` / ``'clonal_entropy'`` (list): clonal diversity
          of the last cycle of each trial.
        * ``'populations'`` (list[np.ndarray of shape (n_cycles, 13)]):
          per-cycle population records of each trial.
        * ``'survival_rates'`` (list[np.ndarray of shape (n_cycles, 6)]):
          per-cycle survival rate of every germinal-center event.
        """
        self.history = {
            'final_state': [],
            'cycles': [],
            'initial_size': [],
            'plasma_cells': [],
            'antibodies': [],
            'antibody_prod_rate': [],
            'plasma_cell_prod_rate': [],
            'plasma_cell_diversity': [],
            'clonal_count': [],
            'clonal_entropy': [],
            'populations': [],
            'survival_rates': [],
        }

    def create_models(self, trial_index: int) -> Models:
        rng = np.random.default_rng([self.seed, trial_index])
        return Models.from_parameters(self, rng)

    def run_trial(self, trial_index: int) -> GerminalCenter:
        """Run and record one germinal-center trial."""
        start_time = time.perf_counter()
        gc = GerminalCenter.simulate(trial_index, self.schedule, self.create_models(trial_index), self)
        self.germinal_centers.append(gc)
        self.update_history(gc)
        logger.info(
            'Trial %d finished in state %s after %d cycles, wall time: %.1f s',
            trial_index,
            gc.final_state.name,
            gc.count_cycles(),
            time.perf_counter() - start_time,
        )
        return gc

    def update_history(self, gc: GerminalCenter) -> None:
        diversity = gc.compute_clonal_diversity(gc.count_cycles() - 1)
        populations = [gc.get_population(cycle) for cycle in range(gc.count_cycles())]
        self.history['final_state'].append(gc.final_state.name)
        self.history['cycles'].append(gc.count_cycles())
        self.history['initial_size'].append(gc.initial_size)
        self.history['plasma_cells'].append(gc.count_plasma_cells())
        self.history['antibodies'].append(gc.count_antibodies())
        self.history['antibody_prod_rate'].append(gc.compute_antibody_prod_rate())
        self.history['plasma_cell_prod_rate'].append(gc.compute_plasma_cell_prod_rate())
        self.history['plasma_cell_diversity'].append(gc.compute_plasma_cell_diversity())
        self.history['clonal_count'].append(diversity.count)
        self.history['clonal_entropy'].append(diversity.entropy)
        self.history['populations'].append(np.array([record.view() for record in populations]))
        self.history['survival_rates'].append(np.array([
            [record.compute_survival_rate(event) for event in GerminalCenterEvent]
            for record in populations
        ]))

    def count_plasma_cells(self) -> int:
        return sum(gc.count_plasma_cells() for gc in self.germinal_centers)

    def count_receptors(self) -> int:
        """Distinct plasma-cell receptors across all trials."""
        return len({receptor for gc in self.germinal_centers for receptor in gc.view_antibodies()})

    def check_overwrite(self, data: Any, file_path: Path) -> None:
        """Write file depending on if file exists and if overwriting is allowed.

        Args:
            data: the data to write to file.
            file_path: the path to the file.
        """
        write_fn, file_type = {
            '.pkl': (utils.write_pickle, 'pickle'),
            '.json': (utils.write_json, 'parameters')
        }[file_path.suffix]

        if file_path.exists():
            if self.overwrite:
                logger.warning('%s file already exists. Overwriting.', file_type)
                write_fn(data, file_path)
            else:
                logger.warning('%s file already exists. Not overwriting.', file_type)
        else:
            write_fn(data, file_path)

    def run(self) -> None:
        """Run the simulation.

        Run trials until n_trials have completed or the plasma target is met,
        then write out the history pickle and parameter json files.
        """
        start_time = time.perf_counter()
        self.germinal_centers = []
        self.reset_history()

        for trial_index in range(self.n_trials):
            if self.plasma_target is not None and self.count_plasma_cells() >= self.plasma_target:
                break
            self.run_trial(trial_index)

        logger.info(
            'Generated %d plasma cells with %d unique receptors in %d trials, wall time: %.1f s',
            self.count_plasma_cells(),
            self.count_receptors(),
            len(self.germinal_centers),
            time.perf_counter() - start_time,
        )
        logger.info(
            'Time spent in germinal-center trials: %.1f s',
            sum(utils.total_time(gc) for gc in self.germinal_centers),
        )

        if self.write_history:
            os.makedirs(self.data_dir, exist_ok=True)
            self.check_overwrite(self.history, self.history_path)
            self.check_overwrite(self.get_parameter_dict(), self.parameter_json_path)
