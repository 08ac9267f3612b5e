r"""
GerminalCenter class
====================

The `GerminalCenter` class runs one affinity-maturation trial. `run()`
seeds the antigen pool from the cycle-zero vaccination event, activates
germline cells, and then advances the active B-cell population one cycle at a
time until a terminal state is reached.

Cycle structure
---------------
* Cycle 0 (germline): seed the pool, activate founders.
* Cycle 1 (replication): founders are replicated, not divided; the replica
  count is the `initial_size` used to normalize production rates.
* Every later cycle, in order:

  1. dark zone - carry the previous survivors forward, add reentering memory
     cells, then replace every cell by the final-round daughters of its
     division;
  2. light zone - add this cycle's vaccine, bind visited antigen, decay the
     pool, BCR signaling, T-cell competition followed by division-count
     assignment, memory selection, plasma selection.

After each cycle the state is re-evaluated in the order EXTINGUISHED,
EXCEEDED_CAPACITY, EXCEEDED_TIME, ANTIGEN_CONSUMED, else ACTIVE. When the
trial ends, plasma cells are grouped by receptor into the antibody repertoire.

The population before and after each of the six cycle events is kept in a
`PopulationRecord` per cycle.
"""
import logging
from enum import Enum
from types import MappingProxyType

import numpy as np

from . import utils
from .antigens import AntigenPool
from .bcells import (
    GERMLINE_CYCLE,
    REPLICATION_CYCLE,
    BCell,
    ClonalDiversity,
    Lineage,
)
from .models import Models
from .parameters import Parameters
from .vaccines import VaccinationSchedule

logger = logging.getLogger(__name__)


class GerminalCenterState(Enum):
    """ACTIVE is the only non-terminal state."""
    ACTIVE = 0
    EXTINGUISHED = 1
    EXCEEDED_CAPACITY = 2
    EXCEEDED_TIME = 3
    ANTIGEN_CONSUMED = 4


class GerminalCenterEvent(Enum):
    """Population-changing events of one cycle, in chronological order."""
    MEMORY_REENTRY = 0
    DIVISION_MUTATION = 1
    BCR_SIGNALING = 2
    TCELL_COMPETITION = 3
    MEMORY_SELECTION = 4
    PLASMA_SELECTION = 5


class PopulationRecord():
    """Active population at the start of a cycle and before/after each event.

    Slot 0 holds the beginning population; event ``e`` occupies slots
    ``2 * e.value + 1`` (before) and ``2 * e.value + 2`` (after). Recording an
    event carries its after value forward to every later slot, so events that
    do not happen in a cycle leave the population unchanged.
    """

    def __init__(self, pop: int):
        if pop < 0:
            raise ValueError('Negative population.')
        self.population = np.full(2 * len(GerminalCenterEvent) + 1, pop, dtype=int)

    @staticmethod
    def before_index(event: GerminalCenterEvent) -> int:
        return 2 * event.value + 1

    @staticmethod
    def after_index(event: GerminalCenterEvent) -> int:
        return 2 * event.value + 2

    def record(self, event: GerminalCenterEvent, before: int, after: int) -> None:
        if before < 0 or after < 0:
            raise ValueError('Negative population.')
        self.population[self.before_index(event)] = before
        self.population[self.after_index(event):] = after

    def before(self, event: GerminalCenterEvent) -> int:
        return int(self.population[self.before_index(event)])

    def after(self, event: GerminalCenterEvent) -> int:
        return int(self.population[self.after_index(event)])

    def beginning(self) -> int:
        return int(self.population[0])

    def ending(self) -> int:
        return int(self.population[-1])

    def compute_growth_rate(self) -> float:
        return _ratio(self.ending(), self.beginning())

    def compute_survival_rate(self, event: GerminalCenterEvent) -> float:
        """Fraction of cells surviving an event. Division doubles the
        population, so its rate is halved; exits and reentry report 1."""
        if event == GerminalCenterEvent.DIVISION_MUTATION:
            return _ratio(self.after(event), self.before(event)) / 2.0
        elif event in (GerminalCenterEvent.BCR_SIGNALING, GerminalCenterEvent.TCELL_COMPETITION):
            return _ratio(self.after(event), self.before(event))
        return 1.0

    def view(self) -> np.ndarray:
        """Read-only copy of the population array."""
        population = self.population.copy()
        population.setflags(write=False)
        return population


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else float('nan')


class GerminalCenter():
    """One germinal-center trial.

    Attributes:
        trial_index: index of the trial within a simulation.
        schedule: vaccination schedule supplying antigen.
        models: strategy bundle of this trial.
        cycle_limit, resident_capacity, antigen_half_life: copied from the
            parameters.
        lineage: arena of every B cell created in this trial.
        antigen_pool: antigen available to the germinal center.
        generations: active cell set of every cycle; the last one is current.
        populations: PopulationRecord of every cycle.
        memory_cells: memory compartment.
        plasma_cells: plasma compartment.
        antibodies: receptor -> plasma cells carrying it, built at the end.
    """

    def __init__(
        self,
        trial_index: int,
        schedule: VaccinationSchedule,
        models: Models,
        parameters: Parameters,
    ):
        self.trial_index = trial_index
        self.schedule = schedule
        self.models = models
        self.cycle_limit = parameters.cycle_limit
        self.resident_capacity = parameters.resident_capacity
        self.antigen_half_life = parameters.antigen_half_life

        self.lineage = Lineage(models)
        self.antigen_pool = AntigenPool()
        self.cycle_index = 0
        self.initial_size = 0
        self.state = GerminalCenterState.ACTIVE
        self.generations = []
        self.populations = []
        self.memory_cells = set()
        self.plasma_cells = set()
        self.antibodies = {}

    @classmethod
    def simulate(
        cls,
        trial_index: int,
        schedule: VaccinationSchedule,
        models: Models,
        parameters: Parameters,
    ) -> 'GerminalCenter':
        return cls(trial_index, schedule, models, parameters).run()

    @utils.timing_decorator
    def run(self) -> 'GerminalCenter':
        """Run the trial to a terminal state."""
        self.cycle_index = GERMLINE_CYCLE
        self.initialize_antigen_pool()
        self.activate_germlines()
        self.update_state()

        while self.state == GerminalCenterState.ACTIVE:
            self.cycle_index += 1
            self.dark_zone_cycle()
            self.light_zone_cycle()
            self.update_state()

        self.log_state(logging.INFO)
        self.map_antibodies()
        return self

    def initialize_antigen_pool(self) -> None:
        event = self.schedule.event_on(GERMLINE_CYCLE)
        if event is None:
            raise RuntimeError('No vaccine administered on cycle zero.')
        self.antigen_pool.add_vaccine(event.vaccine)

    def activate_germlines(self) -> None:
        germlines = self.models.germline_model.activate(self.lineage, self.antigen_pool)
        self.add_generation(germlines)

    def add_generation(self, generation: set[BCell]) -> None:
        if len(self.generations) != self.cycle_index:
            raise RuntimeError('Generation added out of order.')
        self.generations.append(generation)
        self.populations.append(PopulationRecord(len(generation)))

    @property
    def active_cells(self) -> set[BCell]:
        return self.generations[self.cycle_index]

    def update_state(self) -> None:
        active_count = len(self.active_cells)
        if active_count == 0:
            self.state = GerminalCenterState.EXTINGUISHED
        elif active_count > self.resident_capacity:
            self.state = GerminalCenterState.EXCEEDED_CAPACITY
        elif self.cycle_index >= self.cycle_limit:
            self.state = GerminalCenterState.EXCEEDED_TIME
        elif self.antigen_pool.is_empty():
            self.state = GerminalCenterState.ANTIGEN_CONSUMED
        else:
            self.state = GerminalCenterState.ACTIVE
        self.log_state(logging.DEBUG)

    def log_state(self, level: int) -> None:
        logger.log(
            level,
            'Trial %d CYCLE: %d ACTIVE: %d PLASMA: %d MEMORY: %d STATE: %s',
            self.trial_index,
            self.cycle_index,
            len(self.active_cells),
            len(self.plasma_cells),
            len(self.memory_cells),
            self.state.name,
        )

    def _record(self, event: GerminalCenterEvent, before: int) -> None:
        self.populations[self.cycle_index].record(event, before, len(self.active_cells))

    def dark_zone_cycle(self) -> None:
        if self.cycle_index == REPLICATION_CYCLE:
            self.replicate_germlines()
        else:
            self.new_generation()
            self.reenter_memory()
            self.divide_active()

    def replicate_germlines(self) -> None:
        replicas = self.models.germline_model.replicate(self.generations[GERMLINE_CYCLE])
        self.add_generation(replicas)
        self.initial_size = len(replicas)

    def new_generation(self) -> None:
        self.add_generation(set(self.generations[self.cycle_index - 1]))

    def reenter_memory(self) -> None:
        before = len(self.active_cells)
        self.active_cells.update(self.models.reentry_model.select(self.memory_cells))
        self._record(GerminalCenterEvent.MEMORY_REENTRY, before)

    def divide_active(self) -> None:
        """Replace every active cell by the last-round daughters of its
        division. Earlier-round daughters stay in the lineage only."""
        active_cells = self.active_cells
        before = len(active_cells)
        daughters = []
        while active_cells:
            rounds = active_cells.pop().divide_rounds()
            if rounds:
                daughters.extend(rounds[-1])
        active_cells.update(daughters)
        self._record(GerminalCenterEvent.DIVISION_MUTATION, before)

    def light_zone_cycle(self) -> None:
        self.update_antigen_pool()
        self.bind_antigens()
        self.antigen_pool.decay(self.antigen_half_life)
        self.test_signals()
        self.compete_help()
        self.select_memory()
        self.select_plasma()

    def update_antigen_pool(self) -> None:
        event = self.schedule.event_on(self.cycle_index)
        if event is not None:
            self.antigen_pool.add_vaccine(event.vaccine)
            logger.info('Trial %d: new vaccination event for cycle [%d].', self.trial_index, self.cycle_index)

    def bind_antigens(self) -> None:
        visitation_model = self.models.visitation_model
        for cell in self.active_cells:
            cell.bind(self.antigen_pool, visitation_model.visit(self.cycle_index, self.antigen_pool))

    def test_signals(self) -> None:
        before = len(self.active_cells)
        self.models.bcr_signaling_model.apoptose(self.active_cells, self.antigen_pool)
        self._record(GerminalCenterEvent.BCR_SIGNALING, before)

    def compete_help(self) -> None:
        before = len(self.active_cells)
        self.models.tcell_competition_model.apoptose(self.active_cells, self.antigen_pool)
        self.models.division_model.assign_division_count(self.active_cells)
        self._record(GerminalCenterEvent.TCELL_COMPETITION, before)

    def select_memory(self) -> None:
        before = len(self.active_cells)
        self.memory_cells.update(self.models.memory_selection_model.select(self.active_cells))
        self._record(GerminalCenterEvent.MEMORY_SELECTION, before)

    def select_plasma(self) -> None:
        before = len(self.active_cells)
        self.plasma_cells.update(self.models.plasma_selection_model.select(self.active_cells))
        self._record(GerminalCenterEvent.PLASMA_SELECTION, before)

    def map_antibodies(self) -> None:
        antibodies = {}
        for cell in self.plasma_cells:
            antibodies.setdefault(cell.receptor, set()).add(cell)
        self.antibodies = {receptor: frozenset(cells) for receptor, cells in antibodies.items()}

    @property
    def final_state(self) -> GerminalCenterState:
        return self.state

    def compute_antibody_prod_rate(self) -> float:
        """Distinct antibodies per replicated founder cell."""
        return _ratio(self.count_antibodies(), self.initial_size)

    def compute_plasma_cell_prod_rate(self) -> float:
        return _ratio(self.count_plasma_cells(), self.initial_size)

    def compute_plasma_cell_diversity(self) -> float:
        """Distinct antibodies per plasma cell."""
        return _ratio(self.count_antibodies(), self.count_plasma_cells())

    def compute_clonal_diversity(self, cycle: int) -> ClonalDiversity:
        return ClonalDiversity.compute(self.view_active_cells(cycle))

    def count_antibodies(self) -> int:
        return len(self.antibodies)

    def count_cycles(self) -> int:
        return len(self.generations)

    def count_active_cells(self, cycle: int) -> int:
        if cycle < len(self.populations):
            return self.populations[cycle].ending()
        return 0

    def count_plasma_cells(self) -> int:
        return len(self.plasma_cells)

    def get_population(self, cycle: int) -> PopulationRecord:
        return self.populations[cycle]

    def view_active_cells(self, cycle: int | None=None) -> frozenset[BCell]:
        """Active cells at the end of a cycle, by default the current one."""
        if cycle is None:
            cycle = self.cycle_index
        return frozenset(self.generations[cycle])

    def view_founder_cells(self) -> frozenset[BCell]:
        return self.view_active_cells(GERMLINE_CYCLE)

    def view_memory_cells(self) -> frozenset[BCell]:
        return frozenset(self.memory_cells)

    def view_plasma_cells(self) -> frozenset[BCell]:
        return frozenset(self.plasma_cells)

    def view_antibodies(self) -> MappingProxyType:
        """Receptor -> frozenset of plasma cells, read-only."""
        return MappingProxyType(self.antibodies)

    def view_antigen_pool(self) -> AntigenPool:
        """Independent copy of the current antigen pool."""
        return self.antigen_pool.copy()
