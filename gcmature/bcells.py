r"""
B cells
=======

This module defines the `BCell` lineage node, the `Lineage` arena that owns
every cell created in one germinal-center trial, the `BindingEvent` record of
a single receptor-epitope encounter, and the `ClonalDiversity` summary of a
population.

Lineage
-------
Cells never hold references to their ancestors. Each cell stores the integer
index of its parent and founder, and resolves them through the `Lineage`
arena it belongs to. Indices are assigned in creation order, so they are
monotonic within a trial, and the arena is append-only: every cell created
during division (including intermediate-round daughters and cells that later
die) remains a valid node of the tree.

| **Attribute**     | **Type**          | **Description** |
|-------------------|-------------------|-----------------|
| `index`           | `int`             | Position of the cell in its lineage arena. |
| `parent_index`    | `int` or `None`   | Arena index of the parent, None for founders. |
| `founder_index`   | `int`             | Arena index of the germline founder (self for founders). |
| `receptor`        | `BitString`       | B-cell receptor, fixed at construction. |
| `gc_cycle`        | `int`             | Germinal-center cycle in which the cell was created. |
| `generation`      | `int`             | 0 for founders, parent generation + 1 otherwise. |
| `mutation_count`  | `int`             | Parent count, + 1 if the receptor differs from the parent's. |

Division count
--------------
The number of dark-zone division rounds is written exactly once, during
T-cell competition. It is modelled as `Unassigned | Assigned`; only
`Unassigned` can be assigned, and an unassigned cell divides once.
"""
import dataclasses
import itertools
import operator
from collections import Counter
from typing import Callable, ClassVar, Iterable

import numpy as np
import scipy.stats

from .antigens import Antigen, AntigenPool
from .receptors import BitString, Epitope

GERMLINE_CYCLE = 0
"""Cycle in which germline cells are activated."""

REPLICATION_CYCLE = 1
"""Cycle in which germline cells are replicated rather than divided."""


@dataclasses.dataclass(frozen=True)
class Unassigned():
    """Division count before T-cell competition; reads as the default."""

    count: ClassVar[int] = 1

    def assign(self, count: int) -> 'Assigned':
        return Assigned(count)


@dataclasses.dataclass(frozen=True)
class Assigned():
    """Division count written by a dark-zone division model."""

    count: int

    def __post_init__(self):
        if self.count < 0:
            raise ValueError('Division count must be non-negative.')

    def assign(self, count: int) -> 'Assigned':
        raise RuntimeError('Division count is already assigned.')


DivisionCount = Unassigned | Assigned


@dataclasses.dataclass(frozen=True)
class BindingEvent():
    """One receptor-epitope encounter."""

    antigen: Antigen
    epitope: Epitope
    affinity: float
    quantity: float

    @classmethod
    def create(
        cls,
        receptor: BitString,
        antigen: Antigen,
        epitope: Epitope,
        concentration: float,
        affinity_model,
        capture_model,
    ) -> 'BindingEvent':
        affinity = affinity_model.compute_affinity(epitope, receptor)
        quantity = capture_model.capture(affinity, concentration)
        return cls(antigen, epitope, affinity, quantity)

    @staticmethod
    def total_quantity(events: Iterable['BindingEvent']) -> float:
        return float(sum(event.quantity for event in events))

    @staticmethod
    def max_affinity(events: Iterable['BindingEvent']) -> float:
        return max(event.affinity for event in events)

    @staticmethod
    def mean_affinity(events: Iterable['BindingEvent']) -> float:
        return float(np.mean([event.affinity for event in events]))


class BindingStatistics():
    """Per-cycle record of the light-zone binding outcomes of a lineage.

    Attributes:
        affinities: cycle -> mean affinity of each cell that bound something.
        quantities: cycle -> captured antigen quantity of each cell that visited.
        total_encounters: cycle -> Counter of epitopes-encountered counts.
        unique_encounters: cycle -> Counter of distinct-epitope counts.
        unique_revisits: cycle -> Counter of epitopes also seen by the parent.
    """

    def __init__(self):
        self.affinities = {}
        self.quantities = {}
        self.total_encounters = {}
        self.unique_encounters = {}
        self.unique_revisits = {}

    def record(self, cell: 'BCell') -> None:
        cycle = cell.gc_cycle
        if cycle >= REPLICATION_CYCLE:
            self.total_encounters.setdefault(cycle, Counter())[cell.count_total_epitopes_encountered()] += 1
            self.unique_encounters.setdefault(cycle, Counter())[cell.count_unique_epitopes_encountered()] += 1
        if cycle > REPLICATION_CYCLE:
            self.unique_revisits.setdefault(cycle, Counter())[cell.count_unique_epitopes_revisited()] += 1
        if cell.binding_events:
            self.affinities.setdefault(cycle, []).append(BindingEvent.mean_affinity(cell.binding_events))
        self.quantities.setdefault(cycle, []).append(cell.antigen_qty)

    def view_affinities(self, cycle: int | None=None) -> tuple[float, ...]:
        """Mean binding affinities recorded in one cycle, or in all cycles."""
        if cycle is not None:
            return tuple(self.affinities.get(cycle, ()))
        return tuple(itertools.chain.from_iterable(self.affinities.values()))

    def view_quantities(self, cycle: int | None=None) -> tuple[float, ...]:
        if cycle is not None:
            return tuple(self.quantities.get(cycle, ()))
        return tuple(itertools.chain.from_iterable(self.quantities.values()))


class Lineage():
    """Arena of all B cells created in one germinal-center trial.

    The arena also carries the strategy bundle (receptor generator, mutator,
    affinity and capture models) that cells use to create daughters and to
    bind antigen.

    Attributes:
        models: strategy bundle, see `gcmature.models.Models`.
        cells: list of every cell, position equals cell index.
        statistics: light-zone binding statistics of this trial.
    """

    def __init__(self, models):
        self.models = models
        self.cells = []
        self.statistics = BindingStatistics()

    def _register(self, parent: 'BCell | None', receptor: BitString, gc_cycle: int) -> 'BCell':
        cell = BCell(self, len(self.cells), parent, receptor, gc_cycle)
        self.cells.append(cell)
        return cell

    def germline(self, receptor: BitString | None=None) -> 'BCell':
        """Create a founder cell, drawing a receptor if none is given."""
        if receptor is None:
            receptor = self.models.receptor_generator.generate()
        return self._register(None, receptor, GERMLINE_CYCLE)

    def __getitem__(self, index: int) -> 'BCell':
        return self.cells[index]

    def __len__(self) -> int:
        return len(self.cells)

    def __iter__(self):
        return iter(self.cells)


class BCell():
    """A node of the B-cell lineage tree. See the module docstring."""

    def __init__(
        self,
        lineage: Lineage,
        index: int,
        parent: 'BCell | None',
        receptor: BitString,
        gc_cycle: int,
    ):
        self.lineage = lineage
        self.index = index
        self.receptor = receptor
        self.gc_cycle = gc_cycle
        if parent is None:
            self.parent_index = None
            self.founder_index = index
            self.generation = 0
            self.mutation_count = 0
        else:
            self.parent_index = parent.index
            self.founder_index = parent.founder_index
            self.generation = parent.generation + 1
            self.mutation_count = parent.mutation_count + int(receptor != parent.receptor)
        self.division_count = Unassigned()
        self.binding_events = []
        self.antigen_qty = 0.0
        self.max_affinity = float('-inf')

    @property
    def parent(self) -> 'BCell | None':
        if self.parent_index is None:
            return None
        return self.lineage[self.parent_index]

    @property
    def founder(self) -> 'BCell':
        return self.lineage[self.founder_index]

    def is_founder(self) -> bool:
        return self.founder_index == self.index

    def replicate(self) -> 'BCell':
        """Identical daughter created in the following cycle."""
        return self.lineage._register(self, self.receptor, self.gc_cycle + 1)

    def mutate(self, gc_cycle: int) -> 'BCell | None':
        """Daughter with a mutated receptor, or None if the mutation is lethal."""
        mutated = self.lineage.models.mutator.mutate(self.receptor)
        if mutated is None:
            return None
        return self.lineage._register(self, mutated, gc_cycle)

    def _divide_once(self, divide_cycle: int) -> list['BCell']:
        daughters = [self.mutate(divide_cycle), self.mutate(divide_cycle)]
        return [daughter for daughter in daughters if daughter is not None]

    def divide_rounds(self) -> list[list['BCell']]:
        """Run the assigned number of division rounds.

        Each round, every surviving daughter of the previous round makes two
        mutation attempts. Lethal attempts are dropped.

        Returns:
            One list of daughters per round; the last list holds the leaves.
        """
        divide_cycle = self.gc_cycle + 1
        parents = [self]
        rounds = []
        for _ in range(self.get_division_count()):
            daughters = []
            for parent in parents:
                daughters.extend(parent._divide_once(divide_cycle))
            rounds.append(daughters)
            parents = daughters
        return rounds

    def divide(self) -> list['BCell']:
        """All daughters of every division round, flattened in round order."""
        return list(itertools.chain.from_iterable(self.divide_rounds()))

    def bind(self, pool: AntigenPool, antigens: Iterable[Antigen] | None=None) -> None:
        """Record a binding event for every epitope of every visited antigen.

        Args:
            pool: supplies the current concentration of each antigen.
            antigens: visited antigens, repeats allowed. If None, every
                antigen in the pool is visited once.
        """
        if antigens is None:
            antigens = pool.list_antigens()
        models = self.lineage.models
        for antigen in antigens:
            concentration = pool.get_concentration(antigen)
            for epitope in antigen.epitopes:
                self.binding_events.append(BindingEvent.create(
                    self.receptor,
                    antigen,
                    epitope,
                    concentration,
                    models.affinity_model,
                    models.capture_model,
                ))
        if self.binding_events:
            self.antigen_qty = BindingEvent.total_quantity(self.binding_events)
            self.max_affinity = BindingEvent.max_affinity(self.binding_events)
        self.lineage.statistics.record(self)

    def get_division_count(self) -> int:
        return self.division_count.count

    def set_division_count(self, count: int) -> None:
        self.division_count = self.division_count.assign(count)

    def view_binding_events(self) -> tuple[BindingEvent, ...]:
        return tuple(self.binding_events)

    def trace_lineage(self, first_cycle: int=0) -> list['BCell']:
        """Ancestors created on or after first_cycle, then self, oldest first."""
        if first_cycle < 0:
            raise ValueError('First cycle must be non-negative.')
        lineage = []
        cell = self
        while cell is not None and cell.gc_cycle >= first_cycle:
            lineage.append(cell)
            cell = cell.parent
        lineage.reverse()
        return lineage

    def epitopes_encountered(self) -> Counter:
        return Counter(event.epitope for event in self.binding_events)

    def unique_epitopes_encountered(self) -> set[Epitope]:
        return {event.epitope for event in self.binding_events}

    def unique_epitopes_revisited(self) -> set[Epitope]:
        """Epitopes encountered by both this cell and its parent."""
        if self.is_founder():
            return set()
        return self.unique_epitopes_encountered() & self.parent.unique_epitopes_encountered()

    def count_total_epitopes_encountered(self) -> int:
        return len(self.binding_events)

    def count_unique_epitopes_encountered(self) -> int:
        return len(self.unique_epitopes_encountered())

    def count_unique_epitopes_revisited(self) -> int:
        return len(self.unique_epitopes_revisited())

    def mean_lineage_unique_encounters(self) -> float:
        """Mean distinct-epitope count over ancestors since the replication cycle."""
        counts = [
            cell.count_unique_epitopes_encountered()
            for cell in self.trace_lineage(REPLICATION_CYCLE)
        ]
        return float(np.mean(counts)) if counts else 0.0

    def antigen_footprint(self) -> set[Antigen]:
        """Antigens bound anywhere along the lineage since replication."""
        return {
            event.antigen
            for cell in self.trace_lineage(REPLICATION_CYCLE)
            for event in cell.binding_events
        }

    def epitope_footprint(self) -> set[Epitope]:
        return {
            event.epitope
            for cell in self.trace_lineage(REPLICATION_CYCLE)
            for event in cell.binding_events
        }

    def mutational_distance(self, other: 'BCell') -> int:
        return self.receptor.distance(other.receptor)

    def founder_distance(self) -> int:
        return self.mutational_distance(self.founder)

    def __eq__(self, other) -> bool:
        if not isinstance(other, BCell):
            return NotImplemented
        return self.lineage is other.lineage and self.index == other.index

    def __hash__(self) -> int:
        return hash(self.index)

    def __repr__(self) -> str:
        return f'BCell({self.index}, cycle={self.gc_cycle}, {self.receptor!r})'


MAX_AFFINITY_KEY: Callable[[BCell], float] = operator.attrgetter('max_affinity')
"""Sort key ranking cells by their best binding affinity."""

ANTIGEN_QTY_KEY: Callable[[BCell], float] = operator.attrgetter('antigen_qty')
"""Sort key ranking cells by captured antigen quantity."""


@dataclasses.dataclass(frozen=True)
class ClonalDiversity():
    """Number of distinct founders in a population and the Shannon entropy
    (natural log) of the founder distribution."""

    count: int
    entropy: float

    @classmethod
    def compute(cls, cells: Iterable[BCell]) -> 'ClonalDiversity':
        founders = Counter(cell.founder_index for cell in cells)
        if not founders:
            return cls(0, 0.0)
        counts = np.fromiter(founders.values(), dtype=float)
        return cls(len(founders), float(scipy.stats.entropy(counts)))
