r"""
Antigen visitation
==================

A visitation model decides which antigens a single B cell encounters in the
light zone. The result may be empty and may contain repeats; every entry is
bound once by `BCell.bind`.

Occupation models (one FDC site)
--------------------------------
* ALL - every antigen in the pool.
* ONE - one antigen drawn by concentration.
* ALL_ONE - ALL before the transition cycle, ONE from then on.
* LANGMUIR - one antigen with probability T / (1 + T) for total
  concentration T, nothing otherwise.

Visitation models (one B cell)
------------------------------
* FIXED_COUNT - the occupation model repeated a fixed number of times.
* CLUSTER - a fixed number of sites, each occupied with the LANGMUIR
  probability; successive occupied sites follow a Markov chain that revisits
  the previous antigen with probability ``revisit_prob`` and otherwise moves
  to one of the other antigens uniformly. Requires a uniform pool.
"""
import abc
from enum import Enum

import numpy as np

from . import utils
from .antigens import Antigen, AntigenPool


class OccupationType(Enum):
    ALL = 'ALL'
    ONE = 'ONE'
    ALL_ONE = 'ALL_ONE'
    LANGMUIR = 'LANGMUIR'


class VisitationType(Enum):
    FIXED_COUNT = 'FIXED_COUNT'
    CLUSTER = 'CLUSTER'


class OccupationModel(abc.ABC):

    @abc.abstractmethod
    def visit(self, cycle: int, pool: AntigenPool) -> list[Antigen]:
        """Antigens occupying one site."""


class AllOccupationModel(OccupationModel):

    def visit(self, cycle: int, pool: AntigenPool) -> list[Antigen]:
        return list(pool.list_antigens())


class OneOccupationModel(OccupationModel):

    def __init__(self, rng: np.random.Generator):
        self.rng = rng

    def visit(self, cycle: int, pool: AntigenPool) -> list[Antigen]:
        if pool.is_empty():
            return []
        return [pool.select(self.rng)]


class AllOneOccupationModel(OccupationModel):

    def __init__(self, transition: int, rng: np.random.Generator):
        if transition < 0:
            raise ValueError('Transition cycle must be non-negative.')
        self.transition = transition
        self.all_model = AllOccupationModel()
        self.one_model = OneOccupationModel(rng)

    def visit(self, cycle: int, pool: AntigenPool) -> list[Antigen]:
        if cycle < self.transition:
            return self.all_model.visit(cycle, pool)
        return self.one_model.visit(cycle, pool)


class LangmuirOccupationModel(OccupationModel):

    def __init__(self, rng: np.random.Generator):
        self.rng = rng

    def visit(self, cycle: int, pool: AntigenPool) -> list[Antigen]:
        if pool.is_empty() or not utils.accept(self.rng, utils.langmuir(pool.get_total_conc())):
            return []
        return [pool.select(self.rng)]


class VisitationModel(abc.ABC):

    @abc.abstractmethod
    def visit(self, cycle: int, pool: AntigenPool) -> list[Antigen]:
        """Antigens encountered by one B cell, repeats allowed."""


class FixedCountVisitation(VisitationModel):

    def __init__(self, count: int, occupation_model: OccupationModel):
        if count < 0:
            raise ValueError('Visit count must be non-negative.')
        self.count = count
        self.occupation_model = occupation_model

    def visit(self, cycle: int, pool: AntigenPool) -> list[Antigen]:
        antigens = []
        for _ in range(self.count):
            antigens.extend(self.occupation_model.visit(cycle, pool))
        return antigens


class ClusterVisitation(VisitationModel):
    """Markov revisiting of antigens across the sites a B cell visits.

    The antigen list, transition matrix and occupation probability are cached
    for the current (cycle, pool) pair.
    """

    MAX_REVISIT_PROB = 0.999999

    def __init__(self, visit_count: int, revisit_prob: float, rng: np.random.Generator):
        if visit_count < 0:
            raise ValueError('Visit count must be non-negative.')
        if not 0.0 <= revisit_prob <= 1.0:
            raise ValueError('Revisit probability must lie in [0, 1].')
        self.visit_count = visit_count
        self.revisit_prob = min(revisit_prob, self.MAX_REVISIT_PROB)
        self.rng = rng
        self._cache_cycle = -1
        self._cache_pool = None
        self._cache_antigens = ()
        self._cache_matrix = None
        self._cache_see_one = 0.0

    @staticmethod
    def create_stochastic_matrix(pool: AntigenPool, revisit_prob: float) -> np.ndarray:
        """Transition matrix with revisit_prob on the diagonal and the rest
        spread evenly over the other antigens."""
        if not pool.is_uniform():
            raise ValueError('Antigen pool must be uniform.')
        count = pool.size()
        if count == 1:
            return np.ones((1, 1))
        matrix = np.full((count, count), (1.0 - revisit_prob) / (count - 1))
        np.fill_diagonal(matrix, revisit_prob)
        return matrix

    def _maintain_cache(self, cycle: int, pool: AntigenPool) -> None:
        if cycle != self._cache_cycle or pool is not self._cache_pool:
            self._cache_cycle = cycle
            self._cache_pool = pool
            self._cache_antigens = pool.list_antigens()
            self._cache_matrix = self.create_stochastic_matrix(pool, self.revisit_prob)
            self._cache_see_one = utils.langmuir(pool.get_total_conc())

    def visit(self, cycle: int, pool: AntigenPool) -> list[Antigen]:
        if pool.is_empty():
            return []
        self._maintain_cache(cycle, pool)
        count = len(self._cache_antigens)
        visited = []
        state = None
        for _ in range(self.visit_count):
            if not utils.accept(self.rng, self._cache_see_one):
                continue
            if state is None:
                state = int(self.rng.integers(count))
            else:
                state = int(self.rng.choice(count, p=self._cache_matrix[state]))
            visited.append(self._cache_antigens[state])
        return visited
