r"""
T-cell competition
==================

Light-zone apoptosis from competition for T follicular helper cells, which
follows BCR signaling. Cells that capture more antigen (or bind it more
tightly) present more peptide and are more likely to receive help.

* ANTIGEN_QTY_RANK / MAX_AFFINITY_RANK - `RankCompetition`, the top fraction
  of cells survive.
* ANTIGEN_QTY_MEAN_RATIO - `MeanRatioCompetition`, survival probability
  :math:`R / (1 + R)` with :math:`R = Q / \langle Q \rangle`.
* WANG - `WangCellCompetition`, survival probability
  :math:`Q / (\alpha + \beta Q)` with
  :math:`\alpha = R \langle Q \rangle N / (N - 1)`,
  :math:`\beta = 1 - R / (N - 1)` and :math:`R` the reciprocal of the total
  antigen concentration.
"""
import math
from enum import Enum
from typing import Callable

import numpy as np

from . import utils
from .antigens import AntigenPool
from .apoptosis import ApoptosisModel, SequentialApoptosisModel
from .bcells import BCell


class TCellCompetitionType(Enum):
    ANTIGEN_QTY_RANK = 'ANTIGEN_QTY_RANK'
    MAX_AFFINITY_RANK = 'MAX_AFFINITY_RANK'
    ANTIGEN_QTY_MEAN_RATIO = 'ANTIGEN_QTY_MEAN_RATIO'
    WANG = 'WANG'


class RankCompetition(ApoptosisModel):
    """The ceil(survival_rate * N) highest ranked cells survive.

    Ranking uses a stable ascending sort on key, so cells with equal keys keep
    their iteration order.
    """

    def __init__(self, survival_rate: float, key: Callable[[BCell], float]):
        if not 0.0 <= survival_rate <= 1.0:
            raise ValueError('Survival rate must lie in [0, 1].')
        self.survival_rate = survival_rate
        self.key = key

    def apoptose(self, cells: set[BCell], pool: AntigenPool | None=None) -> set[BCell]:
        ranked = sorted(cells, key=self.key)
        survivor_count = math.ceil(self.survival_rate * len(ranked))
        perished = set(ranked[:len(ranked) - survivor_count])
        cells.difference_update(perished)
        return perished


class MeanRatioCompetition(SequentialApoptosisModel):
    """Survival probability grows with the ratio of a cell's value to the
    population mean."""

    def __init__(self, key: Callable[[BCell], float], rng: np.random.Generator):
        self.key = key
        self.rng = rng
        self.mean = float('nan')

    def initialize(self, cells: set[BCell], pool: AntigenPool | None) -> None:
        self.mean = float(np.mean([self.key(cell) for cell in cells])) if cells else float('nan')

    def survival_prob(self, cell: BCell) -> float:
        # every cell holds the mean when the mean is zero
        if self.mean == 0.0:
            return utils.langmuir(1.0)
        return utils.langmuir(self.key(cell) / self.mean)

    def apoptose_cell(self, cell: BCell) -> bool:
        return not utils.accept(self.rng, self.survival_prob(cell))


class WangCellCompetition(SequentialApoptosisModel):
    """Competition model of Wang et al. (Cell 2015). A lone cell always survives.

    Attributes:
        alpha, beta: aggregates computed by initialize.
    """

    def __init__(self, rng: np.random.Generator):
        self.rng = rng
        self.alpha = float('nan')
        self.beta = float('nan')

    def initialize(self, cells: set[BCell], pool: AntigenPool | None) -> None:
        if pool is None or pool.is_empty():
            raise ValueError('Wang competition requires a non-empty antigen pool.')
        R = 1.0 / pool.get_total_conc()
        N = len(cells)
        mean_q = float(np.mean([cell.antigen_qty for cell in cells]))
        self.alpha = R * mean_q * N / (N - 1.0)
        self.beta = 1.0 - R / (N - 1.0)

    def survival_prob(self, cell: BCell) -> float:
        denominator = self.alpha + self.beta * cell.antigen_qty
        if denominator <= 0.0:
            return 0.0
        return min(1.0, max(0.0, cell.antigen_qty / denominator))

    def apoptose_cell(self, cell: BCell) -> bool:
        return not utils.accept(self.rng, self.survival_prob(cell))

    def apoptose(self, cells: set[BCell], pool: AntigenPool | None=None) -> set[BCell]:
        if len(cells) <= 1:
            return set()
        return super().apoptose(cells, pool)
