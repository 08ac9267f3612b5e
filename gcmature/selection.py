r"""
Selection models
================

Selection moves cells out of a population: light-zone survivors into the
memory and plasma compartments, and memory cells back into the dark zone.
`select` follows the same remove-and-return contract as apoptosis.
"""
import abc

import numpy as np

from . import utils
from .bcells import BCell


class SelectionModel(abc.ABC):
    """Removes selected cells from a population."""

    @abc.abstractmethod
    def select(self, cells: set[BCell]) -> set[BCell]:
        """Remove the selected cells from cells and return them."""


class IndependentSelectionModel(SelectionModel):
    """Each cell is selected independently of the others."""

    @abc.abstractmethod
    def select_cell(self, cell: BCell) -> bool:
        """True if the cell is selected."""

    def select(self, cells: set[BCell]) -> set[BCell]:
        selected = {cell for cell in cells if self.select_cell(cell)}
        cells.difference_update(selected)
        return selected


class ProbabilitySelectionModel(IndependentSelectionModel):
    """Selects every cell with a fixed probability."""

    def __init__(self, probability: float, rng: np.random.Generator):
        if not 0.0 <= probability <= 1.0:
            raise ValueError('Selection probability must lie in [0, 1].')
        self.probability = probability
        self.rng = rng

    def select_cell(self, cell: BCell) -> bool:
        return utils.accept(self.rng, self.probability)


class MemorySelectionModel(ProbabilitySelectionModel):
    """Light-zone survivors exit as memory cells."""


class ReentryModel(ProbabilitySelectionModel):
    """Memory cells re-enter the dark zone."""


class PlasmaSelectionModel(ProbabilitySelectionModel):
    """Light-zone survivors binding at least as tightly as the threshold exit
    as plasma cells with a fixed probability."""

    def __init__(self, threshold: float, probability: float, rng: np.random.Generator):
        super().__init__(probability, rng)
        self.threshold = threshold

    def select_cell(self, cell: BCell) -> bool:
        return cell.max_affinity >= self.threshold and utils.accept(self.rng, self.probability)
