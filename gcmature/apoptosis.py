r"""
Apoptosis models
================

An apoptosis model removes the cells that die from a population and returns
them. Two shapes are provided:

* `ApoptosisModel` decides for the whole population in one shot (e.g. rank
  based competition).
* `SequentialApoptosisModel` first computes population aggregates in
  `initialize` and then decides for each cell on its own with
  `apoptose_cell`. `IndependentApoptosisModel` is the sequential shape with
  no aggregates at all.

The `apoptose` contract is the same for both: the input set is mutated in
place and the returned set is exactly the removed cells.
"""
import abc

from .antigens import AntigenPool
from .bcells import BCell


class ApoptosisModel(abc.ABC):
    """Removes perished cells from a population."""

    @abc.abstractmethod
    def apoptose(self, cells: set[BCell], pool: AntigenPool | None=None) -> set[BCell]:
        """Remove perished cells from cells and return them."""


class SequentialApoptosisModel(ApoptosisModel):
    """Aggregate-then-decide apoptosis.

    The per-cell decisions only read the aggregates computed by `initialize`,
    never the outcome for another cell.
    """

    @abc.abstractmethod
    def initialize(self, cells: set[BCell], pool: AntigenPool | None) -> None:
        """Compute the population aggregates used by apoptose_cell."""

    @abc.abstractmethod
    def apoptose_cell(self, cell: BCell) -> bool:
        """True if the cell dies."""

    def apoptose(self, cells: set[BCell], pool: AntigenPool | None=None) -> set[BCell]:
        self.initialize(cells, pool)
        perished = {cell for cell in cells if self.apoptose_cell(cell)}
        cells.difference_update(perished)
        return perished


class IndependentApoptosisModel(SequentialApoptosisModel):
    """Per-cell apoptosis with no population aggregates."""

    def initialize(self, cells: set[BCell], pool: AntigenPool | None) -> None:
        pass
