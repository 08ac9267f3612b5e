r"""
Dark-zone division
==================

After T-cell competition every surviving cell is assigned the number of
division rounds it will undergo in the next dark zone.

* FIXED_COUNT - every cell divides the same number of times.
* MEAN_CAPTURE_RATIO - the expected count grows with the ratio R of a cell's
  captured antigen to the population mean,

  .. math::
      n(R) = 2 + \tanh[(N - 2)(R - 1)],\quad R \le 1

      n(R) = 2 + (N - 2)\tanh(R - 1),\quad R > 1

  where N is the asymptotic maximum count, and the expectation is rounded
  stochastically to an integer.
"""
import abc
from enum import Enum
from typing import Iterable

import numpy as np

from . import utils
from .bcells import BCell


class DZDivisionType(Enum):
    FIXED_COUNT = 'FIXED_COUNT'
    MEAN_CAPTURE_RATIO = 'MEAN_CAPTURE_RATIO'


class DZDivisionModel(abc.ABC):
    """Assigns the number of dark-zone division rounds."""

    @abc.abstractmethod
    def assign_division_count(self, cells: Iterable[BCell]) -> None:
        """Set the division count of every cell (each exactly once)."""


class FixedCountDivision(DZDivisionModel):

    def __init__(self, count: int):
        if count < 0:
            raise ValueError('Division count must be non-negative.')
        self.count = count

    def assign_division_count(self, cells: Iterable[BCell]) -> None:
        for cell in cells:
            cell.set_division_count(self.count)


class MeanCaptureRatioDivision(DZDivisionModel):
    """Division count driven by the captured-antigen ratio to the mean."""

    MAX_RANGE = (3, 6)

    def __init__(self, max_count: int, rng: np.random.Generator):
        low, high = self.MAX_RANGE
        if not low <= max_count <= high:
            raise ValueError(f'Maximum division count must lie in [{low}, {high}].')
        self.max_count = max_count
        self.rng = rng

    def compute_expected_division_count(self, qty_ratio: float) -> float:
        if qty_ratio < 0.0:
            raise ValueError('Negative antigen capture ratio.')
        scale = self.max_count - 2.0
        if qty_ratio <= 1.0:
            return 2.0 + np.tanh(scale * (qty_ratio - 1.0))
        return 2.0 + scale * np.tanh(qty_ratio - 1.0)

    def compute_division_count(self, qty_ratio: float) -> int:
        return utils.discretize(self.rng, self.compute_expected_division_count(qty_ratio))

    def assign_division_count(self, cells: Iterable[BCell]) -> None:
        cells = list(cells)
        if not cells:
            return
        mean_qty = float(np.mean([cell.antigen_qty for cell in cells]))
        for cell in cells:
            ratio = cell.antigen_qty / mean_qty if mean_qty > 0.0 else 1.0
            cell.set_division_count(self.compute_division_count(ratio))
