r"""
BCR signaling
=============

Light-zone apoptosis driven by the strength of B-cell receptor signaling,
which is applied right after antigen binding.

* AFFINITY_THRESHOLD - die if the best binding affinity is below a threshold.
* QUANTITY_THRESHOLD - die if the captured antigen quantity is below a threshold.
* QUANTITY_LANGMUIR - survive with probability Q / (1 + Q).
"""
from enum import Enum
from typing import Callable

import numpy as np

from . import utils
from .apoptosis import IndependentApoptosisModel
from .bcells import BCell, ANTIGEN_QTY_KEY, MAX_AFFINITY_KEY


class BCRSignalingType(Enum):
    AFFINITY_THRESHOLD = 'AFFINITY_THRESHOLD'
    QUANTITY_THRESHOLD = 'QUANTITY_THRESHOLD'
    QUANTITY_LANGMUIR = 'QUANTITY_LANGMUIR'


class ThresholdSignaling(IndependentApoptosisModel):
    """Cells whose value falls below the threshold die.

    Attributes:
        value_func: maps a cell to the value compared against the threshold.
        threshold: minimum value for survival.
    """

    def __init__(self, value_func: Callable[[BCell], float], threshold: float):
        self.value_func = value_func
        self.threshold = threshold

    @classmethod
    def affinity(cls, threshold: float) -> 'ThresholdSignaling':
        return cls(MAX_AFFINITY_KEY, threshold)

    @classmethod
    def quantity(cls, threshold: float) -> 'ThresholdSignaling':
        return cls(ANTIGEN_QTY_KEY, threshold)

    def apoptose_cell(self, cell: BCell) -> bool:
        return self.value_func(cell) < self.threshold


class QuantityLangmuirSignaling(IndependentApoptosisModel):
    """Survival probability is the Langmuir occupancy of the captured antigen."""

    def __init__(self, rng: np.random.Generator):
        self.rng = rng

    def apoptose_cell(self, cell: BCell) -> bool:
        return not utils.accept(self.rng, utils.langmuir(cell.antigen_qty))
