r"""
Affinity and capture models
===========================

An `AffinityModel` turns an (epitope, receptor) pair into a binding affinity
in units of kT, and an `EpitopeCaptureModel` turns that affinity plus the
antigen concentration into a captured antigen quantity. Both are pure
strategy objects consumed by `BCell.bind`.

The equilibrium association constant of a binding affinity is
:math:`K = e^{A}`.
"""
import abc
from enum import Enum

import numpy as np

from . import utils
from .receptors import BitString, Epitope


class EpitopeCaptureType(Enum):
    """Values used to select the epitope capture model."""
    CK = 'CK'
    LANGMUIR = 'LANGMUIR'


class AffinityModel(abc.ABC):
    """Computes the binding affinity of a receptor for an epitope."""

    @abc.abstractmethod
    def compute_affinity(self, epitope: Epitope, receptor: BitString) -> float:
        """Binding affinity in kT; larger is tighter binding."""

    def compute_equilibrium_constant(self, epitope: Epitope, receptor: BitString) -> float:
        return utils.equilibrium_constant(self.compute_affinity(epitope, receptor))


class HammingAffinity(AffinityModel):
    """Affinity linear in the Hamming distance between bit strings.

    The binding free energy is ``match_gain * distance`` and the affinity is
    the activation energy less that free energy, so a perfect match has
    affinity ``act_energy`` and every mismatched bit costs ``match_gain``.

    Attributes:
        match_gain: free energy per mismatched bit (kT), must be positive.
        act_energy: activation energy (kT).
    """

    def __init__(self, match_gain: float, act_energy: float):
        if match_gain <= 0.0:
            raise ValueError('Match gain must be positive.')
        self.match_gain = match_gain
        self.act_energy = act_energy

    @classmethod
    def with_default_energy(cls, match_gain: float, length: int, cardinality: int=2) -> 'HammingAffinity':
        """Model whose activation energy equals the mean free energy of two
        random structures, so random pairs have affinity near zero."""
        return cls(match_gain, match_gain * cls.mean_distance(length, cardinality))

    @staticmethod
    def mean_distance(length: int, cardinality: int=2) -> float:
        """Expected Hamming distance between two random structures."""
        if length < 1:
            raise ValueError('Length must be positive.')
        if cardinality < 1:
            raise ValueError('Cardinality must be positive.')
        return length * (cardinality - 1) / cardinality

    def compute_free_energy(self, distance: float) -> float:
        if distance < 0.0:
            raise ValueError('Negative Hamming distance.')
        return self.match_gain * distance

    def compute_affinity(self, epitope: Epitope, receptor: BitString) -> float:
        structure = epitope.structure
        if structure.length != receptor.length:
            raise ValueError('Epitope and receptor have different lengths.')
        return float(self.act_energy - self.compute_free_energy(structure.distance(receptor)))


class EpitopeCaptureModel(abc.ABC):
    """Quantity of antigen a receptor captures from one epitope."""

    @abc.abstractmethod
    def capture(self, affinity: float, concentration: float) -> float:
        """Non-negative captured quantity."""


class CKCaptureModel(EpitopeCaptureModel):
    """Captured quantity is the concentration times the equilibrium constant."""

    def capture(self, affinity: float, concentration: float) -> float:
        return concentration * utils.equilibrium_constant(affinity)


class LangmuirCaptureModel(EpitopeCaptureModel):
    """Captures one unit with the Langmuir probability K / (1 + K)."""

    def __init__(self, rng: np.random.Generator):
        self.rng = rng

    def capture(self, affinity: float, concentration: float) -> float:
        probability = utils.langmuir(utils.equilibrium_constant(affinity))
        return 1.0 if utils.accept(self.rng, probability) else 0.0
