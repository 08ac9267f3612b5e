r"""
Receptor structures
===================

B-cell receptors and antigen epitopes share one structural encoding: a fixed
length bit string. The germinal-center machinery never looks inside a
structure; it only compares structures for equality, asks an affinity model
for a binding free energy, and asks a `Mutator` for a daughter receptor.

* `BitString` - immutable bit vector with value equality and a Hamming distance.
* `Epitope` - a keyed structure displayed on an antigen.
* `ReceptorGenerator` - draws random germline receptors.
* `Mutator` - point mutation with lethal and silent outcomes.
"""
import dataclasses

import numpy as np


class BitString():
    """Immutable bit vector used for receptors and epitopes."""

    __slots__ = ('_bits',)

    def __init__(self, bits):
        bits = np.array(bits, dtype=np.int8)
        if bits.ndim != 1 or np.any((bits != 0) & (bits != 1)):
            raise ValueError('A bit string must be a one-dimensional array of 0s and 1s.')
        bits.setflags(write=False)
        self._bits = bits

    @classmethod
    def random(cls, rng: np.random.Generator, length: int) -> 'BitString':
        return cls(rng.integers(0, 2, size=length, dtype=np.int8))

    @classmethod
    def parse(cls, text: str) -> 'BitString':
        """Parse a string such as '0110'."""
        return cls([int(char) for char in text.strip()])

    @property
    def bits(self) -> np.ndarray:
        """Read-only view of the underlying bits."""
        return self._bits

    @property
    def length(self) -> int:
        return self._bits.size

    def __len__(self) -> int:
        return self._bits.size

    def distance(self, other: 'BitString') -> int:
        """Hamming distance to another bit string of the same length."""
        if self.length != other.length:
            raise ValueError('Bit strings have different lengths.')
        return int(np.count_nonzero(self._bits != other._bits))

    def flip(self, position: int) -> 'BitString':
        """Copy with the bit at position inverted."""
        bits = self._bits.copy()
        bits[position] ^= 1
        return BitString(bits)

    def __eq__(self, other) -> bool:
        if not isinstance(other, BitString):
            return NotImplemented
        return np.array_equal(self._bits, other._bits)

    def __hash__(self) -> int:
        return hash(self._bits.tobytes())

    def __repr__(self) -> str:
        return 'BitString(' + ''.join(str(bit) for bit in self._bits) + ')'


@dataclasses.dataclass(frozen=True, eq=False)
class Epitope():
    """An antigenic site. Equality is identity-based, keys are labels only."""

    key: str
    structure: BitString

    @property
    def length(self) -> int:
        return self.structure.length

    def __repr__(self) -> str:
        return f'Epitope({self.key})'


class ReceptorGenerator():
    """Draws random germline receptors of a fixed length."""

    def __init__(self, rng: np.random.Generator, length: int):
        if length < 1:
            raise ValueError('Receptor length must be positive.')
        self.rng = rng
        self.length = length

    def generate(self) -> BitString:
        return BitString.random(self.rng, self.length)


class Mutator():
    """Single point mutation with lethal and silent outcomes.

    Attributes:
        death_prob: probability that a mutation is lethal.
        silent_prob: probability that a mutation leaves the receptor unchanged.
    """

    def __init__(self, rng: np.random.Generator, death_prob: float, silent_prob: float):
        if not (0.0 <= death_prob <= 1.0 and 0.0 <= silent_prob <= 1.0):
            raise ValueError('Mutation probabilities must lie in [0, 1].')
        if death_prob + silent_prob > 1.0:
            raise ValueError('Lethal and silent mutation probabilities exceed one.')
        self.rng = rng
        self.death_prob = death_prob
        self.silent_prob = silent_prob

    @property
    def survival_prob(self) -> float:
        return 1.0 - self.death_prob

    def mutate(self, receptor: BitString) -> BitString | None:
        """Mutate a receptor.

        Returns:
            None if the mutation is lethal, the same receptor if it is silent,
            otherwise a copy with one randomly chosen bit flipped.
        """
        draw = self.rng.random()
        if draw < self.death_prob:
            return None
        if draw < self.death_prob + self.silent_prob:
            return receptor
        return receptor.flip(int(self.rng.integers(receptor.length)))
