r"""
Antigens and the antigen pool
=============================

An `Antigen` is an identity-keyed, ordered collection of epitopes. The
`AntigenPool` maps antigens to strictly positive concentrations and is the
antigen reservoir a germinal center draws from.

Random selection from the pool is on the hot path (one draw per visit per
B cell per cycle), so the pool keeps a lazily built selection cache: a tuple
of antigens and the matching cumulative probability array. The cache is
shared by every draw and is discarded whenever the pool is mutated.

Zero concentrations are never stored: setting a concentration to zero
removes the antigen from the pool.
"""
import dataclasses
from types import MappingProxyType
from typing import Iterable

import numpy as np

from .receptors import Epitope


@dataclasses.dataclass(frozen=True, eq=False)
class Antigen():
    """Antigen with an ordered tuple of epitopes. Equality is identity-based."""

    key: str
    epitopes: tuple[Epitope, ...]

    def __post_init__(self):
        if not self.epitopes:
            raise ValueError('At least one epitope is required.')
        object.__setattr__(self, 'epitopes', tuple(self.epitopes))

    @classmethod
    def parse(cls, text: str, epitope_registry: dict[str, Epitope]) -> 'Antigen':
        """Parse an antigen specification such as 'AG1: E1, E2'.

        Args:
            text: the specification; anything after '#' is a comment.
            epitope_registry: mapping from epitope key to epitope.
        """
        text = text.split('#', 1)[0]
        fields = text.split(':')
        if len(fields) != 2 or not fields[0].strip():
            raise ValueError(f'Invalid antigen specification: [{text}].')
        epitopes = []
        for epitope_key in fields[1].split(','):
            epitope_key = epitope_key.strip()
            if epitope_key not in epitope_registry:
                raise ValueError(f'Unknown epitope: [{epitope_key}].')
            epitopes.append(epitope_registry[epitope_key])
        return cls(fields[0].strip(), tuple(epitopes))

    def __repr__(self) -> str:
        return f'Antigen({self.key})'


class AntigenPool():
    """Mapping from antigen to positive concentration with weighted sampling.

    Attributes:
        _conc: dict of antigen to concentration, insertion ordered.
        _select_from: cached tuple of antigens, or None.
        _select_cdf: cached cumulative selection probabilities, or None.
    """

    def __init__(self, concentrations: dict[Antigen, float] | None=None):
        self._conc = {}
        self._select_from = None
        self._select_cdf = None
        if concentrations:
            for antigen, concentration in concentrations.items():
                self.add(antigen, concentration)

    @classmethod
    def from_vaccine(cls, vaccine) -> 'AntigenPool':
        pool = cls()
        pool.add_vaccine(vaccine)
        return pool

    def _alter(self) -> dict:
        self._select_from = None
        self._select_cdf = None
        return self._conc

    def _create_cache(self) -> None:
        if self.is_empty():
            raise ValueError('Empty pool.')
        self._select_from = tuple(self._conc)
        cdf = np.cumsum(np.fromiter(self._conc.values(), dtype=float, count=len(self._conc)))
        self._select_cdf = cdf / cdf[-1]

    def add(self, antigen: Antigen, concentration: float) -> None:
        """Add to the concentration of an antigen."""
        if concentration < 0.0:
            raise ValueError('Negative concentration.')
        self.set_concentration(antigen, self.get_concentration(antigen) + concentration)

    def add_vaccine(self, vaccine) -> None:
        """Add every component of a vaccine."""
        for antigen, concentration in vaccine.components:
            self.add(antigen, concentration)

    def set_concentration(self, antigen: Antigen, concentration: float) -> None:
        """Set the concentration of an antigen; zero removes it."""
        if concentration < 0.0:
            raise ValueError('Negative concentration.')
        if concentration == 0.0:
            self.remove(antigen)
        else:
            self._alter()[antigen] = float(concentration)

    def remove(self, antigen: Antigen) -> None:
        self._alter().pop(antigen, None)

    def contains(self, antigen: Antigen) -> bool:
        return antigen in self._conc

    def __contains__(self, antigen) -> bool:
        return self.contains(antigen)

    def require(self, antigen: Antigen) -> None:
        if not self.contains(antigen):
            raise ValueError(f'Missing antigen: [{antigen.key}].')

    def decay(self, half_life: float, antigen: Antigen | None=None) -> None:
        """Apply one cycle of exponential decay.

        Args:
            half_life: half-life in cycles; inf leaves the pool unchanged.
            antigen: decay only this antigen, which must be present. If None,
                decay the whole pool.
        """
        if half_life <= 0.0:
            raise ValueError('Half-life must be positive.')
        if antigen is not None:
            self.require(antigen)
            targets = [antigen]
        else:
            targets = list(self._conc)
        factor = 2.0 ** (-1.0 / half_life)
        if factor == 1.0:
            return
        for target in targets:
            self.set_concentration(target, self._conc[target] * factor)

    def get_concentration(self, antigen: Antigen) -> float:
        """Concentration of an antigen, zero if absent."""
        return self._conc.get(antigen, 0.0)

    def get_total_conc(self) -> float:
        return float(sum(self._conc.values()))

    def get_fraction(self, antigen: Antigen) -> float:
        total = self.get_total_conc()
        return self.get_concentration(antigen) / total if total > 0.0 else 0.0

    def is_empty(self) -> bool:
        return not self._conc

    def is_uniform(self) -> bool:
        """True if every antigen has the same concentration."""
        return len(set(self._conc.values())) <= 1

    def size(self) -> int:
        return len(self._conc)

    def __len__(self) -> int:
        return len(self._conc)

    def select(self, rng: np.random.Generator) -> Antigen:
        """Draw one antigen with probability proportional to its concentration."""
        if self._select_from is None:
            self._create_cache()
        index = int(np.searchsorted(self._select_cdf, rng.random(), side='right'))
        return self._select_from[min(index, len(self._select_from) - 1)]

    def subset(self, antigens: Iterable[Antigen]) -> 'AntigenPool':
        """Independent pool restricted to the given antigens, all of which
        must be present in this pool."""
        subset = AntigenPool()
        for antigen in antigens:
            if not self.contains(antigen):
                raise ValueError('Invalid subset.')
            subset.set_concentration(antigen, self._conc[antigen])
        return subset

    def copy(self) -> 'AntigenPool':
        return self.subset(self._conc)

    def view_antigens(self) -> frozenset[Antigen]:
        return frozenset(self._conc)

    def list_antigens(self) -> tuple[Antigen, ...]:
        return tuple(self._conc)

    def view_concentrations(self) -> MappingProxyType:
        """Read-only live view of the concentration mapping."""
        return MappingProxyType(self._conc)

    def view_epitopes(self) -> frozenset[Epitope]:
        return frozenset(
            epitope for antigen in self._conc for epitope in antigen.epitopes
        )

    def __repr__(self) -> str:
        return 'AntigenPool(' + ', '.join(
            f'{antigen.key}: {conc:g}' for antigen, conc in self._conc.items()
        ) + ')'
