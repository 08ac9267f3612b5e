r"""
Vaccination schedules
=====================

A `Vaccine` is a list of (antigen, concentration) components, a
`VaccinationEvent` administers a vaccine on one germinal-center cycle, and a
`VaccinationSchedule` is the ordered set of events of one immunization
protocol.

Text formats
------------
* vaccine: ``AG1, 1.0; AG2, 2.0`` or the short-hand ``AG1, AG2; 5.0``
  (every listed antigen at the same concentration).
* event: ``10: AG1, AG2; 5.0``.
"""
import dataclasses

from .antigens import Antigen, AntigenPool

COMPONENT_DELIM = ';'
ANTIGEN_DELIM = ','
EVENT_DELIM = ':'


def _is_float(text: str) -> bool:
    try:
        float(text)
    except ValueError:
        return False
    return True


def _lookup(key: str, antigen_registry: dict[str, Antigen]) -> Antigen:
    key = key.strip()
    if key not in antigen_registry:
        raise ValueError(f'Unknown antigen: [{key}].')
    return antigen_registry[key]


@dataclasses.dataclass(frozen=True)
class Vaccine():
    """Antigen components of one injection, sorted by antigen key."""

    components: tuple[tuple[Antigen, float], ...]

    def __post_init__(self):
        if not self.components:
            raise ValueError('No components.')
        keys = [antigen.key for antigen, _ in self.components]
        if len(set(keys)) != len(keys):
            raise ValueError('Duplicate antigen.')
        for _, concentration in self.components:
            if concentration < 0.0:
                raise ValueError('Negative concentration.')
        ordered = tuple(sorted(
            ((antigen, float(conc)) for antigen, conc in self.components),
            key=lambda component: component[0].key,
        ))
        object.__setattr__(self, 'components', ordered)

    @classmethod
    def equal_parts(cls, antigens, concentration: float) -> 'Vaccine':
        return cls(tuple((antigen, concentration) for antigen in antigens))

    @classmethod
    def parse(cls, text: str, antigen_registry: dict[str, Antigen]) -> 'Vaccine':
        fields = text.split(COMPONENT_DELIM)
        if len(fields) == 2 and _is_float(fields[1]):
            antigens = [_lookup(key, antigen_registry) for key in fields[0].split(ANTIGEN_DELIM)]
            return cls.equal_parts(antigens, float(fields[1]))
        components = []
        for field in fields:
            parts = field.split(ANTIGEN_DELIM)
            if len(parts) != 2 or not _is_float(parts[1]):
                raise ValueError(f'Invalid vaccine component: [{field.strip()}].')
            components.append((_lookup(parts[0], antigen_registry), float(parts[1])))
        return cls(tuple(components))

    @property
    def antigens(self) -> frozenset[Antigen]:
        return frozenset(antigen for antigen, _ in self.components)

    def count_components(self) -> int:
        return len(self.components)

    def format(self) -> str:
        return f'{COMPONENT_DELIM} '.join(
            f'{antigen.key}{ANTIGEN_DELIM} {conc:g}' for antigen, conc in self.components
        )


@dataclasses.dataclass(frozen=True)
class VaccinationEvent():
    """A vaccine administered on a germinal-center cycle."""

    in_cycle: int
    vaccine: Vaccine

    def __post_init__(self):
        if self.in_cycle < 0:
            raise ValueError('Negative injection cycle.')

    @classmethod
    def bolus(cls, vaccine: Vaccine) -> 'VaccinationEvent':
        return cls(0, vaccine)

    @classmethod
    def parse(cls, text: str, antigen_registry: dict[str, Antigen]) -> 'VaccinationEvent':
        text = text.split('#', 1)[0]
        fields = text.split(EVENT_DELIM)
        if len(fields) != 2:
            raise ValueError(f'Invalid vaccine event: [{text.strip()}].')
        try:
            in_cycle = int(fields[0])
        except ValueError:
            raise ValueError(f'Invalid injection cycle: [{fields[0].strip()}].')
        return cls(in_cycle, Vaccine.parse(fields[1], antigen_registry))

    def format(self) -> str:
        return f'{self.in_cycle}{EVENT_DELIM} {self.vaccine.format()}'


class VaccinationSchedule():
    """Events of an immunization protocol, keyed by injection cycle."""

    def __init__(self, events):
        events = list(events)
        if not events:
            raise ValueError('No events.')
        self._events = {}
        for event in sorted(events, key=lambda event: event.in_cycle):
            if event.in_cycle in self._events:
                raise ValueError('Duplicate injection cycle.')
            self._events[event.in_cycle] = event

    @classmethod
    def bolus(cls, vaccine: Vaccine) -> 'VaccinationSchedule':
        """Single injection on cycle zero."""
        return cls([VaccinationEvent.bolus(vaccine)])

    @classmethod
    def shortcut(cls, antigens, total_conc: float) -> 'VaccinationSchedule':
        """Bolus of every antigen at total_conc / number of antigens."""
        antigens = list(antigens)
        if not antigens:
            raise ValueError('No antigens.')
        if total_conc <= 0.0:
            raise ValueError('Total concentration must be positive.')
        return cls.bolus(Vaccine.equal_parts(antigens, total_conc / len(antigens)))

    @classmethod
    def parse(cls, lines, antigen_registry: dict[str, Antigen]) -> 'VaccinationSchedule':
        """Parse event lines; blank and comment lines are skipped."""
        events = [
            VaccinationEvent.parse(line, antigen_registry)
            for line in lines
            if line.split('#', 1)[0].strip()
        ]
        return cls(events)

    def contains_event(self, cycle: int) -> bool:
        return cycle in self._events

    def count_events(self) -> int:
        return len(self._events)

    def event_on(self, cycle: int) -> VaccinationEvent | None:
        """The event scheduled on exactly this cycle, or None."""
        return self._events.get(cycle)

    def latest_event(self, cycle: int) -> VaccinationEvent | None:
        """The last event scheduled on or before this cycle, or None."""
        if cycle < 0:
            raise ValueError('Negative cycle.')
        latest = None
        for in_cycle, event in self._events.items():
            if in_cycle > cycle:
                break
            latest = event
        return latest

    def view_events(self) -> tuple[VaccinationEvent, ...]:
        return tuple(self._events.values())

    def vaccine_footprint(self, cycle: int) -> tuple[Vaccine, ...]:
        """Vaccines administered on or before this cycle."""
        return tuple(
            event.vaccine for in_cycle, event in self._events.items() if in_cycle <= cycle
        )

    def antigen_footprint(self, cycle: int) -> frozenset[Antigen]:
        """Antigens administered on or before this cycle."""
        return frozenset().union(*(vaccine.antigens for vaccine in self.vaccine_footprint(cycle)))

    def epitope_footprint(self, cycle: int) -> frozenset:
        return frozenset(
            epitope for antigen in self.antigen_footprint(cycle) for epitope in antigen.epitopes
        )

    def antigen_pool_footprint(self, cycle: int) -> AntigenPool:
        """Pool holding every vaccine administered on or before this cycle,
        without decay."""
        pool = AntigenPool()
        for vaccine in self.vaccine_footprint(cycle):
            pool.add_vaccine(vaccine)
        return pool
