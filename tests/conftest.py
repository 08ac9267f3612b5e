import numpy as np
import pytest

from gcmature.antigens import Antigen, AntigenPool
from gcmature.bcells import Lineage
from gcmature.models import Models
from gcmature.parameters import Parameters
from gcmature.receptors import BitString, Epitope


SMALL_GC = dict(
    receptor_length=10,
    germline_count=5,
    replication_factor=4,
    cycle_limit=6,
    resident_capacity=10000,
    germline_affinity_threshold=-100.0,
    bcr_affinity_threshold=-100.0,
)


@pytest.fixture
def rng():
    return np.random.default_rng(20240521)


@pytest.fixture
def make_models(rng):
    """Factory building a Models bundle from Parameters overrides."""

    def _make(**overrides):
        return Models.from_parameters(Parameters(**overrides), rng)

    return _make


@pytest.fixture
def lineage(make_models):
    return Lineage(make_models(receptor_length=4))


@pytest.fixture
def epitopes():
    return {
        'E1': Epitope('E1', BitString.parse('0000')),
        'E2': Epitope('E2', BitString.parse('1111')),
        'E3': Epitope('E3', BitString.parse('0101')),
    }


@pytest.fixture
def antigens(epitopes):
    return {
        'AG1': Antigen('AG1', (epitopes['E1'],)),
        'AG2': Antigen('AG2', (epitopes['E2'],)),
        'AG3': Antigen('AG3', (epitopes['E3'],)),
    }


@pytest.fixture
def pool(antigens):
    return AntigenPool({antigens['AG1']: 1.0, antigens['AG2']: 2.0, antigens['AG3']: 3.0})
