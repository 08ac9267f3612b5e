import numpy as np
import pytest

from gcmature.binding import CKCaptureModel, HammingAffinity, LangmuirCaptureModel
from gcmature.receptors import BitString, Epitope


def test_hamming_affinity():
    model = HammingAffinity(match_gain=0.5, act_energy=3.0)
    epitope = Epitope('E1', BitString.parse('000000'))
    assert model.compute_affinity(epitope, BitString.parse('000000')) == pytest.approx(3.0)
    assert model.compute_affinity(epitope, BitString.parse('110000')) == pytest.approx(2.0)
    assert model.compute_affinity(epitope, BitString.parse('111111')) == pytest.approx(0.0)


def test_hamming_affinity_default_energy():
    model = HammingAffinity.with_default_energy(match_gain=1.0, length=20)
    assert HammingAffinity.mean_distance(20) == pytest.approx(10.0)
    assert model.act_energy == pytest.approx(10.0)


def test_hamming_affinity_validation():
    with pytest.raises(ValueError):
        HammingAffinity(0.0, 1.0)
    model = HammingAffinity(1.0, 1.0)
    with pytest.raises(ValueError):
        model.compute_affinity(Epitope('E1', BitString.parse('00')), BitString.parse('000'))


def test_equilibrium_constant():
    model = HammingAffinity(1.0, 2.0)
    epitope = Epitope('E1', BitString.parse('0000'))
    assert model.compute_equilibrium_constant(epitope, BitString.parse('0001')) == pytest.approx(np.e)


def test_ck_capture():
    model = CKCaptureModel()
    assert model.capture(0.0, 2.0) == pytest.approx(2.0)
    assert model.capture(np.log(3.0), 2.0) == pytest.approx(6.0)


def test_langmuir_capture(rng):
    model = LangmuirCaptureModel(rng)
    n_trials = 20000
    captured = [model.capture(0.0, 5.0) for _ in range(n_trials)]
    assert set(captured) <= {0.0, 1.0}
    # K = 1 gives capture probability 1/2
    assert np.mean(captured) == pytest.approx(0.5, abs=0.02)


@pytest.mark.parametrize('length, distance', [(25, 7), (22, 15), (10, 3), (49, 31), (100, 29)])
def test_hamming_affinity_is_exact(length, distance):
    model = HammingAffinity(match_gain=1.0, act_energy=10.0)
    epitope = Epitope('E1', BitString.parse('0' * length))
    receptor = BitString.parse('1' * distance + '0' * (length - distance))
    affinity = model.compute_affinity(epitope, receptor)
    assert type(affinity) is float
    assert affinity == 10.0 - distance
