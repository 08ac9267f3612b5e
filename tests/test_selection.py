import pytest

from gcmature.selection import MemorySelectionModel, PlasmaSelectionModel, ReentryModel


def test_memory_selection_frequency(lineage, rng):
    cells = {lineage.germline() for _ in range(20000)}
    original = set(cells)
    selected = MemorySelectionModel(0.1, rng).select(cells)
    assert len(selected) / 20000 == pytest.approx(0.1, abs=0.01)
    assert cells | selected == original
    assert not cells & selected


def test_selection_extremes(lineage, rng):
    cells = {lineage.germline() for _ in range(10)}
    assert ReentryModel(0.0, rng).select(cells) == set()
    assert len(cells) == 10
    assert len(ReentryModel(1.0, rng).select(cells)) == 10
    assert cells == set()


def test_selection_probability_validation(rng):
    with pytest.raises(ValueError):
        MemorySelectionModel(1.5, rng)
    with pytest.raises(ValueError):
        PlasmaSelectionModel(0.0, -0.1, rng)


def test_plasma_selection_threshold(lineage, rng):
    weak = lineage.germline()
    weak.max_affinity = 0.5
    strong = lineage.germline()
    strong.max_affinity = 1.0
    unbound = lineage.germline()
    cells = {weak, strong, unbound}
    selected = PlasmaSelectionModel(1.0, 1.0, rng).select(cells)
    assert selected == {strong}
    assert cells == {weak, unbound}
