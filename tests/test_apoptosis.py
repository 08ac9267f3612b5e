import numpy as np
import pytest

from gcmature import utils
from gcmature.antigens import AntigenPool
from gcmature.apoptosis import IndependentApoptosisModel
from gcmature.bcells import ANTIGEN_QTY_KEY, MAX_AFFINITY_KEY
from gcmature.competition import MeanRatioCompetition, RankCompetition, WangCellCompetition
from gcmature.signaling import QuantityLangmuirSignaling, ThresholdSignaling


def make_cells(lineage, quantities=(), affinities=()):
    cells = []
    for i, qty in enumerate(quantities):
        cell = lineage.germline()
        cell.antigen_qty = qty
        if affinities:
            cell.max_affinity = affinities[i]
        cells.append(cell)
    return cells


class EvenIndexApoptosis(IndependentApoptosisModel):

    def apoptose_cell(self, cell):
        return cell.index % 2 == 0


def test_apoptose_removes_and_returns(lineage):
    cells = set(make_cells(lineage, [1.0] * 6))
    original = set(cells)
    perished = EvenIndexApoptosis().apoptose(cells)
    assert perished == {cell for cell in original if cell.index % 2 == 0}
    assert cells == original - perished
    assert not cells & perished


def test_affinity_threshold_signaling(lineage):
    low, equal, high = make_cells(lineage, [0.0, 0.0, 0.0], [-1.0, 0.5, 2.0])
    cells = {low, equal, high}
    perished = ThresholdSignaling.affinity(0.5).apoptose(cells)
    assert perished == {low}
    assert cells == {equal, high}


def test_unbound_cell_fails_affinity_threshold(lineage):
    cell = lineage.germline()
    cells = {cell}
    assert ThresholdSignaling.affinity(-1000.0).apoptose(cells) == {cell}


def test_quantity_threshold_signaling(lineage):
    low, high = make_cells(lineage, [0.1, 2.0])
    cells = {low, high}
    assert ThresholdSignaling.quantity(1.0).apoptose(cells) == {low}


def test_quantity_langmuir_signaling(lineage, rng):
    model = QuantityLangmuirSignaling(rng)
    cells = set(make_cells(lineage, [1.0] * 20000))
    perished = model.apoptose(cells)
    assert len(perished) / 20000 == pytest.approx(0.5, abs=0.02)


def test_rank_competition_survivors(lineage):
    cells = make_cells(lineage, [5.0, 1.0, 3.0, 2.0, 4.0])
    population = set(cells)
    perished = RankCompetition(0.5, ANTIGEN_QTY_KEY).apoptose(population)
    # ceil(0.5 * 5) = 3 survive
    assert {cell.antigen_qty for cell in population} == {5.0, 4.0, 3.0}
    assert {cell.antigen_qty for cell in perished} == {1.0, 2.0}


def test_rank_competition_by_affinity(lineage):
    cells = make_cells(lineage, [1.0, 1.0, 1.0, 1.0], [0.0, 3.0, 1.0, 2.0])
    population = set(cells)
    RankCompetition(0.25, MAX_AFFINITY_KEY).apoptose(population)
    assert population == {cells[1]}


def test_rank_competition_edges(lineage):
    cells = set(make_cells(lineage, [1.0, 2.0]))
    assert RankCompetition(1.0, ANTIGEN_QTY_KEY).apoptose(cells) == set()
    assert len(RankCompetition(0.0, ANTIGEN_QTY_KEY).apoptose(cells)) == 2
    assert RankCompetition(0.5, ANTIGEN_QTY_KEY).apoptose(set()) == set()
    with pytest.raises(ValueError):
        RankCompetition(1.5, ANTIGEN_QTY_KEY)


def test_mean_ratio_competition(lineage, rng):
    model = MeanRatioCompetition(ANTIGEN_QTY_KEY, rng)
    cells = make_cells(lineage, [1.0, 3.0])
    model.initialize(set(cells), None)
    assert model.mean == pytest.approx(2.0)
    assert model.survival_prob(cells[0]) == pytest.approx(utils.langmuir(0.5))
    assert model.survival_prob(cells[1]) == pytest.approx(utils.langmuir(1.5))


def test_mean_ratio_competition_zero_mean(lineage, rng):
    model = MeanRatioCompetition(ANTIGEN_QTY_KEY, rng)
    cells = make_cells(lineage, [0.0, 0.0])
    model.initialize(set(cells), None)
    assert model.survival_prob(cells[0]) == pytest.approx(0.5)


def test_mean_ratio_competition_frequency(lineage, rng):
    model = MeanRatioCompetition(ANTIGEN_QTY_KEY, rng)
    cells = set(make_cells(lineage, [2.0] * 20000))
    perished = model.apoptose(cells)
    assert len(perished) / 20000 == pytest.approx(0.5, abs=0.02)


def test_wang_lone_cell_survives(lineage, rng, pool):
    cell = lineage.germline()
    cells = {cell}
    assert WangCellCompetition(rng).apoptose(cells, pool) == set()
    assert cells == {cell}


def test_wang_aggregates(lineage, rng, pool):
    model = WangCellCompetition(rng)
    cells = make_cells(lineage, [1.0, 2.0, 3.0])
    model.initialize(set(cells), pool)
    R = 1.0 / 6.0
    N = 3
    assert model.alpha == pytest.approx(R * 2.0 * N / (N - 1.0))
    assert model.beta == pytest.approx(1.0 - R / (N - 1.0))
    expected = 3.0 / (model.alpha + model.beta * 3.0)
    assert model.survival_prob(cells[2]) == pytest.approx(expected)
    assert 0.0 <= model.survival_prob(cells[0]) <= 1.0


def test_wang_requires_pool(lineage, rng):
    cells = set(make_cells(lineage, [1.0, 2.0]))
    with pytest.raises(ValueError):
        WangCellCompetition(rng).apoptose(cells, AntigenPool())


def test_wang_probability_is_clamped(lineage, rng, antigens):
    model = WangCellCompetition(rng)
    # a tiny pool makes beta negative
    pool = AntigenPool({antigens['AG1']: 0.01})
    cells = make_cells(lineage, [1.0, 50.0])
    model.initialize(set(cells), pool)
    assert model.beta < 0.0
    probs = np.array([model.survival_prob(cell) for cell in cells])
    assert np.all((probs >= 0.0) & (probs <= 1.0))
