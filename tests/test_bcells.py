import numpy as np
import pytest

from gcmature.antigens import AntigenPool
from gcmature.bcells import (
    ANTIGEN_QTY_KEY,
    MAX_AFFINITY_KEY,
    Assigned,
    BindingEvent,
    ClonalDiversity,
    Lineage,
    Unassigned,
)
from gcmature.receptors import BitString


def test_founder(lineage):
    founder = lineage.germline(BitString.parse('0101'))
    assert founder.is_founder()
    assert founder.founder is founder
    assert founder.parent is None
    assert founder.generation == 0
    assert founder.mutation_count == 0
    assert founder.gc_cycle == 0
    assert founder.antigen_qty == 0.0
    assert founder.max_affinity == float('-inf')


def test_germline_draws_receptor(lineage):
    founder = lineage.germline()
    assert founder.receptor.length == 4
    assert lineage[founder.index] is founder


def test_indices_are_monotonic(lineage):
    cells = [lineage.germline() for _ in range(5)]
    assert [cell.index for cell in cells] == list(range(5))
    assert len(lineage) == 5


def test_replicate(lineage):
    founder = lineage.germline(BitString.parse('0101'))
    replica = founder.replicate()
    assert replica.receptor == founder.receptor
    assert replica.parent is founder
    assert replica.founder is founder
    assert replica.generation == 1
    assert replica.gc_cycle == 1
    assert replica.mutation_count == 0
    assert not replica.is_founder()


def test_mutation_count_tracks_receptor_changes(make_models):
    lineage = Lineage(make_models(receptor_length=4, mutation_death_prob=0.0, mutation_silent_prob=0.0))
    founder = lineage.germline(BitString.parse('0000'))
    daughter = founder.mutate(3)
    assert daughter.gc_cycle == 3
    assert daughter.mutation_count == 1
    assert founder.receptor.distance(daughter.receptor) == 1

    silent = Lineage(make_models(receptor_length=4, mutation_death_prob=0.0, mutation_silent_prob=1.0))
    founder = silent.germline(BitString.parse('0000'))
    assert founder.mutate(1).mutation_count == 0


def test_lethal_mutation(make_models):
    lineage = Lineage(make_models(receptor_length=4, mutation_death_prob=1.0, mutation_silent_prob=0.0))
    founder = lineage.germline(BitString.parse('0000'))
    assert founder.mutate(1) is None
    assert founder.divide() == []


def test_division_count_is_assigned_once(lineage):
    cell = lineage.germline()
    assert isinstance(cell.division_count, Unassigned)
    assert cell.get_division_count() == 1
    cell.set_division_count(3)
    assert cell.division_count == Assigned(3)
    assert cell.get_division_count() == 3
    with pytest.raises(RuntimeError):
        cell.set_division_count(2)
    assert cell.get_division_count() == 3


def test_division_count_states():
    assert Unassigned().count == 1
    assert Unassigned() == Unassigned()
    with pytest.raises(TypeError):
        Unassigned(count=7)
    assert Unassigned().assign(0) == Assigned(0)
    with pytest.raises(RuntimeError):
        Assigned(2).assign(3)
    with pytest.raises(ValueError):
        Assigned(-1)


def test_divide_once_statistics(make_models):
    models = make_models(receptor_length=20, mutation_death_prob=0.3, mutation_silent_prob=0.5)
    receptor = BitString.parse('0' * 20)
    n_trials = 50000
    daughter_count = 0
    silent_count = 0
    for _ in range(n_trials):
        parent = Lineage(models).germline(receptor)
        for daughter in parent.divide():
            daughter_count += 1
            silent_count += daughter.receptor == receptor
    assert daughter_count / n_trials == pytest.approx(2 * 0.7, abs=0.01)
    assert silent_count / n_trials == pytest.approx(2 * 0.5, abs=0.01)


def test_divide_rounds(make_models):
    models = make_models(receptor_length=20, mutation_death_prob=0.3, mutation_silent_prob=0.5)
    n_trials = 20000
    division_count = 4
    round_totals = np.zeros(division_count)
    for _ in range(n_trials):
        parent = Lineage(models).germline()
        parent.set_division_count(division_count)
        rounds = parent.divide_rounds()
        assert len(rounds) == division_count
        round_totals += [len(daughters) for daughters in rounds]
    expected = (2 * 0.7) ** np.arange(1, division_count + 1)
    np.testing.assert_allclose(round_totals / n_trials, expected, rtol=0.05)


def test_divide_flattens_rounds_and_sets_cycle(make_models):
    lineage = Lineage(make_models(receptor_length=8, mutation_death_prob=0.0, mutation_silent_prob=0.0))
    parent = lineage.germline()
    parent.set_division_count(2)
    daughters = parent.divide()
    assert len(daughters) == 6
    assert all(daughter.gc_cycle == 1 for daughter in daughters)
    assert [daughter.generation for daughter in daughters] == [1, 1, 2, 2, 2, 2]
    assert all(daughter.founder is parent for daughter in daughters)


def test_zero_division_count(lineage):
    cell = lineage.germline()
    cell.set_division_count(0)
    assert cell.divide() == []


def test_trace_lineage(make_models):
    lineage = Lineage(make_models(receptor_length=8, mutation_death_prob=0.0))
    founder = lineage.germline()
    d1 = founder.replicate()
    d2 = d1.mutate(2)
    d3 = d2.mutate(3)
    assert d3.trace_lineage() == [founder, d1, d2, d3]
    assert d3.trace_lineage(2) == [d2, d3]
    assert founder.trace_lineage() == [founder]
    with pytest.raises(ValueError):
        d3.trace_lineage(-1)


def test_bind(make_models, antigens, epitopes):
    lineage = Lineage(make_models(receptor_length=4, match_gain=1.0, act_energy=0.0))
    pool = AntigenPool({antigens['AG1']: 2.0, antigens['AG2']: 1.0})
    cell = lineage.germline(BitString.parse('0000'))
    cell.bind(pool, [antigens['AG1'], antigens['AG2'], antigens['AG1']])

    events = cell.view_binding_events()
    assert len(events) == 3
    assert events[0] == BindingEvent(antigens['AG1'], epitopes['E1'], 0.0, 2.0)
    assert events[1].affinity == pytest.approx(-4.0)
    assert cell.max_affinity == pytest.approx(0.0)
    assert cell.antigen_qty == pytest.approx(4.0 + np.exp(-4.0))
    assert cell.count_total_epitopes_encountered() == 3
    assert cell.count_unique_epitopes_encountered() == 2
    assert cell.antigen_footprint() == set()
    assert lineage.statistics.view_quantities(0) == (cell.antigen_qty,)


def test_bind_nothing(lineage, pool):
    cell = lineage.germline()
    cell.bind(pool, [])
    assert cell.view_binding_events() == ()
    assert cell.max_affinity == float('-inf')
    assert cell.antigen_qty == 0.0


def test_bind_whole_pool(lineage, pool):
    cell = lineage.germline()
    cell.bind(pool)
    assert cell.count_total_epitopes_encountered() == 3


def test_revisits_and_footprint(make_models, antigens, epitopes):
    lineage = Lineage(make_models(receptor_length=4, mutation_death_prob=0.0))
    pool = AntigenPool({antigens['AG1']: 1.0, antigens['AG2']: 1.0})
    founder = lineage.germline(BitString.parse('0000'))
    replica = founder.replicate()
    replica.bind(pool, [antigens['AG1']])
    daughter = replica.mutate(2)
    daughter.bind(pool, [antigens['AG1'], antigens['AG2']])
    assert daughter.unique_epitopes_revisited() == {epitopes['E1']}
    assert daughter.antigen_footprint() == {antigens['AG1'], antigens['AG2']}
    assert daughter.epitope_footprint() == {epitopes['E1'], epitopes['E2']}
    assert daughter.mean_lineage_unique_encounters() == pytest.approx(1.5)
    assert founder.unique_epitopes_revisited() == set()


def test_sort_keys(lineage, pool, antigens):
    weak = lineage.germline(BitString.parse('1111'))
    strong = lineage.germline(BitString.parse('0000'))
    idle = lineage.germline(BitString.parse('0000'))
    weak.bind(pool, [antigens['AG1']])
    strong.bind(pool, [antigens['AG1']])
    cells = [strong, idle, weak]
    assert sorted(cells, key=MAX_AFFINITY_KEY) == [idle, weak, strong]
    assert sorted(cells, key=ANTIGEN_QTY_KEY) == [idle, weak, strong]


def test_equality_by_index(lineage):
    cell = lineage.germline()
    other = lineage.germline(cell.receptor)
    assert cell == lineage[cell.index]
    assert cell != other
    assert len({cell, lineage[cell.index], other}) == 2


def test_clonal_diversity(lineage):
    first = lineage.germline()
    second = lineage.germline()
    cells = [first.replicate(), first.replicate(), second.replicate(), second.replicate()]
    diversity = ClonalDiversity.compute(cells)
    assert diversity.count == 2
    assert diversity.entropy == pytest.approx(np.log(2.0))
    assert ClonalDiversity.compute(cells[:2]).entropy == pytest.approx(0.0)
    assert ClonalDiversity.compute([]) == ClonalDiversity(0, 0.0)


def test_distances(make_models):
    lineage = Lineage(make_models(receptor_length=6, mutation_death_prob=0.0, mutation_silent_prob=0.0))
    founder = lineage.germline(BitString.parse('000000'))
    cell = founder.mutate(1).mutate(2).mutate(3)
    assert 1 <= cell.founder_distance() <= 3
    assert cell.founder_distance() % 2 == 1
    assert cell.mutational_distance(cell) == 0
    assert cell.mutation_count == 3


def test_binding_statistics(make_models, pool, antigens):
    lineage = Lineage(make_models(receptor_length=4, act_energy=0.0))
    founder = lineage.germline(BitString.parse('0000'))
    replica = founder.replicate()
    replica.bind(pool, [antigens['AG1'], antigens['AG2']])
    idle = founder.replicate()
    idle.bind(pool, [])
    statistics = lineage.statistics
    assert statistics.view_affinities(1) == (pytest.approx(-2.0),)
    assert len(statistics.view_quantities(1)) == 2
    assert statistics.total_encounters[1] == {2: 1, 0: 1}
    assert statistics.view_affinities() == statistics.view_affinities(1)
