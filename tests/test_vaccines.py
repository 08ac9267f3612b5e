import pytest

from gcmature.vaccines import VaccinationEvent, VaccinationSchedule, Vaccine


def test_vaccine_sorted_and_validated(antigens):
    vaccine = Vaccine(((antigens['AG2'], 2.0), (antigens['AG1'], 1.0)))
    assert [antigen.key for antigen, _ in vaccine.components] == ['AG1', 'AG2']
    assert vaccine.count_components() == 2
    assert vaccine.antigens == frozenset([antigens['AG1'], antigens['AG2']])
    with pytest.raises(ValueError):
        Vaccine(())
    with pytest.raises(ValueError):
        Vaccine(((antigens['AG1'], 1.0), (antigens['AG1'], 2.0)))
    with pytest.raises(ValueError):
        Vaccine(((antigens['AG1'], -1.0),))


def test_vaccine_parse(antigens):
    vaccine = Vaccine.parse('AG3, 3.0; AG1, 1.5', antigens)
    assert vaccine.components == ((antigens['AG1'], 1.5), (antigens['AG3'], 3.0))
    assert vaccine.format() == 'AG1, 1.5; AG3, 3'

    shorthand = Vaccine.parse('AG1, AG2; 4.0', antigens)
    assert shorthand.components == ((antigens['AG1'], 4.0), (antigens['AG2'], 4.0))

    with pytest.raises(ValueError):
        Vaccine.parse('AG1 1.0', antigens)
    with pytest.raises(ValueError):
        Vaccine.parse('AG9, 1.0', antigens)


def test_event_parse(antigens):
    event = VaccinationEvent.parse('12: AG2, 0.5  # boost', antigens)
    assert event.in_cycle == 12
    assert event.vaccine.components == ((antigens['AG2'], 0.5),)
    assert event.format() == '12: AG2, 0.5'
    with pytest.raises(ValueError):
        VaccinationEvent.parse('x: AG2, 0.5', antigens)
    with pytest.raises(ValueError):
        VaccinationEvent.parse('-1: AG2, 0.5', antigens)


def test_schedule_lookup(antigens):
    schedule = VaccinationSchedule.parse(
        ['# prime', '0: AG1, 1.0', '', '10: AG2, 2.0', '5: AG3, 1.0'], antigens
    )
    assert schedule.count_events() == 3
    assert [event.in_cycle for event in schedule.view_events()] == [0, 5, 10]
    assert schedule.contains_event(5)
    assert not schedule.contains_event(6)
    assert schedule.event_on(6) is None
    assert schedule.latest_event(7).in_cycle == 5
    assert schedule.latest_event(10).in_cycle == 10
    with pytest.raises(ValueError):
        schedule.latest_event(-1)


def test_schedule_without_cycle_zero(antigens):
    schedule = VaccinationSchedule.parse(['3: AG1, 1.0'], antigens)
    assert schedule.latest_event(2) is None


def test_schedule_validation(antigens):
    with pytest.raises(ValueError):
        VaccinationSchedule([])
    with pytest.raises(ValueError):
        VaccinationSchedule.parse(['0: AG1, 1.0', '0: AG2, 1.0'], antigens)


def test_shortcut(antigens):
    schedule = VaccinationSchedule.shortcut(antigens.values(), 3.0)
    event = schedule.event_on(0)
    assert event.vaccine.components == tuple((antigen, 1.0) for antigen in antigens.values())
    with pytest.raises(ValueError):
        VaccinationSchedule.shortcut([], 1.0)
    with pytest.raises(ValueError):
        VaccinationSchedule.shortcut(antigens.values(), 0.0)


def test_footprints(antigens, epitopes):
    schedule = VaccinationSchedule.parse(['0: AG1, 1.0', '4: AG1, AG2; 2.0'], antigens)
    assert schedule.antigen_footprint(3) == frozenset([antigens['AG1']])
    assert schedule.antigen_footprint(4) == frozenset([antigens['AG1'], antigens['AG2']])
    assert schedule.epitope_footprint(4) == frozenset([epitopes['E1'], epitopes['E2']])
    assert len(schedule.vaccine_footprint(10)) == 2
    pool = schedule.antigen_pool_footprint(4)
    assert pool.get_concentration(antigens['AG1']) == pytest.approx(3.0)
    assert pool.get_concentration(antigens['AG2']) == pytest.approx(2.0)
