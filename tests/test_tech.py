"""Tests for research selection and progress."""
from builders import add_city, make_state
from civsim.tech import available_techs, calculate_science, can_research, process_research, set_research
from civsim.types import ResearchProgress, TurnEventType


def test_prerequisites():
    state = make_state(civs=("rome",))
    rome = state.civilizations["rome"]
    assert can_research(rome, "pottery")
    assert not can_research(rome, "writing")
    rome.researched_techs.append("pottery")
    assert can_research(rome, "writing")
    assert not can_research(rome, "pottery")


def test_available_cheapest_first():
    state = make_state(civs=("rome",))
    assert available_techs(state.civilizations["rome"])[0] == "pottery"


def test_switching_keeps_most_progress():
    state = make_state(civs=("rome",))
    rome = state.civilizations["rome"]
    rome.current_research = ResearchProgress(tech_id="pottery", progress=10, cost=20)
    assert set_research(rome, "masonry")
    assert rome.current_research == ResearchProgress(tech_id="masonry", progress=9, cost=25)


def test_science_has_a_floor():
    state = make_state(civs=("rome",))
    assert calculate_science(state, "rome") == 1


def test_science_from_cities_and_bonus():
    state = make_state(civs=("egypt",))
    city = add_city(state, "egypt", 2, 2)
    city.population = 4
    city.science_per_turn = 2
    # 2 from the library-style yield, 2 from population, 1 civ bonus
    assert calculate_science(state, "egypt") == 5


def test_completion_announces_unlocks():
    state = make_state(civs=("rome",))
    add_city(state, "rome", 2, 2)
    rome = state.civilizations["rome"]
    rome.current_research = ResearchProgress(tech_id="bronze_working", progress=24, cost=25)

    events = process_research(state, "rome")

    assert events == ["Rome discovered Bronze Working!", "  Unlocked units: Swordsman"]
    assert state.turn_events[-1].type == TurnEventType.RESEARCH_COMPLETED
    assert state.notifications[-1].message == "Rome discovered Bronze Working!"
    assert state.camera_events[-1].type == "tech_complete"
    assert rome.current_research.tech_id == "pottery"


def test_picks_research_when_idle():
    state = make_state(civs=("rome",))
    rome = state.civilizations["rome"]
    process_research(state, "rome")
    assert rome.current_research.tech_id == "pottery"
    assert rome.current_research.progress == 1
