"""Tests for state consistency checks."""
import pytest

from builders import add_city, add_unit, three_civ_state
from civsim.errors import StateCorruptionError
from civsim.invariants import check_invariants, find_invariant_violations
from civsim.types import TurnPhase


def test_clean_state():
    state = three_civ_state()
    assert find_invariant_violations(state) == []
    check_invariants(state)


def test_dangling_roster_entries():
    state = three_civ_state()
    state.civilizations["egypt"].cities.append("c99")
    state.civilizations["egypt"].units.append("u99")
    problems = find_invariant_violations(state)
    assert "egypt lists missing city c99" in problems
    assert "egypt lists missing unit u99" in problems


def test_unit_off_its_tile():
    state = three_civ_state()
    unit = add_unit(state, "rome", "warrior", 4, 4)
    unit.x = 5
    problems = find_invariant_violations(state)
    assert any(unit.id in p for p in problems)


def test_tile_points_at_missing_city():
    state = three_civ_state()
    state.grid[6][6].city_id = "c99"
    assert find_invariant_violations(state) == ["tile (6, 6) points at missing city c99"]


def test_wrong_owner():
    state = three_civ_state()
    city = add_city(state, "rome", 6, 6)
    city.owner_id = "egypt"
    assert any("owned by egypt" in p for p in find_invariant_violations(state))


def test_unknown_winner():
    state = three_civ_state()
    state.winner = "atlantis"
    with pytest.raises(StateCorruptionError) as exc:
        check_invariants(state)
    assert exc.value.violations == ["winner atlantis is not a civilization"]


def test_mid_turn_phase():
    state = three_civ_state()
    state.phase = TurnPhase.PLANNING
    assert find_invariant_violations(state) == ["phase is planning, expected idle"]
    assert find_invariant_violations(state, expect_idle=False) == []


def test_entities_missing_from_owner_roster():
    state = three_civ_state()
    state.civilizations["rome"].cities.remove("c1")
    state.civilizations["egypt"].units.remove("u2")
    problems = find_invariant_violations(state)
    assert "city c1 missing from rome's roster" in problems
    assert "unit u2 missing from egypt's roster" in problems


def test_repeated_turn_order():
    state = three_civ_state()
    state.turn_order.append("rome")
    assert any("repeats" in p for p in find_invariant_violations(state))
