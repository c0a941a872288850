"""Tests for the starting layout."""
import pytest

from civsim.invariants import find_invariant_violations
from civsim.ruleset import CIVS
from civsim.scenario import create_initial_state
from civsim.types import RelationshipStatus


def test_same_seed_same_world():
    assert create_initial_state(7).to_dict() == create_initial_state(7).to_dict()


def test_different_seed_different_terrain():
    a = create_initial_state(1)
    b = create_initial_state(2)
    assert [t.terrain for row in a.grid for t in row] != [t.terrain for row in b.grid for t in row]


def test_every_civ_starts_ready():
    state = create_initial_state(3)
    assert state.turn == 1
    assert state.turn_order == list(CIVS)
    assert find_invariant_violations(state) == []
    for cid, civ in state.civilizations.items():
        assert len(civ.cities) == 1
        capital = state.cities[civ.cities[0]]
        assert capital.name == CIVS[cid].city_names[0]
        assert "palace" in capital.buildings
        assert sorted(u.type for u in state.civ_units(cid)) == sorted(CIVS[cid].start_units)
        assert f"{capital.x},{capital.y}" in civ.known_tiles
        assert set(civ.relationships.values()) == {RelationshipStatus.NEUTRAL}
        assert len(civ.relationships) == len(CIVS) - 1


def test_small_map_and_subset_of_civs():
    state = create_initial_state(5, grid_size=12, max_turns=6, civ_ids=["egypt", "rome"])
    assert state.grid_size == 12
    assert len(state.grid) == 12 and all(len(row) == 12 for row in state.grid)
    assert state.max_turns == 6
    assert state.turn_order == ["egypt", "rome"]
    assert find_invariant_violations(state) == []


def test_wonders():
    state = create_initial_state(11)
    assert len(state.natural_wonders) <= 3
    for wid, wonder in state.natural_wonders.items():
        assert state.grid[wonder.y][wonder.x].natural_wonder_id == wid


def test_ids_are_per_state():
    a = create_initial_state(4)
    b = create_initial_state(4)
    assert sorted(a.units) == sorted(b.units)
    assert "u1" in a.units and "c1" in a.cities


def test_unknown_civ():
    with pytest.raises(ValueError):
        create_initial_state(1, civ_ids=["atlantis"])


def test_duplicate_civ():
    with pytest.raises(ValueError):
        create_initial_state(1, grid_size=12, civ_ids=["rome", "rome", "egypt"])
