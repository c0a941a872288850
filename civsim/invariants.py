"""Structural consistency checks for a game state."""
from __future__ import annotations
import logging
from .errors import StateCorruptionError
from .types import CivGameState, TurnPhase

logger = logging.getLogger(__name__)


def find_invariant_violations(state: CivGameState, expect_idle: bool = True) -> list[str]:
    problems: list[str] = []

    for civ_id, civ in state.civilizations.items():
        for uid in civ.units:
            unit = state.units.get(uid)
            if unit is None:
                problems.append(f"{civ_id} lists missing unit {uid}")
            elif unit.owner_id != civ_id:
                problems.append(f"{civ_id} lists unit {uid} owned by {unit.owner_id}")
        for cid in civ.cities:
            city = state.cities.get(cid)
            if city is None:
                problems.append(f"{civ_id} lists missing city {cid}")
            elif city.owner_id != civ_id:
                problems.append(f"{civ_id} lists city {cid} owned by {city.owner_id}")

    for uid, unit in state.units.items():
        if unit.owner_id not in state.civilizations:
            problems.append(f"unit {uid} owned by unknown civ {unit.owner_id}")
        elif uid not in state.civilizations[unit.owner_id].units:
            problems.append(f"unit {uid} missing from {unit.owner_id}'s roster")
        tile = state.tile(unit.x, unit.y)
        if tile is None:
            problems.append(f"unit {uid} is off the map at ({unit.x}, {unit.y})")
        elif tile.unit_id != uid:
            problems.append(f"unit {uid} not on its tile ({unit.x}, {unit.y})")

    for cid, city in state.cities.items():
        if city.owner_id not in state.civilizations:
            problems.append(f"city {cid} owned by unknown civ {city.owner_id}")
        elif cid not in state.civilizations[city.owner_id].cities:
            problems.append(f"city {cid} missing from {city.owner_id}'s roster")

    if len(set(state.turn_order)) != len(state.turn_order):
        problems.append(f"turn order repeats a civ: {state.turn_order}")

    if len(state.grid) != state.grid_size:
        problems.append(f"grid has {len(state.grid)} rows, expected {state.grid_size}")
    for y, row in enumerate(state.grid):
        for x, tile in enumerate(row):
            if tile.unit_id is not None:
                unit = state.units.get(tile.unit_id)
                if unit is None:
                    problems.append(f"tile ({x}, {y}) points at missing unit {tile.unit_id}")
                elif (unit.x, unit.y) != (x, y):
                    problems.append(f"tile ({x}, {y}) points at unit {unit.id} standing elsewhere")
            if tile.city_id is not None:
                city = state.cities.get(tile.city_id)
                if city is None:
                    problems.append(f"tile ({x}, {y}) points at missing city {tile.city_id}")
                elif (city.x, city.y) != (x, y):
                    problems.append(f"tile ({x}, {y}) points at city {city.id} standing elsewhere")

    for cid in state.turn_order:
        if cid not in state.civilizations:
            problems.append(f"turn order names unknown civ {cid}")
    if state.winner is not None and state.winner not in state.civilizations:
        problems.append(f"winner {state.winner} is not a civilization")
    if expect_idle and state.phase != TurnPhase.IDLE:
        problems.append(f"phase is {state.phase.value}, expected idle")

    return problems


def check_invariants(state: CivGameState, expect_idle: bool = True) -> None:
    """Raise StateCorruptionError if the state is structurally inconsistent."""
    problems = find_invariant_violations(state, expect_idle)
    if problems:
        logger.error("Game %s failed %d invariant check(s): %s", state.id, len(problems), problems[0])
        raise StateCorruptionError(problems)
