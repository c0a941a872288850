"""Starting layout for a new game: terrain, capitals, start units, wonders."""
from __future__ import annotations
import random
from typing import Optional
from .ruleset import CIVS, NATURAL_WONDERS, get_civ, is_land
from .simulation import find_spawn_tile, spawn_unit
from .types import (
    City, CivGameState, Civilization, NaturalWonder, RelationshipStatus, Tile,
)

REFERENCE_SIZE = 30
START_CLEARING = 2
MAX_WONDERS = 3
VISION_RADIUS = 3

# weights for the random terrain scatter
TERRAIN_WEIGHTS = [
    ("plains", 45), ("forest", 18), ("hills", 12), ("desert", 10),
    ("water", 10), ("mountain", 5),
]


def _scatter_terrain(rng: random.Random, size: int) -> list[list[Tile]]:
    kinds = [t for t, _ in TERRAIN_WEIGHTS]
    weights = [w for _, w in TERRAIN_WEIGHTS]
    return [
        [Tile(x=x, y=y, terrain=rng.choices(kinds, weights)[0]) for x in range(size)]
        for y in range(size)
    ]


def _start_position(civ_id: str, size: int) -> tuple[int, int]:
    sx, sy = CIVS[civ_id].start_position
    scale = size / REFERENCE_SIZE
    return (min(size - 1, round(sx * scale)), min(size - 1, round(sy * scale)))


def _place_wonders(rng: random.Random, state: CivGameState) -> None:
    wonder_ids = list(NATURAL_WONDERS)
    rng.shuffle(wonder_ids)
    for wid in wonder_ids[:MAX_WONDERS]:
        w = NATURAL_WONDERS[wid]
        spots = [
            t for row in state.grid for t in row
            if t.terrain in w.preferred_terrain and not t.owner_id and not t.natural_wonder_id
        ]
        if not spots:
            continue
        tile = rng.choice(spots)
        tile.natural_wonder_id = wid
        state.natural_wonders[wid] = NaturalWonder(
            id=wid, name=w.name, x=tile.x, y=tile.y, bonuses=dict(w.bonuses),
        )


def create_initial_state(seed: int, grid_size: int = REFERENCE_SIZE, max_turns: int = 20,
                         civ_ids: Optional[list[str]] = None, game_id: Optional[str] = None) -> CivGameState:
    """Build a turn-1 game. Same seed and size, same map."""
    rng = random.Random(seed)
    civ_ids = list(civ_ids or CIVS)
    unknown = [cid for cid in civ_ids if cid not in CIVS]
    if unknown:
        raise ValueError(f"Unknown civilizations: {unknown}")
    if len(set(civ_ids)) != len(civ_ids):
        raise ValueError(f"Duplicate civilizations: {civ_ids}")

    state = CivGameState(
        id=game_id or f"game_{seed}",
        grid=_scatter_terrain(rng, grid_size),
        grid_size=grid_size,
        civilizations={},
        max_turns=max_turns,
        turn_order=civ_ids,
    )

    clearing = max(1, round(START_CLEARING * grid_size / REFERENCE_SIZE))
    for civ_id in civ_ids:
        cx, cy = _start_position(civ_id, grid_size)
        for dy in range(-clearing, clearing + 1):
            for dx in range(-clearing, clearing + 1):
                tile = state.tile(cx + dx, cy + dy)
                if tile and not is_land(tile.terrain):
                    tile.terrain = "plains"

    for civ_id in civ_ids:
        civ_def = get_civ(civ_id)
        civ = Civilization(
            id=civ_id, name=civ_def.name, leader_name=civ_def.leader,
            personality=civ_def.personality, gold=10,
            relationships={o: RelationshipStatus.NEUTRAL for o in civ_ids if o != civ_id},
        )
        state.civilizations[civ_id] = civ

        cx, cy = _start_position(civ_id, grid_size)
        city = City(id=state.next_id("c"), name=civ_def.city_names[0], owner_id=civ_id,
                    x=cx, y=cy, buildings=["palace"], gold_per_turn=4, culture_per_turn=2)
        state.cities[city.id] = city
        civ.cities.append(city.id)
        state.grid[cy][cx].city_id = city.id
        for dy in range(-1, 2):
            for dx in range(-1, 2):
                tile = state.tile(cx + dx, cy + dy)
                if tile and abs(dx) + abs(dy) <= city.border_radius:
                    tile.owner_id = civ_id

        for unit_type in civ_def.start_units:
            spot = find_spawn_tile(state, cx, cy)
            if spot is None:
                break
            spawn_unit(state, civ_id, unit_type, *spot)

        for dy in range(-VISION_RADIUS, VISION_RADIUS + 1):
            for dx in range(-VISION_RADIUS, VISION_RADIUS + 1):
                if state.in_bounds(cx + dx, cy + dy):
                    civ.known_tiles.add(f"{cx + dx},{cy + dy}")

    _place_wonders(rng, state)
    return state


