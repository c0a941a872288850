"""Grid pathfinding with terrain costs, roads and zones of control."""
from __future__ import annotations
import heapq
import math
from typing import Optional
from .ruleset import ROAD_MOVE_COST, get_unit, move_cost
from .types import CivGameState

DIRECTIONS = [(0, -1), (1, 0), (0, 1), (-1, 0)]

Point = tuple[int, int]


def tile_move_cost(state: CivGameState, x: int, y: int) -> float:
    tile = state.grid[y][x]
    cost = move_cost(tile.terrain)
    if cost != math.inf and tile.improvement == "road":
        return ROAD_MOVE_COST
    return cost


def exerts_zoc(unit_type: str) -> bool:
    u = get_unit(unit_type)
    return bool(u and u.is_military)


def in_enemy_zoc(state: CivGameState, x: int, y: int, civ_id: str) -> bool:
    """True if a foreign military unit stands orthogonally adjacent to (x, y)."""
    for dx, dy in DIRECTIONS:
        tile = state.tile(x + dx, y + dy)
        if not tile or not tile.unit_id:
            continue
        unit = state.units.get(tile.unit_id)
        if unit and unit.owner_id != civ_id and exerts_zoc(unit.type):
            return True
    return False


def _blocked(state: CivGameState, x: int, y: int, civ_id: Optional[str]) -> bool:
    tile = state.grid[y][x]
    if not tile.unit_id or civ_id is None:
        return False
    unit = state.units.get(tile.unit_id)
    return unit is not None and unit.owner_id != civ_id


def find_path(state: CivGameState, start: Point, end: Point, max_movement: float,
              civ_id: Optional[str] = None) -> list[Point] | None:
    """A* from start to end within max_movement. Returns the tile list or None.

    Entering a tile in an enemy zone of control ends movement there; tiles held
    by foreign units cannot be entered at all.
    """
    ex, ey = end
    if not state.in_bounds(ex, ey):
        return None
    if start == end:
        return [start]
    if tile_move_cost(state, ex, ey) == math.inf:
        return None

    def h(p: Point) -> int:
        return abs(p[0] - ex) + abs(p[1] - ey)

    best: dict[Point, float] = {start: 0}
    parent: dict[Point, Point] = {}
    stopped: set[Point] = set()
    counter = 0
    open_heap: list[tuple[float, int, Point]] = [(h(start), counter, start)]

    while open_heap:
        _, _, current = heapq.heappop(open_heap)
        if current == end:
            path = [current]
            while current in parent:
                current = parent[current]
                path.append(current)
            return path[::-1]
        if current in stopped:
            continue
        g = best[current]
        for dx, dy in DIRECTIONS:
            nx, ny = current[0] + dx, current[1] + dy
            if not state.in_bounds(nx, ny):
                continue
            step = tile_move_cost(state, nx, ny)
            if step == math.inf or _blocked(state, nx, ny, civ_id):
                continue
            ng = g + step
            if ng > max_movement:
                continue
            nxt = (nx, ny)
            if ng >= best.get(nxt, math.inf):
                continue
            best[nxt] = ng
            parent[nxt] = current
            if civ_id is not None and in_enemy_zoc(state, nx, ny, civ_id):
                stopped.add(nxt)
            else:
                stopped.discard(nxt)
            counter += 1
            heapq.heappush(open_heap, (ng + h(nxt), counter, nxt))
    return None


def path_cost(state: CivGameState, path: list[Point]) -> float:
    return sum(tile_move_cost(state, x, y) for x, y in path[1:])
