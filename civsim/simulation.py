"""Action validation/execution and end-of-turn processing."""
from __future__ import annotations
import logging
from typing import Callable
from .combat import resolve_city_attack, resolve_combat
from .events import add_camera_event, add_notification, add_turn_event
from .pathfinding import find_path, in_enemy_zoc, path_cost
from .ruleset import (
    BUILDINGS, UNITS, get_building, get_civ, get_improvement, get_natural_wonder,
    get_unit, is_land,
)
from .tech import can_research, process_research, set_research
from .types import (
    Action, Attack, Build, BuildImprovement, City, CivGameState, Civilization,
    CombatEffect, Fortify, FoundCity, MoveUnit,
    NotificationType, Production, RelationshipStatus, SetResearch, TurnEventType,
    Unit, UpgradeUnit, VictoryType,
)

logger = logging.getLogger(__name__)

BASE_HAPPINESS = 5
FREE_UNITS = 2
MAX_BORDER_RADIUS = 3
MIN_CITY_DISTANCE = 3
CITY_DEFENSE_REGEN = 2


def _distance(ax: int, ay: int, bx: int, by: int) -> int:
    return abs(ax - bx) + abs(ay - by)


def _owned_unit(state: CivGameState, unit_id: str, civ_id: str) -> Unit | None:
    unit = state.units.get(unit_id)
    if unit is None or unit.owner_id != civ_id:
        return None
    return unit


# ── Validation ───────────────────────────────────────────────────────────────

def _valid_move(state: CivGameState, a: MoveUnit, civ_id: str) -> bool:
    unit = _owned_unit(state, a.unit_id, civ_id)
    if not unit or unit.movement_left <= 0:
        return False
    tile = state.tile(a.target_x, a.target_y)
    if tile is None or tile.unit_id is not None:
        return False
    # foreign cities change hands through attack only
    if tile.city_id is not None and state.cities[tile.city_id].owner_id != civ_id:
        return False
    path = find_path(state, (unit.x, unit.y), (a.target_x, a.target_y), unit.movement_left, civ_id)
    return path is not None and len(path) >= 2


def _valid_attack(state: CivGameState, a: Attack, civ_id: str) -> bool:
    attacker = _owned_unit(state, a.unit_id, civ_id)
    if not attacker or attacker.attack <= 0 or attacker.movement_left <= 0:
        return False
    reach = attacker.range or 1
    target = state.units.get(a.target_id)
    if target is not None:
        if target.owner_id == civ_id:
            return False
        return 1 <= _distance(attacker.x, attacker.y, target.x, target.y) <= reach
    city = state.cities.get(a.target_id)
    if city is None or city.owner_id == civ_id:
        return False
    # the garrison has to be beaten before the walls
    garrison = state.units.get(state.grid[city.y][city.x].unit_id or "")
    if garrison is not None and garrison.owner_id == city.owner_id:
        return False
    return 1 <= _distance(attacker.x, attacker.y, city.x, city.y) <= reach


def _valid_found_city(state: CivGameState, a: FoundCity, civ_id: str) -> bool:
    settler = _owned_unit(state, a.settler_id, civ_id)
    if not settler or settler.type != "settler":
        return False
    tile = state.tile(settler.x, settler.y)
    if tile is None or not is_land(tile.terrain) or tile.city_id:
        return False
    if tile.owner_id not in (None, civ_id):
        return False
    return all(
        max(abs(c.x - settler.x), abs(c.y - settler.y)) >= MIN_CITY_DISTANCE
        for c in state.cities.values()
    )


def _valid_build(state: CivGameState, a: Build, civ_id: str) -> bool:
    city = state.cities.get(a.city_id)
    if not city or city.owner_id != civ_id or city.current_production:
        return False
    researched = state.civilizations[civ_id].researched_techs
    if a.target_type == "building":
        b = get_building(a.target)
        if not b or b.is_capital or a.target in city.buildings:
            return False
        return not b.tech_req or b.tech_req in researched
    if a.target_type == "unit":
        u = get_unit(a.target)
        return bool(u) and (not u.tech_req or u.tech_req in researched)
    return False


def _valid_build_improvement(state: CivGameState, a: BuildImprovement, civ_id: str) -> bool:
    worker = _owned_unit(state, a.worker_id, civ_id)
    if not worker or worker.type != "worker" or worker.movement_left <= 0:
        return False
    imp = get_improvement(a.improvement)
    tile = state.tile(worker.x, worker.y)
    if not imp or tile is None or tile.owner_id != civ_id or tile.city_id:
        return False
    if tile.terrain not in imp.valid_terrain:
        return False
    return tile.improvement != a.improvement and tile.pending_improvement is None


def _valid_set_research(state: CivGameState, a: SetResearch, civ_id: str) -> bool:
    civ = state.civilizations[civ_id]
    if civ.current_research and civ.current_research.tech_id == a.tech_id:
        return False
    return can_research(civ, a.tech_id)


def _valid_fortify(state: CivGameState, a: Fortify, civ_id: str) -> bool:
    unit = _owned_unit(state, a.unit_id, civ_id)
    if not unit or unit.fortified:
        return False
    u = get_unit(unit.type)
    return bool(u and u.is_military)


def _valid_upgrade(state: CivGameState, a: UpgradeUnit, civ_id: str) -> bool:
    unit = _owned_unit(state, a.unit_id, civ_id)
    if not unit:
        return False
    u = get_unit(unit.type)
    if not u or not u.upgrades_to or u.upgrade_cost is None:
        return False
    civ = state.civilizations[civ_id]
    new = UNITS[u.upgrades_to]
    if new.tech_req and new.tech_req not in civ.researched_techs:
        return False
    return civ.gold >= u.upgrade_cost


_VALIDATORS: dict[str, Callable[[CivGameState, Action, str], bool]] = {
    MoveUnit.type: _valid_move,
    Attack.type: _valid_attack,
    FoundCity.type: _valid_found_city,
    Build.type: _valid_build,
    BuildImprovement.type: _valid_build_improvement,
    SetResearch.type: _valid_set_research,
    Fortify.type: _valid_fortify,
    UpgradeUnit.type: _valid_upgrade,
}


def validate_action(state: CivGameState, action: Action, civ_id: str) -> bool:
    """True if civ_id may take action now. Never raises."""
    civ = state.civilizations.get(civ_id)
    if civ is None or not civ.is_alive:
        return False
    validator = _VALIDATORS.get(getattr(action, "type", None))
    if validator is None:
        return False
    try:
        return validator(state, action, civ_id)
    except (TypeError, ValueError, KeyError, IndexError, AttributeError) as e:
        # agent-supplied fields of the wrong shape
        logger.debug("Rejected malformed %s from %s: %s", action, civ_id, e)
        return False


# ── Execution ────────────────────────────────────────────────────────────────

def _reveal(state: CivGameState, civ: Civilization, x: int, y: int, radius: int) -> None:
    for dy in range(-radius, radius + 1):
        for dx in range(-radius, radius + 1):
            if state.in_bounds(x + dx, y + dy):
                civ.known_tiles.add(f"{x + dx},{y + dy}")


def _claim_territory(state: CivGameState, city: City) -> None:
    r = city.border_radius
    for dy in range(-r, r + 1):
        for dx in range(-r, r + 1):
            if abs(dx) + abs(dy) > r:
                continue
            tile = state.tile(city.x + dx, city.y + dy)
            if tile and tile.owner_id is None:
                tile.owner_id = city.owner_id


def remove_unit(state: CivGameState, unit_id: str) -> Unit | None:
    """Drop a unit from the root map, its owner's roster and the grid."""
    unit = state.units.pop(unit_id, None)
    if unit is None:
        return None
    tile = state.tile(unit.x, unit.y)
    if tile and tile.unit_id == unit_id:
        tile.unit_id = None
    owner = state.civilizations.get(unit.owner_id)
    if owner and unit_id in owner.units:
        owner.units.remove(unit_id)
    return unit


def _declare_war(state: CivGameState, a: str, b: str) -> None:
    state.civilizations[a].relationships[b] = RelationshipStatus.WAR
    state.civilizations[b].relationships[a] = RelationshipStatus.WAR


def _exec_move(state: CivGameState, a: MoveUnit, civ_id: str, seed: int) -> list[str]:
    unit = state.units[a.unit_id]
    path = find_path(state, (unit.x, unit.y), (a.target_x, a.target_y), unit.movement_left, civ_id)
    if not path or len(path) < 2:
        return []
    state.grid[unit.y][unit.x].unit_id = None
    dest_x, dest_y = path[-1]
    cost = path_cost(state, path)
    unit.x, unit.y = dest_x, dest_y
    unit.movement_left = max(0, unit.movement_left - cost)
    if in_enemy_zoc(state, dest_x, dest_y, civ_id):
        unit.movement_left = 0
    unit.fortified = False
    state.grid[dest_y][dest_x].unit_id = unit.id

    u = get_unit(unit.type)
    _reveal(state, state.civilizations[civ_id], dest_x, dest_y, u.vision if u else 2)

    msg = f"{civ_id} moved {unit.type} to ({dest_x}, {dest_y})"
    add_turn_event(state, TurnEventType.MOVE, msg, civ_id)
    return [msg]


def _exec_attack(state: CivGameState, a: Attack, civ_id: str, seed: int) -> list[str]:
    attacker = state.units[a.unit_id]
    attacker.movement_left = 0
    attacker.fortified = False
    civ = state.civilizations[civ_id]
    civ.war_weariness += 1
    if a.target_id in state.units:
        return _attack_unit(state, attacker, state.units[a.target_id], seed)
    return _attack_city(state, attacker, state.cities[a.target_id], seed)


def _attack_unit(state: CivGameState, attacker: Unit, defender: Unit, seed: int) -> list[str]:
    events: list[str] = []
    _declare_war(state, attacker.owner_id, defender.owner_id)
    result = resolve_combat(state, attacker.id, defender.id, seed, ranged=attacker.range is not None)
    if result is None:
        return events
    state.combat_log.append(result)
    state.combat_effects.append(CombatEffect(
        id=state.next_id("fx_"), turn=state.turn,
        attacker_x=attacker.x, attacker_y=attacker.y,
        defender_x=defender.x, defender_y=defender.y,
        damage=result.defender_damage,
        attacker_civ=result.attacker_civ, defender_civ=result.defender_civ,
        defender_destroyed=result.defender_destroyed,
    ))
    msg = (f"{result.attacker_civ} attacked {result.defender_civ}: "
           f"{result.defender_damage} damage dealt, {result.attacker_damage} received")
    events.append(msg)
    add_turn_event(state, TurnEventType.ATTACK, msg, attacker.owner_id)
    add_notification(state, NotificationType.COMBAT, msg, attacker.owner_id, defender.x, defender.y)
    add_camera_event(state, "combat", defender.x, defender.y)

    for destroyed, unit, civ in ((result.defender_destroyed, defender, result.defender_civ),
                                 (result.attacker_destroyed, attacker, result.attacker_civ)):
        if destroyed:
            remove_unit(state, unit.id)
            lost = f"{civ}'s {unit.type} was destroyed"
            events.append(lost)
            add_turn_event(state, TurnEventType.UNIT_DESTROYED, lost, civ)
    return events


def _capture_city(state: CivGameState, city: City, civ_id: str) -> None:
    old = state.civilizations[city.owner_id]
    if city.id in old.cities:
        old.cities.remove(city.id)
    state.civilizations[civ_id].cities.append(city.id)
    for row in state.grid:
        for tile in row:
            if tile.owner_id == city.owner_id and _distance(tile.x, tile.y, city.x, city.y) <= city.border_radius:
                tile.owner_id = civ_id
    city.owner_id = civ_id
    city.current_production = None
    if "palace" in city.buildings:
        city.buildings.remove("palace")
    city.defense = max(1, city.max_defense // 2)


def _attack_city(state: CivGameState, attacker: Unit, city: City, seed: int) -> list[str]:
    events: list[str] = []
    defender_civ = city.owner_id
    _declare_war(state, attacker.owner_id, defender_civ)
    result = resolve_city_attack(state, attacker.id, city.id, seed)
    if result is None:
        return events
    msg = f"{attacker.owner_id} attacked {city.name}: {result.damage} damage dealt, {result.counter_damage} received"
    events.append(msg)
    add_turn_event(state, TurnEventType.ATTACK, msg, attacker.owner_id)
    add_camera_event(state, "combat", city.x, city.y)

    if result.attacker_destroyed:
        remove_unit(state, attacker.id)
        lost = f"{attacker.owner_id}'s {attacker.type} was destroyed"
        events.append(lost)
        add_turn_event(state, TurnEventType.UNIT_DESTROYED, lost, attacker.owner_id)
    if result.captured:
        _capture_city(state, city, attacker.owner_id)
        if state.grid[city.y][city.x].unit_id is None:
            state.grid[attacker.y][attacker.x].unit_id = None
            attacker.x, attacker.y = city.x, city.y
            state.grid[city.y][city.x].unit_id = attacker.id
        taken = f"{attacker.owner_id} captured {city.name} from {defender_civ}"
        events.append(taken)
        add_turn_event(state, TurnEventType.CITY_CAPTURED, taken, attacker.owner_id)
        add_notification(state, NotificationType.CITY, taken, attacker.owner_id, city.x, city.y)
    else:
        city.defense = max(city.defense, 0)
    return events


def _exec_found_city(state: CivGameState, a: FoundCity, civ_id: str, seed: int) -> list[str]:
    settler = state.units[a.settler_id]
    civ = state.civilizations[civ_id]
    name = a.city_name or _next_city_name(state, civ_id)
    city = City(id=state.next_id("c"), name=name, owner_id=civ_id, x=settler.x, y=settler.y)
    state.cities[city.id] = city
    tile = state.grid[city.y][city.x]
    tile.city_id = city.id
    tile.owner_id = civ_id
    _claim_territory(state, city)
    remove_unit(state, settler.id)
    civ.cities.append(city.id)
    _reveal(state, civ, city.x, city.y, 2)

    msg = f"{civ_id} founded {name}"
    add_turn_event(state, TurnEventType.CITY_FOUNDED, msg, civ_id)
    add_notification(state, NotificationType.CITY, msg, civ_id, city.x, city.y)
    add_camera_event(state, "city_founded", city.x, city.y)
    return [msg]


def _next_city_name(state: CivGameState, civ_id: str) -> str:
    civ_def = get_civ(civ_id)
    taken = {c.name for c in state.cities.values()}
    for name in (civ_def.city_names if civ_def else ()):
        if name not in taken:
            return name
    return f"{state.civilizations[civ_id].name} {len(state.civilizations[civ_id].cities) + 1}"


def _exec_build(state: CivGameState, a: Build, civ_id: str, seed: int) -> list[str]:
    city = state.cities[a.city_id]
    if a.target_type == "building":
        cost = BUILDINGS[a.target].cost
    else:
        cost = UNITS[a.target].cost
    city.current_production = Production(kind=a.target_type, target=a.target, progress=0, cost=cost)
    msg = f"{civ_id}'s {city.name} started building {a.target}"
    add_turn_event(state, TurnEventType.BUILD, msg, civ_id)
    return [msg]


def _exec_build_improvement(state: CivGameState, a: BuildImprovement, civ_id: str, seed: int) -> list[str]:
    worker = state.units[a.worker_id]
    tile = state.grid[worker.y][worker.x]
    tile.pending_improvement = a.improvement
    tile.improvement_progress = 0
    worker.movement_left = 0
    msg = f"{civ_id}'s worker began a {a.improvement} at ({tile.x}, {tile.y})"
    add_turn_event(state, TurnEventType.IMPROVEMENT, msg, civ_id)
    return [msg]


def _exec_set_research(state: CivGameState, a: SetResearch, civ_id: str, seed: int) -> list[str]:
    civ = state.civilizations[civ_id]
    if not set_research(civ, a.tech_id):
        return []
    msg = f"{civ.name} began researching {a.tech_id}"
    add_turn_event(state, TurnEventType.RESEARCH, msg, civ_id)
    return [msg]


def _exec_fortify(state: CivGameState, a: Fortify, civ_id: str, seed: int) -> list[str]:
    unit = state.units[a.unit_id]
    unit.fortified = True
    unit.movement_left = 0
    msg = f"{civ_id}'s {unit.type} fortified at ({unit.x}, {unit.y})"
    add_turn_event(state, TurnEventType.FORTIFY, msg, civ_id)
    return [msg]


def _exec_upgrade(state: CivGameState, a: UpgradeUnit, civ_id: str, seed: int) -> list[str]:
    unit = state.units[a.unit_id]
    old = UNITS[unit.type]
    new = UNITS[old.upgrades_to]
    state.civilizations[civ_id].gold -= old.upgrade_cost
    old_type = unit.type
    unit.type = old.upgrades_to
    unit.hp = max(1, round(unit.hp / unit.max_hp * new.hp))
    unit.max_hp = new.hp
    unit.attack = new.attack
    unit.defense = new.defense
    unit.movement = new.movement
    unit.movement_left = 0
    unit.range = new.range
    msg = f"{civ_id} upgraded {old_type} to {unit.type}"
    add_turn_event(state, TurnEventType.UNIT_UPGRADED, msg, civ_id)
    return [msg]


_EXECUTORS: dict[str, Callable[[CivGameState, Action, str, int], list[str]]] = {
    MoveUnit.type: _exec_move,
    Attack.type: _exec_attack,
    FoundCity.type: _exec_found_city,
    Build.type: _exec_build,
    BuildImprovement.type: _exec_build_improvement,
    SetResearch.type: _exec_set_research,
    Fortify.type: _exec_fortify,
    UpgradeUnit.type: _exec_upgrade,
}


def execute_action(state: CivGameState, action: Action, civ_id: str, seed: int) -> list[str]:
    """Apply one validated action in place; returns event descriptions."""
    executor = _EXECUTORS.get(action.type)
    if executor is None:
        return []
    return executor(state, action, civ_id, seed)


# ── End of Turn ──────────────────────────────────────────────────────────────

def spawn_unit(state: CivGameState, civ_id: str, unit_type: str, x: int, y: int) -> Unit:
    u = UNITS[unit_type]
    unit = Unit(
        id=state.next_id("u"), type=unit_type, owner_id=civ_id, x=x, y=y,
        hp=u.hp, max_hp=u.hp, attack=u.attack, defense=u.defense,
        movement=u.movement, movement_left=u.movement, range=u.range,
    )
    state.units[unit.id] = unit
    state.grid[y][x].unit_id = unit.id
    state.civilizations[civ_id].units.append(unit.id)
    return unit


SPAWN_OFFSETS = [(1, 0), (-1, 0), (0, 1), (0, -1), (1, 1), (-1, 1), (1, -1), (-1, -1)]


def find_spawn_tile(state: CivGameState, x: int, y: int) -> tuple[int, int] | None:
    for dx, dy in SPAWN_OFFSETS:
        tile = state.tile(x + dx, y + dy)
        if tile and is_land(tile.terrain) and not tile.unit_id:
            return tile.x, tile.y
    return None


def _apply_effects(city: City, effects: dict[str, int]) -> None:
    city.gold_per_turn += effects.get("gold", 0)
    city.food_per_turn += effects.get("food", 0)
    city.production_per_turn += effects.get("production", 0)
    city.science_per_turn += effects.get("science", 0)
    city.culture_per_turn += effects.get("culture", 0)
    if effects.get("defense"):
        city.defense += effects["defense"]
        city.max_defense += effects["defense"]


def _collect_gold(state: CivGameState, civ: Civilization) -> None:
    income = sum(c.gold_per_turn for c in state.civ_cities(civ.id))
    upkeep = sum(UNITS[u.type].maintenance for u in state.civ_units(civ.id) if u.type in UNITS)
    civ.gold = max(0, civ.gold + income - max(0, upkeep - FREE_UNITS))


def _advance_production(state: CivGameState, civ: Civilization) -> list[str]:
    events: list[str] = []
    civ_def = get_civ(civ.id)
    bonus = civ_def.bonuses.get("production", 0) if civ_def else 0
    for city in state.civ_cities(civ.id):
        city.defense = min(city.max_defense, city.defense + CITY_DEFENSE_REGEN)
        prod = city.current_production
        if prod is None:
            continue
        prod.progress = min(prod.cost, prod.progress + city.production_per_turn + bonus)
        if prod.progress < prod.cost:
            continue
        if prod.kind == "building":
            city.buildings.append(prod.target)
            _apply_effects(city, BUILDINGS[prod.target].effects)
            msg = f"{civ.id}'s {city.name} completed {prod.target}"
            add_turn_event(state, TurnEventType.BUILDING_COMPLETED, msg, civ.id)
        else:
            spot = find_spawn_tile(state, city.x, city.y)
            if spot is None:
                # stays complete until a neighbouring tile frees up
                continue
            spawn_unit(state, civ.id, prod.target, *spot)
            msg = f"{civ.id}'s {city.name} produced a {prod.target}"
            add_turn_event(state, TurnEventType.UNIT_CREATED, msg, civ.id)
            add_notification(state, NotificationType.UNIT, msg, civ.id, *spot)
        city.current_production = None
        events.append(msg)
    return events


def _nearest_city(state: CivGameState, civ_id: str, x: int, y: int) -> City | None:
    cities = state.civ_cities(civ_id)
    if not cities:
        return None
    return min(cities, key=lambda c: _distance(c.x, c.y, x, y))


def _advance_improvements(state: CivGameState, civ: Civilization) -> list[str]:
    events: list[str] = []
    for unit in state.civ_units(civ.id):
        if unit.type != "worker":
            continue
        tile = state.grid[unit.y][unit.x]
        if not tile.pending_improvement:
            continue
        tile.improvement_progress += 1
        imp = get_improvement(tile.pending_improvement)
        if imp is None or tile.improvement_progress < imp.turns:
            continue
        tile.improvement = tile.pending_improvement
        tile.pending_improvement = None
        tile.improvement_progress = 0
        city = _nearest_city(state, civ.id, tile.x, tile.y)
        if city:
            _apply_effects(city, imp.effects)
        msg = f"{civ.id} completed a {tile.improvement} at ({tile.x}, {tile.y})"
        add_turn_event(state, TurnEventType.IMPROVEMENT, msg, civ.id)
        events.append(msg)
    return events


def _grow_cities(state: CivGameState, civ: Civilization) -> list[str]:
    events: list[str] = []
    for city in state.civ_cities(civ.id):
        surplus = city.food_per_turn - city.population // 2
        city.food_stored = max(0, city.food_stored + surplus)
        if civ.happiness < 0:
            continue
        if city.food_stored >= 5 + city.population * 5:
            city.population += 1
            city.food_stored = 0
            city.gold_per_turn += 1
            msg = f"{city.name} grew to size {city.population}"
            add_turn_event(state, TurnEventType.CITY_GROWTH, msg, civ.id)
            events.append(msg)
    return events


def _grow_borders(state: CivGameState, civ: Civilization) -> list[str]:
    events: list[str] = []
    for city in state.civ_cities(civ.id):
        city.culture_stored += city.culture_per_turn
        if city.border_radius >= MAX_BORDER_RADIUS:
            continue
        if city.culture_stored >= 10 * city.border_radius ** 2:
            city.culture_stored = 0
            city.border_radius += 1
            _claim_territory(state, city)
            events.append(f"{city.name}'s borders expanded")
    return events


def _discover_wonders(state: CivGameState, civ: Civilization) -> list[str]:
    events: list[str] = []
    for wonder in state.natural_wonders.values():
        if wonder.discovered_by is not None:
            continue
        if state.grid[wonder.y][wonder.x].owner_id != civ.id:
            continue
        wonder.discovered_by = civ.id
        w = get_natural_wonder(wonder.id)
        civ.happiness_bonus += w.discovery_bonus if w else 1
        msg = f"{civ.name} discovered {wonder.name}"
        add_turn_event(state, TurnEventType.WONDER_DISCOVERED, msg, civ.id)
        add_notification(state, NotificationType.CITY, msg, civ.id, wonder.x, wonder.y)
        events.append(msg)
    return events


def _refresh_units(state: CivGameState, civ: Civilization) -> None:
    for unit in state.civ_units(civ.id):
        unit.movement_left = unit.movement
        heal = 2 if unit.fortified else 0
        if state.grid[unit.y][unit.x].owner_id == civ.id:
            heal += 1
        unit.hp = min(unit.max_hp, unit.hp + heal)


def _update_happiness(state: CivGameState, civ: Civilization) -> None:
    civ.war_weariness = max(0, civ.war_weariness - 1)
    cities = state.civ_cities(civ.id)
    population = sum(c.population for c in cities)
    civ.happiness = (BASE_HAPPINESS + civ.happiness_bonus - max(0, len(cities) - 1)
                     - population // 4 - civ.war_weariness)


def _score(state: CivGameState, civ: Civilization) -> int:
    cities = state.civ_cities(civ.id)
    return (len(cities) * 10 + len(state.civ_units(civ.id)) * 2 + civ.gold // 10
            + sum(c.population for c in cities) * 3 + len(civ.researched_techs) * 5)


def _check_victory(state: CivGameState) -> list[str]:
    alive = state.alive_civ_ids()
    if not alive:
        return []
    if len(alive) == 1:
        state.winner = alive[0]
        state.victory_type = VictoryType.CONQUEST
        msg = f"{state.civilizations[alive[0]].name} wins by conquest!"
    elif state.turn >= state.max_turns:
        best = max(alive, key=lambda cid: state.civilizations[cid].score)
        state.winner = best
        state.victory_type = VictoryType.SCORE
        msg = f"{state.civilizations[best].name} wins by score ({state.civilizations[best].score})!"
    else:
        return []
    add_turn_event(state, TurnEventType.VICTORY, msg, state.winner)
    return [msg]


def process_end_of_turn(state: CivGameState) -> list[str]:
    """Passive per-turn updates for every living civ, then the victory check.

    Not idempotent: the caller runs it exactly once per turn.
    """
    events: list[str] = []
    for civ_id in state.alive_civ_ids():
        civ = state.civilizations[civ_id]
        _collect_gold(state, civ)
        events += _advance_production(state, civ)
        events += _advance_improvements(state, civ)
        events += _grow_cities(state, civ)
        events += _grow_borders(state, civ)
        events += process_research(state, civ_id)
        events += _discover_wonders(state, civ)
        _refresh_units(state, civ)
        _update_happiness(state, civ)
        civ.score = _score(state, civ)

        if not civ.cities and not state.civ_units(civ_id):
            civ.is_alive = False
            msg = f"{civ.name} has been eliminated!"
            add_turn_event(state, TurnEventType.ELIMINATION, msg, civ_id)
            events.append(msg)

    events += _check_victory(state)
    return events
