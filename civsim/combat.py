"""Deterministic combat resolution."""
from __future__ import annotations
from dataclasses import dataclass
from .ruleset import defense_bonus, get_civ
from .types import CivGameState, CombatEvent, Unit

FORTIFY_BONUS = 3


def combat_roll(seed: int, a: str, b: str, turn: int) -> float:
    """Hash (seed, a, b, turn) to [0, 1). Same inputs, same roll."""
    h = (seed ^ turn) & 0xFFFFFFFF
    for ch in a + b:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    return h / 4294967296


def _attack_strength(state: CivGameState, unit: Unit) -> int:
    civ_def = get_civ(unit.owner_id)
    return unit.attack + (civ_def.bonuses.get("attack", 0) if civ_def else 0)


def resolve_combat(state: CivGameState, attacker_id: str, defender_id: str,
                   seed: int, ranged: bool = False) -> CombatEvent | None:
    """Apply one exchange of damage between two units. Ranged attacks take no counter."""
    attacker = state.units.get(attacker_id)
    defender = state.units.get(defender_id)
    if not attacker or not defender or attacker.owner_id == defender.owner_id:
        return None

    tile = state.tile(defender.x, defender.y)
    terrain_def = defense_bonus(tile.terrain) if tile else 0
    fort = FORTIFY_BONUS if defender.fortified else 0

    roll = combat_roll(seed, attacker_id, defender_id, state.turn)
    attack_mod = 0.8 + roll * 0.4
    defense_mod = 0.8 + (1 - roll) * 0.4

    damage = max(1, round(_attack_strength(state, attacker) * attack_mod
                          - (defender.defense + terrain_def + fort) * 0.3))
    counter = 0
    if not ranged:
        counter = max(1, round(defender.attack * defense_mod * 0.5 - attacker.defense * 0.3))

    defender.hp -= damage
    attacker.hp -= counter

    return CombatEvent(
        turn=state.turn, attacker_id=attacker_id, defender_id=defender_id,
        attacker_civ=attacker.owner_id, defender_civ=defender.owner_id,
        x=defender.x, y=defender.y,
        attacker_damage=counter, defender_damage=damage,
        attacker_destroyed=attacker.hp <= 0, defender_destroyed=defender.hp <= 0,
    )


@dataclass
class CityAttackResult:
    damage: int
    counter_damage: int
    captured: bool
    attacker_destroyed: bool


def resolve_city_attack(state: CivGameState, attacker_id: str, city_id: str,
                        seed: int) -> CityAttackResult | None:
    attacker = state.units.get(attacker_id)
    city = state.cities.get(city_id)
    if not attacker or not city or attacker.owner_id == city.owner_id:
        return None

    roll = combat_roll(seed, attacker_id, city_id, state.turn)
    damage = max(1, round(_attack_strength(state, attacker) * (0.8 + roll * 0.4) - city.defense * 0.5))
    city.defense -= damage
    counter = max(1, round(max(city.defense, 0) * 0.2))
    if attacker.range is None:
        attacker.hp -= counter
    else:
        counter = 0

    return CityAttackResult(
        damage=damage, counter_damage=counter,
        # ranged units can bombard but never take a city
        captured=city.defense <= 0 and attacker.range is None and attacker.hp > 0,
        attacker_destroyed=attacker.hp <= 0,
    )
