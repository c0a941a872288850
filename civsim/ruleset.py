"""Static game data: terrain, units, buildings, techs, civilizations, wonders."""
from __future__ import annotations
import math
from dataclasses import dataclass, field
from typing import Optional

IMPASSABLE = 999


@dataclass(frozen=True)
class TerrainDef:
    move_cost: int
    defense_bonus: int
    food: int
    production: int
    gold: int


@dataclass(frozen=True)
class UnitDef:
    name: str
    unit_class: str  # melee | ranged | mounted | recon | civilian
    cost: int
    attack: int
    defense: int
    hp: int
    movement: int
    vision: int = 2
    range: Optional[int] = None
    tech_req: Optional[str] = None
    upgrades_to: Optional[str] = None
    upgrade_cost: Optional[int] = None
    maintenance: int = 1

    @property
    def is_military(self) -> bool:
        return self.unit_class in MILITARY_CLASSES


@dataclass(frozen=True)
class BuildingDef:
    name: str
    cost: int
    tech_req: Optional[str] = None
    effects: dict[str, int] = field(default_factory=dict)
    is_capital: bool = False


@dataclass(frozen=True)
class TechDef:
    id: str
    name: str
    cost: int
    prereqs: tuple[str, ...] = ()


@dataclass(frozen=True)
class ImprovementDef:
    name: str
    valid_terrain: tuple[str, ...]
    turns: int
    effects: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class CivDef:
    name: str
    leader: str
    personality: str
    color: str
    city_names: tuple[str, ...]
    start_position: tuple[int, int]  # on a 30x30 map
    start_units: tuple[str, ...]
    bonuses: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class NaturalWonderDef:
    name: str
    preferred_terrain: tuple[str, ...]
    bonuses: dict[str, int]
    discovery_bonus: int  # happiness for the first civ to hold it


MILITARY_CLASSES = ("melee", "ranged", "mounted")

# ── Terrain ──────────────────────────────────────────────────────────────────

TERRAIN = {
    #                      move  def  food prod gold
    "plains":   TerrainDef(1,          0, 2, 1, 0),
    "desert":   TerrainDef(1,          0, 0, 1, 1),
    "forest":   TerrainDef(2,          2, 1, 2, 0),
    "hills":    TerrainDef(2,          3, 0, 2, 0),
    "mountain": TerrainDef(IMPASSABLE, 5, 0, 1, 0),
    "water":    TerrainDef(IMPASSABLE, 0, 1, 0, 1),
}

# ── Units ────────────────────────────────────────────────────────────────────

UNITS = {
    "warrior":   UnitDef("Warrior", "melee", cost=30, attack=8, defense=6, hp=20, movement=1,
                         upgrades_to="swordsman", upgrade_cost=20),
    "archer":    UnitDef("Archer", "ranged", cost=35, attack=6, defense=4, hp=15, movement=1, range=2),
    "scout":     UnitDef("Scout", "recon", cost=20, attack=2, defense=2, hp=10, movement=3, vision=4,
                         maintenance=0),
    "settler":   UnitDef("Settler", "civilian", cost=60, attack=0, defense=2, hp=10, movement=1,
                         maintenance=0),
    "worker":    UnitDef("Worker", "civilian", cost=30, attack=0, defense=1, hp=10, movement=1,
                         maintenance=0),
    "horseman":  UnitDef("Horseman", "mounted", cost=45, attack=10, defense=5, hp=20, movement=2,
                         tech_req="horseback_riding"),
    "swordsman": UnitDef("Swordsman", "melee", cost=50, attack=12, defense=9, hp=25, movement=1,
                         tech_req="bronze_working"),
}

# ── Buildings ────────────────────────────────────────────────────────────────

BUILDINGS = {
    "palace":   BuildingDef("Palace", 0, effects={"gold": 1, "culture": 1}, is_capital=True),
    "monument": BuildingDef("Monument", 30, effects={"culture": 2}),
    "granary":  BuildingDef("Granary", 40, tech_req="pottery", effects={"food": 2}),
    "barracks": BuildingDef("Barracks", 50, effects={"production": 1}),
    "walls":    BuildingDef("Walls", 60, tech_req="masonry", effects={"defense": 10}),
    "market":   BuildingDef("Market", 50, tech_req="currency", effects={"gold": 3}),
    "library":  BuildingDef("Library", 60, tech_req="writing", effects={"science": 2}),
}

# ── Techs ────────────────────────────────────────────────────────────────────

TECHS = {t.id: t for t in (
    TechDef("pottery", "Pottery", 20),
    TechDef("bronze_working", "Bronze Working", 25),
    TechDef("masonry", "Masonry", 25),
    TechDef("horseback_riding", "Horseback Riding", 30),
    TechDef("writing", "Writing", 30, ("pottery",)),
    TechDef("currency", "Currency", 40, ("bronze_working",)),
    TechDef("mathematics", "Mathematics", 55, ("writing", "currency")),
)}

# ── Improvements ─────────────────────────────────────────────────────────────

IMPROVEMENTS = {
    "farm": ImprovementDef("Farm", ("plains", "desert"), turns=3, effects={"food": 1}),
    "mine": ImprovementDef("Mine", ("hills",), turns=4, effects={"production": 2}),
    "road": ImprovementDef("Road", ("plains", "desert", "forest", "hills"), turns=2),
}

ROAD_MOVE_COST = 0.5

# ── Civilizations ────────────────────────────────────────────────────────────

CIVS = {
    "rome": CivDef(
        name="Rome", leader="Caesar Augustus", personality="pragmatic", color="#C41E3A",
        city_names=("Rome", "Antium", "Cumae", "Neapolis", "Ravenna", "Arretium"),
        start_position=(5, 5), start_units=("warrior", "settler", "scout"),
        bonuses={"production": 1},
    ),
    "egypt": CivDef(
        name="Egypt", leader="Cleopatra VII", personality="scholarly", color="#FFD700",
        city_names=("Thebes", "Memphis", "Heliopolis", "Elephantine", "Alexandria", "Pi-Ramesses"),
        start_position=(24, 5), start_units=("warrior", "settler", "scout"),
        bonuses={"science": 1},
    ),
    "mongolia": CivDef(
        name="Mongolia", leader="Genghis Khan", personality="aggressive", color="#4169E1",
        city_names=("Karakorum", "Beshbalik", "Turfan", "Hsia", "Old Sarai", "New Sarai"),
        start_position=(14, 24), start_units=("warrior", "settler", "scout"),
        bonuses={"attack": 1},
    ),
}

# ── Natural Wonders ──────────────────────────────────────────────────────────

NATURAL_WONDERS = {
    "mount_kailash": NaturalWonderDef("Mount Kailash", ("hills",), {"culture": 2, "faith": 2}, 2),
    "great_barrier_reef": NaturalWonderDef("Great Barrier Reef", ("water",), {"food": 2, "gold": 1}, 1),
    "old_faithful": NaturalWonderDef("Old Faithful", ("plains", "desert"), {"science": 2}, 1),
    "el_dorado": NaturalWonderDef("El Dorado", ("forest",), {"gold": 3}, 2),
}


# ── Lookups ──────────────────────────────────────────────────────────────────

def get_terrain(terrain_id: str) -> TerrainDef | None:
    return TERRAIN.get(terrain_id)


def get_unit(unit_id: str) -> UnitDef | None:
    return UNITS.get(unit_id)


def get_building(building_id: str) -> BuildingDef | None:
    return BUILDINGS.get(building_id)


def get_tech(tech_id: str) -> TechDef | None:
    return TECHS.get(tech_id)


def get_improvement(improvement_id: str) -> ImprovementDef | None:
    return IMPROVEMENTS.get(improvement_id)


def get_civ(civ_id: str) -> CivDef | None:
    return CIVS.get(civ_id)


def get_natural_wonder(wonder_id: str) -> NaturalWonderDef | None:
    return NATURAL_WONDERS.get(wonder_id)


# ── Queries ──────────────────────────────────────────────────────────────────

def move_cost(terrain_id: str) -> float:
    """Movement cost of entering a tile; impassable or unknown terrain is inf."""
    t = get_terrain(terrain_id)
    if not t or t.move_cost >= IMPASSABLE:
        return math.inf
    return t.move_cost


def defense_bonus(terrain_id: str) -> int:
    t = get_terrain(terrain_id)
    return t.defense_bonus if t else 0


def is_land(terrain_id: str) -> bool:
    return move_cost(terrain_id) != math.inf


def available_units(researched: list[str]) -> list[str]:
    known = set(researched)
    return [uid for uid, u in UNITS.items() if not u.tech_req or u.tech_req in known]


def available_buildings(researched: list[str], existing: list[str]) -> list[str]:
    known = set(researched)
    return [
        bid for bid, b in BUILDINGS.items()
        if not b.is_capital and bid not in existing and (not b.tech_req or b.tech_req in known)
    ]


def researchable_techs(researched: list[str]) -> list[TechDef]:
    known = set(researched)
    return [t for t in TECHS.values() if t.id not in known and all(p in known for p in t.prereqs)]
