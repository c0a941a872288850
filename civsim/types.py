"""Core data types for the agent civilization engine."""
from __future__ import annotations
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import ClassVar, Optional, Union

BROADCAST = "all"


class TurnPhase(str, Enum):
    IDLE = "idle"
    DIPLOMACY = "diplomacy"
    PLANNING = "planning"
    RESOLUTION = "resolution"
    NARRATION = "narration"


class TurnEventTag(str, Enum):
    """Milestones published to the turn callback, in firing order."""
    DIPLOMACY_START = "diplomacy_start"
    DIPLOMACY_COMPLETE = "diplomacy_complete"
    PLANNING_START = "planning_start"
    PLANNING_COMPLETE = "planning_complete"
    RESOLUTION_START = "resolution_start"
    RESOLUTION_COMPLETE = "resolution_complete"
    NARRATION_START = "narration_start"
    NARRATION_COMPLETE = "narration_complete"
    TURN_COMPLETE = "turn_complete"


class RelationshipStatus(str, Enum):
    NEUTRAL = "neutral"
    FRIENDLY = "friendly"
    ALLIED = "allied"
    HOSTILE = "hostile"
    WAR = "war"


class MessageType(str, Enum):
    MESSAGE = "message"
    TRADE_PROPOSAL = "trade_proposal"
    ALLIANCE_PROPOSAL = "alliance_proposal"
    WAR_DECLARATION = "war_declaration"
    PEACE_OFFER = "peace_offer"


class TurnEventType(str, Enum):
    MOVE = "move"
    ATTACK = "attack"
    BUILD = "build"
    RESEARCH = "research"
    DIPLOMACY = "diplomacy"
    CITY_FOUNDED = "city_founded"
    CITY_CAPTURED = "city_captured"
    UNIT_CREATED = "unit_created"
    UNIT_UPGRADED = "unit_upgraded"
    BUILDING_COMPLETED = "building_completed"
    RESEARCH_COMPLETED = "research_completed"
    UNIT_DESTROYED = "unit_destroyed"
    IMPROVEMENT = "improvement"
    CITY_GROWTH = "city_growth"
    FORTIFY = "fortify"
    CULTURE = "culture"
    WONDER_DISCOVERED = "wonder_discovered"
    ELIMINATION = "elimination"
    VICTORY = "victory"


class NotificationType(str, Enum):
    COMBAT = "combat"
    CITY = "city"
    TECH = "tech"
    DIPLOMACY = "diplomacy"
    UNIT = "unit"


class VictoryType(str, Enum):
    CONQUEST = "conquest"
    SCORE = "score"


# ── World ────────────────────────────────────────────────────────────────────

@dataclass
class Tile:
    x: int
    y: int
    terrain: str
    owner_id: Optional[str] = None
    city_id: Optional[str] = None
    unit_id: Optional[str] = None
    resource: Optional[str] = None
    improvement: Optional[str] = None
    pending_improvement: Optional[str] = None  # under construction by a worker
    improvement_progress: int = 0
    natural_wonder_id: Optional[str] = None


@dataclass
class Unit:
    id: str
    type: str
    owner_id: str
    x: int
    y: int
    hp: int
    max_hp: int
    attack: int
    defense: int
    movement: int
    movement_left: float
    range: Optional[int] = None  # None = melee
    fortified: bool = False


@dataclass
class Production:
    kind: str  # "unit" | "building"
    target: str
    progress: int
    cost: int


@dataclass
class City:
    id: str
    name: str
    owner_id: str
    x: int
    y: int
    population: int = 1
    gold_per_turn: int = 3
    food_per_turn: int = 2
    production_per_turn: int = 2
    science_per_turn: int = 0
    culture_per_turn: int = 1
    culture_stored: int = 0
    food_stored: int = 0
    border_radius: int = 1
    buildings: list[str] = field(default_factory=list)
    current_production: Optional[Production] = None
    defense: int = 5
    max_defense: int = 5


@dataclass
class NaturalWonder:
    id: str
    name: str
    x: int
    y: int
    bonuses: dict[str, int] = field(default_factory=dict)
    discovered_by: Optional[str] = None


# ── Culture ──────────────────────────────────────────────────────────────────

@dataclass
class ArtifactDraft:
    """An artifact as proposed by an agent, before it is stamped."""
    kind: str
    title: str
    content: str = ""


@dataclass
class CulturalArtifact:
    id: str
    civ_id: str
    turn: int
    kind: str
    title: str
    content: str = ""


@dataclass
class CultureSummary:
    turn: int
    text: str
    values: list[str] = field(default_factory=list)


@dataclass
class Culture:
    artifacts: list[CulturalArtifact] = field(default_factory=list)
    constitution_name: Optional[str] = None
    religion_name: Optional[str] = None
    summary: Optional[CultureSummary] = None


# ── Civilizations ────────────────────────────────────────────────────────────

@dataclass
class ResearchProgress:
    tech_id: str
    progress: int
    cost: int


@dataclass
class Civilization:
    id: str
    name: str
    leader_name: str
    personality: str = ""
    gold: int = 0
    cities: list[str] = field(default_factory=list)  # ids into CivGameState.cities
    units: list[str] = field(default_factory=list)  # ids into CivGameState.units
    known_tiles: set[str] = field(default_factory=set)  # "x,y"
    relationships: dict[str, RelationshipStatus] = field(default_factory=dict)
    is_alive: bool = True
    score: int = 0
    researched_techs: list[str] = field(default_factory=list)
    current_research: Optional[ResearchProgress] = None
    science_per_turn: int = 0
    happiness: int = 5
    happiness_bonus: int = 0
    war_weariness: int = 0
    government: str = "despotism"
    culture: Culture = field(default_factory=Culture)


# ── Event records ────────────────────────────────────────────────────────────

@dataclass
class DiplomacyMessage:
    id: str
    turn: int
    sender: str
    recipient: str  # civ id or BROADCAST
    type: MessageType
    content: str

    def visible_to(self, civ_id: str) -> bool:
        return self.recipient == civ_id or self.recipient == BROADCAST


@dataclass
class TurnEvent:
    id: str
    turn: int
    type: TurnEventType
    message: str
    civ_id: Optional[str] = None


@dataclass
class CombatEvent:
    turn: int
    attacker_id: str
    defender_id: str
    attacker_civ: str
    defender_civ: str
    x: int
    y: int
    attacker_damage: int
    defender_damage: int
    attacker_destroyed: bool
    defender_destroyed: bool


@dataclass
class CombatEffect:
    id: str
    turn: int
    attacker_x: int
    attacker_y: int
    defender_x: int
    defender_y: int
    damage: int
    attacker_civ: str
    defender_civ: str
    defender_destroyed: bool


@dataclass
class Notification:
    id: str
    turn: int
    type: NotificationType
    message: str
    civ_id: Optional[str] = None
    x: Optional[int] = None
    y: Optional[int] = None


@dataclass
class CameraEvent:
    type: str
    x: int
    y: int
    turn: int


@dataclass
class CivTurnSummary:
    civ_id: str
    turn: int
    messages: list[DiplomacyMessage] = field(default_factory=list)
    events: list[TurnEvent] = field(default_factory=list)


# ── Actions ──────────────────────────────────────────────────────────────────

@dataclass
class MoveUnit:
    type: ClassVar[str] = "move_unit"
    unit_id: str
    target_x: int
    target_y: int


@dataclass
class Attack:
    type: ClassVar[str] = "attack"
    unit_id: str
    target_id: str  # unit id or city id


@dataclass
class FoundCity:
    type: ClassVar[str] = "found_city"
    settler_id: str
    city_name: str = ""


@dataclass
class Build:
    type: ClassVar[str] = "build"
    city_id: str
    target: str
    target_type: str = "unit"  # "unit" | "building"


@dataclass
class BuildImprovement:
    type: ClassVar[str] = "build_improvement"
    worker_id: str
    improvement: str


@dataclass
class SetResearch:
    type: ClassVar[str] = "set_research"
    tech_id: str


@dataclass
class Fortify:
    type: ClassVar[str] = "fortify"
    unit_id: str


@dataclass
class UpgradeUnit:
    type: ClassVar[str] = "upgrade_unit"
    unit_id: str


Action = Union[MoveUnit, Attack, FoundCity, Build, BuildImprovement, SetResearch, Fortify, UpgradeUnit]

ACTION_TYPES: dict[str, type] = {
    cls.type: cls for cls in
    (MoveUnit, Attack, FoundCity, Build, BuildImprovement, SetResearch, Fortify, UpgradeUnit)
}

# agent JSON key -> dataclass field
_ACTION_KEYS = {
    "unitId": "unit_id", "targetX": "target_x", "targetY": "target_y",
    "targetId": "target_id", "settlerId": "settler_id", "cityName": "city_name",
    "cityId": "city_id", "targetType": "target_type", "workerId": "worker_id",
    "techId": "tech_id",
}

_INT_FIELDS = {"target_x", "target_y"}


def action_from_dict(data: dict) -> Action | None:
    """Build an action from agent JSON; None for unknown or malformed entries."""
    cls = ACTION_TYPES.get(data.get("type", ""))
    if cls is None:
        return None
    kwargs = {}
    for key, value in data.items():
        if key == "type":
            continue
        kwargs[_ACTION_KEYS.get(key, key)] = value
    allowed = set(cls.__dataclass_fields__) - {"type"}
    kwargs = {k: v for k, v in kwargs.items() if k in allowed}
    try:
        for k in _INT_FIELDS & kwargs.keys():
            kwargs[k] = int(kwargs[k])
        return cls(**kwargs)
    except (TypeError, ValueError):
        return None


@dataclass
class PlanningDecision:
    actions: list[Action] = field(default_factory=list)
    artifacts: list[ArtifactDraft] = field(default_factory=list)
    constitution_name: Optional[str] = None
    religion_name: Optional[str] = None


# ── Root aggregate ───────────────────────────────────────────────────────────

@dataclass
class CivGameState:
    id: str
    grid: list[list[Tile]]
    grid_size: int
    civilizations: dict[str, Civilization]
    turn: int = 1
    max_turns: int = 20
    phase: TurnPhase = TurnPhase.IDLE
    units: dict[str, Unit] = field(default_factory=dict)
    cities: dict[str, City] = field(default_factory=dict)
    natural_wonders: dict[str, NaturalWonder] = field(default_factory=dict)
    turn_order: list[str] = field(default_factory=list)
    diplomacy_log: list[DiplomacyMessage] = field(default_factory=list)
    combat_log: list[CombatEvent] = field(default_factory=list)
    combat_effects: list[CombatEffect] = field(default_factory=list)
    notifications: list[Notification] = field(default_factory=list)
    turn_events: list[TurnEvent] = field(default_factory=list)
    camera_events: list[CameraEvent] = field(default_factory=list)
    civ_turn_summaries: list[CivTurnSummary] = field(default_factory=list)
    cultural_events: list[CulturalArtifact] = field(default_factory=list)
    current_narration: str = ""
    winner: Optional[str] = None
    victory_type: Optional[VictoryType] = None
    counters: dict[str, int] = field(default_factory=dict)

    def next_id(self, prefix: str) -> str:
        n = self.counters.get(prefix, 0) + 1
        self.counters[prefix] = n
        return f"{prefix}{n}"

    # ── Queries ──────────────────────────────────────────────────────────

    def ordered_civ_ids(self) -> list[str]:
        order = [cid for cid in self.turn_order if cid in self.civilizations]
        order += [cid for cid in self.civilizations if cid not in order]
        return order

    def alive_civ_ids(self) -> list[str]:
        return [cid for cid in self.ordered_civ_ids() if self.civilizations[cid].is_alive]

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.grid_size and 0 <= y < self.grid_size

    def tile(self, x: int, y: int) -> Tile | None:
        if not self.in_bounds(x, y):
            return None
        return self.grid[y][x]

    def civ_units(self, civ_id: str) -> list[Unit]:
        civ = self.civilizations[civ_id]
        return [self.units[uid] for uid in civ.units if uid in self.units]

    def civ_cities(self, civ_id: str) -> list[City]:
        civ = self.civilizations[civ_id]
        return [self.cities[cid] for cid in civ.cities if cid in self.cities]

    def capital(self, civ_id: str) -> City | None:
        cities = self.civ_cities(civ_id)
        return cities[0] if cities else None

    # ── State Views ──────────────────────────────────────────────────────

    def to_dict(self) -> dict:
        """JSON-safe rendering of the whole state."""
        data = asdict(self)
        for civ in data["civilizations"].values():
            civ["known_tiles"] = sorted(civ["known_tiles"])
        return _plain(data)


def _plain(value):
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {(k.value if isinstance(k, Enum) else k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value
