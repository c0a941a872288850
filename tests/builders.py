"""Small hand-built states and a scripted agent for tests."""
from __future__ import annotations
from typing import Callable, Optional

from agents.base import AgentService
from civsim.errors import AgentError
from civsim.simulation import spawn_unit
from civsim.types import (
    City, CivGameState, Civilization, CultureSummary, DiplomacyMessage, PlanningDecision,
    RelationshipStatus, Tile,
)

CIVS = ("rome", "egypt", "mongolia")


def make_state(size: int = 10, civs=CIVS, terrain: str = "plains") -> CivGameState:
    grid = [[Tile(x=x, y=y, terrain=terrain) for x in range(size)] for y in range(size)]
    state = CivGameState(id="test", grid=grid, grid_size=size, civilizations={}, turn_order=list(civs))
    for cid in civs:
        state.civilizations[cid] = Civilization(
            id=cid, name=cid.title(), leader_name=f"Leader of {cid.title()}",
            relationships={o: RelationshipStatus.NEUTRAL for o in civs if o != cid},
        )
    return state


def add_city(state: CivGameState, civ_id: str, x: int, y: int, name: Optional[str] = None,
             claim: bool = True) -> City:
    city = City(id=state.next_id("c"), name=name or f"{civ_id}-{x}-{y}", owner_id=civ_id, x=x, y=y)
    state.cities[city.id] = city
    state.civilizations[civ_id].cities.append(city.id)
    state.grid[y][x].city_id = city.id
    if claim:
        for dy in (-1, 0, 1):
            for dx in (-1, 0, 1):
                tile = state.tile(x + dx, y + dy)
                if tile and abs(dx) + abs(dy) <= 1:
                    tile.owner_id = civ_id
    return city


def add_unit(state: CivGameState, civ_id: str, unit_type: str, x: int, y: int):
    return spawn_unit(state, civ_id, unit_type, x, y)


def three_civ_state() -> CivGameState:
    """One city and one scout per civ, far apart on a 12x12 plain."""
    state = make_state(12)
    for cid, (x, y) in zip(CIVS, [(2, 2), (9, 2), (5, 9)]):
        add_city(state, cid, x, y)
        add_unit(state, cid, "scout", x + 1, y + 1)
    return state


class StubAgent(AgentService):
    """Scripted agent that records every call as (method, civ_id, detail)."""

    def __init__(self, narration: str = "Turn passes.",
                 diplomacy: Optional[Callable] = None,
                 planning: Optional[Callable] = None,
                 summary: Optional[Callable] = None,
                 fail_on: Optional[str] = None):
        self.narration = narration
        self.diplomacy = diplomacy
        self.planning = planning
        self.summary = summary
        self.fail_on = fail_on
        self.calls: list[tuple] = []

    def _record(self, method: str, civ_id, detail=None):
        self.calls.append((method, civ_id, detail))
        if self.fail_on == method:
            raise AgentError(f"{method} backend down")

    def called(self, method: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == method]

    async def run_diplomacy_phase(self, civ_id, state, inbox: list[DiplomacyMessage]):
        self._record("diplomacy", civ_id, len(inbox))
        return self.diplomacy(civ_id, state, inbox) if self.diplomacy else []

    async def run_planning_phase(self, civ_id, state, diplomacy_context: str):
        self._record("planning", civ_id, diplomacy_context)
        return self.planning(civ_id, state) if self.planning else PlanningDecision()

    async def run_cultural_summarization(self, civ_id, state):
        self._record("summary", civ_id)
        if self.summary:
            return self.summary(civ_id, state)
        return CultureSummary(turn=state.turn, text=f"{civ_id} culture", values=["order"])

    async def generate_narration(self, events, state):
        self._record("narration", None, list(events))
        return self.narration
