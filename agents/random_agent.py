"""Random agent: plausible seeded play with no backend."""
from __future__ import annotations
import random
from collections import Counter
from typing import Optional

from civsim.ruleset import available_buildings, available_units, get_improvement
from civsim.tech import available_techs
from civsim.types import (
    BROADCAST, ArtifactDraft, Attack, Build, BuildImprovement, CivGameState, CultureSummary,
    DiplomacyMessage, FoundCity, Fortify, MessageType, MoveUnit, PlanningDecision, SetResearch,
)
from agents.base import AgentService

QUIPS = [
    "I come in peace... for now.",
    "Nice cities you got there.",
    "Anyone want to trade?",
    "The river valleys will be mine!",
    "Let's focus on the real threat.",
    "I propose we all calm down.",
    "My army grows stronger every turn.",
]

ARTIFACT_KINDS = ["poem", "law", "myth", "monument"]
ARTIFACT_TITLES = [
    "Song of the First Harvest", "The Founding Oath", "Legend of the Twin Rivers",
    "Stele of the Victorious", "Hymn to the Morning Sun", "Code of the Market",
]
NARRATION_EVENTS = 3


class RandomAgent(AgentService):
    """Every decision is a function of (seed, civ, turn, phase), so replays match."""

    def __init__(self, seed: int = 0, chatter: float = 0.3, artifact_chance: float = 0.2):
        self.seed = seed
        self.chatter = chatter
        self.artifact_chance = artifact_chance

    def _rng(self, civ_id: str, state: CivGameState, phase: str) -> random.Random:
        return random.Random(f"{self.seed}:{civ_id}:{state.turn}:{phase}")

    async def run_diplomacy_phase(self, civ_id: str, state: CivGameState,
                                  inbox: list[DiplomacyMessage]) -> list[DiplomacyMessage]:
        rng = self._rng(civ_id, state, "diplomacy")
        others = [cid for cid in state.alive_civ_ids() if cid != civ_id]
        messages = []
        if others and rng.random() < self.chatter:
            messages.append(DiplomacyMessage(
                id=state.next_id("msg_"), turn=state.turn, sender=civ_id,
                recipient=rng.choice(others + [BROADCAST]),
                type=MessageType.MESSAGE, content=rng.choice(QUIPS),
            ))
        # answer anyone who wrote to us directly
        for m in inbox:
            if m.recipient == civ_id and rng.random() < 0.5:
                reply = MessageType.PEACE_OFFER if m.type == MessageType.WAR_DECLARATION else MessageType.MESSAGE
                messages.append(DiplomacyMessage(
                    id=state.next_id("msg_"), turn=state.turn, sender=civ_id,
                    recipient=m.sender, type=reply, content=rng.choice(QUIPS),
                ))
        return messages

    async def run_planning_phase(self, civ_id: str, state: CivGameState,
                                 diplomacy_context: str) -> PlanningDecision:
        rng = self._rng(civ_id, state, "planning")
        civ = state.civilizations[civ_id]
        decision = PlanningDecision()
        actions = decision.actions

        if civ.current_research is None:
            techs = available_techs(civ)
            if techs:
                actions.append(SetResearch(tech_id=rng.choice(techs)))

        cities = state.civ_cities(civ_id)
        for city in cities:
            if city.current_production:
                continue
            buildings = available_buildings(civ.researched_techs, city.buildings)
            if len(cities) < 3 and rng.random() < 0.3:
                actions.append(Build(city_id=city.id, target="settler"))
            elif buildings and rng.random() < 0.4:
                actions.append(Build(city_id=city.id, target=rng.choice(buildings), target_type="building"))
            else:
                military = [u for u in available_units(civ.researched_techs) if u not in ("settler", "scout")]
                actions.append(Build(city_id=city.id, target=rng.choice(military)))

        for unit in state.civ_units(civ_id):
            if unit.type == "settler":
                name = f"{civ.name} {len(cities) + 1}"
                actions.append(FoundCity(settler_id=unit.id, city_name=name))
                actions.append(self._wander(rng, unit, 1))
            elif unit.type == "worker":
                tile = state.grid[unit.y][unit.x]
                options = [
                    iid for iid in ("farm", "mine", "road")
                    if tile.terrain in get_improvement(iid).valid_terrain
                ]
                if options and tile.owner_id == civ_id:
                    actions.append(BuildImprovement(worker_id=unit.id, improvement=rng.choice(options)))
                else:
                    actions.append(self._wander(rng, unit, 1))
            elif unit.attack > 0:
                target = self._adjacent_enemy(state, unit)
                if target:
                    actions.append(Attack(unit_id=unit.id, target_id=target))
                elif unit.type != "scout" and rng.random() < 0.2:
                    actions.append(Fortify(unit_id=unit.id))
                elif rng.random() < 0.7:
                    actions.append(self._wander(rng, unit, unit.movement))

        if rng.random() < self.artifact_chance:
            decision.artifacts.append(ArtifactDraft(
                kind=rng.choice(ARTIFACT_KINDS), title=rng.choice(ARTIFACT_TITLES),
                content=f"Composed in the reign of {civ.leader_name}.",
            ))
        if state.turn == 1:
            decision.constitution_name = f"Charter of {civ.name}"
            decision.religion_name = f"Faith of the {civ.name} Sun"
        return decision

    @staticmethod
    def _wander(rng: random.Random, unit, reach: int) -> MoveUnit:
        dx = rng.randint(-reach, reach)
        dy = rng.randint(-(reach - abs(dx)), reach - abs(dx))
        return MoveUnit(unit_id=unit.id, target_x=unit.x + dx, target_y=unit.y + dy)

    @staticmethod
    def _adjacent_enemy(state: CivGameState, unit) -> Optional[str]:
        reach = unit.range or 1
        for other in state.units.values():
            if other.owner_id != unit.owner_id and abs(other.x - unit.x) + abs(other.y - unit.y) <= reach:
                return other.id
        return None

    async def run_cultural_summarization(self, civ_id: str,
                                         state: CivGameState) -> Optional[CultureSummary]:
        civ = state.civilizations[civ_id]
        if not civ.culture.artifacts:
            return None
        kinds = Counter(a.kind for a in civ.culture.artifacts)
        top = [k for k, _ in kinds.most_common(3)]
        return CultureSummary(
            turn=state.turn,
            text=f"{civ.name} is remembered for its {', '.join(top)} "
                 f"({len(civ.culture.artifacts)} works so far).",
            values=top,
        )

    async def generate_narration(self, events: list[str], state: CivGameState) -> str:
        if not events:
            return f"Turn {state.turn} passes quietly."
        return f"Turn {state.turn}: " + " ".join(e.strip() for e in events[:NARRATION_EVENTS])
