"""Research tracking for civilizations."""
from __future__ import annotations
from .ruleset import TECHS, UNITS, BUILDINGS, get_civ, get_tech, researchable_techs
from .events import add_camera_event, add_notification, add_turn_event
from .types import CivGameState, Civilization, NotificationType, ResearchProgress, TurnEventType


def can_research(civ: Civilization, tech_id: str) -> bool:
    """Check if a tech can be researched."""
    tech = get_tech(tech_id)
    if tech is None:
        return False
    if tech_id in civ.researched_techs:
        return False
    return all(p in civ.researched_techs for p in tech.prereqs)


def available_techs(civ: Civilization) -> list[str]:
    """Return ids of techs available to research, cheapest first."""
    return [t.id for t in sorted(researchable_techs(civ.researched_techs), key=lambda t: t.cost)]


def set_research(civ: Civilization, tech_id: str) -> bool:
    """Switch research to tech_id. Switching keeps 90% of current progress."""
    if not can_research(civ, tech_id):
        return False
    tech = TECHS[tech_id]
    carried = int(civ.current_research.progress * 0.9) if civ.current_research else 0
    civ.current_research = ResearchProgress(
        tech_id=tech_id, progress=min(carried, tech.cost - 1), cost=tech.cost,
    )
    return True


def calculate_science(state: CivGameState, civ_id: str) -> int:
    civ = state.civilizations[civ_id]
    science = 0
    for city in state.civ_cities(civ_id):
        science += city.science_per_turn + city.population // 2
    civ_def = get_civ(civ_id)
    if civ_def:
        science += civ_def.bonuses.get("science", 0)
    return max(1, science)


def _pick_cheapest(civ: Civilization) -> None:
    techs = available_techs(civ)
    if techs:
        tech = TECHS[techs[0]]
        civ.current_research = ResearchProgress(tech_id=tech.id, progress=0, cost=tech.cost)


def process_research(state: CivGameState, civ_id: str) -> list[str]:
    """Apply one turn of science. Returns event strings for completed techs."""
    civ = state.civilizations[civ_id]
    if not civ.is_alive:
        return []
    events: list[str] = []

    civ.science_per_turn = calculate_science(state, civ_id)
    if civ.current_research is None:
        _pick_cheapest(civ)
    if civ.current_research is None:
        return events

    civ.current_research.progress += civ.science_per_turn
    if civ.current_research.progress < civ.current_research.cost:
        return events

    tech_id = civ.current_research.tech_id
    tech = TECHS[tech_id]
    civ.researched_techs.append(tech_id)
    civ.current_research = None

    msg = f"{civ.name} discovered {tech.name}"
    events.append(msg + "!")
    add_turn_event(state, TurnEventType.RESEARCH_COMPLETED, msg, civ_id)
    add_notification(state, NotificationType.TECH, msg + "!", civ_id)
    capital = state.capital(civ_id)
    if capital:
        add_camera_event(state, "tech_complete", capital.x, capital.y)

    new_units = [u.name for u in UNITS.values() if u.tech_req == tech_id]
    new_buildings = [b.name for b in BUILDINGS.values() if b.tech_req == tech_id]
    if new_units:
        events.append(f"  Unlocked units: {', '.join(new_units)}")
    if new_buildings:
        events.append(f"  Unlocked buildings: {', '.join(new_buildings)}")

    _pick_cheapest(civ)
    return events
