"""Prompt text for the LLM agent: leader personas, world view, per-phase instructions."""
from __future__ import annotations
from civsim.ruleset import IMPROVEMENTS, UNITS, available_buildings, available_units, researchable_techs
from civsim.types import BROADCAST, CivGameState, DiplomacyMessage, MessageType

PERSONALITIES = {
    "rome": (
        "You are Caesar Augustus, a cunning and pragmatic ruler. You pursue both military "
        "dominance and diplomatic alliances, and speak with classical Roman gravitas. You build "
        "alliances before war but are ruthless when betrayed."
    ),
    "egypt": (
        "You are Cleopatra VII, a brilliant and charismatic ruler. You prefer wealth and knowledge "
        "over brute conquest and use charm and alliance offers to keep power. You speak elegantly "
        "and with wit, and can be fierce when cornered."
    ),
    "mongolia": (
        "You are Genghis Khan, an aggressive and expansionist conqueror. You respect strength, "
        "speak directly and sometimes brutally, and prefer swift military action over long talks. "
        "You may offer vassalage before war."
    ),
}

DIPLOMACY_FORMAT = """
Respond with ONLY a JSON object (no markdown, no explanation):
{"messages": [{"to": "<civ id or all>", "message_type": "<%s>", "content": "<your message>"}]}

If you have nothing to say, return {"messages": []}""" % "|".join(t.value for t in MessageType)

PLANNING_FORMAT = """
Respond with ONLY a JSON object (no markdown, no explanation):
{"actions": [
  {"type": "move_unit", "unitId": "u1", "targetX": 5, "targetY": 6},
  {"type": "attack", "unitId": "u1", "targetId": "u2 or c2"},
  {"type": "found_city", "settlerId": "u3", "cityName": "New City"},
  {"type": "build", "cityId": "c1", "target": "warrior", "targetType": "unit"},
  {"type": "build_improvement", "workerId": "u5", "improvement": "farm"},
  {"type": "set_research", "techId": "pottery"},
  {"type": "fortify", "unitId": "u1"},
  {"type": "upgrade_unit", "unitId": "u1"}
 ],
 "artifacts": [{"kind": "poem|law|myth|monument", "title": "...", "content": "..."}]%s}

Only include actions you want to take. Artifacts are optional."""

FOUNDING_FIELDS = ',\n "constitution_name": "...", "religion_name": "..."'


def system_prompt(civ_id: str, state: CivGameState) -> str:
    civ = state.civilizations[civ_id]
    return f"""You are the leader of {civ.name}, known as {civ.leader_name}.

PERSONALITY: {PERSONALITIES.get(civ_id, civ.personality)}

CURRENT SITUATION (Turn {state.turn}/{state.max_turns}):
{world_view(civ_id, state)}

RULES:
- You can send diplomatic messages to one civilization or to all
- Messages should be in-character and reflect your personality
- You can propose trades, alliances, declare war, or offer peace
- Keep messages concise (1-3 sentences)"""


def world_view(civ_id: str, state: CivGameState) -> str:
    """Render what civ_id can see: its own empire in full, rivals through its fog."""
    civ = state.civilizations[civ_id]
    lines = [f"YOUR CIVILIZATION: {civ.name}", f"Gold: {civ.gold}  Happiness: {civ.happiness}"]
    if civ.current_research:
        r = civ.current_research
        lines.append(f"Researching: {r.tech_id} ({r.progress}/{r.cost})")
    lines.append(f"Techs: {', '.join(civ.researched_techs) or 'none'}")

    cities = state.civ_cities(civ_id)
    lines.append(f"Cities ({len(cities)}):")
    for c in cities:
        prod = c.current_production
        building = f", building: {prod.target} ({prod.progress}/{prod.cost})" if prod else ", idle"
        lines.append(f"  - {c.name} [{c.id}] at ({c.x},{c.y}) pop {c.population}, "
                     f"+{c.gold_per_turn}g +{c.production_per_turn}p, "
                     f"buildings: {', '.join(c.buildings) or 'none'}{building}")

    units = state.civ_units(civ_id)
    lines.append(f"Units ({len(units)}):")
    for u in units:
        lines.append(f"  - {u.type} [{u.id}] at ({u.x},{u.y}) HP:{u.hp}/{u.max_hp} "
                     f"Moves:{u.movement_left:g}/{u.movement}{' fortified' if u.fortified else ''}")

    for other_id in state.ordered_civ_ids():
        if other_id == civ_id:
            continue
        other = state.civilizations[other_id]
        if not other.is_alive:
            lines.append(f"\n{other.name}: ELIMINATED")
            continue
        rel = civ.relationships.get(other_id)
        lines.append(f"\n{other.name} ({other.leader_name}) - Relationship: {rel.value if rel else 'unknown'}")
        seen_cities = [c for c in state.civ_cities(other_id) if f"{c.x},{c.y}" in civ.known_tiles]
        if seen_cities:
            lines.append("  Known cities: " + ", ".join(f"{c.name} [{c.id}] at ({c.x},{c.y})" for c in seen_cities))
        seen_units = [u for u in state.civ_units(other_id) if f"{u.x},{u.y}" in civ.known_tiles]
        if seen_units:
            lines.append("  Visible units: " + ", ".join(f"{u.type} [{u.id}] at ({u.x},{u.y})" for u in seen_units))

    return "\n".join(lines)


def diplomacy_prompt(inbox: list[DiplomacyMessage]) -> str:
    if inbox:
        received = "Messages received this turn:\n" + "\n".join(
            f"From {m.sender}: [{m.type.value}] {m.content}" for m in inbox
        )
    else:
        received = "No messages received yet this turn."
    return (f"{received}\n\nSend your diplomatic messages for this turn (0-3 messages). "
            f"Be strategic and in-character.{DIPLOMACY_FORMAT}")


def planning_prompt(civ_id: str, state: CivGameState, diplomacy_context: str) -> str:
    civ = state.civilizations[civ_id]
    upgradeable = []
    for u in state.civ_units(civ_id):
        d = UNITS.get(u.type)
        if d and d.upgrades_to and d.upgrade_cost is not None and civ.gold >= d.upgrade_cost:
            upgradeable.append(f"{u.id} ({u.type} -> {d.upgrades_to}, {d.upgrade_cost}g)")
    ranged = [f"{u.id} (range {u.range})" for u in state.civ_units(civ_id) if u.range]

    lines = [
        f"You are {civ.leader_name} of {civ.name}. Based on the diplomacy phase and current "
        f"situation, decide your actions for this turn.",
        "",
        world_view(civ_id, state),
        "",
        "RECENT DIPLOMACY:",
        diplomacy_context or "No diplomatic exchanges this turn.",
        "",
        f"Valid unit build targets: {', '.join(available_units(civ.researched_techs))}",
        "Valid building build targets: "
        + ", ".join(available_buildings(civ.researched_techs, [])),
        "Valid improvements (workers, own territory): " + "; ".join(
            f"{iid} on {'/'.join(i.valid_terrain)}, {i.turns} turns" for iid, i in IMPROVEMENTS.items()
        ),
        "Valid research targets: "
        + (", ".join(t.id for t in researchable_techs(civ.researched_techs)) or "none"),
    ]
    if upgradeable:
        lines.append(f"Upgradeable units: {', '.join(upgradeable)}")
    if ranged:
        lines.append(f"Ranged units (attack from a distance, no counter-damage): {', '.join(ranged)}")
    lines.append(PLANNING_FORMAT % (FOUNDING_FIELDS if state.turn == 1 else ""))
    return "\n".join(lines)


def planning_system_prompt(civ_id: str, state: CivGameState) -> str:
    return (f"You are the AI controlling {state.civilizations[civ_id].name}. "
            f"Make strategic decisions. Return ONLY valid JSON, no markdown.")


def culture_prompt(civ_id: str, state: CivGameState) -> str:
    civ = state.civilizations[civ_id]
    works = "\n".join(
        f"- T{a.turn} {a.kind}: {a.title}. {a.content}".rstrip() for a in civ.culture.artifacts[-20:]
    )
    founding = []
    if civ.culture.constitution_name:
        founding.append(f"Constitution: {civ.culture.constitution_name}")
    if civ.culture.religion_name:
        founding.append(f"Religion: {civ.culture.religion_name}")
    return f"""You are a historian of {civ.name} under {civ.leader_name}. Turn {state.turn}.
{chr(10).join(founding)}

CULTURAL WORKS SO FAR:
{works}

Summarize this civilization's cultural identity in 2-3 sentences and list up to 5 core values.
Respond with ONLY a JSON object: {{"summary": "...", "values": ["...", "..."]}}"""


def narrator_prompt(events: list[str], state: CivGameState) -> str:
    leaders = ", ".join(
        f"{c.name} ({c.leader_name})" for c in (state.civilizations[cid] for cid in state.ordered_civ_ids())
    )
    names = {cid: c.name for cid, c in state.civilizations.items()}
    talk = "\n".join(
        f"{names.get(m.sender, m.sender)} to {'all' if m.recipient == BROADCAST else names.get(m.recipient, m.recipient)}: "
        f"\"{m.content}\""
        for m in state.diplomacy_log if m.turn == state.turn
    ) or "No diplomatic exchanges."
    scores = ", ".join(f"{names[cid]}: {state.civilizations[cid].score}" for cid in state.ordered_civ_ids())
    return f"""You are a dramatic narrator for a civilization game between {leaders}.

Turn {state.turn}/{state.max_turns} just completed. Here's what happened:

{chr(10).join(events) or 'A quiet turn.'}

DIPLOMACY THIS TURN:
{talk}

SCORES: {scores}

Write a dramatic, concise narration (2-3 sentences) of the most important events of this turn,
in the style of a historical documentary narrator.
Respond with ONLY a JSON object: {{"narration": "<your narration>"}}"""
