"""Turn advancement: the agent-driven phased turn and the local fallback."""
from __future__ import annotations
import asyncio
import copy
import logging
import math
import re
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, Optional, TypeVar

from .errors import AgentTimeoutError
from .events import add_turn_event
from .invariants import check_invariants
from .simulation import execute_action, process_end_of_turn, validate_action
from .types import (
    Action, Build, CivGameState, CivTurnSummary, CulturalArtifact, DiplomacyMessage,
    MoveUnit, TurnEventTag, TurnEventType, TurnPhase,
)

if TYPE_CHECKING:
    from agents.base import AgentService

logger = logging.getLogger(__name__)

T = TypeVar("T")
UpdateCallback = Callable[[CivGameState, TurnEventTag], None]

FALLBACK_NARRATION = "Turn {turn} passes. The civilizations continue to grow in the ancient world."
SUMMARY_INTERVAL = 5
DEFAULT_UNIT = "warrior"

# index order matters: it is part of the scout move contract
SCOUT_DIRECTIONS = [(1, 0), (-1, 0), (0, 1), (0, -1)]  # E, W, S, N


def _emit(state: CivGameState, on_update: Optional[UpdateCallback], tag: TurnEventTag) -> None:
    if on_update is not None:
        on_update(state, tag)


async def _ask(call: Awaitable[T], timeout: Optional[float], what: str) -> T:
    if timeout is None:
        return await call
    try:
        return await asyncio.wait_for(call, timeout)
    except asyncio.TimeoutError as e:
        raise AgentTimeoutError(f"{what} timed out after {timeout}s") from e


def _run_actions(state: CivGameState, civ_id: str, actions: list[Action], seed: int) -> list[str]:
    events: list[str] = []
    for action in actions:
        if not validate_action(state, action, civ_id):
            logger.debug("Dropped invalid %s from %s", action, civ_id)
            continue
        events.extend(execute_action(state, action, civ_id, seed))
    return events


# ── Agent-driven turn ────────────────────────────────────────────────────────

async def advance_turn(state: CivGameState, seed: int, agent: "AgentService",
                       on_update: Optional[UpdateCallback] = None, *,
                       agent_timeout: Optional[float] = None) -> CivGameState:
    """Run one full turn in place and return the same state object.

    Agent failures propagate; the caller decides whether to fall back.
    """
    if state.winner is not None:
        return state

    turn = state.turn
    order = state.alive_civ_ids()
    started = time.perf_counter()

    # Phase 1: diplomacy, one civ at a time so later civs read earlier ones
    state.phase = TurnPhase.DIPLOMACY
    state.camera_events.clear()
    _emit(state, on_update, TurnEventTag.DIPLOMACY_START)

    turn_messages: list[DiplomacyMessage] = []
    sent: dict[str, list[DiplomacyMessage]] = {}
    for civ_id in order:
        inbox = [m for m in turn_messages if m.visible_to(civ_id)]
        messages = await _ask(agent.run_diplomacy_phase(civ_id, state, inbox),
                              agent_timeout, f"diplomacy for {civ_id}")
        sent[civ_id] = list(messages)
        turn_messages.extend(messages)
        state.diplomacy_log.extend(messages)
    logger.info("Turn %d diplomacy: %d messages", turn, len(turn_messages))
    _emit(state, on_update, TurnEventTag.DIPLOMACY_COMPLETE)

    # Phase 2: planning
    state.phase = TurnPhase.PLANNING
    _emit(state, on_update, TurnEventTag.PLANNING_START)

    context = "\n".join(
        f"{m.sender} -> {m.recipient}: [{m.type.value}] {m.content}" for m in turn_messages
    )
    planned: list[tuple[str, list[Action]]] = []
    for civ_id in order:
        decision = await _ask(agent.run_planning_phase(civ_id, state, context),
                              agent_timeout, f"planning for {civ_id}")
        planned.append((civ_id, list(decision.actions)))

        civ = state.civilizations[civ_id]
        for draft in decision.artifacts:
            artifact = CulturalArtifact(
                id=f"art_{civ_id}_{turn}_{len(civ.culture.artifacts)}",
                civ_id=civ_id, turn=turn, kind=draft.kind,
                title=draft.title, content=draft.content,
            )
            civ.culture.artifacts.append(artifact)
            state.cultural_events.append(artifact)
            add_turn_event(state, TurnEventType.CULTURE,
                           f"{civ.name} created a {artifact.kind}: {artifact.title}", civ_id)
        if turn == 1:
            if decision.constitution_name:
                civ.culture.constitution_name = decision.constitution_name
            if decision.religion_name:
                civ.culture.religion_name = decision.religion_name
    logger.info("Turn %d planning: %d actions proposed", turn, sum(len(a) for _, a in planned))
    _emit(state, on_update, TurnEventTag.PLANNING_COMPLETE)

    # Phase 3: resolution
    state.phase = TurnPhase.RESOLUTION
    _emit(state, on_update, TurnEventTag.RESOLUTION_START)

    state.civ_turn_summaries = []
    events: list[str] = []
    for civ_id, actions in planned:
        window_start = len(state.turn_events)
        events.extend(_run_actions(state, civ_id, actions, seed))
        state.civ_turn_summaries.append(CivTurnSummary(
            civ_id=civ_id, turn=turn,
            messages=sent.get(civ_id, []),
            events=state.turn_events[window_start:],
        ))
    events.extend(process_end_of_turn(state))
    _emit(state, on_update, TurnEventTag.RESOLUTION_COMPLETE)

    if turn % SUMMARY_INTERVAL == 0:
        await _summarize_cultures(state, agent, agent_timeout)

    # Phase 4: narration
    state.phase = TurnPhase.NARRATION
    _emit(state, on_update, TurnEventTag.NARRATION_START)
    state.current_narration = await _ask(agent.generate_narration(events, state),
                                         agent_timeout, "narration")
    _emit(state, on_update, TurnEventTag.NARRATION_COMPLETE)

    state.turn += 1
    state.phase = TurnPhase.IDLE
    logger.info("Turn %d of game %s done in %.1fs (%d events)",
                turn, state.id, time.perf_counter() - started, len(events))
    _emit(state, on_update, TurnEventTag.TURN_COMPLETE)
    return state


async def _summarize_cultures(state: CivGameState, agent: "AgentService",
                              agent_timeout: Optional[float]) -> None:
    # each call touches only its own civ's culture, so they may overlap
    civ_ids = [
        cid for cid in state.alive_civ_ids()
        if state.civilizations[cid].culture.artifacts
    ]
    if not civ_ids:
        return
    tasks = [
        asyncio.ensure_future(_ask(agent.run_cultural_summarization(cid, state),
                                   agent_timeout, f"culture summary for {cid}"))
        for cid in civ_ids
    ]
    try:
        summaries = await asyncio.gather(*tasks)
    except BaseException:
        # one failure sinks the turn; don't leave the others running
        for task in tasks:
            task.cancel()
        raise
    for cid, summary in zip(civ_ids, summaries):
        if summary is not None:
            state.civilizations[cid].culture.summary = summary
    logger.info("Turn %d: summarized culture for %s", state.turn, ", ".join(civ_ids))


# ── Local fallback ───────────────────────────────────────────────────────────

def scout_direction(seed: int, unit_id: str, turn: int) -> tuple[int, int]:
    """Pseudo-random cardinal step for a scout; a pure function of its inputs."""
    digits = "".join(re.findall(r"\d", unit_id))
    suffix = int(digits) if digits else 0
    index = min(3, math.floor(abs(math.sin(seed + suffix + turn)) * 4))
    return SCOUT_DIRECTIONS[index]


def advance_turn_local(state: CivGameState, seed: int) -> CivGameState:
    """Minimal deterministic turn with no agent: default builds and scout wandering."""
    if state.winner is not None:
        return state

    turn = state.turn
    state.phase = TurnPhase.RESOLUTION
    state.camera_events.clear()
    state.civ_turn_summaries = []

    events: list[str] = []
    for civ_id in state.alive_civ_ids():
        window_start = len(state.turn_events)
        actions: list[Action] = [
            Build(city_id=city.id, target=DEFAULT_UNIT, target_type="unit")
            for city in state.civ_cities(civ_id) if city.current_production is None
        ]
        events.extend(_run_actions(state, civ_id, actions, seed))

        for unit in list(state.civ_units(civ_id)):
            if unit.type != "scout" or unit.movement_left <= 0:
                continue
            dx, dy = scout_direction(seed, unit.id, turn)
            tx, ty = unit.x + dx, unit.y + dy
            if state.in_bounds(tx, ty):
                events.extend(_run_actions(state, civ_id, [MoveUnit(unit.id, tx, ty)], seed))

        state.civ_turn_summaries.append(CivTurnSummary(
            civ_id=civ_id, turn=turn, events=state.turn_events[window_start:],
        ))

    events.extend(process_end_of_turn(state))
    state.current_narration = FALLBACK_NARRATION.format(turn=turn)
    state.turn += 1
    state.phase = TurnPhase.IDLE
    logger.info("Turn %d of game %s resolved locally (%d events)", turn, state.id, len(events))
    return state


# ── Boundary ─────────────────────────────────────────────────────────────────

@dataclass
class TurnOutcome:
    state: CivGameState
    used_fallback: bool = False
    error: Optional[Exception] = None


async def run_turn(state: CivGameState, seed: int, agent: Optional["AgentService"],
                   on_update: Optional[UpdateCallback] = None, *,
                   agent_timeout: Optional[float] = None,
                   use_agent: bool = True) -> TurnOutcome:
    """Advance one turn, falling back to local simulation if the agent turn fails.

    The agent turn runs on a copy, so a failure part-way through leaves the
    input untouched and the fallback starts from the pre-turn state. Use the
    returned outcome's state, which may be a different object from the input.

    A failed agent turn may already have fired phase tags for the discarded
    copy; every turn that completes, agent-driven or local, ends with
    TURN_COMPLETE on the returned state.
    """
    check_invariants(state)
    if state.winner is not None:
        return TurnOutcome(state)
    if not use_agent or agent is None:
        result = advance_turn_local(state, seed)
        _emit(result, on_update, TurnEventTag.TURN_COMPLETE)
        return TurnOutcome(result, used_fallback=True)

    working = copy.deepcopy(state)
    try:
        result = await advance_turn(working, seed, agent, on_update, agent_timeout=agent_timeout)
        check_invariants(result)
        return TurnOutcome(result)
    except Exception as e:
        logger.warning("Agent turn %d failed for game %s, resolving locally: %s", state.turn, state.id, e)
        result = advance_turn_local(state, seed)
        check_invariants(result)
        _emit(result, on_update, TurnEventTag.TURN_COMPLETE)
        return TurnOutcome(result, used_fallback=True, error=e)
