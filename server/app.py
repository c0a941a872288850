"""Civilization turn server (FastAPI)."""
from __future__ import annotations
import asyncio
import json
import logging
import secrets
import time
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from agents.base import AgentService
from agents.factory import build_agent
from civsim.errors import StateCorruptionError
from civsim.scenario import create_initial_state
from civsim.turn_manager import run_turn
from civsim.types import CivGameState, TurnEventTag
from server.config import Settings, configure_logging, get_settings

logger = logging.getLogger(__name__)

# ── Data stores ──────────────────────────────────────────────────────────────

@dataclass
class GameInstance:
    id: str
    seed: int
    state: CivGameState
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    phase_events: list[dict] = field(default_factory=list)
    turn_log: list[dict] = field(default_factory=list)
    created_at: float = field(default_factory=time.time)

    def record_phase(self, state: CivGameState, tag: TurnEventTag) -> None:
        self.phase_events.append({"turn": state.turn, "tag": tag.value, "ts": time.time()})


@dataclass
class Backend:
    settings: Settings
    agent: Optional[AgentService] = None
    available: Optional[bool] = None  # probed once per process


GAMES: dict[str, GameInstance] = {}
BACKEND: Optional[Backend] = None


def configure(settings: Optional[Settings] = None) -> Backend:
    """(Re)build the agent backend from settings and forget the availability probe."""
    global BACKEND
    settings = settings or get_settings()
    agent = build_agent(
        settings.agent_backend, llm_url=settings.llm_url, llm_model=settings.llm_model,
        anthropic_api_key=settings.anthropic_api_key, gemini_api_key=settings.gemini_api_key,
        llm_retries=settings.llm_retries, seed=settings.random_seed,
    )
    BACKEND = Backend(settings=settings, agent=agent)
    return BACKEND


def backend() -> Backend:
    return BACKEND or configure()


async def agent_available() -> bool:
    b = backend()
    if b.available is None:
        b.available = b.agent is not None and await b.agent.is_available()
        logger.info("Agent backend %s available: %s", b.settings.agent_backend, b.available)
    return b.available


def seed_for(game_id: str) -> int:
    """Numeric ids are their own seed; anything else hashes to a 32-bit value."""
    if game_id.isdigit():
        return int(game_id)
    h = 0
    for ch in game_id:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 2 ** 31:
        h -= 2 ** 32
    return abs(h)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(backend().settings)
    yield
    if BACKEND and BACKEND.agent:
        await BACKEND.agent.aclose()


app = FastAPI(title="CivSim", version="1.0.0", lifespan=lifespan)

# ── Models ───────────────────────────────────────────────────────────────────

class CreateGameRequest(BaseModel):
    seed: int | None = None
    grid_size: int | None = None
    max_turns: int | None = None
    civs: list[str] | None = None


def _new_game(game_id: str, seed: int, grid_size: int | None = None, max_turns: int | None = None,
              civs: list[str] | None = None) -> GameInstance:
    settings = backend().settings
    state = create_initial_state(
        seed,
        grid_size=grid_size or settings.default_grid_size,
        max_turns=max_turns or settings.default_max_turns,
        civ_ids=civs, game_id=game_id,
    )
    gi = GameInstance(id=game_id, seed=seed, state=state)
    gi.turn_log.append({"turn": 0, "events": ["Game created"], "used_fallback": False})
    GAMES[game_id] = gi
    logger.info("Created game %s (seed %d, %dx%d)", game_id, seed, state.grid_size, state.grid_size)
    return gi


def _get_game(game_id: str) -> GameInstance:
    gi = GAMES.get(game_id)
    if not gi:
        raise HTTPException(404, "Game not found")
    return gi

# ── Endpoints ────────────────────────────────────────────────────────────────

@app.post("/games")
def create_game(req: CreateGameRequest):
    gid = str(uuid.uuid4())[:8]
    seed = req.seed if req.seed is not None else secrets.randbelow(2 ** 31)
    try:
        gi = _new_game(gid, seed, req.grid_size, req.max_turns, req.civs)
    except ValueError as e:
        raise HTTPException(400, str(e))
    return {"game_id": gid, "seed": seed, "civs": gi.state.turn_order}


@app.get("/games")
def list_games():
    return [{"game_id": gid, "turn": gi.state.turn, "winner": gi.state.winner,
             "civs": len(gi.state.civilizations)} for gid, gi in GAMES.items()]


@app.get("/games/{game_id}")
def get_game(game_id: str):
    gi = _get_game(game_id)
    state = gi.state.to_dict()
    state["game_id"] = game_id
    return state


@app.get("/games/{game_id}/summaries")
def get_summaries(game_id: str):
    gi = _get_game(game_id)
    s = gi.state.to_dict()
    return {"turn": s["turn"], "narration": s["current_narration"],
            "summaries": s["civ_turn_summaries"], "phase_events": gi.phase_events[-9:]}


@app.get("/games/{game_id}/replay")
def get_replay(game_id: str):
    gi = GAMES.get(game_id)
    if gi:
        return {"game_id": gi.id, "seed": gi.seed, "winner": gi.state.winner, "turns": gi.turn_log}
    replay_dir = backend().settings.replay_dir
    path = replay_dir / f"{game_id}.json" if replay_dir else None
    if path and path.exists():
        return json.loads(path.read_text())
    raise HTTPException(404)


@app.post("/api/game/{game_id}/advance")
async def advance_game(game_id: str):
    gi = GAMES.get(game_id) or _new_game(game_id, seed_for(game_id))
    async with gi.lock:
        if gi.state.winner:
            return {"status": "finished", "used_fallback": False, "state": gi.state.to_dict()}

        b = backend()
        use_agent = await agent_available()
        try:
            outcome = await run_turn(gi.state, gi.seed, b.agent, gi.record_phase,
                                     agent_timeout=b.settings.agent_timeout, use_agent=use_agent)
        except StateCorruptionError as e:
            raise HTTPException(500, {"error": "corrupt_state", "violations": e.violations})
        gi.state = outcome.state
        gi.turn_log.append({
            "turn": gi.state.turn - 1,
            "narration": gi.state.current_narration,
            "used_fallback": outcome.used_fallback,
            "error": str(outcome.error) if outcome.error else None,
            "winner": gi.state.winner,
        })
        _save_replay(gi)

    return {"status": "turn_processed", "used_fallback": outcome.used_fallback,
            "state": gi.state.to_dict()}


def _save_replay(gi: GameInstance):
    replay_dir = backend().settings.replay_dir
    if replay_dir is None:
        return
    replay_dir.mkdir(parents=True, exist_ok=True)
    replay = {"game_id": gi.id, "seed": gi.seed, "winner": gi.state.winner,
              "turns": gi.turn_log, "state": gi.state.to_dict()}
    (replay_dir / f"{gi.id}.json").write_text(json.dumps(replay))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
