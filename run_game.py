"""Play a whole game locally (no server needed) and print per-turn progress."""
import argparse
import asyncio
import json
import logging
from pathlib import Path

from agents.factory import build_agent
from civsim.scenario import create_initial_state
from civsim.turn_manager import run_turn
from server.config import configure_logging, get_settings

logger = logging.getLogger("run_game")


async def play(args) -> None:
    settings = get_settings()
    agent = build_agent(
        args.backend, llm_url=settings.llm_url, llm_model=settings.llm_model,
        anthropic_api_key=settings.anthropic_api_key, gemini_api_key=settings.gemini_api_key,
        llm_retries=settings.llm_retries, seed=args.seed,
    )
    state = create_initial_state(args.seed, grid_size=args.grid_size, max_turns=args.max_turns)
    use_agent = agent is not None and await agent.is_available()
    if agent is not None and not use_agent:
        logger.warning("Agent backend %s unavailable, playing every turn locally", args.backend)

    print(f"=== CIVSIM: seed {args.seed}, {state.grid_size}x{state.grid_size}, {state.max_turns} turns ===")
    for cid in state.turn_order:
        civ = state.civilizations[cid]
        print(f"  {civ.name} ({civ.leader_name}): {', '.join(c.name for c in state.civ_cities(cid))}")
    print()

    turns = []
    try:
        while state.winner is None:
            outcome = await run_turn(state, args.seed, agent,
                                     agent_timeout=settings.agent_timeout, use_agent=use_agent)
            state = outcome.state
            played = state.turn - 1
            units = len(state.units)
            scores = " ".join(f"{cid}:{state.civilizations[cid].score}" for cid in state.alive_civ_ids())
            tag = " [local]" if outcome.used_fallback else ""
            print(f"T{played:2d}{tag} | units={units:3d} | {scores}")
            print(f"     {state.current_narration}")
            turns.append({"turn": played, "narration": state.current_narration,
                          "used_fallback": outcome.used_fallback})
    finally:
        if agent is not None:
            await agent.aclose()

    print("\n=== FINAL ===")
    for cid in state.turn_order:
        civ = state.civilizations[cid]
        print(f"  {civ.name}: {'ALIVE' if civ.is_alive else 'DEAD'} | {len(civ.cities)} cities | "
              f"{len(civ.units)} units | gold={civ.gold} | techs={civ.researched_techs} | score={civ.score}")
    print(f"\nWinner: {state.winner} ({state.victory_type.value})")

    if args.replay:
        out = json.dumps({"seed": args.seed, "winner": state.winner, "turns": turns, "state": state.to_dict()})
        Path(args.replay).write_text(out)
        print(f"Replay saved to {args.replay} ({len(out) // 1024}KB)")


def main():
    settings = get_settings()
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--backend", choices=["llm", "random", "local"], default="random")
    parser.add_argument("--grid-size", type=int, default=settings.default_grid_size)
    parser.add_argument("--max-turns", type=int, default=settings.default_max_turns)
    parser.add_argument("--replay", help="write a JSON replay to this path")
    args = parser.parse_args()

    configure_logging(settings)
    asyncio.run(play(args))


if __name__ == "__main__":
    main()
