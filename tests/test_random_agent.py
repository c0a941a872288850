"""Random agent: seeded decisions and full games without a backend."""
import pytest

from builders import add_unit, three_civ_state
from agents.random_agent import RandomAgent
from civsim.invariants import find_invariant_violations
from civsim.scenario import create_initial_state
from civsim.simulation import validate_action
from civsim.turn_manager import run_turn
from civsim.types import Attack, DiplomacyMessage, MessageType, VictoryType


class TestDecisions:
    @pytest.mark.asyncio
    async def test_same_seed_same_plan(self):
        state = create_initial_state(3, grid_size=12, max_turns=6)
        first = await RandomAgent(seed=3).run_planning_phase("rome", state, "")
        second = await RandomAgent(seed=3).run_planning_phase("rome", state, "")
        assert first == second

    @pytest.mark.asyncio
    async def test_founding_names_on_first_turn_only(self):
        state = three_civ_state()
        agent = RandomAgent(seed=1)
        decision = await agent.run_planning_phase("egypt", state, "")
        assert decision.constitution_name == "Charter of Egypt"

        state.turn = 2
        decision = await agent.run_planning_phase("egypt", state, "")
        assert decision.constitution_name is None

    @pytest.mark.asyncio
    async def test_attacks_adjacent_enemy(self):
        state = three_civ_state()
        warrior = add_unit(state, "rome", "warrior", 6, 6)
        add_unit(state, "egypt", "warrior", 7, 6)

        decision = await RandomAgent(seed=5).run_planning_phase("rome", state, "")

        attacks = [a for a in decision.actions if isinstance(a, Attack) and a.unit_id == warrior.id]
        assert len(attacks) == 1
        assert validate_action(state, attacks[0], "rome")

    @pytest.mark.asyncio
    async def test_silent_agent_sends_nothing(self):
        state = three_civ_state()
        inbox = [DiplomacyMessage(id="msg_9", turn=1, sender="egypt", recipient="all",
                                  type=MessageType.MESSAGE, content="hello")]
        assert await RandomAgent(chatter=0).run_diplomacy_phase("rome", state, inbox) == []

    @pytest.mark.asyncio
    async def test_culture_summary(self):
        state = three_civ_state()
        agent = RandomAgent()
        assert await agent.run_cultural_summarization("rome", state) is None

        decision = await RandomAgent(artifact_chance=1).run_planning_phase("rome", state, "")
        assert len(decision.artifacts) == 1

    @pytest.mark.asyncio
    async def test_narration(self):
        state = three_civ_state()
        agent = RandomAgent()
        assert await agent.generate_narration([], state) == "Turn 1 passes quietly."
        assert await agent.generate_narration(["a.", "b.", "c.", "d."], state) == "Turn 1: a. b. c."


class TestFullGame:
    @pytest.mark.asyncio
    async def test_plays_to_a_winner_without_fallback(self):
        seed = 11
        state = create_initial_state(seed, grid_size=12, max_turns=6)
        agent = RandomAgent(seed=seed, artifact_chance=0.5)

        for _ in range(state.max_turns):
            outcome = await run_turn(state, seed, agent)
            assert not outcome.used_fallback, outcome.error
            state = outcome.state
            assert find_invariant_violations(state) == []
            if state.winner:
                break

        assert state.winner in state.civilizations
        assert state.victory_type in (VictoryType.SCORE, VictoryType.CONQUEST)
        assert state.turn <= 7
        assert state.current_narration.startswith("Turn ")

    @pytest.mark.asyncio
    async def test_replays_match(self):
        async def play(seed):
            state = create_initial_state(seed, grid_size=12, max_turns=4)
            agent = RandomAgent(seed=seed)
            while state.winner is None:
                state = (await run_turn(state, seed, agent)).state
            return state.to_dict()

        assert await play(4) == await play(4)
