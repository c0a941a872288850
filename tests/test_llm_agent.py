"""Tests for the LLM agent against a mocked HTTP transport."""
import json

import httpx
import pytest

from builders import three_civ_state
from agents.llm_agent import LLMAgent, extract_json, normalize_civ_id
from civsim.errors import AgentError
from civsim.types import (
    BROADCAST, Build, CulturalArtifact, MessageType, MoveUnit,
)


def openai_reply(payload) -> dict:
    content = payload if isinstance(payload, str) else json.dumps(payload)
    return {"choices": [{"message": {"content": content}}]}


def make_agent(handler, **kwargs) -> LLMAgent:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return LLMAgent(llm_url="http://gateway", client=client, retry_delay=0, **kwargs)


class TestHelpers:
    def test_extract_plain(self):
        assert extract_json('{"a": 1}') == '{"a": 1}'

    def test_extract_fenced(self):
        assert json.loads(extract_json('```json\n{"a": 1}\n```')) == {"a": 1}

    def test_extract_padded(self):
        assert json.loads(extract_json('Sure! Here it is: {"a": {"b": 2}} Good luck.')) == {"a": {"b": 2}}

    def test_normalize_civ_id(self):
        state = three_civ_state()
        assert normalize_civ_id("egypt", state) == "egypt"
        assert normalize_civ_id("  ALL ", state) == BROADCAST
        assert normalize_civ_id("Leader of Mongolia", state) == "mongolia"
        assert normalize_civ_id("The Senate of Rome", state) == "rome"
        assert normalize_civ_id("Atlantis", state) is None


class TestPhases:
    @pytest.mark.asyncio
    async def test_diplomacy(self):
        def handler(request):
            assert request.url.path == "/v1/chat/completions"
            body = json.loads(request.content)
            assert body["messages"][0]["role"] == "system"
            return httpx.Response(200, json=openai_reply({"messages": [
                {"to": "egypt", "message_type": "trade_proposal", "content": "Grain for gold?"},
                {"to": "rome", "content": "talking to myself"},
                {"to": "atlantis", "content": "hello?"},
                {"to": "all", "message_type": "shouting", "content": "Rome endures!"},
            ]}))

        state = three_civ_state()
        messages = await make_agent(handler).run_diplomacy_phase("rome", state, [])

        assert [(m.recipient, m.type) for m in messages] == [
            ("egypt", MessageType.TRADE_PROPOSAL), (BROADCAST, MessageType.MESSAGE),
        ]
        assert [m.id for m in messages] == ["msg_1", "msg_2"]
        assert all(m.sender == "rome" and m.turn == 1 for m in messages)

    @pytest.mark.asyncio
    async def test_planning(self):
        def handler(request):
            return httpx.Response(200, json=openai_reply("```json\n" + json.dumps({
                "actions": [
                    {"type": "move_unit", "unitId": "u1", "targetX": "4", "targetY": 3},
                    {"type": "build", "cityId": "c1", "target": "warrior", "targetType": "unit"},
                    {"type": "change_government", "government": "republic"},
                    {"type": "move_unit", "unitId": "u1", "targetX": "north"},
                    "nonsense",
                ],
                "artifacts": [{"kind": "poem", "title": "Aeneid", "content": "Arms and the man"}, {"kind": "law"}],
                "constitution_name": "Twelve Tables",
            }) + "\n```"))

        decision = await make_agent(handler).run_planning_phase("rome", three_civ_state(), "")

        assert decision.actions == [MoveUnit("u1", 4, 3), Build("c1", "warrior", "unit")]
        assert [(a.kind, a.title) for a in decision.artifacts] == [("poem", "Aeneid")]
        assert decision.constitution_name == "Twelve Tables"
        assert decision.religion_name is None

    @pytest.mark.asyncio
    async def test_cultural_summary(self):
        def handler(request):
            return httpx.Response(200, json=openai_reply({"summary": "A people of law.", "values": ["law", "duty"]}))

        state = three_civ_state()
        agent = make_agent(handler)
        assert await agent.run_cultural_summarization("rome", state) is None

        state.civilizations["rome"].culture.artifacts.append(
            CulturalArtifact(id="art_rome_1_0", civ_id="rome", turn=1, kind="law", title="Twelve Tables"))
        summary = await agent.run_cultural_summarization("rome", state)
        assert summary.text == "A people of law."
        assert summary.values == ["law", "duty"]
        assert summary.turn == 1

    @pytest.mark.asyncio
    async def test_narration(self):
        def handler(request):
            return httpx.Response(200, json=openai_reply({"narration": "Rome stirs."}))

        assert await make_agent(handler).generate_narration(["x"], three_civ_state()) == "Rome stirs."


class TestBackends:
    @pytest.mark.asyncio
    async def test_anthropic(self):
        seen = {}

        def handler(request):
            seen["host"] = request.url.host
            seen["key"] = request.headers["x-api-key"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "content": [{"type": "text", "text": '{"narration": "Egypt prospers."}'}],
                "usage": {"input_tokens": 10, "output_tokens": 5},
            })

        agent = make_agent(handler, anthropic_api_key="sk-test", model="anthropic/claude-test")
        assert agent.backend == "anthropic"
        assert await agent.generate_narration([], three_civ_state()) == "Egypt prospers."
        assert seen["host"] == "api.anthropic.com"
        assert seen["key"] == "sk-test"
        assert seen["body"]["model"] == "claude-test"

    @pytest.mark.asyncio
    async def test_gemini(self):
        def handler(request):
            assert request.url.host == "generativelanguage.googleapis.com"
            assert request.url.params["key"] == "g-test"
            return httpx.Response(200, json={
                "candidates": [{"content": {"parts": [{"text": '{"narration": "Steppe winds."}'}]}}],
            })

        agent = make_agent(handler, gemini_api_key="g-test")
        assert agent.backend == "gemini"
        assert await agent.generate_narration([], three_civ_state()) == "Steppe winds."


class TestFailures:
    @pytest.mark.asyncio
    async def test_retries_then_raises(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503, text="overloaded")

        with pytest.raises(AgentError):
            await make_agent(handler, retries=2).generate_narration([], three_civ_state())
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_recovers_on_retry(self):
        replies = iter([
            httpx.Response(200, json=openai_reply("not json at all")),
            httpx.Response(200, json=openai_reply({"narration": "Second time lucky."})),
        ])
        agent = make_agent(lambda request: next(replies), retries=1)
        assert await agent.generate_narration([], three_civ_state()) == "Second time lucky."

    @pytest.mark.asyncio
    async def test_unexpected_shape(self):
        agent = make_agent(lambda request: httpx.Response(200, json={"nope": []}), retries=0)
        with pytest.raises(AgentError):
            await agent.generate_narration([], three_civ_state())

    @pytest.mark.asyncio
    async def test_json_array_is_rejected(self):
        agent = make_agent(lambda request: httpx.Response(200, json=openai_reply("[1, 2]")), retries=0)
        with pytest.raises(AgentError):
            await agent.generate_narration([], three_civ_state())


class TestAvailability:
    @pytest.mark.asyncio
    async def test_gateway_up(self):
        agent = make_agent(lambda request: httpx.Response(200, json={"data": []}))
        assert await agent.is_available()

    @pytest.mark.asyncio
    async def test_gateway_down(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        assert not await make_agent(handler).is_available()

    @pytest.mark.asyncio
    async def test_keys_mean_available(self):
        def handler(request):
            raise AssertionError("no probe expected")

        assert await make_agent(handler, anthropic_api_key="sk-test").is_available()
