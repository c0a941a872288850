"""LLM-backed civilization agent via the Anthropic API, Gemini or an OpenAI-compatible gateway."""
from __future__ import annotations
import asyncio
import json
import logging
import re
import time
from typing import Optional

import httpx

from civsim.errors import AgentError
from civsim.types import (
    BROADCAST, ArtifactDraft, CivGameState, CultureSummary, DiplomacyMessage, MessageType,
    PlanningDecision, action_from_dict,
)
from agents import prompts
from agents.base import AgentService

logger = logging.getLogger(__name__)

ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
GEMINI_MODEL = "gemini-2.5-flash"
DEFAULT_NARRATION = "The world turns in silence."
MAX_TOKENS = 1500
TEMPERATURE = 0.4


def extract_json(raw: str) -> str:
    """Pull the JSON object out of a reply that may be fenced or padded with prose."""
    text = raw.strip()
    if text.startswith("{"):
        return text
    fenced = re.search(r"```(?:json)?\s*\n?(.*?)\n?```", text, re.DOTALL)
    if fenced:
        return fenced.group(1).strip()
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        return text[start:end + 1]
    return text


def normalize_civ_id(raw: str, state: CivGameState) -> Optional[str]:
    """Map an agent's addressee (id, civ name, leader name or "all") to a civ id."""
    lower = str(raw).lower().strip()
    if lower == BROADCAST:
        return BROADCAST
    for cid, civ in state.civilizations.items():
        if lower == cid or cid in lower:
            return cid
        if civ.leader_name and civ.leader_name.lower() in lower:
            return cid
        if civ.name and civ.name.lower() in lower:
            return cid
    return None


class LLMAgent(AgentService):
    def __init__(self, llm_url: str = "http://localhost:18789", model: str = "anthropic/claude-sonnet-4-6",
                 anthropic_api_key: Optional[str] = None, gemini_api_key: Optional[str] = None,
                 retries: int = 2, timeout: float = 90, retry_delay: float = 2.0,
                 client: Optional[httpx.AsyncClient] = None):
        self.llm_url = llm_url.rstrip("/")
        self.model = model
        self.anthropic_api_key = anthropic_api_key
        self.gemini_api_key = gemini_api_key
        self.retries = retries
        self.retry_delay = retry_delay
        self.client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def backend(self) -> str:
        if self.anthropic_api_key:
            return "anthropic"
        if self.gemini_api_key:
            return "gemini"
        return "openai"

    async def aclose(self) -> None:
        await self.client.aclose()

    async def is_available(self) -> bool:
        if self.backend != "openai":
            return True
        try:
            resp = await self.client.get(f"{self.llm_url}/v1/models", timeout=5)
        except httpx.HTTPError as e:
            logger.info("LLM gateway at %s unreachable: %s", self.llm_url, e)
            return False
        return resp.status_code < 500

    # ── Transport ────────────────────────────────────────────────────────

    async def _complete(self, prompt: str, system: Optional[str]) -> str:
        if self.backend == "anthropic":
            body = {"model": self.model.replace("anthropic/", ""), "max_tokens": MAX_TOKENS,
                    "temperature": TEMPERATURE, "messages": [{"role": "user", "content": prompt}]}
            if system:
                body["system"] = system
            resp = await self.client.post(ANTHROPIC_URL, json=body, headers={
                "x-api-key": self.anthropic_api_key, "anthropic-version": "2023-06-01",
            })
            resp.raise_for_status()
            data = resp.json()
            usage = data.get("usage", {})
            logger.debug("Anthropic tokens: in=%s out=%s", usage.get("input_tokens"), usage.get("output_tokens"))
            return data["content"][0]["text"]

        if self.backend == "gemini":
            text = f"{system}\n\n{prompt}" if system else prompt
            resp = await self.client.post(
                GEMINI_URL.format(model=GEMINI_MODEL),
                params={"key": self.gemini_api_key},
                json={"contents": [{"parts": [{"text": text}]}],
                      "generationConfig": {"temperature": TEMPERATURE, "maxOutputTokens": 2048,
                                           "responseMimeType": "application/json"}},
            )
            resp.raise_for_status()
            data = resp.json()
            return data["candidates"][0]["content"]["parts"][0]["text"]

        messages = [{"role": "user", "content": prompt}]
        if system:
            messages.insert(0, {"role": "system", "content": system})
        resp = await self.client.post(f"{self.llm_url}/v1/chat/completions", json={
            "model": self.model, "messages": messages, "max_tokens": MAX_TOKENS, "temperature": TEMPERATURE,
        })
        resp.raise_for_status()
        return resp.json()["choices"][0]["message"]["content"]

    async def call_json(self, prompt: str, system: Optional[str] = None) -> dict:
        """One prompt, parsed JSON reply. Raises AgentError once retries run out."""
        for attempt in range(self.retries + 1):
            started = time.perf_counter()
            try:
                raw = await self._complete(prompt, system)
                parsed = json.loads(extract_json(raw))
                if not isinstance(parsed, dict):
                    raise ValueError(f"expected a JSON object, got {type(parsed).__name__}")
                logger.info("LLM (%s) responded in %.1fs", self.backend, time.perf_counter() - started)
                return parsed
            except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as e:
                logger.warning("LLM attempt %d/%d failed: %s", attempt + 1, self.retries + 1, e)
                if attempt == self.retries:
                    raise AgentError(f"LLM call failed after {attempt + 1} attempts: {e}") from e
                await asyncio.sleep(self.retry_delay)
        raise AgentError("LLM call failed")

    # ── Phases ───────────────────────────────────────────────────────────

    async def run_diplomacy_phase(self, civ_id: str, state: CivGameState,
                                  inbox: list[DiplomacyMessage]) -> list[DiplomacyMessage]:
        output = await self.call_json(prompts.diplomacy_prompt(inbox), prompts.system_prompt(civ_id, state))
        messages = []
        for msg in output.get("messages") or []:
            if not isinstance(msg, dict) or not msg.get("content"):
                continue
            to = normalize_civ_id(msg.get("to", ""), state)
            if to is None or to == civ_id:
                continue
            try:
                kind = MessageType(msg.get("message_type") or "message")
            except ValueError:
                kind = MessageType.MESSAGE
            messages.append(DiplomacyMessage(
                id=state.next_id("msg_"), turn=state.turn, sender=civ_id,
                recipient=to, type=kind, content=str(msg["content"]),
            ))
        return messages

    async def run_planning_phase(self, civ_id: str, state: CivGameState,
                                 diplomacy_context: str) -> PlanningDecision:
        output = await self.call_json(prompts.planning_prompt(civ_id, state, diplomacy_context),
                                      prompts.planning_system_prompt(civ_id, state))
        decision = PlanningDecision()
        for raw in output.get("actions") or []:
            action = action_from_dict(raw) if isinstance(raw, dict) else None
            if action is None:
                logger.debug("Skipping unknown action from %s: %s", civ_id, raw)
                continue
            decision.actions.append(action)
        for raw in output.get("artifacts") or []:
            if isinstance(raw, dict) and raw.get("title"):
                decision.artifacts.append(ArtifactDraft(
                    kind=str(raw.get("kind") or "work"), title=str(raw["title"]),
                    content=str(raw.get("content") or ""),
                ))
        if output.get("constitution_name"):
            decision.constitution_name = str(output["constitution_name"])
        if output.get("religion_name"):
            decision.religion_name = str(output["religion_name"])
        return decision

    async def run_cultural_summarization(self, civ_id: str,
                                         state: CivGameState) -> Optional[CultureSummary]:
        if not state.civilizations[civ_id].culture.artifacts:
            return None
        output = await self.call_json(prompts.culture_prompt(civ_id, state))
        text = output.get("summary")
        if not text:
            return None
        values = [str(v) for v in output.get("values") or []][:5]
        return CultureSummary(turn=state.turn, text=str(text), values=values)

    async def generate_narration(self, events: list[str], state: CivGameState) -> str:
        output = await self.call_json(prompts.narrator_prompt(events, state))
        return str(output.get("narration") or DEFAULT_NARRATION)
