"""Build the configured agent backend."""
from __future__ import annotations
from typing import Optional

from agents.base import AgentService
from agents.llm_agent import LLMAgent
from agents.random_agent import RandomAgent


def build_agent(backend: str, *, llm_url: str = "http://localhost:18789",
                llm_model: str = "anthropic/claude-sonnet-4-6",
                anthropic_api_key: Optional[str] = None, gemini_api_key: Optional[str] = None,
                llm_retries: int = 2, seed: int = 0) -> Optional[AgentService]:
    """None for the "local" backend, which plays every turn with the fallback simulator."""
    if backend == "local":
        return None
    if backend == "random":
        return RandomAgent(seed=seed)
    if backend == "llm":
        return LLMAgent(llm_url=llm_url, model=llm_model, anthropic_api_key=anthropic_api_key,
                        gemini_api_key=gemini_api_key, retries=llm_retries)
    raise ValueError(f"Unknown agent backend: {backend}")
