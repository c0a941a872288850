"""Interface every civilization agent backend implements."""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Optional
from civsim.types import CivGameState, CultureSummary, DiplomacyMessage, PlanningDecision


class AgentService(ABC):
    """One backend that speaks for every civilization in a game.

    Any method may raise; the turn engine does not catch agent errors.
    """

    @abstractmethod
    async def run_diplomacy_phase(self, civ_id: str, state: CivGameState,
                                  inbox: list[DiplomacyMessage]) -> list[DiplomacyMessage]:
        """Messages civ_id sends this turn, given what it has received so far."""

    @abstractmethod
    async def run_planning_phase(self, civ_id: str, state: CivGameState,
                                 diplomacy_context: str) -> PlanningDecision:
        ...

    @abstractmethod
    async def run_cultural_summarization(self, civ_id: str,
                                         state: CivGameState) -> Optional[CultureSummary]:
        ...

    @abstractmethod
    async def generate_narration(self, events: list[str], state: CivGameState) -> str:
        ...

    async def is_available(self) -> bool:
        return True

    async def aclose(self) -> None:
        pass
