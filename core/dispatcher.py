"""
Agent Dispatch

Chooses which sub-agent, if any, should handle a request.

Selection:
- agents whose availability probe fails are skipped
- every remaining agent is asked ``can_handle`` (memoized per agent)
- no match -> None (the orchestrator answers itself)
- one match -> that agent, full confidence
- several matches -> one LLM arbitration call picks among them

Capability checks run in three tiers so most requests never reach the LLM:
keyword hit -> yes, no action verb -> no, otherwise ask the LLM.
"""

import re
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Pattern, Sequence

from ai import LLMClient, retry_on_error
from config import (
    CAPABILITY_PROMPT,
    ARBITRATION_PROMPT,
    CLASSIFICATION_HISTORY_WINDOW,
    SINGLE_MATCH_CONFIDENCE,
    ARBITRATION_CONFIDENCE,
    FALLBACK_CONFIDENCE,
    format_prompt,
)
from .cache import CapabilityCache, make_cache_key
from .errors import ClassificationError
from .models import AgentResponse, AgentSelection, format_history

logger = logging.getLogger(__name__)

_TRUTHY_RE = re.compile(r"\b(true|yes)\b", re.IGNORECASE)


# ============================================================================
# SUB-AGENT CONTRACT
# ============================================================================

class SubAgent(ABC):
    """
    A specialized agent the dispatcher can delegate to.

    Subclasses set ``name``, ``description``, ``tools`` and the capability
    hints (``keywords``, ``action_verbs``) and implement ``handle``.
    """

    name: str = ""
    description: str = ""
    tools: Sequence[str] = ()

    # Literal substrings that claim a request without asking the LLM
    keywords: Sequence[str] = ()
    # Requests without an action verb are declined without asking the LLM
    action_verbs: Optional[Pattern] = None

    def __init__(
        self,
        llm: LLMClient,
        cache: Optional[CapabilityCache] = None,
        history_window: int = CLASSIFICATION_HISTORY_WINDOW,
    ):
        if not self.name:
            raise ValueError(f"{type(self).__name__} must define a name")
        self.llm = llm
        self.cache = cache if cache is not None else CapabilityCache()
        self.history_window = history_window

    def is_available(self) -> bool:
        """Whether the agent's backing resources are reachable."""
        return True

    @abstractmethod
    def handle(
        self,
        query: str,
        history: Optional[List[Dict[str, str]]] = None,
        session_id: Optional[str] = None,
    ) -> str:
        """Process the request and return the user-facing answer."""

    def respond(
        self,
        query: str,
        history: Optional[List[Dict[str, str]]] = None,
        session_id: Optional[str] = None,
    ) -> AgentResponse:
        """Like ``handle``, plus agent-specific metadata. The default has none."""
        return AgentResponse(content=self.handle(query, history, session_id))

    def can_handle(self, query: str, history: Optional[List[Dict[str, str]]] = None) -> bool:
        """
        Decide whether this agent should handle the request.

        Decisions are cached per (agent, query, last two history messages).
        A failed LLM classification answers False and is not cached.
        """
        key = make_cache_key(self.name, query, history)
        try:
            return self.cache.get_or_compute(key, lambda: self._classify(query, history))
        except ClassificationError as e:
            logger.warning(f"⚠️  {e.message}. Treating as not applicable.")
            return False

    def capability_prompt(self) -> str:
        return format_prompt(
            CAPABILITY_PROMPT,
            agent_name=self.name,
            agent_description=self.description,
        )

    def _classify(self, query: str, history: Optional[List[Dict[str, str]]]) -> bool:
        lowered = query.lower()
        if any(keyword.lower() in lowered for keyword in self.keywords):
            logger.debug(f"🔑 {self.name}: keyword match")
            return True

        if self.action_verbs is not None and not self.action_verbs.search(query):
            logger.debug(f"🚫 {self.name}: no action verb")
            return False

        return self._classify_with_llm(query, history)

    def _classify_with_llm(self, query: str, history: Optional[List[Dict[str, str]]]) -> bool:
        context = format_history(history, self.history_window)
        content = f"Recent conversation:\n{context}\n\nRequest: {query}" if context else f"Request: {query}"
        system_prompt = self.capability_prompt()

        @retry_on_error()
        def ask() -> str:
            return self.llm.complete(system_prompt, [{"role": "user", "content": content}])

        try:
            response = ask()
        except Exception as e:
            raise ClassificationError(f"{self.name} capability check failed: {e}") from e

        decision = bool(_TRUTHY_RE.search(response or ""))
        logger.info(f"🤖 {self.name} capability check: {decision}")
        return decision


# ============================================================================
# DISPATCHER
# ============================================================================

class AgentDispatcher:
    """Selects a sub-agent from a fixed pool."""

    def __init__(self, agents: Sequence[SubAgent], llm: LLMClient):
        names = [agent.name for agent in agents]
        if len(set(names)) != len(names):
            raise ValueError(f"Agent names must be unique: {names}")
        self.agents = list(agents)
        self.llm = llm

    def get_agent(self, agent_id: str) -> Optional[SubAgent]:
        for agent in self.agents:
            if agent.name == agent_id:
                return agent
        return None

    def select(
        self,
        query: str,
        history: Optional[List[Dict[str, str]]] = None,
    ) -> Optional[AgentSelection]:
        """
        Select the agent that should handle the request.

        Args:
            query: The user's request
            history: Conversation history

        Returns:
            AgentSelection, or None when no agent applies (or arbitration failed)
        """
        available = [agent for agent in self.agents if self._is_available(agent)]
        candidates = [agent for agent in available if self._can_handle(agent, query, history)]

        if not candidates:
            logger.info("🤷 No agent can handle the request")
            return None

        if len(candidates) == 1:
            agent = candidates[0]
            logger.info(f"🎯 Selected agent: {agent.name}")
            return AgentSelection(
                agent_id=agent.name,
                confidence=SINGLE_MATCH_CONFIDENCE,
                reason="Only agent able to handle the request",
            )

        return self._arbitrate(query, candidates)

    def _is_available(self, agent: SubAgent) -> bool:
        try:
            return agent.is_available()
        except Exception as e:
            logger.warning(f"⚠️  Availability check failed for {agent.name}: {e}")
            return False

    def _can_handle(
        self,
        agent: SubAgent,
        query: str,
        history: Optional[List[Dict[str, str]]],
    ) -> bool:
        try:
            return agent.can_handle(query, history)
        except Exception as e:
            logger.warning(f"⚠️  Capability check raised for {agent.name}: {e}")
            return False

    def _arbitrate(self, query: str, candidates: List[SubAgent]) -> Optional[AgentSelection]:
        """Ask the LLM to choose among several capable agents."""
        descriptions = "\n".join(f"{agent.name}: {agent.description}" for agent in candidates)
        system_prompt = format_prompt(ARBITRATION_PROMPT, agent_descriptions=descriptions, query=query)
        logger.info(f"⚖️  Arbitrating between {len(candidates)} agents")

        @retry_on_error()
        def ask() -> str:
            return self.llm.complete(system_prompt, [{"role": "user", "content": query}])

        try:
            response = ask()
        except Exception as e:
            logger.error(f"❌ Agent arbitration failed: {e}")
            return None

        chosen = match_agent_name(response, candidates)
        if chosen is None:
            fallback = candidates[0]
            logger.warning(
                f"⚠️  Could not match arbitration answer {response!r}, using {fallback.name}"
            )
            return AgentSelection(
                agent_id=fallback.name,
                confidence=FALLBACK_CONFIDENCE,
                reason="Arbitration answer did not name a candidate; first capable agent used",
            )

        logger.info(f"🎯 Arbitration selected: {chosen.name}")
        return AgentSelection(
            agent_id=chosen.name,
            confidence=ARBITRATION_CONFIDENCE,
            reason="Chosen by LLM arbitration",
        )


def match_agent_name(response: Optional[str], candidates: Sequence[SubAgent]) -> Optional[SubAgent]:
    """
    Find the candidate named in an arbitration answer.

    An exact (case and quote insensitive) name wins; otherwise the answer
    must mention exactly one candidate name.
    """
    if not response:
        return None

    cleaned = response.strip().strip("\"'`*. \n").lower()
    for agent in candidates:
        if agent.name.lower() == cleaned:
            return agent

    lowered = response.lower()
    mentioned = [
        agent for agent in candidates
        if re.search(rf"\b{re.escape(agent.name.lower())}\b", lowered)
    ]
    return mentioned[0] if len(mentioned) == 1 else None
