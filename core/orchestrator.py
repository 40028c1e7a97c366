"""
Orchestrator - Request Entry Point

Implements the top-level workflow:
1. Dispatch: let a specialized sub-agent claim the request
2. Fallback: when none does, classify the request as retrieval or dialogue
3. Retrieval: answer strictly from the knowledge base (or refuse)
4. Dialogue: answer from the persona and the recent conversation

Whatever happens, the caller gets exactly one user-facing string.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from ai import LLMClient
from config import (
    DIALOGUE_PROMPT,
    KNOWLEDGE_ANSWER_PROMPT,
    NO_KNOWLEDGE_RESPONSE,
    ORCHESTRATOR_ERROR_MESSAGE,
    DIALOGUE_HISTORY_WINDOW,
    KNOWLEDGE_SEARCH_LIMIT,
    format_prompt,
)
from .dispatcher import AgentDispatcher
from .models import AgentSelection, KnowledgeDocument
from .progress import ProgressSink, notify_safely, START, DELEGATE, SEARCH, DIALOGUE, COMPLETE, ERROR
from .router import RouteType, classify_route

logger = logging.getLogger(__name__)

HANDLED_BY_ORCHESTRATOR = "orchestrator"


# ============================================================================
# DATA STRUCTURES
# ============================================================================

class KnowledgeSearcher(Protocol):
    """Semantic search over the user's knowledge base."""

    def search(self, query: str, limit: int) -> List[KnowledgeDocument]:
        ...


@dataclass
class OrchestrationResult:
    """
    Outcome of processing one request.

    Attributes:
        message: The user-facing answer
        handled_by: Name of the agent that answered, or "orchestrator"
        route: Fallback route taken (None when an agent handled it)
        success: False when processing failed and ``message`` is an error text
        agent_selection: The dispatcher's decision, when an agent was selected
        agent_metadata: Details reported by the agent (e.g. the vault agent's mode)
    """
    message: str
    handled_by: str = HANDLED_BY_ORCHESTRATOR
    route: Optional[RouteType] = None
    success: bool = True
    agent_selection: Optional[AgentSelection] = None
    agent_metadata: Dict[str, Any] = field(default_factory=dict)


# ============================================================================
# ORCHESTRATOR
# ============================================================================

class Orchestrator:
    """
    Routes requests to sub-agents or answers them directly.

    Stateless between requests; safe to share across sessions.
    """

    def __init__(
        self,
        dispatcher: AgentDispatcher,
        llm: LLMClient,
        searcher: Optional[KnowledgeSearcher] = None,
        progress_sink: Optional[ProgressSink] = None,
        search_limit: int = KNOWLEDGE_SEARCH_LIMIT,
        dialogue_window: int = DIALOGUE_HISTORY_WINDOW,
    ):
        """
        Initialize the orchestrator.

        Args:
            dispatcher: Selects sub-agents
            llm: Client for routing, retrieval answers and dialogue
            searcher: Knowledge base search (None disables retrieval answers)
            progress_sink: Receives start/delegate/search/dialogue notifications
            search_limit: Number of documents requested from the searcher
            dialogue_window: Number of trailing history messages used in dialogue
        """
        self.dispatcher = dispatcher
        self.llm = llm
        self.searcher = searcher
        self.progress_sink = progress_sink
        self.search_limit = search_limit
        self.dialogue_window = dialogue_window

    def process(
        self,
        query: str,
        history: Optional[List[Dict[str, str]]] = None,
        session_id: Optional[str] = None,
    ) -> OrchestrationResult:
        """
        Process a user request.

        Args:
            query: The user's message
            history: Conversation history as ``{"role", "content"}`` dicts
            session_id: Session used for progress notifications

        Returns:
            OrchestrationResult; never raises
        """
        history = history or []
        notify_safely(self.progress_sink, session_id, "Analyzing the request...", START)

        try:
            selection = self.dispatcher.select(query, history)

            if selection is not None:
                agent = self.dispatcher.get_agent(selection.agent_id)
                logger.info(
                    f"📨 Delegating to {agent.name} (confidence: {selection.confidence:.2f})"
                )
                notify_safely(self.progress_sink, session_id, f"Delegating to {agent.name}", DELEGATE)
                response = agent.respond(query, history, session_id)
                return OrchestrationResult(
                    message=response.content,
                    handled_by=agent.name,
                    agent_selection=selection,
                    agent_metadata=response.metadata,
                )

            route = classify_route(self.llm, query, history).route
            if route == RouteType.RETRIEVAL:
                message = self._answer_from_knowledge(query, session_id)
            else:
                message = self._answer_dialogue(query, history, session_id)

            notify_safely(self.progress_sink, session_id, "Answer ready", COMPLETE)
            return OrchestrationResult(message=message, route=route)

        except Exception as e:
            logger.error(f"❌ Request processing failed: {e}", exc_info=True)
            message = format_prompt(ORCHESTRATOR_ERROR_MESSAGE, error=e)
            notify_safely(self.progress_sink, session_id, message, ERROR)
            return OrchestrationResult(message=message, success=False)

    def _answer_from_knowledge(self, query: str, session_id: Optional[str]) -> str:
        """Answer strictly from knowledge base documents, or refuse."""
        if self.searcher is None:
            logger.info("ℹ️  No knowledge searcher configured")
            return NO_KNOWLEDGE_RESPONSE

        notify_safely(self.progress_sink, session_id, "Searching the knowledge base...", SEARCH)
        documents = self.searcher.search(query, limit=self.search_limit)

        if not documents:
            logger.info("🔍 Knowledge search returned nothing")
            return NO_KNOWLEDGE_RESPONSE

        logger.info(f"🔍 Knowledge search returned {len(documents)} document(s)")
        context = "\n\n".join(
            f"Document: {doc.path}\n{doc.content}" for doc in documents
        )
        system_prompt = format_prompt(KNOWLEDGE_ANSWER_PROMPT, context=context)
        return self.llm.complete(system_prompt, [{"role": "user", "content": query}])

    def _answer_dialogue(
        self,
        query: str,
        history: List[Dict[str, str]],
        session_id: Optional[str],
    ) -> str:
        notify_safely(self.progress_sink, session_id, "Thinking about the answer...", DIALOGUE)
        messages = list(history[-self.dialogue_window:]) if self.dialogue_window > 0 else []
        messages.append({"role": "user", "content": query})
        return self.llm.complete(DIALOGUE_PROMPT, messages)
