"""
Chat Service - Main Coordinator

Entry point for callers (UI, API, CLI):
1. Receives the user message and conversation history
2. Trims the history and assigns a session id
3. Hands the request to the orchestrator
4. Returns the answer with routing metadata
"""

import time
import uuid
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ai import GeminiClient, LLMClient
from config import MAX_HISTORY_SIZE
from core import (
    AgentDispatcher,
    CapabilityCache,
    KnowledgeSearcher,
    LoggingProgressSink,
    OrchestrationResult,
    Orchestrator,
    ProgressSink,
)
from tools import NoteStore
from .vault_agent import VaultAgent

logger = logging.getLogger(__name__)


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass
class ChatResponse:
    """
    Response from the chat service.

    Attributes:
        message: The response text to display to the user
        success: Whether the request was handled successfully
        metadata: Session id, who answered, route and timing
        result: Full orchestration result (for debugging)
    """
    message: str
    success: bool
    metadata: Dict[str, Any]
    result: Optional[OrchestrationResult] = None


# ============================================================================
# CHAT SERVICE
# ============================================================================

class ChatService:
    """
    Main chat service coordinator.

    Holds no per-session state; the caller owns the conversation history.
    """

    def __init__(self, orchestrator: Orchestrator, max_history: int = MAX_HISTORY_SIZE):
        """
        Initialize the chat service.

        Args:
            orchestrator: Processes each request
            max_history: Maximum number of history messages passed on
        """
        self.orchestrator = orchestrator
        self.max_history = max_history
        logger.info("✅ ChatService initialized")

    def process_message(
        self,
        user_message: str,
        conversation_history: Optional[List[Dict[str, str]]] = None,
        session_id: Optional[str] = None,
    ) -> ChatResponse:
        """
        Process a user message and generate a response.

        Args:
            user_message: The user's input text
            conversation_history: Previous conversation turns
            session_id: Session identifier (generated when missing)

        Returns:
            ChatResponse with the reply and metadata
        """
        if not session_id:
            session_id = str(uuid.uuid4())

        history = trim_history(conversation_history, self.max_history)
        logger.info(f"💬 Processing message (session: {session_id}): {user_message[:50]}...")

        start_time = time.time()
        result = self.orchestrator.process(user_message, history, session_id)
        execution_time = time.time() - start_time

        selection = result.agent_selection
        return ChatResponse(
            message=result.message,
            success=result.success,
            metadata={
                "session_id": session_id,
                "handled_by": result.handled_by,
                "route": result.route.value if result.route else None,
                "agent": selection.agent_id if selection else None,
                "confidence": selection.confidence if selection else None,
                "agent_metadata": result.agent_metadata,
                "execution_time": execution_time,
            },
            result=result,
        )


def trim_history(
    history: Optional[List[Dict[str, str]]],
    max_size: int = MAX_HISTORY_SIZE,
) -> List[Dict[str, str]]:
    """Keep the last ``max_size`` messages."""
    if not history or max_size <= 0:
        return []
    return list(history[-max_size:])


# ============================================================================
# FACTORY
# ============================================================================

def build_orchestrator(
    llm: Optional[LLMClient] = None,
    store: Optional[NoteStore] = None,
    searcher: Optional[KnowledgeSearcher] = None,
    progress_sink: Optional[ProgressSink] = None,
    cache: Optional[CapabilityCache] = None,
) -> Orchestrator:
    """
    Wire the default orchestrator.

    Args:
        llm: LLM client (defaults to GeminiClient from settings)
        store: Note store; without one the vault agent is not registered
        searcher: Knowledge base search for the retrieval route
        progress_sink: Progress receiver (defaults to logging)
        cache: Capability cache shared by all agents

    Returns:
        Orchestrator ready to process requests
    """
    llm = llm or GeminiClient()
    progress_sink = progress_sink or LoggingProgressSink()
    cache = cache or CapabilityCache()

    agents = []
    if store is not None:
        agents.append(VaultAgent(llm, store, cache=cache, progress_sink=progress_sink))
    else:
        logger.warning("⚠️  No note store configured; vault agent disabled")

    dispatcher = AgentDispatcher(agents, llm)
    return Orchestrator(dispatcher, llm, searcher=searcher, progress_sink=progress_sink)


# ============================================================================
# CONVENIENCE FUNCTION
# ============================================================================

def process_user_message(
    user_message: str,
    conversation_history: Optional[List[Dict[str, str]]] = None,
    session_id: Optional[str] = None,
    **kwargs
) -> ChatResponse:
    """
    Convenience function to process a user message.

    Args:
        user_message: The user's message
        conversation_history: Previous conversation
        session_id: Session ID
        **kwargs: Passed to build_orchestrator (llm, store, searcher, ...)

    Returns:
        ChatResponse
    """
    service = ChatService(build_orchestrator(**kwargs))
    return service.process_message(
        user_message=user_message,
        conversation_history=conversation_history,
        session_id=session_id,
    )
