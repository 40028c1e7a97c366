"""
Vault Agent

Sub-agent for the user's Obsidian vault. It claims requests that mention
the vault or ask to create, read, find, change or delete notes.

Each claimed request runs in one of two modes:
- simple: one LLM call turns the request into a single tool call, which is
  executed directly ("read plan.md", "delete test456.md")
- reasoning: the ReAct engine runs a bounded Thought/Action/Observation
  loop ("find the draft about Thailand and delete it")

An LLM call decides the mode. If it fails, the request is treated as
simple. A simple attempt that fails (nothing found, invalid call) is retried
once in reasoning mode.
"""

import re
import logging
import threading
from typing import Dict, List, Optional, Tuple

from ai import LLMClient
from config import (
    MAX_REASONING_STEPS,
    TOOL_TIMEOUT,
    VAULT_DIR_NAME,
    COMPLEXITY_PROMPT,
    UNPARSED_SIMPLE_ACTION_MESSAGE,
    build_simple_action_prompt,
    format_prompt,
)
from core import (
    AgentResponse,
    CapabilityCache,
    ProgressSink,
    ReasoningContext,
    ReasoningEngine,
    SubAgent,
    VaultAgentError,
    format_history,
    notify_safely,
    parse_response,
)
from core.progress import THINKING, ACTION, OBSERVATION, COMPLETE
from tools import TOOL_SPECS, NoteStore, VaultToolExecutor

logger = logging.getLogger(__name__)

MODE_SIMPLE = "simple"
MODE_REASONING = "reasoning"

_COMPLEX_RE = re.compile(r"[\s\"'*`]*complex\b", re.IGNORECASE)

# Observations after which a simple attempt counts as failed
_FAILED_OBSERVATION_PREFIXES = ("Note not found:", "Unknown tool:")


class VaultAgent(SubAgent):
    """Handles note management in the Obsidian vault."""

    name = "vault_agent"
    description = (
        "Works with the user's Obsidian vault: creates, reads, updates and deletes "
        "markdown notes, searches them by text or tags, lists tags and backlinks."
    )
    tools = tuple(TOOL_SPECS)

    keywords = ("obsidian", "vault", ".md")
    action_verbs = re.compile(
        r"\b(create|write|read|open|show|find|search|look\s+up|delete|remove|update|edit|"
        r"rename|append|list|tag\w*|backlinks?)\b"
        r"|note|создай|прочитай|найди|удали|заметк",
        re.IGNORECASE,
    )

    def __init__(
        self,
        llm: LLMClient,
        store: NoteStore,
        cache: Optional[CapabilityCache] = None,
        progress_sink: Optional[ProgressSink] = None,
        max_steps: int = MAX_REASONING_STEPS,
        tool_timeout: Optional[float] = TOOL_TIMEOUT,
        vault_dir: str = VAULT_DIR_NAME,
    ):
        super().__init__(llm, cache=cache)
        self.store = store
        self.progress_sink = progress_sink
        self.executor = VaultToolExecutor(store, allowed_tools=self.tools, vault_dir=vault_dir)
        self.simple_prompt = build_simple_action_prompt(vault_dir)
        self.engine = ReasoningEngine(
            llm,
            self.executor,
            max_steps=max_steps,
            tool_timeout=tool_timeout,
            progress_sink=progress_sink,
            vault_dir=vault_dir,
        )

    def is_available(self) -> bool:
        return bool(self.store.is_available())

    # ========================================================================
    # ENTRY POINTS
    # ========================================================================

    def handle(
        self,
        query: str,
        history: Optional[List[Dict[str, str]]] = None,
        session_id: Optional[str] = None,
    ) -> str:
        return self.respond(query, history, session_id).content

    def respond(
        self,
        query: str,
        history: Optional[List[Dict[str, str]]] = None,
        session_id: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> AgentResponse:
        """
        Answer a vault request in simple or reasoning mode.

        Args:
            query: The user's request
            history: Conversation history as ``{"role", "content"}`` dicts
            session_id: Session used for progress notifications
            cancel_event: Stops a reasoning run before its next step

        Returns:
            AgentResponse whose metadata has ``mode`` ("simple" or "reasoning");
            reasoning answers add ``status``, ``steps_count`` and ``reasoning_steps``,
            and a failed simple attempt adds ``fallback_from`` and ``simple_error``
        """
        logger.info(f"🗂️  Vault agent handling: {query[:80]}")

        if self.is_complex(query, history):
            return self._respond_with_reasoning(query, history, session_id, cancel_event)

        response, failed = self._respond_simple(query, history, session_id)
        if not failed:
            return response

        logger.warning(f"⚠️  Simple mode failed, falling back to reasoning: {response.content[:100]}")
        fallback = self._respond_with_reasoning(query, history, session_id, cancel_event)
        fallback.metadata["fallback_from"] = MODE_SIMPLE
        fallback.metadata["simple_error"] = response.content
        return fallback

    def run(
        self,
        query: str,
        history: Optional[List[Dict[str, str]]] = None,
        session_id: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ReasoningContext:
        """Run the reasoning loop and return the full context (steps included)."""
        return self.engine.run(query, history, session_id=session_id, cancel_event=cancel_event)

    def is_complex(self, query: str, history: Optional[List[Dict[str, str]]] = None) -> bool:
        """
        Ask the LLM whether the request needs several dependent actions.

        A failed call counts as simple.
        """
        try:
            response = self.llm.complete(
                COMPLEXITY_PROMPT,
                [{"role": "user", "content": self._request_text(query, history)}],
            )
        except Exception as e:
            logger.warning(f"⚠️  Complexity check failed, using simple mode: {e}")
            return False

        decision = bool(_COMPLEX_RE.match(response or ""))
        logger.info(f"🧩 Request complexity: {'complex' if decision else 'simple'}")
        return decision

    # ========================================================================
    # MODES
    # ========================================================================

    def _respond_simple(
        self,
        query: str,
        history: Optional[List[Dict[str, str]]],
        session_id: Optional[str],
    ) -> Tuple[AgentResponse, bool]:
        """
        Turn the request into one tool call and run it.

        Returns:
            (response, failed). ``failed`` is True when no valid call came back,
            the call was rejected, or its target does not exist.
        """
        metadata = {"mode": MODE_SIMPLE}
        notify_safely(self.progress_sink, session_id, "Running a single vault action...", THINKING)

        try:
            text = self.llm.complete(
                self.simple_prompt,
                [{"role": "user", "content": self._request_text(query, history)}],
            )
        except Exception as e:
            logger.warning(f"⚠️  Simple action request failed: {e}")
            return AgentResponse(f"Error: {e}", metadata), True

        action = parse_response(text, step_number=1).action
        if action is None:
            message = format_prompt(UNPARSED_SIMPLE_ACTION_MESSAGE, response=(text or "").strip()[:200])
            return AgentResponse(message, metadata), True

        metadata["action"] = action.tool_name
        metadata["parameters"] = dict(action.parameters)
        notify_safely(self.progress_sink, session_id, action.render(), ACTION)
        logger.info(f"🔧 Executing: {action.render()}")

        try:
            observation = self.executor.execute(action.tool_name, dict(action.parameters))
        except VaultAgentError as e:
            observation = f"Action failed: {e.message}"
            failed = True
        else:
            failed = observation.startswith(_FAILED_OBSERVATION_PREFIXES)

        notify_safely(self.progress_sink, session_id, observation, OBSERVATION)
        if not failed:
            notify_safely(self.progress_sink, session_id, observation, COMPLETE)
        return AgentResponse(observation, metadata), failed

    def _respond_with_reasoning(
        self,
        query: str,
        history: Optional[List[Dict[str, str]]],
        session_id: Optional[str],
        cancel_event: Optional[threading.Event],
    ) -> AgentResponse:
        context = self.run(query, history, session_id=session_id, cancel_event=cancel_event)
        return AgentResponse(
            content=context.final_result,
            metadata={
                "mode": MODE_REASONING,
                "status": context.status.value,
                "steps_count": len(context.steps),
                "reasoning_steps": [
                    {
                        "thought": step.thought,
                        "action": step.action.tool_name if step.action else None,
                        "observation": step.observation,
                    }
                    for step in context.steps
                ],
            },
        )

    def _request_text(self, query: str, history: Optional[List[Dict[str, str]]]) -> str:
        context = format_history(history, self.history_window)
        return f"Recent conversation:\n{context}\n\nRequest: {query}" if context else f"Request: {query}"
