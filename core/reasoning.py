"""
ReAct Reasoning Engine

Drives a bounded Thought -> Action -> Observation loop for one request:

1. Ask the LLM for the next step (one call, no retry)
2. Parse the answer (see core.parser)
3. Complete -> finish; Action -> execute it and record the observation;
   anything else -> record an empty step
4. Stop after ``max_steps``

Every run ends in a terminal state with exactly one user-facing string in
``final_result``. Actions have real side effects, so each one runs at most
once and LLM calls are never retried here.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeoutError
from typing import Dict, List, Optional

from ai import LLMClient
from config import (
    MAX_REASONING_STEPS,
    REASONING_HISTORY_WINDOW,
    TOOL_TIMEOUT,
    VAULT_DIR_NAME,
    REASONING_STEP_INSTRUCTION,
    REASONING_ERROR_MESSAGE,
    STEP_LIMIT_MESSAGE,
    CANCELLED_MESSAGE,
    EMPTY_COMPLETION_MESSAGE,
    build_reasoning_prompt,
    format_prompt,
)
from .errors import ReasoningLLMError
from .models import (
    ReasoningContext,
    ReasoningStatus,
    ReasoningStep,
    ToolAction,
    ToolExecutor,
    format_history,
)
from .parser import parse_response
from .progress import (
    ProgressSink,
    notify_safely,
    THINKING,
    ACTION,
    OBSERVATION,
    COMPLETE,
    ERROR,
)

logger = logging.getLogger(__name__)


class ReasoningEngine:
    """
    Runs ReAct loops against a tool executor.

    The engine itself is stateless between runs and can serve many sessions
    at once; each run owns its ReasoningContext and its tool worker.
    """

    def __init__(
        self,
        llm: LLMClient,
        executor: ToolExecutor,
        max_steps: int = MAX_REASONING_STEPS,
        history_window: int = REASONING_HISTORY_WINDOW,
        tool_timeout: Optional[float] = TOOL_TIMEOUT,
        progress_sink: Optional[ProgressSink] = None,
        vault_dir: str = VAULT_DIR_NAME,
    ):
        """
        Initialize the engine.

        Args:
            llm: Client used to generate steps
            executor: Runs the actions the model asks for
            max_steps: Step budget per run
            history_window: Number of trailing chat messages shown to the model
            tool_timeout: Seconds an action may take (None waits forever)
            progress_sink: Receives thinking/action/observation notifications
            vault_dir: Vault folder name used in the path rules of the prompt
        """
        if max_steps < 1:
            raise ValueError("max_steps must be at least 1")

        self.llm = llm
        self.executor = executor
        self.max_steps = max_steps
        self.history_window = history_window
        self.tool_timeout = tool_timeout
        self.progress_sink = progress_sink
        self.system_prompt = build_reasoning_prompt(vault_dir)

    def run(
        self,
        query: str,
        history: Optional[List[Dict[str, str]]] = None,
        session_id: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ReasoningContext:
        """
        Execute a reasoning run.

        Args:
            query: The user's request
            history: Conversation history as ``{"role", "content"}`` dicts
            session_id: Session used for progress notifications
            cancel_event: When set, the run stops before its next step

        Returns:
            A terminal ReasoningContext
        """
        context = ReasoningContext(original_query=query)
        logger.info(f"🧠 Reasoning started (max {self.max_steps} steps): {query[:80]}")

        # One worker per run: a timed-out action never overlaps the next one
        worker = ThreadPoolExecutor(max_workers=1, thread_name_prefix="reasoning-tool")
        try:
            self._loop(context, history or [], session_id, cancel_event, worker)
        finally:
            worker.shutdown(wait=False, cancel_futures=True)

        logger.info(
            f"🏁 Reasoning finished: {context.status.value} after {len(context.steps)} step(s)"
        )
        return context

    def _loop(
        self,
        context: ReasoningContext,
        history: List[Dict[str, str]],
        session_id: Optional[str],
        cancel_event: Optional[threading.Event],
        worker: ThreadPoolExecutor,
    ) -> None:
        for step_number in range(1, self.max_steps + 1):
            if cancel_event is not None and cancel_event.is_set():
                message = format_prompt(CANCELLED_MESSAGE, steps=len(context.steps))
                context.finish(ReasoningStatus.CANCELLED, message)
                notify_safely(self.progress_sink, session_id, message, ERROR)
                return

            notify_safely(self.progress_sink, session_id, f"Step {step_number}: thinking...", THINKING)

            try:
                text = self._generate_step(context, history, step_number)
            except ReasoningLLMError as e:
                logger.error(f"❌ Reasoning step {step_number} failed: {e.message}")
                message = format_prompt(REASONING_ERROR_MESSAGE, error=e.message)
                context.finish(ReasoningStatus.ERROR, message)
                notify_safely(self.progress_sink, session_id, message, ERROR)
                return

            parsed = parse_response(text, step_number)

            if parsed.complete is not None:
                result = parsed.complete or EMPTY_COMPLETION_MESSAGE
                context.finish(ReasoningStatus.COMPLETED, result)
                notify_safely(self.progress_sink, session_id, result, COMPLETE)
                return

            if parsed.action is not None:
                if parsed.thought:
                    notify_safely(self.progress_sink, session_id, parsed.thought, THINKING)
                notify_safely(self.progress_sink, session_id, parsed.action.render(), ACTION)

                observation = self._execute(parsed.action, worker)
                notify_safely(self.progress_sink, session_id, observation, OBSERVATION)

                context.add_step(ReasoningStep(
                    step_number=step_number,
                    thought=parsed.thought,
                    action=parsed.action,
                    observation=observation,
                ))
            else:
                logger.warning(f"⚠️  Step {step_number}: no action or completion in response")
                context.add_step(ReasoningStep(step_number=step_number, thought=parsed.thought))

        message = format_prompt(STEP_LIMIT_MESSAGE, max_steps=self.max_steps)
        context.finish(ReasoningStatus.STEP_LIMIT_EXCEEDED, message)
        notify_safely(self.progress_sink, session_id, message, ERROR)

    def _generate_step(
        self,
        context: ReasoningContext,
        history: List[Dict[str, str]],
        step_number: int,
    ) -> str:
        """
        Build the step prompt and make the single LLM call for it.

        Raises:
            ReasoningLLMError: The call failed; it is not retried
        """
        parts = []
        history_text = format_history(history, self.history_window)
        if history_text:
            parts.append(f"Conversation history:\n{history_text}")
        parts.append(context.to_prompt_text())
        parts.append(format_prompt(REASONING_STEP_INSTRUCTION, step_number=step_number))

        messages = [{"role": "user", "content": "\n\n".join(parts)}]
        try:
            return self.llm.complete(self.system_prompt, messages)
        except Exception as e:
            raise ReasoningLLMError(f"{type(e).__name__}: {e}") from e

    def _execute(self, action: ToolAction, worker: ThreadPoolExecutor) -> str:
        """
        Run one action on the run's worker and return its observation.

        Failures and timeouts are reported as observations so the model can
        react to them in the next step.
        """
        logger.info(f"🔧 Executing: {action.render()}")
        future = worker.submit(self.executor.execute, action.tool_name, dict(action.parameters))

        try:
            result = future.result(timeout=self.tool_timeout)
        except FuturesTimeoutError:
            if future.cancel():
                # Still queued behind an earlier action that outlived its timeout
                logger.error(f"⏱️  Action never started: {action.tool_name}")
                return (
                    f"Action not executed: {action.tool_name} did not start because "
                    f"a previous action is still running"
                )
            logger.error(f"⏱️  Action timed out after {self.tool_timeout}s: {action.tool_name}")
            return (
                f"Action failed: {action.tool_name} timed out after {self.tool_timeout}s "
                f"(it may still complete)"
            )
        except Exception as e:
            logger.warning(f"⚠️  Action failed: {action.tool_name}: {e}")
            return f"Action failed: {e}"

        return result if isinstance(result, str) else str(result)
