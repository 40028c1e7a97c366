"""
Shared data types for dispatch and reasoning.

ReasoningContext is owned by exactly one reasoning run; steps are appended
in strictly increasing order and are frozen once recorded.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Protocol
from dataclasses import dataclass, field


# ============================================================================
# REASONING TYPES
# ============================================================================

class ReasoningStatus(Enum):
    """Lifecycle of a reasoning run. Everything but RUNNING is terminal."""
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"
    STEP_LIMIT_EXCEEDED = "step_limit_exceeded"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ToolAction:
    """
    A named, parameterized operation for the tool executor.

    Opaque to the reasoning engine: it only forwards the name and the
    parameters and reads back an observation.
    """
    tool_name: str
    parameters: Dict[str, str] = field(default_factory=dict)

    def render(self) -> str:
        """
        Render in the same call syntax the model writes, e.g. ``read_note(path="a.md")``.

        Values are escaped so the rendered call parses back to the same action.
        """
        args = ", ".join(
            f'{key}="{_escape(value)}"' for key, value in self.parameters.items()
        )
        return f"{self.tool_name}({args})"


class ToolExecutor(Protocol):
    """
    Runs a tool action and returns its observation text.

    Implementations raise on failure; the reasoning engine turns the
    exception into an observation.
    """

    def execute(self, tool_name: str, parameters: Dict[str, str]) -> str:
        ...


@dataclass(frozen=True)
class ReasoningStep:
    """
    One Thought/Action/Observation iteration.

    Attributes:
        step_number: 1-based position in the run
        thought: The model's reasoning for this step (may be empty)
        action: Action requested by the model, None for malformed output
        observation: Result of the action, None when no action ran
    """
    step_number: int
    thought: str
    action: Optional[ToolAction] = None
    observation: Optional[str] = None


@dataclass
class ReasoningContext:
    """
    State of one reasoning run.

    Invariants:
        - step numbers run 1, 2, 3, ... without gaps
        - is_completed is True exactly when final_result is set
    """
    original_query: str
    steps: List[ReasoningStep] = field(default_factory=list)
    status: ReasoningStatus = ReasoningStatus.RUNNING
    final_result: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.status != ReasoningStatus.RUNNING

    @property
    def next_step_number(self) -> int:
        return len(self.steps) + 1

    def add_step(self, step: ReasoningStep) -> None:
        """Append a step; its number must be exactly the next one."""
        if self.is_completed:
            raise ValueError("Cannot add steps to a finished reasoning run")
        if step.step_number != self.next_step_number:
            raise ValueError(
                f"Expected step {self.next_step_number}, got step {step.step_number}"
            )
        self.steps.append(step)

    def finish(self, status: ReasoningStatus, result: str) -> None:
        """Move the run into a terminal state with its final result."""
        if status == ReasoningStatus.RUNNING:
            raise ValueError("finish() requires a terminal status")
        if result is None:
            raise ValueError("A finished reasoning run must have a final result")
        if self.is_completed:
            raise ValueError(f"Reasoning run already finished as {self.status.value}")
        self.status = status
        self.final_result = result

    def to_prompt_text(self) -> str:
        """Render the query and all prior steps for the next prompt."""
        lines = [f"Original Query: {self.original_query}", ""]
        for step in self.steps:
            lines.append(f"Step {step.step_number}:")
            lines.append(f"Thought: {step.thought}")
            if step.action is not None:
                lines.append(f"Action: {step.action.render()}")
            if step.observation is not None:
                lines.append(f"Observation: {step.observation}")
            lines.append("")
        return "\n".join(lines)


# ============================================================================
# DISPATCH TYPES
# ============================================================================

@dataclass
class AgentResponse:
    """
    A sub-agent's answer plus details about how it was produced.

    Attributes:
        content: The user-facing answer
        metadata: Agent-specific details (e.g. the vault agent's ``mode``)
    """
    content: str
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class AgentSelection:
    """
    Result of agent dispatch. Produced once per select() call, not persisted.

    Attributes:
        agent_id: Name of the selected sub-agent
        confidence: Selection confidence (0.0 - 1.0)
        reason: Why this agent was chosen
    """
    agent_id: str
    confidence: float
    reason: str

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")


@dataclass
class KnowledgeDocument:
    """A document returned by the knowledge base search."""
    path: str
    content: str
    score: Optional[float] = None


# ============================================================================
# HELPERS
# ============================================================================

def _escape(value: str) -> str:
    return (
        str(value)
        .replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\t", "\\t")
    )


def format_history(history: Optional[List[Dict[str, str]]], limit: int) -> str:
    """
    Format the last ``limit`` chat messages as ``User: ...`` / ``Assistant: ...`` lines.

    Returns an empty string when there is nothing to show.
    """
    if not history or limit <= 0:
        return ""
    lines = []
    for msg in history[-limit:]:
        content = (msg.get("content") or "").strip()
        if not content:
            continue
        label = "User" if msg.get("role") == "user" else "Assistant"
        lines.append(f"{label}: {content}")
    return "\n".join(lines)
