"""
Core Module

Agent dispatch, the ReAct reasoning engine and the orchestrator:
- AgentDispatcher / SubAgent: choose a specialized agent for a request
- ReasoningEngine: bounded Thought/Action/Observation loop over tools
- Orchestrator: delegation plus retrieval/dialogue fallback
- CapabilityCache: memoized capability decisions shared across sessions
"""

from .models import (
    AgentResponse,
    ReasoningStatus,
    ReasoningStep,
    ReasoningContext,
    ToolAction,
    ToolExecutor,
    AgentSelection,
    KnowledgeDocument,
    format_history,
)
from .errors import (
    VaultAgentError,
    ClassificationError,
    ReasoningLLMError,
    ToolExecutionError,
    ToolValidationError,
)
from .cache import CapabilityCache, make_cache_key
from .parser import ParsedResponse, parse_response, parse_action
from .progress import (
    ProgressSink,
    ProgressEvent,
    LoggingProgressSink,
    RecordingProgressSink,
    notify_safely,
    PROGRESS_KINDS,
)
from .reasoning import ReasoningEngine
from .dispatcher import SubAgent, AgentDispatcher, match_agent_name
from .router import RouteType, RouteResult, classify_route
from .orchestrator import Orchestrator, OrchestrationResult, KnowledgeSearcher, HANDLED_BY_ORCHESTRATOR

__all__ = [
    # Models
    "AgentResponse",
    "ReasoningStatus",
    "ReasoningStep",
    "ReasoningContext",
    "ToolAction",
    "ToolExecutor",
    "AgentSelection",
    "KnowledgeDocument",
    "format_history",

    # Errors
    "VaultAgentError",
    "ClassificationError",
    "ReasoningLLMError",
    "ToolExecutionError",
    "ToolValidationError",

    # Cache
    "CapabilityCache",
    "make_cache_key",

    # Parser
    "ParsedResponse",
    "parse_response",
    "parse_action",

    # Progress
    "ProgressSink",
    "ProgressEvent",
    "LoggingProgressSink",
    "RecordingProgressSink",
    "notify_safely",
    "PROGRESS_KINDS",

    # Reasoning
    "ReasoningEngine",

    # Dispatch
    "SubAgent",
    "AgentDispatcher",
    "match_agent_name",

    # Routing
    "RouteType",
    "RouteResult",
    "classify_route",

    # Orchestration
    "Orchestrator",
    "OrchestrationResult",
    "KnowledgeSearcher",
    "HANDLED_BY_ORCHESTRATOR",
]
