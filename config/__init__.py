"""
Configuration module for the vault agent.

This module provides centralized configuration management including:
- Application settings (models, API keys, limits, timeouts)
- Prompt templates and system instructions
- Tool definitions shared by the reasoning prompt and the executor

All configurable values should be imported from this module to ensure
consistency across the application.
"""

from .settings import (
    # Paths
    VAULT_DIR_NAME,

    # API Keys
    GOOGLE_API_KEY,

    # LLM Settings
    GEMINI_MODEL,
    TEMPERATURE,
    MAX_TOKENS,
    TOP_P,
    TOP_K,
    LLM_TIMEOUT,
    TOOL_TIMEOUT,
    CLASSIFICATION_MAX_ATTEMPTS,
    RETRY_DELAY,
    MAX_RETRY_DELAY,

    # Langfuse Settings
    LANGFUSE_PUBLIC_KEY,
    LANGFUSE_SECRET_KEY,
    LANGFUSE_HOST,
    LANGFUSE_ENABLED,

    # Reasoning / Dispatch Settings
    MAX_REASONING_STEPS,
    REASONING_HISTORY_WINDOW,
    CLASSIFICATION_HISTORY_WINDOW,
    DIALOGUE_HISTORY_WINDOW,
    MAX_HISTORY_SIZE,
    SINGLE_MATCH_CONFIDENCE,
    ARBITRATION_CONFIDENCE,
    FALLBACK_CONFIDENCE,
    CAPABILITY_CACHE_MAX_SIZE,
    CAPABILITY_CACHE_TTL_SECONDS,
    KNOWLEDGE_SEARCH_LIMIT,

    # Debug
    DEBUG,
    LOG_LEVEL,
)

from .prompts import (
    # System Prompts
    ASSISTANT_NAME,
    DIALOGUE_PROMPT,
    REASONING_PROMPT,
    REASONING_STEP_INSTRUCTION,
    COMPLEXITY_PROMPT,
    SIMPLE_ACTION_PROMPT,
    CAPABILITY_PROMPT,
    ARBITRATION_PROMPT,
    ROUTING_PROMPT,
    KNOWLEDGE_ANSWER_PROMPT,

    # User-facing messages
    NO_KNOWLEDGE_RESPONSE,
    REASONING_ERROR_MESSAGE,
    STEP_LIMIT_MESSAGE,
    CANCELLED_MESSAGE,
    EMPTY_COMPLETION_MESSAGE,
    UNPARSED_SIMPLE_ACTION_MESSAGE,
    ORCHESTRATOR_ERROR_MESSAGE,

    # Tool Definitions
    TOOL_DEFINITIONS,

    # Utilities
    format_prompt,
    get_tool_by_name,
    get_tool_names,
    render_tool_catalogue,
    build_reasoning_prompt,
    build_simple_action_prompt,
)

__all__ = [
    # Settings
    "VAULT_DIR_NAME",
    "GOOGLE_API_KEY",
    "GEMINI_MODEL",
    "TEMPERATURE",
    "MAX_TOKENS",
    "TOP_P",
    "TOP_K",
    "LLM_TIMEOUT",
    "TOOL_TIMEOUT",
    "CLASSIFICATION_MAX_ATTEMPTS",
    "RETRY_DELAY",
    "MAX_RETRY_DELAY",
    "LANGFUSE_PUBLIC_KEY",
    "LANGFUSE_SECRET_KEY",
    "LANGFUSE_HOST",
    "LANGFUSE_ENABLED",
    "MAX_REASONING_STEPS",
    "REASONING_HISTORY_WINDOW",
    "CLASSIFICATION_HISTORY_WINDOW",
    "DIALOGUE_HISTORY_WINDOW",
    "MAX_HISTORY_SIZE",
    "SINGLE_MATCH_CONFIDENCE",
    "ARBITRATION_CONFIDENCE",
    "FALLBACK_CONFIDENCE",
    "CAPABILITY_CACHE_MAX_SIZE",
    "CAPABILITY_CACHE_TTL_SECONDS",
    "KNOWLEDGE_SEARCH_LIMIT",
    "DEBUG",
    "LOG_LEVEL",

    # Prompts
    "ASSISTANT_NAME",
    "DIALOGUE_PROMPT",
    "REASONING_PROMPT",
    "REASONING_STEP_INSTRUCTION",
    "COMPLEXITY_PROMPT",
    "SIMPLE_ACTION_PROMPT",
    "CAPABILITY_PROMPT",
    "ARBITRATION_PROMPT",
    "ROUTING_PROMPT",
    "KNOWLEDGE_ANSWER_PROMPT",
    "NO_KNOWLEDGE_RESPONSE",
    "REASONING_ERROR_MESSAGE",
    "STEP_LIMIT_MESSAGE",
    "CANCELLED_MESSAGE",
    "EMPTY_COMPLETION_MESSAGE",
    "UNPARSED_SIMPLE_ACTION_MESSAGE",
    "ORCHESTRATOR_ERROR_MESSAGE",
    "TOOL_DEFINITIONS",
    "format_prompt",
    "get_tool_by_name",
    "get_tool_names",
    "render_tool_catalogue",
    "build_reasoning_prompt",
    "build_simple_action_prompt",
]
