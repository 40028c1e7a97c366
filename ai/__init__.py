"""
AI Infrastructure Module

This module provides the core LLM infrastructure for the vault agent:
- Gemini API client with timeouts and typed errors
- Retry decorator for idempotent (classification) calls
- Langfuse observability integration
- Token usage tracking

All LLM calls should go through this module to ensure consistent
observability, error handling, and configuration.
"""

from .llm_service import (
    # Client
    LLMClient,
    GeminiClient,
    to_gemini_contents,

    # Errors
    LLMError,
    LLMTimeoutError,
    LLMResponseError,

    # Retry
    retry_on_error,
    is_retryable_error,

    # Observability
    get_langfuse_client,
)

__all__ = [
    "LLMClient",
    "GeminiClient",
    "to_gemini_contents",
    "LLMError",
    "LLMTimeoutError",
    "LLMResponseError",
    "retry_on_error",
    "is_retryable_error",
    "get_langfuse_client",
]
