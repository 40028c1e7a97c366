"""
LLM Service - Gemini API Wrapper with Langfuse Observability

This service provides a robust interface to Google's Gemini API with:
- A single-shot ``complete(system_prompt, messages)`` call used by the core
- Request timeouts mapped onto typed errors
- Retry decorator with capped exponential backoff for idempotent calls
- Langfuse tracing and token usage tracking
- Safety settings

Retries are NOT applied inside the client: callers decide which calls are
safe to repeat (classification yes, reasoning steps no).
"""

import time
import logging
from typing import Optional, Dict, List, Any, Callable, Protocol
from functools import wraps

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from google.generativeai.types import GenerationConfig, HarmCategory, HarmBlockThreshold
from langfuse import Langfuse, observe

from config import (
    GOOGLE_API_KEY,
    GEMINI_MODEL,
    TEMPERATURE,
    MAX_TOKENS,
    TOP_P,
    TOP_K,
    LLM_TIMEOUT,
    CLASSIFICATION_MAX_ATTEMPTS,
    RETRY_DELAY,
    MAX_RETRY_DELAY,
    LANGFUSE_PUBLIC_KEY,
    LANGFUSE_SECRET_KEY,
    LANGFUSE_HOST,
    LANGFUSE_ENABLED,
    LOG_LEVEL,
)

# Configure logging
logging.basicConfig(level=getattr(logging, LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)

# ============================================================================
# ERRORS
# ============================================================================

class LLMError(Exception):
    """Raised when an LLM call fails. ``retryable`` marks transient failures."""

    def __init__(self, message: str, retryable: bool = False):
        super().__init__(message)
        self.retryable = retryable


class LLMTimeoutError(LLMError):
    """Raised when the LLM call exceeds its timeout."""

    def __init__(self, message: str):
        super().__init__(message, retryable=True)


class LLMResponseError(LLMError):
    """Raised when the API answered but returned no usable text."""


# ============================================================================
# INITIALIZATION
# ============================================================================

_langfuse_client: Optional[Langfuse] = None

if LANGFUSE_ENABLED:
    try:
        _langfuse_client = Langfuse(
            public_key=LANGFUSE_PUBLIC_KEY,
            secret_key=LANGFUSE_SECRET_KEY,
            host=LANGFUSE_HOST,
        )
        logger.info("✅ Langfuse observability initialized")
    except Exception as e:
        logger.warning(f"⚠️  Langfuse initialization failed: {e}. Continuing without tracing.")
        _langfuse_client = None
else:
    logger.info("ℹ️  Langfuse observability disabled")


def get_langfuse_client() -> Optional[Langfuse]:
    """Get the Langfuse client instance."""
    return _langfuse_client


# ============================================================================
# SAFETY SETTINGS
# ============================================================================

SAFETY_SETTINGS = {
    HarmCategory.HARM_CATEGORY_HARASSMENT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
    HarmCategory.HARM_CATEGORY_HATE_SPEECH: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
    HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
    HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
}


# ============================================================================
# GENERATION CONFIGURATION
# ============================================================================

def get_generation_config(
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
    top_p: Optional[float] = None,
    top_k: Optional[int] = None,
) -> GenerationConfig:
    """
    Create a generation configuration for Gemini API calls.

    Args:
        temperature: Sampling temperature (0.0 - 2.0). Defaults to config value.
        max_tokens: Maximum tokens to generate. Defaults to config value.
        top_p: Nucleus sampling parameter. Defaults to config value.
        top_k: Top-k sampling parameter. Defaults to config value.

    Returns:
        GenerationConfig object
    """
    return GenerationConfig(
        temperature=TEMPERATURE if temperature is None else temperature,
        max_output_tokens=max_tokens or MAX_TOKENS,
        top_p=top_p or TOP_P,
        top_k=top_k or TOP_K,
    )


# ============================================================================
# RETRY DECORATOR
# ============================================================================

_RETRYABLE_GOOGLE_ERRORS = (
    google_exceptions.DeadlineExceeded,
    google_exceptions.ResourceExhausted,
    google_exceptions.ServiceUnavailable,
    google_exceptions.InternalServerError,
    google_exceptions.TooManyRequests,
)


def is_retryable_error(error: Exception) -> bool:
    """
    Decide whether a failed call is worth repeating.

    Args:
        error: The exception raised by the call

    Returns:
        True for timeouts, connection problems, rate limits and 5xx errors
    """
    if isinstance(error, LLMError):
        return error.retryable
    if isinstance(error, (TimeoutError, ConnectionError) + _RETRYABLE_GOOGLE_ERRORS):
        return True

    error_msg = str(error).lower()
    return any([
        "rate limit" in error_msg,
        "quota" in error_msg,
        "timeout" in error_msg,
        "503" in error_msg,
        "429" in error_msg,
        "500" in error_msg,
    ])


def retry_on_error(
    max_attempts: int = CLASSIFICATION_MAX_ATTEMPTS,
    delay: float = RETRY_DELAY,
    max_delay: float = MAX_RETRY_DELAY,
    backoff: float = 2.0,
    retryable: Callable[[Exception], bool] = is_retryable_error,
):
    """
    Decorator to retry function calls on transient exceptions.
    Implements exponential backoff capped at ``max_delay``.

    Only wrap idempotent calls: a repeated call must not repeat a side effect.

    Args:
        max_attempts: Total number of attempts (first call included)
        delay: Initial delay between attempts (seconds)
        max_delay: Upper bound for the delay (seconds)
        backoff: Multiplier applied to the delay after each failure
        retryable: Predicate deciding whether an exception is transient
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            attempt = 0
            current_delay = delay

            while True:
                attempt += 1
                try:
                    return func(*args, **kwargs)

                except Exception as e:
                    error_type = type(e).__name__

                    if not retryable(e) or attempt >= max_attempts:
                        logger.error(f"❌ {func.__name__} failed: {error_type}: {e}")
                        raise

                    logger.warning(
                        f"⚠️  {func.__name__} failed (attempt {attempt}/{max_attempts}): "
                        f"{error_type}. Retrying in {current_delay}s..."
                    )

                    time.sleep(current_delay)
                    current_delay = min(current_delay * backoff, max_delay)

        return wrapper
    return decorator


# ============================================================================
# LLM CLIENT
# ============================================================================

class LLMClient(Protocol):
    """Single-shot completion interface consumed by the core."""

    def complete(self, system_prompt: str, messages: List[Dict[str, str]]) -> str:
        ...


def to_gemini_contents(messages: List[Dict[str, str]]) -> List[Dict[str, Any]]:
    """
    Convert ``{"role", "content"}`` chat messages into Gemini contents.

    Assistant turns map to the "model" role; every other role is sent as
    "user". Empty messages are dropped.
    """
    contents = []
    for msg in messages:
        content = (msg.get("content") or "").strip()
        if not content:
            continue
        role = "model" if msg.get("role") in ("assistant", "model") else "user"
        contents.append({"role": role, "parts": [content]})
    return contents


class GeminiClient:
    """
    Gemini implementation of LLMClient.

    Every call is bounded by ``timeout``; a timeout raises LLMTimeoutError,
    API failures raise LLMError, empty or blocked answers raise
    LLMResponseError.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        api_key = api_key or GOOGLE_API_KEY
        if not api_key:
            raise ValueError(
                "GOOGLE_API_KEY not found in environment variables. "
                "Please set it in your .env file."
            )

        genai.configure(api_key=api_key)

        self.model_name = model_name or GEMINI_MODEL
        self.temperature = TEMPERATURE if temperature is None else temperature
        self.max_tokens = max_tokens or MAX_TOKENS
        self.timeout = timeout or LLM_TIMEOUT

    @observe(name="gemini_complete", as_type="generation")
    def complete(self, system_prompt: str, messages: List[Dict[str, str]]) -> str:
        """
        Make a single completion call.

        Args:
            system_prompt: System instruction setting the model's behavior
            messages: Conversation as ``{"role", "content"}`` dicts

        Returns:
            Generated text response

        Raises:
            LLMError: If the call fails, times out or returns nothing
        """
        contents = to_gemini_contents(messages)
        if not contents:
            raise ValueError("At least one non-empty message is required")

        model = genai.GenerativeModel(
            model_name=self.model_name,
            generation_config=get_generation_config(self.temperature, self.max_tokens),
            safety_settings=SAFETY_SETTINGS,
            system_instruction=system_prompt,
        )

        start_time = time.time()
        try:
            response = model.generate_content(
                contents,
                request_options={"timeout": self.timeout},
            )
        except google_exceptions.DeadlineExceeded as e:
            raise LLMTimeoutError(f"Gemini call timed out after {self.timeout}s: {e}") from e
        except _RETRYABLE_GOOGLE_ERRORS as e:
            raise LLMError(f"Gemini service unavailable: {e}", retryable=True) from e
        except google_exceptions.GoogleAPIError as e:
            raise LLMError(f"Gemini call failed: {e}") from e
        latency = time.time() - start_time

        if not response.candidates:
            raise LLMResponseError("No response candidates returned from Gemini API")

        try:
            text = response.text
        except ValueError as e:
            # Raised when the candidate has no text parts (e.g. blocked by safety filters)
            raise LLMResponseError(f"Gemini returned no text: {e}") from e

        self._track_usage(response, latency)
        return text

    def _track_usage(self, response: Any, latency: float) -> None:
        """Report token usage to Langfuse and the debug log."""
        usage = getattr(response, "usage_metadata", None)
        if usage is None:
            return

        if _langfuse_client:
            _langfuse_client.update_current_generation(
                model=self.model_name,
                usage_details={
                    "input": usage.prompt_token_count,
                    "output": usage.candidates_token_count,
                    "total": usage.total_token_count,
                },
            )

        logger.debug(
            f"📊 Tokens: {usage.prompt_token_count} in, "
            f"{usage.candidates_token_count} out, "
            f"⏱️  {latency:.2f}s"
        )
