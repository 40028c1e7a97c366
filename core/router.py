"""
Fallback Route Classification

Decides how the orchestrator answers a request that no sub-agent claimed:

Route types:
- retrieval: look the answer up in the user's knowledge base
- dialogue: answer conversationally from the persona and the chat history

One LLM call, no retries. The routing decision is cheap to get wrong
(dialogue is always a safe answer), so every failure degrades to DIALOGUE.
"""

import re
import logging
from enum import Enum
from typing import Dict, List, Optional
from dataclasses import dataclass

from ai import LLMClient
from config import ROUTING_PROMPT, CLASSIFICATION_HISTORY_WINDOW
from .models import format_history

logger = logging.getLogger(__name__)


# ============================================================================
# ROUTE TYPES
# ============================================================================

class RouteType(Enum):
    """How an unclaimed request is answered."""
    RETRIEVAL = "retrieval"
    DIALOGUE = "dialogue"


@dataclass
class RouteResult:
    """
    Result of route classification.

    Attributes:
        route: The chosen route
        raw_response: The classifier's answer (None when the call failed)
        fallback: True when the route was chosen because classification failed
    """
    route: RouteType
    raw_response: Optional[str] = None
    fallback: bool = False


# Only the leading route name counts ("dialogue - no retrieval needed" is dialogue)
_RETRIEVAL_RE = re.compile(
    r"^[\s\"'*`]*(?:route\s*:)?[\s\"'*`]*(?:retrieval|knowledge[_ ]search)\b",
    re.IGNORECASE,
)


# ============================================================================
# ROUTING LOGIC
# ============================================================================

def classify_route(
    llm: LLMClient,
    query: str,
    history: Optional[List[Dict[str, str]]] = None,
) -> RouteResult:
    """
    Classify an unclaimed request as retrieval or dialogue.

    Args:
        llm: Client used for the single classification call
        query: The user's current message
        history: Previous messages; the recent ones let the classifier see
            whether the answer is already in the conversation

    Returns:
        RouteResult; DIALOGUE whenever the call fails or the answer is unclear

    Example:
        >>> classify_route(llm, "what about Thailand Vacation?").route
        RouteType.RETRIEVAL
    """
    context = format_history(history, CLASSIFICATION_HISTORY_WINDOW)
    context_str = f"Recent conversation:\n{context}" if context else "No previous context."

    user_message = f"""{context_str}

Current user message:
"{query}"

Route:"""

    try:
        response = llm.complete(ROUTING_PROMPT, [{"role": "user", "content": user_message}])
    except Exception as e:
        logger.warning(f"⚠️  Route classification failed, using dialogue: {e}")
        return RouteResult(route=RouteType.DIALOGUE, fallback=True)

    route = RouteType.RETRIEVAL if _RETRIEVAL_RE.match(response or "") else RouteType.DIALOGUE
    logger.info(f"🧭 Route classified: {route.value}")
    return RouteResult(route=route, raw_response=response)
