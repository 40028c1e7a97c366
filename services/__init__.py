"""
Services Module

Application-level wiring on top of the core:
- Chat service: main coordinator for user interactions
- Vault agent: the Obsidian vault sub-agent
"""

from .chat_service import (
    ChatService,
    ChatResponse,
    build_orchestrator,
    trim_history,
    process_user_message,
)

from .vault_agent import VaultAgent

__all__ = [
    # Chat Service
    "ChatService",
    "ChatResponse",
    "build_orchestrator",
    "trim_history",
    "process_user_message",

    # Agents
    "VaultAgent",
]
