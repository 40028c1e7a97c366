"""
Application settings and configuration values.

This module centralizes all configuration values including:
- API keys and credentials
- Model parameters and timeouts
- Reasoning loop and dispatch limits
- Capability cache sizing

Environment variables are loaded via python-dotenv.
"""

import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# ============================================================================
# PATHS
# ============================================================================

# Folder name the vault is mounted under; models often prefix note paths with it
VAULT_DIR_NAME = os.getenv("VAULT_DIR_NAME", "obsidian-vault")

# ============================================================================
# LLM CONFIGURATION
# ============================================================================

# Gemini API Settings
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY")

# Model Parameters
TEMPERATURE = float(os.getenv("TEMPERATURE", "0.7"))
MAX_TOKENS = int(os.getenv("MAX_TOKENS", "8192"))
TOP_P = float(os.getenv("TOP_P", "0.95"))
TOP_K = int(os.getenv("TOP_K", "40"))

# Timeouts (seconds)
LLM_TIMEOUT = float(os.getenv("LLM_TIMEOUT", "60"))
TOOL_TIMEOUT = float(os.getenv("TOOL_TIMEOUT", "30"))

# Retry settings for idempotent classification calls only
CLASSIFICATION_MAX_ATTEMPTS = int(os.getenv("CLASSIFICATION_MAX_ATTEMPTS", "2"))
RETRY_DELAY = float(os.getenv("RETRY_DELAY", "0.1"))  # seconds
MAX_RETRY_DELAY = float(os.getenv("MAX_RETRY_DELAY", "2.0"))  # seconds

# ============================================================================
# LANGFUSE OBSERVABILITY
# ============================================================================

LANGFUSE_PUBLIC_KEY = os.getenv("LANGFUSE_PUBLIC_KEY")
LANGFUSE_SECRET_KEY = os.getenv("LANGFUSE_SECRET_KEY")
LANGFUSE_HOST = os.getenv("LANGFUSE_HOST", "https://cloud.langfuse.com")

# Enable/disable Langfuse tracing
LANGFUSE_ENABLED = os.getenv("LANGFUSE_ENABLED", "false").lower() == "true"

if LANGFUSE_ENABLED and (not LANGFUSE_PUBLIC_KEY or not LANGFUSE_SECRET_KEY):
    print("⚠️  Warning: Langfuse is enabled but keys are missing. Tracing will be disabled.")
    LANGFUSE_ENABLED = False

# ============================================================================
# REASONING ENGINE
# ============================================================================

MAX_REASONING_STEPS = int(os.getenv("MAX_REASONING_STEPS", "10"))

# Last 6 messages = last 3 exchanges
REASONING_HISTORY_WINDOW = int(os.getenv("REASONING_HISTORY_WINDOW", "6"))

# ============================================================================
# DISPATCH AND ROUTING
# ============================================================================

CLASSIFICATION_HISTORY_WINDOW = int(os.getenv("CLASSIFICATION_HISTORY_WINDOW", "3"))
DIALOGUE_HISTORY_WINDOW = int(os.getenv("DIALOGUE_HISTORY_WINDOW", "10"))
MAX_HISTORY_SIZE = int(os.getenv("MAX_HISTORY_SIZE", "20"))

# Selection confidences
SINGLE_MATCH_CONFIDENCE = 1.0
ARBITRATION_CONFIDENCE = 0.9
FALLBACK_CONFIDENCE = 0.5

# Capability cache (LRU + TTL)
CAPABILITY_CACHE_MAX_SIZE = int(os.getenv("CAPABILITY_CACHE_MAX_SIZE", "1024"))
CAPABILITY_CACHE_TTL_SECONDS = float(os.getenv("CAPABILITY_CACHE_TTL_SECONDS", "3600"))

# Retrieval route
KNOWLEDGE_SEARCH_LIMIT = int(os.getenv("KNOWLEDGE_SEARCH_LIMIT", "5"))

# ============================================================================
# DEVELOPMENT / DEBUG SETTINGS
# ============================================================================

DEBUG = os.getenv("DEBUG", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Print configuration summary on import (only in debug mode)
if DEBUG:
    print("\n" + "="*60)
    print("🔧 Vault Agent Configuration Loaded")
    print("="*60)
    print(f"Model: {GEMINI_MODEL}")
    print(f"Max reasoning steps: {MAX_REASONING_STEPS}")
    print(f"LLM timeout: {LLM_TIMEOUT}s, tool timeout: {TOOL_TIMEOUT}s")
    print(f"Capability cache: {CAPABILITY_CACHE_MAX_SIZE} entries, TTL {CAPABILITY_CACHE_TTL_SECONDS}s")
    print(f"Langfuse: {'✅ Enabled' if LANGFUSE_ENABLED else '❌ Disabled'}")
    print(f"Debug Mode: {DEBUG}")
    print("="*60 + "\n")
