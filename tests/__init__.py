"""
Vault Agent Test Suite

Unit tests for dispatch, reasoning, tools and services, plus integration
tests that call the real Gemini API (marked ``integration``).
Run tests with: pytest tests/
"""

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
