"""
Error taxonomy for dispatch, reasoning and tool execution.

Only ReasoningLLMError ends a run as a failure. The others are absorbed:
classification failures degrade to "no match" / "dialogue", tool failures
become observations.
"""


class VaultAgentError(Exception):
    """Base class for all vault agent errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ClassificationError(VaultAgentError):
    """Raised when a capability, arbitration or routing classification cannot be made."""


class ReasoningLLMError(VaultAgentError):
    """Raised when the LLM fails while generating a reasoning step. Fatal to the run."""


class ToolExecutionError(VaultAgentError):
    """Raised when a tool action fails. Recorded as an observation."""


class ToolValidationError(ToolExecutionError):
    """Raised when a tool action is missing required parameters or has unknown ones."""
