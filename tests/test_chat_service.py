"""
Unit Tests for Chat Service and the Vault Agent

Tests the main chat coordinator and the full request flow down to the
in-memory vault.
"""

import uuid

import pytest
from unittest.mock import Mock, patch

from ai import LLMError
from config import MAX_HISTORY_SIZE
from core import OrchestrationResult, RecordingProgressSink, RouteType, AgentSelection
from services import ChatService, VaultAgent, build_orchestrator, process_user_message, trim_history
from tools import Note, TOOL_SPECS
from tests.fakes import InMemoryNoteStore


@pytest.fixture
def store():
    return InMemoryNoteStore([Note(path="test456.md", title="Test", content="scratch")])


@pytest.fixture
def llm():
    return Mock()


class TestChatService:
    """Test ChatService class."""

    @pytest.fixture
    def orchestrator(self):
        orchestrator = Mock()
        orchestrator.process.return_value = OrchestrationResult(
            message="Hello!", route=RouteType.DIALOGUE,
        )
        return orchestrator

    def test_process_message_success(self, orchestrator):
        """Test successful message processing."""
        response = ChatService(orchestrator).process_message(
            user_message="hi",
            session_id="test_session_123",
        )

        assert response.success is True
        assert response.message == "Hello!"
        assert response.metadata["session_id"] == "test_session_123"
        assert response.metadata["handled_by"] == "orchestrator"
        assert response.metadata["route"] == "dialogue"
        assert response.metadata["agent"] is None

    def test_session_id_is_generated(self, orchestrator):
        response = ChatService(orchestrator).process_message(user_message="hi")

        uuid.UUID(response.metadata["session_id"])

    def test_history_is_trimmed(self, orchestrator):
        """Test that only the last MAX_HISTORY_SIZE messages are passed on."""
        history = [{"role": "user", "content": f"m{i}"} for i in range(MAX_HISTORY_SIZE + 5)]

        ChatService(orchestrator).process_message("hi", history, session_id="s1")

        query, passed_history, session_id = orchestrator.process.call_args[0]
        assert len(passed_history) == MAX_HISTORY_SIZE
        assert passed_history[0]["content"] == "m5"
        assert session_id == "s1"

    def test_agent_metadata(self, orchestrator):
        orchestrator.process.return_value = OrchestrationResult(
            message="Deleted",
            handled_by="vault_agent",
            agent_selection=AgentSelection("vault_agent", 0.9, "arbitration"),
            agent_metadata={"mode": "simple", "action": "delete_note"},
        )

        response = ChatService(orchestrator).process_message("delete a.md")

        assert response.metadata["agent"] == "vault_agent"
        assert response.metadata["confidence"] == 0.9
        assert response.metadata["route"] is None
        assert response.metadata["agent_metadata"] == {"mode": "simple", "action": "delete_note"}

    def test_failure_is_reported(self, orchestrator):
        orchestrator.process.return_value = OrchestrationResult(message="❌ failed", success=False)

        response = ChatService(orchestrator).process_message("hi")

        assert response.success is False
        assert response.message == "❌ failed"


def test_trim_history():
    history = [{"role": "user", "content": str(i)} for i in range(5)]

    assert trim_history(history, 2) == history[-2:]
    assert trim_history(None, 2) == []
    assert trim_history(history, 0) == []


class TestVaultAgent:
    """Test the vault sub-agent."""

    def test_declares_full_vault_vocabulary(self, llm, store):
        agent = VaultAgent(llm, store)

        assert set(agent.tools) == set(TOOL_SPECS)
        assert set(agent.executor.tool_names) == set(TOOL_SPECS)

    @pytest.mark.parametrize("query", [
        "delete obsidian-vault/test456.md",
        "open my Obsidian vault",
        "read plan.md",
    ])
    def test_keyword_requests_are_claimed_without_llm(self, llm, store, query):
        assert VaultAgent(llm, store).can_handle(query) is True
        llm.complete.assert_not_called()

    def test_requests_without_action_verbs_are_declined_without_llm(self, llm, store):
        assert VaultAgent(llm, store).can_handle("how are you today?") is False
        llm.complete.assert_not_called()

    @pytest.mark.parametrize("query", ["удали заметку про отпуск", "create a note about Thailand"])
    def test_action_requests_ask_the_llm(self, llm, store, query):
        """Test that action verbs without a keyword go to the LLM classifier."""
        llm.complete.return_value = "true"

        assert VaultAgent(llm, store).can_handle(query) is True
        llm.complete.assert_called_once()

    def test_availability_follows_store(self, llm):
        assert VaultAgent(llm, InMemoryNoteStore(available=True)).is_available() is True
        assert VaultAgent(llm, InMemoryNoteStore(available=False)).is_available() is False


class TestVaultAgentModes:
    """Test the simple and reasoning modes of the vault agent."""

    def test_simple_request_runs_one_action(self, llm, store):
        """Test that a simple request is answered with a single tool call."""
        llm.complete.side_effect = ["simple", 'Action: read_note(path="obsidian-vault/test456.md")']

        response = VaultAgent(llm, store).respond("read test456.md")

        assert response.content.startswith("Note: test456.md")
        assert response.metadata == {
            "mode": "simple",
            "action": "read_note",
            "parameters": {"path": "obsidian-vault/test456.md"},
        }
        assert llm.complete.call_count == 2

    def test_complex_request_uses_reasoning(self, llm, store):
        llm.complete.side_effect = [
            "complex",
            'Thought: delete\nAction: delete_note(path="test456.md")',
            "Complete: Файл удалён",
        ]

        response = VaultAgent(llm, store).respond("find the scratch note and delete it")

        assert response.content == "Файл удалён"
        assert response.metadata["mode"] == "reasoning"
        assert response.metadata["status"] == "completed"
        assert response.metadata["steps_count"] == 1
        assert response.metadata["reasoning_steps"] == [{
            "thought": "delete",
            "action": "delete_note",
            "observation": "Deleted note: test456.md",
        }]
        assert "fallback_from" not in response.metadata
        assert store.deleted == ["test456.md"]

    def test_complexity_check_failure_means_simple(self, llm, store):
        llm.complete.side_effect = [LLMError("503"), "Action: get_tags()"]

        response = VaultAgent(llm, store).respond("show my tags")

        assert response.metadata["mode"] == "simple"
        assert response.content == "No tags in the vault."

    def test_missing_note_falls_back_to_reasoning(self, llm, store):
        """Test that a simple attempt that finds nothing is retried with reasoning."""
        llm.complete.side_effect = [
            "simple",
            'Action: delete_note(path="test 456.md")',
            'Thought: the exact name is test456.md\nAction: delete_note(path="test456.md")',
            "Complete: Deleted test456.md",
        ]

        response = VaultAgent(llm, store).respond("delete test 456")

        assert response.content == "Deleted test456.md"
        assert response.metadata["mode"] == "reasoning"
        assert response.metadata["fallback_from"] == "simple"
        assert response.metadata["simple_error"] == "Note not found: test 456.md"
        assert store.deleted == ["test 456.md", "test456.md"]

    @pytest.mark.parametrize("reply, error_prefix", [
        ("I am not sure what to do", "Error: could not turn the request into a tool call"),
        ("Action: delete_note()", "Action failed:"),
        ('Action: move_note(path="a.md")', "Unknown tool: move_note"),
    ])
    def test_unusable_simple_action_falls_back(self, llm, store, reply, error_prefix):
        """Test that invalid one-shot calls never touch the vault and go to reasoning."""
        llm.complete.side_effect = ["simple", reply, "Complete: Which note do you mean?"]

        response = VaultAgent(llm, store).respond("delete it")

        assert response.content == "Which note do you mean?"
        assert response.metadata["simple_error"].startswith(error_prefix)
        assert store.deleted == []

    def test_simple_progress_sequence(self, llm, store):
        sink = RecordingProgressSink()
        llm.complete.side_effect = ["simple", 'Action: delete_note(path="test456.md")']

        VaultAgent(llm, store, progress_sink=sink).respond("delete test456.md", session_id="s1")

        assert sink.kinds("s1") == ["thinking", "action", "observation", "complete"]

    def test_handle_returns_content(self, llm, store):
        llm.complete.side_effect = ["simple", 'Action: delete_note(path="test456.md")']

        assert VaultAgent(llm, store).handle("delete test456.md") == "Deleted note: test456.md"


class TestEndToEnd:
    """Full flow through build_orchestrator and ChatService."""

    def test_vault_request_is_delegated_and_executed(self, llm, store):
        """Test 'delete test456.md' from chat service down to the vault."""
        sink = RecordingProgressSink()
        llm.complete.side_effect = [
            "complex",
            'Thought: delete\nAction: delete_note(path="test456.md")',
            "Complete: Файл удалён",
        ]
        service = ChatService(build_orchestrator(llm=llm, store=store, progress_sink=sink))

        response = service.process_message("delete test456.md", session_id="s1")

        assert response.success is True
        assert response.message == "Файл удалён"
        assert response.metadata["handled_by"] == "vault_agent"
        assert response.metadata["confidence"] == 1.0
        assert store.deleted == ["test456.md"]
        assert response.metadata["agent_metadata"]["mode"] == "reasoning"
        assert llm.complete.call_count == 3
        assert sink.kinds("s1")[:2] == ["start", "delegate"]
        assert sink.kinds("s1")[-1] == "complete"

    def test_simple_vault_request(self, llm, store):
        """Test a one-shot request: complexity check plus a single tool call."""
        llm.complete.side_effect = ["simple", 'Action: delete_note(path="test456.md")']
        service = ChatService(build_orchestrator(llm=llm, store=store))

        response = service.process_message("delete test456.md")

        assert response.message == "Deleted note: test456.md"
        assert response.metadata["agent_metadata"]["mode"] == "simple"
        assert store.deleted == ["test456.md"]
        assert llm.complete.call_count == 2

    def test_unavailable_vault_falls_back_to_dialogue(self, llm):
        llm.complete.side_effect = ["dialogue", "The vault is offline, but I can chat."]
        store = InMemoryNoteStore(available=False)
        service = ChatService(build_orchestrator(llm=llm, store=store))

        response = service.process_message("delete test456.md")

        assert response.metadata["handled_by"] == "orchestrator"
        assert response.metadata["route"] == "dialogue"
        assert store.deleted == []

    def test_without_store_only_fallback_routes_exist(self, llm):
        llm.complete.side_effect = ["dialogue", "Hi there!"]

        response = ChatService(build_orchestrator(llm=llm)).process_message("hello")

        assert response.message == "Hi there!"

    @patch("services.chat_service.GeminiClient")
    def test_default_llm_is_gemini(self, mock_client_cls):
        mock_client_cls.return_value.complete.side_effect = ["dialogue", "Hello!"]

        response = process_user_message("hello")

        mock_client_cls.assert_called_once_with()
        assert response.message == "Hello!"
