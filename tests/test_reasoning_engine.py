"""
Unit Tests for the ReAct Reasoning Engine

Runs the engine against a mocked LLM and an in-memory vault.
"""

import threading

import pytest
from unittest.mock import Mock

from ai import LLMError, LLMTimeoutError
from config import EMPTY_COMPLETION_MESSAGE
from core import (
    ReasoningContext,
    ReasoningEngine,
    ReasoningLLMError,
    ReasoningStatus,
    RecordingProgressSink,
)
from tools import Note, VaultToolExecutor
from tests.fakes import InMemoryNoteStore


def assert_run_invariants(context):
    """Invariants every finished run must satisfy."""
    assert context.is_completed
    assert context.final_result is not None
    assert [step.step_number for step in context.steps] == list(range(1, len(context.steps) + 1))
    for step in context.steps:
        if step.action is None:
            assert step.observation is None
        else:
            assert step.observation is not None


def prompt_of_call(llm, index):
    """User message content sent on the ``index``-th LLM call."""
    system_prompt, messages = llm.complete.call_args_list[index][0]
    return messages[-1]["content"]


@pytest.fixture
def store():
    return InMemoryNoteStore([
        Note(path="test456.md", title="Test 456", content="scratch", tags=["tmp"]),
        Note(path="projects/jarvis.md", title="Jarvis", content="Assistant project [[test456]]"),
    ])


@pytest.fixture
def llm():
    return Mock()


@pytest.fixture
def engine(llm, store):
    return ReasoningEngine(llm, VaultToolExecutor(store), max_steps=5, tool_timeout=5)


class TestReasoningScenarios:
    """End-to-end runs through the vault executor."""

    def test_delete_note_end_to_end(self, engine, llm, store):
        """Test 'delete test456.md': one action, one observation, then Complete."""
        llm.complete.side_effect = [
            'Thought: I need to delete test456.md\nAction: delete_note(path="test456.md")',
            "Complete: Файл удалён",
        ]

        context = engine.run("delete test456.md")

        assert context.status == ReasoningStatus.COMPLETED
        assert context.final_result == "Файл удалён"
        assert len(context.steps) == 1
        assert context.steps[0].observation == "Deleted note: test456.md"
        assert store.deleted == ["test456.md"]
        assert "test456.md" not in store.notes

        second_prompt = prompt_of_call(llm, 1)
        assert "Observation: Deleted note: test456.md" in second_prompt
        assert "Step 2" in second_prompt
        assert_run_invariants(context)

    def test_vault_prefix_is_stripped(self, engine, llm, store):
        """Test that a path written with the vault folder prefix still resolves."""
        llm.complete.side_effect = [
            'Thought: remove prefix\nAction: delete_note(path="obsidian-vault/test456.md")',
            "Complete: deleted",
        ]

        engine.run("delete the file obsidian-vault/test456.md")

        assert store.deleted == ["test456.md"]

    def test_recovers_from_not_found(self, llm):
        """Test a multi-step run: miss, search, delete the found note."""
        store = InMemoryNoteStore([Note(path="archive/test456.md", title="Old", content="x")])
        engine = ReasoningEngine(llm, VaultToolExecutor(store), max_steps=5)
        llm.complete.side_effect = [
            'Thought: try the exact name\nAction: delete_note(path="test456.md")',
            'Thought: not found, search\nAction: search_notes(query="test456")',
            'Thought: found it\nAction: delete_note(path="archive/test456.md")',
            "Complete: Deleted archive/test456.md",
        ]

        context = engine.run("delete test456.md")

        assert context.status == ReasoningStatus.COMPLETED
        assert [step.observation for step in context.steps] == [
            "Note not found: test456.md",
            'Found 1 note(s) matching "test456":\n- archive/test456.md (Old)',
            "Deleted note: archive/test456.md",
        ]
        assert store.deleted == ["test456.md", "archive/test456.md"]
        assert_run_invariants(context)


class TestReasoningTermination:
    """Test terminal states."""

    def test_step_limit(self, llm, store):
        """Test that the run stops after exactly max_steps steps."""
        engine = ReasoningEngine(llm, VaultToolExecutor(store), max_steps=3)
        llm.complete.return_value = "Thought: keep looking\nAction: list_notes()"

        context = engine.run("find everything")

        assert context.status == ReasoningStatus.STEP_LIMIT_EXCEEDED
        assert len(context.steps) == 3
        assert llm.complete.call_count == 3
        assert "3" in context.final_result
        assert_run_invariants(context)

    def test_malformed_response_consumes_a_step(self, engine, llm):
        """Test that an unparseable answer records an empty step and continues."""
        llm.complete.side_effect = ["I am not sure.", "Complete: ok"]

        context = engine.run("hmm")

        assert context.status == ReasoningStatus.COMPLETED
        assert len(context.steps) == 1
        assert context.steps[0].action is None
        assert context.steps[0].observation is None
        assert_run_invariants(context)

    def test_malformed_responses_hit_step_limit(self, llm, store):
        engine = ReasoningEngine(llm, VaultToolExecutor(store), max_steps=2)
        llm.complete.return_value = "no idea"

        context = engine.run("hmm")

        assert context.status == ReasoningStatus.STEP_LIMIT_EXCEEDED
        assert len(context.steps) == 2

    def test_empty_completion_gets_default_message(self, engine, llm):
        llm.complete.return_value = "Thought: nothing to do\nComplete:"

        context = engine.run("noop")

        assert context.status == ReasoningStatus.COMPLETED
        assert context.final_result == EMPTY_COMPLETION_MESSAGE

    def test_llm_failure_is_fatal_and_not_retried(self, engine, llm):
        """Test that an LLM error ends the run with one user-facing message."""
        llm.complete.side_effect = [
            'Thought: list\nAction: list_notes()',
            LLMError("quota exceeded"),
        ]

        context = engine.run("list notes")

        assert context.status == ReasoningStatus.ERROR
        assert "quota exceeded" in context.final_result
        assert "Traceback" not in context.final_result
        assert llm.complete.call_count == 2
        assert len(context.steps) == 1
        assert_run_invariants(context)

    def test_retryable_llm_failure_is_not_retried_either(self, engine, llm):
        llm.complete.side_effect = LLMTimeoutError("timed out")

        context = engine.run("list notes")

        assert context.status == ReasoningStatus.ERROR
        assert llm.complete.call_count == 1
        assert context.steps == []

    def test_step_generation_failure_is_a_reasoning_error(self, engine, llm):
        """Test that a failed LLM call surfaces as ReasoningLLMError with its cause."""
        llm.complete.side_effect = LLMError("quota exceeded")

        with pytest.raises(ReasoningLLMError) as exc_info:
            engine._generate_step(ReasoningContext(original_query="q"), [], 1)

        assert exc_info.value.message == "LLMError: quota exceeded"
        assert isinstance(exc_info.value.__cause__, LLMError)

    def test_cancelled_before_start(self, engine, llm):
        """Test that a pre-set cancel event stops the run without LLM calls."""
        cancel_event = threading.Event()
        cancel_event.set()

        context = engine.run("delete test456.md", cancel_event=cancel_event)

        assert context.status == ReasoningStatus.CANCELLED
        assert "0" in context.final_result
        llm.complete.assert_not_called()

    def test_cancelled_between_steps(self, llm):
        """Test cancellation after an action: the action is kept, no further steps run."""
        cancel_event = threading.Event()
        executor = Mock()

        def execute(tool_name, parameters):
            cancel_event.set()
            return "Deleted note: a.md"

        executor.execute.side_effect = execute
        engine = ReasoningEngine(llm, executor, max_steps=5)
        llm.complete.return_value = 'Thought: go\nAction: delete_note(path="a.md")'

        context = engine.run("delete a.md", cancel_event=cancel_event)

        assert context.status == ReasoningStatus.CANCELLED
        assert len(context.steps) == 1
        assert llm.complete.call_count == 1
        assert "1" in context.final_result
        assert_run_invariants(context)

    def test_invalid_max_steps(self, llm, store):
        with pytest.raises(ValueError):
            ReasoningEngine(llm, VaultToolExecutor(store), max_steps=0)


class TestActionExecution:
    """Test how actions and their failures become observations."""

    def test_each_action_executes_exactly_once(self, llm):
        """Test one execution and one observation per action step."""
        executor = Mock()
        executor.execute.return_value = "ok"
        engine = ReasoningEngine(llm, executor, max_steps=5)
        llm.complete.side_effect = [
            'Thought: a\nAction: read_note(path="a.md")',
            "Thought: b\nAction: get_tags()",
            "Complete: done",
        ]

        context = engine.run("inspect")

        assert executor.execute.call_count == 2
        executor.execute.assert_any_call("read_note", {"path": "a.md"})
        executor.execute.assert_any_call("get_tags", {})
        assert [step.observation for step in context.steps] == ["ok", "ok"]

    def test_tool_exception_becomes_observation(self, llm):
        """Test that a failing tool does not end the run."""
        executor = Mock()
        executor.execute.side_effect = RuntimeError("disk full")
        engine = ReasoningEngine(llm, executor, max_steps=5)
        llm.complete.side_effect = [
            'Thought: write\nAction: create_note(path="a.md", title="A")',
            "Complete: could not write",
        ]

        context = engine.run("create a.md")

        assert context.status == ReasoningStatus.COMPLETED
        assert context.steps[0].observation == "Action failed: disk full"
        assert "Observation: Action failed: disk full" in prompt_of_call(llm, 1)

    def test_validation_error_becomes_observation(self, engine, llm):
        llm.complete.side_effect = [
            "Thought: delete\nAction: delete_note()",
            "Complete: gave up",
        ]

        context = engine.run("delete")

        observation = context.steps[0].observation
        assert observation.startswith("Action failed:")
        assert "missing required parameter" in observation

    def test_unknown_tool_becomes_observation(self, engine, llm):
        llm.complete.side_effect = [
            'Thought: move\nAction: move_note(path="a.md", to="b.md")',
            "Complete: cannot move",
        ]

        context = engine.run("move a.md")

        assert context.steps[0].observation.startswith("Unknown tool: move_note")

    def test_tool_timeout_becomes_observation(self, llm):
        """Test that a slow tool is reported as timed out."""
        release = threading.Event()
        executor = Mock()
        executor.execute.side_effect = lambda tool_name, parameters: release.wait(2) and "late"
        engine = ReasoningEngine(llm, executor, max_steps=3, tool_timeout=0.05)
        llm.complete.side_effect = ["Thought: list\nAction: list_notes()", "Complete: slow vault"]

        try:
            context = engine.run("list")
        finally:
            release.set()

        assert context.status == ReasoningStatus.COMPLETED
        assert "timed out" in context.steps[0].observation
        assert context.steps[0].observation.startswith("Action failed:")

    def test_action_queued_behind_a_hung_action_is_not_executed(self, llm):
        """Test that an action that never started is not reported as timed out."""
        release = threading.Event()
        started = []

        def execute(tool_name, parameters):
            started.append(tool_name)
            if tool_name == "list_notes":
                release.wait(2)
            return f"{tool_name} ok"

        executor = Mock()
        executor.execute.side_effect = execute
        engine = ReasoningEngine(llm, executor, max_steps=5, tool_timeout=0.05)
        llm.complete.side_effect = [
            "Thought: list\nAction: list_notes()",
            'Thought: delete\nAction: delete_note(path="a.md")',
            "Complete: vault is busy",
        ]

        try:
            context = engine.run("clean up")
        finally:
            release.set()

        first, second = context.steps[0].observation, context.steps[1].observation
        assert first.startswith("Action failed: list_notes timed out")
        assert second.startswith("Action not executed: delete_note")
        assert "timed out" not in second
        assert started == ["list_notes"]
        assert_run_invariants(context)

    def test_actions_of_one_run_never_overlap(self, llm):
        """Test that a later action waits for an earlier, timed-out one to finish."""
        release = threading.Event()
        lock = threading.Lock()
        active = []
        max_active = []
        started = []

        def execute(tool_name, parameters):
            with lock:
                active.append(tool_name)
                max_active.append(len(active))
                started.append(tool_name)
            try:
                if tool_name == "list_notes":
                    release.wait(2)
                return f"{tool_name} ok"
            finally:
                with lock:
                    active.remove(tool_name)

        replies = iter([
            "Thought: list\nAction: list_notes()",
            'Thought: read\nAction: read_note(path="a.md")',
            "Complete: done",
        ])
        calls = []

        def complete(system_prompt, messages):
            calls.append(messages)
            # Step 2 lets the hung first action finish
            if len(calls) == 2:
                release.set()
            return next(replies)

        executor = Mock()
        executor.execute.side_effect = execute
        engine = ReasoningEngine(llm, executor, max_steps=5, tool_timeout=0.5)
        llm.complete.side_effect = complete

        try:
            context = engine.run("list then read")
        finally:
            release.set()

        assert context.status == ReasoningStatus.COMPLETED
        assert started == ["list_notes", "read_note"]
        assert max(max_active) == 1
        assert context.steps[1].observation == "read_note ok"


class TestPromptConstruction:
    """Test what the engine sends to the LLM."""

    def test_system_prompt_lists_tools_and_vault_rules(self, engine, llm):
        llm.complete.return_value = "Complete: ok"

        engine.run("hi")

        system_prompt = llm.complete.call_args[0][0]
        assert "- delete_note(path) - Delete a note." in system_prompt
        assert "search_notes(query, tags?, folder?)" in system_prompt
        assert "obsidian-vault/" in system_prompt

    def test_history_window(self, llm, store):
        """Test that only the trailing history window is shown."""
        engine = ReasoningEngine(llm, VaultToolExecutor(store), history_window=2)
        llm.complete.return_value = "Complete: ok"
        history = [
            {"role": "user" if i % 2 == 0 else "assistant", "content": f"m{i}"}
            for i in range(10)
        ]

        engine.run("what next", history=history)

        prompt = prompt_of_call(llm, 0)
        assert "User: m8" in prompt
        assert "Assistant: m9" in prompt
        assert "m7" not in prompt
        assert "Original Query: what next" in prompt
        assert "Step 1" in prompt


class TestProgressNotifications:
    """Test progress reporting."""

    def test_notification_sequence(self, llm, store):
        sink = RecordingProgressSink()
        engine = ReasoningEngine(llm, VaultToolExecutor(store), progress_sink=sink)
        llm.complete.side_effect = [
            'Thought: delete it\nAction: delete_note(path="test456.md")',
            "Complete: done",
        ]

        engine.run("delete test456.md", session_id="s1")

        assert sink.kinds("s1") == [
            "thinking", "thinking", "action", "observation", "thinking", "complete",
        ]

    def test_failing_sink_does_not_abort_run(self, llm, store):
        """Test that sink errors are swallowed."""
        sink = Mock()
        sink.notify.side_effect = RuntimeError("ui gone")
        engine = ReasoningEngine(llm, VaultToolExecutor(store), progress_sink=sink)
        llm.complete.side_effect = [
            'Thought: delete\nAction: delete_note(path="test456.md")',
            "Complete: done",
        ]

        context = engine.run("delete test456.md")

        assert context.status == ReasoningStatus.COMPLETED
        assert store.deleted == ["test456.md"]
