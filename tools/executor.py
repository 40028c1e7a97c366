"""
Vault Tool Executor

Executes vault tool actions against a NoteStore and formats the result as
observation text for the reasoning loop.

Error contract:
- unknown tool name -> an "Unknown tool" observation (the model can recover)
- invalid parameters -> ToolValidationError
- store failures -> ToolExecutionError
The reasoning engine turns raised errors into "Action failed: ..." observations.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Protocol, Sequence

from config import VAULT_DIR_NAME
from core.errors import ToolExecutionError
from core.models import ToolAction
from .vault_tools import (
    build_vault_action,
    VaultAction,
    ListNotes,
    SearchNotes,
    ReadNote,
    CreateNote,
    UpdateNote,
    DeleteNote,
    GetTags,
    GetBacklinks,
)

logger = logging.getLogger(__name__)


# ============================================================================
# NOTE STORE INTERFACE
# ============================================================================

@dataclass
class NoteInfo:
    """Summary of a note as returned by listings and searches."""
    path: str
    title: str
    tags: List[str] = field(default_factory=list)


@dataclass
class Note:
    """A full note."""
    path: str
    title: str
    content: str
    tags: List[str] = field(default_factory=list)


class NoteStore(Protocol):
    """
    Markdown note storage backing the vault tools.

    Lookups of missing notes return None / False rather than raising.
    """

    def is_available(self) -> bool:
        ...

    def list_notes(self, folder: Optional[str] = None) -> List[NoteInfo]:
        ...

    def search_notes(
        self,
        query: str,
        tags: Sequence[str] = (),
        folder: Optional[str] = None,
    ) -> List[NoteInfo]:
        ...

    def read_note(self, path: str) -> Optional[Note]:
        ...

    def create_note(self, path: str, title: str, content: str = "", tags: Sequence[str] = ()) -> Note:
        ...

    def update_note(
        self,
        path: str,
        title: Optional[str] = None,
        content: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
    ) -> Optional[Note]:
        ...

    def delete_note(self, path: str) -> bool:
        ...

    def get_tags(self) -> Dict[str, int]:
        ...

    def get_backlinks(self, path: str) -> List[NoteInfo]:
        ...


# ============================================================================
# EXECUTOR
# ============================================================================

class VaultToolExecutor:
    """ToolExecutor for the vault vocabulary."""

    def __init__(
        self,
        store: NoteStore,
        allowed_tools: Optional[Iterable[str]] = None,
        vault_dir: str = VAULT_DIR_NAME,
    ):
        """
        Initialize the executor.

        Args:
            store: Note storage
            allowed_tools: Restrict dispatch to these tool names (default: all)
            vault_dir: Vault folder name stripped from paths
        """
        self.store = store
        self.vault_dir = vault_dir

        handlers: Dict[str, Callable[[VaultAction], str]] = {
            "list_notes": self._list_notes,
            "search_notes": self._search_notes,
            "read_note": self._read_note,
            "create_note": self._create_note,
            "update_note": self._update_note,
            "delete_note": self._delete_note,
            "get_tags": self._get_tags,
            "get_backlinks": self._get_backlinks,
        }

        if allowed_tools is not None:
            allowed = list(allowed_tools)
            unknown = sorted(set(allowed) - set(handlers))
            if unknown:
                raise ValueError(f"Unknown vault tools: {', '.join(unknown)}")
            handlers = {name: handler for name, handler in handlers.items() if name in allowed}

        self._handlers = handlers

    @property
    def tool_names(self) -> List[str]:
        return list(self._handlers)

    def execute(self, tool_name: str, parameters: Dict[str, str]) -> str:
        """
        Execute one tool action.

        Args:
            tool_name: Name of the tool
            parameters: Raw string parameters

        Returns:
            Observation text

        Raises:
            ToolValidationError: If the parameters are invalid
            ToolExecutionError: If the store fails
        """
        handler = self._handlers.get(tool_name)
        if handler is None:
            logger.warning(f"⚠️  Unknown tool requested: {tool_name}")
            return f"Unknown tool: {tool_name}. Available tools: {', '.join(self.tool_names)}"

        action = build_vault_action(ToolAction(tool_name, dict(parameters or {})), self.vault_dir)

        try:
            return handler(action)
        except ToolExecutionError:
            raise
        except Exception as e:
            logger.error(f"❌ {tool_name} failed: {e}")
            raise ToolExecutionError(f"{tool_name} failed: {e}") from e

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _list_notes(self, action: ListNotes) -> str:
        notes = self.store.list_notes(action.folder)
        location = f"folder '{action.folder}'" if action.folder else "the vault"
        if not notes:
            return f"No notes found in {location}."
        return f"Found {len(notes)} note(s) in {location}:\n{_format_note_list(notes)}"

    def _search_notes(self, action: SearchNotes) -> str:
        notes = self.store.search_notes(action.query, action.tags, action.folder)
        if not notes:
            return f'No notes match "{action.query}".'
        return f'Found {len(notes)} note(s) matching "{action.query}":\n{_format_note_list(notes)}'

    def _read_note(self, action: ReadNote) -> str:
        note = self.store.read_note(action.path)
        if note is None:
            return f"Note not found: {action.path}"
        tags = ", ".join(f"#{tag}" for tag in note.tags) or "none"
        return f"Note: {note.path}\nTitle: {note.title}\nTags: {tags}\n\n{note.content}"

    def _create_note(self, action: CreateNote) -> str:
        note = self.store.create_note(action.path, action.title, action.content, action.tags)
        return f"Created note: {note.path}"

    def _update_note(self, action: UpdateNote) -> str:
        note = self.store.update_note(action.path, action.title, action.content, action.tags)
        if note is None:
            return f"Note not found: {action.path}"
        return f"Updated note: {note.path}"

    def _delete_note(self, action: DeleteNote) -> str:
        if not self.store.delete_note(action.path):
            return f"Note not found: {action.path}"
        return f"Deleted note: {action.path}"

    def _get_tags(self, action: GetTags) -> str:
        tags = self.store.get_tags()
        if not tags:
            return "No tags in the vault."
        ordered = sorted(tags.items(), key=lambda item: (-item[1], item[0]))
        return f"Tags ({len(tags)}): " + ", ".join(f"#{tag} ({count})" for tag, count in ordered)

    def _get_backlinks(self, action: GetBacklinks) -> str:
        notes = self.store.get_backlinks(action.path)
        if not notes:
            return f"No notes link to {action.path}."
        return f"{len(notes)} note(s) link to {action.path}:\n{_format_note_list(notes)}"


def _format_note_list(notes: List[NoteInfo]) -> str:
    lines = []
    for note in notes:
        line = f"- {note.path} ({note.title})"
        if note.tags:
            line += " " + " ".join(f"#{tag}" for tag in note.tags)
        lines.append(line)
    return "\n".join(lines)
