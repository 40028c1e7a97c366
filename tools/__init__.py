"""
Vault Tools Module

The actions the reasoning engine can take against the user's Obsidian
vault. These are the "hands" of the vault agent.

- vault_tools: typed actions and boundary validation
- executor: runs actions against a NoteStore and formats observations
"""

from .vault_tools import (
    TOOL_SPECS,
    ACTION_TYPES,
    VaultAction,
    ListNotes,
    SearchNotes,
    ReadNote,
    CreateNote,
    UpdateNote,
    DeleteNote,
    GetTags,
    GetBacklinks,
    build_vault_action,
    split_tags,
    normalize_note_path,
    normalize_folder,
)

from .executor import (
    NoteStore,
    NoteInfo,
    Note,
    VaultToolExecutor,
)

__all__ = [
    # Actions
    "TOOL_SPECS",
    "ACTION_TYPES",
    "VaultAction",
    "ListNotes",
    "SearchNotes",
    "ReadNote",
    "CreateNote",
    "UpdateNote",
    "DeleteNote",
    "GetTags",
    "GetBacklinks",
    "build_vault_action",
    "split_tags",
    "normalize_note_path",
    "normalize_folder",

    # Execution
    "NoteStore",
    "NoteInfo",
    "Note",
    "VaultToolExecutor",
]
