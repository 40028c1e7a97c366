"""
Vault Tool Actions

Typed actions for the Obsidian vault tools. The reasoning engine hands the
executor an untyped ToolAction (name + string parameters); this module
validates it at the boundary and turns it into one of the frozen action
dataclasses below.

The vocabulary comes from TOOL_DEFINITIONS, the same table the reasoning
prompt is rendered from, so the prompt and the executor cannot drift apart.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Union

from config import TOOL_DEFINITIONS, VAULT_DIR_NAME
from core.errors import ToolValidationError
from core.models import ToolAction

logger = logging.getLogger(__name__)

# Tool name -> definition (parameters, required fields, description)
TOOL_SPECS: Dict[str, Dict] = {tool["name"]: tool for tool in TOOL_DEFINITIONS}


# ============================================================================
# ACTIONS
# ============================================================================

@dataclass(frozen=True)
class ListNotes:
    folder: Optional[str] = None


@dataclass(frozen=True)
class SearchNotes:
    query: str
    tags: Tuple[str, ...] = ()
    folder: Optional[str] = None


@dataclass(frozen=True)
class ReadNote:
    path: str


@dataclass(frozen=True)
class CreateNote:
    path: str
    title: str
    content: str = ""
    tags: Tuple[str, ...] = ()


@dataclass(frozen=True)
class UpdateNote:
    """Fields left as None are not changed."""
    path: str
    title: Optional[str] = None
    content: Optional[str] = None
    tags: Optional[Tuple[str, ...]] = None


@dataclass(frozen=True)
class DeleteNote:
    path: str


@dataclass(frozen=True)
class GetTags:
    pass


@dataclass(frozen=True)
class GetBacklinks:
    path: str


VaultAction = Union[
    ListNotes, SearchNotes, ReadNote, CreateNote, UpdateNote, DeleteNote, GetTags, GetBacklinks
]

ACTION_TYPES = {
    "list_notes": ListNotes,
    "search_notes": SearchNotes,
    "read_note": ReadNote,
    "create_note": CreateNote,
    "update_note": UpdateNote,
    "delete_note": DeleteNote,
    "get_tags": GetTags,
    "get_backlinks": GetBacklinks,
}


# ============================================================================
# VALIDATION
# ============================================================================

def build_vault_action(action: ToolAction, vault_dir: str = VAULT_DIR_NAME) -> VaultAction:
    """
    Validate a ToolAction and convert it into a typed vault action.

    Args:
        action: Tool name and raw string parameters from the model
        vault_dir: Vault folder name stripped from paths

    Returns:
        The typed action

    Raises:
        ToolValidationError: Unknown tool, unknown or missing parameters,
            or a path outside the vault

    Example:
        >>> build_vault_action(ToolAction("delete_note", {"path": "obsidian-vault/test456.md"}))
        DeleteNote(path='test456.md')
    """
    spec = TOOL_SPECS.get(action.tool_name)
    if spec is None or action.tool_name not in ACTION_TYPES:
        raise ToolValidationError(f"Unknown tool: {action.tool_name}")

    allowed = set(spec["parameters"]["properties"])
    unknown = sorted(set(action.parameters) - allowed)
    if unknown:
        raise ToolValidationError(
            f"{action.tool_name} does not accept parameter(s): {', '.join(unknown)}"
        )

    missing = [
        name for name in spec["parameters"]["required"]
        if not (action.parameters.get(name) or "").strip()
    ]
    if missing:
        raise ToolValidationError(
            f"{action.tool_name} is missing required parameter(s): {', '.join(missing)}"
        )

    values = {}
    for name, value in action.parameters.items():
        if name == "tags":
            values[name] = split_tags(value)
        elif name == "path":
            values[name] = normalize_note_path(value, vault_dir)
        elif name == "folder":
            values[name] = normalize_folder(value, vault_dir)
        else:
            values[name] = value

    if action.tool_name == "update_note" and len(values) == 1:
        raise ToolValidationError("update_note needs at least one of: title, content, tags")

    return ACTION_TYPES[action.tool_name](**values)


def split_tags(value: Optional[str]) -> Tuple[str, ...]:
    """Split ``"a, #b,,c"`` into ``("a", "b", "c")``, dropping duplicates."""
    tags = []
    for raw in (value or "").split(","):
        tag = raw.strip().lstrip("#").strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tuple(tags)


def _strip_vault_prefix(value: str, vault_dir: str) -> str:
    cleaned = value.strip().strip("\"'").replace("\\", "/")
    prefix = vault_dir.strip("/") + "/" if vault_dir else None

    while True:
        if cleaned.startswith("./"):
            cleaned = cleaned[2:]
        elif cleaned.startswith("/"):
            cleaned = cleaned[1:]
        elif prefix and cleaned.startswith(prefix):
            cleaned = cleaned[len(prefix):]
        else:
            break

    if vault_dir and cleaned == vault_dir.strip("/"):
        return ""
    if ".." in cleaned.split("/"):
        raise ToolValidationError(f"Path points outside the vault: {value}")
    return cleaned


def normalize_note_path(path: str, vault_dir: str = VAULT_DIR_NAME) -> str:
    """
    Make a note path relative to the vault root.

    ``obsidian-vault/test456.md``, ``./test456.md`` and ``/test456.md`` all
    become ``test456.md``.

    Raises:
        ToolValidationError: Empty path or a path containing ``..``
    """
    cleaned = _strip_vault_prefix(path, vault_dir)
    if not cleaned:
        raise ToolValidationError(f"Invalid note path: {path!r}")
    if cleaned != path:
        logger.debug(f"📁 Normalized path {path!r} -> {cleaned!r}")
    return cleaned


def normalize_folder(folder: Optional[str], vault_dir: str = VAULT_DIR_NAME) -> Optional[str]:
    """Like normalize_note_path, but the vault root itself maps to None."""
    if folder is None:
        return None
    cleaned = _strip_vault_prefix(folder, vault_dir).rstrip("/")
    return cleaned or None
