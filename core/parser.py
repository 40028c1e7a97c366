"""
ReAct Response Parser

Turns the raw text of one reasoning turn into a structured result. The
model is asked to answer in a small line-oriented language:

    Step 2:
    Thought: the note was not found, search for it
    Action: search_notes(query="test456")

or, when done:

    Complete: the note was deleted.
    It had two backlinks.

Rules:
- ``Step N:`` labels scope the text. When the label of the current step is
  present, only its section is read (up to the next different step label).
  Otherwise only the unlabeled text before the first step label is read.
  Models often echo earlier steps or run ahead into later ones; that
  content must never be acted upon.
- The first ``Thought:`` and the first ``Action:`` in scope are used.
- ``Complete:`` runs to the end of the scope, blank lines included, and
  takes precedence over any ``Action:``.
- ``Observation:`` lines are written by the system, never by the model, so
  they are skipped.
- Actions use call syntax: ``tool(key="value", other='value')``. Quoted
  values may span lines and understand ``\\n``, ``\\t``, ``\\"`` escapes.
"""

import re
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .models import ToolAction

logger = logging.getLogger(__name__)

# "Step 2:", "**Step 2:**", "## Step 2:" ...
STEP_LABEL_RE = re.compile(r"^\s*[#*]*\s*Step\s+(\d+)\s*\**\s*:(?:\*\*)?\s*(.*)$", re.IGNORECASE)

KEYWORD_RE = re.compile(
    r"^\s*\**\s*(Thought|Action|Complete|Observation)\s*\**\s*:(?:\*\*)?\s*(.*)$",
    re.IGNORECASE,
)

CALL_RE = re.compile(r"\s*`*\s*([A-Za-z_]\w*)\s*\(")
PARAM_KEY_RE = re.compile(r"([A-Za-z_]\w*)\s*=\s*")

ESCAPES = {"n": "\n", "t": "\t", "\\": "\\", '"': '"', "'": "'"}


@dataclass
class ParsedResponse:
    """
    Structured content of one reasoning turn.

    Attributes:
        thought: Text after ``Thought:`` ("" when absent)
        action: Parsed action, None when absent or unparseable
        action_text: Raw text after ``Action:`` (kept for logging)
        complete: Final answer after ``Complete:``, None when absent
    """
    thought: str = ""
    action: Optional[ToolAction] = None
    action_text: Optional[str] = None
    complete: Optional[str] = None

    @property
    def is_malformed(self) -> bool:
        return self.complete is None and self.action is None


def parse_response(text: str, step_number: int) -> ParsedResponse:
    """
    Parse one model response for the given step.

    Args:
        text: Raw model output
        step_number: The step currently being generated

    Returns:
        ParsedResponse; never raises on malformed input
    """
    scope = _scope_lines((text or "").splitlines(), step_number)
    result = ParsedResponse()

    i = 0
    while i < len(scope):
        match = KEYWORD_RE.match(scope[i])
        if not match:
            i += 1
            continue

        keyword = match.group(1).lower()
        rest = match.group(2)

        if keyword == "complete":
            result.complete = "\n".join([rest] + scope[i + 1:]).strip()
            break

        if keyword == "thought":
            if not result.thought:
                result.thought = rest.strip()
            i += 1
            continue

        if keyword == "action":
            body = [rest]
            j = i + 1
            while j < len(scope) and not KEYWORD_RE.match(scope[j]):
                body.append(scope[j])
                j += 1
            if result.action_text is None:
                result.action_text = "\n".join(body).strip()
            i = j
            continue

        # Observation: written by the model, not by a tool
        i += 1

    if result.action_text:
        result.action = parse_action(result.action_text)
        if result.action is None:
            logger.warning(f"⚠️  Could not parse action: {result.action_text[:100]}")

    return result


def _scope_lines(lines: List[str], step_number: int) -> List[str]:
    """Select the lines that belong to ``step_number``."""
    start = None
    for index, line in enumerate(lines):
        match = STEP_LABEL_RE.match(line)
        if match and int(match.group(1)) == step_number:
            start = index
            break

    scope = []
    if start is None:
        for line in lines:
            if STEP_LABEL_RE.match(line):
                break
            scope.append(line)
        return scope

    first = STEP_LABEL_RE.match(lines[start]).group(2)
    if first.strip():
        scope.append(first)

    for line in lines[start + 1:]:
        match = STEP_LABEL_RE.match(line)
        if match:
            if int(match.group(1)) != step_number:
                break
            # repeated label of the current step
            if match.group(2).strip():
                scope.append(match.group(2))
            continue
        scope.append(line)
    return scope


def parse_action(text: str) -> Optional[ToolAction]:
    """
    Parse ``tool(key="value", ...)`` into a ToolAction.

    Text after the closing parenthesis is ignored. Returns None when the
    call is malformed (no name, missing parenthesis, unterminated quote,
    positional arguments).
    """
    match = CALL_RE.match(text)
    if not match:
        return None

    tool_name = match.group(1)
    params: Dict[str, str] = {}
    pos = match.end()
    length = len(text)

    while True:
        pos = _skip_whitespace(text, pos)
        if pos >= length:
            return None
        if text[pos] == ")":
            return ToolAction(tool_name=tool_name, parameters=params)

        key_match = PARAM_KEY_RE.match(text, pos)
        if not key_match:
            return None
        key = key_match.group(1)
        pos = key_match.end()

        if pos < length and text[pos] in "\"'":
            value, pos = _read_quoted(text, pos)
            if value is None:
                return None
        else:
            end = pos
            while end < length and text[end] not in ",)":
                end += 1
            value = text[pos:end].strip()
            pos = end

        params[key] = value

        pos = _skip_whitespace(text, pos)
        if pos < length and text[pos] == ",":
            pos += 1
            continue
        if pos < length and text[pos] == ")":
            return ToolAction(tool_name=tool_name, parameters=params)
        return None


def _skip_whitespace(text: str, pos: int) -> int:
    while pos < len(text) and text[pos].isspace():
        pos += 1
    return pos


def _read_quoted(text: str, pos: int) -> Tuple[Optional[str], int]:
    """Read a quoted value starting at ``pos``. Returns (None, pos) if unterminated."""
    quote = text[pos]
    i = pos + 1
    buf = []
    while i < len(text):
        char = text[i]
        if char == "\\" and i + 1 < len(text):
            nxt = text[i + 1]
            if nxt in ESCAPES:
                buf.append(ESCAPES[nxt])
            else:
                buf.append(char + nxt)
            i += 2
            continue
        if char == quote:
            return "".join(buf), i + 1
        buf.append(char)
        i += 1
    return None, i
