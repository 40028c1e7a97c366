"""
Prompt templates and tool definitions for the vault agent.

This module contains:
- The ReAct reasoning system prompt
- Capability, arbitration and routing classification prompts
- Retrieval and dialogue answer prompts
- The vault tool definitions shared by the prompt and the executor

All prompts should be maintained here (not hardcoded in services/tools).
"""

from typing import Dict, List

# ============================================================================
# PERSONA
# ============================================================================

ASSISTANT_NAME = "Jarvis"

DIALOGUE_PROMPT = f"""You are {ASSISTANT_NAME}, a personal AI assistant.

Your capabilities:
- Friendly conversation that remembers the previous messages
- Help with general questions
- Working with the user's Obsidian vault through specialized agents
- Searching the user's knowledge base

Rules:
1. Be friendly and professional
2. Answer briefly and to the point
3. Use the context of previous messages
4. If the user needs file or note operations, explain that you can help with them"""

# ============================================================================
# TOOL DEFINITIONS (closed vocabulary for the reasoning engine)
# ============================================================================

TOOL_DEFINITIONS = [
    {
        "name": "list_notes",
        "description": "List notes in a folder (the whole vault when folder is omitted).",
        "parameters": {
            "type": "OBJECT",
            "properties": {
                "folder": {"type": "STRING", "description": "Folder relative to the vault root"},
            },
            "required": [],
        },
    },
    {
        "name": "search_notes",
        "description": "Search notes by text, optionally filtered by comma-separated tags and folder.",
        "parameters": {
            "type": "OBJECT",
            "properties": {
                "query": {"type": "STRING", "description": "Text to search for"},
                "tags": {"type": "STRING", "description": "Comma-separated tags"},
                "folder": {"type": "STRING", "description": "Folder relative to the vault root"},
            },
            "required": ["query"],
        },
    },
    {
        "name": "read_note",
        "description": "Read a note.",
        "parameters": {
            "type": "OBJECT",
            "properties": {
                "path": {"type": "STRING", "description": "Note path relative to the vault root"},
            },
            "required": ["path"],
        },
    },
    {
        "name": "create_note",
        "description": "Create a note.",
        "parameters": {
            "type": "OBJECT",
            "properties": {
                "path": {"type": "STRING", "description": "Note path relative to the vault root"},
                "title": {"type": "STRING", "description": "Note title"},
                "content": {"type": "STRING", "description": "Markdown body"},
                "tags": {"type": "STRING", "description": "Comma-separated tags"},
            },
            "required": ["path", "title"],
        },
    },
    {
        "name": "update_note",
        "description": "Update a note's title, content or tags.",
        "parameters": {
            "type": "OBJECT",
            "properties": {
                "path": {"type": "STRING", "description": "Note path relative to the vault root"},
                "title": {"type": "STRING", "description": "New title"},
                "content": {"type": "STRING", "description": "New markdown body"},
                "tags": {"type": "STRING", "description": "Comma-separated tags"},
            },
            "required": ["path"],
        },
    },
    {
        "name": "delete_note",
        "description": "Delete a note.",
        "parameters": {
            "type": "OBJECT",
            "properties": {
                "path": {"type": "STRING", "description": "Note path relative to the vault root"},
            },
            "required": ["path"],
        },
    },
    {
        "name": "get_tags",
        "description": "List all tags used in the vault.",
        "parameters": {
            "type": "OBJECT",
            "properties": {},
            "required": [],
        },
    },
    {
        "name": "get_backlinks",
        "description": "List notes that link to the given note.",
        "parameters": {
            "type": "OBJECT",
            "properties": {
                "path": {"type": "STRING", "description": "Note path relative to the vault root"},
            },
            "required": ["path"],
        },
    },
]

# ============================================================================
# REASONING PROMPT (ReAct loop)
# ============================================================================

REASONING_PROMPT = """You are a smart agent working with an Obsidian vault. Use the ReAct pattern (Reasoning + Acting).

CONVERSATION CONTEXT:
Take the previous chat messages into account to understand the request.
It is especially important to remember which files were recently created, read or changed.

AVAILABLE TOOLS:
{tool_catalogue}

FILE PATHS:
- The vault is mounted as "{vault_dir}/"
- A path like "{vault_dir}/filename.md" means the file "filename.md" in the vault root
- Always use ONLY paths relative to the vault (for example "test456.md", NOT "{vault_dir}/test456.md")
- When looking for a file, try the exact name first, then search by content

RESPONSE FORMAT:
Thought: [your reasoning about the current situation]
Action: tool_name(param="value", ...)   OR   Complete: [final answer]

CRITICALLY IMPORTANT:
- Answer with ONLY one step at a time
- Do NOT invent the result of an action (Observation)
- Do NOT write several steps in a row
- Wait for the real result from the system

RULES:
1. Think step by step
2. If a file is not found exactly, look for it with search_notes
3. Remove the "{vault_dir}/" prefix from file paths
4. Search with both the full name and parts of the name
5. Always check the result of an action
6. When the task is done, answer "Complete: [result]"

EXAMPLES:
Query: "delete the file {vault_dir}/test456.md"
Thought: I need to delete test456.md (removing the {vault_dir}/ prefix)
Action: delete_note(path="test456.md")

Query: "find notes about the project"
Thought: I will search for notes containing the word "project"
Action: search_notes(query="project")"""

REASONING_STEP_INSTRUCTION = "Step {step_number}: what should be done next? Answer for step {step_number} only."

# ============================================================================
# VAULT AGENT MODE PROMPTS (simple one-shot vs multi-step reasoning)
# ============================================================================

COMPLEXITY_PROMPT = """Decide whether this vault request needs a chain of actions (reasoning).

SIMPLE requests (one action):
- create a note
- read note X
- find notes about Y
- delete note X (when the path is exact)
- list notes

COMPLEX requests (several dependent actions):
- find a file and delete it
- if note X exists, read it
- delete a file by an inexact name (a search is needed first)
- rename or move a file
- several actions in one request
- conditional logic (if ... then ...)

Answer ONLY: simple or complex"""

SIMPLE_ACTION_PROMPT = """You translate a request about an Obsidian vault into exactly one tool call.

AVAILABLE TOOLS:
{tool_catalogue}

FILE PATHS:
- Use ONLY paths relative to the vault (for example "test456.md", NOT "{vault_dir}/test456.md")
- For create_note, derive the path from the title when it is missing ("Ideas" -> "Ideas.md")
  and the title from the path when it is missing ("ideas.md" -> "ideas")

Answer with one line and nothing else:
Action: tool_name(param="value", ...)"""

# ============================================================================
# CLASSIFICATION PROMPTS
# ============================================================================

CAPABILITY_PROMPT = """Decide whether the "{agent_name}" agent is needed for this request.

The {agent_name} agent can:
{agent_description}

Answer only: true or false"""

ARBITRATION_PROMPT = """Choose the best agent to handle the user's request.

Available agents:
{agent_descriptions}

Rules:
1. Choose the agent whose description best matches the request
2. If several agents fit, choose the most specialized one
3. Answer ONLY with the agent name, without explanations

Request: {query}"""

ROUTING_PROMPT = """Decide how to answer the user's request when no specialized agent applies.

Routes:
- "retrieval": the user asks about something specific that may be in their knowledge base
  (projects, documentation, saved notes) and is NOT already in the conversation
- "dialogue": greetings, general questions, help requests, or when the answer is
  already in the conversation history

Examples:
- "tell me about the Jarvis project" (no context) -> retrieval
- "what about Thailand Vacation?" (no context) -> retrieval
- "what is my name?" (name mentioned in history) -> dialogue
- "hello" -> dialogue
- "help me with this code" -> dialogue

Answer ONLY with the route name: retrieval or dialogue"""

# ============================================================================
# RETRIEVAL PROMPTS
# ============================================================================

KNOWLEDGE_ANSWER_PROMPT = """Answer the user's question using ONLY the information provided below.

Context from the knowledge base:
{context}

Rules:
- Be brief and to the point
- Use only information from the context
- If the information is not enough, say so honestly"""

NO_KNOWLEDGE_RESPONSE = (
    "🤔 I couldn't find anything about that in your knowledge base. "
    "Try rephrasing the question or ask me something else."
)

# ============================================================================
# USER-FACING MESSAGES
# ============================================================================

REASONING_ERROR_MESSAGE = "❌ I couldn't finish the task because the language model request failed: {error}"

STEP_LIMIT_MESSAGE = "⚠️  The task is too complex: reached the limit of {max_steps} reasoning steps."

CANCELLED_MESSAGE = (
    "⏹️  The task was cancelled after {steps} step(s). "
    "Actions that already ran were not rolled back."
)

EMPTY_COMPLETION_MESSAGE = "✅ Done."

UNPARSED_SIMPLE_ACTION_MESSAGE = "Error: could not turn the request into a tool call: {response}"

ORCHESTRATOR_ERROR_MESSAGE = "❌ Something went wrong while processing your request: {error}"


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================

def format_prompt(template: str, **kwargs) -> str:
    """
    Format a prompt template with provided variables.

    Args:
        template: Prompt template string with {placeholders}
        **kwargs: Variables to substitute into the template

    Returns:
        Formatted prompt string
    """
    try:
        return template.format(**kwargs)
    except KeyError as e:
        raise ValueError(f"Missing required prompt variable: {e}")


def get_tool_by_name(tool_name: str) -> Dict:
    """
    Retrieve tool definition by name.

    Args:
        tool_name: Name of the tool to retrieve

    Returns:
        Tool definition dictionary

    Raises:
        KeyError: If the tool is not defined
    """
    for tool in TOOL_DEFINITIONS:
        if tool["name"] == tool_name:
            return tool
    raise KeyError(f"Tool '{tool_name}' not found in TOOL_DEFINITIONS")


def get_tool_names() -> List[str]:
    """Names of all defined tools, in definition order."""
    return [tool["name"] for tool in TOOL_DEFINITIONS]


def render_tool_catalogue() -> str:
    """
    Render TOOL_DEFINITIONS as the tool list shown in the reasoning prompt.

    Optional parameters are marked with "?", e.g.
    ``- search_notes(query, tags?, folder?) - Search notes ...``
    """
    lines = []
    for tool in TOOL_DEFINITIONS:
        required = set(tool["parameters"]["required"])
        params = [
            name if name in required else f"{name}?"
            for name in tool["parameters"]["properties"]
        ]
        lines.append(f"- {tool['name']}({', '.join(params)}) - {tool['description']}")
    return "\n".join(lines)


def build_reasoning_prompt(vault_dir: str) -> str:
    """Build the full reasoning system prompt for the given vault folder name."""
    return format_prompt(
        REASONING_PROMPT,
        tool_catalogue=render_tool_catalogue(),
        vault_dir=vault_dir,
    )


def build_simple_action_prompt(vault_dir: str) -> str:
    """Build the one-shot action system prompt for the given vault folder name."""
    return format_prompt(
        SIMPLE_ACTION_PROMPT,
        tool_catalogue=render_tool_catalogue(),
        vault_dir=vault_dir,
    )
