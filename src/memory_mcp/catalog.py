"""Static tool, resource and prompt metadata served without the backend."""
from typing import Any

from mcp.types import (
    GetPromptResult,
    Implementation,
    Prompt,
    PromptArgument,
    PromptMessage,
    ResourceTemplate,
    TextContent,
    Tool,
)
from pydantic import BaseModel

SERVER_NAME = "@vheins/memory-mcp"
SERVER_VERSION = "1.0.0"

SCOPE_TYPES = ["system", "organization", "repository", "user"]
MEMORY_TYPES = [
    "business_rule",
    "decision_log",
    "preference",
    "system_constraint",
    "documentation",
    "tech_stack",
    "fact",
]
RELATION_TYPES = ["related", "depends_on", "supersedes", "contradicts"]

_IMPORTANCE = {
    "type": "integer",
    "minimum": 1,
    "maximum": 10,
    "description": "Relative importance, 1 (trivia) to 10 (critical)",
}

TOOLS = [
    Tool(
        name="memory-write",
        description=(
            "Create a memory, or overwrite an existing one when `id` is given. "
            "The owning user is taken from the bearer token, never from arguments."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "id": {
                    "type": "string",
                    "description": "Existing memory id to overwrite (omit to create)",
                },
                "organization": {"type": "string", "description": "Organization slug"},
                "repository": {"type": "string", "description": "Repository identifier"},
                "scope_type": {"type": "string", "enum": SCOPE_TYPES},
                "memory_type": {"type": "string", "enum": MEMORY_TYPES},
                "current_content": {"type": "string", "description": "Memory body"},
                "importance": _IMPORTANCE,
            },
            "required": [
                "organization",
                "repository",
                "scope_type",
                "memory_type",
                "current_content",
            ],
        },
    ),
    Tool(
        name="memory-update",
        description="Replace the content of an existing memory, keeping its history.",
        inputSchema={
            "type": "object",
            "properties": {
                "id": {"type": "string", "description": "Memory id"},
                "current_content": {"type": "string", "description": "New memory body"},
                "memory_type": {"type": "string", "enum": MEMORY_TYPES},
                "importance": _IMPORTANCE,
            },
            "required": ["id", "current_content"],
        },
    ),
    Tool(
        name="memory-delete",
        description="Soft-delete a memory owned by the authenticated user.",
        inputSchema={
            "type": "object",
            "properties": {"id": {"type": "string", "description": "Memory id"}},
            "required": ["id"],
        },
    ),
    Tool(
        name="memory-search",
        description="Search memories visible to the authenticated user within a repository.",
        inputSchema={
            "type": "object",
            "properties": {
                "repository": {"type": "string", "description": "Repository identifier"},
                "query": {"type": "string", "description": "Free-text query"},
                "filters": {
                    "type": "object",
                    "description": "Optional filters",
                    "properties": {
                        "scope_type": {"type": "string", "enum": SCOPE_TYPES},
                        "memory_type": {"type": "string", "enum": MEMORY_TYPES},
                    },
                },
                "limit": {
                    "type": "integer",
                    "minimum": 1,
                    "maximum": 100,
                    "default": 10,
                },
            },
            "required": ["repository"],
        },
    ),
    Tool(
        name="memory-link",
        description="Record a typed relation between two memories.",
        inputSchema={
            "type": "object",
            "properties": {
                "source_id": {"type": "string", "description": "Memory id the link starts from"},
                "target_id": {"type": "string", "description": "Memory id the link points to"},
                "relation_type": {"type": "string", "enum": RELATION_TYPES, "default": "related"},
            },
            "required": ["source_id", "target_id"],
        },
    ),
]

RESOURCE_TEMPLATES = [
    ResourceTemplate(
        uriTemplate="memory://index",
        name="memory-index",
        description="Index of the memories visible to the authenticated user",
        mimeType="application/json",
    ),
]

GUIDE_URI = "memory://guide"
GUIDE_TEXT = """\
# Memory usage guide

- Search before writing: `memory-search` with the current repository.
- Prefer `memory-update` over writing a near-duplicate memory.
- Pick the narrowest `scope_type` that fits (`user` < `repository` <
  `organization` < `system`).
- Use `memory-link` with `supersedes` when a decision replaces an older one.
- Read `memory://index` for an overview of what is already stored.
"""

# Resource.uri is an AnyUrl in mcp.types; plain dicts keep the literal uri string.
RESOURCES = [
    {
        "uri": GUIDE_URI,
        "name": "memory-guide",
        "description": "How an agent should read and write memories",
        "mimeType": "text/markdown",
    },
]

_RESOURCE_CONTENTS = {
    GUIDE_URI: {"uri": GUIDE_URI, "mimeType": "text/markdown", "text": GUIDE_TEXT},
}

PROMPTS = [
    Prompt(
        name="memory-agent-core",
        description="System instructions for an agent that keeps long-term memory",
        arguments=[
            PromptArgument(
                name="repository",
                description="Repository the agent is working in",
                required=False,
            ),
        ],
    ),
]

_AGENT_CORE = """\
You have access to a long-term memory store through the memory-* tools.
At the start of a task call `memory-search`{scope} to recall business rules,
decisions and preferences. When you learn something durable, store it with
`memory-write`; when a stored memory is wrong or outdated, fix it with
`memory-update` instead of writing a new one. Never store secrets."""


def dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


def server_info() -> dict[str, Any]:
    return dump(Implementation(name=SERVER_NAME, version=SERVER_VERSION))


def capabilities() -> dict[str, Any]:
    """Capability flags, derived from what the listings actually serve."""
    caps: dict[str, Any] = {}
    if TOOLS:
        caps["tools"] = {"list": True, "call": True}
    if RESOURCES or RESOURCE_TEMPLATES:
        caps["resources"] = {
            "list": True,
            "read": True,
            "templates": bool(RESOURCE_TEMPLATES),
        }
    if PROMPTS:
        caps["prompts"] = {"list": True, "get": True}
    return caps


def list_tools() -> list[dict[str, Any]]:
    return [dump(tool) for tool in TOOLS]


def list_resource_templates() -> list[dict[str, Any]]:
    return [dump(template) for template in RESOURCE_TEMPLATES]


def list_resources() -> list[dict[str, Any]]:
    return [dict(resource) for resource in RESOURCES]


def list_prompts() -> list[dict[str, Any]]:
    return [dump(prompt) for prompt in PROMPTS]


def read_resource(uri: Any) -> dict[str, Any] | None:
    """Contents of a static resource, or None when the uri is not served locally."""
    contents = _RESOURCE_CONTENTS.get(uri) if isinstance(uri, str) else None
    if contents is None:
        return None
    return {"contents": [dict(contents)]}


def get_prompt(name: Any, arguments: dict[str, Any] | None = None) -> dict[str, Any] | None:
    """Render a static prompt, or None when no prompt by that name exists locally."""
    if name != "memory-agent-core":
        return None
    repository = (arguments or {}).get("repository")
    scope = f" for repository `{repository}`" if repository else ""
    result = GetPromptResult(
        description=PROMPTS[0].description,
        messages=[
            PromptMessage(
                role="user",
                content=TextContent(type="text", text=_AGENT_CORE.format(scope=scope)),
            )
        ],
    )
    return dump(result)
