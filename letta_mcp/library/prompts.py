"""Built-in prompt templates for common Letta workflows."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Type, TypeVar

from letta_mcp.core.errors import ValidationError
from letta_mcp.registry.schema import PromptArgument, PromptEntry, user_message
from letta_mcp.registry.store import Registry

E = TypeVar("E", bound=Enum)


def parse_choice(enum_type: Type[E], value: Any, argument: str) -> E:
    """Map ``value`` onto ``enum_type`` or raise ``ValidationError`` listing the valid choices."""
    try:
        return enum_type(value)
    except ValueError:
        choices = ", ".join(member.value for member in enum_type)
        raise ValidationError(f"Invalid {argument}: {value!r}. Expected one of: {choices}")


class ToolAction(str, Enum):
    DISCOVER = "discover"
    ATTACH = "attach"
    CREATE = "create"
    AUDIT = "audit"


class MigrationType(str, Enum):
    EXPORT = "export"
    IMPORT = "import"
    UPGRADE = "upgrade"
    CLONE = "clone"


# ── Handlers ──────────────────────────────────────────────────────────────


def agent_wizard(args: Dict[str, Any]) -> List[Dict[str, Any]]:
    purpose = args.get("purpose") or "general assistant"
    personality = args.get("personality") or "helpful and professional"
    tools = args.get("tools") or "basic"
    return [user_message(
        "I want to create a new Letta agent with the following specifications:\n\n"
        f"Purpose: {purpose}\n"
        f"Personality: {personality}\n"
        f"Required tools: {tools}\n\n"
        "Please help me:\n"
        "1. Create the agent with an appropriate name and description\n"
        "2. Set up the core memory (persona and human blocks)\n"
        "3. Attach relevant tools based on the requirements\n"
        "4. Configure any necessary settings\n"
        "5. Provide a test prompt to verify the agent is working\n\n"
        "Make sure the agent is properly configured for its intended purpose."
    )]


def memory_optimizer(args: Dict[str, Any]) -> List[Dict[str, Any]]:
    agent_id = args.get("agent_id")
    focus = args.get("focus") or "all"
    return [user_message(
        f"Please analyze and optimize the memory configuration for agent {agent_id}.\n\n"
        f"Focus area: {focus}\n\n"
        "Tasks to perform:\n"
        "1. Review current memory blocks and their content\n"
        "2. Analyze archival memory usage and passages\n"
        "3. Identify any redundant or outdated information\n"
        "4. Suggest optimizations for better performance\n"
        "5. Implement approved changes\n\n"
        "Provide a summary of:\n"
        "- Current memory usage statistics\n"
        "- Identified issues or inefficiencies\n"
        "- Recommended optimizations\n"
        "- Actions taken"
    )]


def debug_assistant(args: Dict[str, Any]) -> List[Dict[str, Any]]:
    agent_id = args.get("agent_id")
    issue = args.get("issue")
    history_step = (
        "Analyze recent message history for errors"
        if str(args.get("recent_messages")).lower() == "true"
        else "Check for any error patterns"
    )
    return [user_message(
        f"Help me debug an issue with Letta agent {agent_id}.\n\n"
        f"Issue description: {issue}\n\n"
        "Please perform the following diagnostic steps:\n"
        "1. Check agent configuration and status\n"
        "2. Verify all attached tools are functioning\n"
        "3. Review memory blocks for any corruption or issues\n"
        f"4. {history_step}\n"
        "5. Test agent responsiveness with a simple prompt\n\n"
        "Provide:\n"
        "- Root cause analysis\n"
        "- Specific error messages or warnings found\n"
        "- Recommended fixes\n"
        "- Steps to prevent similar issues in the future"
    )]


def tool_config(args: Dict[str, Any]) -> List[Dict[str, Any]]:
    action = parse_choice(ToolAction, args.get("action"), "action")
    agent_id = args.get("agent_id") or "not specified"
    tool_type = args.get("tool_type") or "all"

    if action is ToolAction.DISCOVER:
        text = (
            f'Discover available tools of type "{tool_type}" that could be useful. List MCP servers '
            "and their tools, categorize them, and recommend the most relevant ones."
        )
    elif action is ToolAction.ATTACH:
        text = (
            f"Help me attach appropriate tools to agent {agent_id}. Analyze the agent's purpose and "
            "current tools, then recommend and attach additional tools that would enhance its capabilities."
        )
    elif action is ToolAction.CREATE:
        text = (
            f"Guide me through creating a custom tool for {tool_type} functionality. Provide a template, "
            "help with the implementation, and register it in the system."
        )
    else:
        text = (
            f"Audit the tools attached to agent {agent_id}. Check for redundancies, missing tools, and "
            "optimization opportunities. Provide a detailed report."
        )
    return [user_message(text)]


def migration(args: Dict[str, Any]) -> List[Dict[str, Any]]:
    migration_type = parse_choice(MigrationType, args.get("migration_type"), "migration_type")
    source = args.get("source")
    destination = args.get("destination") or "default"

    if migration_type is MigrationType.EXPORT:
        text = (
            f"Export agent {source} to a portable format. Include all configurations, memory, tools, "
            f"and passages. Save to {destination} or provide download link."
        )
    elif migration_type is MigrationType.IMPORT:
        text = (
            f"Import agent from {source}. Validate the configuration, check for conflicts, and create the "
            "agent in the current environment. Handle any compatibility issues."
        )
    elif migration_type is MigrationType.UPGRADE:
        text = (
            f"Upgrade agent {source} to the latest format. Backup current state, migrate configurations, "
            "and ensure all tools are compatible."
        )
    else:
        text = (
            f"Clone agent {source} to create {destination}. Copy all settings but create independent "
            "memory spaces. Adjust configuration as needed."
        )
    return [user_message(text)]


# ── Registration ──────────────────────────────────────────────────────────

PROMPTS = [
    PromptEntry(
        name="letta_agent_wizard",
        title="Letta Agent Creation Wizard",
        description="Interactive wizard to help create a properly configured Letta agent with memory and tools",
        arguments=[
            PromptArgument(name="purpose", title="Agent Purpose",
                           description="What is the primary purpose of this agent?", required=True),
            PromptArgument(name="personality", title="Agent Personality",
                           description="Describe the personality traits for this agent"),
            PromptArgument(name="tools", title="Required Tools",
                           description="List of tool categories needed (e.g., web, file, memory)"),
        ],
        handler=agent_wizard,
    ),
    PromptEntry(
        name="letta_memory_optimizer",
        title="Letta Memory Optimization",
        description="Analyze and optimize agent memory usage",
        arguments=[
            PromptArgument(name="agent_id", title="Agent ID", description="ID of the agent to optimize", required=True),
            PromptArgument(name="focus", title="Optimization Focus",
                           description="What aspect to focus on (e.g., archival, core, passages)"),
        ],
        handler=memory_optimizer,
    ),
    PromptEntry(
        name="letta_debug_assistant",
        title="Letta Debug Assistant",
        description="Help debug issues with Letta agents",
        arguments=[
            PromptArgument(name="agent_id", title="Agent ID", description="ID of the agent having issues", required=True),
            PromptArgument(name="issue", title="Issue Description",
                           description="Describe the problem you are experiencing", required=True),
            PromptArgument(name="recent_messages", title="Include Recent Messages",
                           description="Include recent message history (true/false)"),
        ],
        handler=debug_assistant,
    ),
    PromptEntry(
        name="letta_tool_config",
        title="Letta Tool Configuration Assistant",
        description="Help configure and manage tools for Letta agents",
        arguments=[
            PromptArgument(name="action", title="Action",
                           description="What to do: discover, attach, create, or audit", required=True),
            PromptArgument(name="agent_id", title="Agent ID", description="Target agent ID (if applicable)"),
            PromptArgument(name="tool_type", title="Tool Type", description="Type of tools to work with"),
        ],
        handler=tool_config,
    ),
    PromptEntry(
        name="letta_migration",
        title="Letta Agent Migration Assistant",
        description="Help migrate agents between environments or versions",
        arguments=[
            PromptArgument(name="migration_type", title="Migration Type",
                           description="Type of migration: export, import, upgrade, or clone", required=True),
            PromptArgument(name="source", title="Source", description="Source agent ID or file path", required=True),
            PromptArgument(name="destination", title="Destination",
                           description="Destination environment or new name"),
        ],
        handler=migration,
    ),
]


def register_prompts(registry: Registry) -> None:
    for prompt in PROMPTS:
        registry.register_prompt(prompt)
