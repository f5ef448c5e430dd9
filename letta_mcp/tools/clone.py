"""clone_agent: export an agent, rename it and import the copy."""

from __future__ import annotations

import json
import logging
import tempfile
import time
import uuid
from pathlib import Path
from typing import Any, Dict, Optional

from letta_mcp.core.client import LettaAPIError
from letta_mcp.core.errors import (
    CloneFailed,
    CompensationFailure,
    InvalidExportData,
    SourceAgentNotFound,
    ToolError,
    ValidationError,
)
from letta_mcp.registry.schema import ToolDefinition
from letta_mcp.tools.base import optional_bool, optional_string, quote, require_string, text_response

logger = logging.getLogger(__name__)

TEMP_PREFIX = "agent_clone_temp_"


def _temp_path() -> Path:
    stamp = int(time.time() * 1000)
    return Path(tempfile.gettempdir()) / f"{TEMP_PREFIX}{stamp}_{uuid.uuid4().hex[:8]}.json"


def _remove_temp_file(path: Path) -> None:
    """Best-effort unlink. A failure is logged and never raised."""
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        failure = CompensationFailure(f"Failed to remove temporary clone file {path}: {exc}")
        logger.warning(failure.message)
    else:
        logger.debug("Removed temporary clone file %s", path)


async def _export(server, source_id: str) -> Dict[str, Any]:
    try:
        response = await server.api.get(f"/agents/{quote(source_id)}/export")
    except LettaAPIError as exc:
        if exc.status == 404:
            raise SourceAgentNotFound(f"Source agent not found: {source_id}", details=exc.data) from exc
        raise

    if not isinstance(response.data, dict):
        raise InvalidExportData("Received invalid data from agent export endpoint.")
    return response.data


async def clone_agent(server, args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Duplicate an agent through its export and import endpoints.

    Steps: export the source, overwrite ``name`` (everything else passes
    through), write the JSON to a unique temp file, upload that file to
    ``/agents/import``. The temp file is removed on every exit path once
    it has been created.
    """
    source_id = require_string(args, "source_agent_id")
    new_name = require_string(args, "new_agent_name")
    override_tools = optional_bool(args, "override_existing_tools", True)
    project_id = optional_string(args, "project_id")

    temp_path: Optional[Path] = None
    try:
        agent_config = await _export(server, source_id)
        agent_config["name"] = new_name

        temp_path = _temp_path()
        temp_path.write_text(json.dumps(agent_config, indent=2))
        logger.debug("Wrote clone of %s to %s", source_id, temp_path)

        params: Dict[str, Any] = {
            "append_copy_suffix": "false",
            "override_existing_tools": str(override_tools).lower(),
        }
        if project_id:
            params["project_id"] = project_id

        files = {"file": (temp_path.name, temp_path.read_bytes(), "application/json")}
        try:
            response = await server.api.post("/agents/import", files=files, params=params)
        except LettaAPIError as exc:
            if exc.status == 422:
                raise ValidationError(
                    f"Validation error importing cloned agent: {json.dumps(exc.data)}", details=exc.data
                ) from exc
            raise

        logger.info("Cloned agent %s as %s", source_id, new_name)
        return text_response({"new_agent": response.data})

    except (SourceAgentNotFound, ValidationError):
        raise
    except (ToolError, LettaAPIError, OSError) as exc:
        raise CloneFailed(
            f"Failed to clone agent {source_id}: {getattr(exc, 'message', exc)}",
            status=getattr(exc, "status", None),
            details=getattr(exc, "data", None) or getattr(exc, "details", None),
        ) from exc
    finally:
        if temp_path is not None:
            _remove_temp_file(temp_path)


TOOLS = [
    ToolDefinition(
        name="clone_agent",
        title="Clone Agent",
        description=(
            "Creates a new agent by cloning the configuration of an existing agent. Use list_agents "
            "to find the source agent ID. Follow up with modify_agent to adjust the clone."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "source_agent_id": {"type": "string", "description": "The ID of the agent to clone."},
                "new_agent_name": {"type": "string", "description": "The name for the new cloned agent."},
                "override_existing_tools": {
                    "type": "boolean",
                    "description": (
                        "Optional: If true, existing tools can get their source code overwritten by the "
                        "tool definitions from the source agent. Defaults to true."
                    ),
                    "default": True,
                },
                "project_id": {
                    "type": "string",
                    "description": "Optional: The project ID to associate the new cloned agent with.",
                },
            },
            "required": ["source_agent_id", "new_agent_name"],
        },
        read_only=False,
        destructive=False,
        handler=clone_agent,
    ),
]
