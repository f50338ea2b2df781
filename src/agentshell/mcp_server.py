"""MCP server exposing spawn_agent to MCP-capable hosts.

Usage (stdio transport):
    python -m agentshell.mcp_server

Configuration comes from AGENTSHELL_* environment variables (see
:class:`agentshell.config.Settings`).
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import anyio
import mcp.types as types
import structlog
from mcp.server import Server
from mcp.server.lowlevel.server import NotificationOptions
from mcp.server.models import InitializationOptions
from mcp.server.stdio import stdio_server

from agentshell import __version__, build_orchestrator
from agentshell.config import Settings
from agentshell.log import configure_logging
from agentshell.orchestration.spawner import SubAgentOrchestrator
from agentshell.orchestration.tool import SPAWN_AGENT_INPUT_SCHEMA, handle_spawn_agent

logger = structlog.get_logger()

# Module-level orchestrator; built in the server lifespan.
_orchestrator: SubAgentOrchestrator | None = None


TOOLS: list[types.Tool] = [
    types.Tool(
        name="spawn_agent",
        description=(
            "Delegate one task ('task') or a JSON batch ('tasks') to sub-agents. "
            "Batches run sequentially unless 'parallel' is true. Returns "
            "Success, AbortReason, Summary, Output and a per-task breakdown."
        ),
        inputSchema=SPAWN_AGENT_INPUT_SCHEMA,
    ),
    types.Tool(
        name="abort_subagents",
        description=(
            "Stop starting new sub-agent tasks. Tasks already running finish their "
            "current step. Pass reset=true to clear a previous abort."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "reason": {"type": "string", "description": "Why the work is being stopped."},
                "reset": {"type": "boolean", "default": False},
            },
            "required": [],
        },
    ),
]


def _get_orchestrator() -> SubAgentOrchestrator:
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = build_orchestrator(Settings().to_config())
    return _orchestrator


def _text(payload: dict[str, Any]) -> list[types.TextContent]:
    return [types.TextContent(type="text", text=json.dumps(payload, indent=2))]


async def _handle_spawn_agent(args: dict[str, Any]) -> list[types.TextContent]:
    payload = await handle_spawn_agent(_get_orchestrator(), args)
    return _text(payload)


async def _handle_abort_subagents(args: dict[str, Any]) -> list[types.TextContent]:
    orchestrator = _get_orchestrator()
    if args.get("reset"):
        orchestrator.reset_abort()
        return _text({"aborted": False, "stats": orchestrator.stats.as_dict()})

    orchestrator.abort(str(args.get("reason") or "aborted by user"))
    return _text({"aborted": True, "stats": orchestrator.stats.as_dict()})


_TOOL_HANDLERS = {
    "spawn_agent": _handle_spawn_agent,
    "abort_subagents": _handle_abort_subagents,
}


def create_server() -> Server:
    """Build and return the configured MCP Server instance."""

    @asynccontextmanager
    async def lifespan(server: Server) -> AsyncIterator[None]:
        global _orchestrator
        settings = Settings()
        configure_logging(settings.log_level, settings.log_format)
        _orchestrator = build_orchestrator(settings.to_config())
        logger.info("agentshell_mcp_server_start", max_depth=settings.max_depth)
        yield
        logger.info("agentshell_mcp_server_stop", stats=_orchestrator.stats.as_dict())

    server = Server("agentshell", lifespan=lifespan)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return TOOLS

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> list[types.TextContent]:
        handler = _TOOL_HANDLERS.get(name)
        if handler is None:
            return _text({"error": f"Unknown tool: {name}"})
        try:
            return await handler(arguments or {})
        except Exception as exc:
            logger.error("tool_call_error", tool=name, error=str(exc))
            return _text({"error": str(exc)})

    return server


async def run_stdio() -> None:
    """Run the MCP server over stdin/stdout."""
    server = create_server()
    init_options = InitializationOptions(
        server_name="agentshell",
        server_version=__version__,
        capabilities=server.get_capabilities(
            notification_options=NotificationOptions(),
            experimental_capabilities={},
        ),
        instructions=(
            "agentshell MCP server - use spawn_agent to delegate tasks to sub-agents "
            "and abort_subagents to stop pending work."
        ),
    )
    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream=read_stream,
            write_stream=write_stream,
            initialization_options=init_options,
        )


if __name__ == "__main__":
    anyio.run(run_stdio)
