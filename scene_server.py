"""
Godot Scene MCP Server
Offline scene tree analysis for Godot projects
"""

import asyncio
import json
import logging
import os
import sys
from typing import Any, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import Tool, TextContent

from scene_analyzers import SceneAnalyzer
from scene_analyzers.config import DEFAULT_MAX_DEPTH, DEFAULT_PROJECT_PATH, LOG_LEVEL, SERVER_NAME

logger = logging.getLogger(SERVER_NAME)

server = Server(SERVER_NAME)

# Active project path (set via tool)
_active_project: Optional[str] = DEFAULT_PROJECT_PATH


def get_analyzer() -> Optional[SceneAnalyzer]:
    """Get an analyzer for the active project."""
    if not _active_project:
        return None
    return SceneAnalyzer(_active_project)


# ============ Tool Definitions ============

@server.list_tools()
async def list_tools() -> list[Tool]:
    return [
        Tool(
            name="godot_set_project",
            description="Set the active Godot project path. Required before using the scene tools.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project_path": {
                        "type": "string",
                        "description": "Absolute path to the Godot project folder (containing project.godot)"
                    }
                },
                "required": ["project_path"]
            }
        ),
        Tool(
            name="list_scenes",
            description="List all .tscn/.scn scene files in the project",
            inputSchema={"type": "object", "properties": {}}
        ),
        Tool(
            name="get_scene_tree",
            description="Get the node hierarchy of a scene file as JSON or ASCII art (offline)",
            inputSchema={
                "type": "object",
                "properties": {
                    "scene_path": {"type": "string", "description": "Scene path relative to the project, or res://..."},
                    "max_depth": {"type": "integer", "minimum": 0, "description": "Maximum tree depth (omit for all)"},
                    "format": {"type": "string", "enum": ["json", "ascii"], "description": "Output format"}
                },
                "required": ["scene_path"]
            }
        ),
        Tool(
            name="get_uid",
            description="Get the uid:// of a scene or resource file (Godot 4.4+)",
            inputSchema={
                "type": "object",
                "properties": {
                    "file_path": {"type": "string", "description": "File path relative to the project, or res://..."}
                },
                "required": ["file_path"]
            }
        ),
    ]


# ============ Tool Handler ============

@server.call_tool()
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    global _active_project

    arguments = arguments or {}
    result = {}

    if name == "godot_set_project":
        path = arguments["project_path"]
        if os.path.exists(os.path.join(path, "project.godot")):
            _active_project = path
            result = {"success": True, "project": path}
        else:
            result = {"error": f"No project.godot found in {path}"}

    elif name in ("list_scenes", "get_scene_tree", "get_uid"):
        analyzer = get_analyzer()
        if not analyzer:
            result = {"error": "No project set. Use godot_set_project first."}
        else:
            try:
                if name == "list_scenes":
                    result = {"scenes": analyzer.list_scenes()}
                elif name == "get_scene_tree":
                    result = analyzer.get_scene_tree(
                        arguments["scene_path"],
                        max_depth=arguments.get("max_depth", DEFAULT_MAX_DEPTH),
                        output_format=arguments.get("format", "json"),
                    )
                elif name == "get_uid":
                    result = analyzer.get_uid(arguments["file_path"])
            except Exception as e:
                logger.exception("Tool %s failed", name)
                result = {"error": str(e)}

    else:
        result = {"error": f"Unknown tool: {name}"}

    return [TextContent(type="text", text=json.dumps(result, indent=2))]


# ============ Main ============

async def main():
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


def run():
    # stdout carries the MCP stream
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )
    asyncio.run(main())


if __name__ == "__main__":
    run()
