import asyncio
import logging
import sys
from typing import Any, Dict, List

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from thread_sampler_mcp.tools_adapter import Result, cpu_tool_call, state_tool_call

logger = logging.getLogger("thread_sampler_mcp")


class ToolError(Exception):
    def __init__(self, code: str, message: str) -> None:
        super().__init__(f"{code}: {message}")
        self.code = code


COMMON_PROPERTIES: Dict[str, Any] = {
    "samples_dir": {"type": "string", "description": "Directory holding the captured thread dump and CPU usage snapshots"},
    "stack_trace": {"type": "boolean", "default": False, "description": "Include the most frequent stack traces"},
    "number_of_stack_trace_samples": {"type": "integer", "minimum": 1, "default": 5},
    "number_of_stack_trace_lines": {"type": "integer", "minimum": 1, "default": 100},
    "column_width": {"type": "integer", "minimum": 1, "default": 100},
    "thread_dump_pattern": {"type": "string", "default": "jstack*"},
}


def list_tool_definitions() -> List[Tool]:
    return [
        Tool(
            name="analyze_thread_states",
            description=(
                "Counts thread samples per JVM thread state across every thread dump in a samples "
                "directory, optionally with the most frequent stack traces per state, and reports deadlocks."
            ),
            inputSchema={
                "type": "object",
                "required": ["samples_dir"],
                "properties": dict(COMMON_PROPERTIES),
                "additionalProperties": False,
            },
        ),
        Tool(
            name="rank_thread_cpu",
            description=(
                "Ranks threads by average CPU usage across the CPU usage snapshots in a samples directory "
                "and names them from the thread dumps, optionally with their most frequent stack traces."
            ),
            inputSchema={
                "type": "object",
                "required": ["samples_dir"],
                "properties": {
                    **COMMON_PROPERTIES,
                    "number_of_threads": {"type": "integer", "minimum": 1, "default": 100},
                    "merge_policy": {"type": "string", "enum": ["pairwise", "mean"], "default": "pairwise"},
                    "cpu_usage_pattern": {"type": "string", "default": "top*"},
                },
                "additionalProperties": False,
            },
        ),
    ]


def dispatch(name: str, arguments: Dict[str, Any]) -> Result:
    if name == "analyze_thread_states":
        return state_tool_call(**arguments)
    if name == "rank_thread_cpu":
        return cpu_tool_call(**arguments)
    return Result.err("INVALID_PARAMS", f"Unknown tool: {name}")


def build_server() -> Server:
    server = Server("thread-sampler-mcp")

    @server.list_tools()
    async def list_tools() -> List[Tool]:
        return list_tool_definitions()

    @server.call_tool()
    async def call_tool(name: str, arguments: Dict[str, Any]) -> List[TextContent]:
        try:
            result = dispatch(name, arguments or {})
        except TypeError as e:
            raise ToolError("INVALID_PARAMS", str(e)) from e
        if not result.ok:
            logger.warning("Tool %s failed: %s %s", name, result.error_code, result.error_message)
            raise ToolError(result.error_code or "INTERNAL_ERROR", result.error_message or "")
        return [TextContent(type="text", text=result.text or "")]

    return server


async def main_async() -> None:
    server = build_server()
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


def main() -> None:
    # stdout carries the protocol
    logging.basicConfig(stream=sys.stderr, level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    asyncio.run(main_async())


if __name__ == "__main__":
    main()
