"""
Registry of Slack MCP tools.

Tools are async functions decorated with :func:`slack_tool`. The decorator
wraps the function so that every call validates its arguments, applies
write protection, times the call and returns the standard response
envelope::

    {"success": True, "data": {...}, "metadata": {"tool": ..., "execution_time_ms": ...}}
    {"success": False, "error": "...", "metadata": {...}}

:class:`ToolRegistry` collects decorated tools from the tool modules and
runs them by name.
"""

import functools
import importlib
import inspect
import logging
import pkgutil
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from mcp_slack.tools.slack.constants import check_delete_protection, check_read_only
from mcp_slack.utils.errors import SlackToolError, create_error_response, utc_timestamp
from mcp_slack.utils.logging_config import log_tool_error, log_tool_execution
from mcp_slack.utils.validator import arguments_model, validate_arguments

logger = logging.getLogger("mcp-slack-registry")

TOOLS_PACKAGE = "mcp_slack.tools.slack"


@dataclass
class ToolResult:
    """Successful tool output: the Slack data plus extra response metadata."""

    data: Any
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SlackTool:
    name: str
    description: str
    handler: Callable[..., Awaitable[Any]]
    write: bool = False
    destructive: bool = False
    function: Optional[Callable[..., Awaitable[Dict[str, Any]]]] = None

    @property
    def category(self) -> str:
        return self.handler.__module__.rsplit(".", 1)[-1]

    @property
    def input_schema(self) -> Dict[str, Any]:
        """JSON schema of the tool arguments."""
        return arguments_model(self.handler).model_json_schema()

    async def execute(self, args: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Run the tool and return the response envelope. Never raises."""
        args = args or {}
        started = time.monotonic()
        try:
            values = validate_arguments(self.handler, args)
            if self.write:
                check_read_only()
            if self.destructive:
                check_delete_protection()
            result = await self.handler(**values)
        except Exception as e:
            elapsed = _elapsed_ms(started)
            log_tool_error(self.name, e, args)
            return create_error_response(e, tool=self.name, execution_time_ms=elapsed)

        elapsed = _elapsed_ms(started)
        log_tool_execution(self.name, args, elapsed)
        return _success_envelope(self.name, result, elapsed)


def _elapsed_ms(started: float) -> float:
    return round((time.monotonic() - started) * 1000, 2)


def _success_envelope(tool: str, result: Any, elapsed: float) -> Dict[str, Any]:
    if isinstance(result, ToolResult):
        data, extra = result.data, result.metadata
    else:
        data, extra = result, {}

    metadata = {"tool": tool, "execution_time_ms": elapsed, "timestamp": utc_timestamp()}
    metadata.update({key: value for key, value in extra.items() if value is not None})
    return {"success": True, "data": data, "metadata": metadata}


def slack_tool(
    name: str,
    description: str,
    write: bool = False,
    destructive: bool = False,
) -> Callable[[Callable[..., Awaitable[Any]]], Callable[..., Awaitable[Dict[str, Any]]]]:
    """Declare an async function as a Slack tool.

    The returned callable keeps the function's signature (so MCP servers can
    derive the input schema) but always returns the response envelope.
    ``write`` tools are blocked in read-only mode, ``destructive`` ones by
    delete protection.
    """

    def decorator(handler: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Dict[str, Any]]]:
        signature = inspect.signature(handler)

        @functools.wraps(handler)
        async def wrapper(*args: Any, **kwargs: Any) -> Dict[str, Any]:
            try:
                bound = signature.bind_partial(*args, **kwargs)
            except TypeError as e:
                return create_error_response(e, tool=name)
            return await tool.execute(dict(bound.arguments))

        tool = SlackTool(
            name=name,
            description=description,
            handler=handler,
            write=write or destructive,
            destructive=destructive,
            function=wrapper,
        )
        wrapper.slack_tool = tool
        return wrapper

    return decorator


class ToolRegistry:
    """In-memory map of tool name to :class:`SlackTool`."""

    def __init__(self):
        self._tools: Dict[str, SlackTool] = {}

    def register(self, tool: SlackTool) -> None:
        existing = self._tools.get(tool.name)
        if existing is not None and existing is not tool:
            logger.warning(f"Tool {tool.name} is already registered, overwriting")
        self._tools[tool.name] = tool
        logger.debug(f"Registered tool: {tool.name}")

    def unregister(self, name: str) -> bool:
        removed = self._tools.pop(name, None) is not None
        if removed:
            logger.debug(f"Unregistered tool: {name}")
        return removed

    def get(self, name: str) -> Optional[SlackTool]:
        return self._tools.get(name)

    def has(self, name: str) -> bool:
        return name in self._tools

    def list_tools(self) -> List[SlackTool]:
        return list(self._tools.values())

    def tool_names(self) -> List[str]:
        return list(self._tools)

    def clear(self) -> None:
        self._tools.clear()
        logger.debug("Cleared all tools from registry")

    def stats(self) -> Dict[str, Any]:
        categories: Dict[str, int] = {}
        for tool in self._tools.values():
            categories[tool.category] = categories.get(tool.category, 0) + 1
        return {
            "total_tools": len(self._tools),
            "tool_names": self.tool_names(),
            "categories": categories,
        }

    def discover(self, package: str = TOOLS_PACKAGE) -> int:
        """Import every module of ``package`` and register the tools it declares.

        Returns:
            Number of tools registered.
        """
        pkg = importlib.import_module(package)
        count = 0
        for module_info in pkgutil.iter_modules(pkg.__path__):
            if module_info.name.startswith("_") or module_info.name == "constants":
                continue
            module = importlib.import_module(f"{package}.{module_info.name}")
            for obj in vars(module).values():
                tool = getattr(obj, "slack_tool", None)
                if isinstance(tool, SlackTool) and tool.handler.__module__ == module.__name__:
                    self.register(tool)
                    count += 1
        logger.info(f"Discovered {count} tools in {package}")
        return count

    async def execute(self, name: str, args: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        tool = self._tools.get(name)
        if tool is None:
            return create_error_response(
                SlackToolError(f"Unknown tool: {name}", code="unknown_tool"), tool=name
            )
        return await tool.execute(args)

    def __contains__(self, name: str) -> bool:
        return self.has(name)

    def __len__(self) -> int:
        return len(self._tools)


_registry: Optional[ToolRegistry] = None


def get_tool_registry() -> ToolRegistry:
    """Return the default registry, populated from the bundled tool modules."""
    global _registry
    if _registry is None:
        _registry = ToolRegistry()
        _registry.discover()
    return _registry
