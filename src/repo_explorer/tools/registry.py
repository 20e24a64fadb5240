"""
Tool lookup and dispatch.

A ToolRegistry maps operation names (``search_code``, ``repo_status``, ...)
to tool instances bound to one RepoExplorer. Clients list the schemas,
then call tools by name with a JSON-like argument mapping.
"""

from typing import Any

import structlog

from .base import BaseTool, ToolResult

logger = structlog.get_logger()


class ToolNotFoundError(Exception):
    """No tool is registered under the requested name."""

    pass


class DuplicateToolError(Exception):
    """A tool with the same name is already registered."""

    pass


class ToolRegistry:
    """Named repository operations."""

    def __init__(self) -> None:
        self._tools: dict[str, BaseTool] = {}

    def register(self, tool: BaseTool, allow_override: bool = False) -> None:
        """Add a tool under its ``name``.

        Raises:
            DuplicateToolError: If the name is taken and allow_override is False
        """
        if tool.name in self._tools and not allow_override:
            raise DuplicateToolError(f"Tool '{tool.name}' is already registered")
        self._tools[tool.name] = tool

    def get(self, name: str) -> BaseTool:
        """Raises ToolNotFoundError, listing the known names, for an unknown tool."""
        try:
            return self._tools[name]
        except KeyError:
            known = ", ".join(sorted(self._tools)) or "(none)"
            raise ToolNotFoundError(f"Tool '{name}' not found. Available tools: {known}") from None

    def call(self, name: str, arguments: dict[str, Any] | None = None) -> ToolResult:
        """Run a tool by name; an unknown name is a failed result, not an exception."""
        try:
            tool = self.get(name)
        except ToolNotFoundError as e:
            return ToolResult(success=False, output="", error=str(e))

        logger.debug("tool.call", tool=name, arguments=arguments or {})
        return tool.execute(**(arguments or {}))

    def list_all(self, include_mutating: bool = True) -> list[BaseTool]:
        """Registered tools sorted by name, optionally without the ones that write to disk."""
        tools = sorted(self._tools.values(), key=lambda t: t.name)
        if include_mutating:
            return tools
        return [t for t in tools if not t.mutating]

    def get_schemas(
        self,
        allowed: list[str] | None = None,
        include_mutating: bool = True,
    ) -> list[dict[str, Any]]:
        """Function-calling schemas of the registered tools.

        Args:
            allowed: Restrict to these names; unknown names are skipped
            include_mutating: If False, leave out clone/update/build tools
        """
        tools = self.list_all(include_mutating)
        if allowed:
            tools = [t for t in tools if t.name in allowed]
        return [tool.get_schema() for tool in tools]

    def has_tool(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __repr__(self) -> str:
        return f"<ToolRegistry({len(self._tools)} tools)>"
