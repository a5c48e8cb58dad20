from __future__ import annotations

import logging
from typing import Iterable, Iterator

from .exceptions import ToolDefinitionError, UnknownToolError
from .tool import Tool, ToolDescriptor
from ..types.base import JSON

logger = logging.getLogger(__name__)


class Toolset:
    """An ordered collection of tools with unique names.

    Examples
    --------
    >>> toolset = Toolset([get_weather, search])
    >>> print(toolset.generate_tool_list())
    - get_weather: Get the weather for a city
    - search: Search the web
    """

    def __init__(self, tools: Iterable[Tool] = ()):
        self._tools: dict[str, Tool] = {}
        for t in tools:
            self.add(t)

    def add(self, tool: Tool) -> None:
        if not isinstance(tool, Tool):
            raise TypeError(f"Expected a Tool, got {type(tool).__name__}. Use @tool or toolize() to declare one.")
        if tool.name in self._tools:
            raise ToolDefinitionError(f"Duplicate tool name '{tool.name}'")
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool:
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownToolError(f"Tool '{name}' not found. Available: {list(self._tools)}") from None

    def descriptors(self) -> list[ToolDescriptor]:
        return [t.describe() for t in self]

    def schemas(self) -> list[dict[str, JSON]]:
        """Function-calling schema of every tool, in order."""
        return [t.to_schema() for t in self]

    def generate_tool_list(self) -> str:
        """Markdown list of tool names and briefs, for use in prompts."""
        return "".join(f"- {d.name}: {d.brief}\n" for d in self.descriptors())

    def generate_tool_description(self) -> str:
        """Markdown list of tools with a nested item per parameter."""
        lines = []
        for d in self.descriptors():
            lines.append(f"- {d.name}: {d.brief}\n")
            lines.extend(f"  - {p.name}: {p.description}\n" for p in d.params)
        return "".join(lines)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)

    def __bool__(self) -> bool:
        return bool(self._tools)
