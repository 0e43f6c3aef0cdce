"""Tool registry: name -> implementation, executed against one Backend."""

import logging
from typing import Any, Callable, Dict, List, Optional

from backend import Backend
from tools._common import ToolResult
from tools.schemas import TOOL_DEFINITIONS, TOOL_IMPLEMENTATIONS, TOOL_NAME_NORMALIZE

logger = logging.getLogger(__name__)

ToolFn = Callable[..., ToolResult]

# Alternate spellings the file tools accept for a required parameter
PARAM_ALIASES = {"file_path": "path"}


class ToolRegistry:
    """Holds the callable tools of a session. execute() never raises for tool failures."""

    def __init__(self, backend: Backend, command_timeout: Optional[int] = None):
        self.backend = backend
        self.command_timeout = command_timeout
        self._tools: Dict[str, ToolFn] = {}
        self._definitions: Dict[str, Dict[str, Any]] = {}

    def register(self, name: str, fn: ToolFn, definition: Optional[Dict[str, Any]] = None) -> None:
        if name in self._tools:
            logger.debug(f"Replacing tool {name}")
        self._tools[name] = fn
        if definition is not None:
            self._definitions[name] = definition

    def names(self) -> List[str]:
        return list(self._tools)

    def definitions(self) -> List[Dict[str, Any]]:
        return [self._definitions[n] for n in self._tools if n in self._definitions]

    def resolve(self, name: str) -> str:
        return name if name in self._tools else TOOL_NAME_NORMALIZE.get(name, name)

    def __contains__(self, name: str) -> bool:
        return self.resolve(name) in self._tools

    def missing_params(self, name: str, params: Dict[str, Any]) -> List[str]:
        """Required parameters of a tool's definition that params does not supply."""
        definition = self._definitions.get(self.resolve(name))
        if not definition:
            return []
        required = definition.get("input_schema", {}).get("required", [])
        return [p for p in required if p not in params and PARAM_ALIASES.get(p) not in params]

    def execute(self, name: str, params: Optional[Dict[str, Any]] = None) -> ToolResult:
        """Run a tool by name with the given params."""
        name = self.resolve(name)
        impl = self._tools.get(name)
        if not impl:
            return ToolResult(success=False, error=f"Unknown tool: {name}")
        kwargs = dict(params or {})
        kwargs.pop("backend", None)
        missing = self.missing_params(name, kwargs)
        if missing:
            return ToolResult(success=False, error=f"Missing required parameter(s) for {name}: {', '.join(missing)}")
        if name == "Bash" and self.command_timeout and "default_timeout" not in kwargs:
            kwargs["default_timeout"] = self.command_timeout
        try:
            return impl(self.backend, **kwargs)
        except TypeError as e:
            return ToolResult(success=False, error=f"Invalid arguments for {name}: {e}")
        except Exception as e:
            logger.exception(f"Tool execution error: {name}")
            return ToolResult(success=False, error=f"Tool error: {e}")


def build_default_registry(backend: Backend, command_timeout: Optional[int] = None) -> ToolRegistry:
    """Registry with the full tool catalogue."""
    registry = ToolRegistry(backend, command_timeout=command_timeout)
    definitions = {d["name"]: d for d in TOOL_DEFINITIONS}
    for name, fn in TOOL_IMPLEMENTATIONS.items():
        registry.register(name, fn, definitions.get(name))
    return registry
