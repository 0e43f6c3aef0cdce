"""Shared types for the tools package."""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class ToolResult:
    """Result from executing a tool"""
    success: bool
    output: str = ""
    error: Optional[str] = None
    data: Optional[Dict[str, Any]] = None


def _require_path(path: Any, name: str = "file_path") -> Optional[ToolResult]:
    """Return an error ToolResult if path is empty/whitespace; else None."""
    if not isinstance(path, str) or not path.strip():
        return ToolResult(success=False, error=f"{name} is required")
    return None


def as_bool(value: Any) -> bool:
    """Boolean parameter from a JSON value or its raw text; only true/1/yes strings count as true."""
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def as_text(value: Any) -> str:
    """Text parameter; JSON-decoded values are written back as JSON."""
    if isinstance(value, str):
        return value
    return json.dumps(value)
