"""Search and discovery tools: Glob, Grep."""

import logging
import os
from typing import Any, List, Optional

from backend import Backend
from tools._common import ToolResult, as_bool
from tools.gitignore import filter_paths

logger = logging.getLogger(__name__)

_MAX_GLOB_RESULTS = 200
_MAX_GREP_LINES = 100


def glob_find(backend: Backend, pattern: str = "", path: Optional[str] = None,
              ignore: Optional[List[str]] = None, **kw: Any) -> ToolResult:
    """Find files matching a glob pattern, respecting .gitignore."""
    if not (pattern or "").strip():
        return ToolResult(success=False, error="pattern is required")
    if ignore is not None and not isinstance(ignore, list):
        ignore = [str(ignore)]
    try:
        base = path or "."
        if base != "." and not backend.is_dir(base):
            return ToolResult(success=False, error=f"Not a directory: {base}")
        raw_matches = backend.glob_find(pattern, base)
        # Ignore rules are relative to the project root, results are relative to `path`
        prefix = "" if base == "." else base.rstrip("/") + "/"
        kept = set(filter_paths([prefix + m for m in raw_matches], backend.working_directory, ignore))
        matches = [m for m in raw_matches if prefix + m in kept]

        logger.debug(f"Glob {pattern!r} in {base}: {len(matches)} of {len(raw_matches)} kept")
        data = {"files": matches, "count": len(matches), "pattern": pattern,
                "path": backend.resolve_path(base)}
        if not matches:
            return ToolResult(success=True, output="No files found matching pattern.", data=data)

        output = f"Found {len(matches)} match(es):\n" + "\n".join(f"  {m}" for m in matches[:_MAX_GLOB_RESULTS])
        if len(matches) > _MAX_GLOB_RESULTS:
            output += f"\n  ... [{len(matches) - _MAX_GLOB_RESULTS} more]"
        return ToolResult(success=True, output=output, data=data)
    except Exception as e:
        return ToolResult(success=False, error=str(e))


def grep(backend: Backend, pattern: str = "", path: Optional[str] = None,
         file_pattern: Optional[str] = None, case_insensitive: bool = False, **kw: Any) -> ToolResult:
    """Search file contents for a regex pattern using ripgrep (or grep fallback)."""
    if not (pattern or "").strip():
        return ToolResult(success=False, error="pattern is required")
    include = file_pattern or kw.get("include")
    try:
        result = backend.search(pattern, path or ".", include=include, cwd=".",
                                ignore_case=as_bool(case_insensitive))
        if not result:
            return ToolResult(success=True, output="No matches found.", data={"count": 0})

        root = backend.working_directory.rstrip(os.sep) + os.sep
        lines = [ln[len(root):] if ln.startswith(root) else ln for ln in result.split("\n")]
        count = len(lines)
        output = "\n".join(lines[:_MAX_GREP_LINES])
        if count > _MAX_GREP_LINES:
            output += f"\n\n... [{count - _MAX_GREP_LINES} more matches truncated]"
        return ToolResult(success=True, output=output, data={"count": count})
    except Exception as e:
        if "timed out" in str(e).lower() or "TimeoutExpired" in type(e).__name__:
            return ToolResult(success=False, error="Search timed out")
        return ToolResult(success=False, error=str(e))
