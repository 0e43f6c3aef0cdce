"""File operation tools: read, write, edit."""

import difflib
import logging
from typing import Any, List, Optional

from backend import Backend
from tools._common import ToolResult, _require_path, as_bool, as_text
from tools.smart_edit import apply_edit

logger = logging.getLogger(__name__)

_MAX_FULL_READ_LINES = 500
_OVERVIEW_HEAD = 80
_OVERVIEW_TAIL = 40
_OUTLINE_PREFIXES = ("class ", "def ", "async def ", "function ", "export ", "interface ", "func ", "fn ")


def _numbered(lines: List[str], first: int = 1) -> List[str]:
    return [f"{first + i:6}|{line.rstrip()}" for i, line in enumerate(lines)]


def _outline(lines: List[str]) -> List[str]:
    """Numbered definition lines (classes, functions) of a source file."""
    return [f"{n:6}|{line.rstrip()}" for n, line in enumerate(lines, 1)
            if line.lstrip().startswith(_OUTLINE_PREFIXES)]


def _overview(lines: List[str]) -> str:
    total = len(lines)
    tail_start = total - _OVERVIEW_TAIL
    parts = [f"[{total} lines total; file is large, showing outline, first and last lines. "
             f"Pass offset/limit to read a section]"]
    outline = _outline(lines)
    if outline:
        parts += ["", "outline:"] + outline
    parts += ["", f"lines 1-{_OVERVIEW_HEAD}:"] + _numbered(lines[:_OVERVIEW_HEAD])
    parts += ["", f"... {tail_start - _OVERVIEW_HEAD} lines not shown ...", ""]
    parts += [f"lines {tail_start + 1}-{total}:"] + _numbered(lines[tail_start:], tail_start + 1)
    return "\n".join(parts)


def read_file(backend: Backend, file_path: str = "", offset: Optional[int] = None,
              limit: Optional[int] = None, **kw: Any) -> ToolResult:
    """Read a file as line-numbered text. Files over 500 lines come back as an overview
    unless offset/limit select a section."""
    file_path = file_path or kw.get("path", "")
    err = _require_path(file_path)
    if err:
        return err
    try:
        if not backend.file_exists(file_path):
            return ToolResult(success=False, error=f"File not found: {file_path}")
        if backend.is_dir(file_path):
            return ToolResult(success=False, error=f"Is a directory: {file_path}")

        content = backend.read_file(file_path)
        lines = content.splitlines(keepends=True)
        total = len(lines)
        data = {"path": backend.resolve_path(file_path), "lines": total, "content": content}

        if offset is not None or limit is not None:
            first = max(int(offset or 1), 1)
            selected = lines[first - 1:first - 1 + int(limit or total)]
            header = f"[{total} lines total] (showing lines {first}-{first + len(selected) - 1})"
            return ToolResult(success=True, output="\n".join([header] + _numbered(selected, first)), data=data)

        if total > _MAX_FULL_READ_LINES:
            return ToolResult(success=True, output=_overview(lines), data=data)
        return ToolResult(success=True, output="\n".join([f"[{total} lines total]"] + _numbered(lines)), data=data)
    except Exception as e:
        return ToolResult(success=False, error=str(e))


_MAX_DIFF_LINES = 60


def _compact_diff(old_content: str, new_content: str, path: str, new_file: bool = False) -> str:
    """Unified diff between two versions of a file, cut to _MAX_DIFF_LINES."""
    diff = [line.rstrip() for line in difflib.unified_diff(
        old_content.splitlines(), new_content.splitlines(),
        fromfile="/dev/null" if new_file else path, tofile=path, lineterm="",
    )]
    if len(diff) > _MAX_DIFF_LINES:
        hidden = len(diff) - _MAX_DIFF_LINES
        diff = diff[:_MAX_DIFF_LINES] + [f"... ({hidden} more diff lines)"]
    return "\n".join(diff)


def _count_lines(content: str) -> int:
    return len(content.splitlines())


def write_file(backend: Backend, file_path: str = "", content: Any = None, **kw: Any) -> ToolResult:
    """Create a file or replace its whole content."""
    file_path = file_path or kw.get("path", "")
    err = _require_path(file_path)
    if err:
        return err
    if content is None:
        return ToolResult(success=False, error="content is required")
    # JSON-decoded parameter values (objects, numbers) are written back as JSON
    content = as_text(content)
    try:
        created = not backend.file_exists(file_path)
        previous = "" if created else backend.read_file(file_path)
        backend.write_file(file_path, content)

        lines = _count_lines(content)
        summary = f"{'Created' if created else 'Wrote'} {lines} lines to {file_path}"
        data = {"path": backend.resolve_path(file_path), "created": created, "lines": lines}
        diff_text = _compact_diff(previous, content, file_path, new_file=created)
        return ToolResult(success=True, output=f"{summary}\n{diff_text}" if diff_text else summary, data=data)
    except Exception as e:
        return ToolResult(success=False, error=str(e))


def edit_file(backend: Backend, file_path: str = "", old_string: Any = None, new_string: Any = None,
              replace_all: bool = False, line_number: Optional[int] = None, **kw: Any) -> ToolResult:
    """Replace text in a file. Exact matches are preferred; whitespace drift is tolerated
    through fuzzy strategies, but an ambiguous target always fails."""
    file_path = file_path or kw.get("path", "")
    err = _require_path(file_path)
    if err:
        return err
    if old_string is None:
        return ToolResult(success=False, error="old_string is required")
    if new_string is None:
        return ToolResult(success=False, error="new_string is required")
    try:
        if not backend.file_exists(file_path):
            return ToolResult(success=False, error=f"File not found: {file_path}")
        content = backend.read_file(file_path)
        result = apply_edit(
            content, as_text(old_string), as_text(new_string),
            line_number=line_number,
            replace_all=as_bool(replace_all),
            context_window=int(kw.get("context_window", 3)),
        )
        if not result.success:
            return ToolResult(
                success=False,
                error=f"{result.error} (file: {file_path})",
                data={"ambiguous": result.ambiguous, "strategy": result.strategy},
            )
        backend.write_file(file_path, result.content)
        diff_text = _compact_diff(content, result.content, file_path)
        summary = (
            f"Applied edit to {file_path} via {result.strategy} match "
            f"(lines {result.start_line}-{result.end_line}"
            + (f", {result.lines_changed} replacements" if result.lines_changed > 1 and result.strategy == "exact" else "")
            + ")"
        )
        if result.strategy not in ("exact", "line-number"):
            logger.info(f"Edit to {file_path} used {result.strategy} strategy (score={result.score})")
        data = {
            "path": backend.resolve_path(file_path),
            "strategy": result.strategy,
            "lines_changed": result.lines_changed,
            "matched_range": result.matched_range,
            "score": result.score,
        }
        if diff_text:
            return ToolResult(success=True, output=f"{summary}\n{diff_text}", data=data)
        return ToolResult(success=True, output=summary, data=data)
    except Exception as e:
        return ToolResult(success=False, error=str(e))
