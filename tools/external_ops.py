"""Shell and bookkeeping tools: Bash, TodoWrite."""

import logging
from typing import Any, Optional

from backend import Backend
from tools._common import ToolResult, as_bool

logger = logging.getLogger(__name__)

DEFAULT_COMMAND_TIMEOUT = 30
_MAX_OUTPUT_CHARS = 20000


def _truncate_output(output: str) -> str:
    if len(output) <= _MAX_OUTPUT_CHARS:
        return output
    lines_out = output.split("\n")
    if len(lines_out) > 200:
        return ("\n".join(lines_out[:100]) + f"\n\n... [{len(lines_out) - 150} lines truncated] ...\n\n"
                + "\n".join(lines_out[-50:]))
    return output[:10000] + "\n\n... [truncated] ...\n\n" + output[-5000:]


def run_command(backend: Backend, command: str = "", cwd: Optional[str] = None,
                timeout: Optional[int] = None, run_in_background: bool = False,
                **kw: Any) -> ToolResult:
    """Execute a shell command in the working directory.

    With run_in_background the command is started detached and only its pid is
    reported; nothing waits on it.
    """
    if not (command or "").strip():
        return ToolResult(success=False, error="command is required")
    timeout = int(timeout or kw.get("default_timeout") or DEFAULT_COMMAND_TIMEOUT)
    background = as_bool(run_in_background) or as_bool(kw.get("background"))
    try:
        if background:
            pid = backend.run_background(command, cwd=cwd or ".")
            return ToolResult(
                success=True,
                output=f"Started in background (pid {pid}): {command}",
                data={"command": command, "pid": pid, "background": True},
            )

        logger.info(f"Bash: {command[:200]}")
        stdout, stderr, rc = backend.run_command(command, cwd=cwd or ".", timeout=timeout)

        parts = []
        if stdout:
            parts.append(stdout)
        if stderr:
            parts.append(f"[stderr]\n{stderr}")
        output = "\n".join(parts) if parts else "(no output)"
        if rc != 0:
            output = f"[exit code: {rc}]\n{output}"
        output = _truncate_output(output)

        data = {"command": command, "exit_code": rc}
        if rc == -1 and "timed out" in (stderr or ""):
            return ToolResult(success=False, output=output,
                              error=f"Command timed out after {timeout}s", data=data)
        return ToolResult(
            success=rc == 0, output=output,
            error=None if rc == 0 else f"Command exited with code {rc}",
            data=data,
        )
    except Exception as e:
        if "timed out" in str(e).lower() or "TimeoutExpired" in type(e).__name__:
            return ToolResult(success=False, error=f"Command timed out after {timeout}s")
        return ToolResult(success=False, error=str(e))


_TODO_STATUSES = ("pending", "in_progress", "completed", "cancelled")
_TODO_ICONS = {"pending": "○", "in_progress": "►", "completed": "✓", "cancelled": "✗"}


def todo_write(backend: Optional[Backend] = None, todos: Any = None, **kw: Any) -> ToolResult:
    """Replace the session task checklist."""
    if not isinstance(todos, list):
        return ToolResult(success=False, error="todos must be a list")

    for i, todo in enumerate(todos):
        if not isinstance(todo, dict):
            return ToolResult(success=False, error=f"todo[{i}] must be a dict")
        if "content" not in todo or "status" not in todo:
            return ToolResult(success=False, error=f"todo[{i}] missing required fields: content, status")
        if todo["status"] not in _TODO_STATUSES:
            return ToolResult(success=False, error=f"todo[{i}] invalid status: {todo['status']}")

    counts = {status: sum(1 for t in todos if t["status"] == status) for status in _TODO_STATUSES}
    if counts["in_progress"] > 1:
        logger.warning(f"{counts['in_progress']} todos marked in_progress; expected at most one")

    lines = [f"Updated task checklist with {len(todos)} items"]
    for i, todo in enumerate(todos, 1):
        text = todo.get("activeForm") if todo["status"] == "in_progress" and todo.get("activeForm") else todo["content"]
        lines.append(f"{i:3}. {_TODO_ICONS[todo['status']]} {text}")
    return ToolResult(success=True, output="\n".join(lines), data={"todos": todos, "counts": counts})
