"""
User-configured shell hooks fired around tool execution.

hooks.json maps an event name to one command or a list of commands. The
call context is exported as STREAM_RUNNER_* environment variables. A non-zero
exit blocks the action and stops the remaining commands for that event.
"""

import asyncio
import json
import logging
import os
import subprocess
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

HOOK_EVENTS = (
    "tool_call",
    "tool_success",
    "tool_error",
    "user_prompt_submit",
    "assistant_response",
    "session_start",
    "session_end",
)


@dataclass
class HookResult:
    command: str
    success: bool
    output: str = ""
    error: Optional[str] = None
    timed_out: bool = False


@dataclass
class HookOutcome:
    blocked: bool = False
    timed_out: bool = False
    results: List[HookResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not (self.blocked or self.timed_out)


def load_hooks(path: str) -> Dict[str, List[str]]:
    """Read a hooks file. Missing or malformed files yield no hooks."""
    if not os.path.isfile(path):
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Failed to load hooks from {path}: {e}")
        return {}
    if not isinstance(raw, dict):
        logger.warning(f"Ignoring hooks file {path}: expected an object")
        return {}

    hooks: Dict[str, List[str]] = {}
    for event, commands in raw.items():
        if event not in HOOK_EVENTS:
            logger.warning(f"Ignoring unknown hook event {event!r}")
            continue
        if isinstance(commands, str):
            commands = [commands]
        hooks[event] = [c for c in commands if isinstance(c, str) and c.strip()]
    logger.debug(f"Loaded hooks for {len(hooks)} event(s) from {path}")
    return hooks


def _as_env_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, default=str)


class HookDispatcher:
    """Runs the commands registered for an event, one after another."""

    def __init__(self, hooks: Optional[Dict[str, List[str]]] = None, hooks_path: Optional[str] = None,
                 working_directory: str = ".", timeout: float = 30, enabled: bool = True):
        self.hooks_path = hooks_path
        self.working_directory = os.path.abspath(working_directory)
        self.timeout = timeout
        self.enabled = enabled
        if hooks is not None:
            self.hooks = {event: list(cmds) for event, cmds in hooks.items()}
        else:
            self.hooks = load_hooks(hooks_path) if hooks_path else {}

    def reload(self) -> None:
        if self.hooks_path:
            self.hooks = load_hooks(self.hooks_path)

    def has_hooks(self, event: str) -> bool:
        return self.enabled and bool(self.hooks.get(event))

    def _environment(self, event: str, context: Dict[str, Any]) -> Dict[str, str]:
        env = dict(os.environ)
        env["STREAM_RUNNER_EVENT"] = event
        env["STREAM_RUNNER_TOOL_NAME"] = _as_env_value(context.get("tool_name"))
        env["STREAM_RUNNER_TOOL_PARAMS"] = _as_env_value(context.get("tool_params"))
        env["STREAM_RUNNER_TOOL_RESULT"] = _as_env_value(context.get("tool_result"))
        env["STREAM_RUNNER_USER_INPUT"] = _as_env_value(context.get("user_input"))
        env["STREAM_RUNNER_ASSISTANT_RESPONSE"] = _as_env_value(context.get("assistant_response"))
        env["STREAM_RUNNER_ERROR"] = _as_env_value(context.get("error"))
        return env

    def _run(self, command: str, env: Dict[str, str]) -> HookResult:
        try:
            proc = subprocess.run(
                command, shell=True, cwd=self.working_directory, env=env,
                capture_output=True, text=True, timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            return HookResult(command, success=False, error=f"Hook timed out after {self.timeout}s",
                              timed_out=True)
        output = (proc.stdout or "") + (f"\n{proc.stderr}" if proc.stderr else "")
        if proc.returncode != 0:
            return HookResult(command, success=False, output=output.strip(),
                              error=(proc.stderr or proc.stdout or f"exit code {proc.returncode}").strip())
        return HookResult(command, success=True, output=output.strip())

    async def trigger(self, event: str, context: Optional[Dict[str, Any]] = None) -> HookOutcome:
        outcome = HookOutcome()
        if not self.has_hooks(event):
            return outcome

        env = self._environment(event, context or {})
        loop = asyncio.get_running_loop()
        for command in self.hooks[event]:
            result = await loop.run_in_executor(None, self._run, command, env)
            outcome.results.append(result)
            if result.timed_out:
                logger.warning(f"Hook timed out ({event}): {command}")
                outcome.timed_out = True
                break
            if not result.success:
                logger.warning(f"Hook blocked {event}: {command}: {result.error}")
                outcome.blocked = True
                break
            logger.debug(f"Hook ran ({event}): {command}")
        return outcome
