"""
Sequential execution of detected tasks.

One FIFO queue, one drain loop. Each tool call passes the tool_call hook and
the approval gate before it reaches the registry; blocking work runs in the
default thread pool so the event loop stays responsive while exactly one task
is executing. A declined approval halts the turn: the rest of the queue is
dropped and nothing more is accepted until reset().
"""

import asyncio
import logging
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional

from backend import Backend
from tools._common import ToolResult
from tools.dispatch import ToolRegistry
from .approval import ApprovalGate
from .events import FailureKind, PipelineEvent, Task, TaskKind, TaskStatus
from .hooks import HookDispatcher, HookOutcome

logger = logging.getLogger(__name__)

REASON_HOOK_BLOCKED = "blocked by hook"
REASON_HOOK_TIMEOUT = "hook timed out"
REASON_DECLINED = "declined by user"

EventCallback = Callable[[PipelineEvent], Awaitable[None]]


class SequentialExecutor:
    """Runs tasks strictly one at a time in detection order."""

    def __init__(
        self,
        registry: ToolRegistry,
        gate: Optional[ApprovalGate] = None,
        hooks: Optional[HookDispatcher] = None,
        backend: Optional[Backend] = None,
        bypass: bool = False,
        approve_artifacts: bool = False,
        on_event: Optional[EventCallback] = None,
    ):
        self.registry = registry
        self.gate = gate
        self.hooks = hooks
        self.backend = backend or registry.backend
        self.bypass = bypass
        self.approve_artifacts = approve_artifacts
        self.on_event = on_event

        self.queue: Deque[Task] = deque()
        self.draining = False
        self.cancelled = False
        self.turn_halted = False
        self.current: Optional[Task] = None
        self._tasks: List[Task] = []
        self._drain_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Queue control
    # ------------------------------------------------------------------

    @property
    def tasks(self) -> List[Task]:
        return list(self._tasks)

    def enqueue(self, task: Task) -> bool:
        """Queue a DETECTED task. Must be called from a running event loop."""
        if self.turn_halted:
            logger.info(f"Turn halted; ignoring {task.id} ({task.name})")
            return False
        if task.status != TaskStatus.DETECTED:
            logger.warning(f"Not queueing {task.id}: status is {task.status.value}")
            return False
        self._tasks.append(task)
        self.queue.append(task)
        logger.debug(f"Queued {task.id} ({task.name}); {len(self.queue)} waiting")
        if not self.draining:
            self.draining = True
            self._drain_task = asyncio.get_running_loop().create_task(self._drain())
        return True

    def cancel(self) -> None:
        """Stop before the next task. The task already executing runs to completion."""
        self.cancelled = True
        logger.info(f"Execution cancelled; {len(self.queue)} task(s) will not start")

    def set_bypass_mode(self, enabled: bool) -> None:
        self.bypass = enabled
        logger.info(f"Approval bypass {'enabled' if enabled else 'disabled'}")

    async def wait_for_all(self) -> None:
        """Return once nothing is executing and the queue is drained.

        After cancel() or a declined approval the loop stops early; the tasks
        still queued stay DETECTED and are left in the queue.
        """
        while self.draining and self._drain_task is not None:
            await self._drain_task

    def reset(self) -> None:
        """Start a new turn: forget tasks, clear halt and cancel flags."""
        if self.draining:
            logger.warning("reset() while tasks are executing; queued tasks are dropped")
        self.queue.clear()
        self._tasks = []
        self.cancelled = False
        self.turn_halted = False

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def status(self) -> Dict[str, int]:
        counts = {"queued": len(self.queue), "executing": 0, "completed": 0, "failed": 0}
        for task in self._tasks:
            if task.status == TaskStatus.EXECUTING:
                counts["executing"] += 1
            elif task.status == TaskStatus.COMPLETED:
                counts["completed"] += 1
            elif task.status == TaskStatus.FAILED:
                counts["failed"] += 1
        return counts

    def summary(self) -> Dict[str, Any]:
        status = self.status()
        failures: Dict[str, int] = {}
        for task in self._tasks:
            if task.failure is not None:
                failures[task.failure.value] = failures.get(task.failure.value, 0) + 1
        durations = [t.duration for t in self._tasks if t.duration is not None]
        return {
            "total": len(self._tasks),
            "completed": status["completed"],
            "failed": status["failed"],
            "not_run": sum(1 for t in self._tasks if t.status == TaskStatus.DETECTED),
            "failures": failures,
            "turn_halted": self.turn_halted,
            "cancelled": self.cancelled,
            "duration": round(sum(durations), 3),
        }

    # ------------------------------------------------------------------
    # Drain loop
    # ------------------------------------------------------------------

    async def _drain(self) -> None:
        try:
            while self.queue:
                if self.cancelled or self.turn_halted:
                    break
                task = self.queue.popleft()
                await self._execute(task)
        finally:
            self.draining = False

    async def _emit(self, event: PipelineEvent) -> None:
        if self.on_event is None:
            return
        try:
            await self.on_event(event)
        except Exception:
            logger.exception(f"Event callback failed for {event.type}")

    async def _execute(self, task: Task) -> None:
        task.transition(TaskStatus.EXECUTING)
        self.current = task
        logger.info(f"Executing {task.id}: {task.name}")
        await self._emit(PipelineEvent(type="task_start", content=task.name, data={"task_id": task.id}))
        try:
            if task.kind == TaskKind.TOOL_CALL:
                await self._run_tool(task)
            else:
                await self._write_artifact(task)
        except Exception as e:
            logger.exception(f"Unexpected error executing {task.id}")
            if task.status == TaskStatus.EXECUTING:
                task.fail(f"Internal error: {e}", FailureKind.TOOL_ERROR)
        finally:
            self.current = None

        if task.status == TaskStatus.COMPLETED:
            logger.info(f"Completed {task.id} in {task.duration:.2f}s")
            await self._emit(PipelineEvent(type="task_completed", content=task.name,
                                           data={"task_id": task.id, "result": task.result}))
        else:
            logger.info(f"Failed {task.id}: {task.error}")
            await self._emit(PipelineEvent(type="task_failed", content=task.error or "",
                                           data={"task_id": task.id, "failure": task.failure.value}))
        if self.turn_halted:
            await self._halt_turn(task)

    async def _trigger(self, event: str, context: Dict[str, Any]) -> HookOutcome:
        if self.hooks is None:
            return HookOutcome()
        return await self.hooks.trigger(event, context)

    async def _approve(self, task: Task, tool_name: str, params: Dict[str, Any]) -> bool:
        if self.bypass or self.gate is None or not self.gate.requires_approval(tool_name):
            return True
        decision = await self.gate.request(tool_name, params)
        if decision.approved:
            logger.info(f"{task.id} approved: {decision.reason}")
            return True
        task.fail(REASON_DECLINED, FailureKind.DECLINED, result=decision)
        self.turn_halted = True
        return False

    async def _halt_turn(self, declined: Task) -> None:
        dropped = [t.id for t in self.queue]
        self.queue.clear()
        logger.info(f"Turn halted after {declined.id} was declined; dropped {len(dropped)} queued task(s)")
        await self._emit(PipelineEvent(
            type="turn_halted",
            content="The user declined a tool call. Stop issuing tool calls for this turn and wait for guidance.",
            data={"task_id": declined.id, "dropped": dropped},
        ))

    async def _run_tool(self, task: Task) -> None:
        call = task.payload
        name = self.registry.resolve(call.name)
        params = call.params
        context = {"tool_name": name, "tool_params": params}

        outcome = await self._trigger("tool_call", context)
        if outcome.timed_out:
            task.fail(REASON_HOOK_TIMEOUT, FailureKind.HOOK_TIMEOUT, result=outcome)
            return
        if outcome.blocked:
            task.fail(REASON_HOOK_BLOCKED, FailureKind.HOOK_BLOCKED, result=outcome)
            return

        if not await self._approve(task, name, params):
            return

        loop = asyncio.get_running_loop()
        try:
            result = await loop.run_in_executor(None, self.registry.execute, name, params)
        except Exception as e:
            logger.exception(f"Tool execution error: {name}")
            result = ToolResult(success=False, error=f"Tool error: {e}")

        if result.success:
            post = await self._trigger("tool_success", dict(context, tool_result=result.output))
            task.complete(result)
        else:
            post = await self._trigger("tool_error", dict(context, error=result.error))
            task.fail(result.error or f"{name} failed", FailureKind.TOOL_ERROR, result=result)
        if not post.ok:
            logger.warning(f"Post-execution hook for {task.id} did not succeed "
                           f"({'timed out' if post.timed_out else 'non-zero exit'})")

    async def _write_artifact(self, task: Task) -> None:
        artifact = task.payload
        if self.approve_artifacts:
            params = {"file_path": artifact.file_path, "content": artifact.content}
            if not await self._approve(task, "Write", params):
                return

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self.backend.write_file, artifact.file_path, artifact.content)
        except Exception as e:
            logger.warning(f"Failed to write {artifact.file_path}: {e}")
            task.fail(f"Failed to write {artifact.file_path}: {e}", FailureKind.TOOL_ERROR)
            return
        lines = artifact.content.count("\n") + 1 if artifact.content else 0
        task.complete({
            "file_path": artifact.file_path,
            "action": artifact.action.value,
            "lines": lines,
            "bytes": len(artifact.content.encode("utf-8")),
        })
