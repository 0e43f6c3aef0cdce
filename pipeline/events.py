"""
Pipeline data types: tasks, their payloads, and events emitted to the caller.
"""

import hashlib
import json
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union


class TaskKind(str, Enum):
    TOOL_CALL = "tool_call"
    ARTIFACT = "artifact"


class TaskStatus(str, Enum):
    DETECTED = "detected"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"


class FailureKind(str, Enum):
    HOOK_BLOCKED = "hook_blocked"
    HOOK_TIMEOUT = "hook_timeout"
    DECLINED = "declined"
    TOOL_ERROR = "tool_error"


class ArtifactAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"


class InvalidTransition(ValueError):
    """A task was moved along an edge the lifecycle does not allow."""


_ALLOWED_TRANSITIONS = {
    TaskStatus.DETECTED: {TaskStatus.EXECUTING},
    TaskStatus.EXECUTING: {TaskStatus.COMPLETED, TaskStatus.FAILED},
    TaskStatus.COMPLETED: set(),
    TaskStatus.FAILED: set(),
}


def content_hash(file_path: str, content: str) -> str:
    return hashlib.sha256(f"{file_path}\0{content}".encode("utf-8")).hexdigest()


@dataclass
class ToolCall:
    """A tool invocation parsed from a tool-call block"""
    name: str
    params: Dict[str, Any] = field(default_factory=dict)

    def signature(self) -> str:
        return self.name + json.dumps(self.params, sort_keys=False, default=str)


@dataclass
class Artifact:
    """A complete file body parsed from an annotated code block"""
    file_path: str
    content: str
    language: Optional[str] = None
    action: ArtifactAction = ArtifactAction.CREATE
    is_complete: bool = True
    content_hash: str = ""

    def __post_init__(self):
        if not self.content_hash:
            self.content_hash = content_hash(self.file_path, self.content)


@dataclass
class Task:
    """One detected unit of work and its execution state"""
    id: str
    kind: TaskKind
    name: str
    payload: Union[ToolCall, Artifact]
    status: TaskStatus = TaskStatus.DETECTED
    result: Any = None
    error: Optional[str] = None
    failure: Optional[FailureKind] = None
    started_at: Optional[float] = None
    ended_at: Optional[float] = None

    def transition(self, new_status: TaskStatus) -> None:
        if new_status not in _ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransition(f"{self.id}: {self.status.value} -> {new_status.value}")
        self.status = new_status
        if new_status == TaskStatus.EXECUTING:
            self.started_at = time.time()
        else:
            self.ended_at = time.time()

    def complete(self, result: Any = None) -> None:
        self.transition(TaskStatus.COMPLETED)
        self.result = result

    def fail(self, error: str, failure: FailureKind, result: Any = None) -> None:
        self.transition(TaskStatus.FAILED)
        self.error = error
        self.failure = failure
        self.result = result

    @property
    def duration(self) -> Optional[float]:
        if self.started_at is None or self.ended_at is None:
            return None
        return self.ended_at - self.started_at

    @property
    def is_terminal(self) -> bool:
        return self.status in (TaskStatus.COMPLETED, TaskStatus.FAILED)


@dataclass
class PipelineEvent:
    """Event emitted while the executor drains its queue"""
    type: str  # task_start, task_completed, task_failed, turn_halted, hint, etc.
    content: str = ""
    data: Optional[Dict[str, Any]] = None
